"""Abstract base class for gallery clients."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from extman.config.schemas import ExtensionManifest


@dataclass(frozen=True)
class GalleryExtension:
    """An installable extension version published in a gallery."""

    identifier: str
    version: str
    resolved_url: str
    local_path: Path | None = None


class GalleryClient(ABC):
    """Abstract base class for gallery clients.

    Gallery clients look up published extension versions and fetch their
    packages. Absence is reported as a missing result, never as an error.
    """

    @property
    @abstractmethod
    def protocol(self) -> str:
        """Get the protocol this client handles (e.g., "file")."""
        ...

    @abstractmethod
    def get_extensions(self, identifiers: list[str]) -> list[GalleryExtension]:
        """Look up the latest version of several extensions in one round trip.

        Args:
            identifiers: Extension identifiers (case-insensitive)

        Returns:
            One GalleryExtension per identifier found; unknown ones are omitted
        """
        ...

    @abstractmethod
    def get_compatible_extension(
        self, identifier: str, version: str | None = None
    ) -> GalleryExtension | None:
        """Look up one extension, optionally pinned to a version.

        Args:
            identifier: Extension identifier (case-insensitive)
            version: Exact version, or None for the latest

        Returns:
            GalleryExtension if a matching version is available, None otherwise
        """
        ...

    @abstractmethod
    def get_manifest(self, extension: GalleryExtension) -> ExtensionManifest:
        """Fetch the manifest of a published extension version."""
        ...

    @abstractmethod
    def fetch_package(self, extension: GalleryExtension, dest_dir: Path) -> Path:
        """Fetch an extension package into a local directory.

        Args:
            extension: The gallery extension to fetch
            dest_dir: Directory to download/extract into

        Returns:
            Path to the extracted extension directory
        """
        ...
