"""Abstract base class for extension stores."""

from abc import ABC, abstractmethod
from pathlib import Path

from extman.config.schemas import ExtensionKind, ExtensionManifest
from extman.core.models import InstalledExtension, InstallOptions
from extman.registry.base import GalleryExtension


class ExtensionStore(ABC):
    """Abstract base class for the local extension store.

    The store owns all bytes-on-disk mutation. Implementations signal a
    cancelled operation by raising ``ExtensionError`` with
    ``ErrorKind.CANCELLED``.
    """

    @abstractmethod
    def get_installed(self, kind: ExtensionKind | None = None) -> list[InstalledExtension]:
        """List installed extensions, optionally only of one kind."""
        ...

    @abstractmethod
    def get_manifest(self, package: Path) -> ExtensionManifest | None:
        """Read the manifest of a local package (directory or archive).

        Returns:
            The manifest, or None if the package has no readable manifest
        """
        ...

    @abstractmethod
    def install(self, package: Path) -> InstalledExtension:
        """Install an extension from a local package."""
        ...

    @abstractmethod
    def install_from_gallery(
        self, extension: GalleryExtension, options: InstallOptions
    ) -> InstalledExtension:
        """Install an extension version fetched from the gallery."""
        ...

    @abstractmethod
    def uninstall(self, extension: InstalledExtension) -> None:
        """Remove one installed extension."""
        ...
