"""Local file system gallery client."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from extman.config.parser import ConfigError, load_extension_manifest, load_gallery_index
from extman.config.schemas import ExtensionManifest, GalleryEntry, GalleryIndex
from extman.core.reference import normalize_id
from extman.registry.base import GalleryClient, GalleryExtension
from extman.utils.filesystem import extract_tarball, file_uri_to_path, to_file_uri
from extman.utils.version import latest_version

logger = logging.getLogger(__name__)

INDEX_FILE = "registry.json"


class LocalGalleryError(Exception):
    """Error interacting with a local gallery."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message)


class LocalGalleryClient(GalleryClient):
    """Gallery client for a directory on the local file system.

    The directory holds a registry.json index and one tarball per published
    version, named ``<publisher.name>-<version>.tar.gz``.

    URL format:
    - file:///path/to/gallery
    - file:../relative/path
    - a plain path
    """

    def __init__(self, url: str):
        """Initialize the local gallery client.

        Args:
            url: Local file URL (file:// or file:) or plain path
        """
        self._url = url
        self._path = file_uri_to_path(url) or Path(url).expanduser().resolve()

        logger.info("Initializing local gallery client for %s", self._path)

    @property
    def protocol(self) -> str:
        return "file"

    @property
    def path(self) -> Path:
        """Get the local path this client points to."""
        return self._path

    def _get_index(self) -> GalleryIndex:
        """Load registry.json.

        Raises:
            LocalGalleryError: If registry.json is missing or invalid
        """
        index_file = self._path / INDEX_FILE
        if not index_file.exists():
            raise LocalGalleryError(
                f"Gallery not found: {self._path} does not contain {INDEX_FILE}",
                path=str(self._path),
            )
        try:
            return load_gallery_index(index_file)
        except ConfigError as e:
            raise LocalGalleryError(str(e), path=str(index_file)) from e

    def _find_entry(self, index: GalleryIndex, identifier: str) -> tuple[str, GalleryEntry] | None:
        """Look up an index entry case-insensitively, returning its published identifier."""
        wanted = normalize_id(identifier)
        for published_id, entry in index.packages.items():
            if normalize_id(published_id) == wanted:
                return published_id, entry
        return None

    def _to_gallery_extension(self, identifier: str, version: str) -> GalleryExtension | None:
        tarball_path = self._path / f"{identifier}-{version}.tar.gz"
        if not tarball_path.exists():
            logger.warning("Tarball not found: %s", tarball_path)
            return None

        return GalleryExtension(
            identifier=identifier,
            version=version,
            resolved_url=to_file_uri(tarball_path),
            local_path=tarball_path,
        )

    def get_extensions(self, identifiers: list[str]) -> list[GalleryExtension]:
        logger.debug("Looking up %d extension(s) in local gallery", len(identifiers))
        index = self._get_index()

        result: list[GalleryExtension] = []
        for identifier in identifiers:
            found = self._find_entry(index, identifier)
            if found is None:
                logger.debug("Extension '%s' not in gallery", identifier)
                continue
            published_id, entry = found
            version = entry.latest or latest_version(entry.versions)
            if version is None:
                continue
            extension = self._to_gallery_extension(published_id, version)
            if extension is not None:
                result.append(extension)
        return result

    def get_compatible_extension(
        self, identifier: str, version: str | None = None
    ) -> GalleryExtension | None:
        logger.debug("Resolving '%s' version '%s' from local gallery", identifier, version)
        found = self._find_entry(self._get_index(), identifier)
        if found is None:
            return None

        published_id, entry = found
        if version is None:
            version = entry.latest or latest_version(entry.versions)
        elif version not in entry.versions:
            logger.debug("Version '%s' not published for '%s'", version, published_id)
            return None

        if version is None:
            return None
        return self._to_gallery_extension(published_id, version)

    def get_manifest(self, extension: GalleryExtension) -> ExtensionManifest:
        with tempfile.TemporaryDirectory(prefix="extman_") as temp_dir:
            extension_dir = self.fetch_package(extension, Path(temp_dir))
            return load_extension_manifest(extension_dir)

    def fetch_package(self, extension: GalleryExtension, dest_dir: Path) -> Path:
        """Fetch a package to a local directory."""
        logger.info(
            "Fetching extension '%s' v%s to %s", extension.identifier, extension.version, dest_dir
        )
        if extension.local_path is None:
            raise LocalGalleryError(f"Gallery extension has no local path: {extension.identifier}")

        result = extract_tarball(extension.local_path, dest_dir)
        logger.debug("Extension '%s' extracted to %s", extension.identifier, result)
        return result
