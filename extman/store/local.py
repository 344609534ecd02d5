"""File system extension store."""

from __future__ import annotations

import logging
import tempfile
import threading
from pathlib import Path

from extman.config.parser import (
    ConfigError,
    load_extension_manifest,
    load_store_index,
    save_store_index,
)
from extman.config.schemas import ExtensionKind, ExtensionManifest, InstalledRecord
from extman.core.errors import ErrorKind, ExtensionError
from extman.core.models import InstalledExtension, InstallOptions
from extman.core.reference import are_same_extensions
from extman.registry.base import GalleryClient, GalleryExtension
from extman.store.base import ExtensionStore
from extman.utils.filesystem import (
    copy_directory,
    ensure_directory,
    extract_tarball,
    is_package_file,
    remove_directory,
    to_file_uri,
)

logger = logging.getLogger(__name__)

INDEX_FILE = "extensions.json"


class FileSystemExtensionStore(ExtensionStore):
    """Extension store backed by local directories.

    Layout:
    - <extensions_dir>/extensions.json: index of user-installed extensions
    - <extensions_dir>/<publisher.name>-<version>/: one folder per installed extension
    - <system_extensions_dir>/<any>/package.json: read-only system extensions
    """

    def __init__(
        self,
        extensions_dir: Path,
        system_extensions_dir: Path | None = None,
        gallery: GalleryClient | None = None,
    ):
        """Initialize the store.

        Args:
            extensions_dir: Directory holding user-installed extensions
            system_extensions_dir: Optional directory of system extensions
            gallery: Gallery used to fetch packages for gallery installs
        """
        self.extensions_dir = extensions_dir
        self.system_extensions_dir = system_extensions_dir
        self.gallery = gallery
        self._lock = threading.Lock()

    @property
    def index_path(self) -> Path:
        return self.extensions_dir / INDEX_FILE

    def get_installed(self, kind: ExtensionKind | None = None) -> list[InstalledExtension]:
        result: list[InstalledExtension] = []
        if kind in (None, "system"):
            result.extend(self._scan_system_extensions())
        if kind in (None, "user"):
            with self._lock:
                index = load_store_index(self.index_path)
            result.extend(self._to_installed(record) for record in index.extensions)
        return result

    def _scan_system_extensions(self) -> list[InstalledExtension]:
        if self.system_extensions_dir is None or not self.system_extensions_dir.is_dir():
            return []

        result = []
        for folder in sorted(self.system_extensions_dir.iterdir()):
            if not (folder / "package.json").is_file():
                continue
            try:
                manifest = load_extension_manifest(folder)
            except ConfigError as e:
                logger.warning("Skipping system extension at %s: %s", folder, e)
                continue
            result.append(
                InstalledExtension(
                    identifier=manifest.identifier,
                    manifest=manifest,
                    location=to_file_uri(folder),
                    kind="system",
                )
            )
        return result

    @staticmethod
    def _to_installed(record: InstalledRecord) -> InstalledExtension:
        return InstalledExtension(
            identifier=record.identifier,
            manifest=record.manifest,
            location=record.location,
            kind=record.kind,
            is_builtin=record.is_builtin,
        )

    def get_manifest(self, package: Path) -> ExtensionManifest | None:
        if not package.exists():
            raise ExtensionError(ErrorKind.INVALID_PACKAGE, f"Package not found: {package}")

        try:
            if package.is_dir():
                return load_extension_manifest(package)
            if is_package_file(package):
                with tempfile.TemporaryDirectory(prefix="extman_") as temp_dir:
                    return load_extension_manifest(extract_tarball(package, Path(temp_dir)))
        except (ConfigError, ValueError, OSError) as e:
            logger.debug("Cannot read manifest of %s: %s", package, e)
            return None

        logger.debug("Unknown package format: %s", package)
        return None

    def install(self, package: Path) -> InstalledExtension:
        logger.info("Installing package %s", package)
        if package.is_dir():
            return self._install_directory(package, InstallOptions())

        if not is_package_file(package):
            raise ExtensionError(
                ErrorKind.INVALID_PACKAGE, f"Unknown package format: {package}"
            )
        with tempfile.TemporaryDirectory(prefix="extman_") as temp_dir:
            source_dir = extract_tarball(package, Path(temp_dir))
            return self._install_directory(source_dir, InstallOptions())

    def install_from_gallery(
        self, extension: GalleryExtension, options: InstallOptions
    ) -> InstalledExtension:
        if self.gallery is None:
            raise ExtensionError(
                ErrorKind.INSTALL_FAILED,
                "No gallery configured",
                extension.identifier,
            )

        logger.info("Installing %s v%s from gallery", extension.identifier, extension.version)
        with tempfile.TemporaryDirectory(prefix="extman_") as temp_dir:
            source_dir = self.gallery.fetch_package(extension, Path(temp_dir))
            return self._install_directory(source_dir, options)

    def _install_directory(self, source_dir: Path, options: InstallOptions) -> InstalledExtension:
        """Copy an extracted extension into the store and record it in the index."""
        try:
            manifest = load_extension_manifest(source_dir)
        except ConfigError as e:
            raise ExtensionError(ErrorKind.INVALID_PACKAGE, str(e)) from e

        target = self.extensions_dir / f"{manifest.identifier.lower()}-{manifest.version}"

        with self._lock:
            ensure_directory(self.extensions_dir)
            index = load_store_index(self.index_path)

            # Replace any existing copy of the same extension
            kept: list[InstalledRecord] = []
            for record in index.extensions:
                if not are_same_extensions(record.identifier, manifest.identifier):
                    kept.append(record)
                    continue
                old_path = self._to_installed(record).local_path
                if old_path is not None and old_path.resolve() != target.resolve():
                    remove_directory(old_path)
                    logger.debug("Removed previous version at %s", old_path)

            copy_directory(source_dir, target)

            record = InstalledRecord(
                identifier=manifest.identifier,
                location=to_file_uri(target),
                manifest=manifest,
                kind="user",
                is_builtin=options.is_builtin,
                is_machine_scoped=options.is_machine_scoped,
            )
            kept.append(record)
            index.extensions = kept
            save_store_index(self.index_path, index)

        logger.info("Installed %s v%s at %s", manifest.identifier, manifest.version, target)
        return self._to_installed(record)

    def uninstall(self, extension: InstalledExtension) -> None:
        if extension.kind == "system":
            raise ExtensionError(
                ErrorKind.PROTECTED,
                f"Extension '{extension.identifier}' is a system extension",
                extension.identifier,
            )

        with self._lock:
            index = load_store_index(self.index_path)
            remaining = [r for r in index.extensions if r.location != extension.location]
            if len(remaining) == len(index.extensions):
                raise ExtensionError.not_installed(extension.identifier)

            path = extension.local_path
            if path is not None:
                remove_directory(path)

            index.extensions = remaining
            save_store_index(self.index_path, index)

        logger.info("Uninstalled %s from %s", extension.identifier, extension.location)
