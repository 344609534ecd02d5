"""Shared fixtures for extman tests."""

import json
import shutil
import tempfile
import threading
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from extman.config.schemas import ExtensionKind, ExtensionManifest
from extman.core.localization import LocalizationCache
from extman.core.models import InstalledExtension, InstallOptions
from extman.core.output import Output
from extman.core.reference import normalize_id
from extman.registry.base import GalleryClient, GalleryExtension
from extman.store.base import ExtensionStore
from extman.utils.filesystem import create_tarball
from extman.utils.version import latest_version

# =============================================================================
# In-memory collaborators
# =============================================================================


class RecordingOutput(Output):
    """Output sink that keeps every line."""

    def __init__(self) -> None:
        self.lines: list[str] = []
        self.errors: list[str] = []
        self._lock = threading.Lock()

    def log(self, message: str) -> None:
        with self._lock:
            self.lines.append(message)

    def error(self, message: str) -> None:
        with self._lock:
            self.errors.append(message)

    @property
    def text(self) -> str:
        return "\n".join(self.lines + self.errors)


class FakeStore(ExtensionStore):
    """Extension store held in memory.

    ``failures`` maps an identifier (gallery installs, uninstalls) or a package
    path string (package installs) to the exception the call should raise.
    """

    def __init__(self, installed: list[InstalledExtension] | None = None):
        self.installed = list(installed or [])
        self.manifests: dict[Path, ExtensionManifest | None] = {}
        self.failures: dict[str, Exception] = {}
        self.installed_packages: list[Path] = []
        self.gallery_installs: list[tuple[GalleryExtension, InstallOptions]] = []
        self.uninstalled: list[InstalledExtension] = []
        self.get_installed_calls = 0
        self._lock = threading.Lock()

    def get_installed(self, kind: ExtensionKind | None = None) -> list[InstalledExtension]:
        self.get_installed_calls += 1
        return [e for e in self.installed if kind is None or e.kind == kind]

    def get_manifest(self, package: Path) -> ExtensionManifest | None:
        return self.manifests.get(package)

    def install(self, package: Path) -> InstalledExtension:
        with self._lock:
            self.installed_packages.append(package)
        if str(package) in self.failures:
            raise self.failures[str(package)]
        manifest = self.manifests[package]
        assert manifest is not None
        return InstalledExtension(manifest.identifier, manifest, package.as_uri())

    def install_from_gallery(
        self, extension: GalleryExtension, options: InstallOptions
    ) -> InstalledExtension:
        with self._lock:
            self.gallery_installs.append((extension, options))
        failure = self.failures.get(normalize_id(extension.identifier))
        if failure is not None:
            raise failure
        return InstalledExtension(
            extension.identifier,
            ExtensionManifest(
                publisher=extension.identifier.split(".")[0],
                name=extension.identifier.split(".", 1)[1],
                version=extension.version,
            ),
            f"file:///extensions/{extension.identifier}-{extension.version}",
            is_builtin=options.is_builtin,
        )

    def uninstall(self, extension: InstalledExtension) -> None:
        self.uninstalled.append(extension)
        failure = self.failures.get(normalize_id(extension.identifier))
        if failure is not None:
            raise failure
        self.installed.remove(extension)

    @property
    def gallery_installed_ids(self) -> list[str]:
        return [extension.identifier for extension, _ in self.gallery_installs]


class FakeGallery(GalleryClient):
    """Gallery held in memory, publishing the manifests it was given."""

    def __init__(self, published: list[ExtensionManifest] | None = None):
        self.published: dict[str, dict[str, ExtensionManifest]] = {}
        for manifest in published or []:
            self.publish(manifest)
        self.get_extensions_calls: list[list[str]] = []
        self.compatible_calls: list[tuple[str, str | None]] = []
        self._lock = threading.Lock()

    def publish(self, manifest: ExtensionManifest) -> None:
        versions = self.published.setdefault(normalize_id(manifest.identifier), {})
        versions[manifest.version] = manifest

    @property
    def protocol(self) -> str:
        return "memory"

    def _extension(self, manifest: ExtensionManifest) -> GalleryExtension:
        return GalleryExtension(
            identifier=manifest.identifier,
            version=manifest.version,
            resolved_url=f"memory://{manifest.identifier}/{manifest.version}",
        )

    def get_extensions(self, identifiers: list[str]) -> list[GalleryExtension]:
        with self._lock:
            self.get_extensions_calls.append(list(identifiers))
        result = []
        for identifier in identifiers:
            versions = self.published.get(normalize_id(identifier))
            if versions:
                result.append(self._extension(versions[latest_version(list(versions))]))
        return result

    def get_compatible_extension(
        self, identifier: str, version: str | None = None
    ) -> GalleryExtension | None:
        with self._lock:
            self.compatible_calls.append((identifier, version))
        versions = self.published.get(normalize_id(identifier), {})
        if version is None:
            version = latest_version(list(versions))
        manifest = versions.get(version) if version else None
        return self._extension(manifest) if manifest else None

    def get_manifest(self, extension: GalleryExtension) -> ExtensionManifest:
        return self.published[normalize_id(extension.identifier)][extension.version]

    def fetch_package(self, extension: GalleryExtension, dest_dir: Path) -> Path:
        raise NotImplementedError("in-memory gallery has no packages")


class FakeLocalizationCache(LocalizationCache):
    """Localization cache that counts refreshes."""

    def __init__(self) -> None:
        self.refresh_count = 0

    def refresh(self) -> bool:
        self.refresh_count += 1
        return True


# =============================================================================
# Builders
# =============================================================================


def build_manifest(
    identifier: str = "pub.ext",
    version: str = "1.0.0",
    categories: list[str] | None = None,
    language_pack: bool = False,
) -> ExtensionManifest:
    publisher, name = identifier.split(".", 1)
    contributes: dict[str, Any] = {}
    if language_pack:
        contributes["localizations"] = [
            {
                "languageId": "de",
                "languageName": "German",
                "translations": [{"id": "vscode", "path": "./translations/main.i18n.json"}],
            }
        ]
    return ExtensionManifest(
        publisher=publisher,
        name=name,
        version=version,
        categories=categories or [],
        contributes=contributes,
    )


def build_installed(
    identifier: str = "pub.ext",
    version: str = "1.0.0",
    kind: ExtensionKind = "user",
    is_builtin: bool = False,
    location: str | None = None,
    categories: list[str] | None = None,
    language_pack: bool = False,
) -> InstalledExtension:
    manifest = build_manifest(identifier, version, categories, language_pack)
    return InstalledExtension(
        identifier=identifier,
        manifest=manifest,
        location=location or f"file:///extensions/{identifier.lower()}-{version}",
        kind=kind,
        is_builtin=is_builtin,
    )


def write_extension(parent: Path, manifest: dict[str, Any]) -> Path:
    """Write an extension folder with a package.json."""
    folder = parent / f"{manifest['publisher']}.{manifest['name']}-{manifest['version']}"
    folder.mkdir(parents=True, exist_ok=True)
    (folder / "package.json").write_text(json.dumps(manifest, indent=2))
    (folder / "extension.js").write_text("exports.activate = () => {};\n")
    return folder


def package_extension(parent: Path, manifest: dict[str, Any], dest: Path) -> Path:
    """Write an extension folder and pack it as <publisher.name>-<version>.tar.gz in dest."""
    folder = write_extension(parent, manifest)
    return create_tarball(folder, dest / f"{folder.name}.tar.gz")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory."""
    path = Path(tempfile.mkdtemp(prefix="extman_test_"))
    yield path
    if path.exists():
        shutil.rmtree(path)


@pytest.fixture
def output() -> RecordingOutput:
    return RecordingOutput()


@pytest.fixture
def make_manifest() -> Callable[..., ExtensionManifest]:
    return build_manifest


@pytest.fixture
def make_installed() -> Callable[..., InstalledExtension]:
    return build_installed


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def gallery() -> FakeGallery:
    return FakeGallery()


@pytest.fixture
def localization() -> FakeLocalizationCache:
    return FakeLocalizationCache()


@pytest.fixture
def sample_manifest_data() -> dict[str, Any]:
    """Sample package.json contents."""
    return {
        "publisher": "pub",
        "name": "ext",
        "version": "1.0.0",
        "displayName": "Sample Extension",
        "description": "A sample extension",
        "categories": ["Linters"],
        "engines": {"vscode": "^1.50.0"},
    }


@pytest.fixture
def temp_gallery(temp_dir: Path) -> Path:
    """Create a local gallery with pub.ext 1.0.0/2.0.0 and pub.lang 1.0.0 (a language pack)."""
    gallery_dir = temp_dir / "gallery"
    gallery_dir.mkdir()
    staging = temp_dir / "staging"

    for version in ("1.0.0", "2.0.0"):
        package_extension(
            staging / version,
            {"publisher": "pub", "name": "ext", "version": version, "categories": ["Linters"]},
            gallery_dir,
        )
    package_extension(
        staging / "lang",
        {
            "publisher": "pub",
            "name": "lang",
            "version": "1.0.0",
            "categories": ["Language Packs"],
            "contributes": {
                "localizations": [
                    {
                        "languageId": "de",
                        "languageName": "German",
                        "translations": [{"id": "vscode", "path": "./translations/main.json"}],
                    }
                ]
            },
        },
        gallery_dir,
    )

    registry = {
        "packages": {
            "pub.ext": {"versions": ["1.0.0", "2.0.0"], "latest": "2.0.0"},
            "pub.lang": {"versions": ["1.0.0"], "latest": "1.0.0"},
        }
    }
    (gallery_dir / "registry.json").write_text(json.dumps(registry, indent=2))
    return gallery_dir


@pytest.fixture
def make_extension_dir() -> Callable[[Path, dict[str, Any]], Path]:
    return write_extension


@pytest.fixture
def make_package() -> Callable[[Path, dict[str, Any], Path], Path]:
    return package_extension
