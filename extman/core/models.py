"""In-flight data models for install and uninstall batches."""

import threading
from dataclasses import dataclass, field
from pathlib import Path

from extman.config.schemas import ExtensionKind, ExtensionManifest
from extman.utils.filesystem import file_uri_to_path


@dataclass(frozen=True)
class ExtensionReference:
    """A parsed ``identifier[@version]`` reference."""

    identifier: str
    version: str | None = None

    def __str__(self) -> str:
        if self.version:
            return f"{self.identifier}@{self.version}"
        return self.identifier


@dataclass(frozen=True)
class InstallOptions:
    """Options passed through to the store for one install."""

    is_builtin: bool = False
    is_machine_scoped: bool = False


@dataclass(frozen=True)
class InstallRequest:
    """A gallery install request produced by the planner."""

    identifier: str
    version: str | None = None
    options: InstallOptions = field(default_factory=InstallOptions)

    @property
    def label(self) -> str:
        """Identifier as requested, with the pinned version if any."""
        if self.version:
            return f"{self.identifier}@{self.version}"
        return self.identifier


@dataclass(frozen=True)
class InstalledExtension:
    """The store's view of one installed extension."""

    identifier: str
    manifest: ExtensionManifest
    location: str
    kind: ExtensionKind = "user"
    is_builtin: bool = False

    @property
    def version(self) -> str:
        return self.manifest.version

    @property
    def local_path(self) -> Path | None:
        """Filesystem path of the extension, or None if it isn't stored locally."""
        return file_uri_to_path(self.location)


@dataclass(frozen=True)
class PackageReference:
    """A local package as the user gave it, with its resolved path."""

    location: str
    path: Path


@dataclass
class InstallPlan:
    """Result of planning an install batch."""

    packages: list[PackageReference] = field(default_factory=list)
    requests: list[InstallRequest] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


@dataclass
class BatchOutcome:
    """Aggregated result of one install batch.

    Appends are serialized so concurrent install tasks can record into the
    same outcome.
    """

    installed_manifests: list[ExtensionManifest] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add_installed(self, manifest: ExtensionManifest) -> None:
        with self._lock:
            self.installed_manifests.append(manifest)

    def add_failed(self, identifier: str) -> None:
        with self._lock:
            self.failed.append(identifier)

    @property
    def installed_identifiers(self) -> list[str]:
        with self._lock:
            return [m.identifier for m in self.installed_manifests]

    @property
    def has_language_pack(self) -> bool:
        with self._lock:
            return any(m.is_language_pack for m in self.installed_manifests)

    @property
    def all_successful(self) -> bool:
        return not self.failed
