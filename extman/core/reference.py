"""Extension reference parsing and identifier normalization.

All identifier comparisons in extman go through ``normalize_id`` so that the
planner, resolver, validator and uninstaller agree on what "the same
extension" means.
"""

import re
from pathlib import Path

from extman.config.schemas import ExtensionManifest
from extman.core.models import ExtensionReference
from extman.utils.filesystem import PACKAGE_SUFFIXES, file_uri_to_path

EXTENSION_ID_REGEX = re.compile(r"^([^.]+\..+)@(\d+\.\d+\.\d+(-.*)?)$")

# Folder-name form used by older stores: publisher.name-1.2.3
LEGACY_LOCAL_ID_REGEX = re.compile(r"^([^.]+\..+)-(\d+\.\d+\.\d+(-.*)?)$")


def adopt_identifier(identifier: str) -> str:
    """Canonicalize legacy identifier forms to ``publisher.name``.

    Casing is preserved; use ``normalize_id`` for comparisons.
    """
    identifier = identifier.strip()
    match = LEGACY_LOCAL_ID_REGEX.match(identifier)
    if match:
        return match.group(1)
    return identifier


def normalize_id(identifier: str) -> str:
    """Comparison key for an identifier."""
    return identifier.strip().lower()


def are_same_extensions(a: str, b: str) -> bool:
    return normalize_id(a) == normalize_id(b)


def parse_reference(raw: str) -> ExtensionReference:
    """Parse ``publisher.name`` or ``publisher.name@X.Y.Z[-pre]``.

    A suffix that isn't a version leaves the whole string as the identifier.
    Never raises.
    """
    match = EXTENSION_ID_REGEX.match(raw.strip())
    if match:
        return ExtensionReference(adopt_identifier(match.group(1)), match.group(2))
    return ExtensionReference(adopt_identifier(raw))


def get_id(manifest: ExtensionManifest, with_version: bool = False) -> str:
    if with_version:
        return f"{manifest.identifier}@{manifest.version}"
    return manifest.identifier


def is_package_location(reference: str) -> bool:
    """Check whether a raw reference names a local package rather than an identifier."""
    if reference.startswith("file:"):
        return True
    if reference.endswith(PACKAGE_SUFFIXES):
        return True
    return "/" in reference or "\\" in reference


def to_package_path(reference: str) -> Path:
    """Turn a package-location reference into a local path."""
    path = file_uri_to_path(reference)
    if path is not None:
        return path
    return Path(reference).expanduser().resolve()
