"""Downgrade protection for local package installs."""

import logging
from collections.abc import Sequence

from extman.config.schemas import ExtensionManifest
from extman.core.errors import ErrorKind, ExtensionError
from extman.core.models import InstalledExtension
from extman.core.output import Output
from extman.core.reference import are_same_extensions
from extman.utils.version import is_greater

logger = logging.getLogger(__name__)


def find_newer(
    identifier: str, version: str, installed: Sequence[InstalledExtension]
) -> InstalledExtension | None:
    """Find an installed copy of ``identifier`` with a version greater than ``version``."""
    for extension in installed:
        if are_same_extensions(extension.identifier, identifier) and is_greater(
            extension.version, version
        ):
            return extension
    return None


def downgrade_message(newer: InstalledExtension) -> str:
    return (
        f"A newer version of extension '{newer.identifier}' v{newer.version} is already "
        "installed. Use '--force' option to downgrade to older version."
    )


def validate_package(
    manifest: ExtensionManifest | None,
    installed: Sequence[InstalledExtension],
    force: bool,
    output: Output,
) -> bool:
    """Check whether a package may be installed over what is already there.

    Args:
        manifest: Manifest read from the package
        installed: Installed-extension snapshot
        force: Whether --force was given
        output: Output sink

    Returns:
        True if the install may proceed

    Raises:
        ExtensionError: INVALID_PACKAGE if there is no manifest
    """
    if manifest is None:
        raise ExtensionError(ErrorKind.INVALID_PACKAGE, "Invalid extension package")

    newer = find_newer(manifest.identifier, manifest.version, installed)
    if newer is not None and not force:
        logger.debug("Blocking downgrade of %s to %s", newer.identifier, manifest.version)
        output.log(downgrade_message(newer))
        return False

    return True
