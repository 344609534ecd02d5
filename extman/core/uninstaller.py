"""Extension uninstallation.

References are processed strictly in order, each against a fresh read of
the installed extensions.
"""

import logging
from collections.abc import Sequence

from extman.core.errors import BatchUninstallError, ErrorKind, ExtensionError
from extman.core.localization import LocalizationCache
from extman.core.models import InstalledExtension
from extman.core.output import Output
from extman.core.reference import (
    are_same_extensions,
    get_id,
    is_package_location,
    to_package_path,
)
from extman.store.base import ExtensionStore

logger = logging.getLogger(__name__)


class ExtensionUninstaller:
    """Removes installed extensions, honoring builtin and system protection."""

    def __init__(self, store: ExtensionStore, localization: LocalizationCache):
        self.store = store
        self.localization = localization

    def _get_extension_id(self, reference: str) -> str:
        if is_package_location(reference):
            manifest = self.store.get_manifest(to_package_path(reference))
            if manifest is None:
                raise ExtensionError(
                    ErrorKind.INVALID_PACKAGE, f"Invalid extension package: {reference}"
                )
            return get_id(manifest)
        return reference

    def uninstall(
        self,
        references: Sequence[str],
        output: Output,
        force: bool = False,
    ) -> list[InstalledExtension]:
        """Uninstall extensions.

        System copies are never uninstalled. A reference with only System
        copies, or with a user-marked builtin copy and no --force, stops the
        whole batch: later references are not processed. The localization
        cache is refreshed for removed language packs even when the batch
        aborts.

        Args:
            references: Identifiers or package paths
            output: Output sink for user-facing lines
            force: Allow removing user-marked builtin extensions

        Returns:
            The uninstalled extensions

        Raises:
            ExtensionError: NOT_INSTALLED if a reference matches nothing
            BatchUninstallError: If any store uninstall call failed
        """
        uninstalled: list[InstalledExtension] = []
        failed: list[str] = []

        try:
            self._uninstall_all(references, output, force, uninstalled, failed)
        finally:
            if any(e.manifest.is_language_pack for e in uninstalled):
                logger.info("Language pack uninstalled, refreshing localization cache")
                self.localization.refresh()

        if failed:
            raise BatchUninstallError(failed)

        return uninstalled

    def _uninstall_all(
        self,
        references: Sequence[str],
        output: Output,
        force: bool,
        uninstalled: list[InstalledExtension],
        failed: list[str],
    ) -> None:
        """Uninstall references in order, recording into ``uninstalled`` and ``failed``."""
        for reference in references:
            identifier = self._get_extension_id(reference)
            installed = self.store.get_installed()
            matches = [e for e in installed if are_same_extensions(e.identifier, identifier)]
            if not matches:
                raise ExtensionError.not_installed(identifier)

            # System copies are never handed to the store
            to_uninstall = [e for e in matches if e.kind != "system"]
            if not to_uninstall:
                output.log(
                    f"Extension '{identifier}' is a Built-in extension and cannot be uninstalled"
                )
                break
            if any(e.is_builtin for e in to_uninstall) and not force:
                output.log(
                    f"Extension '{identifier}' is marked as a Built-in extension by user. "
                    "Please use '--force' option to uninstall it."
                )
                break

            output.log(f"Uninstalling {identifier}...")
            removed = 0
            for extension in to_uninstall:
                try:
                    self.store.uninstall(extension)
                except ExtensionError as e:
                    match e.kind:
                        case ErrorKind.CANCELLED:
                            output.log(f"Cancelled uninstalling extension '{identifier}'.")
                        case _:
                            output.error(str(e))
                            failed.append(identifier)
                    continue
                except Exception as e:
                    logger.debug("Uninstall of %s failed", extension.location, exc_info=True)
                    output.error(str(e) or repr(e))
                    failed.append(identifier)
                    continue
                uninstalled.append(extension)
                removed += 1

            if removed == len(to_uninstall):
                output.log(f"Extension '{identifier}' was successfully uninstalled!")
