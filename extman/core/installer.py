"""Extension installation orchestrator.

This module contains the ExtensionInstaller, which plans an install batch,
resolves gallery requests and runs every install concurrently. A failing
item is recorded and never stops the rest of the batch.
"""

import logging
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from extman.config.schemas import ExtensionManifest
from extman.core.errors import (
    BatchInstallError,
    ErrorKind,
    ExtensionError,
    not_found_message,
)
from extman.core.localization import LocalizationCache
from extman.core.models import (
    BatchOutcome,
    InstalledExtension,
    InstallRequest,
    PackageReference,
)
from extman.core.output import Output
from extman.core.planner import InstallPlanner
from extman.core.reference import are_same_extensions, normalize_id
from extman.core.resolver import GalleryResolver
from extman.core.validator import downgrade_message, validate_package
from extman.registry.base import GalleryClient, GalleryExtension
from extman.store.base import ExtensionStore
from extman.utils.version import is_greater

logger = logging.getLogger(__name__)


class ExtensionInstaller:
    """Orchestrates extension installation.

    The installer coordinates planning, gallery resolution and the store's
    install calls. It never touches the disk itself.
    """

    def __init__(
        self,
        store: ExtensionStore,
        gallery: GalleryClient | None,
        localization: LocalizationCache,
        max_workers: int = 8,
    ):
        """Initialize the installer.

        Args:
            store: Local extension store
            gallery: Gallery client used to resolve identifiers, or None if only
                local packages can be installed
            localization: Cache to refresh after language packs are installed
            max_workers: Upper bound on concurrent installs and lookups
        """
        self.store = store
        self.gallery = gallery
        self.localization = localization
        self.max_workers = max_workers
        self.resolver = GalleryResolver(gallery, max_workers=max_workers) if gallery else None

    def install(
        self,
        references: Sequence[str],
        output: Output,
        builtin_references: Sequence[str] = (),
        is_machine_scoped: bool = False,
        force: bool = False,
    ) -> BatchOutcome:
        """Install a batch of extensions.

        Args:
            references: Identifiers, identifier@version strings or package paths
            output: Output sink for user-facing lines
            builtin_references: Identifiers to install as builtin
            is_machine_scoped: Install user references machine-wide
            force: Update already-installed extensions and allow downgrades

        Returns:
            BatchOutcome with the installed manifests

        Raises:
            BatchInstallError: If any item failed, after every item was attempted
        """
        outcome = BatchOutcome()
        if references:
            output.log("Installing extensions...")

        installed = self.store.get_installed(kind="user")

        planner = InstallPlanner(installed, force, output)
        plan = planner.plan(references, builtin_references, is_machine_scoped)
        if plan.requests and self.resolver is None:
            raise ExtensionError(
                ErrorKind.INSTALL_FAILED,
                "No gallery configured: cannot install "
                + ", ".join(r.label for r in plan.requests),
            )

        # Gallery lookup errors are fatal, so they surface before any install starts
        gallery_extensions: dict[str, GalleryExtension] = {}
        if plan.requests and self.resolver is not None:
            gallery_extensions = self.resolver.resolve(plan.requests)

        futures: list[Future[None]] = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            for package in plan.packages:
                futures.append(
                    executor.submit(
                        self._install_package_task, package, installed, force, output, outcome
                    )
                )

            for request in plan.requests:
                gallery_extension = gallery_extensions.get(normalize_id(request.identifier))
                futures.append(
                    executor.submit(
                        self._install_request_task,
                        request,
                        gallery_extension,
                        installed,
                        force,
                        output,
                        outcome,
                    )
                )

        for future in futures:
            future.result()

        if outcome.has_language_pack:
            logger.info("Language pack installed, refreshing localization cache")
            self.localization.refresh()

        logger.info(
            "Installation complete: %d installed, %d failed",
            len(outcome.installed_manifests),
            len(outcome.failed),
        )

        if not outcome.all_successful:
            raise BatchInstallError(list(outcome.failed), outcome)

        return outcome

    def _install_package_task(
        self,
        package: PackageReference,
        installed: Sequence[InstalledExtension],
        force: bool,
        output: Output,
        outcome: BatchOutcome,
    ) -> None:
        try:
            manifest = self._install_package(package.path, installed, force, output)
        except ExtensionError as e:
            match e.kind:
                case ErrorKind.CANCELLED:
                    output.log(f"Cancelled installing extension '{package.path.name}'.")
                case _:
                    output.error(str(e))
                    outcome.add_failed(package.location)
            return
        except Exception as e:
            logger.debug("Install of %s failed", package.location, exc_info=True)
            output.error(str(e) or repr(e))
            outcome.add_failed(package.location)
            return

        if manifest is not None:
            outcome.add_installed(manifest)

    def _install_package(
        self,
        package: Path,
        installed: Sequence[InstalledExtension],
        force: bool,
        output: Output,
    ) -> ExtensionManifest | None:
        """Install one local package.

        Returns:
            The installed manifest, or None if the install was skipped
        """
        manifest = self.store.get_manifest(package)
        if not validate_package(manifest, installed, force, output):
            return None

        self.store.install(package)
        output.log(f"Extension '{package.name}' was successfully installed.")
        return manifest

    def _install_request_task(
        self,
        request: InstallRequest,
        gallery_extension: GalleryExtension | None,
        installed: Sequence[InstalledExtension],
        force: bool,
        output: Output,
        outcome: BatchOutcome,
    ) -> None:
        if gallery_extension is None:
            output.error(not_found_message(request.label))
            outcome.add_failed(request.identifier)
            return

        try:
            manifest = self._install_from_gallery(
                request, gallery_extension, installed, force, output
            )
        except ExtensionError as e:
            match e.kind:
                case ErrorKind.CANCELLED:
                    output.log(f"Cancelled installing extension '{request.identifier}'.")
                case _:
                    output.error(str(e))
                    outcome.add_failed(request.identifier)
            return
        except Exception as e:
            logger.debug("Install of %s failed", request.label, exc_info=True)
            output.error(str(e) or repr(e))
            outcome.add_failed(request.identifier)
            return

        if manifest is not None:
            outcome.add_installed(manifest)

    def _install_from_gallery(
        self,
        request: InstallRequest,
        gallery_extension: GalleryExtension,
        installed: Sequence[InstalledExtension],
        force: bool,
        output: Output,
    ) -> ExtensionManifest | None:
        """Install one resolved gallery extension.

        Returns:
            The installed manifest, or None if the install was skipped
        """
        manifest = self.gallery.get_manifest(gallery_extension)

        current = next(
            (
                e
                for e in installed
                if are_same_extensions(e.identifier, gallery_extension.identifier)
            ),
            None,
        )
        if current is not None:
            if gallery_extension.version == current.version:
                output.log(f"Extension '{request.label}' is already installed.")
                return None
            if is_greater(current.version, gallery_extension.version) and not force:
                output.log(downgrade_message(current))
                return None
            output.log(
                f"Updating the extension '{request.identifier}' to the version "
                f"{gallery_extension.version}"
            )

        if request.options.is_builtin:
            output.log(
                f"Installing builtin extension '{request.identifier}' "
                f"v{gallery_extension.version}..."
            )
        else:
            output.log(
                f"Installing extension '{request.identifier}' v{gallery_extension.version}..."
            )

        self.store.install_from_gallery(gallery_extension, request.options)
        output.log(
            f"Extension '{request.identifier}' v{gallery_extension.version} "
            "was successfully installed."
        )
        return manifest
