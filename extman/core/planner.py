"""Install planning.

The planner makes one synchronous pass over the requested references
against a single installed-extension snapshot, before any install runs.
"""

import logging
from collections.abc import Sequence

from extman.core.models import (
    InstalledExtension,
    InstallOptions,
    InstallPlan,
    InstallRequest,
    PackageReference,
)
from extman.core.output import Output
from extman.core.reference import (
    are_same_extensions,
    is_package_location,
    normalize_id,
    parse_reference,
    to_package_path,
)

logger = logging.getLogger(__name__)


class InstallPlanner:
    """Decides which requested references need gallery installs.

    Attributes:
        installed: Installed-extension snapshot for the batch
        force: Whether --force was given
    """

    def __init__(self, installed: Sequence[InstalledExtension], force: bool, output: Output):
        self.installed = list(installed)
        self.force = force
        self.output = output

    def find_installed(self, identifier: str) -> InstalledExtension | None:
        for extension in self.installed:
            if are_same_extensions(extension.identifier, identifier):
                return extension
        return None

    def check_if_not_installed(self, identifier: str, version: str | None = None) -> bool:
        """Check whether a reference still needs work.

        Args:
            identifier: Extension identifier
            version: Requested version, if pinned

        Returns:
            False if the reference is already satisfied or needs --force
        """
        installed = self.find_installed(identifier)
        if installed is None:
            return True

        if not version and not self.force:
            self.output.log(
                f"Extension '{identifier}' v{installed.version} is already installed. "
                "Use '--force' option to update to latest version or provide "
                f"'@<version>' to install a specific version, for example: "
                f"'{identifier}@1.2.3'."
            )
            return False

        if version and installed.version == version:
            self.output.log(f"Extension '{identifier}@{version}' is already installed.")
            return False

        return True

    def plan(
        self,
        references: Sequence[str],
        builtin_references: Sequence[str] = (),
        is_machine_scoped: bool = False,
    ) -> InstallPlan:
        """Classify every requested reference.

        Args:
            references: User references (identifiers, identifier@version, package paths)
            builtin_references: Identifiers to install as builtin
            is_machine_scoped: Scope for user references

        Returns:
            InstallPlan with local packages and gallery requests
        """
        plan = InstallPlan()
        seen: set[tuple[str, str | None, InstallOptions]] = set()

        user_options = InstallOptions(is_builtin=False, is_machine_scoped=is_machine_scoped)
        builtin_options = InstallOptions(is_builtin=True, is_machine_scoped=False)

        candidates: list[tuple[str, InstallOptions]] = []
        for reference in references:
            if is_package_location(reference):
                plan.packages.append(PackageReference(reference, to_package_path(reference)))
            else:
                candidates.append((reference, user_options))
        candidates.extend((reference, builtin_options) for reference in builtin_references)

        for raw, options in candidates:
            reference = parse_reference(raw)
            if not self.check_if_not_installed(reference.identifier, reference.version):
                plan.skipped.append(str(reference))
                continue

            key = (normalize_id(reference.identifier), reference.version, options)
            if key in seen:
                logger.debug("Dropping duplicate request for %s", reference)
                continue
            seen.add(key)

            plan.requests.append(
                InstallRequest(
                    identifier=reference.identifier,
                    version=reference.version,
                    options=options,
                )
            )

        logger.debug(
            "Planned %d package install(s), %d gallery request(s), %d skipped",
            len(plan.packages),
            len(plan.requests),
            len(plan.skipped),
        )
        return plan
