"""Error types for extension management.

Every condition the core reports carries an ``ErrorKind`` so callers can
dispatch with ``match`` instead of inspecting exception classes.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from extman.core.models import BatchOutcome

USE_ID_HINT = (
    "Make sure you use the full extension ID, including the publisher, "
    "e.g.: ms-python.python"
)


class ErrorKind(Enum):
    """Discriminator for extension management conditions."""

    CANCELLED = "cancelled"
    NOT_FOUND = "not-found"
    ALREADY_INSTALLED = "already-installed"
    DOWNGRADED = "downgraded"
    INSTALL_FAILED = "install-failed"
    NOT_INSTALLED = "not-installed"
    PROTECTED = "protected"
    INVALID_PACKAGE = "invalid-package"


class ExtensionError(Exception):
    """Error raised by the core or by a store/gallery collaborator."""

    def __init__(self, kind: ErrorKind, message: str, identifier: str | None = None):
        self.kind = kind
        self.identifier = identifier
        super().__init__(message)

    @classmethod
    def cancelled(cls, identifier: str | None = None) -> ExtensionError:
        return cls(ErrorKind.CANCELLED, "Operation cancelled", identifier)

    @classmethod
    def not_installed(cls, identifier: str) -> ExtensionError:
        return cls(
            ErrorKind.NOT_INSTALLED,
            f"Extension '{identifier}' is not installed.\n{USE_ID_HINT}",
            identifier,
        )


def not_found_message(label: str) -> str:
    return f"Extension '{label}' not found.\n{USE_ID_HINT}"


class BatchInstallError(Exception):
    """Aggregate error for an install batch with failed items.

    The outcome still holds every manifest that was installed successfully.
    """

    def __init__(self, failed: list[str], outcome: BatchOutcome | None = None):
        self.failed = failed
        self.outcome = outcome
        super().__init__(f"Failed Installing Extensions: {', '.join(failed)}")


class BatchUninstallError(Exception):
    """Aggregate error for an uninstall batch with failed items."""

    def __init__(self, failed: list[str]):
        self.failed = failed
        super().__init__(f"Failed Uninstalling Extensions: {', '.join(failed)}")
