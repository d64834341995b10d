"""Exception types raised by the repair path and collaborator seams."""

from __future__ import annotations


class BootHealthError(RuntimeError):
    """Base class; ``state`` carries diagnostics for the result log."""

    def __init__(self, message: str, *, state: dict | None = None) -> None:
        super().__init__(message)
        self.state = state or {}


class BackupError(BootHealthError):
    """Raised when the table backup cannot be created. Always fatal."""


class RewriteError(BootHealthError):
    """Raised when the new table content cannot be built or swapped in."""


class CollaboratorError(BootHealthError):
    """Raised when an external boot tool reports failure."""
