"""Custom exception hierarchy for kbase.

Exception Hierarchy:
    KbError (base)
    ├── NotFoundError - id or slug has no matching row
    ├── VersionConflictError - optimistic-concurrency violation
    ├── InvalidInputError - malformed caller input
    ├── StorageError - SQLite failure (constraint, I/O, lock timeout)
    └── EditSessionIOError - scratch file or terminal I/O

Store functions raise these instead of returning error values. ``sqlite3``
exceptions never escape the database package; they are wrapped in
``StorageError`` with the original chained as ``__cause__``.

Usage:
    from kbase.exceptions import VersionConflictError

    try:
        update_document(db, doc_id, content=text, expected_version=3)
    except VersionConflictError as e:
        print(f"lost the race: now at version {e.actual}")
"""

from typing import Any, Optional


class KbError(Exception):
    """Base exception for all kbase errors.

    Attributes:
        message: Human-readable error description
        context: Additional context about the error (e.g., IDs, paths)
    """

    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with context."""
        if self.context:
            context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class NotFoundError(KbError):
    """Raised when an id or slug has no matching row."""

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class VersionConflictError(KbError):
    """Raised when a version-checked write loses to a competing writer.

    ``actual`` is the version read after the failed write, so it reflects
    whichever writer won.
    """

    def __init__(self, expected: int, actual: int, *, document_id: Optional[str] = None) -> None:
        self.expected = expected
        self.actual = actual
        self.document_id = document_id
        super().__init__(
            f"Version conflict: expected {expected}, but current version is {actual}"
        )


class InvalidInputError(KbError):
    """Raised for malformed caller input, e.g. unparseable sections."""

    pass


class StorageError(KbError):
    """Raised when SQLite rejects an operation.

    Covers constraint violations, I/O failures and lock contention that
    outlasted the busy timeout. The operation has been rolled back.
    """

    def __init__(self, message: str = "Storage operation failed", **context: Any) -> None:
        super().__init__(message, **context)


class EditSessionIOError(KbError):
    """Raised when the scratch file or terminal cannot be read or written."""

    def __init__(
        self,
        message: str = "Edit session I/O failed",
        *,
        path: Optional[str] = None,
        **context: Any,
    ) -> None:
        if path:
            context["path"] = path
        super().__init__(message, **context)
