"""Exceptions raised by the watcher engine and its collaborators."""

from __future__ import annotations


class VigilError(Exception):
    """Base class for all VIGIL errors."""

    pass


class StorageError(VigilError):
    """Raised when watcher storage cannot be read."""

    pass


class StorageNotFoundError(StorageError):
    """Raised when the watcher index (or file) does not exist yet."""

    pass


class SearchError(VigilError):
    """Raised when a watcher search request fails."""

    pass


class RecurrenceError(VigilError):
    """Raised when a recurrence phrase cannot be parsed."""

    pass


class ScriptEvaluationError(VigilError):
    """Raised when a condition or transform script fails."""

    def __init__(self, expression: str, cause: BaseException) -> None:
        self.expression = expression
        self.cause = cause
        super().__init__(f"{type(cause).__name__}: {cause}")
