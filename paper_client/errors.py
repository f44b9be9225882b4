"""
Error Taxonomy
Every failure here is scoped to one session or view; none is fatal to the process.
"""
from typing import Optional


class PaperClientError(Exception):
    """Base class for client-side failures."""


class RuleValidationError(PaperClientError, ValueError):
    """A generation rule set is invalid and cannot be submitted."""


class FetchError(PaperClientError):
    """Retrieving data from the backend failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class DeleteError(FetchError):
    """The backend refused or failed a delete."""


class PaperNotReadyError(PaperClientError):
    """Print was requested before the paper finished loading."""


class DataIntegrityWarning(UserWarning):
    """Recoverable inconsistency in backend data, e.g. duplicate answer-key entries."""
