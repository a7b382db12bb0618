"""
Exceptions raised across the paste store boundary.

Missing, expired and view-exhausted pastes are expected outcomes and are
returned as NotFound values (see pastebox.results), not raised.
"""


class PasteError(Exception):
    """Base class for paste store errors."""


class PasteValidationError(PasteError):
    """Raised when create() input violates a constraint. Not retryable."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class StorageError(PasteError):
    """Raised when the durable store is unreachable or an operation failed.

    The mutation either fully committed or did not happen at all. Retrying
    is left to the caller.
    """
