"""
Domain exceptions for the billing app.

Every error is recovered at the action that raised it:
- ValidationError: user-correctable input problems (missing field, bad number).
- StoreError: the store rejected or failed a request (generic message).
- ReferentialIntegrityError: delete blocked because other records reference the row.
- RecordNotFoundError: unknown id.
- ImportFileError: uploaded import file could not be read.
"""

from __future__ import annotations


class BillingError(Exception):
    """Base exception for billing errors."""
    pass


class ValidationError(BillingError):
    """Raised when user input is missing or cannot be parsed."""
    pass


class StoreError(BillingError):
    """Raised when a store request fails."""

    default_message = "The request could not be completed. Please try again."

    def __init__(self, message: str | None = None, details: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details


class ReferentialIntegrityError(StoreError):
    """Raised when deleting a record that other records still reference."""

    default_message = "This record is still in use and cannot be deleted."


class RecordNotFoundError(StoreError):
    """Raised when the requested record does not exist."""

    default_message = "Record not found."


class ImportFileError(BillingError):
    """Raised when an import file is unreadable or has an unsupported format."""
    pass
