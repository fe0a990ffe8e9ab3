"""
Exception hierarchy for archview.

Data-integrity violations raise immediately. External-operation failures
are carried as values (see result.py) and reported through callbacks.
"""

from typing import Optional


class ArchviewError(Exception):
    """Base class for all archview errors."""


class GraphIntegrityError(ArchviewError):
    """
    Raised when the graph references an item that does not exist.

    Attributes:
        message: Human-readable error message.
        item_id: The id of the missing or inconsistent item, if known.
    """

    def __init__(self, message: str, item_id: Optional[str] = None):
        self.message = message
        self.item_id = item_id
        super().__init__(message)


class UnknownActionError(ArchviewError):
    """Raised when the reducer receives an action it does not handle."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Unknown action: {action}")


class DateFilterError(ArchviewError, ValueError):
    """Raised when a date filter is malformed."""


class ApiError(ArchviewError):
    """
    Raised (or returned in an Err) when an API call fails.

    Attributes:
        message: Response body or transport error text.
        status: HTTP status code, or None for transport failures.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        self.message = message
        self.status = status
        super().__init__(message)


class AccountUnreachableError(ApiError):
    """Raised when the dataset for an account cannot be fetched."""

    def __init__(self, account_id: str, message: str, status: Optional[int] = None):
        self.account_id = account_id
        super().__init__(f"Account {account_id} unreachable: {message}", status=status)
