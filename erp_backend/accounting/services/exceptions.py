# accounting/services/exceptions.py

"""
ACCOUNTING SERVICE ERRORS

Centralized domain errors for accounting services.
Views map every AccountingServiceError to HTTP 400.
"""


class AccountingServiceError(Exception):
    """Base exception for all accounting service failures."""


class AccountResolutionError(AccountingServiceError):
    """Raised when an expected account cannot be resolved."""


class JournalEntryCreationError(AccountingServiceError):
    """Raised when a journal entry cannot be created."""


class UnbalancedEntryError(JournalEntryCreationError):
    """Raised when total debits differ from total credits."""


class IdempotencyError(AccountingServiceError):
    """Raised on duplicate or retried accounting events."""


class JournalReversalError(AccountingServiceError):
    """Raised when a journal entry cannot be reversed."""
