# bills/services/exceptions.py


class BillServiceError(Exception):
    """Base exception for bill workflows."""


class BillNotFoundError(BillServiceError):
    """Bill does not exist."""


class BillValidationError(BillServiceError):
    """Invalid input, state or transition for a bill operation."""
