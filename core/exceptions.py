"""
Custom exceptions for the ledger engine.
Validation and not-found errors surface to the caller; sync errors are logged.
"""


class LedgerBaseException(Exception):
    """Base exception for all ledger errors"""
    def __init__(self, message, error_code=None, context=None):
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        super().__init__(message)


class LedgerValidationError(LedgerBaseException):
    """Input rejected before any write was attempted"""
    pass


class SplitValidationError(LedgerValidationError):
    """Split or unsplit request is not allowed for this transaction"""
    pass


class TransactionNotFound(LedgerBaseException):
    """Referenced transaction does not exist"""
    pass
