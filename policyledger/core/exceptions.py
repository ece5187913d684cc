"""
PolicyLedger Exception Hierarchy

All exceptions inherit from PolicyLedgerError for easy catching.
Every error is a rejected operation: nothing is mutated before it is raised.
"""


class PolicyLedgerError(Exception):
    """Base exception for all PolicyLedger errors"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ValidationError(PolicyLedgerError):
    """Raised when input validation fails"""
    pass


class ConfigurationError(ValidationError):
    """Raised when initialization parameters are invalid"""
    pass


class NotFoundError(PolicyLedgerError):
    """Raised when a policy or claim id is unknown"""
    pass


class ClaimIndexError(NotFoundError, IndexError):
    """Raised when a claim id is out of range for its policy"""
    pass


class AuthorizationError(PolicyLedgerError):
    """Raised when the caller is not the required principal"""
    pass


class AlreadyPurchasedError(PolicyLedgerError):
    """Raised when a principal buys the same policy twice"""
    pass


class DuplicateClaimError(PolicyLedgerError):
    """Raised when a policy already carries a claim record"""
    pass


class InsufficientFundsError(PolicyLedgerError):
    """Raised when attached funds do not cover the required amount"""
    pass


class TransferError(InsufficientFundsError):
    """Raised when the fund transfer sink rejects a transfer batch"""
    pass


class AlreadySettledError(PolicyLedgerError):
    """Raised when settling a claim that is already settled"""
    pass


class LedgerError(PolicyLedgerError):
    """Raised when journal operations fail"""
    pass
