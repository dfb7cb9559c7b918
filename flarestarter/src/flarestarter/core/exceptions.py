"""Exception hierarchy shared by all flarestarter tools"""

from typing import Optional


class FlareStarterError(Exception):
    """Base exception class for flarestarter operations."""
    pass


class ConfigurationError(FlareStarterError):
    """Missing or invalid configuration (env vars, network, addresses)."""
    pass


class ContractNotFoundError(FlareStarterError):
    """Artifact, deployment record or registry entry could not be found."""
    pass


class TransactionError(FlareStarterError):
    """Exception for transaction-related errors."""
    def __init__(self, message: str, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash


class InsufficientBalanceError(FlareStarterError):
    """Account does not hold enough tokens for the requested operation."""
    def __init__(self, message: str, required: int = 0, available: int = 0):
        super().__init__(message)
        self.required = required
        self.available = available


class AttestationError(FlareStarterError):
    """Verifier or DA layer request failed."""
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class PaymentError(FlareStarterError):
    """x402 payment could not be verified or settled."""
    pass
