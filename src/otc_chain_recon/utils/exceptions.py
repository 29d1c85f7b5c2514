"""Custom exceptions for the reconciliation application."""

from typing import Optional


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class LedgerParseError(ReconciliationError):
    """Error parsing the OTC ledger file."""

    pass


class ConfigurationError(ReconciliationError):
    """Error in configuration."""

    pass


class ExplorerError(ReconciliationError):
    """Transport or server error talking to a blockchain explorer API."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitExceededError(ExplorerError):
    """Explorer kept answering HTTP 429 after all retries."""

    pass
