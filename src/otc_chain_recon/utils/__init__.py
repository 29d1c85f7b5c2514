"""Utility modules."""

from .exceptions import (
    ReconciliationError,
    LedgerParseError,
    ConfigurationError,
    ExplorerError,
    RateLimitExceededError,
)
from .logging_config import setup_logging

__all__ = [
    "ReconciliationError",
    "LedgerParseError",
    "ConfigurationError",
    "ExplorerError",
    "RateLimitExceededError",
    "setup_logging",
]
