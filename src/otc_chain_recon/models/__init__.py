"""Data models for reconciliation."""

from .chain import (
    ChainObservation,
    Currency,
    Network,
    TransactionState,
    normalize_currency,
    normalize_network,
)
from .ledger import LedgerGroup, LedgerLoad, LedgerRow
from .outcome import (
    Classification,
    Inconsistency,
    OutcomeFlag,
    ReconciliationOutcome,
    ReconciliationRun,
    ReconciliationSummary,
)

__all__ = [
    "ChainObservation",
    "Currency",
    "Network",
    "TransactionState",
    "normalize_currency",
    "normalize_network",
    "LedgerGroup",
    "LedgerLoad",
    "LedgerRow",
    "Classification",
    "Inconsistency",
    "OutcomeFlag",
    "ReconciliationOutcome",
    "ReconciliationRun",
    "ReconciliationSummary",
]
