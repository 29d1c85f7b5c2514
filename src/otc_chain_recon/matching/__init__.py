"""Resolution, classification and the reconciliation pipeline."""

from .classifier import ReconciliationClassifier
from .engine import ReconciliationEngine, list_inconsistencies
from .grouping import group_ledger_rows
from .resolver import MultiNetworkResolver, Resolution, amounts_match

__all__ = [
    "ReconciliationClassifier",
    "ReconciliationEngine",
    "list_inconsistencies",
    "group_ledger_rows",
    "MultiNetworkResolver",
    "Resolution",
    "amounts_match",
]
