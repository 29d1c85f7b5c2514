"""Data models for OTC ledger rows and their per-hash groups."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from .chain import Currency, normalize_currency, normalize_network


@dataclass(frozen=True)
class LedgerRow:
    """One row of the OTC desk ledger."""

    client: str
    amount: Decimal
    tx_hash: Optional[str] = None
    network: Optional[str] = None
    currency: Optional[str] = None

    # 1-based row number in the source file, for remediation messages
    row_number: Optional[int] = None

    @property
    def network_currency_key(self) -> str:
        """Combination used to detect rows of one hash that disagree."""
        network = normalize_network(self.network) or "(empty)"
        currency = normalize_currency(self.currency)
        return f"{network}|{currency.value if currency else '(empty)'}"


@dataclass(frozen=True)
class LedgerGroup:
    """
    All ledger rows sharing one transaction hash.

    The group is the reconciliation unit: its amount is the sum of every
    member row, computed when the group is built and never afterwards.
    """

    tx_hash: str
    rows: tuple[LedgerRow, ...]
    clients: tuple[str, ...]
    amount: Decimal
    network: Optional[str] = None
    currency: Optional[str] = None
    network_currency_conflict: bool = False

    @property
    def is_duplicate(self) -> bool:
        """True when more than one distinct client references the hash."""
        return len(self.clients) > 1

    @property
    def declared_network(self) -> Optional[str]:
        return normalize_network(self.network)

    @property
    def declared_currency(self) -> Optional[Currency]:
        return normalize_currency(self.currency)

    @property
    def row_numbers(self) -> list[int]:
        return [r.row_number for r in self.rows if r.row_number is not None]


@dataclass
class LedgerLoad:
    """Rows read from a ledger file, split on whether they carry a hash."""

    rows: list[LedgerRow] = field(default_factory=list)
    rows_without_hash: list[LedgerRow] = field(default_factory=list)
