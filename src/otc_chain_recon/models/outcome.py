"""Data models for reconciliation outcomes and run results."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from .chain import ChainObservation
from .ledger import LedgerGroup, LedgerRow


class Classification(Enum):
    """Primary classification of a ledger group. Exactly one per outcome."""

    OK = "OK"
    CORRECAO_PLANILHA = "CORRECAO_PLANILHA"  # matched, but ledger columns need fixing
    DIVERGENCIA_VALOR = "DIVERGENCIA_VALOR"
    HASH_NAO_ENCONTRADO = "HASH_NAO_ENCONTRADO"
    DUPLICIDADE = "DUPLICIDADE"


class OutcomeFlag(Enum):
    """Findings reported alongside the primary classification."""

    DIVERGENCIA_REDE_MOEDA = "DIVERGENCIA_REDE_MOEDA"
    CARTEIRA_DESTINO_NAO_CONFERE = "CARTEIRA_DESTINO_NAO_CONFERE"


@dataclass(frozen=True)
class ReconciliationOutcome:
    """Result of reconciling one ledger group against the chain."""

    group: LedgerGroup
    classification: Classification
    observation: Optional[ChainObservation] = None
    flags: tuple[OutcomeFlag, ...] = ()

    # Why no conclusive match was found
    reason: Optional[str] = None

    # How to fix the ledger
    remediation: Optional[str] = None
    network_currency_remediation: Optional[str] = None
    wallet_remediation: Optional[str] = None

    # True/False when a wallet registry could decide, None otherwise
    destination_wallet_ok: Optional[bool] = None

    # Second network that also matched during disambiguation
    alternate_observation: Optional[ChainObservation] = None

    checked_at: datetime = field(default_factory=datetime.now)

    @property
    def tx_hash(self) -> str:
        return self.group.tx_hash

    @property
    def ledger_amount(self) -> Decimal:
        return self.group.amount

    @property
    def chain_amount(self) -> Optional[Decimal]:
        return self.observation.amount if self.observation else None

    @property
    def amount_difference(self) -> Optional[Decimal]:
        """Ledger minus chain amount, when the chain amount is known."""
        if self.chain_amount is None:
            return None
        return self.ledger_amount - self.chain_amount

    @property
    def is_amount_match(self) -> bool:
        return self.classification in (
            Classification.OK,
            Classification.CORRECAO_PLANILHA,
        )

    @property
    def tags(self) -> list[str]:
        """Classification followed by every attached flag."""
        return [self.classification.value] + [f.value for f in self.flags]


@dataclass
class Inconsistency:
    """One actionable finding, flattened for display or export."""

    tx_hash: str
    kind: str
    clients: list[str] = field(default_factory=list)
    ledger_amount: Optional[Decimal] = None
    chain_amount: Optional[Decimal] = None
    reason: Optional[str] = None
    remediation: Optional[str] = None
    destination: Optional[str] = None
    row_numbers: list[int] = field(default_factory=list)


@dataclass
class ReconciliationRun:
    """Everything produced by one pass over a ledger."""

    outcomes: list[ReconciliationOutcome] = field(default_factory=list)
    rows_without_hash: list[LedgerRow] = field(default_factory=list)
    processing_time_seconds: float = 0.0


@dataclass
class ReconciliationSummary:
    """Summary of a reconciliation run."""

    total_hashes: int
    rows_without_hash: int
    counts_by_classification: dict[str, int] = field(default_factory=dict)
    counts_by_flag: dict[str, int] = field(default_factory=dict)
    ledger_total: Decimal = Decimal("0")
    chain_total: Decimal = Decimal("0")
    processing_time_seconds: float = 0.0

    @property
    def matched_count(self) -> int:
        return self.counts_by_classification.get(
            Classification.OK.value, 0
        ) + self.counts_by_classification.get(Classification.CORRECAO_PLANILHA.value, 0)

    @property
    def match_rate(self) -> float:
        """Percentage of hashes whose amount matched the chain."""
        if self.total_hashes == 0:
            return 0.0
        return (self.matched_count / self.total_hashes) * 100
