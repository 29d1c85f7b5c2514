"""
Classification of a resolved ledger group.

The primary classification is decided in order: duplicate clients, missing
hash, then amount comparison. Network/currency disagreements between rows and
destination wallet mismatches are attached as flags next to it.
"""

from decimal import Decimal
from typing import Iterable, Mapping, Optional
import logging

from ..chain.identifiers import normalize_address
from ..models.chain import ChainObservation
from ..models.ledger import LedgerGroup
from ..models.outcome import Classification, OutcomeFlag, ReconciliationOutcome
from .remediation import (
    NETWORK_CURRENCY_CONFLICT,
    NOT_FOUND_REASON,
    describe_ledger_correction,
    wallet_mismatch_message,
)
from .resolver import Resolution, amounts_match

logger = logging.getLogger(__name__)


class ReconciliationClassifier:
    """Turns a ledger group and its resolution into a reconciliation outcome."""

    def __init__(
        self,
        tolerance: Decimal = Decimal("0.01"),
        wallets: Optional[Mapping[str, Iterable[str]]] = None,
    ):
        """
        Initialize the classifier.

        Args:
            tolerance: Maximum amount difference treated as rounding
            wallets: Optional registry of client name to wallet addresses
        """
        self.tolerance = tolerance
        self.wallets: dict[str, set[str]] = {
            name.strip().upper(): {normalize_address(a) for a in addresses}
            for name, addresses in (wallets or {}).items()
        }
        self._display_names = {name.strip().upper(): name for name in (wallets or {})}

    def classify(self, group: LedgerGroup, resolution: Resolution) -> ReconciliationOutcome:
        """Classify one ledger group."""
        observation = resolution.observation
        remediation = resolution.remediation
        reason = resolution.reason

        if group.is_duplicate:
            classification = Classification.DUPLICIDADE
        elif observation is None:
            classification = Classification.HASH_NAO_ENCONTRADO
            reason = reason or NOT_FOUND_REASON
        elif amounts_match(group.amount, observation.amount, self.tolerance):
            classification = Classification.OK
            correction = describe_ledger_correction(
                group, observation.network, observation.currency
            )
            if correction:
                classification = Classification.CORRECAO_PLANILHA
                remediation = remediation or correction
        else:
            classification = Classification.DIVERGENCIA_VALOR
            if observation.amount is None:
                reason = "The on-chain amount could not be determined."

        flags: list[OutcomeFlag] = []
        network_currency_remediation = None
        if group.network_currency_conflict:
            flags.append(OutcomeFlag.DIVERGENCIA_REDE_MOEDA)
            network_currency_remediation = NETWORK_CURRENCY_CONFLICT

        wallet_ok, wallet_remediation = self.check_destination(group, observation)
        if wallet_ok is False:
            flags.append(OutcomeFlag.CARTEIRA_DESTINO_NAO_CONFERE)

        return ReconciliationOutcome(
            group=group,
            classification=classification,
            observation=observation,
            flags=tuple(flags),
            reason=reason,
            remediation=remediation,
            network_currency_remediation=network_currency_remediation,
            wallet_remediation=wallet_remediation,
            destination_wallet_ok=wallet_ok,
            alternate_observation=resolution.alternate,
        )

    def check_destination(
        self, group: LedgerGroup, observation: Optional[ChainObservation]
    ) -> tuple[Optional[bool], Optional[str]]:
        """
        Check the on-chain destination against the clients' registered wallets.

        Returns (None, None) when no verdict is possible: no registry, no
        destination, or no wallet registered for the ledger's clients.
        """
        if not self.wallets or observation is None or not observation.receiver:
            return None, None

        ledger_clients = {c.strip().upper() for c in group.clients}
        registered: set[str] = set()
        for client in ledger_clients:
            registered |= self.wallets.get(client, set())
        if not registered:
            return None, None

        destination = normalize_address(observation.receiver)
        if destination in registered:
            logger.debug(f"  -> Destination wallet OK: {observation.receiver}")
            return True, None

        owner = next(
            (
                self._display_names[key]
                for key, addresses in self.wallets.items()
                if key not in ledger_clients and destination in addresses
            ),
            None,
        )
        logger.info(
            f"  -> Destination wallet mismatch: {observation.receiver}"
            + (f" belongs to {owner}" if owner else "")
        )
        return False, wallet_mismatch_message(group, observation.receiver, owner)
