"""
Multi-network resolution of a ledger hash.

The ledger's declared network picks which explorer is asked first. When the
first answer does not match the ledger amount, both explorers are queried
concurrently and the network whose amount matches is accepted.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional
import logging
import time

from ..chain.clients import EtherscanClient, ExplorerClient, TronScanClient
from ..chain.identifiers import CanonicalHash, canonicalize_hash
from ..models.chain import ChainObservation, Network
from ..models.ledger import LedgerGroup
from ..utils.exceptions import ExplorerError, RateLimitExceededError
from .remediation import (
    AMOUNT_MISMATCH_BOTH_NETWORKS,
    NOT_FOUND_REASON,
    both_networks_message,
    other_network_message,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """What the chain says about one ledger group."""

    observation: Optional[ChainObservation] = None

    # Other network that also matched, when both did
    alternate: Optional[ChainObservation] = None
    remediation: Optional[str] = None
    reason: Optional[str] = None


def amounts_match(
    ledger_amount: Decimal, chain_amount: Optional[Decimal], tolerance: Decimal
) -> bool:
    """True when the chain amount is known and within tolerance of the ledger."""
    if chain_amount is None:
        return False
    return abs(ledger_amount - chain_amount) <= tolerance


class MultiNetworkResolver:
    """Decides which network a ledger hash actually settled on."""

    def __init__(
        self,
        tron_client: TronScanClient,
        etherscan_client: EtherscanClient,
        tolerance: Decimal = Decimal("0.01"),
        delay_seconds: float = 1.2,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the resolver.

        Args:
            tron_client: TRC20 explorer client
            etherscan_client: ERC20 explorer client
            tolerance: Maximum amount difference still considered a match
            delay_seconds: Pause before the disambiguation queries
            sleep: Function used for the pause
        """
        self.tron_client = tron_client
        self.etherscan_client = etherscan_client
        self.tolerance = tolerance
        self.delay_seconds = delay_seconds
        self._sleep = sleep

    def resolve(self, group: LedgerGroup) -> Resolution:
        """Resolve a ledger group to a chain observation, disambiguating if needed."""
        tx_hash = canonicalize_hash(group.tx_hash)
        errors: list[str] = []

        first = self.first_choice(tx_hash, group.declared_network, errors)
        if first is not None and amounts_match(group.amount, first.amount, self.tolerance):
            return Resolution(observation=first)

        if first is None:
            logger.info("  -> Not found on the first-choice network, querying both networks")
        else:
            logger.info(
                f"  -> {first.label} does not match ledger amount {group.amount}, "
                "querying both networks"
            )
        if self.delay_seconds > 0:
            self._sleep(self.delay_seconds)

        tron, ethereum = self.query_both(tx_hash, errors)
        logger.info(
            f"  -> TRC20: {tron.amount if tron else None}, "
            f"ERC20: {ethereum.amount if ethereum else None}, ledger: {group.amount}"
        )
        return self._disambiguate(group, first, tron, ethereum, errors)

    def first_choice(
        self,
        tx_hash: CanonicalHash,
        declared_network: Optional[str] = None,
        errors: Optional[list[str]] = None,
    ) -> Optional[ChainObservation]:
        """
        Query the declared network first and fall back to the other one.

        ERC20 is only used as a fallback for well-formed hashes and when an
        Etherscan API key is configured.
        """
        errors = errors if errors is not None else []

        if declared_network == Network.ERC20.value:
            observation = self._safe_lookup(self.etherscan_client, tx_hash, errors)
            if observation is None:
                observation = self._safe_lookup(self.tron_client, tx_hash, errors)
            return observation

        observation = self._safe_lookup(self.tron_client, tx_hash, errors)
        if observation is None and tx_hash.is_well_formed:
            observation = self._safe_lookup(self.etherscan_client, tx_hash, errors)
        return observation

    def query_both(
        self, tx_hash: CanonicalHash, errors: Optional[list[str]] = None
    ) -> tuple[Optional[ChainObservation], Optional[ChainObservation]]:
        """Query TRC20 and ERC20 concurrently; returns (tron, ethereum)."""
        errors = errors if errors is not None else []

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="disambiguate") as pool:
            tron_future = pool.submit(self._safe_lookup, self.tron_client, tx_hash, errors)
            if tx_hash.is_well_formed:
                eth_future = pool.submit(
                    self._safe_lookup, self.etherscan_client, tx_hash, errors
                )
            else:
                eth_future = None
            tron = tron_future.result()
            ethereum = eth_future.result() if eth_future else None

        return tron, ethereum

    def _disambiguate(
        self,
        group: LedgerGroup,
        first: Optional[ChainObservation],
        tron: Optional[ChainObservation],
        ethereum: Optional[ChainObservation],
        errors: list[str],
    ) -> Resolution:
        tron_ok = tron is not None and amounts_match(group.amount, tron.amount, self.tolerance)
        eth_ok = ethereum is not None and amounts_match(
            group.amount, ethereum.amount, self.tolerance
        )
        logger.info(f"  -> Match TRC20: {tron_ok}, match ERC20: {eth_ok}")

        if tron_ok and eth_ok:
            return Resolution(
                observation=tron,
                alternate=ethereum,
                remediation=both_networks_message(group, tron),
            )
        if tron_ok or eth_ok:
            accepted = tron if tron_ok else ethereum
            logger.info(f"  -> Found on the other network: {accepted.label}")
            return Resolution(
                observation=accepted,
                remediation=other_network_message(group, accepted),
            )

        observation = first or tron or ethereum
        if observation is None:
            reason = NOT_FOUND_REASON
            if errors:
                reason = f"{reason} {'; '.join(dict.fromkeys(errors))}"
            return Resolution(reason=reason)

        return Resolution(observation=observation, remediation=AMOUNT_MISMATCH_BOTH_NETWORKS)

    @staticmethod
    def _safe_lookup(
        client: ExplorerClient, tx_hash: CanonicalHash, errors: list[str]
    ) -> Optional[ChainObservation]:
        """Look up on one network, recording failures instead of raising them."""
        if not client.enabled:
            return None
        try:
            return client.lookup(tx_hash)
        except RateLimitExceededError as e:
            logger.warning(f"  -> {client.name} rate limit exhausted: {e}")
            errors.append(str(e))
        except ExplorerError as e:
            logger.error(f"  -> {client.name} request failed: {e}")
            errors.append(str(e))
        return None
