"""
Sequential reconciliation pipeline.

Hashes are checked one at a time with a fixed pause in between, keeping the
public explorers under their rate limits. A failure on one hash never stops
the run: it becomes a HASH_NAO_ENCONTRADO outcome with the error as reason.
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, Iterator, Optional
import logging
import time

from ..chain.clients import EtherscanClient, TronScanClient
from ..chain.identifiers import canonicalize_hash
from ..config import ReconConfig
from ..models.chain import ChainObservation
from ..models.ledger import LedgerGroup, LedgerRow
from ..models.outcome import (
    Classification,
    Inconsistency,
    OutcomeFlag,
    ReconciliationOutcome,
    ReconciliationRun,
    ReconciliationSummary,
)
from ..utils.exceptions import ExplorerError
from .classifier import ReconciliationClassifier
from .grouping import group_ledger_rows
from .resolver import MultiNetworkResolver, Resolution

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class ReconciliationEngine:
    """
    Main reconciliation engine that orchestrates the per-hash pipeline.

    The engine owns its explorer clients; close it (or use it as a context
    manager) to release their HTTP sessions.
    """

    def __init__(
        self,
        config: ReconConfig,
        tron_client: Optional[TronScanClient] = None,
        etherscan_client: Optional[EtherscanClient] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the reconciliation engine.

        Args:
            config: Application configuration
            tron_client: TRC20 client (built from config if omitted)
            etherscan_client: ERC20 client (built from config if omitted)
            sleep: Function used for every pause, injectable for tests
        """
        self.config = config
        self._sleep = sleep
        self.tron_client = tron_client or TronScanClient(config.networks.tron, sleep=sleep)
        self.etherscan_client = etherscan_client or EtherscanClient(
            config.networks.etherscan, sleep=sleep
        )

        tolerance = Decimal(str(config.matching.tolerance))
        self.delay_seconds = max(config.pipeline.delay_ms, 0) / 1000
        self.resolver = MultiNetworkResolver(
            self.tron_client,
            self.etherscan_client,
            tolerance=tolerance,
            delay_seconds=self.delay_seconds,
            sleep=sleep,
        )
        self.classifier = ReconciliationClassifier(tolerance=tolerance, wallets=config.wallets)

    def close(self) -> None:
        """Close both explorer clients."""
        self.tron_client.close()
        self.etherscan_client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def reconcile(
        self,
        rows: Iterable[LedgerRow],
        progress: Optional[ProgressCallback] = None,
    ) -> ReconciliationRun:
        """
        Reconcile ledger rows against the chain.

        Args:
            rows: Ledger rows in file order
            progress: Called with (completed, total) after each hash

        Returns:
            One outcome per distinct hash in first-seen order, plus the rows
            that had no hash
        """
        start_time = datetime.now()
        groups, rows_without_hash = group_ledger_rows(rows)

        duplicates = sum(1 for g in groups if g.is_duplicate)
        logger.info(
            f"Starting reconciliation: {len(groups)} distinct hashes, "
            f"{duplicates} duplicated across clients, {len(rows_without_hash)} rows without hash"
        )
        if self.classifier.wallets:
            logger.info(f"Destination wallet check active: {len(self.classifier.wallets)} client(s)")

        outcomes = list(self.iter_outcomes(groups, progress=progress))

        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(f"Reconciliation complete in {elapsed:.2f}s: {len(outcomes)} outcomes")

        return ReconciliationRun(
            outcomes=outcomes,
            rows_without_hash=rows_without_hash,
            processing_time_seconds=elapsed,
        )

    def iter_outcomes(
        self,
        groups: list[LedgerGroup],
        progress: Optional[ProgressCallback] = None,
    ) -> Iterator[ReconciliationOutcome]:
        """
        Yield one outcome per group, sequentially.

        Stop iterating to abandon the run; no further hash is queried.
        """
        total = len(groups)
        if progress:
            progress(0, total)
        if total and self.delay_seconds > 0:
            logger.info(f"Pausing {self.config.pipeline.delay_ms}ms between queries")

        for index, group in enumerate(groups):
            if index > 0 and self.delay_seconds > 0:
                self._sleep(self.delay_seconds)

            logger.info(
                f"[{index + 1}/{total}] Checking hash: "
                f"{canonicalize_hash(group.tx_hash).bare[:16]}..."
            )
            outcome = self.reconcile_group(group)
            self._log_outcome(outcome)

            if progress:
                progress(index + 1, total)
            yield outcome

    def reconcile_group(self, group: LedgerGroup) -> ReconciliationOutcome:
        """Resolve and classify a single group; any lookup failure becomes the reason."""
        try:
            resolution = self.resolver.resolve(group)
        except ExplorerError as e:
            logger.error(f"  -> Error: {e}")
            resolution = Resolution(reason=str(e))
        except Exception as e:
            logger.exception(f"  -> Unexpected error checking {group.tx_hash}: {e}")
            resolution = Resolution(reason=f"Unexpected error: {e}")
        return self.classifier.classify(group, resolution)

    def check_hash(
        self, tx_hash: str
    ) -> tuple[Optional[ChainObservation], Optional[ChainObservation]]:
        """
        Look up a single hash on both networks, without a ledger amount.

        Returns:
            Tuple of (TRC20 observation, ERC20 observation)
        """
        return self.resolver.query_both(canonicalize_hash(tx_hash))

    def _log_outcome(self, outcome: ReconciliationOutcome) -> None:
        if outcome.classification == Classification.HASH_NAO_ENCONTRADO:
            logger.info(f"  -> Not found: {outcome.reason}")
        elif outcome.observation is not None:
            logger.info(f"  -> {' + '.join(outcome.tags)} {outcome.observation.label}")

    def generate_summary(self, run: ReconciliationRun) -> ReconciliationSummary:
        """
        Generate a summary of the reconciliation results.

        Args:
            run: Completed reconciliation run

        Returns:
            Reconciliation summary object
        """
        by_classification: dict[str, int] = {}
        by_flag: dict[str, int] = {}
        for outcome in run.outcomes:
            key = outcome.classification.value
            by_classification[key] = by_classification.get(key, 0) + 1
            for flag in outcome.flags:
                by_flag[flag.value] = by_flag.get(flag.value, 0) + 1

        return ReconciliationSummary(
            total_hashes=len(run.outcomes),
            rows_without_hash=len(run.rows_without_hash),
            counts_by_classification=by_classification,
            counts_by_flag=by_flag,
            ledger_total=sum((o.ledger_amount for o in run.outcomes), Decimal("0")),
            chain_total=sum(
                (o.chain_amount for o in run.outcomes if o.chain_amount is not None),
                Decimal("0"),
            ),
            processing_time_seconds=run.processing_time_seconds,
        )


def list_inconsistencies(outcomes: Iterable[ReconciliationOutcome]) -> list[Inconsistency]:
    """
    Flatten outcomes into one item per actionable finding.

    An outcome may produce several items, e.g. a matched amount whose
    destination wallet belongs to another client.
    """
    items: list[Inconsistency] = []

    for outcome in outcomes:
        group = outcome.group
        base = dict(
            tx_hash=outcome.tx_hash,
            clients=list(group.clients),
            ledger_amount=outcome.ledger_amount,
            chain_amount=outcome.chain_amount,
        )

        if outcome.classification == Classification.DIVERGENCIA_VALOR:
            items.append(
                Inconsistency(
                    kind=Classification.DIVERGENCIA_VALOR.value,
                    reason=outcome.reason,
                    remediation=outcome.remediation,
                    **base,
                )
            )
        elif outcome.classification == Classification.HASH_NAO_ENCONTRADO:
            items.append(
                Inconsistency(
                    kind=Classification.HASH_NAO_ENCONTRADO.value,
                    reason=outcome.reason,
                    **base,
                )
            )
        elif outcome.classification == Classification.DUPLICIDADE:
            items.append(
                Inconsistency(
                    kind=Classification.DUPLICIDADE.value,
                    reason=f"Hash shared by clients: {', '.join(group.clients)}",
                    **base,
                )
            )
        elif outcome.is_amount_match and outcome.remediation:
            items.append(
                Inconsistency(
                    kind=outcome.classification.value,
                    remediation=outcome.remediation,
                    **base,
                )
            )

        if OutcomeFlag.CARTEIRA_DESTINO_NAO_CONFERE in outcome.flags:
            items.append(
                Inconsistency(
                    kind=OutcomeFlag.CARTEIRA_DESTINO_NAO_CONFERE.value,
                    remediation=outcome.wallet_remediation,
                    destination=outcome.observation.receiver if outcome.observation else None,
                    **base,
                )
            )

        if OutcomeFlag.DIVERGENCIA_REDE_MOEDA in outcome.flags:
            items.append(
                Inconsistency(
                    kind=OutcomeFlag.DIVERGENCIA_REDE_MOEDA.value,
                    remediation=outcome.network_currency_remediation,
                    row_numbers=group.row_numbers,
                    **base,
                )
            )

    return items
