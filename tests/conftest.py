from decimal import Decimal
from typing import Optional

import pytest

from otc_chain_recon.config import ReconConfig
from otc_chain_recon.matching.grouping import group_ledger_rows
from otc_chain_recon.models.chain import ChainObservation, Currency, Network, TransactionState
from otc_chain_recon.models.ledger import LedgerRow

from tests.helpers import RECEIVER, SENDER, TX_HASH


@pytest.fixture
def sleeps() -> list:
    return []


@pytest.fixture
def config() -> ReconConfig:
    cfg = ReconConfig()
    cfg.networks.etherscan.api_key = "test-key"
    return cfg


@pytest.fixture
def make_row():
    def _make(
        client: str = "ACME",
        amount: str = "100",
        tx_hash: Optional[str] = TX_HASH,
        network: Optional[str] = None,
        currency: Optional[str] = None,
        row_number: Optional[int] = None,
    ) -> LedgerRow:
        return LedgerRow(
            client=client,
            amount=Decimal(amount),
            tx_hash=tx_hash,
            network=network,
            currency=currency,
            row_number=row_number,
        )

    return _make


@pytest.fixture
def make_group(make_row):
    def _make(*rows: LedgerRow, **row_kwargs):
        if not rows:
            rows = (make_row(**row_kwargs),)
        groups, _ = group_ledger_rows(rows)
        return groups[0]

    return _make


@pytest.fixture
def make_observation():
    def _make(
        amount: Optional[str] = "100",
        network: Network = Network.TRC20,
        currency: Currency = Currency.USDT,
        receiver: Optional[str] = RECEIVER,
    ) -> ChainObservation:
        return ChainObservation(
            state=TransactionState.SUCCESSFUL,
            network=network,
            amount=Decimal(amount) if amount is not None else None,
            currency=currency,
            sender=SENDER,
            receiver=receiver,
        )

    return _make
