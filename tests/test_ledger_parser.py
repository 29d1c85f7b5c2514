from decimal import Decimal

import pandas as pd
import pytest

from otc_chain_recon.config import ReconConfig
from otc_chain_recon.parsers.ledger_parser import LedgerParser, parse_amount
from otc_chain_recon.utils.exceptions import LedgerParseError

from tests.helpers import TX_HASH


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("52.097,7", Decimal("52097.7")),
        ("52097.7", Decimal("52097.7")),
        ("1.234.567", Decimal("1234567")),
        ("1.234.567,89", Decimal("1234567.89")),
        ("$ 100", Decimal("100")),
        (250, Decimal("250")),
        (12.5, Decimal("12.5")),
        ("", Decimal("0")),
        (None, Decimal("0")),
        (float("nan"), Decimal("0")),
        ("n/a", Decimal("0")),
    ],
)
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


@pytest.fixture
def parser():
    return LedgerParser(ReconConfig())


def test_parse_csv_file(parser, tmp_path):
    ledger = tmp_path / "ledger.csv"
    ledger.write_text(
        "Cliente,Valor ME,Hash,Rede,Moeda\n"
        f'ACME,"52.097,7",0x{TX_HASH.upper()},TRC20,USDT\n'
        "Globex,100,,ERC20,USDC\n"
        ",,,,\n",
        encoding="utf-8",
    )

    load = parser.parse_file(ledger)

    assert len(load.rows) == 1
    row = load.rows[0]
    assert row.client == "ACME"
    assert row.amount == Decimal("52097.7")
    assert row.tx_hash == "0x" + TX_HASH
    assert row.network == "TRC20"
    assert row.currency == "USDT"
    assert row.row_number == 2

    assert [r.client for r in load.rows_without_hash] == ["Globex"]
    assert load.rows_without_hash[0].row_number == 3


def test_headers_match_ignoring_case_and_spacing(parser):
    df = pd.DataFrame({"cliente": ["ACME"], " Valor  ME ": ["10"], "HASH": [TX_HASH]})

    load = parser.parse_dataframe(df)

    assert load.rows[0].amount == Decimal("10")
    assert load.rows[0].network is None
    assert load.rows[0].currency is None


def test_custom_column_mappings():
    config = ReconConfig()
    config.input.ledger.column_mappings.update({"client": "Customer", "amount": "Amount"})
    df = pd.DataFrame({"Customer": ["ACME"], "Amount": ["10"], "Hash": [TX_HASH]})

    load = LedgerParser(config).parse_dataframe(df)

    assert load.rows[0].client == "ACME"


def test_missing_required_column_raises(parser):
    df = pd.DataFrame({"Cliente": ["ACME"], "Valor ME": ["10"]})

    with pytest.raises(LedgerParseError, match="Hash"):
        parser.parse_dataframe(df)


def test_unreadable_file_raises(parser, tmp_path):
    with pytest.raises(LedgerParseError):
        parser.parse_file(tmp_path / "missing.csv")
