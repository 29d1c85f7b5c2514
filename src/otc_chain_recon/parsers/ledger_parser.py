"""
OTC ledger parser.
Reads CSV or Excel ledgers and converts rows to ledger row models.
"""

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional
import logging
import re

import pandas as pd

from ..config import ReconConfig
from ..models.ledger import LedgerLoad, LedgerRow
from ..utils.exceptions import LedgerParseError

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}

REQUIRED_COLUMNS = ("client", "amount", "tx_hash")

_US_DECIMAL = re.compile(r"^[^.]*\.\d{1,3}$")


def parse_amount(value: Any) -> Decimal:
    """
    Parse a ledger amount written in Brazilian or US notation.

    ``52.097,7`` and ``52097.7`` both give 52097.7. A single dot followed by
    one to three digits is a decimal point; other dots are thousands
    separators. Unparseable values give zero.
    """
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return Decimal("0")
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return Decimal(str(value))

    text = str(value).strip().replace("$", "").replace(" ", "")
    if not text:
        return Decimal("0")

    if "," in text:
        text = text.replace(".", "").replace(",", ".")
    elif not _US_DECIMAL.match(text):
        text = text.replace(".", "")

    try:
        return Decimal(text)
    except InvalidOperation:
        return Decimal("0")


class LedgerParser:
    """
    Parser for OTC desk ledgers exported as CSV or Excel.

    Column names come from the configured mappings; only client, amount
    and hash are required.
    """

    def __init__(self, config: ReconConfig):
        """
        Initialize the parser with configuration.

        Args:
            config: Application configuration object
        """
        self.config = config
        self.ledger_config = config.input.ledger
        self.column_mappings = self.ledger_config.column_mappings

    def parse_file(self, file_path: Path) -> LedgerLoad:
        """
        Parse a ledger file.

        Args:
            file_path: Path to the CSV or Excel file

        Returns:
            Rows with a hash and rows without one

        Raises:
            LedgerParseError: If the file cannot be read or lacks required columns
        """
        logger.info(f"Parsing ledger file: {file_path}")

        try:
            if file_path.suffix.lower() in EXCEL_SUFFIXES:
                df = pd.read_excel(
                    file_path,
                    sheet_name=self.ledger_config.sheet_name or 0,
                    dtype=object,
                )
            else:
                df = pd.read_csv(
                    file_path,
                    encoding=self.ledger_config.encoding,
                    delimiter=self.ledger_config.delimiter,
                    dtype=object,
                )
        except Exception as e:
            logger.error(f"Failed to read ledger file: {e}")
            raise LedgerParseError(f"Failed to read ledger file: {e}") from e

        load = self.parse_dataframe(df)
        logger.info(
            f"Ledger loaded: {len(load.rows)} rows with hash, "
            f"{len(load.rows_without_hash)} without hash"
        )
        return load

    def parse_dataframe(self, df: pd.DataFrame) -> LedgerLoad:
        """
        Convert DataFrame rows to ledger rows.

        Args:
            df: Pandas DataFrame with a header row

        Returns:
            Rows with a hash and rows without one
        """
        columns = self._resolve_columns(df)
        load = LedgerLoad()

        for idx, row in df.iterrows():
            # Header is file row 1
            row_number = int(idx) + 2
            client = self._text(self._cell(row, columns["client"]))
            amount = parse_amount(self._cell(row, columns["amount"]))
            tx_hash = self._text(self._cell(row, columns["tx_hash"]))

            ledger_row = LedgerRow(
                client=client or "",
                amount=amount,
                tx_hash=tx_hash.lower() if tx_hash else None,
                network=self._text(self._cell(row, columns.get("network"))),
                currency=self._text(self._cell(row, columns.get("currency"))),
                row_number=row_number,
            )

            if tx_hash:
                load.rows.append(ledger_row)
            elif client or amount:
                load.rows_without_hash.append(ledger_row)

        return load

    def _resolve_columns(self, df: pd.DataFrame) -> dict[str, Optional[str]]:
        """Match configured column names to the file header, ignoring case and spacing."""
        by_normalized = {self._normalize_header(c): c for c in df.columns}
        resolved: dict[str, Optional[str]] = {}
        for field, name in self.column_mappings.items():
            resolved[field] = by_normalized.get(self._normalize_header(name))

        missing = [self.column_mappings.get(f, f) for f in REQUIRED_COLUMNS if not resolved.get(f)]
        if missing:
            raise LedgerParseError(
                f"Ledger must have the columns {', '.join(missing)}; "
                f"found: {', '.join(str(c) for c in df.columns)}"
            )
        return resolved

    @staticmethod
    def _cell(row: pd.Series, column: Optional[str]) -> Any:
        return row.get(column) if column else None

    @staticmethod
    def _normalize_header(name: Any) -> str:
        return " ".join(str(name).split()).lower()

    @staticmethod
    def _text(value: Any) -> Optional[str]:
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            return None
        text = str(value).strip()
        return text or None
