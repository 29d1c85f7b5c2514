"""Parsers for OTC ledger files."""

from .ledger_parser import LedgerParser, parse_amount

__all__ = ["LedgerParser", "parse_amount"]
