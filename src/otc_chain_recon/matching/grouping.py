"""Grouping of ledger rows into one reconciliation unit per transaction hash."""

from decimal import Decimal
from typing import Iterable

from ..chain.identifiers import hash_key
from ..models.ledger import LedgerGroup, LedgerRow


def group_ledger_rows(
    rows: Iterable[LedgerRow],
) -> tuple[list[LedgerGroup], list[LedgerRow]]:
    """
    Group ledger rows by transaction hash, preserving first-seen order.

    Rows without a hash cannot be checked on-chain and are returned
    separately.

    Returns:
        Tuple of (groups, rows_without_hash)
    """
    buckets: dict[str, list[LedgerRow]] = {}
    rows_without_hash: list[LedgerRow] = []

    for row in rows:
        if not (row.tx_hash or "").strip():
            rows_without_hash.append(row)
            continue
        buckets.setdefault(hash_key(row.tx_hash), []).append(row)

    groups = [_build_group(members) for members in buckets.values()]
    return groups, rows_without_hash


def _build_group(members: list[LedgerRow]) -> LedgerGroup:
    first = members[0]

    clients: list[str] = []
    for row in members:
        name = (row.client or "").strip()
        if name not in clients:
            clients.append(name)

    combinations = {row.network_currency_key for row in members}

    return LedgerGroup(
        tx_hash=first.tx_hash.strip().lower(),
        rows=tuple(members),
        clients=tuple(clients),
        amount=sum((row.amount for row in members), Decimal("0")),
        network=first.network,
        currency=first.currency,
        network_currency_conflict=len(combinations) > 1,
    )
