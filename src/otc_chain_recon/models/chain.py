"""Data models for what a blockchain explorer reports about a transaction."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional


class Network(Enum):
    """Supported stablecoin networks."""

    TRC20 = "TRC20"  # Tron, account-based
    ERC20 = "ERC20"  # Ethereum, event-log based


class Currency(Enum):
    """Supported stablecoins."""

    USDT = "USDT"
    USDC = "USDC"


class TransactionState:
    """Outcome states reported on an observation.

    Tron passes its own contract result through verbatim when it is not
    ``SUCCESS``, so states are plain strings rather than an enum.
    """

    SUCCESSFUL = "SUCCESSFUL"
    PENDING = "PENDING"
    UNKNOWN = "UNKNOWN"


def normalize_currency(value: Optional[str]) -> Optional[Currency]:
    """
    Map a free-text currency to a supported stablecoin.

    ``USDT`` or anything mentioning Tether is USDT, any other non-empty value
    is USDC. Empty values return None.
    """
    text = (value or "").strip().lower()
    if not text:
        return None
    if text == "usdt" or "tether" in text:
        return Currency.USDT
    return Currency.USDC


def normalize_network(value: Optional[str]) -> Optional[str]:
    """Uppercase a declared network and strip all whitespace; empty becomes None."""
    text = "".join((value or "").split()).upper()
    return text or None


@dataclass(frozen=True)
class ChainObservation:
    """
    Result of querying one network for one transaction hash.

    Every field except ``state`` may be None, meaning it could not be
    determined. Amounts are in token units, never integer minor units.
    """

    state: str
    network: Network
    amount: Optional[Decimal] = None
    currency: Optional[Currency] = None
    sender: Optional[str] = None
    receiver: Optional[str] = None

    @property
    def label(self) -> str:
        """Short human-readable form used in logs."""
        currency = self.currency.value if self.currency else "?"
        return f"{self.network.value} {currency} amount={self.amount}"
