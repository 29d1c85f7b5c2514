"""
Transaction hash and wallet address normalization.

Tron identifies transactions by bare 64-character hex hashes, Ethereum by the
same hex with a ``0x`` prefix. Ledgers contain both, in any case.
"""

from dataclasses import dataclass
import re
from typing import Optional

_HEX64 = re.compile(r"^[0-9a-f]{64}$")
_ETH_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")


@dataclass(frozen=True)
class CanonicalHash:
    """The two lookup forms of one ledger hash."""

    original: str
    bare: str
    prefixed: str

    @property
    def is_well_formed(self) -> bool:
        """True when the hash is exactly 64 hex characters once unprefixed."""
        return bool(_HEX64.match(self.bare))

    @property
    def tron_hash(self) -> Optional[str]:
        """Form for TronScan, or None when it cannot be a Tron hash."""
        return self.bare if self.is_well_formed else None

    @property
    def ethereum_hash(self) -> str:
        return self.prefixed


def canonicalize_hash(tx_hash: Optional[str]) -> CanonicalHash:
    """
    Produce the bare (Tron) and ``0x``-prefixed (Ethereum) forms of a hash.

    Never raises. Malformed input keeps its trimmed original as the Ethereum
    form so the explorer can report it as not found.
    """
    original = (tx_hash or "").strip()
    lowered = original.lower()
    bare = lowered[2:] if lowered.startswith("0x") else lowered
    if _HEX64.match(bare):
        prefixed = "0x" + bare
    else:
        prefixed = original
    return CanonicalHash(original=original, bare=bare, prefixed=prefixed)


def hash_key(tx_hash: Optional[str]) -> str:
    """Key used to group ledger rows: bare lowercase hex when well formed."""
    canonical = canonicalize_hash(tx_hash)
    return canonical.bare if canonical.is_well_formed else canonical.original.lower()


def is_valid_address(address: Optional[str]) -> bool:
    """Accept Ethereum (0x + 40 hex) or Tron (T + base58, 34-35 chars) addresses."""
    if not address or not isinstance(address, str):
        return False
    text = address.strip()
    if text.startswith("0x"):
        return bool(_ETH_ADDRESS.match(text))
    return text.startswith("T") and 34 <= len(text) <= 35


def normalize_address(address: Optional[str]) -> str:
    """Lowercase Ethereum addresses; Tron base58 is case-sensitive and kept as is."""
    text = (address or "").strip()
    if text.lower().startswith("0x"):
        return text.lower()
    return text
