"""Blockchain explorer access and transfer decoding."""

from .identifiers import (
    CanonicalHash,
    canonicalize_hash,
    hash_key,
    is_valid_address,
    normalize_address,
)

# Explorer clients live in .clients; they depend on config, which imports
# this package for address validation.

__all__ = [
    "CanonicalHash",
    "canonicalize_hash",
    "hash_key",
    "is_valid_address",
    "normalize_address",
]
