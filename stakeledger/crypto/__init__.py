"""
Stake Ledger Crypto Module

Hashing and address primitives:
- keccak256 hashing
- address validation and encoding
- deterministic (program-derived) address derivation
"""

from .hashing import keccak256, keccak256_hex
from .address import (
    address_from_label,
    address_to_bytes,
    associated_token_address,
    bytes_to_address,
    derive_address,
    escrow_address,
    is_valid_address,
    normalize_address,
    reward_vault_address,
    stake_record_address,
)

__all__ = [
    # Hashing
    "keccak256",
    "keccak256_hex",
    # Address
    "address_from_label",
    "address_to_bytes",
    "bytes_to_address",
    "is_valid_address",
    "normalize_address",
    # Derivation
    "derive_address",
    "associated_token_address",
    "reward_vault_address",
    "stake_record_address",
    "escrow_address",
]
