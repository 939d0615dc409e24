"""
Stake Ledger Address Module

Addresses are 32-byte identifiers rendered as ``0x`` + 64 lowercase hex chars.
Identities (stakers, admins), token classes and program-owned accounts all
share this format.

Program-owned accounts are located by derivation rather than lookup: the
address is a pure function of a fixed tag, the relevant identifiers and the
owning program, so any caller can recompute it.
"""

from typing import Sequence, Union

from ..constants import (
    ADDRESS_BYTES,
    ADDRESS_LENGTH,
    ADDRESS_PREFIX,
    ASSOCIATED_TOKEN_PROGRAM_ID,
    MAX_SEED_LENGTH,
    MAX_SEEDS,
    PDA_MARKER,
    REWARD_VAULT_SEED,
    STAKE_INFO_SEED,
    STAKE_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)
from ..exceptions import InvalidAddressError, InvalidSeedsError
from .hashing import keccak256


def is_valid_address(address: str) -> bool:
    """
    Check if address is valid.

    Args:
        address: Address to validate

    Returns:
        True if valid, False otherwise
    """
    if not isinstance(address, str) or not address.startswith(ADDRESS_PREFIX):
        return False
    raw = address[len(ADDRESS_PREFIX):]
    if len(raw) != ADDRESS_LENGTH:
        return False
    try:
        int(raw, 16)
    except ValueError:
        return False
    return True


def normalize_address(address: str) -> str:
    """
    Normalize address to lowercase with prefix.

    Raises:
        InvalidAddressError: If the address is malformed
    """
    if not is_valid_address(address):
        raise InvalidAddressError(f"Invalid address: {address!r}")
    return ADDRESS_PREFIX + address[len(ADDRESS_PREFIX):].lower()


def address_to_bytes(address: str) -> bytes:
    """Decode an address into its 32 raw bytes."""
    return bytes.fromhex(normalize_address(address)[len(ADDRESS_PREFIX):])


def bytes_to_address(raw: bytes) -> str:
    """Encode 32 raw bytes as an address."""
    if len(raw) != ADDRESS_BYTES:
        raise InvalidAddressError(f"Address must be {ADDRESS_BYTES} bytes, got {len(raw)}")
    return ADDRESS_PREFIX + raw.hex()


def address_from_label(label: str) -> str:
    """
    Deterministic address for a human-readable label.

    Handy for fixtures and simulations: ``address_from_label("alice")``.
    """
    return bytes_to_address(keccak256(label.encode('utf-8')))


# ---------------------------------------------------------------------------
# Deterministic derivation
# ---------------------------------------------------------------------------

SeedLike = Union[bytes, str]


def _seed_bytes(seed: SeedLike) -> bytes:
    if isinstance(seed, str):
        return address_to_bytes(seed)
    return bytes(seed)


def derive_address(seeds: Sequence[SeedLike], program_id: str) -> str:
    """
    Derive a program-owned address from seeds.

    ``keccak256(seed_0 || ... || seed_n || program_id || PDA_MARKER)``

    Args:
        seeds: Raw byte tags or addresses (addresses contribute their 32 bytes)
        program_id: Owning program address

    Returns:
        Derived address

    Raises:
        InvalidSeedsError: Too many seeds, or a seed longer than 32 bytes
    """
    if len(seeds) > MAX_SEEDS:
        raise InvalidSeedsError(f"At most {MAX_SEEDS} seeds allowed, got {len(seeds)}")

    buffer = bytearray()
    for seed in seeds:
        raw = _seed_bytes(seed)
        if len(raw) > MAX_SEED_LENGTH:
            raise InvalidSeedsError(
                f"Seed length {len(raw)} exceeds max {MAX_SEED_LENGTH}"
            )
        buffer += raw
    buffer += address_to_bytes(program_id)
    buffer += PDA_MARKER
    return bytes_to_address(keccak256(bytes(buffer)))


def associated_token_address(owner: str, mint: str) -> str:
    """Canonical token account of *owner* for the token class *mint*."""
    return derive_address([owner, TOKEN_PROGRAM_ID, mint], ASSOCIATED_TOKEN_PROGRAM_ID)


def reward_vault_address(mint: str, program_id: str = STAKE_PROGRAM_ID) -> str:
    """RewardVault for a token class: derived from ("reward", mint)."""
    return derive_address([REWARD_VAULT_SEED, mint], program_id)


def stake_record_address(staker: str, mint: str, program_id: str = STAKE_PROGRAM_ID) -> str:
    """StakeRecord for a (staker, token class) pair: derived from ("stake_info", staker, mint)."""
    return derive_address([STAKE_INFO_SEED, staker, mint], program_id)


def escrow_address(staker: str, mint: str, program_id: str = STAKE_PROGRAM_ID) -> str:
    """EscrowAccount: the associated token account of the StakeRecord."""
    return associated_token_address(stake_record_address(staker, mint, program_id), mint)
