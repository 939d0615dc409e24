"""
Stake Ledger Hashing Module

Keccak-256 is used for every derived address, account discriminator and
transaction signature in the ledger.
"""

from typing import Union

from eth_utils import keccak


def keccak256(data: Union[bytes, str]) -> bytes:
    """
    Compute Keccak-256 hash.

    Args:
        data: Input bytes, a 0x-prefixed hex string, or plain text

    Returns:
        32-byte hash
    """
    if isinstance(data, str):
        if data.startswith('0x') or data.startswith('0X'):
            return keccak(hexstr=data)
        return keccak(text=data)
    return keccak(data)


def keccak256_hex(data: Union[bytes, str]) -> str:
    """
    Compute Keccak-256 hash and return as hex string.

    Returns:
        Hex string with 0x prefix
    """
    return '0x' + keccak256(data).hex()
