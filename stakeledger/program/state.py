"""
Stake Program State

Persisted layout of a stake record and read-only views returned to callers.
"""

from dataclasses import dataclass
from typing import Any, Dict

import rlp

from ..constants import ACCOUNT_DISCRIMINATOR_SIZE, STAKE_RECORD_DISCRIMINATOR
from ..crypto.address import address_to_bytes, bytes_to_address
from .errors import AccountDiscriminatorMismatchError

# Discriminator plus the largest RLP encoding of the five fields
STAKE_RECORD_SPACE = ACCOUNT_DISCRIMINATOR_SIZE + 88


def _decode_int(raw: bytes) -> int:
    return int.from_bytes(raw, 'big') if raw else 0


@dataclass
class StakeRecord:
    """
    One staker's position in one token class.

    Attributes:
        staker: Owning identity
        token_class: Mint address of the staked token
        amount: Staked principal (smallest unit), equal to the escrow balance
        is_staked: True while an escrow exists and amount > 0
        last_accrual_time: Unix seconds; start of the current reward window
    """
    staker: str
    token_class: str
    amount: int = 0
    is_staked: bool = False
    last_accrual_time: int = 0

    def encode(self) -> bytes:
        return STAKE_RECORD_DISCRIMINATOR + rlp.encode([
            address_to_bytes(self.staker),
            address_to_bytes(self.token_class),
            self.amount,
            1 if self.is_staked else 0,
            self.last_accrual_time,
        ])

    @classmethod
    def decode(cls, data: bytes) -> "StakeRecord":
        """
        Decode a stake record account.

        Raises:
            AccountDiscriminatorMismatchError: *data* is not a stake record
        """
        if data[:ACCOUNT_DISCRIMINATOR_SIZE] != STAKE_RECORD_DISCRIMINATOR:
            raise AccountDiscriminatorMismatchError()
        try:
            staker, token_class, amount, is_staked, last_accrual_time = rlp.decode(
                data[ACCOUNT_DISCRIMINATOR_SIZE:]
            )
        except (rlp.DecodingError, ValueError) as e:
            raise AccountDiscriminatorMismatchError(f"Malformed stake record: {e}") from e

        return cls(
            staker=bytes_to_address(staker),
            token_class=bytes_to_address(token_class),
            amount=_decode_int(amount),
            is_staked=_decode_int(is_staked) == 1,
            last_accrual_time=_decode_int(last_accrual_time),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "staker": self.staker,
            "tokenClass": self.token_class,
            "amount": str(self.amount),
            "isStaked": self.is_staked,
            "lastAccrualTime": self.last_accrual_time,
        }


@dataclass(frozen=True)
class RewardVault:
    """Program-custodied pool that funds rewards for one token class."""
    address: str
    token_class: str
    balance: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "tokenClass": self.token_class,
            "balance": str(self.balance),
        }


@dataclass(frozen=True)
class UnstakeResult:
    """
    What an unstake paid out.

    ``payout`` is everything credited to the staker's wallet:
    principal + reward + any escrow residue swept on close.
    """
    principal: int
    reward: int
    swept: int
    remaining_stake: int
    closed: bool

    @property
    def payout(self) -> int:
        return self.principal + self.reward + self.swept

    def to_dict(self) -> Dict[str, Any]:
        return {
            "principal": str(self.principal),
            "reward": str(self.reward),
            "swept": str(self.swept),
            "payout": str(self.payout),
            "remainingStake": str(self.remaining_stake),
            "closed": self.closed,
        }
