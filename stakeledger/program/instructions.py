"""
Stake program instruction builders.

Every program-owned address is derived here from its seeds, so a caller only
supplies identities, the token class and the amount.

| Instruction | Accounts                                                     | Signer |
|-------------|--------------------------------------------------------------|--------|
| initialize  | admin, reward_vault, mint                                    | admin  |
| stake       | staker, mint, stake_record, escrow, reward_vault, staker_wallet | staker |
| unstake     | staker, mint, stake_record, escrow, reward_vault, staker_wallet | staker |
"""

from enum import Enum

from ..constants import STAKE_PROGRAM_ID
from ..crypto.address import (
    associated_token_address,
    normalize_address,
    reward_vault_address,
    stake_record_address,
)
from ..runtime.transaction import Instruction


class StakeInstruction(str, Enum):
    INITIALIZE = "initialize"
    STAKE = "stake"
    UNSTAKE = "unstake"


def initialize_instruction(admin: str, mint: str, program_id: str = STAKE_PROGRAM_ID) -> Instruction:
    """Create the reward vault for *mint*."""
    admin = normalize_address(admin)
    vault = reward_vault_address(mint, program_id)
    return Instruction(
        program_id=program_id,
        name=StakeInstruction.INITIALIZE.value,
        accounts={
            "admin": admin,
            "reward_vault": vault,
            "mint": normalize_address(mint),
        },
        signer=admin,
        writable=(admin, vault),
    )


def _position_accounts(staker: str, mint: str, program_id: str) -> dict:
    record = stake_record_address(staker, mint, program_id)
    return {
        "staker": normalize_address(staker),
        "mint": normalize_address(mint),
        "stake_record": record,
        "escrow": associated_token_address(record, mint),
        "reward_vault": reward_vault_address(mint, program_id),
        "staker_wallet": associated_token_address(staker, mint),
    }


def stake_instruction(
    staker: str,
    mint: str,
    amount: int,
    program_id: str = STAKE_PROGRAM_ID,
) -> Instruction:
    """Lock *amount* of *mint* from the staker's wallet into escrow."""
    accounts = _position_accounts(staker, mint, program_id)
    return Instruction(
        program_id=program_id,
        name=StakeInstruction.STAKE.value,
        accounts=accounts,
        signer=accounts["staker"],
        writable=(
            accounts["staker"],
            accounts["stake_record"],
            accounts["escrow"],
            accounts["staker_wallet"],
        ),
        amount=amount,
    )


def unstake_instruction(
    staker: str,
    mint: str,
    amount: int,
    program_id: str = STAKE_PROGRAM_ID,
) -> Instruction:
    """Withdraw *amount* of principal plus the accrued reward."""
    accounts = _position_accounts(staker, mint, program_id)
    return Instruction(
        program_id=program_id,
        name=StakeInstruction.UNSTAKE.value,
        accounts=accounts,
        signer=accounts["staker"],
        writable=(
            accounts["staker"],
            accounts["stake_record"],
            accounts["escrow"],
            accounts["reward_vault"],
            accounts["staker_wallet"],
        ),
        amount=amount,
    )
