"""
Stake Program

Provides:
  - StakeProgram        : initialize / stake / unstake processor
  - StakeProgramClient  : async facade over a LedgerRuntime
  - StakeRecord, RewardVault, UnstakeResult : account state and results
  - RewardPolicy        : configurable reward accrual
"""

from .client import StakeProgramClient
from .errors import (
    StakeProgramError,
    InvalidAmountError,
    UnauthorizedError,
    InsufficientRewardPoolError,
    AlreadyInitializedError,
    AccountNotFoundError,
    InsufficientBalanceError,
    AccountDerivationError,
    ArithmeticOverflowError,
    AccountDiscriminatorMismatchError,
    EscrowCorruptionError,
)
from .instructions import (
    StakeInstruction,
    initialize_instruction,
    stake_instruction,
    unstake_instruction,
)
from .processor import StakeProgram
from .rewards import RewardBasis, RewardPolicy
from .state import RewardVault, StakeRecord, UnstakeResult

__all__ = [
    "StakeProgram",
    "StakeProgramClient",
    "StakeRecord",
    "RewardVault",
    "UnstakeResult",
    "RewardBasis",
    "RewardPolicy",
    "StakeInstruction",
    "initialize_instruction",
    "stake_instruction",
    "unstake_instruction",
    # Errors
    "StakeProgramError",
    "InvalidAmountError",
    "UnauthorizedError",
    "InsufficientRewardPoolError",
    "AlreadyInitializedError",
    "AccountNotFoundError",
    "InsufficientBalanceError",
    "AccountDerivationError",
    "ArithmeticOverflowError",
    "AccountDiscriminatorMismatchError",
    "EscrowCorruptionError",
]
