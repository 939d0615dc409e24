"""
Stake Program Errors

Every program error carries a stable numeric code so callers behind a
transport can tell failures apart without parsing messages.
"""

from ..constants import ERROR_CODE_OFFSET
from ..exceptions import StakeLedgerException


class StakeProgramError(StakeLedgerException):
    """Base exception for stake program instructions."""
    code = ERROR_CODE_OFFSET - 1
    default_message = "Stake program error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(f"[{self.code}] {self.message}")


class InvalidAmountError(StakeProgramError):
    """Zero, negative, oversized, or over-withdrawal amount."""
    code = ERROR_CODE_OFFSET
    default_message = "Invalid amount"


class UnauthorizedError(StakeProgramError):
    """Signer is not allowed to act on the account."""
    code = ERROR_CODE_OFFSET + 1
    default_message = "Stake record owner mismatch"


class InsufficientRewardPoolError(StakeProgramError):
    """Reward vault cannot cover the computed reward."""
    code = ERROR_CODE_OFFSET + 2
    default_message = "Reward vault balance is too low"


class AlreadyInitializedError(StakeProgramError):
    """Reward vault already exists for the token class."""
    code = ERROR_CODE_OFFSET + 3
    default_message = "Reward vault already initialized"


class AccountNotFoundError(StakeProgramError):
    """Referenced stake record, vault, mint or token account does not exist."""
    code = ERROR_CODE_OFFSET + 4
    default_message = "Account not found"


class InsufficientBalanceError(StakeProgramError):
    """Staker wallet holds less than the amount to stake."""
    code = ERROR_CODE_OFFSET + 5
    default_message = "Insufficient wallet balance"


class AccountDerivationError(StakeProgramError):
    """Supplied account does not match its deterministic derivation."""
    code = ERROR_CODE_OFFSET + 6
    default_message = "Account derivation mismatch"


class ArithmeticOverflowError(StakeProgramError):
    """Checked integer arithmetic left the u64 range."""
    code = ERROR_CODE_OFFSET + 7
    default_message = "Arithmetic overflow"


class AccountDiscriminatorMismatchError(StakeProgramError):
    """Account data does not hold the expected record type."""
    code = ERROR_CODE_OFFSET + 8
    default_message = "Account discriminator mismatch"


class EscrowCorruptionError(StakeProgramError):
    """Escrow balance no longer equals the stake record amount."""
    code = ERROR_CODE_OFFSET + 9
    default_message = "Escrow balance does not match stake record"
