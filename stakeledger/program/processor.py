"""
Stake Program

Lets a participant lock a token class into program custody and later
withdraw the principal plus a reward funded from a per-token reward vault.

Accounts:
    RewardVault   token account at derive("reward", mint); its own authority
    StakeRecord   data account at derive("stake_info", staker, mint)
    Escrow        token account of the StakeRecord; holds at least record.amount

Every check runs before the first balance moves. The runtime reverts the
whole transaction if a later step still fails.
"""

from typing import Any, Iterable, Optional

from ..constants import STAKE_PROGRAM_ID, U64_MAX
from ..crypto.address import (
    associated_token_address,
    normalize_address,
    reward_vault_address,
    stake_record_address,
)
from ..logger import get_logger
from ..runtime.runtime import InvocationContext
from ..runtime.transaction import Instruction
from ..tokens.ledger import TokenAccount
from .errors import (
    AccountDerivationError,
    AccountNotFoundError,
    AlreadyInitializedError,
    ArithmeticOverflowError,
    EscrowCorruptionError,
    InsufficientBalanceError,
    InsufficientRewardPoolError,
    InvalidAmountError,
    StakeProgramError,
    UnauthorizedError,
)
from .instructions import StakeInstruction
from .rewards import RewardPolicy
from .state import STAKE_RECORD_SPACE, RewardVault, StakeRecord, UnstakeResult

logger = get_logger(__name__)


class StakeProgram:
    """
    Instruction processor for initialize / stake / unstake.

    Args:
        program_id: Address the program is loaded at
        reward_policy: Accrual formula applied at unstake
        require_reward_vault_on_stake: Refuse stakes until the token class has a vault
        admins: Identities allowed to initialize vaults (empty: anyone)
    """

    def __init__(
        self,
        program_id: str = STAKE_PROGRAM_ID,
        reward_policy: Optional[RewardPolicy] = None,
        require_reward_vault_on_stake: bool = True,
        admins: Iterable[str] = (),
    ):
        self.program_id = normalize_address(program_id)
        self.reward_policy = reward_policy or RewardPolicy()
        self.require_reward_vault_on_stake = require_reward_vault_on_stake
        self.admins = frozenset(normalize_address(a) for a in admins)

    def process(self, ctx: InvocationContext, instruction: Instruction) -> Any:
        handlers = {
            StakeInstruction.INITIALIZE.value: self._initialize,
            StakeInstruction.STAKE.value: self._stake,
            StakeInstruction.UNSTAKE.value: self._unstake,
        }
        handler = handlers.get(instruction.name)
        if handler is None:
            raise StakeProgramError(f"Unknown instruction: {instruction.name}")
        return handler(ctx, instruction)

    # =========================================================================
    # ACCOUNT VALIDATION
    # =========================================================================

    def _expect_address(self, role: str, supplied: str, expected: str) -> None:
        if normalize_address(supplied) != expected:
            raise AccountDerivationError(f"{role} {supplied} does not match derived {expected}")

    def _require_mint(self, ctx: InvocationContext, mint: str) -> None:
        if ctx.tokens.get_mint(mint) is None:
            raise AccountNotFoundError(f"Mint {mint} not found")

    def _require_wallet(self, ctx: InvocationContext, wallet: str, owner: str, mint: str) -> TokenAccount:
        account = ctx.tokens.get_account(wallet)
        if account is None:
            raise AccountNotFoundError(f"Token account {wallet} not found")
        if account.mint != normalize_address(mint) or account.authority != normalize_address(owner):
            raise AccountDerivationError(f"Token account {wallet} is not a {mint} account of {owner}")
        return account

    def _require_vault(self, ctx: InvocationContext, vault: str, mint: str) -> TokenAccount:
        self._expect_address("reward_vault", vault, reward_vault_address(mint, self.program_id))
        account = ctx.tokens.get_account(vault)
        if account is None:
            raise AccountNotFoundError(f"Reward vault for {mint} is not initialized")
        return account

    def _load_record(self, ctx: InvocationContext, address: str) -> Optional[StakeRecord]:
        stored = ctx.accounts.get(address)
        if stored is None:
            return None
        if stored.owner != self.program_id:
            raise AccountDerivationError(f"Stake record {address} is not owned by the stake program")
        return StakeRecord.decode(stored.data)

    @staticmethod
    def _validate_amount(amount: Optional[int]) -> int:
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise InvalidAmountError(f"Amount must be an integer, got {amount!r}")
        if amount <= 0 or amount > U64_MAX:
            raise InvalidAmountError(f"Amount {amount} out of range")
        return amount

    @staticmethod
    def _check_escrow(escrow: str, account: Optional[TokenAccount], record: StakeRecord) -> None:
        """
        Escrow may hold more than the record (tokens sent in from outside are
        swept to the staker on close) but never less.
        """
        held = 0 if account is None else account.amount
        if account is None or held < record.amount:
            raise EscrowCorruptionError(f"Escrow {escrow} holds {held}, record says {record.amount}")

    # =========================================================================
    # INITIALIZE
    # =========================================================================

    def _initialize(self, ctx: InvocationContext, ix: Instruction) -> RewardVault:
        admin = normalize_address(ix.account("admin"))
        mint = normalize_address(ix.account("mint"))
        vault = ix.account("reward_vault")

        if self.admins and admin not in self.admins:
            raise UnauthorizedError(f"{admin} may not initialize reward vaults")
        self._require_mint(ctx, mint)
        self._expect_address("reward_vault", vault, reward_vault_address(mint, self.program_id))
        if ctx.tokens.account_exists(vault):
            raise AlreadyInitializedError(f"Reward vault for {mint} already exists")

        # The vault is its own authority, so only this program can move funds out
        account = ctx.tokens.open_account(vault, mint, authority=vault)
        ctx.log(f"reward vault initialized: {account.address}")
        return RewardVault(address=account.address, token_class=mint, balance=account.amount)

    # =========================================================================
    # STAKE
    # =========================================================================

    def _stake(self, ctx: InvocationContext, ix: Instruction) -> StakeRecord:
        amount = self._validate_amount(ix.amount)
        staker = normalize_address(ix.account("staker"))
        mint = normalize_address(ix.account("mint"))
        record_address = stake_record_address(staker, mint, self.program_id)

        self._require_mint(ctx, mint)
        self._expect_address("stake_record", ix.account("stake_record"), record_address)
        escrow = associated_token_address(record_address, mint)
        self._expect_address("escrow", ix.account("escrow"), escrow)
        wallet = self._require_wallet(ctx, ix.account("staker_wallet"), staker, mint)
        if self.require_reward_vault_on_stake:
            self._require_vault(ctx, ix.account("reward_vault"), mint)

        if wallet.amount < amount:
            raise InsufficientBalanceError(f"Wallet holds {wallet.amount}, cannot stake {amount}")

        record = self._load_record(ctx, record_address)
        escrow_account = ctx.tokens.get_account(escrow)
        if escrow_account is not None and escrow_account.authority != record_address:
            raise AccountDerivationError(f"Escrow {escrow} is not controlled by {record_address}")

        if record is None:
            record = StakeRecord(staker=staker, token_class=mint)
        else:
            if record.staker != staker or record.token_class != mint:
                raise AccountDerivationError(f"Stake record {record_address} belongs to another position")
            self._check_escrow(escrow, escrow_account, record)

        new_amount = record.amount + amount
        if new_amount > U64_MAX:
            raise ArithmeticOverflowError(f"Stake {record.amount} + {amount} exceeds u64")

        # Checks done; mutate
        if not ctx.accounts.exists(record_address):
            ctx.accounts.create_account(record_address, self.program_id, STAKE_RECORD_SPACE, payer=staker)
        if escrow_account is None:
            ctx.tokens.open_account(escrow, mint, authority=record_address)

        ctx.tokens.transfer(wallet.address, escrow, amount, authority=staker)

        record.amount = new_amount
        record.is_staked = True
        record.last_accrual_time = ctx.timestamp
        ctx.accounts.write(record_address, record.encode(), self.program_id)

        ctx.log(f"staked: {amount} (total {record.amount})")
        return record

    # =========================================================================
    # UNSTAKE
    # =========================================================================

    def _unstake(self, ctx: InvocationContext, ix: Instruction) -> UnstakeResult:
        amount = self._validate_amount(ix.amount)
        signer = normalize_address(ix.signer)
        staker = normalize_address(ix.account("staker"))
        mint = normalize_address(ix.account("mint"))
        record_address = normalize_address(ix.account("stake_record"))

        record = self._load_record(ctx, record_address)
        if record is None:
            raise AccountNotFoundError(f"Stake record {record_address} does not exist")
        if record.token_class != mint:
            raise AccountDerivationError(f"Stake record {record_address} does not hold {mint}")
        if record.staker != signer or record.staker != staker:
            raise UnauthorizedError(f"{signer} does not own stake record {record_address}")
        if not record.is_staked:
            raise AccountNotFoundError("Tokens are not staked")
        if amount > record.amount:
            raise InvalidAmountError(f"Cannot unstake {amount}, only {record.amount} staked")

        self._expect_address("stake_record", record_address,
                             stake_record_address(staker, mint, self.program_id))
        escrow = associated_token_address(record_address, mint)
        self._expect_address("escrow", ix.account("escrow"), escrow)
        escrow_account = ctx.tokens.get_account(escrow)
        if escrow_account is None or escrow_account.authority != record_address:
            raise AccountNotFoundError(f"Escrow {escrow} does not exist")
        self._check_escrow(escrow, escrow_account, record)
        vault = self._require_vault(ctx, ix.account("reward_vault"), mint)
        wallet = self._require_wallet(ctx, ix.account("staker_wallet"), staker, mint)

        elapsed = ctx.timestamp - record.last_accrual_time
        reward = self.reward_policy.compute(position=record.amount, withdrawn=amount, elapsed=elapsed)
        if reward > vault.amount:
            raise InsufficientRewardPoolError(
                f"Reward {reward} exceeds reward vault balance {vault.amount}"
            )
        ctx.log(f"reward: {reward}")

        # Checks done; mutate
        if reward > 0:
            ctx.tokens.transfer(vault.address, wallet.address, reward, authority=vault.address)
        ctx.tokens.transfer(escrow, wallet.address, amount, authority=record_address)

        remaining = record.amount - amount
        swept = 0
        if remaining == 0:
            record.amount = 0
            record.is_staked = False
            swept = ctx.tokens.close_account(escrow, wallet.address, authority=record_address)
            refund = ctx.accounts.close_account(record_address, staker, self.program_id)
            ctx.log(f"position closed, storage refund {refund}")
        else:
            record.amount = remaining
            record.last_accrual_time = ctx.timestamp
            ctx.accounts.write(record_address, record.encode(), self.program_id)

        ctx.log(f"unstaked: {amount} (remaining {remaining})")
        return UnstakeResult(
            principal=amount,
            reward=reward,
            swept=swept,
            remaining_stake=remaining,
            closed=remaining == 0,
        )
