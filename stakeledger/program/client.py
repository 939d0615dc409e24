"""
Stake Program Client

Thin async facade over a LedgerRuntime: builds the instruction, submits it
signed by the acting identity, and returns the handler's result.

    client = StakeProgramClient.from_config(load_config())
    await client.initialize(admin, usdc)
    record = await client.stake(alice, usdc, 100 * 10**6)
    result = await client.unstake(alice, usdc, 100 * 10**6)
"""

from typing import Optional, Tuple

from ..config import StakeLedgerConfig
from ..crypto.address import (
    associated_token_address,
    reward_vault_address,
    stake_record_address,
)
from ..logger import get_logger
from ..runtime.accounts import AccountStore
from ..runtime.runtime import LedgerRuntime
from ..tokens.ledger import TokenLedger
from .instructions import initialize_instruction, stake_instruction, unstake_instruction
from .processor import StakeProgram
from .rewards import RewardBasis, RewardPolicy
from .state import RewardVault, StakeRecord, UnstakeResult

logger = get_logger(__name__)


class StakeProgramClient:
    """Initialize / stake / unstake plus account fetchers."""

    def __init__(self, runtime: LedgerRuntime, program: StakeProgram):
        self.runtime = runtime
        self.program = program

    @classmethod
    def from_config(
        cls,
        config: StakeLedgerConfig,
        tokens: Optional[TokenLedger] = None,
        clock=None,
        configure_logging: bool = False,
    ) -> "StakeProgramClient":
        """
        Build a program and runtime from configuration.

        With *configure_logging* the [logging] section replaces the logging
        set up from .env at import time.
        """
        config.validate()
        if configure_logging:
            config.logging.apply()
        policy = RewardPolicy(
            rate_numerator=config.rewards.rate_numerator,
            rate_denominator=config.rewards.rate_denominator,
            period_seconds=config.rewards.period_seconds,
            basis=RewardBasis(config.rewards.basis),
        )
        program = StakeProgram(
            program_id=config.program.program_id,
            reward_policy=policy,
            require_reward_vault_on_stake=config.program.require_reward_vault_on_stake,
            admins=config.program.admins,
        )
        runtime = LedgerRuntime(
            [program],
            tokens=tokens,
            accounts=AccountStore(rent=config.rent.to_rent()),
            clock=clock,
        )
        logger.info(f"Stake program loaded at {program.program_id}")
        return cls(runtime, program)

    @property
    def program_id(self) -> str:
        return self.program.program_id

    # ── Instructions ──────────────────────────────────────────────────

    async def initialize(self, admin: str, mint: str) -> RewardVault:
        ix = initialize_instruction(admin, mint, self.program_id)
        receipt = await self.runtime.submit(ix, signers=[admin])
        return receipt.result

    async def stake(self, staker: str, mint: str, amount: int) -> StakeRecord:
        ix = stake_instruction(staker, mint, amount, self.program_id)
        receipt = await self.runtime.submit(ix, signers=[staker])
        return receipt.result

    async def unstake(self, staker: str, mint: str, amount: int) -> Tuple[int, int]:
        """Returns ``(payout, remaining_stake)``."""
        result = await self.unstake_detailed(staker, mint, amount)
        return result.payout, result.remaining_stake

    async def unstake_detailed(self, staker: str, mint: str, amount: int) -> UnstakeResult:
        ix = unstake_instruction(staker, mint, amount, self.program_id)
        receipt = await self.runtime.submit(ix, signers=[staker])
        return receipt.result

    # ── Fetchers ──────────────────────────────────────────────────────

    def fetch_stake_record(self, staker: str, mint: str) -> Optional[StakeRecord]:
        stored = self.runtime.accounts.get(stake_record_address(staker, mint, self.program_id))
        if stored is None:
            return None
        return StakeRecord.decode(stored.data)

    def fetch_reward_vault(self, mint: str) -> Optional[RewardVault]:
        address = reward_vault_address(mint, self.program_id)
        account = self.runtime.tokens.get_account(address)
        if account is None:
            return None
        return RewardVault(address=account.address, token_class=account.mint, balance=account.amount)

    def escrow_balance(self, staker: str, mint: str) -> Optional[int]:
        """Escrow balance, or None once the escrow is closed."""
        record = stake_record_address(staker, mint, self.program_id)
        account = self.runtime.tokens.get_account(associated_token_address(record, mint))
        return None if account is None else account.amount

    def wallet_balance(self, owner: str, mint: str) -> int:
        return self.runtime.tokens.balance_of(associated_token_address(owner, mint))
