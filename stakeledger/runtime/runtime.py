"""
Ledger Runtime

Executes instructions with transaction semantics: either every account
mutation of a transaction is applied or none is.

Two transactions that write the same account are serialized by a per-account
lock; transactions over disjoint accounts never wait on each other. Handlers
run synchronously once their locks are held, so no other transaction can
observe an intermediate state.
"""

import asyncio
from collections import defaultdict
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

import rlp

from ..crypto.address import normalize_address
from ..crypto.hashing import keccak256_hex
from ..exceptions import StakeLedgerException
from ..logger import get_logger
from ..tokens.ledger import TokenLedger
from .accounts import AccountStore
from .clock import SystemClock
from .transaction import Instruction, TransactionReceipt

logger = get_logger(__name__)


class RuntimeLedgerError(StakeLedgerException):
    """Base exception for transaction execution."""


class MissingSignatureError(RuntimeLedgerError):
    """Raised when an instruction's required signer did not sign."""


class UnknownProgramError(RuntimeLedgerError):
    """Raised when no loaded program matches the instruction."""


class Program(Protocol):
    program_id: str

    def process(self, ctx: "InvocationContext", instruction: Instruction) -> Any:
        ...


@dataclass
class InvocationContext:
    """Everything a handler may read or mutate while it runs."""
    program_id: str
    accounts: AccountStore
    tokens: TokenLedger
    timestamp: int
    signers: frozenset
    logs: List[str] = field(default_factory=list)

    def log(self, message: str) -> None:
        """Append a program log line (also forwarded to the logger)."""
        self.logs.append(f"Program log: {message}")
        logger.info(f"[{self.program_id[:10]}] {message}")


class LedgerRuntime:
    """
    Runs programs against an AccountStore and a TokenLedger.

    Usage:
        runtime = LedgerRuntime([StakeProgram()])
        receipt = await runtime.submit(instruction, signers=[staker])
    """

    def __init__(
        self,
        programs: Iterable[Program],
        tokens: Optional[TokenLedger] = None,
        accounts: Optional[AccountStore] = None,
        clock=None,
    ):
        self.programs: Dict[str, Program] = {
            normalize_address(p.program_id): p for p in programs
        }
        self.tokens = tokens or TokenLedger()
        self.accounts = accounts or AccountStore()
        self.clock = clock or SystemClock()
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._tx_counter = 0

    # =========================================================================
    # SUBMISSION
    # =========================================================================

    async def submit(self, instruction: Instruction, signers: Sequence[str]) -> TransactionReceipt:
        """Submit a single-instruction transaction."""
        return await self.submit_transaction([instruction], signers)

    async def submit_transaction(
        self,
        instructions: Sequence[Instruction],
        signers: Sequence[str],
    ) -> TransactionReceipt:
        """
        Execute *instructions* atomically.

        Args:
            instructions: Instructions to run in order
            signers: Identities that signed the transaction

        Returns:
            TransactionReceipt

        Raises:
            MissingSignatureError: A required signer is absent
            UnknownProgramError: An instruction targets an unloaded program
            StakeLedgerException: Whatever a handler raised; state is reverted
        """
        if not instructions:
            raise RuntimeLedgerError("Transaction has no instructions")

        signer_set = frozenset(normalize_address(s) for s in signers)
        for ix in instructions:
            if normalize_address(ix.program_id) not in self.programs:
                raise UnknownProgramError(f"Program {ix.program_id} is not loaded")
            if normalize_address(ix.signer) not in signer_set:
                raise MissingSignatureError(f"Instruction {ix.name} requires signature of {ix.signer}")

        # Sorted acquisition keeps overlapping transactions deadlock free
        writable = sorted({normalize_address(a) for ix in instructions for a in ix.writable})
        async with AsyncExitStack() as stack:
            for address in writable:
                await stack.enter_async_context(self._locks[address])
            return self._execute(list(instructions), signer_set)

    # =========================================================================
    # EXECUTION
    # =========================================================================

    def _execute(self, instructions: List[Instruction], signers: frozenset) -> TransactionReceipt:
        timestamp = self.clock.now()
        self._tx_counter += 1
        signature = self._signature(instructions, self._tx_counter)

        account_snapshot = self.accounts.snapshot()
        token_snapshot = self.tokens.snapshot()
        logs: List[str] = []
        results: List[Any] = []

        try:
            for ix in instructions:
                program = self.programs[normalize_address(ix.program_id)]
                ctx = InvocationContext(
                    program_id=program.program_id,
                    accounts=self.accounts,
                    tokens=self.tokens,
                    timestamp=timestamp,
                    signers=signers,
                    logs=logs,
                )
                logs.append(f"Program {program.program_id} invoke: {ix.name}")
                results.append(program.process(ctx, ix))
                logs.append(f"Program {program.program_id} success")
        except Exception as e:
            self.tokens.revert(token_snapshot)
            self.accounts.revert(account_snapshot)
            logger.warning(f"Transaction reverted sig={signature}: {type(e).__name__}: {e}")
            raise

        self.tokens.discard(token_snapshot)
        self.accounts.discard(account_snapshot)
        logger.info(f"Transaction committed sig={signature}")

        return TransactionReceipt(
            signature=signature,
            instructions=instructions,
            results=results,
            logs=logs,
            timestamp=timestamp,
        )

    @staticmethod
    def _signature(instructions: List[Instruction], counter: int) -> str:
        payload = rlp.encode([[ix.encode() for ix in instructions], counter])
        return keccak256_hex(payload)
