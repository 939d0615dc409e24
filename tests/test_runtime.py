"""
Ledger runtime tests.

Coverage:
  - AccountStore: storage deposits, owner-guarded writes, close refunds, snapshots
  - clocks
  - LedgerRuntime: signer checks, receipts, atomic revert, multi-instruction
    transactions, per-account locking
"""

import asyncio
import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from stakeledger.crypto import address_from_label, associated_token_address, is_valid_address
from stakeledger.runtime import (
    AccountAlreadyExistsError,
    AccountDataTooLargeError,
    AccountMissingError,
    AccountOwnerMismatchError,
    AccountStore,
    InsufficientFundsForRentError,
    Instruction,
    LedgerRuntime,
    ManualClock,
    MissingSignatureError,
    Rent,
    RuntimeLedgerError,
    SystemClock,
    UnknownProgramError,
)
from stakeledger.tokens import InsufficientBalanceError, TokenLedger, TokenLedgerError

PAYMENTS_ID = address_from_label("program:payments")
OTHER_ID = address_from_label("program:other")
AUTHORITY = address_from_label("mint-authority")
ALICE = address_from_label("alice")
BOB = address_from_label("bob")
CAROL = address_from_label("carol")
USDC = address_from_label("mint:usdc")
NOTE = address_from_label("note")

FUNDS = 1_000 * 10**6


class PaymentProgram:
    """Minimal program moving tokens and writing data accounts on request."""

    program_id = PAYMENTS_ID

    def process(self, ctx, ix):
        if ix.name == "pay":
            ctx.tokens.transfer(ix.account("from"), ix.account("to"), ix.amount, authority=ix.signer)
            ctx.log(f"paid {ix.amount}")
            return ix.amount
        if ix.name == "pay_then_fail":
            ctx.tokens.transfer(ix.account("from"), ix.account("to"), ix.amount, authority=ix.signer)
            raise RuntimeError("handler failed after transfer")
        if ix.name == "note":
            ctx.accounts.create_account(ix.account("note"), self.program_id, 16, payer=ix.signer)
            ctx.accounts.write(ix.account("note"), ctx.timestamp.to_bytes(8, 'big'), self.program_id)
            return ctx.timestamp
        raise ValueError(f"unknown instruction {ix.name}")


def make_runtime(clock=None):
    tokens = TokenLedger()
    tokens.create_mint(USDC, 6, AUTHORITY)
    for owner in (ALICE, BOB, CAROL):
        account = tokens.open_associated_account(owner, USDC)
        tokens.mint_to(USDC, account.address, FUNDS, AUTHORITY)
    runtime = LedgerRuntime([PaymentProgram()], tokens=tokens, clock=clock or ManualClock())
    runtime.accounts.airdrop(ALICE, 10**9)
    return runtime


def pay(sender, recipient, amount, name="pay"):
    source = associated_token_address(sender, USDC)
    destination = associated_token_address(recipient, USDC)
    return Instruction(
        program_id=PAYMENTS_ID,
        name=name,
        accounts={"from": source, "to": destination},
        signer=sender,
        writable=(source, destination),
        amount=amount,
    )


def note(owner):
    return Instruction(
        program_id=PAYMENTS_ID,
        name="note",
        accounts={"note": NOTE},
        signer=owner,
        writable=(owner, NOTE),
    )


def balance(runtime, owner):
    return runtime.tokens.balance_of(associated_token_address(owner, USDC))


# ============================================================================
#  ACCOUNT STORE
# ============================================================================

class TestRent:

    def test_minimum_balance(self):
        rent = Rent(lamports_per_byte_year=10, exemption_threshold_years=2, account_storage_overhead=100)
        assert rent.minimum_balance(0) == 2_000
        assert rent.minimum_balance(50) == 3_000

    def test_grows_with_size(self):
        rent = Rent()
        assert rent.minimum_balance(100) > rent.minimum_balance(10)


class TestAccountStore:

    def test_create_charges_payer(self):
        store = AccountStore()
        store.airdrop(ALICE, 10**9)
        account = store.create_account(NOTE, PAYMENTS_ID, 32, payer=ALICE)

        deposit = store.rent.minimum_balance(32)
        assert account.lamports == deposit
        assert store.native_balance_of(ALICE) == 10**9 - deposit
        assert store.exists(NOTE)

    def test_create_without_funds(self):
        store = AccountStore()
        with pytest.raises(InsufficientFundsForRentError):
            store.create_account(NOTE, PAYMENTS_ID, 32, payer=ALICE)
        assert not store.exists(NOTE)

    def test_create_twice(self):
        store = AccountStore()
        store.airdrop(ALICE, 10**9)
        store.create_account(NOTE, PAYMENTS_ID, 32, payer=ALICE)
        with pytest.raises(AccountAlreadyExistsError):
            store.create_account(NOTE, PAYMENTS_ID, 32, payer=ALICE)

    def test_write_guarded_by_owner(self):
        store = AccountStore()
        store.airdrop(ALICE, 10**9)
        store.create_account(NOTE, PAYMENTS_ID, 4, payer=ALICE)
        store.write(NOTE, b"\x01\x02", PAYMENTS_ID)
        assert store.get(NOTE).data == b"\x01\x02"

        with pytest.raises(AccountOwnerMismatchError):
            store.write(NOTE, b"\x03", OTHER_ID)
        with pytest.raises(AccountDataTooLargeError):
            store.write(NOTE, b"\x00" * 5, PAYMENTS_ID)

    def test_write_missing(self):
        with pytest.raises(AccountMissingError):
            AccountStore().write(NOTE, b"", PAYMENTS_ID)

    def test_close_refunds_deposit(self):
        store = AccountStore()
        store.airdrop(ALICE, 10**9)
        store.create_account(NOTE, PAYMENTS_ID, 32, payer=ALICE)

        refund = store.close_account(NOTE, ALICE, PAYMENTS_ID)
        assert refund == store.rent.minimum_balance(32)
        assert store.native_balance_of(ALICE) == 10**9
        assert store.get(NOTE) is None

    def test_close_by_other_program(self):
        store = AccountStore()
        store.airdrop(ALICE, 10**9)
        store.create_account(NOTE, PAYMENTS_ID, 32, payer=ALICE)
        with pytest.raises(AccountOwnerMismatchError):
            store.close_account(NOTE, BOB, OTHER_ID)

    def test_snapshot_revert(self):
        store = AccountStore()
        store.airdrop(ALICE, 10**9)
        snap = store.snapshot()
        store.create_account(NOTE, PAYMENTS_ID, 32, payer=ALICE)
        store.revert(snap)
        assert not store.exists(NOTE)
        assert store.native_balance_of(ALICE) == 10**9


# ============================================================================
#  CLOCKS
# ============================================================================

class TestClocks:

    def test_manual_clock(self):
        clock = ManualClock(start=100)
        assert clock.now() == 100
        assert clock.advance(5) == 105
        clock.set(50)
        assert clock.now() == 50

    def test_manual_clock_rejects_negative_advance(self):
        with pytest.raises(ValueError):
            ManualClock().advance(-1)

    def test_system_clock_is_integer(self):
        assert isinstance(SystemClock().now(), int)


# ============================================================================
#  RUNTIME
# ============================================================================

@pytest.mark.asyncio
class TestSubmit:

    async def test_receipt(self):
        clock = ManualClock(start=1_000)
        runtime = make_runtime(clock)
        receipt = await runtime.submit(pay(ALICE, BOB, 10), signers=[ALICE])

        assert receipt.result == 10
        assert receipt.timestamp == 1_000
        assert is_valid_address(receipt.signature)
        assert receipt.logs[0] == f"Program {PAYMENTS_ID} invoke: pay"
        assert "Program log: paid 10" in receipt.logs
        assert receipt.logs[-1] == f"Program {PAYMENTS_ID} success"
        assert balance(runtime, BOB) == FUNDS + 10

    async def test_signatures_unique(self):
        runtime = make_runtime()
        first = await runtime.submit(pay(ALICE, BOB, 1), signers=[ALICE])
        second = await runtime.submit(pay(ALICE, BOB, 1), signers=[ALICE])
        assert first.signature != second.signature

    async def test_missing_signature(self):
        runtime = make_runtime()
        with pytest.raises(MissingSignatureError):
            await runtime.submit(pay(ALICE, BOB, 10), signers=[BOB])
        assert balance(runtime, ALICE) == FUNDS

    async def test_unknown_program(self):
        runtime = make_runtime()
        ix = Instruction(program_id=OTHER_ID, name="pay", signer=ALICE)
        with pytest.raises(UnknownProgramError):
            await runtime.submit(ix, signers=[ALICE])

    async def test_empty_transaction(self):
        runtime = make_runtime()
        with pytest.raises(RuntimeLedgerError):
            await runtime.submit_transaction([], signers=[ALICE])

    async def test_negative_amount_reaches_handler(self):
        runtime = make_runtime()
        with pytest.raises(TokenLedgerError):
            await runtime.submit(pay(ALICE, BOB, -10), signers=[ALICE])
        assert balance(runtime, ALICE) == FUNDS
        assert balance(runtime, BOB) == FUNDS

    async def test_any_amount_encodes(self):
        encodings = {pay(ALICE, BOB, amount).encode() for amount in (0, 10, -10, 1.5, "10")}
        assert len(encodings) == 5

    async def test_timestamp_from_clock(self):
        clock = ManualClock(start=5_000)
        runtime = make_runtime(clock)
        clock.advance(42)
        receipt = await runtime.submit(note(ALICE), signers=[ALICE])
        assert receipt.result == 5_042
        assert runtime.accounts.get(NOTE).data == (5_042).to_bytes(8, 'big')


@pytest.mark.asyncio
class TestAtomicity:

    async def test_failed_handler_reverts_transfers(self):
        runtime = make_runtime()
        with pytest.raises(RuntimeError):
            await runtime.submit(pay(ALICE, BOB, 10, name="pay_then_fail"), signers=[ALICE])
        assert balance(runtime, ALICE) == FUNDS
        assert balance(runtime, BOB) == FUNDS
        assert runtime.tokens.events == []

    async def test_multi_instruction_rollback(self):
        runtime = make_runtime()
        with pytest.raises(InsufficientBalanceError):
            await runtime.submit_transaction(
                [note(ALICE), pay(ALICE, BOB, 10), pay(ALICE, CAROL, FUNDS)],
                signers=[ALICE],
            )
        assert not runtime.accounts.exists(NOTE)
        assert runtime.accounts.native_balance_of(ALICE) == 10**9
        assert balance(runtime, ALICE) == FUNDS
        assert balance(runtime, BOB) == FUNDS

    async def test_multi_instruction_commit(self):
        runtime = make_runtime()
        receipt = await runtime.submit_transaction(
            [pay(ALICE, BOB, 10), pay(BOB, CAROL, 5)],
            signers=[ALICE, BOB],
        )
        assert receipt.results == [10, 5]
        assert balance(runtime, CAROL) == FUNDS + 5

    async def test_multi_instruction_requires_every_signer(self):
        runtime = make_runtime()
        with pytest.raises(MissingSignatureError):
            await runtime.submit_transaction(
                [pay(ALICE, BOB, 10), pay(BOB, CAROL, 5)],
                signers=[ALICE],
            )
        assert balance(runtime, BOB) == FUNDS

    async def test_runtime_usable_after_failure(self):
        runtime = make_runtime()
        with pytest.raises(RuntimeError):
            await runtime.submit(pay(ALICE, BOB, 10, name="pay_then_fail"), signers=[ALICE])
        await runtime.submit(pay(ALICE, BOB, 10), signers=[ALICE])
        assert balance(runtime, BOB) == FUNDS + 10


@pytest.mark.asyncio
class TestLocking:

    async def test_concurrent_transfers_conserve_supply(self):
        runtime = make_runtime()
        transfers = [pay(ALICE, BOB, 1), pay(BOB, CAROL, 2), pay(CAROL, ALICE, 3)] * 20
        await asyncio.gather(*(
            runtime.submit(ix, signers=[ix.signer]) for ix in transfers
        ))
        total = sum(balance(runtime, owner) for owner in (ALICE, BOB, CAROL))
        assert total == 3 * FUNDS
        assert balance(runtime, ALICE) == FUNDS - 20 + 60

    async def test_shared_account_waits_for_lock(self):
        runtime = make_runtime()
        busy = associated_token_address(BOB, USDC)
        await runtime._locks[busy].acquire()

        task = asyncio.create_task(runtime.submit(pay(ALICE, BOB, 10), signers=[ALICE]))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert not task.done()

        runtime._locks[busy].release()
        receipt = await task
        assert receipt.result == 10

    async def test_disjoint_accounts_do_not_wait(self):
        runtime = make_runtime()
        busy = associated_token_address(CAROL, USDC)
        await runtime._locks[busy].acquire()
        try:
            receipt = await asyncio.wait_for(
                runtime.submit(pay(ALICE, BOB, 10), signers=[ALICE]), timeout=1
            )
            assert receipt.result == 10
        finally:
            runtime._locks[busy].release()
