"""
Ledger Runtime

Atomic execution of program instructions over:
- AccountStore  : program-owned data accounts and storage deposits
- TokenLedger   : token balances (see stakeledger.tokens)
- Clock         : per-transaction timestamp
"""

from .accounts import (
    AccountStore,
    StoredAccount,
    Rent,
    AccountStoreError,
    AccountAlreadyExistsError,
    AccountMissingError,
    AccountOwnerMismatchError,
    AccountDataTooLargeError,
    InsufficientFundsForRentError,
)
from .clock import ManualClock, SystemClock
from .runtime import (
    InvocationContext,
    LedgerRuntime,
    MissingSignatureError,
    RuntimeLedgerError,
    UnknownProgramError,
)
from .transaction import Instruction, TransactionReceipt

__all__ = [
    "AccountStore",
    "StoredAccount",
    "Rent",
    "AccountStoreError",
    "AccountAlreadyExistsError",
    "AccountMissingError",
    "AccountOwnerMismatchError",
    "AccountDataTooLargeError",
    "InsufficientFundsForRentError",
    "ManualClock",
    "SystemClock",
    "InvocationContext",
    "LedgerRuntime",
    "MissingSignatureError",
    "RuntimeLedgerError",
    "UnknownProgramError",
    "Instruction",
    "TransactionReceipt",
]
