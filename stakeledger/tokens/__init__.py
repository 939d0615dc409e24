"""
Token Ledger Service

Provides:
  - TokenLedger   : balances, atomic transfers, account open/close
  - Mint          : token class metadata
  - TokenAccount  : per-authority balance of one token class
"""

from .ledger import (
    Mint,
    TokenAccount,
    TokenLedger,
    TransferEvent,
    TokenLedgerError,
    InsufficientBalanceError,
    TokenAccountNotFoundError,
    TokenAccountExistsError,
    MintMismatchError,
    OwnerMismatchError,
)

__all__ = [
    "Mint",
    "TokenAccount",
    "TokenLedger",
    "TransferEvent",
    "TokenLedgerError",
    "InsufficientBalanceError",
    "TokenAccountNotFoundError",
    "TokenAccountExistsError",
    "MintMismatchError",
    "OwnerMismatchError",
]
