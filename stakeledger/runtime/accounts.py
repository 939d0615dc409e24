"""
Program Account Store

Holds program-owned data accounts (e.g. stake records) and the native
balances that pay their storage deposits. Mirrors the snapshot / revert
model of an account-based state manager so an instruction can be rolled
back as a unit.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..constants import (
    ACCOUNT_STORAGE_OVERHEAD,
    EXEMPTION_THRESHOLD_YEARS,
    LAMPORTS_PER_BYTE_YEAR,
)
from ..crypto.address import normalize_address
from ..exceptions import StakeLedgerException
from ..logger import get_logger

logger = get_logger(__name__)


class AccountStoreError(StakeLedgerException):
    """Base exception for account store operations."""


class AccountAlreadyExistsError(AccountStoreError):
    """Raised when creating an account at an occupied address."""


class AccountMissingError(AccountStoreError):
    """Raised when a data account does not exist."""


class AccountOwnerMismatchError(AccountStoreError):
    """Raised when a program touches an account it does not own."""


class AccountDataTooLargeError(AccountStoreError):
    """Raised when data does not fit the space allocated at creation."""


class InsufficientFundsForRentError(AccountStoreError):
    """Raised when the payer cannot cover the storage deposit."""


@dataclass
class Rent:
    """Storage deposit schedule."""
    lamports_per_byte_year: int = LAMPORTS_PER_BYTE_YEAR
    exemption_threshold_years: int = EXEMPTION_THRESHOLD_YEARS
    account_storage_overhead: int = ACCOUNT_STORAGE_OVERHEAD

    def minimum_balance(self, data_len: int) -> int:
        """Deposit that keeps an account of *data_len* bytes alive indefinitely."""
        return (
            (self.account_storage_overhead + data_len)
            * self.lamports_per_byte_year
            * self.exemption_threshold_years
        )


@dataclass
class StoredAccount:
    """
    A program-owned data account.

    Attributes:
        address: Account address
        owner: Program allowed to write and close the account
        space: Bytes allocated at creation
        data: Current contents (at most *space* bytes)
        lamports: Storage deposit held by the account
    """
    address: str
    owner: str
    space: int
    data: bytes = b""
    lamports: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "owner": self.owner,
            "space": self.space,
            "data": self.data.hex(),
            "lamports": self.lamports,
        }


class AccountStore:
    """
    Data accounts plus native balances.

    Responsibilities:
    - Create accounts, charging the payer the storage deposit
    - Guard writes and closes by owning program
    - Refund the deposit when an account is closed
    - Snapshot and revert for instruction atomicity
    """

    def __init__(self, rent: Optional[Rent] = None):
        self.rent = rent or Rent()
        self._accounts: Dict[str, StoredAccount] = {}
        self._native: Dict[str, int] = {}
        self._snapshots: List[Dict[str, Any]] = []

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get(self, address: str) -> Optional[StoredAccount]:
        return self._accounts.get(normalize_address(address))

    def exists(self, address: str) -> bool:
        return normalize_address(address) in self._accounts

    def native_balance_of(self, address: str) -> int:
        return self._native.get(normalize_address(address), 0)

    # =========================================================================
    # NATIVE BALANCES
    # =========================================================================

    def airdrop(self, address: str, lamports: int) -> None:
        """Credit native balance (bootstrap only)."""
        if lamports <= 0:
            raise AccountStoreError("Airdrop amount must be positive")
        address = normalize_address(address)
        self._native[address] = self._native.get(address, 0) + lamports

    # =========================================================================
    # ACCOUNT LIFECYCLE
    # =========================================================================

    def create_account(self, address: str, owner: str, space: int, payer: str) -> StoredAccount:
        """
        Allocate a data account owned by *owner*.

        Raises:
            AccountAlreadyExistsError: Address already in use
            InsufficientFundsForRentError: Payer cannot fund the deposit
        """
        address = normalize_address(address)
        payer = normalize_address(payer)
        if address in self._accounts:
            raise AccountAlreadyExistsError(f"Account {address} already in use")

        deposit = self.rent.minimum_balance(space)
        available = self._native.get(payer, 0)
        if available < deposit:
            raise InsufficientFundsForRentError(
                f"{payer} has {available} lamports, needs {deposit} for {space} bytes"
            )

        self._native[payer] = available - deposit
        account = StoredAccount(
            address=address,
            owner=normalize_address(owner),
            space=space,
            lamports=deposit,
        )
        self._accounts[address] = account
        logger.debug(f"Account created: {address} space={space} deposit={deposit}")
        return account

    def _owned(self, address: str, program_id: str) -> StoredAccount:
        account = self.get(address)
        if account is None:
            raise AccountMissingError(f"Account {address} does not exist")
        if account.owner != normalize_address(program_id):
            raise AccountOwnerMismatchError(
                f"Account {account.address} is owned by {account.owner}"
            )
        return account

    def write(self, address: str, data: bytes, program_id: str) -> None:
        """Replace the data of an account owned by *program_id*."""
        account = self._owned(address, program_id)
        if len(data) > account.space:
            raise AccountDataTooLargeError(
                f"{len(data)} bytes do not fit account {account.address} ({account.space})"
            )
        account.data = bytes(data)

    def close_account(self, address: str, destination: str, program_id: str) -> int:
        """
        Delete an account and refund its deposit to *destination*.

        Returns:
            Refunded lamports
        """
        account = self._owned(address, program_id)
        destination = normalize_address(destination)
        self._native[destination] = self._native.get(destination, 0) + account.lamports
        del self._accounts[account.address]
        logger.debug(f"Account closed: {account.address} refund={account.lamports} → {destination}")
        return account.lamports

    # =========================================================================
    # SNAPSHOTS
    # =========================================================================

    def snapshot(self) -> int:
        """Create state snapshot for revert."""
        self._snapshots.append({
            "accounts": copy.deepcopy(self._accounts),
            "native": dict(self._native),
        })
        return len(self._snapshots) - 1

    def revert(self, snapshot_id: int) -> None:
        """Revert state to snapshot."""
        if snapshot_id < 0 or snapshot_id >= len(self._snapshots):
            raise ValueError(f"Invalid snapshot ID: {snapshot_id}")

        snapshot = self._snapshots[snapshot_id]
        self._accounts = snapshot["accounts"]
        self._native = snapshot["native"]
        self._snapshots = self._snapshots[:snapshot_id]

    def discard(self, snapshot_id: int) -> None:
        """Drop a snapshot once its instruction has committed."""
        if snapshot_id < 0 or snapshot_id >= len(self._snapshots):
            raise ValueError(f"Invalid snapshot ID: {snapshot_id}")
        self._snapshots = self._snapshots[:snapshot_id]

    def __repr__(self) -> str:
        return f"<AccountStore accounts={len(self._accounts)}>"
