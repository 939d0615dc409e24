"""
Token Ledger Service

Holds fungible balances per token account per token class. This is the
in-process stand-in for the external token program: the stake program never
edits balances itself, it only issues open / transfer / close calls here.

Provides:
  - Mint          : a token class (decimals, mint authority, supply)
  - TokenAccount  : a balance of one token class controlled by one authority
  - TokenLedger   : atomic transfer, account open/close, snapshots for rollback
"""

import copy
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..constants import U64_MAX
from ..crypto.address import associated_token_address, normalize_address
from ..exceptions import StakeLedgerException
from ..logger import get_logger

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class TokenLedgerError(StakeLedgerException):
    """Base exception for token ledger operations."""


class InsufficientBalanceError(TokenLedgerError):
    """Raised when a source account balance is too low."""


class TokenAccountNotFoundError(TokenLedgerError):
    """Raised when a referenced token account or mint does not exist."""


class TokenAccountExistsError(TokenLedgerError):
    """Raised when opening an account at an occupied address."""


class MintMismatchError(TokenLedgerError):
    """Raised when two accounts of different token classes are combined."""


class OwnerMismatchError(TokenLedgerError):
    """Raised when the signing authority does not control the account."""


# ══════════════════════════════════════════════════════════════════════
#  STATE
# ══════════════════════════════════════════════════════════════════════

@dataclass
class Mint:
    """A fungible token class."""
    address: str
    decimals: int
    mint_authority: str
    supply: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "decimals": self.decimals,
            "mintAuthority": self.mint_authority,
            "supply": str(self.supply),
        }


@dataclass
class TokenAccount:
    """Balance of one token class controlled by one authority."""
    address: str
    mint: str
    authority: str
    amount: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "mint": self.mint,
            "authority": self.authority,
            "amount": str(self.amount),
        }


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TransferEvent:
    """Emitted on every successful transfer."""
    mint: str
    source: str
    destination: str
    amount: int
    authority: str
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Transfer",
            "mint": self.mint,
            "from": self.source,
            "to": self.destination,
            "amount": str(self.amount),
            "authority": self.authority,
            "timestamp": self.timestamp,
        }


# ══════════════════════════════════════════════════════════════════════
#  TOKEN LEDGER
# ══════════════════════════════════════════════════════════════════════

class TokenLedger:
    """
    Token Ledger Service.

    Every mutating call either fully applies or raises before touching any
    balance. Multi-call atomicity (one instruction issuing several transfers)
    is provided by ``snapshot`` / ``revert``, which the runtime wraps around
    each instruction.
    """

    def __init__(self):
        self._mints: Dict[str, Mint] = {}
        self._accounts: Dict[str, TokenAccount] = {}
        self._events: List[TransferEvent] = []
        self._snapshots: List[Dict[str, Any]] = []

    # ── Read-only views ───────────────────────────────────────────────

    def get_mint(self, address: str) -> Optional[Mint]:
        return self._mints.get(normalize_address(address))

    def get_account(self, address: str) -> Optional[TokenAccount]:
        return self._accounts.get(normalize_address(address))

    def account_exists(self, address: str) -> bool:
        return normalize_address(address) in self._accounts

    def balance_of(self, address: str) -> int:
        """Balance of a token account; 0 when it does not exist."""
        account = self.get_account(address)
        return account.amount if account else 0

    @property
    def events(self) -> List[TransferEvent]:
        return list(self._events)

    def _require_mint(self, address: str) -> Mint:
        mint = self.get_mint(address)
        if mint is None:
            raise TokenAccountNotFoundError(f"Mint {address} not found")
        return mint

    def _require_account(self, address: str) -> TokenAccount:
        account = self.get_account(address)
        if account is None:
            raise TokenAccountNotFoundError(f"Token account {address} not found")
        return account

    # ── Mint management (bootstrap / top-ups) ─────────────────────────

    def create_mint(self, address: str, decimals: int, mint_authority: str) -> Mint:
        """Register a token class."""
        address = normalize_address(address)
        if decimals < 0 or decimals > 18:
            raise TokenLedgerError(f"Decimals must be 0-18, got {decimals}")
        if address in self._mints:
            raise TokenAccountExistsError(f"Mint {address} already exists")

        mint = Mint(address=address, decimals=decimals,
                    mint_authority=normalize_address(mint_authority))
        self._mints[address] = mint
        logger.info(f"Mint created: {address} (decimals={decimals})")
        return mint

    def mint_to(self, mint: str, destination: str, amount: int, authority: str) -> None:
        """Create new supply into *destination* (mint authority only)."""
        token_class = self._require_mint(mint)
        account = self._require_account(destination)

        if normalize_address(authority) != token_class.mint_authority:
            raise OwnerMismatchError(f"{authority} is not the mint authority of {mint}")
        if account.mint != token_class.address:
            raise MintMismatchError(f"Account {destination} does not hold {mint}")
        if amount <= 0:
            raise TokenLedgerError("Mint amount must be positive")
        if token_class.supply + amount > U64_MAX or account.amount + amount > U64_MAX:
            raise TokenLedgerError(f"Minting {amount} would overflow")

        token_class.supply += amount
        account.amount += amount
        logger.debug(f"MintTo: {amount} → {destination}")

    # ── Account lifecycle ─────────────────────────────────────────────

    def open_account(self, address: str, mint: str, authority: str) -> TokenAccount:
        """
        Open an empty token account.

        Raises:
            TokenAccountExistsError: If an account already lives at *address*
        """
        address = normalize_address(address)
        token_class = self._require_mint(mint)
        if address in self._accounts:
            raise TokenAccountExistsError(f"Token account {address} already exists")

        account = TokenAccount(
            address=address,
            mint=token_class.address,
            authority=normalize_address(authority),
        )
        self._accounts[address] = account
        logger.debug(f"Token account opened: {address} (authority={account.authority})")
        return account

    def open_associated_account(self, owner: str, mint: str) -> TokenAccount:
        """Open the canonical token account of *owner* for *mint*."""
        return self.open_account(associated_token_address(owner, mint), mint, owner)

    def close_account(self, address: str, destination: str, authority: str) -> int:
        """
        Close a token account, sweeping any residual balance to *destination*.

        Returns:
            The swept amount
        """
        account = self._require_account(address)
        if normalize_address(authority) != account.authority:
            raise OwnerMismatchError(f"{authority} cannot close {address}")

        residual = account.amount
        if residual > 0:
            self.transfer(account.address, destination, residual, authority)

        del self._accounts[account.address]
        logger.debug(f"Token account closed: {account.address} (swept {residual})")
        return residual

    # ── Transfers ─────────────────────────────────────────────────────

    def transfer(
        self,
        source: str,
        destination: str,
        amount: int,
        authority: str,
    ) -> TransferEvent:
        """
        Move *amount* from *source* to *destination*.

        Raises:
            TokenLedgerError: Non-positive amount or same source and destination
            OwnerMismatchError: *authority* does not control *source*
            MintMismatchError: Accounts hold different token classes
            InsufficientBalanceError: *source* holds less than *amount*
        """
        if amount <= 0:
            raise TokenLedgerError("Transfer amount must be positive")

        src = self._require_account(source)
        dst = self._require_account(destination)

        if src.address == dst.address:
            raise TokenLedgerError("Cannot transfer to self")
        if normalize_address(authority) != src.authority:
            raise OwnerMismatchError(f"{authority} is not the authority of {src.address}")
        if src.mint != dst.mint:
            raise MintMismatchError(f"Cannot transfer {src.mint} into a {dst.mint} account")
        if src.amount < amount:
            raise InsufficientBalanceError(
                f"{src.address} balance {src.amount} < transfer amount {amount}"
            )
        if dst.amount + amount > U64_MAX:
            raise TokenLedgerError(f"Transfer would overflow {dst.address}")

        src.amount -= amount
        dst.amount += amount

        event = TransferEvent(
            mint=src.mint,
            source=src.address,
            destination=dst.address,
            amount=amount,
            authority=src.authority,
        )
        self._events.append(event)
        logger.debug(f"Transfer: {src.address} → {dst.address} {amount}")
        return event

    # ── Snapshots ─────────────────────────────────────────────────────

    def snapshot(self) -> int:
        """Capture the full ledger state; returns a snapshot id."""
        self._snapshots.append({
            "mints": copy.deepcopy(self._mints),
            "accounts": copy.deepcopy(self._accounts),
            "events": len(self._events),
        })
        return len(self._snapshots) - 1

    def revert(self, snapshot_id: int) -> None:
        """Restore the state captured by *snapshot_id* and drop newer snapshots."""
        if snapshot_id < 0 or snapshot_id >= len(self._snapshots):
            raise ValueError(f"Invalid snapshot ID: {snapshot_id}")

        snapshot = self._snapshots[snapshot_id]
        self._mints = snapshot["mints"]
        self._accounts = snapshot["accounts"]
        del self._events[snapshot["events"]:]
        self._snapshots = self._snapshots[:snapshot_id]

    def discard(self, snapshot_id: int) -> None:
        """Forget *snapshot_id* (and newer ones) after a successful commit."""
        if snapshot_id < 0 or snapshot_id >= len(self._snapshots):
            raise ValueError(f"Invalid snapshot ID: {snapshot_id}")
        self._snapshots = self._snapshots[:snapshot_id]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mints": {a: m.to_dict() for a, m in self._mints.items()},
            "accounts": {a: t.to_dict() for a, t in self._accounts.items()},
        }

    def __repr__(self) -> str:
        return f"<TokenLedger mints={len(self._mints)} accounts={len(self._accounts)}>"

