"""
Instructions and transaction receipts.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

import rlp

from ..crypto.address import address_to_bytes


def _encode_amount(amount: Any) -> Union[int, bytes]:
    # RLP only takes non-negative ints; anything else is encoded by repr and
    # left for the program to reject
    if amount is None:
        return b""
    if isinstance(amount, int) and not isinstance(amount, bool) and amount >= 0:
        return amount
    return repr(amount).encode()


@dataclass(frozen=True)
class Instruction:
    """
    One call into a program.

    Attributes:
        program_id: Program that processes the instruction
        name: Handler name (e.g. "stake")
        accounts: Role → address map of every account the handler touches
        signer: Identity that must sign the enclosing transaction
        writable: Addresses the handler may mutate; the runtime locks these
        amount: Optional integer argument
    """
    program_id: str
    name: str
    accounts: Dict[str, str] = field(default_factory=dict)
    signer: str = ""
    writable: Tuple[str, ...] = ()
    amount: Optional[int] = None

    def account(self, role: str) -> str:
        try:
            return self.accounts[role]
        except KeyError:
            raise KeyError(f"Instruction {self.name} is missing account '{role}'") from None

    def encode(self) -> bytes:
        """Canonical RLP encoding, used for transaction signatures."""
        return rlp.encode([
            address_to_bytes(self.program_id),
            self.name.encode(),
            [[role.encode(), address_to_bytes(addr)] for role, addr in sorted(self.accounts.items())],
            address_to_bytes(self.signer),
            _encode_amount(self.amount),
        ])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "programId": self.program_id,
            "name": self.name,
            "accounts": dict(self.accounts),
            "signer": self.signer,
            "amount": None if self.amount is None else str(self.amount),
        }


@dataclass
class TransactionReceipt:
    """Outcome of a committed transaction."""
    signature: str
    instructions: List[Instruction]
    results: List[Any]
    logs: List[str]
    timestamp: int

    @property
    def result(self) -> Any:
        """Result of the last instruction."""
        return self.results[-1] if self.results else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signature": self.signature,
            "instructions": [ix.to_dict() for ix in self.instructions],
            "logs": list(self.logs),
            "timestamp": self.timestamp,
        }
