"""Core types for genesis state dumps.

Addresses are raw 20-byte `bytes` everywhere inside the package; hex text only
exists at the JSON boundary (see `dump_io`).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .errors import ErrorCode


@dataclass
class SimplifiedTx:
    """One scripted call. An empty or zero `to` means contract creation."""
    sender: str = ""
    to: str = ""
    data: str = ""


@dataclass
class DumpInput:
    simplified_txs: List[SimplifiedTx] = field(default_factory=list)
    wallet_address: bytes = bytes(20)
    execution_manager_address: bytes = bytes(20)
    state_manager_address: bytes = bytes(20)
    # fingerprint name -> "0x"-prefixed code hash
    code_hashes: Dict[str, str] = field(default_factory=dict)


@dataclass
class DumpAccount:
    balance: str = "0"
    nonce: int = 0
    root: str = ""
    code_hash: str = ""
    code: str = ""
    storage: Dict[str, str] = field(default_factory=dict)


@dataclass
class StateDump:
    root: str = ""
    accounts: Dict[bytes, DumpAccount] = field(default_factory=dict)

    def sorted_addresses(self) -> List[bytes]:
        return sorted(self.accounts)


@dataclass(frozen=True)
class ReservedPin:
    original: bytes
    desired: bytes
    reason: str = ""


@dataclass
class Message:
    sender: bytes
    to: Optional[bytes]
    nonce: int
    data: bytes
    gas_limit: int
    value: int = 0
    gas_price: int = 0

    @property
    def is_create(self) -> bool:
        return self.to is None


@dataclass
class ExecutionResult:
    """Outcome of one applied message, as reported by the engine."""
    gas_used: int = 0
    failed: bool = False
    return_value: bytes = b""
    error: Optional[str] = None
    commit_hash: str = ""

    @property
    def code(self) -> ErrorCode:
        return ErrorCode.EXECUTION_FAILED if self.failed else ErrorCode.SUCCESS
