"""Drive an execution engine through the deployment calls and capture the dump."""

from __future__ import annotations

import importlib
import logging
from typing import List, Optional, Protocol, Tuple

from eth_utils import decode_hex

from .address import parse_optional_address
from .config import ZERO_ADDRESS, DumpConfig
from .errors import ErrorCode, DumpError
from .state_digest import compute_dump_digest
from .transformer import remap_dump
from .types import DumpInput, ExecutionResult, Message, SimplifiedTx, StateDump

logger = logging.getLogger(__name__)


class ExecutionEngine(Protocol):
    """The state-transition engine and its store.

    Implementations apply one message at a time against a single mutable
    store; messages are never applied concurrently.
    """

    def get_nonce(self, address: bytes) -> int: ...

    def apply_message(self, message: Message) -> ExecutionResult: ...

    def commit(self) -> str: ...

    def dump(self) -> StateDump: ...


def load_engine(factory_path: str, config: DumpConfig) -> ExecutionEngine:
    """Instantiate an engine from a ``"package.module:factory"`` string.

    The factory is called with the `DumpConfig` for the run.
    """
    module_name, sep, attr = factory_path.partition(":")
    if not sep or not module_name or not attr:
        raise DumpError(ErrorCode.INVALID_FORMAT, f"engine must be 'module:factory', got {factory_path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise DumpError(ErrorCode.INVALID_FORMAT, f"cannot import engine module {module_name!r}: {exc}")
    factory = getattr(module, attr, None)
    if factory is None:
        raise DumpError(ErrorCode.INVALID_FORMAT, f"{module_name!r} has no attribute {attr!r}")
    return factory(config)


def decode_call_data(data: str) -> bytes:
    try:
        return decode_hex(data or "0x")
    except (ValueError, TypeError) as exc:
        raise DumpError(ErrorCode.INVALID_HEX, f"malformed call data: {exc}")


def apply_message_to_state(
    engine: ExecutionEngine,
    sender: bytes,
    to: Optional[bytes],
    data: bytes,
    config: DumpConfig,
) -> ExecutionResult:
    """Apply one call and commit. A failed call is reported, not raised."""
    if to == ZERO_ADDRESS:
        to = None
    message = Message(
        sender=sender,
        to=to,
        nonce=engine.get_nonce(sender),
        data=data,
        gas_limit=config.gas_limit,
    )

    result = engine.apply_message(message)
    result.commit_hash = engine.commit()

    if result.failed:
        logger.warning(
            "Call from %s failed. Gas used: %d Error: %s",
            sender.hex(), result.gas_used, result.error,
        )
    else:
        logger.info("Return val: [HIDDEN] Gas used: %d Failed: False", result.gas_used)
    logger.info("Commit hash: %s", result.commit_hash)
    return result


def _call_sender(tx: SimplifiedTx, dump_input: DumpInput) -> bytes:
    sender = parse_optional_address(tx.sender)
    return sender if sender is not None else dump_input.wallet_address


def apply_transactions(
    engine: ExecutionEngine, dump_input: DumpInput, config: DumpConfig
) -> List[ExecutionResult]:
    # Decode everything up front so bad input aborts before the store is touched.
    calls = [
        (_call_sender(tx, dump_input), parse_optional_address(tx.to), decode_call_data(tx.data))
        for tx in dump_input.simplified_txs
    ]

    results = []
    for sender, to, data in calls:
        results.append(apply_message_to_state(engine, sender, to, data, config))
    return results


def build_state_dump(
    dump_input: DumpInput,
    engine: ExecutionEngine,
    config: Optional[DumpConfig] = None,
) -> Tuple[StateDump, StateDump, List[ExecutionResult]]:
    """Run the deployment calls and return (raw dump, remapped dump, call results)."""
    config = config or DumpConfig()

    results = apply_transactions(engine, dump_input, config)
    failed = sum(1 for r in results if r.failed)
    if failed:
        logger.warning("%d of %d calls failed; continuing with the resulting state", failed, len(results))

    raw = engine.dump()
    logger.info("Dump root: %s", raw.root)
    logger.info("Raw dump digest: %s (%d accounts)", compute_dump_digest(raw), len(raw.accounts))

    updated = remap_dump(raw, dump_input, config)
    logger.info("Remapped dump digest: %s", compute_dump_digest(updated))
    return raw, updated, results
