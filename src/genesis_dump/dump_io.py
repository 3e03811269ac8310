"""Read deployment inputs and read/write state dumps."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .address import address_to_hex, parse_address, parse_optional_address
from .config import ZERO_ADDRESS, DumpConfig
from .errors import ErrorCode, DumpError
from .types import DumpAccount, DumpInput, SimplifiedTx, StateDump

logger = logging.getLogger(__name__)

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
MAX_NONCE = (1 << 64) - 1


def load_document(path: Path) -> Any:
    """Load a JSON or YAML document, chosen by file suffix.

    YAML reads unquoted `0x...` scalars as integers, so hex values (addresses,
    call data, code hashes) must be quoted in YAML inputs.
    """
    try:
        text = Path(path).read_text()
    except OSError as exc:
        raise DumpError(ErrorCode.INVALID_FORMAT, f"cannot read {path}: {exc}")

    try:
        if Path(path).suffix.lower() in (".yaml", ".yml"):
            return yaml.safe_load(text)
        return json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise DumpError(ErrorCode.INVALID_JSON, f"cannot parse {path}: {exc}")


def _get(data: Dict[str, Any], name: str, default: Any = None) -> Any:
    """Field lookup that ignores key case, the way Go's encoding/json does."""
    if name in data:
        return data[name]
    lowered = name.lower()
    for key, value in data.items():
        if isinstance(key, str) and key.lower() == lowered:
            return value
    return default


def _require_mapping(value: Any, what: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise DumpError(ErrorCode.INVALID_FORMAT, f"{what} must be an object")
    return value


def _text_field(data: Dict[str, Any], name: str, where: str) -> str:
    value = _get(data, name, "")
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        raise DumpError(
            ErrorCode.INVALID_FORMAT,
            f"{where}.{name} was read as the number {value}; quote hex values in YAML input",
        )
    raise DumpError(ErrorCode.INVALID_FORMAT, f"{where}.{name} must be a string, got {type(value).__name__}")


def _input_address(data: Dict[str, Any], name: str) -> bytes:
    addr = parse_optional_address(_text_field(data, name, "input"))
    return addr if addr is not None else ZERO_ADDRESS


def dump_input_from_json(data: Any) -> DumpInput:
    data = _require_mapping(data, "deployment input")

    txs = []
    for i, raw in enumerate(_get(data, "SimplifiedTxs") or []):
        raw = _require_mapping(raw, f"SimplifiedTxs[{i}]")
        tx = SimplifiedTx(
            sender=_text_field(raw, "From", f"SimplifiedTxs[{i}]"),
            to=_text_field(raw, "To", f"SimplifiedTxs[{i}]"),
            data=_text_field(raw, "Data", f"SimplifiedTxs[{i}]"),
        )
        # Validate early; the driver parses these again when it builds messages.
        parse_optional_address(tx.sender)
        parse_optional_address(tx.to)
        txs.append(tx)

    raw_hashes = _require_mapping(_get(data, "CodeHashes") or {}, "CodeHashes")
    code_hashes = {name: _text_field(raw_hashes, name, "CodeHashes") for name in raw_hashes}

    return DumpInput(
        simplified_txs=txs,
        wallet_address=_input_address(data, "WalletAddress"),
        execution_manager_address=_input_address(data, "ExecutionManagerAddress"),
        state_manager_address=_input_address(data, "StateManagerAddress"),
        code_hashes=code_hashes,
    )


def dump_input_to_json(dump_input: DumpInput) -> Dict[str, Any]:
    return {
        "SimplifiedTxs": [
            {"From": tx.sender, "To": tx.to, "Data": tx.data}
            for tx in dump_input.simplified_txs
        ],
        "WalletAddress": address_to_hex(dump_input.wallet_address),
        "ExecutionManagerAddress": address_to_hex(dump_input.execution_manager_address),
        "StateManagerAddress": address_to_hex(dump_input.state_manager_address),
        "CodeHashes": dict(dump_input.code_hashes),
    }


def account_to_json(account: DumpAccount) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "balance": account.balance,
        "nonce": account.nonce,
        "root": account.root,
        "codeHash": account.code_hash,
    }
    if account.code:
        out["code"] = account.code
    if account.storage:
        out["storage"] = {slot: account.storage[slot] for slot in sorted(account.storage)}
    return out


def dump_to_json(dump: StateDump) -> Dict[str, Any]:
    return {
        "root": dump.root,
        "accounts": {
            address_to_hex(addr): account_to_json(dump.accounts[addr])
            for addr in dump.sorted_addresses()
        },
    }


def _hex_field(data: Dict[str, Any], name: str) -> str:
    value = data.get(name) or ""
    if not isinstance(value, str):
        raise DumpError(ErrorCode.INVALID_HEX, f"{name} must be a hex string, got {value!r}")
    digits = value[2:] if value.startswith(("0x", "0X")) else value
    if not set(digits) <= _HEX_DIGITS:
        raise DumpError(ErrorCode.INVALID_HEX, f"{name} is not hex: {value!r}")
    return value


def _nonce_field(data: Dict[str, Any]) -> int:
    raw = data.get("nonce", 0)
    try:
        nonce = int(raw)
    except (TypeError, ValueError):
        raise DumpError(ErrorCode.INVALID_FORMAT, f"bad nonce {raw!r}")
    if not 0 <= nonce <= MAX_NONCE:
        raise DumpError(ErrorCode.INVALID_FORMAT, f"nonce {nonce} out of range")
    return nonce


def account_from_json(data: Any) -> DumpAccount:
    data = _require_mapping(data, "account")
    storage = _require_mapping(data.get("storage") or {}, "storage")
    return DumpAccount(
        balance=str(data.get("balance", "0")),
        nonce=_nonce_field(data),
        root=_hex_field(data, "root"),
        code_hash=_hex_field(data, "codeHash"),
        code=_hex_field(data, "code"),
        storage={str(k): str(v) for k, v in storage.items()},
    )


def dump_from_json(data: Any) -> StateDump:
    data = _require_mapping(data, "state dump")
    dump = StateDump(root=data.get("root", "") or "")
    accounts = _require_mapping(data.get("accounts") or {}, "accounts")
    for key, value in accounts.items():
        addr = parse_address(key)
        if addr in dump.accounts:
            raise DumpError(ErrorCode.INVALID_FORMAT, f"duplicate account {key}")
        dump.accounts[addr] = account_from_json(value)
    return dump


def marshal_dump(dump: StateDump) -> bytes:
    return json.dumps(dump_to_json(dump), separators=(",", ":"), sort_keys=True).encode()


def dump_hex(dump: StateDump) -> str:
    """Hex of the compact JSON dump, for embedding as a constant downstream."""
    return marshal_dump(dump).hex()


def write_outputs(
    dump: StateDump, out_dir: Path, config: Optional[DumpConfig] = None
) -> tuple[Path, Path]:
    """Write the hex and JSON forms of `dump`. Returns (hex path, json path)."""
    config = config or DumpConfig()
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    marshaled = marshal_dump(dump)
    hex_path = out_dir / config.hex_dump_filename
    json_path = out_dir / config.json_dump_filename
    hex_path.write_text(marshaled.hex())
    json_path.write_text(marshaled.decode())
    logger.info("Dump hex written to %s", hex_path)
    logger.info("JSON string version written to %s", json_path)
    return hex_path, json_path
