"""Canonical state dump digest."""
from __future__ import annotations

from blake3 import blake3

from .types import StateDump


def _hex_to_bytes(value: str) -> bytes:
    v = value[2:] if value.startswith(("0x", "0X")) else value
    if v == "":
        return b""
    if len(v) % 2:
        v = "0" + v
    return bytes.fromhex(v)


def _u64_be(value: int) -> bytes:
    if value < 0:
        raise ValueError("u64 must be non-negative")
    return int(value).to_bytes(8, "big", signed=False)


def _field(buf: bytearray, data: bytes) -> None:
    buf += _u64_be(len(data))
    buf += data


def compute_dump_digest(dump: StateDump) -> str:
    """Compute a BLAKE3-256 digest over a dump's accounts.

    Accounts are encoded in address order and storage in slot order, so two
    dumps with the same contents always produce the same digest. The dump's
    own `root` is not included.
    """
    buf = bytearray()
    for addr in dump.sorted_addresses():
        acc = dump.accounts[addr]
        buf += addr
        _field(buf, acc.balance.encode())
        buf += _u64_be(acc.nonce)
        _field(buf, _hex_to_bytes(acc.root))
        _field(buf, _hex_to_bytes(acc.code_hash))
        _field(buf, _hex_to_bytes(acc.code))
        buf += _u64_be(len(acc.storage))
        for slot in sorted(acc.storage):
            _field(buf, slot.encode())
            _field(buf, acc.storage[slot].encode())

    return blake3(buf).hexdigest()
