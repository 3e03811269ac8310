"""Dump transformer: placeholders, reserved pins, key and storage rewrites."""

from __future__ import annotations

from copy import deepcopy

import pytest

from genesis_dump.address import address_from_value, address_to_checksum
from genesis_dump.config import (
    L1_MESSAGE_SENDER,
    L1_MESSAGE_SENDER_ADDRESS,
    L2_TO_L1_MESSAGE_PASSER,
    L2_TO_L1_MESSAGE_PASSER_ADDRESS,
    STARTING_DEAD_ADDRESS,
    DumpConfig,
)
from genesis_dump.dump_io import marshal_dump
from genesis_dump.errors import ErrorCode, DumpError
from genesis_dump.remapper import AddressRemapper
from genesis_dump.transformer import (
    assign_placeholders,
    remap_dump,
    replace_dump_addresses,
    reserved_pins,
)
from genesis_dump.types import DumpInput, ReservedPin, StateDump
from tests.builders import addr, dead, mk_dump

A, B, C, D = addr(1), addr(2), addr(3), addr(4)


def _mk_input(em: bytes, sm: bytes, **code_hashes: str) -> DumpInput:
    return DumpInput(
        execution_manager_address=em,
        state_manager_address=sm,
        code_hashes=dict(code_hashes),
    )


def test_placeholders_follow_sorted_order(remap_vector) -> None:
    dump = mk_dump(C, A, B)
    remapper = AddressRemapper()

    updated = replace_dump_addresses(dump, (), DumpConfig(), remapper)

    assert remapper.resolve(A) == (dead(0), True)
    assert remapper.resolve(B) == (dead(1), True)
    assert remapper.resolve(C) == (dead(2), True)
    assert sorted(updated.accounts) == [dead(0), dead(1), dead(2)]
    assert updated.accounts[dead(2)] == dump.accounts[C]
    remap_vector("placeholders_sorted", dump)


def test_every_account_gets_a_distinct_target() -> None:
    addresses = [bytes([i % 7, i // 7]) + bytes(18) for i in range(300)]
    dump = mk_dump(*addresses)
    remapper = AddressRemapper()

    updated = replace_dump_addresses(dump, (), DumpConfig(), remapper)

    targets = [remapper.resolve(a)[0] for a in addresses]
    assert all(remapper.resolve(a)[1] for a in addresses)
    assert len(set(targets)) == len(addresses)
    assert len(updated.accounts) == len(addresses)
    assert dead(0x12B) in updated.accounts


def test_pin_to_unused_target(remap_vector) -> None:
    dump = mk_dump(A, B, C)
    remapper = AddressRemapper()

    replace_dump_addresses(dump, [ReservedPin(B, dead(5))], DumpConfig(), remapper)

    assert remapper.resolve(A) == (dead(0), True)
    assert remapper.resolve(B) == (dead(5), True)
    assert remapper.resolve(C) == (dead(2), True)
    assert remapper.old_address_for(dead(1)) is None
    remap_vector("pin_unused_target", dump, [ReservedPin(B, dead(5))])


def test_pin_displaces_current_owner() -> None:
    dump = mk_dump(A, B, C)
    remapper = AddressRemapper()

    updated = replace_dump_addresses(dump, [ReservedPin(C, dead(0))], DumpConfig(), remapper)

    assert remapper.resolve(C) == (dead(0), True)
    assert remapper.resolve(A) == (dead(2), True)
    assert updated.accounts[dead(0)] == dump.accounts[C]
    assert updated.accounts[dead(2)] == dump.accounts[A]


def test_storage_cross_reference_rewritten(remap_vector) -> None:
    slot = "0x" + "00" * 32
    dump = mk_dump(A, B, storage={A: {slot: B.hex()}})

    updated = remap_vector("storage_cross_reference", dump)

    value = updated.accounts[dead(0)].storage[slot]
    assert value == address_to_checksum(dead(1))
    assert address_from_value(value) == dead(1)


def test_storage_trimmed_value_rewritten() -> None:
    slot = "0x" + "00" * 31 + "01"
    # A trimmed, dump-style value naming an account that has leading zero bytes.
    low = bytes(16) + b"\x00\x00\x12\x34"
    dump = mk_dump(A, low, storage={A: {slot: "1234"}})

    updated = replace_dump_addresses(dump)

    # low sorts first, so it takes dead(0).
    assert updated.accounts[dead(1)].storage[slot] == address_to_checksum(dead(0))


def test_storage_unrelated_values_untouched() -> None:
    storage = {
        "0x" + "00" * 31 + "01": "01",
        "0x" + "00" * 31 + "02": "not-hex",
        "0x" + "00" * 31 + "03": "ff" * 32,
        "0x" + "00" * 31 + "04": "",
    }
    dump = mk_dump(A, B, storage={A: storage})

    updated = replace_dump_addresses(dump)

    assert updated.accounts[dead(0)].storage == storage


def test_storage_reference_follows_pins() -> None:
    slot = "0x" + "00" * 32
    dump = mk_dump(A, B, C, storage={C: {slot: "0x" + A.hex()}})

    updated = replace_dump_addresses(dump, [ReservedPin(A, dead(0x100))])

    assert updated.accounts[dead(2)].storage[slot] == address_to_checksum(dead(0x100))


def test_input_dump_not_mutated() -> None:
    slot = "0x" + "00" * 32
    dump = mk_dump(A, B, storage={A: {slot: B.hex()}})
    before = deepcopy(dump)

    updated = replace_dump_addresses(dump, [ReservedPin(B, dead(9))])

    assert dump == before
    assert updated.accounts[dead(0)] is not dump.accounts[A]


def test_transformation_is_deterministic() -> None:
    slot = "0x" + "00" * 32
    storage = {A: {slot: D.hex()}, D: {slot: C.hex()}}
    first = mk_dump(A, B, C, D, storage=storage)
    second = StateDump(accounts={a: deepcopy(first.accounts[a]) for a in (D, B, C, A)})
    pins = [ReservedPin(D, dead(0)), ReservedPin(C, dead(1))]

    out_first = replace_dump_addresses(first, pins)
    out_second = replace_dump_addresses(second, pins)

    assert marshal_dump(out_first) == marshal_dump(out_second)


def test_pin_for_unknown_address_aborts() -> None:
    dump = mk_dump(A, B)

    with pytest.raises(DumpError) as exc:
        replace_dump_addresses(dump, [ReservedPin(C, dead(0))])

    assert exc.value.code == ErrorCode.ADDRESS_NOT_MAPPED


def test_too_many_accounts() -> None:
    addresses = [i.to_bytes(20, "big") for i in range(0x10001)]

    with pytest.raises(DumpError) as exc:
        assign_placeholders(AddressRemapper(), addresses, STARTING_DEAD_ADDRESS)

    assert exc.value.code == ErrorCode.TOO_MANY_ACCOUNTS


def test_reserved_pins_order_and_fingerprints() -> None:
    dump = mk_dump(A, B, C, D)
    dump_input = _mk_input(
        C,
        A,
        **{
            L1_MESSAGE_SENDER: "0x" + dump.accounts[B].code_hash,
            L2_TO_L1_MESSAGE_PASSER: "0x" + dump.accounts[D].code_hash.upper(),
        },
    )

    pins = reserved_pins(dump, dump_input, DumpConfig())

    assert [(p.original, p.desired) for p in pins] == [
        (C, dead(0)),
        (A, dead(1)),
        (B, L1_MESSAGE_SENDER_ADDRESS),
        (D, L2_TO_L1_MESSAGE_PASSER_ADDRESS),
    ]


def test_reserved_pins_skips_empty_and_unknown_fingerprints() -> None:
    dump = mk_dump(A, B)
    dump_input = _mk_input(A, B, l1MessageSender="", somethingElse="0x" + dump.accounts[A].code_hash)

    pins = reserved_pins(dump, dump_input, DumpConfig())

    assert [p.original for p in pins] == [A, B]


def test_remap_dump_end_to_end(remap_vector) -> None:
    dump = mk_dump(A, B, C, D)
    dump_input = _mk_input(C, A, l1MessageSender="0x" + dump.accounts[B].code_hash)

    updated = remap_dump(dump, dump_input)

    assert updated.accounts[dead(0)] == dump.accounts[C]
    assert updated.accounts[dead(1)] == dump.accounts[A]
    assert updated.accounts[L1_MESSAGE_SENDER_ADDRESS] == dump.accounts[B]
    assert updated.accounts[dead(3)] == dump.accounts[D]
    assert dead(2) not in updated.accounts
    remap_vector("system_contract_pins", dump, reserved_pins(dump, dump_input, DumpConfig()))


def test_remap_dump_missing_system_contract_aborts() -> None:
    dump = mk_dump(A, B)
    dump_input = _mk_input(C, A)

    with pytest.raises(DumpError) as exc:
        remap_dump(dump, dump_input)

    assert exc.value.code == ErrorCode.ADDRESS_NOT_MAPPED


def test_empty_dump() -> None:
    assert replace_dump_addresses(StateDump()).accounts == {}
