"""Rewrite a state dump onto canonical placeholder addresses.

The pass runs in four steps:

1. every account address, in byte order, gets the next placeholder
   (``...dead0000``, ``...dead0001``, ...);
2. reserved pins move the system contracts onto their well-known targets,
   displacing whichever account held the target;
3. account keys are rewritten through the table;
4. storage values that hold a remapped address are rewritten to the new one.

Nothing is written to the input dump. Any `DumpError` aborts the pass.
"""

from __future__ import annotations

import logging
from copy import deepcopy
from typing import Iterable, List, Optional

from .address import address_from_value, address_to_checksum, placeholder_address
from .config import MAX_PLACEHOLDERS, DumpConfig
from .errors import ErrorCode, DumpError
from .remapper import AddressRemapper
from .types import DumpAccount, DumpInput, ReservedPin, StateDump

logger = logging.getLogger(__name__)


def assign_placeholders(
    remapper: AddressRemapper, addresses: Iterable[bytes], base: bytes
) -> None:
    ordered = sorted(set(addresses))
    if len(ordered) > MAX_PLACEHOLDERS:
        raise DumpError(
            ErrorCode.TOO_MANY_ACCOUNTS,
            f"{len(ordered)} accounts exceed the {MAX_PLACEHOLDERS} available placeholders",
        )
    for idx, old in enumerate(ordered):
        remapper.associate(old, placeholder_address(base, idx))


def _normalize_code_hash(value: str) -> str:
    v = value.strip().lower()
    return v if v.startswith("0x") else "0x" + v


def reserved_pins(
    dump: StateDump, dump_input: DumpInput, config: DumpConfig
) -> List[ReservedPin]:
    """Pins for the execution manager, state manager and fingerprinted contracts."""
    pins = [
        ReservedPin(
            dump_input.execution_manager_address,
            config.desired_execution_manager,
            "execution manager",
        ),
        ReservedPin(
            dump_input.state_manager_address,
            config.desired_state_manager,
            "state manager",
        ),
    ]

    # Recognize bridge contracts by bytecode rather than deployment address.
    fingerprints = {}
    for name, code_hash in sorted(dump_input.code_hashes.items()):
        if not code_hash:
            continue
        target = config.code_hash_targets.get(name)
        if target is None:
            logger.warning("No reserved target for code hash %s, ignoring", name)
            continue
        fingerprints[_normalize_code_hash(code_hash)] = (name, target)

    for addr in dump.sorted_addresses():
        acc = dump.accounts[addr]
        if not acc.code_hash:
            continue
        match = fingerprints.get(_normalize_code_hash(acc.code_hash))
        if match is not None:
            name, target = match
            pins.append(ReservedPin(addr, target, name))

    return pins


def _rewrite_storage(remapper: AddressRemapper, addr: bytes, account: DumpAccount) -> None:
    for slot in sorted(account.storage):
        value = account.storage[slot]
        logger.debug("Addr %s Key: %s Value %s", addr.hex(), slot, value)
        candidate = address_from_value(value)
        if candidate is None:
            continue
        new_address, found = remapper.resolve(candidate)
        if found:
            replacement = address_to_checksum(new_address)
            logger.info("Replacing %s with %s", value, replacement)
            account.storage[slot] = replacement


def replace_dump_addresses(
    dump: StateDump,
    pins: Iterable[ReservedPin] = (),
    config: Optional[DumpConfig] = None,
    remapper: Optional[AddressRemapper] = None,
) -> StateDump:
    """Return a copy of `dump` with every address moved onto its placeholder.

    Pass `remapper` to inspect the final table after the call.
    """
    config = config or DumpConfig()
    remapper = remapper if remapper is not None else AddressRemapper()

    assign_placeholders(remapper, dump.accounts, config.placeholder_base)

    for pin in pins:
        logger.info("Pinning %s (%s)", pin.original.hex(), pin.reason or "reserved")
        remapper.associate_existing(pin.original, pin.desired)

    updated = StateDump()
    for addr in dump.sorted_addresses():
        new_address, found = remapper.resolve(addr)
        if not found:
            raise DumpError(
                ErrorCode.UNRESOLVED_ACCOUNT, f"account {addr.hex()} has no remapped address"
            )
        updated.accounts[new_address] = deepcopy(dump.accounts[addr])

    for addr in updated.sorted_addresses():
        _rewrite_storage(remapper, addr, updated.accounts[addr])

    return updated


def remap_dump(dump: StateDump, dump_input: DumpInput, config: Optional[DumpConfig] = None) -> StateDump:
    """Remap `dump` with the reserved pins described by `dump_input`."""
    config = config or DumpConfig()
    return replace_dump_addresses(dump, reserved_pins(dump, dump_input, config), config)
