"""Bidirectional old -> new address table used while remapping a dump."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Tuple

from .address import address_to_hex
from .config import ZERO_ADDRESS
from .errors import ErrorCode, DumpError

logger = logging.getLogger(__name__)


class AddressRemapper:
    """Keeps `old -> new` and `new -> old` as exact inverses of each other.

    Every mutation goes through `associate`, which evicts stale inverse
    entries, so no target is ever shared by two original addresses.
    """

    def __init__(self) -> None:
        self._old_to_new: Dict[bytes, bytes] = {}
        self._new_to_old: Dict[bytes, bytes] = {}

    def __len__(self) -> int:
        return len(self._old_to_new)

    def __contains__(self, old: object) -> bool:
        return old in self._old_to_new

    @property
    def forward(self) -> Mapping[bytes, bytes]:
        return MappingProxyType(self._old_to_new)

    @property
    def backward(self) -> Mapping[bytes, bytes]:
        return MappingProxyType(self._new_to_old)

    def items(self) -> Iterator[Tuple[bytes, bytes]]:
        """(old, new) pairs in old-address order."""
        for old in sorted(self._old_to_new):
            yield old, self._old_to_new[old]

    def associate(self, old: bytes, new: bytes) -> None:
        """Map `old` to `new` unconditionally."""
        logger.info("Mapping: %s to %s", old.hex(), new.hex())

        previous_new = self._old_to_new.get(old)
        if previous_new is not None and previous_new != new:
            del self._new_to_old[previous_new]

        previous_old = self._new_to_old.get(new)
        if previous_old is not None and previous_old != old:
            del self._old_to_new[previous_old]

        self._old_to_new[old] = new
        self._new_to_old[new] = old

    def associate_existing(self, old: bytes, new: bytes) -> None:
        """Pin `old` to `new`, moving the current owner of `new` to `old`'s old slot.

        Raises ADDRESS_NOT_MAPPED if `old` has not been assigned yet.
        """
        logger.info("Associating existing: %s to %s", old.hex(), new.hex())
        displaced_new = self._old_to_new.get(old)
        if displaced_new is None:
            raise DumpError(
                ErrorCode.ADDRESS_NOT_MAPPED,
                f"cannot pin {address_to_hex(old)}: address has no existing mapping",
            )

        displaced_old = self._new_to_old.get(new)
        if displaced_old is not None and displaced_old != old:
            self.associate(displaced_old, displaced_new)
        self.associate(old, new)

    def resolve(self, old: bytes) -> Tuple[bytes, bool]:
        new = self._old_to_new.get(old)
        if new is None:
            return ZERO_ADDRESS, False
        return new, True

    def resolve_or_zero(self, old: bytes) -> bytes:
        return self._old_to_new.get(old, ZERO_ADDRESS)

    def old_address_for(self, new: bytes) -> Optional[bytes]:
        return self._new_to_old.get(new)
