"""Genesis dump error codes and exceptions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ErrorCategory(IntEnum):
    SUCCESS = 0x00
    VALIDATION = 0x01
    MAPPING = 0x02
    EXECUTION = 0x03
    INTERNAL = 0xFF


class ErrorCode(IntEnum):
    # Success
    SUCCESS = 0x0000

    # Validation
    INVALID_FORMAT = 0x0100
    INVALID_ADDRESS = 0x0101
    INVALID_HEX = 0x0102
    INVALID_JSON = 0x0103

    # Mapping
    ADDRESS_NOT_MAPPED = 0x0200
    UNRESOLVED_ACCOUNT = 0x0201
    TOO_MANY_ACCOUNTS = 0x0202

    # Execution
    EXECUTION_FAILED = 0x0300

    # Internal
    INTERNAL_ERROR = 0xFF00

    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory(self.value >> 8)


@dataclass(frozen=True)
class DumpError(Exception):
    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.name}({self.code:#06x}): {self.message}"


# Allow Python's Exception machinery to set __traceback__/__context__/__cause__
# while keeping dataclass fields frozen (Python 3.13 contextlib compat).
_EXCEPTION_ATTRS = frozenset(("__traceback__", "__context__", "__cause__"))
_frozen_setattr = DumpError.__setattr__


def _dump_error_setattr(self: DumpError, name: str, value: object) -> None:
    if name in _EXCEPTION_ATTRS:
        object.__setattr__(self, name, value)
    else:
        _frozen_setattr(self, name, value)


DumpError.__setattr__ = _dump_error_setattr  # type: ignore[method-assign]
