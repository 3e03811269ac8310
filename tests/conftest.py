"""Shared fixtures and the remap vector collector."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Iterable

import pytest

from genesis_dump.address import address_to_hex
from genesis_dump.config import DumpConfig
from genesis_dump.dump_io import dump_to_json
from genesis_dump.transformer import replace_dump_addresses
from genesis_dump.types import ReservedPin, StateDump
from tests.fake_engine import FakeEngine

_REMAP_VECTORS: list[dict[str, Any]] = []


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--output",
        action="store",
        default=None,
        help="Output directory for generated remap vectors",
    )


@pytest.fixture
def config() -> DumpConfig:
    return DumpConfig()


@pytest.fixture
def engine(config: DumpConfig) -> FakeEngine:
    return FakeEngine(config)


@pytest.fixture
def remap_vector() -> Callable[[str, StateDump, Iterable[ReservedPin]], StateDump]:
    """Remap a dump with default config and record the case as a vector."""

    def _remap_vector(name: str, dump: StateDump, pins: Iterable[ReservedPin] = ()) -> StateDump:
        pins = list(pins)
        updated = replace_dump_addresses(dump, pins, DumpConfig())
        _REMAP_VECTORS.append(
            {
                "name": name,
                "input": dump_to_json(dump),
                "pins": [
                    {
                        "original": address_to_hex(p.original),
                        "desired": address_to_hex(p.desired),
                        "reason": p.reason,
                    }
                    for p in pins
                ],
                "expected": dump_to_json(updated),
            }
        )
        return updated

    return _remap_vector


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    output_dir = session.config.getoption("--output")
    if not output_dir or not _REMAP_VECTORS:
        return

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    (out / "remap_vectors.json").write_text(
        json.dumps({"vectors": _REMAP_VECTORS}, indent=2)
    )
