"""Replay generated remap vectors through the transformer."""

from __future__ import annotations

import json
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))

from genesis_dump.address import parse_address  # noqa: E402
from genesis_dump.dump_io import dump_from_json, dump_to_json  # noqa: E402
from genesis_dump.errors import DumpError  # noqa: E402
from genesis_dump.transformer import replace_dump_addresses  # noqa: E402
from genesis_dump.types import ReservedPin  # noqa: E402


def check_remap_vectors(path: Path) -> list[str]:
    failures: list[str] = []
    data = json.loads(path.read_text())

    for vec in data.get("vectors", []):
        pins = [
            ReservedPin(parse_address(p["original"]), parse_address(p["desired"]), p.get("reason", ""))
            for p in vec.get("pins", [])
        ]
        try:
            updated = replace_dump_addresses(dump_from_json(vec["input"]), pins)
        except DumpError as exc:
            failures.append(f"{vec['name']}: {exc}")
            continue

        if dump_to_json(updated) != vec["expected"]:
            failures.append(f"{vec['name']}: dump_mismatch")

    return failures


def main() -> None:
    vectors = Path(sys.argv[1]) if len(sys.argv) > 1 else ROOT / "fixtures" / "remap_vectors.json"
    if not vectors.exists():
        print(f"No vectors at {vectors}; run tools/fill.py first")
        raise SystemExit(1)

    failures = check_remap_vectors(vectors)
    if failures:
        for f in failures:
            print("FAIL", f)
        raise SystemExit(1)

    print("All remap vectors passed")


if __name__ == "__main__":
    main()
