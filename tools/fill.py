"""Generate remap vectors by running the test suite with `--output`.

Every test that goes through the `remap_vector` fixture contributes one
vector; the conftest writes them to `<output>/remap_vectors.json` when the
session ends.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click
import pytest

ROOT = Path(__file__).resolve().parent.parent
sys.path[:0] = [str(ROOT / "src"), str(ROOT)]

from tools.consume import check_remap_vectors  # noqa: E402

VECTORS_NAME = "remap_vectors.json"


@click.command(context_settings={"ignore_unknown_options": True})
@click.option(
    "--output",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=ROOT / "fixtures",
    show_default=True,
    help="Directory that receives remap_vectors.json.",
)
@click.option("--check/--no-check", default=True, help="Replay the vectors after writing them.")
@click.argument("pytest_args", nargs=-1, type=click.UNPROCESSED)
def main(output_dir: Path, check: bool, pytest_args: tuple[str, ...]) -> None:
    """Fill remap vectors. Extra arguments are passed to pytest (e.g. `-k pin`)."""
    args = [str(ROOT / "tests"), "-q", "-p", "no:cacheprovider", "--output", str(output_dir), *pytest_args]
    click.echo(f"pytest {' '.join(args)}")
    status = pytest.main(args)
    if status != pytest.ExitCode.OK:
        raise SystemExit(int(status))

    vectors = output_dir / VECTORS_NAME
    if not vectors.exists():
        raise click.ClickException(f"no vectors written to {vectors}; did the selection skip every remap test?")
    count = len(json.loads(vectors.read_text()).get("vectors", []))
    click.echo(f"Wrote {count} vectors to {vectors}")

    if check:
        failures = check_remap_vectors(vectors)
        for failure in failures:
            click.echo(f"FAIL {failure}", err=True)
        if failures:
            raise SystemExit(1)
        click.echo("All remap vectors replay cleanly")


if __name__ == "__main__":
    main()
