#!/usr/bin/env python3
"""
genesis-dump command line entry point.

`build` replays the deployment calls through an engine and writes the
remapped dump; `remap` rewrites a previously captured raw dump.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from .config import DEFAULT_INPUT_FILENAME, DumpConfig
from .dump_io import dump_from_json, dump_input_from_json, load_document, write_outputs
from .errors import DumpError
from .execution import build_state_dump, load_engine
from .state_digest import compute_dump_digest
from .transformer import remap_dump
from .types import StateDump

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


def _print_summary(dump: StateDump, hex_path: Path, json_path: Path) -> None:
    click.echo("\nDump summary:")
    click.echo(f"  - Accounts: {len(dump.accounts)}")
    click.echo(f"  - Digest: {compute_dump_digest(dump)}")
    click.echo(f"  - Hex dump: {hex_path}")
    click.echo(f"  - JSON dump: {json_path}")
    click.echo("To embed the dump downstream, copy the contents of the hex file.")


@click.group()
@click.option("--verbose", is_flag=True, help="Log every storage slot inspected")
@click.option("--gas-limit", type=int, default=None, help="Gas limit per call")
@click.pass_context
def main(ctx: click.Context, verbose: bool, gas_limit: Optional[int]) -> None:
    """Build canonical genesis state dumps."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = DumpConfig.from_env()
    except DumpError as exc:
        raise click.ClickException(str(exc))
    if gas_limit is not None:
        config.gas_limit = gas_limit
    ctx.obj = config


@main.command()
@click.option(
    "--input",
    "input_path",
    default=DEFAULT_INPUT_FILENAME,
    show_default=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Deployment input (JSON or YAML)",
)
@click.option(
    "--engine",
    required=True,
    help="Execution engine factory as 'module:factory'",
)
@click.option(
    "--out-dir",
    default=".",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory to write the dump files",
)
@click.pass_obj
def build(config: DumpConfig, input_path: Path, engine: str, out_dir: Path) -> None:
    """Apply the deployment calls and write the remapped dump."""
    try:
        dump_input = dump_input_from_json(load_document(input_path))
        logger.info("Loaded %d calls from %s", len(dump_input.simplified_txs), input_path)
        runner = load_engine(engine, config)
        _, updated, _ = build_state_dump(dump_input, runner, config)
        hex_path, json_path = write_outputs(updated, out_dir, config)
    except DumpError as exc:
        logger.error("Dump aborted, no output written")
        raise click.ClickException(str(exc))

    _print_summary(updated, hex_path, json_path)


@main.command()
@click.option(
    "--dump",
    "dump_path",
    required=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Raw state dump (geth dump JSON)",
)
@click.option(
    "--input",
    "input_path",
    default=DEFAULT_INPUT_FILENAME,
    show_default=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Deployment input holding the reserved addresses and code hashes",
)
@click.option(
    "--out-dir",
    default=".",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory to write the dump files",
)
@click.pass_obj
def remap(config: DumpConfig, dump_path: Path, input_path: Path, out_dir: Path) -> None:
    """Remap a previously captured raw dump."""
    try:
        raw = dump_from_json(load_document(dump_path))
        dump_input = dump_input_from_json(load_document(input_path))
        logger.info("Raw dump digest: %s (%d accounts)", compute_dump_digest(raw), len(raw.accounts))
        updated = remap_dump(raw, dump_input, config)
        hex_path, json_path = write_outputs(updated, out_dir, config)
    except DumpError as exc:
        logger.error("Dump aborted, no output written")
        raise click.ClickException(str(exc))

    _print_summary(updated, hex_path, json_path)


if __name__ == "__main__":
    sys.exit(main())
