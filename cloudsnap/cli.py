"""Command line entry point.

Usage:
    cloudsnap build build.toml [--log-level DEBUG] [--log-file cloudsnap.log] [--debug]
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import sys

from rich.console import Console
from rich.table import Table

from cloudsnap.artifact import Artifact
from cloudsnap.builder import Builder
from cloudsnap.config import load_config
from cloudsnap.core.exceptions import CloudsnapError, ConfigurationError
from cloudsnap.observability.logging import LogConfig, setup_logging, teardown_logging

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cloudsnap",
        description="Build a reusable IONOS Cloud snapshot from a disposable server",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    build = sub.add_parser("build", help="run a build file")
    build.add_argument("config", help="path to the TOML build file")
    build.add_argument(
        "--log-level",
        default="INFO",
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"],
    )
    build.add_argument("--log-file", default=None)
    build.add_argument("--debug", action="store_true", help="keep the parsed private key on disk")
    return parser


def _render(console: Console, artifact: Artifact) -> None:
    table = Table(title=str(artifact), show_header=False)
    table.add_row("builder", artifact.builder_id)
    table.add_row("snapshot", artifact.snapshot_name)
    if artifact.snapshot_id:
        table.add_row("snapshot id", artifact.snapshot_id)
    for key, value in sorted(artifact.generated_data.items()):
        table.add_row(key, value)
    console.print(table)


def _build(args: argparse.Namespace, console: Console) -> int:
    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        return EXIT_FAILURE

    if args.debug:
        config = dataclasses.replace(config, debug=True)

    handler_ids = setup_logging(LogConfig(level=args.log_level, file=args.log_file))
    try:
        artifact = asyncio.run(Builder(config).run())
    except KeyboardInterrupt:
        console.print("[yellow]Build was cancelled.[/yellow]")
        return EXIT_INTERRUPTED
    except CloudsnapError as e:
        console.print(f"[red]Build '{config.snapshot_name}' errored:[/red] {e}")
        for note in getattr(e, "__notes__", ()):
            console.print(f"[yellow]warning:[/yellow] {note}")
        return EXIT_FAILURE
    finally:
        teardown_logging(handler_ids)

    _render(console, artifact)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    console = Console(stderr=True)
    match args.command:
        case "build":
            return _build(args, console)
        case _:
            return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
