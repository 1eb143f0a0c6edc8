"""Sidekick CLI entry point."""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Annotated

import typer
from rich.logging import RichHandler

from sidekick.cli.ask import ask_cmd
from sidekick.cli.chat import chat_cmd
from sidekick.cli.init import init_cmd
from sidekick.cli.reindex import reindex_cmd
from sidekick.cli.status import status_cmd


def _package_version() -> str:
    try:
        return importlib.metadata.version("sidekick")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"sidekick {_package_version()}")
        raise typer.Exit()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=verbose)],
        force=True,
    )
    # LiteLLM and HTTP client chatter stays out even with --verbose.
    for name in ("LiteLLM", "litellm", "httpx", "openai"):
        logging.getLogger(name).setLevel(logging.WARNING)


app = typer.Typer(
    name="sidekick",
    help=(
        "Sidekick — project-scoped knowledge assistant.\n\n"
        "  sidekick reindex  Rebuild a project's knowledge index.\n"
        "  sidekick ask      Answer one question with cited sources."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging."),
    ] = False,
) -> None:
    """Sidekick — project-scoped knowledge assistant."""
    _setup_logging(verbose)


app.command("init")(init_cmd)
app.command("reindex")(reindex_cmd)
app.command("ask")(ask_cmd)
app.command("chat")(chat_cmd)
app.command("status")(status_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed Sidekick version."""
    typer.echo(f"sidekick {_package_version()}")


if __name__ == "__main__":
    app()
