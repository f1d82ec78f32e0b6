"""pdfchat CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from pdfchat.cli.chat import chat_cmd
from pdfchat.cli.ingest import ingest_cmd
from pdfchat.cli.query import ask_cmd, query_cmd
from pdfchat.cli.status import status_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("pdfchat")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"pdfchat {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="pdfchat",
    help=(
        "pdfchat — chat with a PDF.\n\n"
        "  pdfchat ingest  Index one PDF (replaces the previous one).\n"
        "  pdfchat ask     Answer a question from the indexed PDF."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Log level (overrides logging.level)."),
    ] = None,
    json_logs: Annotated[
        bool,
        typer.Option("--json-logs", help="Emit log lines as JSON on stderr."),
    ] = False,
) -> None:
    """pdfchat — chat with a PDF."""
    ctx.obj = {"log_level": log_level, "json_logs": json_logs}


app.command("ingest")(ingest_cmd)
app.command("query")(query_cmd)
app.command("ask")(ask_cmd)
app.command("chat")(chat_cmd)
app.command("status")(status_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed pdfchat version."""
    typer.echo(f"pdfchat {_installed_version()}")


if __name__ == "__main__":
    app()
