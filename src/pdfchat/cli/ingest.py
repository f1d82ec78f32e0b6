"""pdfchat ingest — replace the indexed document with one PDF."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.progress import Progress, SpinnerColumn, TextColumn

from pdfchat.cli.common import console, load_config_or_exit, require_api_key
from pdfchat.cli.errors import err_file_not_found, err_ingest_failed, err_vector_store
from pdfchat.config import PdfChatConfig
from pdfchat.errors import PdfChatError
from pdfchat.service import IngestResponse, PdfChatService


def ingest_cmd(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="PDF file to ingest.")],
    title: Annotated[
        str | None, typer.Option("--title", help="Document title (defaults to file name).")
    ] = None,
    author: Annotated[
        str | None, typer.Option("--author", help="Document author.")
    ] = None,
    description: Annotated[
        str | None, typer.Option("--description", help="Short document description.")
    ] = None,
) -> None:
    """Ingest a PDF, replacing whatever document was indexed before."""
    if not path.is_file():
        console.print(err_file_not_found(str(path)))
        raise typer.Exit(1)

    cfg = load_config_or_exit(ctx)
    require_api_key(cfg.embedding.model)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        transient=True,
        console=console,
    ) as prog:
        prog.add_task(f"Ingesting {path.name}…", total=None)
        try:
            response = asyncio.run(_run_ingest(cfg, str(path), title, author, description))
        except (PdfChatError, ValueError) as exc:
            console.print(err_vector_store(cfg.vector_store.url, str(exc)))
            raise typer.Exit(1)

    if not response.success:
        console.print(err_ingest_failed(response.file_name, response.message))
        raise typer.Exit(1)

    console.print(f"[green]✓[/] {response.message}")


async def _run_ingest(
    cfg: PdfChatConfig,
    path: str,
    title: str | None,
    author: str | None,
    description: str | None,
) -> IngestResponse:
    async with PdfChatService.open(cfg) as service:
        return await service.ingest(path, title=title, author=author, description=description)
