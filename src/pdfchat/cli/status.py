"""pdfchat status — last processed document and collection state."""

from __future__ import annotations

import asyncio

import typer
from rich.panel import Panel

from pdfchat.cli.common import console, load_config_or_exit
from pdfchat.cli.errors import err_vector_store
from pdfchat.config import PdfChatConfig
from pdfchat.db.index_manager import CollectionState
from pdfchat.errors import PdfChatError
from pdfchat.service import PdfChatService, ServiceStatus

_STATE_STYLE = {
    CollectionState.ABSENT: "[yellow]absent[/]",
    CollectionState.CREATED: "[yellow]created (empty)[/]",
    CollectionState.POPULATED: "[green]populated[/]",
}


def status_cmd(ctx: typer.Context) -> None:
    """Show the current document and vector collection."""
    cfg = load_config_or_exit(ctx)
    try:
        status = asyncio.run(_run_status(cfg))
    except (PdfChatError, ValueError) as exc:
        console.print(err_vector_store(cfg.vector_store.url, str(exc)))
        raise typer.Exit(1)

    _show_document_panel(status)
    _show_collection_panel(status, cfg)


def _show_document_panel(status: ServiceStatus) -> None:
    state = status.state
    if not state.last_processed_pdf_path:
        console.print(
            Panel(
                "[yellow]No document ingested yet.[/]\n"
                "  Run:  pdfchat ingest PATH/TO/FILE.pdf",
                title="[bold]Document[/]",
                expand=False,
            )
        )
        return

    meta = state.metadata
    lines = [f"Path:      {state.last_processed_pdf_path}"]
    if meta.get("title"):
        lines.append(f"Title:     [bold]{meta['title']}[/]")
    if meta.get("author"):
        lines.append(f"Author:    {meta['author']}")
    if meta.get("pageCount"):
        lines.append(f"Pages:     {meta['pageCount']}")
    if meta.get("chunks"):
        lines.append(f"Chunks:    {meta['chunks']}")
    if state.processing_timestamp:
        lines.append(f"Processed: [dim]{state.processing_timestamp[:19]}[/]")
    console.print(Panel("\n".join(lines), title="[bold]Document[/]", expand=False))


def _show_collection_panel(status: ServiceStatus, cfg: PdfChatConfig) -> None:
    lines = [
        f"Store:      {cfg.vector_store.url}",
        f"Collection: [bold]{status.collection}[/]  {_STATE_STYLE[status.collection_state]}",
    ]
    if status.dimension is not None:
        lines.append(f"Dimension:  {status.dimension}")
        lines.append(f"Records:    {status.records:,}")
    lines.append(f"Embedding:  [dim]{cfg.embedding.model}[/]")
    console.print(Panel("\n".join(lines), title="[bold]Vector Index[/]", expand=False))


async def _run_status(cfg: PdfChatConfig) -> ServiceStatus:
    async with PdfChatService.open(cfg) as service:
        return await service.status()
