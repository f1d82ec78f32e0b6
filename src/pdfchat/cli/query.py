"""pdfchat query / ask — retrieve passages from the indexed document."""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer
from rich.panel import Panel
from rich.table import Table

from pdfchat.cli.common import console, load_config_or_exit, require_api_key
from pdfchat.cli.errors import err_no_document, err_query_failed, err_vector_store
from pdfchat.config import PdfChatConfig
from pdfchat.db.models import RetrievedPassage
from pdfchat.errors import NoDocumentIngested, PdfChatError
from pdfchat.service import AnswerResponse, PdfChatService, QueryResponse

_PREVIEW_CHARS = 200


def query_cmd(
    ctx: typer.Context,
    text: Annotated[str, typer.Argument(help="What to search the document for.")],
    file: Annotated[
        str | None,
        typer.Option("--file", "-f", help="Document path (defaults to the last ingested)."),
    ] = None,
    top_k: Annotated[
        int | None, typer.Option("--top-k", "-k", help="Maximum number of passages.")
    ] = None,
) -> None:
    """Show the passages most similar to TEXT."""
    cfg = load_config_or_exit(ctx)
    require_api_key(cfg.embedding.model)

    try:
        response = asyncio.run(_run_query(cfg, text, file, top_k))
    except (PdfChatError, ValueError) as exc:
        console.print(err_vector_store(cfg.vector_store.url, str(exc)))
        raise typer.Exit(1)

    _exit_on_error(response.error, response.message)

    if not response.results:
        console.print(f"[yellow]{response.message or 'No matching content found'}[/]")
        return

    console.print(_results_table(response.results, title=response.file_name))


def ask_cmd(
    ctx: typer.Context,
    question: Annotated[str, typer.Argument(help="Question about the document.")],
    file: Annotated[
        str | None,
        typer.Option("--file", "-f", help="Document path (defaults to the last ingested)."),
    ] = None,
    top_k: Annotated[
        int | None, typer.Option("--top-k", "-k", help="Passages given to the model.")
    ] = None,
) -> None:
    """Answer QUESTION from the indexed document."""
    cfg = load_config_or_exit(ctx)
    require_api_key(cfg.embedding.model)
    require_api_key(cfg.generation.model)

    try:
        response = asyncio.run(_run_ask(cfg, question, file, top_k))
    except (PdfChatError, ValueError) as exc:
        console.print(err_vector_store(cfg.vector_store.url, str(exc)))
        raise typer.Exit(1)

    _exit_on_error(response.error, response.message)
    print_answer(response)


def print_answer(response: AnswerResponse) -> None:
    console.print(Panel(response.answer, title=f"[bold]{response.file_name or 'Answer'}[/]"))
    if response.results:
        sources = ", ".join(
            f"chunk {p.metadata.chunk_index + 1}/{p.metadata.total_chunks} ({p.score:.2f})"
            for p in response.results
        )
        console.print(f"[dim]Sources: {sources}[/]")


def _exit_on_error(error: str | None, message: str | None) -> None:
    if error is None:
        return
    if error == NoDocumentIngested.__name__:
        console.print(err_no_document())
    else:
        console.print(err_query_failed(message or error))
    raise typer.Exit(1)


def _results_table(results: list[RetrievedPassage], title: str | None = None) -> Table:
    table = Table(title=title, show_lines=True)
    table.add_column("#", style="bold", width=3)
    table.add_column("Score", style="cyan", width=6)
    table.add_column("Chunk", style="dim", width=8)
    table.add_column("Text")
    for rank, passage in enumerate(results, start=1):
        text = passage.text
        if len(text) > _PREVIEW_CHARS:
            text = text[:_PREVIEW_CHARS].rstrip() + "…"
        table.add_row(
            str(rank),
            f"{passage.score:.3f}",
            f"{passage.metadata.chunk_index + 1}/{passage.metadata.total_chunks}",
            text,
        )
    return table


async def _run_query(
    cfg: PdfChatConfig, text: str, file: str | None, top_k: int | None
) -> QueryResponse:
    async with PdfChatService.open(cfg) as service:
        return await service.query(text, file_path=file, top_k=top_k)


async def _run_ask(
    cfg: PdfChatConfig, question: str, file: str | None, top_k: int | None
) -> AnswerResponse:
    async with PdfChatService.open(cfg) as service:
        return await service.ask(question, file_path=file, top_k=top_k)
