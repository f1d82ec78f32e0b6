"""pdfchat chat — ingest the startup document, then answer questions in a loop.

Startup ingestion is awaited before the first prompt, so no question is
served against a half-built index.
"""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer
from rich.prompt import Prompt

from pdfchat.cli.common import console, load_config_or_exit, require_api_key
from pdfchat.cli.errors import err_ingest_failed, err_no_document, err_vector_store
from pdfchat.cli.query import print_answer
from pdfchat.config import PdfChatConfig
from pdfchat.errors import NoDocumentIngested, PdfChatError
from pdfchat.service import PdfChatService

_EXIT_WORDS = frozenset({"exit", "quit"})


def chat_cmd(
    ctx: typer.Context,
    pdf: Annotated[
        str | None,
        typer.Option("--pdf", help="PDF to ingest at startup (overrides document.default_path)."),
    ] = None,
) -> None:
    """Chat with a PDF. Type 'exit' to leave."""
    cfg = load_config_or_exit(ctx)
    require_api_key(cfg.embedding.model)
    require_api_key(cfg.generation.model)

    try:
        asyncio.run(_run_chat(cfg, pdf))
    except (PdfChatError, ValueError) as exc:
        console.print(err_vector_store(cfg.vector_store.url, str(exc)))
        raise typer.Exit(1)


async def _run_chat(cfg: PdfChatConfig, pdf: str | None) -> None:
    async with PdfChatService.open(cfg) as service:
        if pdf or cfg.document.default_path:
            startup = await service.initialize(pdf)
            if startup.success:
                console.print(f"[green]✓[/] {startup.message}")
                if startup.verified is False:
                    console.print("[yellow]Startup search check returned no results.[/]")
            else:
                console.print(err_ingest_failed(startup.file_name, startup.message))

        console.print("[dim]Ask a question about the document. Type 'exit' to leave.[/]")
        while True:
            try:
                question = await asyncio.to_thread(Prompt.ask, "[bold]You[/]", console=console)
            except (EOFError, KeyboardInterrupt):
                break
            question = question.strip()
            if not question:
                continue
            if question.lower() in _EXIT_WORDS:
                break

            response = await service.ask(question)
            if response.error == NoDocumentIngested.__name__:
                console.print(err_no_document())
            elif response.error:
                console.print(f"[red]Error:[/] {response.message}")
            else:
                print_answer(response)
