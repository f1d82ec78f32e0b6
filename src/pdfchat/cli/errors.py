"""pdfchat rich error messages — actionable feedback.

Every error shown to the user names what went wrong and the action that
fixes it.

Usage:
    from pdfchat.cli.errors import err_no_api_key
    console.print(err_no_api_key("gemini"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from pdfchat.rag.llm_client import _PROVIDER_ENV


def err_no_api_key(provider: str) -> str:
    """No API key for *provider*.

    Example:
        No API key for 'gemini'. Set:  export GEMINI_API_KEY=...
    """
    env_var = _PROVIDER_ENV.get(provider.lower()) or f"{provider.upper()}_API_KEY"
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {env_var}=..."
    )


def err_config(detail: str) -> str:
    """pdfchat.yaml or ~/.pdfchat/config.yaml could not be loaded."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {detail}\n"
        "  Fix pdfchat.yaml (or ~/.pdfchat/config.yaml) and retry."
    )


def err_vector_store(url: str, detail: str) -> str:
    """The vector store database could not be opened."""
    return (
        f"[red]Error:[/] Vector store unavailable at '{url}'.\n"
        f"  {detail}\n"
        "  Check vector_store.url in pdfchat.yaml or PDFCHAT_VECTOR_STORE_URL."
    )


def err_file_not_found(path: str) -> str:
    return (
        f"[red]Error:[/] File not found: '{path}'\n"
        "  Pass the path of an existing PDF file."
    )


def err_ingest_failed(file_name: str | None, message: str) -> str:
    """Ingestion ran but failed (parse, embedding or index error)."""
    target = f"'{file_name}'" if file_name else "the document"
    return (
        f"[red]Error:[/] Could not ingest {target}.\n"
        f"  {message}\n"
        "  The previous document may have been cleared; re-run pdfchat ingest."
    )


def err_no_document() -> str:
    """Query without a file path and no prior ingestion."""
    return (
        "[yellow]No document ingested yet.[/]\n"
        "  Run:  pdfchat ingest PATH/TO/FILE.pdf"
    )


def err_query_failed(message: str) -> str:
    return f"[red]Error:[/] {message}"
