"""Helpers shared by the pdfchat commands: config loading and preflight checks."""

from __future__ import annotations

import typer
import yaml
from rich.console import Console

from pdfchat.cli.errors import err_config, err_no_api_key
from pdfchat.config import ConfigError, PdfChatConfig, load_config
from pdfchat.logging_config import configure_logging
from pdfchat.rag.llm_client import provider_of, validate_api_key

console = Console()


def load_config_or_exit(ctx: typer.Context | None = None) -> PdfChatConfig:
    """Load the merged config and configure logging, or exit 1 on bad config.

    ``--log-level`` / ``--json-logs`` given to the root command override the
    ``logging:`` section.
    """
    try:
        cfg = load_config()
    except (ConfigError, yaml.YAMLError) as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)

    opts = ctx.obj if ctx is not None and isinstance(ctx.obj, dict) else {}
    configure_logging(
        opts.get("log_level") or cfg.logging.level,
        json_logs=bool(opts.get("json_logs")) or cfg.logging.json,
    )
    return cfg


def require_api_key(model: str) -> None:
    """Exit 1 with an actionable message if *model*'s provider key is unset."""
    try:
        validate_api_key(model)
    except EnvironmentError:
        console.print(err_no_api_key(provider_of(model)))
        raise typer.Exit(1)
