"""pdfchat configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (PDFCHAT_EMBEDDING_MODEL, PDFCHAT_VECTOR_STORE_URL, ...)
  3. Per-project pdfchat.yaml  (current directory)
  4. Global ~/.pdfchat/config.yaml  (defaults only — no API keys)
  5. Hardcoded defaults

Provider API keys are read from the environment only (GEMINI_API_KEY, ...).
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from pdfchat.ingest.base import STRATEGIES

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".pdfchat"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "pdfchat.yaml"

# Fields that suggest an API key — forbidden in global config.
# Does NOT match legitimate config keys like token_budget or max_tokens.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"  # api_key, api-key, api_secret, apikey
    r"|_token$"                  # github_token, access_token (suffix)
    r"|^token$"                  # exactly "token" (standalone)
    r"|_secret$"                 # client_secret (suffix)
    r"|^secret$"                 # exactly "secret" (standalone)
    r"|passw(?:ord|d)"           # password, passwd
    r"|credential",              # credential, credentials
    re.IGNORECASE,
)

# Known top-level sections — unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(
    [
        "embedding",
        "chunking",
        "vector_store",
        "retrieval",
        "generation",
        "state",
        "document",
        "logging",
    ]
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (pdfchat.yaml: embedding:)."""

    model: str = "gemini/text-embedding-004"
    batch_size: int = 100


@dataclass
class ChunkingCfg:
    """Chunking policy (pdfchat.yaml: chunking:).

    Attributes:
        strategy: 'paragraph' (paragraph/sentence) or 'window' (fixed window).
        target_size: Target chunk size / window size in characters.
        overlap: Character overlap between windows ('window' only).
    """

    strategy: str = "paragraph"
    target_size: int = 1000
    overlap: int = 200


@dataclass
class VectorStoreCfg:
    """Vector store location (pdfchat.yaml: vector_store:)."""

    url: str = "sqlite:///.pdfchat.db"
    collection: str = "pdf_documents"


@dataclass
class RetrievalCfg:
    """Retrieval configuration (pdfchat.yaml: retrieval:)."""

    top_k: int = 5


@dataclass
class GenerationCfg:
    """Conversational model configuration (pdfchat.yaml: generation:)."""

    model: str = "gemini/gemini-2.0-flash-lite"
    token_budget: int = 8_192


@dataclass
class StateCfg:
    """Where the last-processed-document record lives (pdfchat.yaml: state:)."""

    path: str = ".pdfchat/state.json"


@dataclass
class DocumentCfg:
    """Startup document (pdfchat.yaml: document:).

    Attributes:
        default_path: PDF ingested by ``pdfchat chat`` before serving questions.
        verify_query: Optional query run after startup ingestion as a smoke test.
    """

    default_path: str | None = None
    verify_query: str | None = None


@dataclass
class LoggingCfg:
    """Log output (pdfchat.yaml: logging:)."""

    level: str = "INFO"
    json: bool = False


@dataclass
class PdfChatConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    chunking: ChunkingCfg = field(default_factory=ChunkingCfg)
    vector_store: VectorStoreCfg = field(default_factory=VectorStoreCfg)
    retrieval: RetrievalCfg = field(default_factory=RetrievalCfg)
    generation: GenerationCfg = field(default_factory=GenerationCfg)
    state: StateCfg = field(default_factory=StateCfg)
    document: DocumentCfg = field(default_factory=DocumentCfg)
    logging: LoggingCfg = field(default_factory=LoggingCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: PdfChatConfig) -> None:
    """Raise ConfigError for values the pipelines cannot run with."""
    ch = cfg.chunking
    if ch.strategy not in STRATEGIES:
        raise ConfigError(
            f"chunking.strategy must be one of {', '.join(STRATEGIES)}, got '{ch.strategy}'"
        )
    if ch.target_size < 1:
        raise ConfigError(f"chunking.target_size must be >= 1, got {ch.target_size}")
    if ch.strategy == "window" and not 0 <= ch.overlap < ch.target_size:
        raise ConfigError(
            f"chunking.overlap must be in [0, target_size), got {ch.overlap}"
        )
    if cfg.embedding.batch_size < 1:
        raise ConfigError(
            f"embedding.batch_size must be >= 1, got {cfg.embedding.batch_size}"
        )


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> PdfChatConfig:
    """Build a *PdfChatConfig* from a merged raw YAML dict."""
    cfg = PdfChatConfig()

    try:
        if "embedding" in data:
            e = data["embedding"] or {}
            cfg.embedding = EmbeddingCfg(
                model=str(e.get("model", cfg.embedding.model)),
                batch_size=int(e.get("batch_size", cfg.embedding.batch_size)),
            )

        if "chunking" in data:
            c = data["chunking"] or {}
            cfg.chunking = ChunkingCfg(
                strategy=str(c.get("strategy", cfg.chunking.strategy)),
                target_size=int(c.get("target_size", cfg.chunking.target_size)),
                overlap=int(c.get("overlap", cfg.chunking.overlap)),
            )

        if "vector_store" in data:
            v = data["vector_store"] or {}
            cfg.vector_store = VectorStoreCfg(
                url=str(v.get("url", cfg.vector_store.url)),
                collection=str(v.get("collection", cfg.vector_store.collection)),
            )

        if "retrieval" in data:
            r = data["retrieval"] or {}
            cfg.retrieval = RetrievalCfg(top_k=int(r.get("top_k", cfg.retrieval.top_k)))

        if "generation" in data:
            g = data["generation"] or {}
            cfg.generation = GenerationCfg(
                model=str(g.get("model", cfg.generation.model)),
                token_budget=int(g.get("token_budget", cfg.generation.token_budget)),
            )

        if "state" in data:
            s = data["state"] or {}
            cfg.state = StateCfg(path=str(s.get("path", cfg.state.path)))

        if "document" in data:
            d = data["document"] or {}
            cfg.document = DocumentCfg(
                default_path=d.get("default_path") or None,
                verify_query=d.get("verify_query") or None,
            )

        if "logging" in data:
            lg = data["logging"] or {}
            cfg.logging = LoggingCfg(
                level=str(lg.get("level", cfg.logging.level)),
                json=bool(lg.get("json", cfg.logging.json)),
            )
    except (TypeError, ValueError, AttributeError) as exc:
        raise ConfigError(f"Invalid config value: {exc}") from exc

    return cfg


def _apply_env_overrides(cfg: PdfChatConfig) -> PdfChatConfig:
    """Apply PDFCHAT_* environment variable overrides."""
    if model := os.environ.get("PDFCHAT_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if model := os.environ.get("PDFCHAT_GENERATION_MODEL"):
        cfg.generation.model = model
    if url := os.environ.get("PDFCHAT_VECTOR_STORE_URL"):
        cfg.vector_store.url = url
    if collection := os.environ.get("PDFCHAT_COLLECTION"):
        cfg.vector_store.collection = collection
    if state_path := os.environ.get("PDFCHAT_STATE_PATH"):
        cfg.state.path = state_path
    if level := os.environ.get("PDFCHAT_LOG_LEVEL"):
        cfg.logging.level = level
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> PdfChatConfig:
    """Load and return a merged *PdfChatConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *pdfchat.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If global config contains API-key-like fields, or a
            value is invalid.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    _validate(cfg)
    return cfg
