"""Sidekick configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (SIDEKICK_GENERATION_MODEL, SIDEKICK_EMBEDDING_MODEL, SIDEKICK_DB)
  3. Per-project sidekick.yaml  (working directory)
  4. Global ~/.sidekick/config.yaml  (model defaults only — no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
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

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".sidekick"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "sidekick.yaml"

# Fields that suggest a credential — forbidden in global config.
# Does NOT match legitimate config keys like max_tokens.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["database", "embedding", "generation", "retrieval"]
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
class DatabaseCfg:
    """Database location (sidekick.yaml: database:)."""

    path: str = ".sidekick.db"


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (sidekick.yaml: embedding:).

    Attributes:
        model: LiteLLM embedding model string (provider/model format).
        dimensions: Fixed vector length for this deployment.
        max_input_chars: Text sent to the embedding service is clipped to this
            many characters. The stored chunk text is never clipped.
    """

    model: str = "openai/text-embedding-3-small"
    dimensions: int = 1536
    max_input_chars: int = 24_000


@dataclass
class GenerationCfg:
    """Answer generation configuration (sidekick.yaml: generation:)."""

    model: str = "openai/gpt-4o"
    max_tokens: int = 1_500
    temperature: float = 0.2


@dataclass
class RetrievalCfg:
    """Evidence gathering and context bounds (sidekick.yaml: retrieval:).

    Attributes:
        similarity_threshold: Minimum cosine similarity for a semantic match.
        semantic_limit: Match cap when semantic search is the only evidence source.
        semantic_limit_with_direct: Match cap when direct evidence already exists.
        max_context_items: Hard cap on evidence items passed to the model.
        recent_limit: Row cap for "most recent" lookups (documents, uploads, exports).
        excerpt_chars: Citation excerpt length before the ellipsis.
    """

    similarity_threshold: float = 0.65
    semantic_limit: int = 10
    semantic_limit_with_direct: int = 5
    max_context_items: int = 20
    recent_limit: int = 10
    excerpt_chars: int = 150


@dataclass
class SidekickConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    database: DatabaseCfg = field(default_factory=DatabaseCfg)
    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    generation: GenerationCfg = field(default_factory=GenerationCfg)
    retrieval: RetrievalCfg = field(default_factory=RetrievalCfg)


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


def _validate(cfg: SidekickConfig) -> None:
    r = cfg.retrieval
    if not 0.0 <= r.similarity_threshold < 1.0:
        raise ConfigError(
            f"retrieval.similarity_threshold must be in [0.0, 1.0), got {r.similarity_threshold}"
        )
    if r.max_context_items < 1:
        raise ConfigError(
            f"retrieval.max_context_items must be >= 1, got {r.max_context_items}"
        )
    if cfg.embedding.dimensions < 1:
        raise ConfigError(
            f"embedding.dimensions must be >= 1, got {cfg.embedding.dimensions}"
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


def _cfg_from_dict(data: dict[str, Any]) -> SidekickConfig:
    """Build a *SidekickConfig* from a merged raw YAML dict."""
    cfg = SidekickConfig()

    if "database" in data:
        d = data["database"]
        cfg.database = DatabaseCfg(path=str(d.get("path", cfg.database.path)))

    if "embedding" in data:
        e = data["embedding"]
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            dimensions=int(e.get("dimensions", cfg.embedding.dimensions)),
            max_input_chars=int(e.get("max_input_chars", cfg.embedding.max_input_chars)),
        )

    if "generation" in data:
        g = data["generation"]
        cfg.generation = GenerationCfg(
            model=str(g.get("model", cfg.generation.model)),
            max_tokens=int(g.get("max_tokens", cfg.generation.max_tokens)),
            temperature=float(g.get("temperature", cfg.generation.temperature)),
        )

    if "retrieval" in data:
        r = data["retrieval"]
        cfg.retrieval = RetrievalCfg(
            similarity_threshold=float(
                r.get("similarity_threshold", cfg.retrieval.similarity_threshold)
            ),
            semantic_limit=int(r.get("semantic_limit", cfg.retrieval.semantic_limit)),
            semantic_limit_with_direct=int(
                r.get("semantic_limit_with_direct", cfg.retrieval.semantic_limit_with_direct)
            ),
            max_context_items=int(
                r.get("max_context_items", cfg.retrieval.max_context_items)
            ),
            recent_limit=int(r.get("recent_limit", cfg.retrieval.recent_limit)),
            excerpt_chars=int(r.get("excerpt_chars", cfg.retrieval.excerpt_chars)),
        )

    return cfg


def _apply_env_overrides(cfg: SidekickConfig) -> SidekickConfig:
    """Apply SIDEKICK_* environment variable overrides (layer 2)."""
    if model := os.environ.get("SIDEKICK_GENERATION_MODEL"):
        cfg.generation.model = model
    if model := os.environ.get("SIDEKICK_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if db_path := os.environ.get("SIDEKICK_DB"):
        cfg.database.path = db_path
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> SidekickConfig:
    """Load and return a merged *SidekickConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *sidekick.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *SidekickConfig* with env var overrides applied.

    Raises:
        ConfigError: If global config contains API-key-like fields, or a
            retrieval bound is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)
    cfg = _apply_env_overrides(cfg)
    _validate(cfg)
    return cfg


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.sidekick/config.yaml`` with defaults if it does not exist.

    Creates parent directory with mode 0o700 and the config file with
    mode 0o600 (owner-readable only).
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# Sidekick global configuration — model defaults only.\n"
            "# NEVER store API keys here — use environment variables:\n"
            "#   export OPENAI_API_KEY=sk-...\n"
            "\n"
            "embedding:\n"
            "  model: openai/text-embedding-3-small\n"
            "  dimensions: 1536\n"
            "\n"
            "generation:\n"
            "  model: openai/gpt-4o\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target
