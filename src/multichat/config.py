"""Multichat configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site, not in this module)
  2. Environment variables  (MULTICHAT_*)
  3. Per-project multichat.yaml  (current directory)
  4. Global ~/.multichat/config.yaml  (no API keys)
  5. Hardcoded defaults

The API credential is read from the environment only (MULTICHAT_API_KEY, then
OPENAI_API_KEY). Global config must never contain it.
All YAML reads use yaml.safe_load().
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

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".multichat"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "multichat.yaml"

# Fields that suggest a credential. Does NOT match max_tokens.
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
    ["site", "crawl", "knowledge", "generation", "rate_limit", "chat", "storage", "logging"]
)

_API_KEY_ENV_VARS: tuple[str, ...] = ("MULTICHAT_API_KEY", "OPENAI_API_KEY")

KB_TTL_FLOOR: int = 3_600
MAX_CRAWL_TIMEOUT: int = 30

DEFAULT_USER_AGENT: str = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36 multichat/0.1"
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
class SiteCfg:
    """Site to index (multichat.yaml: site:).

    Attributes:
        sitemap_url: Sitemap (or sitemap index) for the default language.
        post_types: Accepted URL categories, e.g. ["page", "post"]. Empty = all.
        languages: Language code → sitemap URL, for multilingual sites.
        external: Accept sitemap entries pointing at other hosts.
    """

    sitemap_url: str | None = None
    post_types: list[str] = field(default_factory=list)
    languages: dict[str, str] = field(default_factory=dict)
    external: bool = True


@dataclass
class CrawlCfg:
    """Page fetching (multichat.yaml: crawl:)."""

    max_pages: int = 50
    timeout: int = 30
    verify_ssl: bool = False
    user_agent: str = DEFAULT_USER_AGENT
    max_content_chars: int = 5_000
    delay: float = 0.1
    max_sitemap_depth: int = 5
    max_sitemap_urls: int = 10_000


@dataclass
class KnowledgeCfg:
    """Chunking, ranking and KB cache lifetime (multichat.yaml: knowledge:)."""

    max_chunk_size: int = 500
    top_n: int = 3
    cache_ttl: int = 7 * 24 * 3_600


@dataclass
class GenerationCfg:
    """Upstream completion call (multichat.yaml: generation:)."""

    model: str = "openai/gpt-3.5-turbo"
    api_base: str | None = None
    temperature: float = 0.7
    max_tokens: int = 1_000
    timeout: int = 30
    max_retries: int = 2
    cache_ttl: int = 3_600


@dataclass
class RateLimitCfg:
    limit: int = 10
    window: int = 60


@dataclass
class ChatCfg:
    """Request validation (multichat.yaml: chat:)."""

    max_message_length: int = 2_000
    languages: list[str] = field(default_factory=lambda: ["en", "ar", "es", "fr"])
    default_language: str = "en"


@dataclass
class StorageCfg:
    path: str = ".multichat.db"


@dataclass
class LoggingCfg:
    level: str = "INFO"


@dataclass
class MultichatConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    site: SiteCfg = field(default_factory=SiteCfg)
    crawl: CrawlCfg = field(default_factory=CrawlCfg)
    knowledge: KnowledgeCfg = field(default_factory=KnowledgeCfg)
    generation: GenerationCfg = field(default_factory=GenerationCfg)
    rate_limit: RateLimitCfg = field(default_factory=RateLimitCfg)
    chat: ChatCfg = field(default_factory=ChatCfg)
    storage: StorageCfg = field(default_factory=StorageCfg)
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
                        f"    export MULTICHAT_API_KEY=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _validate_url(value: str, name: str) -> None:
    """Raise ConfigError unless *value* is an absolute http(s) URL."""
    if not value.startswith(("http://", "https://")):
        raise ConfigError(
            f"{name} must be an absolute http(s) URL: '{value}'\n"
            "  Example: site.sitemap_url: https://example.com/sitemap.xml"
        )


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}', ignored.",
                UserWarning,
                stacklevel=4,
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


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _cfg_from_dict(data: dict[str, Any]) -> MultichatConfig:
    """Build a *MultichatConfig* from a merged raw YAML dict."""
    cfg = MultichatConfig()

    if "site" in data:
        s = data["site"] or {}
        cfg.site = SiteCfg(
            sitemap_url=s.get("sitemap_url") or cfg.site.sitemap_url,
            post_types=[str(p) for p in s.get("post_types") or []],
            languages={str(k): str(v) for k, v in (s.get("languages") or {}).items()},
            external=_as_bool(s.get("external", cfg.site.external)),
        )

    if "crawl" in data:
        c = data["crawl"] or {}
        cfg.crawl = CrawlCfg(
            max_pages=int(c.get("max_pages", cfg.crawl.max_pages)),
            timeout=int(c.get("timeout", cfg.crawl.timeout)),
            verify_ssl=_as_bool(c.get("verify_ssl", cfg.crawl.verify_ssl)),
            user_agent=str(c.get("user_agent", cfg.crawl.user_agent)),
            max_content_chars=int(c.get("max_content_chars", cfg.crawl.max_content_chars)),
            delay=float(c.get("delay", cfg.crawl.delay)),
            max_sitemap_depth=int(c.get("max_sitemap_depth", cfg.crawl.max_sitemap_depth)),
            max_sitemap_urls=int(c.get("max_sitemap_urls", cfg.crawl.max_sitemap_urls)),
        )

    if "knowledge" in data:
        k = data["knowledge"] or {}
        cfg.knowledge = KnowledgeCfg(
            max_chunk_size=int(k.get("max_chunk_size", cfg.knowledge.max_chunk_size)),
            top_n=int(k.get("top_n", cfg.knowledge.top_n)),
            cache_ttl=int(k.get("cache_ttl", cfg.knowledge.cache_ttl)),
        )

    if "generation" in data:
        g = data["generation"] or {}
        cfg.generation = GenerationCfg(
            model=str(g.get("model", cfg.generation.model)),
            api_base=g.get("api_base") or cfg.generation.api_base,
            temperature=float(g.get("temperature", cfg.generation.temperature)),
            max_tokens=int(g.get("max_tokens", cfg.generation.max_tokens)),
            timeout=int(g.get("timeout", cfg.generation.timeout)),
            max_retries=int(g.get("max_retries", cfg.generation.max_retries)),
            cache_ttl=int(g.get("cache_ttl", cfg.generation.cache_ttl)),
        )

    if "rate_limit" in data:
        r = data["rate_limit"] or {}
        cfg.rate_limit = RateLimitCfg(
            limit=int(r.get("limit", cfg.rate_limit.limit)),
            window=int(r.get("window", cfg.rate_limit.window)),
        )

    if "chat" in data:
        ch = data["chat"] or {}
        cfg.chat = ChatCfg(
            max_message_length=int(ch.get("max_message_length", cfg.chat.max_message_length)),
            languages=[str(x) for x in ch.get("languages") or cfg.chat.languages],
            default_language=str(ch.get("default_language", cfg.chat.default_language)),
        )

    if "storage" in data:
        st = data["storage"] or {}
        cfg.storage = StorageCfg(path=str(st.get("path", cfg.storage.path)))

    if "logging" in data:
        lg = data["logging"] or {}
        cfg.logging = LoggingCfg(level=str(lg.get("level", cfg.logging.level)).upper())

    return cfg


def _normalise(cfg: MultichatConfig) -> MultichatConfig:
    """Clamp values to their supported ranges."""
    cfg.crawl.timeout = max(1, min(cfg.crawl.timeout, MAX_CRAWL_TIMEOUT))
    cfg.crawl.max_pages = max(1, cfg.crawl.max_pages)
    cfg.knowledge.cache_ttl = max(KB_TTL_FLOOR, cfg.knowledge.cache_ttl)
    cfg.knowledge.max_chunk_size = max(1, cfg.knowledge.max_chunk_size)
    cfg.generation.max_retries = max(0, cfg.generation.max_retries)
    if cfg.chat.default_language not in cfg.chat.languages:
        raise ConfigError(
            f"chat.default_language '{cfg.chat.default_language}' is not one of "
            f"chat.languages: {', '.join(cfg.chat.languages)}"
        )
    return cfg


def _apply_env_overrides(cfg: MultichatConfig) -> MultichatConfig:
    """Apply MULTICHAT_* environment variable overrides (layer 2)."""
    if model := os.environ.get("MULTICHAT_GENERATION_MODEL"):
        cfg.generation.model = model
    if api_base := os.environ.get("MULTICHAT_API_BASE"):
        cfg.generation.api_base = api_base
    if sitemap := os.environ.get("MULTICHAT_SITEMAP_URL"):
        cfg.site.sitemap_url = sitemap
    if db_path := os.environ.get("MULTICHAT_DB_PATH"):
        cfg.storage.path = db_path
    if level := os.environ.get("MULTICHAT_LOG_LEVEL"):
        cfg.logging.level = level.upper()
    if limit := os.environ.get("MULTICHAT_RATE_LIMIT"):
        cfg.rate_limit.limit = int(limit)
    if window := os.environ.get("MULTICHAT_RATE_WINDOW"):
        cfg.rate_limit.window = int(window)
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> MultichatConfig:
    """Load and return a merged *MultichatConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *multichat.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If global config contains API-key-like fields, a sitemap
            URL is not http(s), or the default language is not enabled.
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

    if cfg.site.sitemap_url:
        _validate_url(cfg.site.sitemap_url, "site.sitemap_url")
    for lang, url in cfg.site.languages.items():
        _validate_url(url, f"site.languages.{lang}")

    return _normalise(cfg)


def get_api_key() -> str:
    """Return the configured API credential, or an empty string if unset."""
    for name in _API_KEY_ENV_VARS:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return ""


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.multichat/config.yaml`` with defaults if it does not exist.

    Creates parent directory with mode 0o700 and the config file with
    mode 0o600 (owner-readable only).
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# Multichat global configuration.\n"
            "# NEVER store API keys here. Use environment variables:\n"
            "#   export MULTICHAT_API_KEY=sk-...\n"
            "\n"
            "generation:\n"
            "  model: openai/gpt-3.5-turbo\n"
            "\n"
            "rate_limit:\n"
            "  limit: 10\n"
            "  window: 60\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target
