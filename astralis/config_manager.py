"""Read and write ``config.toml`` (``[llm]`` and ``[analysis]`` tables)."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict

import toml

logger = logging.getLogger(__name__)


def _config_file() -> Path:
    base = Path(os.environ.get("ASTRALIS_HOME", str(Path.home() / ".astralis"))).expanduser()
    return base / "config.toml"


DEFAULT_CONFIGS = {
    "ollama": {
        "provider": "ollama",
        "model": "qwen2.5-coder:7b",
        "endpoint": "http://127.0.0.1:11434/api/chat",
    },
    "groq": {
        "provider": "groq",
        "model": "llama-3.3-70b-versatile",
        "api_key": "",
    },
    "openai": {
        "provider": "openai",
        "model": "gpt-4o-mini",
        "api_key": "",
    },
    "anthropic": {
        "provider": "anthropic",
        "model": "claude-3-5-sonnet-20241022",
        "api_key": "",
    },
    "openrouter": {
        "provider": "openrouter",
        "model": "meta-llama/llama-3.2-3b-instruct:free",
        "api_key": "",
        "endpoint": "https://openrouter.ai/api/v1/chat/completions",
    },
}

DEFAULT_ANALYSIS = {"mode": "standard", "enhance": False, "timeout": 60.0}


def load_full_config(config_file: Path | None = None) -> Dict[str, Any]:
    """Load the entire TOML config (all sections); empty when missing or unreadable."""
    path = config_file or _config_file()
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return {}


def load_config(config_file: Path | None = None) -> Dict[str, Any]:
    """Return the ``[llm]`` table, falling back to OpenRouter defaults."""
    return load_full_config(config_file).get("llm") or DEFAULT_CONFIGS["openrouter"].copy()


def load_analysis_config(config_file: Path | None = None) -> Dict[str, Any]:
    """Return the ``[analysis]`` table merged over the defaults."""
    merged = DEFAULT_ANALYSIS.copy()
    merged.update(load_full_config(config_file).get("analysis") or {})
    return merged


def _save_full_config(config: Dict[str, Any], config_file: Path | None = None) -> bool:
    path = config_file or _config_file()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            toml.dump(config, f)
        return True
    except OSError as exc:
        logger.warning("Could not write %s: %s", path, exc)
        return False


def save_config(
    provider: str,
    model: str = "",
    api_key: str = "",
    endpoint: str = "",
    config_file: Path | None = None,
) -> bool:
    """Save the LLM settings, preserving other sections of the file."""
    config = load_full_config(config_file)
    llm = DEFAULT_CONFIGS.get(provider, {"provider": provider}).copy()
    if model:
        llm["model"] = model
    if api_key:
        llm["api_key"] = api_key
    if endpoint:
        llm["endpoint"] = endpoint
    config["llm"] = llm
    return _save_full_config(config, config_file)


def save_analysis_config(config_file: Path | None = None, **values: Any) -> bool:
    """Update keys of the ``[analysis]`` table."""
    config = load_full_config(config_file)
    analysis = dict(config.get("analysis") or {})
    analysis.update({k: v for k, v in values.items() if v is not None})
    config["analysis"] = analysis
    return _save_full_config(config, config_file)
