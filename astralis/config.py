"""Configuration paths and defaults for Astralis."""

from __future__ import annotations

import os
from pathlib import Path

from .config_manager import load_analysis_config, load_config

BASE_DIR = Path(os.environ.get("ASTRALIS_HOME", str(Path.home() / ".astralis"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"
HISTORY_DB = BASE_DIR / "history.db"

VERBOSITY_MODES = ("concise", "standard", "deep_dive")
DEFAULT_MODE = "standard"
DEFAULT_TIMEOUT = 60.0
HISTORY_LIMIT = 50

_llm_config = load_config()
_analysis_config = load_analysis_config()

# LLM settings come from ~/.astralis/config.toml (written by `astralis set-llm`)
LLM_PROVIDER = _llm_config.get("provider", "openrouter")
LLM_API_KEY = os.environ.get("ASTRALIS_LLM_API_KEY") or _llm_config.get("api_key", "")
LLM_MODEL = _llm_config.get("model", "meta-llama/llama-3.2-3b-instruct:free")
LLM_ENDPOINT = _llm_config.get("endpoint", "")

ANALYSIS_MODE = _analysis_config.get("mode", DEFAULT_MODE)
ENHANCE_BY_DEFAULT = bool(_analysis_config.get("enhance", False))
ENHANCE_TIMEOUT = float(_analysis_config.get("timeout", DEFAULT_TIMEOUT))


def ensure_base_dirs() -> None:
    """Create the base directory for local storage if needed."""
    BASE_DIR.mkdir(parents=True, exist_ok=True)


def normalize_mode(mode: str | None) -> str:
    """Map unknown verbosity modes to the default."""
    return mode if mode in VERBOSITY_MODES else DEFAULT_MODE
