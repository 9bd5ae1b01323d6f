"""Configuration loading utilities for the relay server.

This module handles layered configuration:
1. Explicit path argument (highest precedence)
2. Environment variable RELAY_SERVER_CONFIG
3. Fallback to "config/default.yaml"

On top of the file, a ``.env`` file is loaded (python-dotenv) and the plain
variables GROQ_API_KEY, TELEX_API_KEY, TELEX_BASE_URL and AGENT_ID are mapped
into their sections. Finally, overrides with prefix ``RELAY_SERVER__`` are
applied (e.g., RELAY_SERVER__RELAY__TIMEOUT=5).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Tuple

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_PREFIX = "RELAY_SERVER__"

# plain env var -> (section, key)
ENV_ALIASES: Dict[str, Tuple[str, str]] = {
    "GROQ_API_KEY": ("completion", "api_key"),
    "TELEX_API_KEY": ("relay", "api_key"),
    "TELEX_BASE_URL": ("relay", "base_url"),
    "AGENT_ID": ("agent", "id"),
}


def _default_config() -> Dict[str, Any]:
    return {
        "server": {"cors_origins": ["*"]},
        "agent": {"id": "ai-agent-001", "name": "Telex AI Assistant"},
        "completion": {"model": "llama-3.3-70b-versatile"},
        "relay": {"base_url": "https://api.telex.im/v1"},
        "memory": {"max_conversations": 10000},
    }


def _coerce(value: str) -> Any:
    if value.lower() in {"true", "false"}:
        return value.lower() == "true"
    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def _apply_env_aliases(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Map the service's plain environment variables into config sections."""
    for var, (section, key) in ENV_ALIASES.items():
        value = os.environ.get(var)
        if not value:
            continue
        sub = cfg.get(section)
        if not isinstance(sub, dict):
            sub = cfg[section] = {}
        sub[key] = value
    return cfg


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides with prefix RELAY_SERVER__."""
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        # e.g., RELAY_SERVER__AGENT__ID -> cfg["agent"]["id"]
        parts = key[len(ENV_PREFIX):].lower().split("__")
        sub = cfg
        for p in parts[:-1]:
            if p not in sub or not isinstance(sub[p], dict):
                sub[p] = {}
            sub = sub[p]
        sub[parts[-1]] = _coerce(value)
    return cfg


def load_config(path: str | None = None, *, use_dotenv: bool = True) -> Dict[str, Any]:
    """Load YAML configuration for the relay server.

    Parameters
    ----------
    path : str | None
        Optional path to a configuration file. If not provided, the
        environment variable ``RELAY_SERVER_CONFIG`` is consulted. As a
        last resort ``config/default.yaml`` is used.
    use_dotenv : bool
        Load a ``.env`` file from the working directory first. Variables
        already present in the environment win.

    Returns
    -------
    Dict[str, Any]
        Parsed configuration dictionary with environment overrides applied.
    """
    if use_dotenv:
        load_dotenv()

    if path is None:
        path = os.environ.get("RELAY_SERVER_CONFIG", "config/default.yaml")

    path_obj = Path(path)
    if not path_obj.exists():
        logger.warning("Config file not found at %s. Using defaults.", path_obj)
        cfg = _default_config()
        return _apply_env_overrides(_apply_env_aliases(cfg))

    with path_obj.open("r", encoding="utf-8") as f:
        try:
            cfg = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise RuntimeError(f"Failed to parse config file {path_obj}: {e}")

    if not isinstance(cfg, dict):
        raise RuntimeError(f"Invalid config format in {path_obj}, expected dict.")

    return _apply_env_overrides(_apply_env_aliases(cfg))
