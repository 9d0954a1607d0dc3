"""Environment variable loading from .env files with precedence support."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

CONFIG_PATH_VAR = "CITEPRESS_CONFIG"
DEFAULT_CONFIG_PATH = "citepress.toml"

# Zotero environment variables and the [citations.zotero] keys they override
ZOTERO_ENV_VARS = {
    "ZOTERO_API_KEY": "api_key",
    "ZOTERO_USER_ID": "user_id",
    "ZOTERO_GROUP_ID": "group_id",
    "ZOTERO_COLLECTION_KEY": "collection_key",
}


def load_environment_variables(dotenv_path: Path | str | None = None) -> None:
    """
    Load environment variables from a .env file.

    System environment variables take precedence over .env values
    (load_dotenv(override=False)).

    Args:
        dotenv_path: Optional path to .env file. If None, searches the current
                     working directory and up to 3 parent directories.
    """
    if dotenv_path is None:
        current = Path.cwd()
        for path in [current, *list(current.parents)[:3]]:
            candidate = path / ".env"
            if candidate.exists():
                dotenv_path = candidate
                break
        if dotenv_path is None:
            return

    dotenv_path = Path(dotenv_path)
    if dotenv_path.exists():
        load_dotenv(dotenv_path, override=False)
        logger.debug(f"Loaded .env file from: {dotenv_path}")
    else:
        logger.debug(f".env file not found at: {dotenv_path}")


def get_env(key: str, default: str | None = None) -> str | None:
    """
    Get environment variable value.

    Args:
        key: Environment variable name
        default: Default value if not found

    Returns:
        Environment variable value or default
    """
    return os.getenv(key, default)


def get_config_path() -> Path:
    """Configuration file path from CITEPRESS_CONFIG, defaulting to citepress.toml."""
    return Path(get_env(CONFIG_PATH_VAR) or DEFAULT_CONFIG_PATH)


def get_zotero_overrides() -> dict[str, str]:
    """
    Zotero settings supplied through the environment.

    Only non-empty variables are returned, keyed by their [citations.zotero]
    setting name.
    """
    overrides = {}
    for var, setting in ZOTERO_ENV_VARS.items():
        value = get_env(var)
        if value:
            overrides[setting] = value
    return overrides
