"""
Configuration Module for sitesync.

This module provides configuration loading for the sitesync service.
Configuration is loaded from config.yml and supports Docker secrets.

Usage:
    >>> from config import load_config
    >>> config = load_config()
    >>> posts_dir = config.get("content", {}).get("posts_dir", "Posts")
"""
import os
import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional


logger = logging.getLogger(__name__)


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from config.yml file.

    Args:
        config_path: Path to config.yml file. If None, looks in current directory
                    and parent directories.

    Returns:
        Dictionary containing configuration settings. Falls back to
        get_default_config() when the file is missing or unreadable.

    Example:
        >>> config = load_config()
        >>> storage_path = config.get("storage", {}).get("path", "./data/content")
    """
    if config_path is None:
        current = Path.cwd()
        for parent in [current] + list(current.parents):
            candidate = parent / "config.yml"
            if candidate.exists():
                config_path = str(candidate)
                break

        # If still not found, check the project root (where this file is located)
        if config_path is None:
            project_root = Path(__file__).parent.parent.parent
            candidate = project_root / "config.yml"
            if candidate.exists():
                config_path = str(candidate)

    if config_path is None:
        logger.warning("config.yml not found, using default configuration")
        return get_default_config()

    try:
        with open(config_path, "r") as f:
            config = yaml.safe_load(f)
            if not isinstance(config, dict):
                logger.warning("Configuration root must be a mapping, using default configuration")
                return get_default_config()
            logger.info(f"Loaded configuration from {config_path}")
            return config
    except FileNotFoundError:
        logger.warning(f"Configuration file not found: {config_path}")
        return get_default_config()
    except yaml.YAMLError as e:
        logger.error(f"Error parsing configuration file: {e}")
        return get_default_config()


def get_default_config() -> Dict[str, Any]:
    """Return default configuration when config.yml is not available.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "webhook": {
            "secret_file": "/run/secrets/webhook_secret"
        },
        "repository": {
            "raw_base_url": "https://raw.githubusercontent.com",
            "token_file": "/run/secrets/repository_token",
            "timeout": 10,
            "max_attempts": 3,
            "backoff_seconds": 0.5,
            "max_workers": 4
        },
        "content": {
            "posts_dir": "Posts",
            "projects_dir": "projects"
        },
        "storage": {
            "path": "./data/content"
        },
        "cors": {
            "enabled": False,
            "origins": []
        },
        "pushover": {
            "enabled": False,
            "app_token_file": "/run/secrets/pushover_app_token",
            "user_key_file": "/run/secrets/pushover_user_key"
        }
    }


def read_secret_file(filepath: str) -> Optional[str]:
    """Read a Docker secret from a file.

    Docker secrets are mounted as files in /run/secrets/ directory.

    Args:
        filepath: Path to the secret file

    Returns:
        Content of the secret file (stripped of whitespace), or None if file doesn't exist

    Example:
        >>> secret = read_secret_file("/run/secrets/webhook_secret")
    """
    try:
        with open(filepath, "r") as f:
            return f.read().strip()
    except FileNotFoundError:
        logger.debug(f"Secret file not found: {filepath}")
        return None
    except OSError as e:
        logger.error(f"Error reading secret file {filepath}: {e}")
        return None


def resolve_secret(section: Dict[str, Any], name: str, env_var: str) -> Optional[str]:
    """Resolve a secret from a config section.

    Priority: inline value `name` > file at `<name>_file` > environment variable.
    Empty values count as unset.

    Example:
        >>> secret = resolve_secret(config.get("webhook", {}), "secret", "WEBHOOK_SECRET")
    """
    value = section.get(name)
    if not value:
        secret_file = section.get(f"{name}_file")
        if secret_file:
            value = read_secret_file(secret_file)
    if not value:
        value = os.environ.get(env_var)
    return value or None
