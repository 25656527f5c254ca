"""Configuration loading for markdown-mentions

Settings come from ``.markdown-mentions.yaml`` (working directory first, then
home directory). Credentials come from the environment, optionally via a
``.env`` file.
"""

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Literal, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

if TYPE_CHECKING:
    from .directory import Account

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".markdown-mentions.yaml"


class ConfigError(ValueError):
    """Raised when settings or credentials are missing or invalid"""


class ResolverSettings(BaseModel):
    """Settings shared by the resolver, the directory clients and the CLI"""

    api_type: Literal["ocs", "slack"] = "ocs"
    base_path: str = "/ocs/v2.php/cloud/"
    max_workers: int = Field(default=10, ge=1)
    timeout: float = Field(default=10.0, gt=0)
    text_size: int = Field(default=14, gt=0)
    cache_path: Optional[str] = None


def config_paths() -> List[Path]:
    return [
        Path(CONFIG_FILE_NAME),
        Path.home() / CONFIG_FILE_NAME,
    ]


def load_config(paths: Optional[List[Path]] = None) -> ResolverSettings:
    """Load settings from the first config file found, or use defaults

    Args:
        paths: Candidate config files (default: cwd, then home directory)

    Returns:
        ResolverSettings

    Raises:
        ConfigError: If a config file exists but holds invalid settings
    """
    for config_path in paths if paths is not None else config_paths():
        if not config_path.exists():
            continue

        with open(config_path) as f:
            config = yaml.safe_load(f) or {}

        try:
            settings = ResolverSettings(**config.get("mentions", {}))
        except ValidationError as e:
            raise ConfigError(f"Invalid settings in {config_path}: {e}") from e

        logger.debug(f"Loaded config from {config_path}")
        return settings

    return ResolverSettings()


def load_account(
    settings: ResolverSettings, env: Optional[Dict[str, Any]] = None
) -> "Account":
    """Build the account to resolve mentions for from environment variables

    OCS needs ``MENTIONS_URL``, ``MENTIONS_USER`` and ``MENTIONS_TOKEN``.
    Slack needs ``SLACK_API_TOKEN``.

    Raises:
        ConfigError: If a required variable is not set
    """
    from .directory import Account

    if env is None:
        load_dotenv()
        env = dict(os.environ)

    if settings.api_type == "slack":
        required_vars = ["SLACK_API_TOKEN"]
    else:
        required_vars = ["MENTIONS_URL", "MENTIONS_USER", "MENTIONS_TOKEN"]

    missing = [var for var in required_vars if not env.get(var)]
    if missing:
        raise ConfigError(f"{', '.join(missing)} not found in environment variables")

    if settings.api_type == "slack":
        return Account(name="slack", token=env["SLACK_API_TOKEN"])

    return Account(
        name=f"{env['MENTIONS_USER']}@{env['MENTIONS_URL']}",
        url=env["MENTIONS_URL"],
        user_name=env["MENTIONS_USER"],
        token=env["MENTIONS_TOKEN"],
    )
