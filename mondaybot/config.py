"""Configuration management for MondayBot."""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, SecretStr


class DiscordConfig(BaseModel):
    """Discord connection settings."""

    bot_token: SecretStr = Field(..., description="Bot token for the Discord gateway and REST API")
    guild_id: int = Field(..., description="Guild (server) holding the project forums")
    projects_category_id: int = Field(..., description="Category whose forums hold project threads")
    projects_forum_id: Optional[int] = Field(
        default=None, description="Forum where new project threads are created"
    )


class MondayConfig(BaseModel):
    """Monday.com API settings."""

    api_token: Optional[SecretStr] = None
    api_url: str = "https://api.monday.com/v2"
    file_api_url: str = "https://api.monday.com/v2/file"
    api_version: str = "2024-10"


class EligibilityRule(BaseModel):
    """Item is eligible when `field` contains any of the `contains` terms."""

    field: str
    contains: list[str] = Field(..., min_length=1)


class StatusSymbol(BaseModel):
    """Symbol shown for status labels containing any of `keywords`."""

    keywords: list[str] = Field(..., min_length=1)
    symbol: str


DEFAULT_STATUS_SYMBOLS = [
    StatusSymbol(keywords=["complete", "done"], symbol="✅"),
    StatusSymbol(keywords=["progress", "working"], symbol="🔄"),
    StatusSymbol(keywords=["stuck", "blocked"], symbol="🚫"),
    StatusSymbol(keywords=["review"], symbol="👀"),
    StatusSymbol(keywords=["plan"], symbol="📋"),
]


class SyncConfig(BaseModel):
    """Rules deciding which items sync and how their events are rendered."""

    eligibility_rules: list[EligibilityRule] = Field(default_factory=list)
    # Items sync when their snapshot can't be fetched
    fail_open: bool = True
    urgent_fields: list[str] = Field(default_factory=list)
    field_labels: dict[str, str] = Field(default_factory=dict)
    status_symbols: list[StatusSymbol] = Field(
        default_factory=lambda: [s.model_copy() for s in DEFAULT_STATUS_SYMBOLS]
    )
    default_status_symbol: str = "📌"
    marker_template: str = "Monday Item ID: {item_id}"
    info_fields: list[str] = Field(default_factory=list)


class WebhookConfig(BaseModel):
    """Webhook HTTP server settings."""

    host: str = "0.0.0.0"
    port: int = Field(default=3001, ge=1, le=65535)


class BotConfig(BaseModel):
    """Runtime settings."""

    database_path: str = Field(
        default="~/.mondaybot/mondaybot.db", description="Path to SQLite database file"
    )
    request_timeout: float = Field(default=30.0, gt=0, description="Seconds per external call")
    recent_mappings_limit: int = Field(default=5, ge=1)


class Config(BaseModel):
    """Root configuration model."""

    discord: DiscordConfig
    monday: MondayConfig = MondayConfig()
    sync: SyncConfig = SyncConfig()
    webhook: WebhookConfig = WebhookConfig()
    bot: BotConfig = BotConfig()


def load_config(config_path: str | Path = "config.yaml") -> Config:
    """Load and validate configuration from YAML file.

    Supports ${VAR_NAME} syntax for environment variable expansion.

    Args:
        config_path: Path to the configuration file.

    Returns:
        Validated Config object.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValidationError: If config is invalid.
        ValueError: If referenced environment variable is not set.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {path}\n"
            "Copy config.example.yaml to config.yaml and fill in your values."
        )

    with path.open() as f:
        raw_config = yaml.safe_load(f) or {}

    # Expand environment variables in the format ${VAR_NAME}
    def expand_env_vars(obj):
        if isinstance(obj, dict):
            return {k: expand_env_vars(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [expand_env_vars(item) for item in obj]
        elif isinstance(obj, str) and obj.startswith("${") and obj.endswith("}"):
            env_var = obj[2:-1]
            value = os.getenv(env_var)
            if value is None:
                raise ValueError(f"Environment variable '{env_var}' is not set")
            return value
        return obj

    raw_config = expand_env_vars(raw_config)

    return Config(**raw_config)
