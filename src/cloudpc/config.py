import json
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from .core import DEFAULT_PAGE_SIZE, DEFAULT_TIMEOUT, GRAPH_BASE_URL
from .errors import ConfigError

CONFIG_DIR = Path.home() / ".config" / "cloudpc"
CONFIG_FILE = CONFIG_DIR / "config.json"

# env var -> settings field; later entries win
ENV_VARS = {
    "AZURE_TENANT_ID": "tenant_id",
    "AZURE_CLIENT_ID": "client_id",
    "AZURE_CLIENT_SECRET": "client_secret",
    "CLOUDPC_TENANT_ID": "tenant_id",
    "CLOUDPC_CLIENT_ID": "client_id",
    "CLOUDPC_CLIENT_SECRET": "client_secret",
    "CLOUDPC_GRAPH_BASE_URL": "graph_base_url",
    "CLOUDPC_TIMEOUT": "timeout",
    "CLOUDPC_PAGE_SIZE": "page_size",
}


class Theme(BaseModel):
    """Rich styles for the console front end."""

    title: str = "bold cyan"
    accent: str = "bold green"
    muted: str = "dim"
    warning: str = "yellow"
    error: str = "bold red"
    running: str = "green"
    stopped: str = "red"


class Settings(BaseModel):
    tenant_id: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    graph_base_url: str = GRAPH_BASE_URL
    timeout: int = Field(default=DEFAULT_TIMEOUT, gt=0)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, gt=0, le=999)
    theme: Theme = Field(default_factory=Theme)


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Could not read {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a JSON object")
    return data


def load_settings(
    path: Path | None = None,
    env: dict[str, str] | None = None,
    **overrides: Any,
) -> Settings:
    """
    Builds Settings from the config file, then environment variables,
    then explicit overrides (CLI flags). None overrides are ignored.
    """
    values = _read_config_file(path or CONFIG_FILE)

    environ = os.environ if env is None else env
    for var, field in ENV_VARS.items():
        if environ.get(var):
            values[field] = environ[var]

    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
