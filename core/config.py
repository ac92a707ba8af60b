"""Configuration models and loading."""

import json
import os
from pathlib import Path
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, ValidationError, field_validator

from core.exceptions import ConfigurationError

CONFIG_DIR = Path.home() / ".config" / "esi-search-proxy"
CONFIG_FILE = CONFIG_DIR / "config.json"
CONFIG_ENV_VAR = "ESI_PROXY_CONFIG"


class ProxySettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = False


class EsiSettings(BaseModel):
    sso_url: str
    base_url: str
    client_id: str = Field(min_length=1)
    client_secret: str = Field(min_length=1)
    character_id: int
    character_refresh_token: str = Field(min_length=1)
    cache_tokens: bool = True

    @field_validator("sso_url", "base_url")
    @classmethod
    def _require_http_url(cls, value: str) -> str:
        parts = urlsplit(value)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"not an absolute http(s) URL: {value!r}")
        return value.rstrip("/")


class LimitsSettings(BaseModel):
    request_timeout: float = 100.0
    max_connections: int = 100
    max_keepalive_connections: int = 20
    keep_alive_timeout: int = 5


class Config(BaseModel):
    proxy: ProxySettings = Field(default_factory=ProxySettings)
    esi: EsiSettings
    limits: LimitsSettings = Field(default_factory=LimitsSettings)


# Written when no config exists yet; every esi value must be filled in.
TEMPLATE = {
    "proxy": ProxySettings().model_dump(),
    "esi": {
        "sso_url": "https://login.eveonline.com",
        "base_url": "https://esi.evetech.net",
        "client_id": "",
        "client_secret": "",
        "character_id": 0,
        "character_refresh_token": "",
        "cache_tokens": True,
    },
    "limits": LimitsSettings().model_dump(),
}


def config_path() -> Path:
    """Return the config file location, honouring ESI_PROXY_CONFIG."""
    override = os.environ.get(CONFIG_ENV_VAR)
    return Path(override) if override else CONFIG_FILE


def load_config(path: Path | None = None) -> Config:
    """Load configuration from a JSON file.

    Raises ConfigurationError when the file is missing or any required value
    is absent or invalid, so misconfiguration surfaces at startup.
    """
    path = path or config_path()
    if not path.exists():
        template = path.with_suffix(".template.json")
        try:
            template.parent.mkdir(parents=True, exist_ok=True)
            template.write_text(json.dumps(TEMPLATE, indent=2))
        except OSError:
            pass
        raise ConfigurationError(f"Config file not found: {path} (template: {template})")

    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Config file {path} is not valid JSON: {e}") from e

    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config in {path}:\n{e}") from e
