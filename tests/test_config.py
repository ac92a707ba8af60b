from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from core.config import config_path, load_config
from core.exceptions import ConfigurationError
from tests.esi_test_utils import BASE_URL, CHARACTER_ID, SSO_URL


def _esi(**overrides: Any) -> dict[str, Any]:
    esi: dict[str, Any] = {
        "sso_url": SSO_URL + "/",
        "base_url": BASE_URL,
        "client_id": "client-id",
        "client_secret": "client-secret",
        "character_id": CHARACTER_ID,
        "character_refresh_token": "refresh-token-1",
    }
    esi.update(overrides)
    return esi


def _write(tmp_path: Path, data: Any) -> Path:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data))
    return path


def test_load_config_reads_file_and_applies_defaults(tmp_path: Path) -> None:
    config = load_config(_write(tmp_path, {"esi": _esi(), "proxy": {"port": 9000}}))

    assert config.proxy.port == 9000
    assert config.proxy.host == "127.0.0.1"
    assert config.esi.sso_url == SSO_URL
    assert config.esi.character_id == CHARACTER_ID
    assert config.esi.cache_tokens is True
    assert config.limits.max_connections == 100


@pytest.mark.parametrize(
    "field", ["sso_url", "base_url", "client_id", "client_secret", "character_id", "character_refresh_token"]
)
def test_missing_required_value_is_a_startup_error(tmp_path: Path, field: str) -> None:
    esi = _esi()
    del esi[field]
    with pytest.raises(ConfigurationError, match=field):
        load_config(_write(tmp_path, {"esi": esi}))


@pytest.mark.parametrize(
    "overrides",
    [
        {"base_url": "esi.example"},
        {"sso_url": "ftp://sso.example"},
        {"client_secret": ""},
        {"character_id": "not-a-number"},
    ],
)
def test_invalid_values_are_rejected(tmp_path: Path, overrides: dict[str, Any]) -> None:
    with pytest.raises(ConfigurationError):
        load_config(_write(tmp_path, {"esi": _esi(**overrides)}))


def test_missing_file_writes_template(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "config.json"
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(path)

    template = json.loads((tmp_path / "nested" / "config.template.json").read_text())
    assert set(template["esi"]) >= {"sso_url", "base_url", "character_refresh_token"}


def test_invalid_json_is_reported(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{not json")
    with pytest.raises(ConfigurationError, match="not valid JSON"):
        load_config(path)


def test_config_path_honours_environment(monkeypatch: Any, tmp_path: Path) -> None:
    monkeypatch.setenv("ESI_PROXY_CONFIG", str(tmp_path / "other.json"))
    assert config_path() == tmp_path / "other.json"
