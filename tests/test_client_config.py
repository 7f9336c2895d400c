import json

import pytest

from payroll_admin.config import DEFAULT_BASE_URL, DEFAULT_TIMEOUT, ClientConfig, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("PAYROLL_API_BASE_URL", "PAYROLL_API_TOKEN", "PAYROLL_CSRF_TOKEN", "PAYROLL_API_TIMEOUT"):
        monkeypatch.delenv(key, raising=False)


def test_defaults_without_any_source(tmp_path):
    config = load_config(tmp_path / "absent.json")
    assert config == ClientConfig(DEFAULT_BASE_URL, None, None, DEFAULT_TIMEOUT)
    assert not config.is_authenticated


def test_priority_override_env_file(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "api_base_url": "http://file.test/",
        "api_access_token": "file-token",
        "api_timeout": 30,
    }))
    monkeypatch.setenv("PAYROLL_API_TOKEN", "env-token")

    config = load_config(path, base_url="http://override.test/")

    assert config.base_url == "http://override.test"
    assert config.access_token == "env-token"
    assert config.timeout == 30.0


def test_malformed_file_is_ignored(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    assert load_config(path).base_url == DEFAULT_BASE_URL


def test_bad_timeout_falls_back(tmp_path, monkeypatch):
    monkeypatch.setenv("PAYROLL_API_TIMEOUT", "soon")
    assert load_config(tmp_path / "absent.json").timeout == DEFAULT_TIMEOUT


def test_with_session_returns_new_config():
    base = ClientConfig()
    signed_in = base.with_session("abc", "xyz")
    assert (signed_in.access_token, signed_in.csrf_token) == ("abc", "xyz")
    assert base.access_token is None
    with pytest.raises(ValueError):
        base.with_session("", None)
