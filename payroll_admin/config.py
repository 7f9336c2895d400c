"""
Client configuration.

Everything the HTTP layer needs (base URL, bearer token, CSRF token, timeout)
is resolved once at bootstrap and carried around in an immutable
`ClientConfig`. Nothing reads tokens from module globals after that.

Priority for each value:
1. Keyword overrides passed to `load_config()`
2. Environment variables (PAYROLL_API_BASE_URL, PAYROLL_API_TOKEN,
   PAYROLL_CSRF_TOKEN, PAYROLL_API_TIMEOUT)
3. payroll_admin/config.json
4. Built-in defaults
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://127.0.0.1:8000"
DEFAULT_TIMEOUT = 10.0
CONFIG_PATH = Path(__file__).resolve().parent / "config.json"

_ENV_KEYS = {
    "base_url": "PAYROLL_API_BASE_URL",
    "access_token": "PAYROLL_API_TOKEN",
    "csrf_token": "PAYROLL_CSRF_TOKEN",
    "timeout": "PAYROLL_API_TIMEOUT",
}
_JSON_KEYS = {
    "base_url": "api_base_url",
    "access_token": "api_access_token",
    "csrf_token": "api_csrf_token",
    "timeout": "api_timeout",
}


@dataclass(frozen=True)
class ClientConfig:
    base_url: str = DEFAULT_BASE_URL
    access_token: Optional[str] = None
    csrf_token: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT

    def with_session(self, access_token: str, csrf_token: Optional[str]) -> "ClientConfig":
        """Return a copy carrying the tokens issued by a successful login."""
        if not access_token:
            raise ValueError("access_token cannot be empty")
        return replace(self, access_token=access_token, csrf_token=csrf_token)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)


def _read_json(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: expected a JSON object", path)
        return {}
    return data


def load_config(config_path: Optional[Path] = None, **overrides: Any) -> ClientConfig:
    """Resolve a ClientConfig from overrides, environment, config.json and defaults."""

    load_dotenv()
    file_values = _read_json(config_path or CONFIG_PATH)

    resolved: Dict[str, Any] = {}
    for name, env_key in _ENV_KEYS.items():
        value = overrides.get(name)
        if value is None:
            value = os.getenv(env_key) or None
        if value is None:
            value = file_values.get(_JSON_KEYS[name]) or None
        if value is not None:
            resolved[name] = value

    if "base_url" in resolved:
        resolved["base_url"] = str(resolved["base_url"]).rstrip("/")
    if "timeout" in resolved:
        try:
            resolved["timeout"] = float(resolved["timeout"])
        except (TypeError, ValueError):
            logger.warning("Invalid timeout %r, using %s s", resolved["timeout"], DEFAULT_TIMEOUT)
            resolved["timeout"] = DEFAULT_TIMEOUT

    return ClientConfig(**resolved)
