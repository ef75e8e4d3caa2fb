import os
from dataclasses import dataclass, fields
from typing import Mapping

from dotenv import dotenv_values

from watchmqtt.logging_config import get_logger

logger = get_logger(__name__)

ENV_PREFIX = "WATCHMQTT_"
DEFAULT_BASE_URL = "http://localhost:3001"


@dataclass
class ApiSettings:
    api_base_url: str = DEFAULT_BASE_URL
    health_api_base_url: str = DEFAULT_BASE_URL
    health_datname: str = "watchmqtt"
    default_broker: str = "local"
    request_timeout: float = 30.0
    page_size: int = 50
    ui_port: int = 8080
    storage_secret: str = "watchmqtt-secret"


def _env_key(field_name: str) -> str:
    return f"{ENV_PREFIX}{field_name.upper()}"


def _coerce(name: str, raw: str, default):
    if isinstance(default, int):
        try:
            value = int(raw)
        except ValueError:
            logger.warning("Invalid integer for %s: %r, using %s", _env_key(name), raw, default)
            return default
        if value <= 0:
            logger.warning("Non-positive value for %s: %r, using %s", _env_key(name), raw, default)
            return default
        return value
    if isinstance(default, float):
        try:
            value = float(raw)
        except ValueError:
            logger.warning("Invalid number for %s: %r, using %s", _env_key(name), raw, default)
            return default
        return value if value > 0 else default
    return raw.strip()


def load_settings(env_path: str = ".env", environ: Mapping[str, str] | None = None) -> ApiSettings:
    """Build settings from a .env file, overridden by process environment.

    Empty values are treated as unset, so both base URLs fall back to the
    local endpoint.
    """
    values: dict[str, str] = {}
    if env_path and os.path.exists(env_path):
        values.update({k: v for k, v in dotenv_values(env_path).items() if v is not None})
    values.update(os.environ if environ is None else environ)

    settings = ApiSettings()
    for f in fields(ApiSettings):
        raw = values.get(_env_key(f.name))
        if raw is None or not raw.strip():
            continue
        setattr(settings, f.name, _coerce(f.name, raw, getattr(settings, f.name)))

    settings.api_base_url = settings.api_base_url.rstrip("/") or DEFAULT_BASE_URL
    settings.health_api_base_url = settings.health_api_base_url.rstrip("/") or DEFAULT_BASE_URL
    logger.info(
        "Settings loaded: api=%s health=%s datname=%s",
        settings.api_base_url, settings.health_api_base_url, settings.health_datname,
    )
    return settings
