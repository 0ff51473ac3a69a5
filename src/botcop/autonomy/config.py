from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import os

from ..backend_client import BotCredentials


DEFAULT_BASE_URL = "http://localhost:5001"
DEFAULT_HEALTH_CHECK_SECONDS = 30
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_SECONDS = 2.0


class ConfigError(ValueError):
    pass


@dataclass
class Config:
    base_url: str
    username: str
    password: str
    report_username: str
    interval_minutes: float
    port: int
    health_check_seconds: float = DEFAULT_HEALTH_CHECK_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS
    request_timeout_seconds: float = 30
    log_level: str = "INFO"
    log_path: Optional[Path] = None

    @property
    def action_period_seconds(self) -> float:
        return self.interval_minutes * 60

    @property
    def comment_offset_seconds(self) -> float:
        return self.action_period_seconds / 2

    @property
    def credentials(self) -> BotCredentials:
        return BotCredentials(username=self.username, password=self.password)

    def validate(self) -> "Config":
        if not self.base_url.startswith(("http://", "https://")):
            raise ConfigError(f"BOT_BASE_URL must be an http(s) URL, got {self.base_url!r}")
        if not self.username:
            raise ConfigError("BOT_USERNAME must not be empty")
        if not self.password:
            raise ConfigError("BOT_PASSWORD must be set")
        if not self.report_username:
            raise ConfigError("REPORT_USERNAME must not be empty")
        if self.interval_minutes <= 0:
            raise ConfigError("INTERVAL_MINUTES must be greater than zero")
        if self.health_check_seconds <= 0:
            raise ConfigError("BOT_HEALTH_CHECK_SECONDS must be greater than zero")
        if not 0 <= self.port <= 65535:
            raise ConfigError(f"PORT out of range: {self.port}")
        if self.max_retries < 0:
            raise ConfigError("BOT_MAX_RETRIES must not be negative")
        if self.retry_delay_seconds < 0:
            raise ConfigError("BOT_RETRY_DELAY_SECONDS must not be negative")
        return self


def _number_env(env_key: str, default: str, cast):
    raw = os.getenv(env_key, default).strip()
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigError(f"{env_key} must be a number, got {raw!r}") from e


def load_config() -> Config:
    base_url = os.getenv("BOT_BASE_URL", DEFAULT_BASE_URL).strip().rstrip("/")
    username = os.getenv("BOT_USERNAME", "cop").strip()
    password = os.getenv("BOT_PASSWORD", "")
    report_username = os.getenv("REPORT_USERNAME", "phone").strip()
    interval_minutes = _number_env("INTERVAL_MINUTES", "2", float)
    port = _number_env("PORT", "3000", int)
    health_check_seconds = _number_env("BOT_HEALTH_CHECK_SECONDS", str(DEFAULT_HEALTH_CHECK_SECONDS), float)
    max_retries = _number_env("BOT_MAX_RETRIES", str(DEFAULT_MAX_RETRIES), int)
    retry_delay_seconds = _number_env("BOT_RETRY_DELAY_SECONDS", str(DEFAULT_RETRY_DELAY_SECONDS), float)
    request_timeout_seconds = _number_env("BOT_REQUEST_TIMEOUT_SECONDS", "30", float)

    log_level = os.getenv("BOT_LOG_LEVEL", "INFO").strip().upper()
    log_path_str = os.getenv("BOT_LOG_PATH", "").strip()
    log_path = Path(log_path_str) if log_path_str else None

    return Config(
        base_url=base_url,
        username=username,
        password=password,
        report_username=report_username,
        interval_minutes=interval_minutes,
        port=port,
        health_check_seconds=health_check_seconds,
        max_retries=max_retries,
        retry_delay_seconds=retry_delay_seconds,
        request_timeout_seconds=request_timeout_seconds,
        log_level=log_level,
        log_path=log_path,
    ).validate()
