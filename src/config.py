"""Process-wide relay configuration.

Settings are read once at startup and frozen; every request handler shares
the same instance without locking.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_COMPLETION_MODEL = "text-davinci-003"
DEFAULT_MAX_TOKENS = 4000
DEFAULT_TEMPERATURE = 0.5
DEFAULT_COMPLETION_URL = "https://api.openai.com/v1/completions"
DEFAULT_LINE_API_BASE = "https://api.line.me/v2/bot"
DEFAULT_TIMEOUT_SECONDS = 30.0

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_REQUIRED_VARS = (
    "LINE_CHANNEL_SECRET",
    "LINE_CHANNEL_ACCESS_TOKEN",
    "CHATGPT_API_KEY",
    "LINE_CHAT_PROMPT",
)


class ConfigurationError(RuntimeError):
    """Raised when required settings are missing or invalid at startup."""


class RelaySettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    channel_secret: str = Field(min_length=1)
    channel_access_token: str = Field(min_length=1)
    completion_api_key: str = Field(min_length=1)
    chat_prompt: str = Field(min_length=1)
    completion_model: str = DEFAULT_COMPLETION_MODEL
    max_tokens: int | None = Field(default=None, gt=0)
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    completion_url: str = DEFAULT_COMPLETION_URL
    line_api_base: str = DEFAULT_LINE_API_BASE
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    audit_log_path: str | None = None
    log_level: LogLevel = "INFO"

    @property
    def effective_max_tokens(self) -> int:
        return self.max_tokens if self.max_tokens is not None else DEFAULT_MAX_TOKENS

    @property
    def effective_temperature(self) -> float:
        return self.temperature if self.temperature is not None else DEFAULT_TEMPERATURE

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RelaySettings:
        """Build settings from environment variables.

        Raises ConfigurationError naming every missing required variable.
        """
        env = os.environ if environ is None else environ
        missing = [name for name in _REQUIRED_VARS if not env.get(name)]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        try:
            max_tokens = _optional_int(env, "CHATGPT_MAX_TOKENS")
            temperature = _optional_float(env, "CHATGPT_TEMPERATURE")
            timeout = _optional_float(env, "OUTBOUND_TIMEOUT_SECONDS")
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        values: dict[str, object] = {
            "channel_secret": env["LINE_CHANNEL_SECRET"],
            "channel_access_token": env["LINE_CHANNEL_ACCESS_TOKEN"],
            "completion_api_key": env["CHATGPT_API_KEY"],
            "chat_prompt": env["LINE_CHAT_PROMPT"],
            "completion_model": env.get("CHATGPT_MODEL", DEFAULT_COMPLETION_MODEL),
            "max_tokens": max_tokens,
            "temperature": temperature,
            "completion_url": env.get("COMPLETION_URL", DEFAULT_COMPLETION_URL),
            "line_api_base": env.get("LINE_API_BASE", DEFAULT_LINE_API_BASE),
            "audit_log_path": env.get("AUDIT_LOG_PATH") or None,
            "log_level": env.get("LOG_LEVEL", "INFO").upper(),
        }
        if timeout is not None:
            values["timeout_seconds"] = timeout
        try:
            return cls(**values)  # type: ignore[arg-type]
        except ValueError as e:
            raise ConfigurationError(str(e)) from e


def _optional_int(env: Mapping[str, str], name: str) -> int | None:
    raw = env.get(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _optional_float(env: Mapping[str, str], name: str) -> float | None:
    raw = env.get(name)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
