from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping


REQUIRED_KEYS = [
    "SUPABASE_URL",
    "SUPABASE_ANON_KEY",
]

OPTIONAL_KEYS = [
    "SUPABASE_ACCESS_TOKEN",
    "SAMS_EMAIL",
    "SAMS_PASSWORD",
    "PRICE_CONCURRENCY",
    "HTTP_TIMEOUT_S",
    "LOG_LEVEL",
]

DEFAULT_CONCURRENCY = 3
DEFAULT_HTTP_TIMEOUT_S = 20.0

_PLACEHOLDERS = {"PLACEHOLDER", "MASKED", "CHANGEME", ""}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class Config:
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_access_token: str | None = None
    sams_email: str | None = None
    sams_password: str | None = None
    concurrency: int = DEFAULT_CONCURRENCY
    http_timeout_s: float = DEFAULT_HTTP_TIMEOUT_S
    log_level: str = "INFO"

    @property
    def has_sams_credentials(self) -> bool:
        return bool(self.sams_email and self.sams_password)

    @staticmethod
    def from_env(environ: Mapping[str, str] | None = None) -> "Config":
        env = os.environ if environ is None else environ

        values: dict[str, str] = {}
        for k in REQUIRED_KEYS:
            val = env.get(k)
            if val is None:
                raise RuntimeError(f"Missing environment variable: {k}")
            if val.strip() in _PLACEHOLDERS:
                raise RuntimeError(f"Environment variable {k} is empty or a placeholder")
            values[k] = val.strip()

        base = Config.provider_only(env)
        return Config(
            supabase_url=values["SUPABASE_URL"].rstrip("/"),
            supabase_anon_key=values["SUPABASE_ANON_KEY"],
            supabase_access_token=_optional(env, "SUPABASE_ACCESS_TOKEN"),
            sams_email=base.sams_email,
            sams_password=base.sams_password,
            concurrency=base.concurrency,
            http_timeout_s=base.http_timeout_s,
            log_level=base.log_level,
        )

    @staticmethod
    def provider_only(environ: Mapping[str, str] | None = None) -> "Config":
        """Config for price lookups that never touch the inventory backend."""
        env = os.environ if environ is None else environ
        return Config(
            sams_email=_optional(env, "SAMS_EMAIL"),
            sams_password=_optional(env, "SAMS_PASSWORD"),
            concurrency=_env_int(env, "PRICE_CONCURRENCY", DEFAULT_CONCURRENCY, min_value=1, max_value=16),
            http_timeout_s=_env_float(env, "HTTP_TIMEOUT_S", DEFAULT_HTTP_TIMEOUT_S),
            log_level=_log_level(env),
        )


def _optional(env: Mapping[str, str], key: str) -> str | None:
    val = env.get(key)
    if val is None or val.strip() in _PLACEHOLDERS:
        return None
    return val.strip()


def _env_int(env: Mapping[str, str], key: str, default: int, *, min_value: int, max_value: int) -> int:
    raw = env.get(key)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(min_value, min(max_value, value))


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _log_level(env: Mapping[str, str]) -> str:
    level = (env.get("LOG_LEVEL") or "INFO").strip().upper()
    return level if level in _LOG_LEVELS else "INFO"
