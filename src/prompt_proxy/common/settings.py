"""Environment-driven settings, read once at startup."""
from __future__ import annotations
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from dotenv import load_dotenv

DEFAULT_ALLOWED_ORIGINS = ("http://localhost:3000",)
DEFAULT_MODEL_ID = "claude-sonnet-4-20250514"
DEFAULT_BASE_URL = "https://api.anthropic.com"
ANTHROPIC_VERSION = "2023-06-01"


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for the proxy."""
    api_key: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 3001
    allowed_origins: tuple[str, ...] = field(default=DEFAULT_ALLOWED_ORIGINS)
    environment: str = "development"
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL_ID
    max_tokens: int = 2000
    upstream_timeout: float = 120.0
    max_body_bytes: int = 1024 * 1024
    trust_proxy: bool = False
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


def parse_origins(raw: Optional[str]) -> tuple[str, ...]:
    """Split a comma-separated origin list; blank input falls back to the default."""
    if raw is None or not raw.strip():
        return DEFAULT_ALLOWED_ORIGINS
    origins = tuple(o.strip().rstrip("/") for o in raw.split(",") if o.strip())
    return origins or DEFAULT_ALLOWED_ORIGINS


def _as_bool(raw: Optional[str]) -> bool:
    return (raw or "").strip().lower() in ("1", "true", "yes", "on")


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from the environment.

    Args:
        env: Mapping to read instead of os.environ. When omitted, a .env file in
            the working directory is loaded first (real variables win).
    """
    if env is None:
        load_dotenv()
        env = os.environ

    return Settings(
        api_key=env.get("ANTHROPIC_API_KEY") or None,
        host=env.get("HOST", "0.0.0.0"),
        port=int(env.get("PORT", "3001")),
        allowed_origins=parse_origins(env.get("ALLOWED_ORIGINS")),
        environment=env.get("ENVIRONMENT", "development"),
        base_url=env.get("ANTHROPIC_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
        model=env.get("ANTHROPIC_MODEL", DEFAULT_MODEL_ID),
        max_tokens=int(env.get("MAX_TOKENS", "2000")),
        upstream_timeout=float(env.get("UPSTREAM_TIMEOUT", "120")),
        max_body_bytes=int(env.get("MAX_BODY_BYTES", str(1024 * 1024))),
        trust_proxy=_as_bool(env.get("TRUST_PROXY")),
        log_level=env.get("LOG_LEVEL", "INFO"),
    )
