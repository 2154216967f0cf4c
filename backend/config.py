"""Settings loaded from environment variables (+ optional .env)."""
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

PLACEHOLDER_API_KEY = "your-api-key-here"

# Default database lives next to this file so alembic (run from here) and the app agree
DEFAULT_DATABASE_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "tasks.db")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


@dataclass(frozen=True)
class Settings:
    anthropic_api_key: Optional[str] = None
    anthropic_model: str = "claude-sonnet-4-5"
    llm_timeout_seconds: float = 30.0
    database_path: str = DEFAULT_DATABASE_PATH
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    session_ttl_hours: int = 168


def load_settings() -> Settings:
    api_key = os.getenv("ANTHROPIC_API_KEY") or None
    if api_key == PLACEHOLDER_API_KEY:
        api_key = None
    return Settings(
        anthropic_api_key=api_key,
        anthropic_model=os.getenv("ANTHROPIC_MODEL") or "claude-sonnet-4-5",
        llm_timeout_seconds=_env_float("LLM_TIMEOUT_SECONDS", 30.0),
        database_path=os.getenv("DATABASE_PATH") or DEFAULT_DATABASE_PATH,
        cors_origins=_env_list("CORS_ORIGINS", ["*"]),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        session_ttl_hours=_env_int("SESSION_TTL_HOURS", 168),
    )


settings = load_settings()
