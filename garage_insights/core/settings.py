"""Environment-driven runtime settings."""

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return default
    return int(raw_value)


def _env_bool(name: str, default: bool) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str
    openai_api_key: str | None
    openai_model: str
    agent_max_tokens: int
    agent_max_iterations: int
    agent_schedule_hour: int
    agent_schedule_minute: int
    agent_scheduler_enabled: bool
    insight_suppression_days: int


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./garage_insights.db"),
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        agent_max_tokens=_env_int("AGENT_MAX_TOKENS", 4096),
        agent_max_iterations=_env_int("AGENT_MAX_ITERATIONS", 25),
        agent_schedule_hour=_env_int("AGENT_SCHEDULE_HOUR", 6),
        agent_schedule_minute=_env_int("AGENT_SCHEDULE_MINUTE", 0),
        agent_scheduler_enabled=_env_bool("AGENT_SCHEDULER_ENABLED", True),
        insight_suppression_days=_env_int("INSIGHT_SUPPRESSION_DAYS", 7),
    )
