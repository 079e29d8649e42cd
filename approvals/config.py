import functools
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchedulerSettings(BaseSettings):
    LOG_LEVEL: str = "INFO"

    # Escalate in-progress/under-review tasks with this many days or fewer left
    ESCALATION_THRESHOLD_DAYS: int = Field(default=5, ge=0)

    CASES_DIR: Path = Path(".approvals/cases")
    CATALOG_PATH: Optional[Path] = None  # JSON catalog; built-in services when unset

    model_config = SettingsConfigDict(env_prefix="APPROVALS_", extra='ignore', case_sensitive=False)


@functools.lru_cache(maxsize=1)
def get_settings() -> SchedulerSettings:
    return SchedulerSettings()
