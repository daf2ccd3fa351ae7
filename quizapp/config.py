import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    database_url: str
    default_max_attempts: int
    submit_grace_seconds: int
    log_level: str


@lru_cache
def get_settings() -> Settings:
    load_dotenv()
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./quizapp.db"),
        default_max_attempts=int(os.getenv("DEFAULT_MAX_ATTEMPTS", "3")),
        submit_grace_seconds=int(os.getenv("SUBMIT_GRACE_SECONDS", "30")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
