# school_admin/config.py
import logging
import os
from dataclasses import dataclass


DELETE_POLICIES = ("orphan", "restrict", "cascade")


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./school.db"
    log_level: str = "INFO"
    delete_policy: str = "orphan"
    seed_demo: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        policy = os.environ.get("SCHOOL_DELETE_POLICY", "orphan").strip().lower()
        if policy not in DELETE_POLICIES:
            policy = "orphan"
        return cls(
            database_url=os.environ.get("DATABASE_URL", "sqlite:///./school.db"),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            delete_policy=policy,
            seed_demo=_flag(os.environ.get("SCHOOL_SEED_DEMO", "")),
        )


settings = Settings.from_env()


def configure_logging(level: str = None):
    logging.basicConfig(
        level=level or settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
