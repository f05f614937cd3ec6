"""
Runtime configuration for KiraQuest.

Values come from the environment (optionally a .env file in the project root).
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from kiraquest.classroom.store import DEFAULT_STORE_DB
from kiraquest.schemas import PersonalityTone

PROJECT_ROOT = Path(__file__).parent.parent

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


@dataclass
class Settings:
    db_path: Path = DEFAULT_STORE_DB
    lessons_dir: Path = PROJECT_ROOT / "lessons"
    default_tone: PersonalityTone = PersonalityTone.HYPE_MAN
    log_level: str = "INFO"
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])

    @classmethod
    def from_env(cls, env_file: Path | None = None) -> "Settings":
        """Build settings from KIRAQUEST_* environment variables."""
        load_dotenv(env_file or PROJECT_ROOT / ".env")

        defaults = cls()
        origins = os.getenv("KIRAQUEST_CORS_ORIGINS")
        return cls(
            db_path=Path(os.getenv("KIRAQUEST_DB_PATH", str(defaults.db_path))).expanduser(),
            lessons_dir=Path(os.getenv("KIRAQUEST_LESSONS_DIR", str(defaults.lessons_dir))).expanduser(),
            default_tone=PersonalityTone(os.getenv("KIRAQUEST_DEFAULT_TONE", defaults.default_tone.value)),
            log_level=os.getenv("KIRAQUEST_LOG_LEVEL", defaults.log_level).upper(),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()] if origins else defaults.cors_origins,
        )


def configure_logging(level: str = "INFO"):
    """Set up root logging once for an entrypoint."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
