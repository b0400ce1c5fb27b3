"""Runtime settings read from the environment (and an optional ``.env`` file)."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from dotenv import load_dotenv

from aura_quiz.constants.network_constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_STORE_TIMEOUT_SECONDS,
)

DEFAULT_SEED_FILE = Path(__file__).resolve().parent.parent / "data" / "default_questions.txt"


@dataclass(slots=True, frozen=True)
class Settings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = "INFO"
    store_timeout_seconds: float = DEFAULT_STORE_TIMEOUT_SECONDS
    seed_file: Path | None = DEFAULT_SEED_FILE


def load_settings() -> Settings:
    load_dotenv()
    seed_value = os.getenv("AURA_QUIZ_SEED_FILE")
    if seed_value is None:
        seed_file = DEFAULT_SEED_FILE
    else:
        seed_file = Path(seed_value) if seed_value.strip() else None
    return Settings(
        host=os.getenv("AURA_QUIZ_HOST", DEFAULT_HOST),
        port=int(os.getenv("AURA_QUIZ_PORT", str(DEFAULT_PORT))),
        log_level=os.getenv("AURA_QUIZ_LOG_LEVEL", "INFO").upper(),
        store_timeout_seconds=float(
            os.getenv("AURA_QUIZ_STORE_TIMEOUT_SECONDS", str(DEFAULT_STORE_TIMEOUT_SECONDS))
        ),
        seed_file=seed_file,
    )
