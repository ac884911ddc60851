import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_MODEL = "claude-haiku-4-5-20251001"
DEFAULT_DATA_DIR = "data"


@dataclass(frozen=True)
class Settings:
    api_key: Optional[str]
    data_dir: Path
    model: str = DEFAULT_MODEL
    notifications_enabled: bool = False


def _as_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    """Read settings from the environment, after loading .env if present"""
    load_dotenv()

    return Settings(
        api_key=os.getenv('ANTHROPIC_API_KEY') or None,
        data_dir=Path(os.getenv('CARDSENSE_DATA_DIR', DEFAULT_DATA_DIR)),
        model=os.getenv('CARDSENSE_MODEL', DEFAULT_MODEL),
        notifications_enabled=_as_bool(os.getenv('CARDSENSE_NOTIFICATIONS')),
    )
