"""Project configuration and paths.

Values are read from the environment (a local ``.env`` is loaded first) at
call time so tests and the CLI can override them per process.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

# Project structure
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"
DEFAULT_DB_PATH = DATA_DIR / "catalog.db"

DEFAULT_CLASSIFIER_MODEL = "gpt-4o-mini"
DEFAULT_SCRAPE_CRON = "0 */6 * * *"  # Every 6 hours
HTTP_TIMEOUT = 30.0  # seconds
USER_AGENT = "ai-tools-catalog/1.0"


def _optional(name: str) -> Optional[str]:
    value = os.getenv(name)
    return value.strip() if value and value.strip() else None


def catalog_db_path() -> Path:
    return Path(os.getenv("CATALOG_DB_PATH", str(DEFAULT_DB_PATH)))


def openai_api_key() -> Optional[str]:
    return _optional("OPENAI_API_KEY")


def classifier_model() -> str:
    return os.getenv("CLASSIFIER_MODEL", DEFAULT_CLASSIFIER_MODEL)


def github_token() -> Optional[str]:
    return _optional("GITHUB_TOKEN")


def reddit_credentials() -> Optional[tuple[str, str]]:
    client_id = _optional("REDDIT_CLIENT_ID")
    client_secret = _optional("REDDIT_CLIENT_SECRET")
    if client_id and client_secret:
        return client_id, client_secret
    return None


def producthunt_token() -> Optional[str]:
    return _optional("PRODUCTHUNT_API_TOKEN")


def youtube_api_key() -> Optional[str]:
    return _optional("YOUTUBE_API_KEY")


def huggingface_token() -> Optional[str]:
    return _optional("HF_TOKEN")


def scrape_mode() -> str:
    mode = os.getenv("SCRAPE_MODE", "parallel").lower()
    if mode not in ("parallel", "sequential"):
        raise ValueError(f"SCRAPE_MODE must be 'parallel' or 'sequential', got {mode!r}")
    return mode


def scrape_delay_seconds() -> float:
    return float(os.getenv("SCRAPE_DELAY_SECONDS", "2"))


def scrape_cron() -> str:
    return os.getenv("SCRAPE_CRON", DEFAULT_SCRAPE_CRON)


def dev_mode() -> bool:
    return os.getenv("DEV_MODE", "false").lower() == "true"


def log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO")
