"""Configuration management for readtrack.

Loads configuration from environment variables and provides defaults.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


DEFAULT_DB_PATH = Path.home() / ".readtrack" / "books.db"


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path
    owner_id: str

    # Storage batching
    insert_batch_size: int
    update_batch_size: int

    # External lookups
    enrich_delay: float  # seconds between enrichment calls
    google_books_api_key: Optional[str]
    gemini_api_key: Optional[str]

    # Logging
    log_level: str

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path_str = os.environ.get("READTRACK_DB_PATH", str(DEFAULT_DB_PATH))
        db_path = Path(db_path_str).expanduser()

        return cls(
            db_path=db_path,
            owner_id=os.environ.get("READTRACK_OWNER_ID", "local"),
            insert_batch_size=int(os.environ.get("READTRACK_INSERT_BATCH_SIZE", "50")),
            update_batch_size=int(os.environ.get("READTRACK_UPDATE_BATCH_SIZE", "100")),
            enrich_delay=float(os.environ.get("READTRACK_ENRICH_DELAY", "0.2")),
            google_books_api_key=os.environ.get("GOOGLE_BOOKS_API_KEY"),
            gemini_api_key=os.environ.get("GEMINI_API_KEY"),
            log_level=os.environ.get("READTRACK_LOG_LEVEL", "WARNING").upper(),
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        for name in ("insert_batch_size", "update_batch_size"):
            value = getattr(self, name)
            if not 1 <= value <= 1000:
                errors.append(f"{name} must be between 1 and 1000, got {value}")

        if self.enrich_delay < 0:
            errors.append(f"enrich_delay cannot be negative, got {self.enrich_delay}")

        return errors

    def has_gemini_config(self) -> bool:
        """Check if the AI fallback parser can be used."""
        return bool(self.gemini_api_key)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
