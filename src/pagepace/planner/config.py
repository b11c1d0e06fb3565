"""Configuration management for pagepace.

Loads configuration from environment variables and provides defaults.
"""

import os
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path

    # Logging
    log_level: str
    log_file: Optional[Path]

    # Pins "today" for scripted runs; None means the system date
    today: Optional[date]

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables.

        Raises:
            ValueError: If PAGEPACE_TODAY is not a YYYY-MM-DD date
        """
        db_path_str = os.environ.get(
            "PAGEPACE_DB_PATH",
            str(Path.home() / ".pagepace" / "plans.db"),
        )
        log_file = os.environ.get("PAGEPACE_LOG_FILE")
        today = os.environ.get("PAGEPACE_TODAY")

        return cls(
            db_path=Path(db_path_str).expanduser(),
            log_level=os.environ.get("PAGEPACE_LOG_LEVEL", "WARNING").upper(),
            log_file=Path(log_file).expanduser() if log_file else None,
            today=_parse_today(today) if today else None,
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if self.log_level not in LOG_LEVELS:
            errors.append(f"Unknown log level: {self.log_level}")

        # Check database directory is writable
        if not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        return errors

    def current_date(self) -> date:
        """Today's date, honoring PAGEPACE_TODAY."""
        return self.today or date.today()


def _parse_today(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"Invalid PAGEPACE_TODAY: {value!r}. Use YYYY-MM-DD") from None


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
