"""Pytest configuration and shared fixtures.

This module provides fixtures for testing pagepace, including databases,
a fixed clock, and sample ten-day plans.
"""

import os
import tempfile
from datetime import date, timedelta
from pathlib import Path
from typing import Generator

import pytest
from loguru import logger

from pagepace.planner.config import reset_config
from pagepace.planner.db.sqlite import Database, reset_db
from pagepace.planner.engine import DaySessionRecord, allocate
from pagepace.planner.schedule import ScheduleManager


# ============================================================================
# Plan Fixtures
# ============================================================================


@pytest.fixture
def start() -> date:
    """First day of the sample plan."""
    return date(2026, 3, 1)


@pytest.fixture
def end(start: date) -> date:
    """Last day of the sample ten-day plan."""
    return start + timedelta(days=9)


@pytest.fixture
def ten_day_plan(start: date, end: date) -> list[DaySessionRecord]:
    """A freshly allocated 100-page plan over ten days."""
    return [
        DaySessionRecord(day=day, planned_pages=pages)
        for day, pages in allocate(100, start, end).items()
    ]


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def temp_db_path() -> Generator[Path, None, None]:
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)
    yield db_path
    # Cleanup
    if db_path.exists():
        db_path.unlink()


@pytest.fixture(scope="function")
def db() -> Database:
    """Create an in-memory database for testing."""
    reset_db()
    reset_config()
    database = Database(":memory:")
    database.create_tables()
    return database


@pytest.fixture
def today() -> date:
    """The fixed "today" used by the manager's clock."""
    return date(2026, 3, 4)


@pytest.fixture
def manager(db: Database, today: date) -> ScheduleManager:
    """Create a ScheduleManager with a test database and fixed clock."""
    return ScheduleManager(db, clock=lambda: today)


# ============================================================================
# CLI Testing Fixtures
# ============================================================================


@pytest.fixture
def cli_env(temp_db_path: Path) -> Generator[Path, None, None]:
    """Point the CLI at a temporary database and a fixed day."""
    reset_db()
    reset_config()
    os.environ["PAGEPACE_DB_PATH"] = str(temp_db_path)
    os.environ["PAGEPACE_TODAY"] = "2026-03-04"

    yield temp_db_path

    reset_db()
    reset_config()
    for key in ("PAGEPACE_DB_PATH", "PAGEPACE_TODAY"):
        if key in os.environ:
            del os.environ[key]
    # The CLI callback binds loguru to the runner's captured stderr
    logger.remove()


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner."""
    from typer.testing import CliRunner
    return CliRunner()


@pytest.fixture
def cli_app():
    """Get the CLI app for testing."""
    from pagepace.planner.cli import app
    return app
