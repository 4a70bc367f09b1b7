"""Pytest configuration and fixtures for ultradian tests."""

import tempfile

from datetime import datetime
from pathlib import Path

import pytest


def pytest_configure(config):
    """Register custom test markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that do not require external dependencies"
    )
    config.addinivalue_line(
        "markers", "business_logic: Tests for core business logic and algorithms"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests combining multiple components"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take significant time (>5 seconds)"
    )


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the config file at a per-test temp directory."""
    config_path = tmp_path / "config.toml"
    monkeypatch.setattr("ultradian.config.get_config_path", lambda: config_path)
    return config_path


# =============================================================================
# Database Test Fixtures
# =============================================================================


@pytest.fixture
def temp_db():
    """Create a temporary database path for testing."""
    temp_dir = Path(tempfile.gettempdir())
    db_path = temp_dir / f"test_ultradian_{datetime.now().timestamp()}.db"

    yield db_path

    if db_path.exists():
        db_path.unlink()
    for ext in ["-wal", "-shm", "-journal"]:
        side_file = Path(str(db_path) + ext)
        if side_file.exists():
            side_file.unlink()


@pytest.fixture
def db_session(temp_db):
    """Create fresh database session for each test with proper isolation."""
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker

    from ultradian.database.models import Base

    engine = create_engine(f"sqlite:///{temp_db}")
    Base.metadata.create_all(engine)

    Session = sessionmaker(bind=engine)
    session = Session()

    yield session

    session.close()
    engine.dispose()


@pytest.fixture
def initialized_db(temp_db):
    """Database initialized with the global session factory."""
    from ultradian.database.session import (
        cleanup_database,
        init_database,
        session_scope,
    )

    cleanup_database()
    init_database(str(temp_db))

    with session_scope() as session:
        yield session

    cleanup_database()
