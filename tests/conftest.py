"""
Central pytest configuration and fixtures.

This module provides the fixtures shared across all test modules: an isolated
configuration, session logging, and mock capabilities standing in for the
browser.
"""

import tempfile
import uuid
from collections.abc import Generator
from pathlib import Path

import pytest

from omega.config_models import SystemConfig
from omega.drivers.chromium import MockBrowser
from omega.logging_config import get_logger, setup_logging
from omega.recording.frames import FrameDirectory


# ================================================================================
# Session-scoped fixtures (created once per test session)
# ================================================================================

@pytest.fixture(scope="session")
def config() -> SystemConfig:
    """
    Provide a system configuration for the entire test session.

    Logs and frames go to a temporary directory so tests never write into
    the working tree.
    """
    temp_dir = Path(tempfile.mkdtemp(prefix="omega_test_"))

    session_config = SystemConfig()
    session_config.paths.log_dir = temp_dir / "logs"
    session_config.paths.frames_dir = temp_dir / "frames"
    session_config.logging.level = "DEBUG"
    session_config.paths.log_dir.mkdir(parents=True, exist_ok=True)

    return session_config


@pytest.fixture(scope="session", autouse=True)
def test_session(config: SystemConfig) -> Generator[str, None, None]:
    """Set up logging once for the whole test session."""
    session_id = setup_logging(config, f"test-{uuid.uuid4()}")
    logger = get_logger(__name__)
    logger.info(f"Starting test session {session_id}")

    yield session_id

    logger.info(f"Completing test session {session_id}")


# ================================================================================
# Function-scoped fixtures (created for each test function)
# ================================================================================

@pytest.fixture
def mock_browser() -> MockBrowser:
    """Provide a mock browser with no scripted console messages."""
    return MockBrowser()


@pytest.fixture
def frame_dir(tmp_path: Path) -> FrameDirectory:
    """Provide an empty frame directory."""
    return FrameDirectory(tmp_path / "frames")


# ================================================================================
# Pytest hooks
# ================================================================================

def pytest_collection_modifyitems(config: pytest.Config, items) -> None:
    """Add markers based on the test path."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
