"""Test configuration: put ``src`` on sys.path and start the logger before any module asks for it.

Service and client classes fetch their loggers at import time, so LogManager must be
initialized before the test modules are collected.
"""

import sys
import tempfile
from datetime import datetime
from pathlib import Path

import pytest

SRC = Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from utils.logging.logging_manager import LogLevel, LogManager  # noqa: E402

LogManager.initialize(
    log_dir=tempfile.mkdtemp(prefix="redmine-toolkit-logs-"),
    log_file="tests.log",
    log_retention_hours=1,
    default_level=LogLevel.WARNING,
    log_output="console",
)

from fakes import FakeRedmineAssistant  # noqa: E402

FIXED_NOW = datetime(2025, 1, 31, 14, 30, 0)


@pytest.fixture
def fake_assistant():
    return FakeRedmineAssistant()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW
