"""Pytest fixtures.

This file adjusts sys.path for src-layout imports.
"""

# ruff: noqa: E402

import os
import sys

# Ensure `src` is on sys.path so imports like `from twinqueue.core...` resolve during tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if os.path.isdir(SRC):
    sys.path.insert(0, SRC)
sys.path.insert(0, ROOT)

import pytest
from rich.traceback import install

from twinqueue.core.queue_service import FileQueueService, InMemoryQueueService, ManualClock

# Enable readable tracebacks in development / test environments.
# Can be disabled with PYTEST_RICH=0
if os.getenv("PYTEST_RICH", "1") == "1":
    install(
        show_locals=True,  # show local variables for each frame
        width=None,  # use terminal width
        word_wrap=True,  # wrap long lines
        extra_lines=1,  # some context around lines
        suppress=["/usr/lib/python3", "site-packages"],  # hide "noisy" third-party frames
    )


@pytest.fixture
def clock():
    """Deterministic clock starting at t=1_000_000 ms."""
    return ManualClock(start=1_000_000)


@pytest.fixture
def home_dir(tmp_path):
    """Home directory for file-backed services."""
    path = tmp_path / "queues"
    path.mkdir()
    return path


@pytest.fixture
def memory_service(clock):
    return InMemoryQueueService(clock)


@pytest.fixture
def file_service(home_dir, clock):
    return FileQueueService(home_dir, clock, lock_retry_interval=1)


@pytest.fixture(params=["memory", "file"])
def service(request, clock, home_dir):
    """Run a test against both queue service backends."""
    if request.param == "memory":
        return InMemoryQueueService(clock)
    return FileQueueService(home_dir, clock, lock_retry_interval=1)
