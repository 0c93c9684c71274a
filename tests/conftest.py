"""
Pytest configuration file for the fndash tests.

This file ensures that the project root is in the Python path so that
test files can import the fndash package without installing it.
"""

import sys
from pathlib import Path

# Add the parent directory to the Python path
parent_dir = Path(__file__).parent.parent
if str(parent_dir) not in sys.path:
    sys.path.insert(0, str(parent_dir))

import pytest

from fndash.models import reset_settings
from fndash.utils import clear_all_metrics


@pytest.fixture(autouse=True)
def clean_state(monkeypatch):
    """Start every test from default settings and empty metrics"""
    for name in ("FNDASH_STRICT_RETURNS", "FNDASH_CHECK_ELEMENT_TYPES",
                 "FNDASH_COLLECT_METRICS", "FNDASH_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    clear_all_metrics()
    yield
    reset_settings()
    clear_all_metrics()


class Recorder:
    """Iterable that records how many elements were pulled from it"""

    def __init__(self, items):
        self.items = list(items)
        self.pulled = 0

    def __iter__(self):
        for item in self.items:
            self.pulled += 1
            yield item


@pytest.fixture
def recorder():
    return Recorder
