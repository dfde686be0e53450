"""Pytest configuration and shared fixtures for the linkfinder test suite."""
import threading
import time

import pytest

from linkfinder.conventions import default_registry
from linkfinder.models import ProbeOutcome, SeedItem

BASE_URL = 'https://img.example.test/goods'


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (may require network access)"
    )


class FakeExists:
    """
    Deterministic stand-in for the HTTP check.

    found: locators that resolve; everything else is NOT_FOUND unless listed
    in errors/timeouts. Records every call so tests can assert nothing was
    probed twice.
    """

    def __init__(self, found=(), errors=(), timeouts=(), latency=0.0):
        self.found = set(found)
        self.errors = set(errors)
        self.timeouts = set(timeouts)
        self.latency = latency
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, locator, timeout):
        with self._lock:
            self.calls.append(locator)
        if self.latency:
            time.sleep(self.latency)
        if locator in self.timeouts:
            raise TimeoutError(locator)
        if locator in self.errors:
            raise ConnectionError(locator)
        return ProbeOutcome.FOUND if locator in self.found else ProbeOutcome.NOT_FOUND


@pytest.fixture
def registry():
    return default_registry(BASE_URL)


@pytest.fixture
def hana_seed():
    return SeedItem(seed_id='AB100', source_url='https://shop.example.test/shop/g/gAB100/',
                    title='花組 Goethe')


@pytest.fixture
def fake_exists():
    return FakeExists
