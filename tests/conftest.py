"""Root conftest — shared test configuration and roster fixtures."""

import os
from pathlib import Path

import pytest

from latency_monitor.core.sample_store import SampleStore
from tests.factories import make_endpoint

ROOT = Path(__file__).resolve().parent.parent

# Ensure tests never open a real Atlas subscription and read the shipped roster
os.environ.pop("RIPE_ATLAS_KEY", None)
os.environ.setdefault("SERVERS_FILE", str(ROOT / "latency_monitor" / "data" / "servers.json"))
os.environ.setdefault("LOG_FORMAT", "text")


@pytest.fixture
def endpoint_a():
    return make_endpoint("a", host="a.example.com")


@pytest.fixture
def endpoint_b():
    return make_endpoint("b", host="b.example.com")


@pytest.fixture
def store(endpoint_a, endpoint_b):
    return SampleStore([endpoint_a, endpoint_b], interval_ms=50, capacity=2000)
