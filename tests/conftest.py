"""
Shared fixtures for the HTMA test suite.

OPTIMAL_VALUES puts every mineral and every ratio inside its ideal band
under the canonical 1.0.0 table (Health Score 100, grade A).
LOW_CALCIUM_VALUES drops Ca below the buffered low threshold, which also
pulls Ca/Mg, Ca/P and Ca/K low and trips the critical Ca/Mg flag
(Health Score 80, grade B).
"""

import pytest
from fastapi.testclient import TestClient

from htma.ranges.registry import load_default_registry
from htma.snapshot import SnapshotStore


OPTIMAL_VALUES = {
    "Ca": 40.0,
    "Mg": 6.0,
    "Na": 25.0,
    "K": 10.0,
    "P": 16.0,
    "Cu": 2.5,
    "Zn": 15.0,
    "Fe": 2.0,
    "Mn": 0.06,
    "Cr": 0.08,
    "Se": 0.1,
    "B": 0.25,
    "Co": 0.005,
    "Mo": 0.05,
    "S": 4500.0,
}

LOW_CALCIUM_VALUES = {**OPTIMAL_VALUES, "Ca": 20.0}


@pytest.fixture(autouse=True)
def production_env(monkeypatch):
    """The safe-language canary and practitioner access stay off unless a test turns them on."""
    monkeypatch.delenv("HTMA_ENV", raising=False)
    monkeypatch.delenv("HTMA_PRACTITIONER_API_KEY", raising=False)


@pytest.fixture
def registry():
    return load_default_registry()


@pytest.fixture
def version(registry):
    return registry.active()


@pytest.fixture
def optimal_values():
    return dict(OPTIMAL_VALUES)


@pytest.fixture
def low_calcium_values():
    return dict(LOW_CALCIUM_VALUES)


@pytest.fixture
def disabled_store():
    return SnapshotStore(db_url="", enabled=False)


@pytest.fixture
def client(registry, disabled_store):
    from main import create_app

    return TestClient(create_app(registry=registry, store=disabled_store))
