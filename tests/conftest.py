"""Pytest configuration and fixtures for ksengine tests."""

import os

import pytest

import ksengine.models.ks  # noqa: F401 - register all model equations
from ksengine import logging
from ksengine.core.registry import clear_registry
from ksengine.simulation import Simulation


@pytest.fixture
def clean_registry():
    """
    Save registry state, clear it for the test, then restore it.

    This fixture should be explicitly requested by tests that define toy
    equations and need isolation from the K+S model equations.

    DO NOT use autouse=True, as it would interfere with integration tests
    that rely on the model equations being registered.
    """
    # noinspection PyProtectedMember
    from ksengine.core.registry import _EQUATION_REGISTRY

    saved = {level: dict(table) for level, table in _EQUATION_REGISTRY.items()}

    clear_registry()

    yield

    _EQUATION_REGISTRY.clear()
    _EQUATION_REGISTRY.update(saved)


@pytest.fixture
def tiny_sim(tmp_path) -> Simulation:
    """A small deterministic K+S simulation writing into a temp directory."""
    sim = Simulation.init(
        n_firms=8,
        n_banks=2,
        n_periods=10,
        seed=123,
        output_dir=str(tmp_path),
        checks={name: {"start": 1, "end": 10} for name in (
            "testSFC", "testCountry", "testFin", "testLabor", "test2sec", "test1sec"
        )},
    )
    yield sim
    sim.close()


@pytest.fixture(autouse=True)
def mute_ksengine_logs(caplog):
    # DEBUG only in the coverage run, so that logging branches execute
    if os.environ.get("COVERAGE_RUN") == "true":
        level = logging.DEBUG
    else:
        level = logging.ERROR

    caplog.set_level(level, logger="ksengine")
    logging.getLogger("ksengine").setLevel(level)
