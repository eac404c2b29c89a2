"""Tests for Variable time-series storage."""

import numpy as np
import pytest

from ksengine.core.agent import Agent
from ksengine.core.variable import Variable


@pytest.fixture
def var():
    return Variable(agent=Agent(tag="Unit", id=4), name="x")


def test_fresh_variable_has_no_values(var):
    assert var.last_computed == -1
    assert not var.is_computed(0)
    assert var.history().size == 0
    assert var.label == "Unit[4].x"


def test_store_marks_step_computed(var):
    var.store(2, 5.0)
    assert var.is_computed(2)
    assert not var.is_computed(1)
    assert var.value_at(2) == 5.0
    assert var.last_computed == 2


def test_storage_grows_beyond_initial_capacity(var):
    for t in range(40):
        var.store(t, float(t))
    assert var.values.shape[0] >= 40
    np.testing.assert_array_equal(var.history(), np.arange(40, dtype=float))


def test_negative_and_far_steps_are_not_computed(var):
    var.store(0, 1.0)
    assert not var.is_computed(-1)
    assert not var.is_computed(10_000)


def test_history_is_read_only(var):
    var.store(0, 1.0)
    view = var.history()
    with pytest.raises(ValueError):
        view[0] = 2.0


def test_gaps_in_history_are_nan(var):
    var.store(0, 1.0)
    var.store(2, 3.0)
    hist = var.history()
    assert hist[0] == 1.0
    assert np.isnan(hist[1])
    assert hist[2] == 3.0
