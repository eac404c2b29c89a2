"""Tests for the persistent check-state holder."""

from pathlib import Path

import pytest

from ksengine.verification.sink import CsvSink
from ksengine.verification.verifier import CheckState, Phase, Verifier


def test_state_created_once():
    verifier = Verifier()
    state = verifier.state("testFin")
    assert verifier.state("testFin") is state
    assert "testFin" in verifier
    assert "testLabor" not in verifier
    assert state.phase is Phase.IDLE
    assert list(verifier) == [state]


def test_summary_and_total():
    verifier = Verifier()
    verifier.state("a").fold(1, 2)
    verifier.state("b").fold(1, 3)
    assert verifier.summary() == {"a": 2, "b": 3}
    assert verifier.total_errors() == 5


def test_fold_replaces_same_step_contribution():
    state = CheckState(name="x")
    state.fold(3, 2)
    state.fold(3, 1)
    assert state.errors_total == 1
    state.fold(4, 5)
    assert state.errors_total == 6
    assert state.calls == 3


def test_defaults_and_output_dir():
    verifier = Verifier(output_dir="out")
    assert verifier.tolerance == 0.1
    assert verifier.sfc_threshold == 1e-4
    assert verifier.output_dir == Path("out")


def test_close_closes_open_sinks(tmp_path):
    verifier = Verifier(output_dir=tmp_path)
    state = verifier.state("test2firm")
    state.sink = CsvSink(tmp_path / "firms2.csv", ("t",)).open()
    verifier.close()
    assert state.sink.closed


def test_finish_rejects_state_without_agent():
    verifier = Verifier()
    state = verifier.state("testFin")
    state.started_at = 1
    state.last_step = 3
    state.check = object()
    with pytest.raises(RuntimeError, match="testFin"):
        verifier.finish(engine=None)
