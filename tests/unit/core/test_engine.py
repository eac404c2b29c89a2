"""Tests for lazy evaluation, memoisation and the step protocol."""

import numpy as np
import pytest
from numpy.random import default_rng

from ksengine import equation
from ksengine.core.engine import Engine, make_rng
from ksengine.errors import (
    CircularDependencyError,
    StaleReadError,
    UnknownVariableError,
    WriteAfterReadError,
)
from tests.helpers.factories import toy_engine, toy_tree


@pytest.fixture
def calls():
    return []


def _record(eng, calls):
    eng.add_listener(lambda agent, name, t, value: calls.append((agent.label, name, t, value)))


class TestMemoisation:
    """Each (agent, name, step) is computed at most once."""

    def test_second_read_hits_cache(self, clean_registry, calls):
        @equation("y", level="Unit")
        def y(ctx):
            return 2.0 * ctx.v("x")

        eng, _, _, (unit,) = toy_tree(1, values={"x": [3.0]})
        _record(eng, calls)

        assert eng.get(unit, "y") == 6.0
        assert eng.get(unit, "y") == 6.0
        assert calls == [("Unit[1]", "y", 0, 6.0)]
        assert eng.evaluations == 1

    def test_recalc_bypasses_cache(self, clean_registry, calls):
        @equation("y", level="Unit")
        def y(ctx):
            return 2.0 * ctx.v("x")

        eng, _, _, (unit,) = toy_tree(1, values={"x": [3.0]})
        _record(eng, calls)

        eng.get(unit, "y")
        assert eng.recalc(unit, "y") == 6.0
        assert len(calls) == 2

    def test_listener_can_be_removed(self, clean_registry, calls):
        @equation("y", level="Unit")
        def y(ctx):
            return 1.0

        eng, _, _, (unit,) = toy_tree(1)
        listener = lambda *args: calls.append(args)  # noqa: E731
        eng.add_listener(listener)
        eng.remove_listener(listener)
        eng.get(unit, "y")
        assert calls == []


class TestLaggedReads:
    """Lagged reads only return values of closed steps."""

    def test_lag_returns_previous_step(self, clean_registry):
        @equation("x", level="Unit")
        def x(ctx):
            return ctx.v("x", 1) + 1.0

        eng, _, _, (unit,) = toy_tree(1, values={"x": [0.0]})
        eng.step()
        eng.step()

        assert eng.t == 2
        assert eng.get(unit, "x") == 2.0
        assert eng.get(unit, "x", 1) == 1.0
        assert eng.get(unit, "x", 2) == 0.0
        np.testing.assert_array_equal(eng.series(unit, "x"), [0.0, 1.0, 2.0])

    def test_lag_before_first_step_raises(self, clean_registry):
        eng, _, _, (unit,) = toy_tree(1, values={"x": [0.0]})
        with pytest.raises(StaleReadError, match="no value for step -1"):
            eng.get(unit, "x", 1)

    def test_lag_of_never_computed_step_raises(self, clean_registry):
        @equation("z", level="Unit", auto=False)
        def z(ctx):
            return 1.0

        eng, _, _, (unit,) = toy_tree(1)
        eng.step()
        with pytest.raises(StaleReadError):
            eng.get(unit, "z", 1)

    def test_negative_lag_raises(self, clean_registry):
        eng, _, _, (unit,) = toy_tree(1, values={"x": [0.0]})
        with pytest.raises(StaleReadError, match="future"):
            eng.get(unit, "x", -1)

    def test_lagged_value_never_changes(self, clean_registry):
        @equation("x", level="Unit")
        def x(ctx):
            return ctx.v("x", 1) * 2.0

        eng, _, _, (unit,) = toy_tree(1, values={"x": [1.0]})
        eng.step()
        before = eng.get(unit, "x", 1)
        eng.recalc(unit, "x")
        eng.write(unit, "y", 9.0)
        assert eng.get(unit, "x", 1) == before


class TestCycles:
    """Same-step re-entrant evaluation is fatal."""

    def test_two_variable_cycle_reports_chain(self, clean_registry):
        @equation("a", level="Unit", auto=False)
        def a(ctx):
            return ctx.v("b")

        @equation("b", level="Unit", auto=False)
        def b(ctx):
            return ctx.v("a")

        eng, _, _, (unit,) = toy_tree(1)
        with pytest.raises(CircularDependencyError) as exc_info:
            eng.get(unit, "a")

        assert exc_info.value.chain == ["Unit[1].a", "Unit[1].b", "Unit[1].a"]
        assert "Unit[1].a -> Unit[1].b -> Unit[1].a" in str(exc_info.value)
        assert not unit.variables["a"].in_progress
        assert not unit.variables["b"].in_progress

    def test_cycle_across_agents(self, clean_registry):
        @equation("total", level="Sector", auto=False)
        def total(ctx):
            return ctx.sum("Unit", "share")

        @equation("share", level="Unit", auto=False)
        def share(ctx):
            return 1.0 / ctx.vs(ctx.parent, "total")

        eng, _, sector, _ = toy_tree(2)
        with pytest.raises(CircularDependencyError) as exc_info:
            eng.get(sector, "total")
        assert exc_info.value.chain[0] == "Sector[1].total"
        assert exc_info.value.chain[-1] == "Sector[1].total"

    def test_lag_breaks_cycle(self, clean_registry):
        @equation("a", level="Unit")
        def a(ctx):
            return ctx.v("b", 1) + 1.0

        @equation("b", level="Unit")
        def b(ctx):
            return ctx.v("a")

        eng, _, _, (unit,) = toy_tree(1, values={"a": [0.0], "b": [0.0]})
        eng.step()
        assert eng.get(unit, "b") == 1.0

    def test_write_to_variable_in_progress_raises(self, clean_registry):
        @equation("w", level="Unit", auto=False)
        def w(ctx):
            ctx.write("w", 1.0)
            return 2.0

        eng, _, _, (unit,) = toy_tree(1)
        with pytest.raises(CircularDependencyError):
            eng.get(unit, "w")


class TestWrites:
    """Forced values and the write-after-read guard."""

    def test_write_then_read(self, clean_registry):
        eng, root, _, _ = toy_tree(0)
        eng.write(root, "G", 10.0)
        assert eng.get(root, "G") == 10.0

    def test_write_after_read_raises(self, clean_registry):
        eng, _, _, (unit,) = toy_tree(1, values={"x": [1.0]})
        eng.get(unit, "x")
        with pytest.raises(WriteAfterReadError, match="already read"):
            eng.write(unit, "x", 5.0)

    def test_lenient_engine_allows_overwrite(self, clean_registry):
        eng, _, _, (unit,) = toy_tree(
            1, values={"x": [1.0]}, engine=toy_engine(strict_writes=False)
        )
        eng.get(unit, "x")
        eng.write(unit, "x", 5.0)
        assert eng.get(unit, "x") == 5.0

    def test_written_only_variable_without_value_raises(self, clean_registry):
        eng, _, _, (unit,) = toy_tree(1, values={"x": [1.0]})
        eng.step()
        with pytest.raises(UnknownVariableError, match="has no equation"):
            eng.get(unit, "x")

    def test_unknown_name_raises_key_error(self, clean_registry):
        eng, _, _, (unit,) = toy_tree(1)
        with pytest.raises(KeyError):
            eng.get(unit, "nope")
        assert not eng.exists(unit, "nope")


class TestParams:
    """Parameter lookup walks up the ancestor chain."""

    def test_inherited_and_overridden_params(self, clean_registry):
        eng, root, sector, (unit,) = toy_tree(1, root_params={"alpha": 0.5})
        special = eng.population.create_child(sector, "Unit", params={"alpha": 0.9})

        assert eng.get_param(unit, "alpha") == 0.5
        assert eng.get_param(special, "alpha") == 0.9

    def test_missing_param_raises(self, clean_registry):
        eng, _, _, (unit,) = toy_tree(1)
        with pytest.raises(UnknownVariableError, match="no parameter 'beta'"):
            eng.get_param(unit, "beta")


class TestStep:
    """The per-step sweep over live agents."""

    def test_sweep_runs_auto_equations_in_registration_order(
        self, clean_registry, calls
    ):
        @equation("second", level="Unit")
        def second(ctx):
            return 2.0

        @equation("first", level="Unit")
        def first(ctx):
            return 1.0

        @equation("lazy", level="Unit", auto=False)
        def lazy(ctx):
            return 3.0

        eng, _, _, units = toy_tree(2)
        _record(eng, calls)
        eng.step()

        assert [(label, name) for label, name, _, _ in calls] == [
            ("Unit[1]", "second"),
            ("Unit[1]", "first"),
            ("Unit[2]", "second"),
            ("Unit[2]", "first"),
        ]
        assert "lazy" not in units[0].variables

    def test_sweep_skips_destroyed_agents(self, clean_registry, calls):
        @equation("x", level="Unit")
        def x(ctx):
            return 1.0

        eng, _, _, units = toy_tree(3)
        eng.population.destroy(units[1])
        _record(eng, calls)
        eng.step()

        assert sorted(label for label, *_ in calls) == ["Unit[1]", "Unit[3]"]

    def test_dead_agent_keeps_computed_values(self, clean_registry):
        eng, _, _, (unit,) = toy_tree(1, values={"x": [4.0]})
        eng.step()
        eng.population.destroy(unit)

        assert eng.get(unit, "x", 1) == 4.0
        with pytest.raises(StaleReadError, match="destroyed"):
            eng.get(unit, "x")

    def test_settle_forces_root_settlement_once(self, clean_registry, calls):
        @equation("entryExit", level="Root", auto=False)
        def settle(ctx):
            return 0.0

        eng, root, _, _ = toy_tree(0)
        _record(eng, calls)
        eng.settle()
        eng.settle()

        assert calls == [("Root[1]", "entryExit", 0, 0.0)]

    def test_settle_without_settlement_is_noop(self, clean_registry):
        eng, _, _, _ = toy_tree(0)
        eng.settle()

    def test_root_required(self):
        eng = Engine()
        with pytest.raises(RuntimeError, match="no root"):
            eng.root


class TestRandom:
    """The engine exposes a reproducible random generator."""

    def test_seed_reproducible(self):
        assert Engine(rng=5).rng.random() == Engine(rng=5).rng.random()

    def test_generator_passed_through(self):
        gen = default_rng(1)
        assert make_rng(gen) is gen
