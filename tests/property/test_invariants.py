"""Property-based tests for ksengine invariants using Hypothesis.

These tests use randomized inputs to verify that engine and accounting
invariants hold across a wide range of structures and parameters.
"""

import math

from hypothesis import given, settings
from hypothesis import strategies as st

from ksengine import Simulation
from ksengine.core.engine import Engine
from ksengine.verification.report import Report
from ksengine.verification.sfc import sfc_residual
from ksengine.verification.verifier import CheckState
from tests.helpers.invariants import assert_basic_invariants

n_firms_strategy = st.integers(min_value=5, max_value=40)
n_banks_strategy = st.integers(min_value=1, max_value=5)
n_firms1_strategy = st.integers(min_value=1, max_value=5)
seed_strategy = st.integers(min_value=0, max_value=2**31 - 1)
finite_floats = st.floats(min_value=-1e6, max_value=1e6, allow_nan=False)


class TestModelInvariants:
    """The K+S model stays stock-flow consistent for any valid size."""

    @given(
        n_firms=n_firms_strategy,
        n_banks=n_banks_strategy,
        n_firms1=n_firms1_strategy,
        seed=seed_strategy,
    )
    @settings(max_examples=20, deadline=None)
    def test_sfc_holds_for_any_population(self, n_firms, n_banks, n_firms1, seed):
        with Simulation.init(
            n_firms=n_firms, n_banks=n_banks, n_firms1=n_firms1, n_periods=5,
            seed=seed,
            checks={"testSFC": {"start": 1, "end": 5}},
        ) as sim:
            for _ in range(5):
                sim.step()
                assert_basic_invariants(sim)

        assert sim.verifier.state("testSFC").errors_total == 0

    @given(
        pInn=st.floats(min_value=0.0, max_value=1.0),
        sigmaInn=st.floats(min_value=0.0, max_value=0.2),
        seed=seed_strategy,
    )
    @settings(max_examples=15, deadline=None)
    def test_productivity_never_falls(self, pInn, sigmaInn, seed):
        sim = Simulation.init(
            n_firms=6, n_banks=2, seed=seed,
            params={"pInn": pInn, "sigmaInn": sigmaInn},
        )
        sim.run(6)
        pop = sim.engine.population
        for firm in pop.children(sim.sector("Consumer"), "Firm2"):
            history = [a for a in sim.engine.series(firm, "A2") if not math.isnan(a)]
            assert all(b >= a * (1 - 1e-12) for a, b in zip(history, history[1:]))


class TestPopulationInvariants:
    """Ids stay unique and traversal sees only live agents."""

    @given(ops=st.lists(st.tuples(st.booleans(), st.integers(0, 50)), max_size=60))
    @settings(max_examples=50, deadline=None)
    def test_random_churn(self, ops):
        eng = Engine(rng=0)
        pop = eng.population
        root = pop.create_root("Root")
        sector = pop.create_child(root, "Sector")
        ever = set()

        for create, pick in ops:
            live = list(pop.children(sector, "Unit"))
            if create or not live:
                unit = pop.create_child(sector, "Unit")
                assert unit.id not in ever
                ever.add(unit.id)
            else:
                pop.destroy(live[pick % len(live)])

        walked = [a for a in pop.walk(root) if a.tag == "Unit"]
        assert all(a.alive for a in walked)
        assert len(walked) == pop.count_children(sector, "Unit")
        assert pop.issued("Unit") == len(ever)


class TestVerificationInvariants:
    """Universal validations and error totals."""

    @given(
        nonneg=st.lists(st.floats(allow_nan=True, allow_infinity=True), max_size=10),
        posit=st.lists(st.floats(allow_nan=True, allow_infinity=True), max_size=10),
    )
    def test_universal_counts(self, nonneg, posit):
        report = Report("testX", t=1)
        added = report.universal(nonneg=nonneg, posit=posit)

        expected = (
            sum(1 for x in nonneg if x < 0)
            + sum(1 for x in posit if x <= 0)
            + sum(1 for x in nonneg + posit if not math.isfinite(x))
        )
        assert added == expected == report.errors

    @given(
        calls=st.lists(
            st.tuples(st.integers(0, 3), st.integers(0, 5)), min_size=1, max_size=30
        )
    )
    def test_total_counts_last_call_per_step(self, calls):
        state = CheckState(name="x")
        t = 0
        last = {}
        for advance, errors in calls:
            t += advance
            state.fold(t, errors)
            last[t] = errors
        assert state.errors_total == sum(last.values())

    @given(
        terms=st.dictionaries(st.text(min_size=1, max_size=5), finite_floats, max_size=8),
        scale=st.floats(min_value=1.0, max_value=1e6),
    )
    def test_residual_is_zero_or_above_threshold(self, terms, scale):
        value = sfc_residual(terms, scale, 1e-4)
        assert value == 0.0 or value >= 1e-4
