"""Tests for stock-flow consistency residuals."""

import math

import pytest

from ksengine.verification.check import ConsistencyCheck
from ksengine.verification.sfc import SfcCheck, largest_term, sfc_residual
from ksengine.verification.verifier import Verifier
from tests.helpers.factories import toy_engine, toy_tree


def test_residual_below_threshold_is_exactly_zero():
    assert sfc_residual({"a": 1e-9, "b": -2e-9}, scale=100.0) == 0.0


def test_residual_is_normalised_sum_of_absolute_terms():
    assert sfc_residual({"a": 3.0, "b": -2.0}, scale=100.0) == pytest.approx(0.05)


def test_non_positive_scale_leaves_sum_unnormalised():
    assert sfc_residual({"a": 3.0}, scale=0.0) == 3.0


def test_residual_at_threshold_is_kept():
    assert sfc_residual({"a": 5.0}, scale=100.0, threshold=0.05) == 0.05


@pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
def test_non_finite_term_makes_residual_non_finite(bad):
    assert not math.isfinite(sfc_residual({"a": 1.0, "b": bad}, scale=100.0))


def test_largest_term():
    assert largest_term({"a": 1.0, "b": -4.0, "c": 2.0}) == ("b", -4.0)
    assert largest_term({}) == ("", 0.0)


def test_largest_term_prefers_non_finite():
    name, value = largest_term({"a": 1e6, "b": math.nan, "c": 2.0})
    assert name == "b"
    assert math.isnan(value)


def _define_sfc_check():
    class Balance(SfcCheck, name="testBal", level="Root", auto=False):
        def residuals(self, ctx):
            return {
                "BAL": {"assets": ctx.v("assets") - ctx.v("liabilities")},
                "FLOW": {"flows": ctx.v("inflow") - ctx.v("outflow")},
            }

        def scale(self, ctx):
            return ctx.v("gdp")

    return Balance


def _sfc_root(values, *, window=(1, 10), threshold=1e-4, extra_params=None):
    params = {"testBal_start": window[0], "testBal_end": window[1]}
    params.update(extra_params or {})
    eng = toy_engine(verifier=Verifier(sfc_threshold=threshold))
    eng, root, _, _ = toy_tree(0, root_params=params, engine=eng)
    eng.step()
    _write(eng, root, values)
    return eng, root


def _write(eng, root, values):
    for name, value in values.items():
        eng.write(root, name, value)


BALANCED = {
    "assets": 50.0, "liabilities": 50.0, "inflow": 7.0, "outflow": 7.0, "gdp": 100.0,
}


def test_balanced_economy_has_zero_residual(clean_registry):
    _define_sfc_check()
    eng, root = _sfc_root(BALANCED)

    assert eng.get(root, "testBal") == 0.0
    assert eng.verifier.state("testBal").errors_total == 0


def test_perturbed_economy_reports_each_group(clean_registry):
    _define_sfc_check()
    eng, root = _sfc_root({**BALANCED, "liabilities": 45.0, "outflow": 6.0})

    assert eng.get(root, "testBal") == pytest.approx(0.06)
    state = eng.verifier.state("testBal")
    assert state.errors_total == 2
    tags = {f.tag: f.magnitude for f in state.findings}
    assert tags == {
        "SFC-BAL-NOT-ZERO[assets]": pytest.approx(0.05),
        "SFC-FLOW-NOT-ZERO[flows]": pytest.approx(0.01),
    }


def test_nan_residual_is_an_inconsistency(clean_registry):
    _define_sfc_check()
    eng, root = _sfc_root({**BALANCED, "assets": math.nan})

    assert math.isnan(eng.get(root, "testBal"))
    state = eng.verifier.state("testBal")
    assert state.errors_total == 1
    (finding,) = state.findings
    assert finding.tag == "SFC-BAL-NOT-ZERO[assets]"
    assert math.isnan(finding.magnitude)


def test_residual_exactly_at_threshold_is_counted(clean_registry):
    _define_sfc_check()
    eng, root = _sfc_root({**BALANCED, "liabilities": 45.0}, threshold=0.05)

    assert eng.get(root, "testBal") == 0.05
    assert eng.verifier.state("testBal").errors_total == 1


def test_residual_below_threshold_is_not_counted(clean_registry):
    _define_sfc_check()
    eng, root = _sfc_root({**BALANCED, "liabilities": 45.01}, threshold=0.05)

    assert eng.get(root, "testBal") == 0.0
    assert eng.verifier.state("testBal").errors_total == 0


def test_residual_is_measured_outside_the_window(clean_registry):
    _define_sfc_check()
    eng, root = _sfc_root({**BALANCED, "liabilities": 45.0}, window=(5, 8))

    assert eng.get(root, "testBal") == pytest.approx(0.05)
    state = eng.verifier.state("testBal")
    assert not state.started
    assert state.errors_total == 0
    assert state.calls == 0


def test_recalc_sees_violations_after_the_window_closes(clean_registry):
    _define_sfc_check()

    class Watcher(ConsistencyCheck, name="testWatch", level="Root", auto=False):
        def inspect(self, ctx, report, state):
            report.check_that(not ctx.recalc("testBal") == 0.0, "SFC-VIOLATION")

    broken = {**BALANCED, "liabilities": 45.0}
    eng, root = _sfc_root(
        broken,
        window=(1, 3),
        extra_params={"testWatch_start": 1, "testWatch_end": 10},
    )
    seen = [eng.get(root, "testWatch")]
    for _ in range(8):
        eng.step()
        _write(eng, root, broken)
        seen.append(eng.get(root, "testWatch"))

    assert seen == [1.0] * 9
    assert eng.verifier.state("testWatch").errors_total == 9
    bal = eng.verifier.state("testBal")
    assert bal.errors_total == 2
    assert bal.finalized_at == 3
