"""Stock-flow consistency residuals."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Mapping

from ksengine.helpers import round_near
from ksengine.verification.check import ConsistencyCheck
from ksengine.verification.report import Report
from ksengine.verification.verifier import CheckState, Phase

if TYPE_CHECKING:
    from ksengine.core.context import EvalContext


def sfc_residual(
    terms: Mapping[str, float], scale: float, threshold: float = 1e-4
) -> float:
    """
    Normalised sum of absolute residuals.

    Parameters
    ----------
    terms : mapping
        Named residuals, each of which must be zero in a consistent model.
    scale : float
        Normaliser, usually nominal GDP. Non-positive scales leave the sum
        unnormalised.
    threshold : float
        Results closer to zero than this are reported as exactly 0. A
        non-finite term makes the result non-finite.

    Examples
    --------
    >>> sfc_residual({"debt": 1e-9, "deposits": -2e-9}, scale=100.0)
    0.0
    >>> sfc_residual({"debt": 5.0}, scale=100.0)
    0.05
    """
    total = sum(abs(float(v)) for v in terms.values())
    if scale > 0:
        total /= scale
    return round_near(total, 0.0, threshold)


def largest_term(terms: Mapping[str, float]) -> tuple[str, float]:
    """Name and value of the worst residual; non-finite terms come first."""
    if not terms:
        return "", 0.0

    def badness(key: str) -> tuple[bool, float]:
        value = float(terms[key])
        if not math.isfinite(value):
            return True, 0.0
        return False, abs(value)

    name = max(terms, key=badness)
    return name, float(terms[name])


class SfcCheck(ConsistencyCheck):
    """
    Consistency check whose value is the normalised SFC residual.

    Subclasses provide :meth:`residuals`, grouped by the matrix they come
    from (``BAL-ROW``, ``TRANS-COL``, ...), and :meth:`scale`. Each group
    that does not round to exactly zero is one structural inconsistency
    tagged ``SFC-<group>-NOT-ZERO[<worst term>]``.

    The residual is measured on every call, also outside the check's own
    window, so other checks can ``recalc`` it at any step. Error counts are
    only folded into the running total while the window is active.
    """

    def residuals(self, ctx: EvalContext) -> dict[str, dict[str, float]]:
        raise NotImplementedError

    def scale(self, ctx: EvalContext) -> float:
        return 1.0

    def measure(self, ctx: EvalContext, report: Report) -> float:
        """Record every non-zero group into *report*; return the total residual."""
        threshold = ctx.verifier.sfc_threshold
        scale = self.scale(ctx)
        total = 0.0
        for group, terms in self.residuals(ctx).items():
            value = sfc_residual(terms, scale, threshold)
            if not value == 0.0:
                name, _ = largest_term(terms)
                report.within(f"SFC-{group}-NOT-ZERO[{name}]", value, 0.0)
            total += value
        report.residual = total
        return total

    def compute(self, ctx: EvalContext) -> float:
        start, end = self.window(ctx)
        phase = self.phase_at(ctx.t, start, end)
        if phase is Phase.ACTIVE:
            return super().compute(ctx)
        if phase is Phase.FINALIZING:
            super().compute(ctx)
        elif ctx.t < 1:
            # only written step-0 values exist
            return 0.0
        return self.measure(ctx, Report(self.name, ctx.t))

    def inspect(self, ctx: EvalContext, report: Report, state: CheckState) -> None:
        self.measure(ctx, report)

    def result(self, report: Report) -> float:
        return report.residual
