"""Labor market: employment, wage income and unemployment."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ksengine.core.decorators import equation

if TYPE_CHECKING:
    from ksengine.core.context import EvalContext


@equation("L", level="Labor")
def employment(ctx: EvalContext) -> float:
    return ctx.vs(ctx.sector("Consumer"), "L2") + ctx.vs(ctx.sector("Capital"), "L1")


@equation("W", level="Labor")
def wages(ctx: EvalContext) -> float:
    return ctx.vs(ctx.sector("Consumer"), "W2") + ctx.vs(ctx.sector("Capital"), "W1")


@equation("TaxW", level="Labor")
def wage_tax(ctx: EvalContext) -> float:
    return ctx.param("tr") * ctx.v("W")


@equation("U", level="Labor")
def unemployment_rate(ctx: EvalContext) -> float:
    return 1 - ctx.v("L") / ctx.param("Ls")
