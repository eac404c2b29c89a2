"""
Capital-good sector: machine producers and their aggregates.

Capital firms (``Firm1``) improve the productivity ``Atau`` of the machines
they sell through stochastic innovation, price machines at a mark-up over
unit labour cost and sell them to the consumption-good firms that name them
as ``supplier``. They carry no debt: deposits (``NW1``) accumulate the cash
flow left after taxes and dividends. Capital firms neither enter nor exit.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Iterator

from ksengine.core.decorators import equation

if TYPE_CHECKING:
    from ksengine.core.agent import Agent
    from ksengine.core.context import EvalContext
    from ksengine.core.engine import Engine

CAPITAL_FLOWS = (
    "S1", "Q1", "L1", "W1", "iD1", "Pi1", "Tax1", "Div1", "CF1",
)


def add_capital_firm(engine: Engine, capital: Agent, bank: Agent, atau: float,
                     nw: float) -> Agent:
    """Create a capital firm with deposits *nw* at *bank*."""
    p1 = (1 + engine.get_param(capital, "mu1")) * engine.get_param(capital, "w") / atau
    initial = {name: 0.0 for name in CAPITAL_FLOWS}
    initial.update(Atau=atau, p1=p1, NW1=nw)
    firm = engine.population.create_child(capital, "Firm1", initial=initial)
    engine.population.set_hook(firm, "bank", bank)
    return firm


def customers(ctx: EvalContext) -> Iterator[Agent]:
    """Consumption-good firms whose ``supplier`` hook points at this firm."""
    firm1 = ctx.agent
    for firm in ctx.children("Firm2", agent=ctx.sector("Consumer")):
        if ctx.hook("supplier", agent=firm) is firm1:
            yield firm


# firms
# ---------------------------------------------------------------------------
@equation("Atau", level="Firm1")
def machine_productivity(ctx: EvalContext) -> float:
    """Improve on last period's machine by a draw in ``[0, sigmaInn)`` w.p. ``pInn``."""
    atau = ctx.v("Atau", 1)
    if ctx.rng.random() < ctx.param("pInn"):
        atau *= 1 + ctx.rng.uniform(0.0, ctx.param("sigmaInn"))
    return atau


@equation("p1", level="Firm1")
def machine_price(ctx: EvalContext) -> float:
    return (1 + ctx.param("mu1")) * ctx.param("w") / ctx.v("Atau")


@equation("S1", level="Firm1")
def machine_sales(ctx: EvalContext) -> float:
    return sum(ctx.vs(firm, "I2") for firm in customers(ctx))


@equation("Q1", level="Firm1")
def machine_output(ctx: EvalContext) -> float:
    return ctx.v("S1") / ctx.v("p1")


@equation("L1", level="Firm1")
def machine_labor(ctx: EvalContext) -> float:
    return ctx.v("Q1") / ctx.v("Atau")


@equation("W1", level="Firm1")
def machine_wage_bill(ctx: EvalContext) -> float:
    return ctx.param("w") * ctx.v("L1")


@equation("iD1", level="Firm1")
def machine_interest_received(ctx: EvalContext) -> float:
    return ctx.param("rD") * ctx.v("NW1", 1)


@equation("Pi1", level="Firm1")
def machine_profit(ctx: EvalContext) -> float:
    return ctx.v("S1") - ctx.v("W1") + ctx.v("iD1")


@equation("Tax1", level="Firm1")
def machine_profit_tax(ctx: EvalContext) -> float:
    return ctx.param("tr") * max(ctx.v("Pi1"), 0.0)


@equation("Div1", level="Firm1")
def machine_dividends(ctx: EvalContext) -> float:
    return ctx.param("d1") * max(ctx.v("Pi1") - ctx.v("Tax1"), 0.0)


@equation("CF1", level="Firm1")
def machine_cash_flow(ctx: EvalContext) -> float:
    return ctx.v("Pi1") - ctx.v("Tax1") - ctx.v("Div1")


@equation("NW1", level="Firm1")
def machine_deposits(ctx: EvalContext) -> float:
    return ctx.v("NW1", 1) + ctx.v("CF1")


# sector
# ---------------------------------------------------------------------------
def _sector_sum(name: str) -> Callable[[EvalContext], float]:
    def total(ctx: EvalContext) -> float:
        return ctx.sum("Firm1", name)

    total.__name__ = f"total_{name}"
    total.__qualname__ = f"total_{name}"
    return total


for _name in CAPITAL_FLOWS + ("NW1",):
    equation(_name, level="Capital")(_sector_sum(_name))


@equation("Atau", level="Capital")
def technology_frontier(ctx: EvalContext) -> float:
    return max((ctx.vs(firm, "Atau") for firm in ctx.children("Firm1")), default=0.0)


@equation("F1", level="Capital")
def capital_firm_count(ctx: EvalContext) -> float:
    return float(ctx.count("Firm1"))
