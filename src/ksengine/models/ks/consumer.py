"""
Consumption-good sector: firms, machine vintages and sector aggregates.

Firms (``Firm2``) sell a homogeneous good at a mark-up over unit labour
cost. Market shares follow a replicator rule on competitiveness
``E = 1 / p2``. Productivity is the machine-weighted average of the firm's
vintages; a firm invests in a new vintage when its ``supplier`` offers a
better machine than its newest one, and old vintages are scrapped. Deposits
(``NW2``) and bank debt (``Deb2``) absorb the cash flow left after taxes,
dividends and investment.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from ksengine.core.decorators import equation

if TYPE_CHECKING:
    from ksengine.core.agent import Agent
    from ksengine.core.context import EvalContext
    from ksengine.core.engine import Engine

# sector aggregates over the firms alive before entry and exit
SECTOR_FLOWS = (
    "S2", "W2", "Q2", "L2", "Pi2", "Tax2", "Div2", "i2", "iD2", "I2", "CF2",
)
SECTOR_INDICES = ("A2", "CPI", "Eavg", "f2sum")


def entrant_state(engine: Engine, consumer: Agent, a2: float, share: float,
                  nw: float) -> dict[str, float]:
    """Values written for a firm in the step it is created."""
    w = engine.get_param(consumer, "w")
    mu2 = engine.get_param(consumer, "mu2")
    c2 = w / a2
    p2 = (1 + mu2) * c2
    state = {name: 0.0 for name in SECTOR_FLOWS}
    state.update(
        inn=0.0, A2=a2, c2=c2, p2=p2, E=1 / p2, f2raw=share, f2=share,
        NW2=nw, Deb2=0.0,
    )
    return state


def add_firm(engine: Engine, consumer: Agent, bank: Agent, supplier: Agent,
             a2: float, share: float, nw: float, n_mach: float) -> Agent:
    """Create a firm with one vintage, attached to *bank* and *supplier*."""
    pop = engine.population
    firm = pop.create_child(
        consumer, "Firm2", initial=entrant_state(engine, consumer, a2, share, nw)
    )
    pop.set_hook(firm, "bank", bank)
    pop.set_hook(firm, "supplier", supplier)
    install_vintage(engine, firm, a2, n_mach)
    return firm


def install_vintage(engine: Engine, firm: Agent, a: float, n_mach: float) -> Agent:
    vint = engine.population.create_child(
        firm, "Vint", initial={"Avint": a, "nMach": n_mach}
    )
    engine.population.set_hook(firm, "topVint", vint)
    return vint


# machine vintages
# ---------------------------------------------------------------------------
@equation("Avint", level="Vint")
def vintage_productivity(ctx: EvalContext) -> float:
    return ctx.v("Avint", 1)


@equation("nMach", level="Vint")
def vintage_machines(ctx: EvalContext) -> float:
    return ctx.v("nMach", 1)


# firms
# ---------------------------------------------------------------------------
@equation("inn", level="Firm2")
def innovation(ctx: EvalContext) -> float:
    """
    Buy a vintage of the supplier's machine and scrap old ones.

    When the supplier's ``Atau`` beats the top vintage, the firm invests
    with probability ``pInv`` in ``nMachNew`` machines of that productivity.
    Vintages older than ``maxAge`` are scrapped, but the top vintage is
    always kept. Returns 1 if a vintage was installed.
    """
    installed = 0.0
    supplier = ctx.hook("supplier")
    top = ctx.hook("topVint")
    if supplier is not None:
        frontier = ctx.vs(supplier, "Atau")
        best = ctx.vs(top, "Avint") if top is not None else 0.0
        if frontier > best and ctx.rng.random() < ctx.param("pInv"):
            install_vintage(ctx.engine, ctx.agent, frontier, ctx.param("nMachNew"))
            installed = 1.0

    top = ctx.hook("topVint")
    max_age = ctx.param("maxAge")
    for vint in ctx.children("Vint", safe=True):
        if vint is not top and ctx.t - vint.born > max_age:
            ctx.destroy(vint)
    return installed


@equation("A2", level="Firm2")
def firm_productivity(ctx: EvalContext) -> float:
    ctx.v("inn")  # vintage set must be final
    return ctx.wavg("Vint", "Avint", "nMach")


@equation("c2", level="Firm2")
def unit_cost(ctx: EvalContext) -> float:
    return ctx.param("w") / ctx.v("A2")


@equation("p2", level="Firm2")
def price(ctx: EvalContext) -> float:
    return (1 + ctx.param("mu2")) * ctx.v("c2")


@equation("E", level="Firm2")
def competitiveness(ctx: EvalContext) -> float:
    return 1 / ctx.v("p2")


@equation("f2raw", level="Firm2")
def share_unnormalised(ctx: EvalContext) -> float:
    e_avg = ctx.vs(ctx.parent, "Eavg")
    push = 1 + ctx.param("chi") * (ctx.v("E") / e_avg - 1)
    return ctx.v("f2", 1) * max(push, 0.0)


@equation("f2", level="Firm2")
def market_share(ctx: EvalContext) -> float:
    return ctx.v("f2raw") / ctx.vs(ctx.parent, "f2sum")


@equation("S2", level="Firm2")
def sales(ctx: EvalContext) -> float:
    return ctx.v("f2") * ctx.vs(ctx.parent, "D2")


@equation("Q2", level="Firm2")
def output(ctx: EvalContext) -> float:
    return ctx.v("S2") / ctx.v("p2")


@equation("L2", level="Firm2")
def labor_demand(ctx: EvalContext) -> float:
    return ctx.v("Q2") / ctx.v("A2")


@equation("W2", level="Firm2")
def wage_bill(ctx: EvalContext) -> float:
    return ctx.param("w") * ctx.v("L2")


@equation("i2", level="Firm2")
def interest_paid(ctx: EvalContext) -> float:
    return ctx.param("r") * ctx.v("Deb2", 1)


@equation("iD2", level="Firm2")
def interest_received(ctx: EvalContext) -> float:
    return ctx.param("rD") * ctx.v("NW2", 1)


@equation("Pi2", level="Firm2")
def profit(ctx: EvalContext) -> float:
    return ctx.v("S2") - ctx.v("W2") - ctx.v("i2") + ctx.v("iD2")


@equation("Tax2", level="Firm2")
def profit_tax(ctx: EvalContext) -> float:
    return ctx.param("tr") * max(ctx.v("Pi2"), 0.0)


@equation("Div2", level="Firm2")
def dividends(ctx: EvalContext) -> float:
    return ctx.param("d2") * max(ctx.v("Pi2") - ctx.v("Tax2"), 0.0)


@equation("I2", level="Firm2")
def investment(ctx: EvalContext) -> float:
    if not ctx.v("inn"):
        return 0.0
    return ctx.param("nMachNew") * ctx.vs(ctx.hook("supplier"), "p1")


@equation("CF2", level="Firm2")
def cash_flow(ctx: EvalContext) -> float:
    return ctx.v("Pi2") - ctx.v("Tax2") - ctx.v("Div2") - ctx.v("I2")


@equation("Deb2", level="Firm2")
def debt(ctx: EvalContext) -> float:
    """Borrow to cover negative liquidity, repay a share of positive liquidity."""
    debt_1 = ctx.v("Deb2", 1)
    liquid = ctx.v("NW2", 1) + ctx.v("CF2")
    borrow = max(-liquid, 0.0)
    repay = min(debt_1, max(liquid, 0.0) * ctx.param("rep"))
    return debt_1 + borrow - repay


@equation("NW2", level="Firm2")
def deposits(ctx: EvalContext) -> float:
    return ctx.v("NW2", 1) + ctx.v("CF2") + ctx.v("Deb2") - ctx.v("Deb2", 1)


# sector
# ---------------------------------------------------------------------------
@equation("D2", level="Consumer")
def demand(ctx: EvalContext) -> float:
    return ctx.vs(ctx.parent, "C") + ctx.vs(ctx.parent, "G")


@equation("Eavg", level="Consumer")
def average_competitiveness(ctx: EvalContext) -> float:
    num = den = 0.0
    for firm in ctx.children("Firm2"):
        share = ctx.vs(firm, "f2", 1)
        num += share * ctx.vs(firm, "E")
        den += share
    return num / den if den > 0 else 0.0


@equation("f2sum", level="Consumer")
def share_normaliser(ctx: EvalContext) -> float:
    return ctx.sum("Firm2", "f2raw")


def _sector_sum(name: str) -> Callable[[EvalContext], float]:
    def total(ctx: EvalContext) -> float:
        return ctx.sum("Firm2", name)

    total.__name__ = f"total_{name}"
    total.__qualname__ = f"total_{name}"
    return total


for _name in SECTOR_FLOWS:
    equation(_name, level="Consumer")(_sector_sum(_name))


@equation("A2", level="Consumer")
def sector_productivity(ctx: EvalContext) -> float:
    return ctx.wavg("Firm2", "A2", "f2")


@equation("CPI", level="Consumer")
def consumer_price_index(ctx: EvalContext) -> float:
    return ctx.wavg("Firm2", "p2", "f2")


@equation("NW2", level="Consumer")
def sector_deposits(ctx: EvalContext) -> float:
    ctx.settle()
    return ctx.sum("Firm2", "NW2")


@equation("Deb2", level="Consumer")
def sector_debt(ctx: EvalContext) -> float:
    ctx.settle()
    return ctx.sum("Firm2", "Deb2")


@equation("F2", level="Consumer")
def firm_count(ctx: EvalContext) -> float:
    ctx.settle()
    return float(ctx.count("Firm2"))
