"""
Country level: households, government and the entry/exit settlement.

Households own all firm and bank equity: they receive wages net of tax,
dividends, deposit interest and the residual equity of exiting firms, and
fund entrants' initial deposits. Government spends, collects taxes, pays
interest on bonds held by banks and bails out bank losses on bad debt.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ksengine.core.decorators import equation
from ksengine.models.ks.capital import CAPITAL_FLOWS
from ksengine.models.ks.consumer import SECTOR_FLOWS, SECTOR_INDICES, add_firm

if TYPE_CHECKING:
    from ksengine.core.context import EvalContext


@equation("G", level="Country")
def government_spending(ctx: EvalContext) -> float:
    return ctx.v("G", 1) * (1 + ctx.param("gG"))


@equation("C", level="Country")
def consumption(ctx: EvalContext) -> float:
    return ctx.param("alpha1") * ctx.v("YD", 1) + ctx.param("alpha2") * ctx.v(
        "SavAcc", 1
    )


@equation("Div", level="Country")
def dividends_received(ctx: EvalContext) -> float:
    return (
        ctx.vs(ctx.sector("Consumer"), "Div2")
        + ctx.vs(ctx.sector("Capital"), "Div1")
        + ctx.vs(ctx.sector("Financial"), "DivB")
    )


@equation("YD", level="Country")
def disposable_income(ctx: EvalContext) -> float:
    """Household income after wage tax, including equity moved by entry/exit."""
    ctx.settle()
    labor = ctx.sector("Labor")
    return (
        ctx.vs(labor, "W")
        - ctx.vs(labor, "TaxW")
        + ctx.v("Div")
        + ctx.param("rD") * ctx.v("SavAcc", 1)
        + ctx.v("cExit")
        - ctx.v("cEntry")
    )


@equation("SavAcc", level="Country")
def household_deposits(ctx: EvalContext) -> float:
    return ctx.v("SavAcc", 1) + ctx.v("YD") - ctx.v("C")


@equation("Tax", level="Country")
def tax_revenue(ctx: EvalContext) -> float:
    return (
        ctx.vs(ctx.sector("Labor"), "TaxW")
        + ctx.vs(ctx.sector("Consumer"), "Tax2")
        + ctx.vs(ctx.sector("Capital"), "Tax1")
    )


@equation("Gbail", level="Country")
def bank_bailout(ctx: EvalContext) -> float:
    ctx.settle()
    return ctx.vs(ctx.sector("Financial"), "BadDeb")


@equation("Def", level="Country")
def government_deficit(ctx: EvalContext) -> float:
    return (
        ctx.v("G")
        + ctx.param("rBonds") * ctx.v("Deb", 1)
        + ctx.v("Gbail")
        - ctx.v("Tax")
    )


@equation("Deb", level="Country")
def government_debt(ctx: EvalContext) -> float:
    return ctx.v("Deb", 1) + ctx.v("Def")


@equation("GDPnom", level="Country")
def nominal_gdp(ctx: EvalContext) -> float:
    return ctx.v("C") + ctx.v("G") + ctx.vs(ctx.sector("Capital"), "S1")


@equation("GDPreal", level="Country")
def real_gdp(ctx: EvalContext) -> float:
    return ctx.vs(ctx.sector("Consumer"), "Q2") + ctx.vs(
        ctx.sector("Capital"), "Q1"
    )


@equation("entryExit", level="Country")
def entry_exit(ctx: EvalContext) -> float:
    """
    Settle firm exit and entry for the step; return the number of exits.

    A firm exits when its market share falls below ``f2min`` or its equity
    ``NW2 - Deb2`` turns negative. Positive residual equity returns to
    households (``cExit``); uncovered debt is a loss of the firm's bank
    (``BadDeb``). Each exit is replaced by an entrant with ``NW20`` of
    deposits funded by households (``cEntry``), average productivity, the
    bank with the fewest clients and the capital firm with the best machine.

    Writes ``cEntry``, ``cExit``, ``entries`` and ``exits`` on the country
    and ``BadDeb`` on every bank.
    """
    log = ctx.log
    engine = ctx.engine
    consumer = ctx.sector("Consumer")
    capital = ctx.sector("Capital")
    financial = ctx.sector("Financial")

    # flows and indices must cover the firms operating in this step
    for name in SECTOR_FLOWS + SECTOR_INDICES:
        ctx.vs(consumer, name)
    for name in CAPITAL_FLOWS:
        ctx.vs(capital, name)

    f2min = ctx.param("f2min")
    exiting = [
        firm
        for firm in ctx.children("Firm2", agent=consumer, safe=True)
        if ctx.vs(firm, "f2") < f2min
        or ctx.vs(firm, "NW2") - ctx.vs(firm, "Deb2") < 0
    ]

    banks = list(ctx.children("Bank", agent=financial))
    bad_debt = {bank.id: 0.0 for bank in banks}
    c_exit = 0.0
    for firm in exiting:
        equity = ctx.vs(firm, "NW2") - ctx.vs(firm, "Deb2")
        bank = ctx.hook("bank", agent=firm)
        if bank is not None:
            bad_debt[bank.id] += max(-equity, 0.0)
        c_exit += max(equity, 0.0)
        engine.population.clear_hooks_to(firm, ctx.root)
        ctx.destroy(firm)
        log.debug("t=%d exit %s (equity %.4g)", ctx.t, firm.label, equity)

    clients = {bank.id: 0 for bank in banks}
    for firm in ctx.children("Firm2", agent=consumer):
        bank = ctx.hook("bank", agent=firm)
        if bank is not None:
            clients[bank.id] += 1

    n_entry = len(exiting)
    nw0 = ctx.param("NW20")
    if n_entry:
        a2 = ctx.vs(consumer, "A2")
        supplier = max(
            ctx.children("Firm1", agent=capital),
            key=lambda f: (ctx.vs(f, "Atau"), -f.id),
        )
        share = 1.0 / (ctx.count("Firm2", agent=consumer) + n_entry)
        for _ in range(n_entry):
            bank = min(banks, key=lambda b: (clients[b.id], b.id))
            clients[bank.id] += 1
            firm = add_firm(
                engine, consumer, bank, supplier, a2, share, nw0,
                ctx.param("nMachNew"),
            )
            log.debug("t=%d entry %s at %s", ctx.t, firm.label, bank.label)

    ctx.write("cEntry", n_entry * nw0)
    ctx.write("cExit", c_exit)
    ctx.write("entries", float(n_entry))
    ctx.write("exits", float(len(exiting)))
    for bank in banks:
        ctx.write("BadDeb", bad_debt[bank.id], agent=bank)
    return float(len(exiting))
