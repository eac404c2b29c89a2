"""
Financial sector: banks and their aggregates.

Banks hold firm loans and government bonds against the deposits of both
firm sectors and of households. Bond holdings close each bank's balance
sheet, and profits are paid out in full, so bank equity stays at zero.
Losses on exiting firms (``BadDeb``, written by the settlement) are covered
by the government.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

from ksengine.core.decorators import equation

if TYPE_CHECKING:
    from ksengine.core.agent import Agent
    from ksengine.core.context import EvalContext


def clients(ctx: EvalContext, tag: str = "Firm2",
            sector: str = "Consumer") -> Iterator[Agent]:
    """Firms of type *tag* whose ``bank`` hook points at the context's bank."""
    bank = ctx.agent
    for firm in ctx.children(tag, agent=ctx.sector(sector)):
        if ctx.hook("bank", agent=firm) is bank:
            yield firm


@equation("Cl", level="Bank")
def client_count(ctx: EvalContext) -> float:
    ctx.settle()
    return float(sum(1 for _ in clients(ctx)))


@equation("Loans", level="Bank")
def loans(ctx: EvalContext) -> float:
    ctx.settle()
    return sum(ctx.vs(firm, "Deb2") for firm in clients(ctx))


@equation("Depo", level="Bank")
def bank_deposits(ctx: EvalContext) -> float:
    """Client firms' deposits plus an equal slice of household savings."""
    ctx.settle()
    firms = sum(ctx.vs(firm, "NW2") for firm in clients(ctx))
    firms += sum(ctx.vs(firm, "NW1") for firm in clients(ctx, "Firm1", "Capital"))
    households = ctx.vs(ctx.root, "SavAcc") / ctx.count("Bank", agent=ctx.parent)
    return firms + households


@equation("BondsB", level="Bank")
def bonds(ctx: EvalContext) -> float:
    return ctx.v("Depo") - ctx.v("Loans")


@equation("iB", level="Bank")
def loan_interest(ctx: EvalContext) -> float:
    return ctx.param("r") * ctx.v("Loans", 1)


@equation("iDb", level="Bank")
def deposit_interest(ctx: EvalContext) -> float:
    return ctx.param("rD") * ctx.v("Depo", 1)


@equation("PiB", level="Bank")
def bank_profit(ctx: EvalContext) -> float:
    return ctx.v("iB") + ctx.param("rBonds") * ctx.v("BondsB", 1) - ctx.v("iDb")


@equation("DivB", level="Bank")
def bank_dividends(ctx: EvalContext) -> float:
    return ctx.v("PiB")


# sector
# ---------------------------------------------------------------------------
@equation("NB", level="Financial")
def bank_count(ctx: EvalContext) -> float:
    return float(ctx.count("Bank"))


@equation("Loans", level="Financial")
def total_loans(ctx: EvalContext) -> float:
    return ctx.sum("Bank", "Loans")


@equation("Depo", level="Financial")
def total_deposits(ctx: EvalContext) -> float:
    return ctx.sum("Bank", "Depo")


@equation("BondsB", level="Financial")
def total_bonds(ctx: EvalContext) -> float:
    return ctx.sum("Bank", "BondsB")


@equation("iB", level="Financial")
def total_loan_interest(ctx: EvalContext) -> float:
    return ctx.sum("Bank", "iB")


@equation("iDb", level="Financial")
def total_deposit_interest(ctx: EvalContext) -> float:
    return ctx.sum("Bank", "iDb")


@equation("PiB", level="Financial")
def total_bank_profit(ctx: EvalContext) -> float:
    return ctx.sum("Bank", "PiB")


@equation("DivB", level="Financial")
def total_bank_dividends(ctx: EvalContext) -> float:
    return ctx.sum("Bank", "DivB")


@equation("BadDeb", level="Financial")
def total_bad_debt(ctx: EvalContext) -> float:
    ctx.settle()
    return ctx.sum("Bank", "BadDeb")


@equation("Cl", level="Financial")
def total_clients(ctx: EvalContext) -> float:
    return ctx.sum("Bank", "Cl")
