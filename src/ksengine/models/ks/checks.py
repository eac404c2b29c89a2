"""
Consistency checks of the K+S model, evaluated on the ``Stats`` agent.

Each check is windowed by ``<name>_start``/``<name>_end`` parameters on the
``Stats`` agent (see ``checks`` in the configuration). ``testCountry``
recalculates ``testSFC`` so that macro-level runs always see a fresh
stock-flow residual, whether or not ``testSFC``'s own window is open.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ksengine.helpers import same_rounded
from ksengine.verification.check import ConsistencyCheck
from ksengine.verification.sfc import SfcCheck

if TYPE_CHECKING:
    from ksengine.core.context import EvalContext
    from ksengine.verification.report import Report
    from ksengine.verification.verifier import CheckState


class StockFlowConsistency(SfcCheck, name="testSFC", level="Stats"):
    """
    Balance-sheet and transaction-flow identities that must hold exactly.

    Residuals are grouped by the matrix they come from: rows and columns of
    the balance-sheet matrix (``BAL-ROW``, ``BAL-COL``), rows and columns of
    the transaction-flow matrix (``TRANS-ROW``, ``TRANS-COL``) and the sum of
    all sectors' net lending (``NET-LEND``).
    """

    title = "STOCK-FLOW CONSISTENCY"
    banner = "%%%"

    def residuals(self, ctx: EvalContext) -> dict[str, dict[str, float]]:
        ctx.settle()
        root = ctx.root
        con = ctx.sector("Consumer")
        cap = ctx.sector("Capital")
        fin = ctx.sector("Financial")
        labor = ctx.sector("Labor")
        h, h_1 = ctx.vs(root, "SavAcc"), ctx.vs(root, "SavAcc", 1)
        yd, c = ctx.vs(root, "YD"), ctx.vs(root, "C")
        deb, def_ = ctx.vs(root, "Deb"), ctx.vs(root, "Def")
        c_entry, c_exit = ctx.vs(root, "cEntry"), ctx.vs(root, "cExit")
        nw2, deb2 = ctx.vs(con, "NW2"), ctx.vs(con, "Deb2")
        nw1, cf1, cf2 = ctx.vs(cap, "NW1"), ctx.vs(cap, "CF1"), ctx.vs(con, "CF2")
        depo, loans, bonds = (ctx.vs(fin, n) for n in ("Depo", "Loans", "BondsB"))
        pi_b, div_b = ctx.vs(fin, "PiB"), ctx.vs(fin, "DivB")
        bad = ctx.vs(fin, "BadDeb")

        return {
            "BAL-ROW": {
                "deposits": depo - nw2 - nw1 - h,
                "loans": loans - deb2,
                "bonds": deb - bonds,
            },
            "BAL-COL": {
                "banks": depo - loans - bonds,
                "net-worth": h + nw2 - deb2 + nw1 - deb,
            },
            "TRANS-ROW": {
                "consumption": ctx.vs(con, "S2") - c - ctx.vs(root, "G"),
                "investment": ctx.vs(cap, "S1") - ctx.vs(con, "I2"),
                "wages": ctx.vs(labor, "W") - ctx.vs(con, "W2") - ctx.vs(cap, "W1"),
                "loan-interest": ctx.vs(fin, "iB") - ctx.vs(con, "i2"),
                "deposit-interest": ctx.vs(fin, "iDb")
                - ctx.vs(con, "iD2")
                - ctx.vs(cap, "iD1")
                - ctx.param("rD") * h_1,
                "dividends": ctx.vs(root, "Div")
                - ctx.vs(con, "Div2")
                - ctx.vs(cap, "Div1")
                - div_b,
            },
            "TRANS-COL": {
                "households": h - h_1 - (yd - c),
                "government": deb - ctx.vs(root, "Deb", 1) - def_,
                "banks": pi_b - div_b,
                "capital-firms": nw1 - ctx.vs(cap, "NW1", 1) - cf1,
                "consumer-firms": (nw2 - deb2)
                - (ctx.vs(con, "NW2", 1) - ctx.vs(con, "Deb2", 1))
                - (cf2 + c_entry - c_exit + bad),
            },
            "NET-LEND": {
                "sectors": (yd - c - c_exit + c_entry)
                + cf2
                + cf1
                + (pi_b - div_b)
                + (ctx.vs(root, "Gbail") - def_),
            },
        }

    def scale(self, ctx: EvalContext) -> float:
        return ctx.vs(ctx.root, "GDPnom")


class CountryMacro(ConsistencyCheck, name="testCountry", level="Stats"):
    """Macro aggregates, SFC status and long-run growth of the economy."""

    title = "COUNTRY MACRO"
    banner = "@@@"
    growth_offsets = {"GDPreal": 1.0, "A": 0.0, "Deb": 1.0, "SavAcc": 1.0}

    def inspect(self, ctx: EvalContext, report: Report, state: CheckState) -> None:
        ctx.settle()
        root = ctx.root
        tol = ctx.verifier.tolerance
        c, g, yd = ctx.vs(root, "C"), ctx.vs(root, "G"), ctx.vs(root, "YD")
        gdp_nom, gdp_real = ctx.vs(root, "GDPnom"), ctx.vs(root, "GDPreal")
        deb, c_entry = ctx.vs(root, "Deb"), ctx.vs(root, "cEntry")

        report.universal(
            nonneg=[c, g, ctx.vs(root, "Tax"), c_entry, ctx.vs(root, "cExit")],
            posit=[gdp_nom, gdp_real],
            finite=[yd, ctx.vs(root, "SavAcc"), deb, ctx.vs(root, "Def")],
        )
        report.check_that(
            not same_rounded(
                gdp_nom,
                ctx.vs(ctx.sector("Consumer"), "S2")
                + ctx.vs(ctx.sector("Capital"), "S1"),
            ),
            "INCONSISTENT-GDP",
        )
        report.check_that((yd - c) / gdp_nom > 5 * tol, "HIGH-SAVINGS")
        report.check_that(c_entry / gdp_nom > 2 * tol, "HIGH-EQUITY")
        report.check_that(deb / gdp_nom > 100 * tol, "EXPLOSIVE-DEBT")
        report.check_that(not ctx.recalc("testSFC") == 0.0, "SFC-VIOLATION")

    def track(self, ctx: EvalContext) -> dict[str, float]:
        root = ctx.root
        return {
            "GDPreal": ctx.vs(root, "GDPreal"),
            "A": ctx.vs(ctx.sector("Consumer"), "A2"),
            "Deb": ctx.vs(root, "Deb"),
            "SavAcc": ctx.vs(root, "SavAcc"),
        }

    def assess_growth(
        self, ctx: EvalContext, growth: dict[str, float], report: Report
    ) -> None:
        tol = ctx.verifier.tolerance
        g_gdp = growth.get("GDPreal", float("nan"))
        report.check_that(
            g_gdp < tol / 20 or growth.get("A", float("nan")) < tol / 20,
            "LOW-GROWTH",
        )
        report.check_that(
            growth.get("Deb", float("nan")) > (1 + tol) * g_gdp,
            "EXPLOSIVE-DEBT-GROWTH",
        )
        report.check_that(
            growth.get("SavAcc", float("nan")) > (1 + tol) * g_gdp,
            "EXPLOSIVE-SAVINGS-GROWTH",
        )


class FinancialSector(ConsistencyCheck, name="testFin", level="Stats"):
    title = "FINANCIAL SECTOR"
    banner = "$$$$"

    def inspect(self, ctx: EvalContext, report: Report, state: CheckState) -> None:
        ctx.settle()
        fin = ctx.sector("Financial")
        tol = ctx.verifier.tolerance
        r, rd, r_bonds = ctx.param("r"), ctx.param("rD"), ctx.param("rBonds")
        loans, depo, bonds = (ctx.vs(fin, n) for n in ("Loans", "Depo", "BondsB"))
        pi_b, div_b, bad = (ctx.vs(fin, n) for n in ("PiB", "DivB", "BadDeb"))

        report.universal(
            nonneg=[loans, depo, ctx.vs(fin, "iB"), ctx.vs(fin, "iDb"), bad,
                    ctx.vs(fin, "Cl")],
            posit=[ctx.vs(fin, "NB"), r, rd, r_bonds],
            finite=[bonds, pi_b, div_b],
        )
        report.check_that(rd > r_bonds or r_bonds > r, "INCONSISTENT-RATES")
        report.check_that(
            ctx.vs(fin, "Cl") != ctx.vs(ctx.sector("Consumer"), "F2"),
            "INCONSISTENT-CLIENTS",
        )
        report.within("BANK-BALANCE", depo - loans - bonds, tol)
        report.within("BANK-PAYOUT", pi_b - div_b, tol)
        report.within("BAILOUT", ctx.vs(ctx.root, "Gbail") - bad, tol)


class LaborSupply(ConsistencyCheck, name="testLabor", level="Stats"):
    title = "LABOR SUPPLY"
    banner = "+++"

    def inspect(self, ctx: EvalContext, report: Report, state: CheckState) -> None:
        labor = ctx.sector("Labor")
        employed, wages = ctx.vs(labor, "L"), ctx.vs(labor, "W")
        supply, w = ctx.param("Ls"), ctx.param("w")

        report.universal(
            nonneg=[employed, wages, ctx.vs(labor, "TaxW")],
            posit=[supply, w],
            finite=[ctx.vs(labor, "U")],
        )
        report.check_that(employed > supply, "EXCESS-EMPLOYMENT")
        report.check_that(not same_rounded(wages, w * employed), "INCONSISTENT-WAGE-BILL")
        report.check_that(
            not same_rounded(ctx.vs(labor, "TaxW"), ctx.param("tr") * wages),
            "INCONSISTENT-WAGE-TAX",
        )


class ConsumptionGoodSector(ConsistencyCheck, name="test2sec", level="Stats"):
    title = "CONSUMPTION-GOOD SECTOR"
    banner = "&&&"
    growth_offsets = {"A2": 0.0, "Q2": 1.0}

    def inspect(self, ctx: EvalContext, report: Report, state: CheckState) -> None:
        ctx.settle()
        sec = ctx.sector("Consumer")
        s2, w2, q2, l2 = (ctx.vs(sec, n) for n in ("S2", "W2", "Q2", "L2"))

        report.universal(
            nonneg=[s2, w2, q2, l2, ctx.vs(sec, "NW2"), ctx.vs(sec, "Deb2"),
                    ctx.vs(sec, "F2"), ctx.vs(sec, "I2")],
            posit=[ctx.vs(sec, "A2"), ctx.vs(sec, "CPI")],
            finite=[ctx.vs(sec, "Pi2"), ctx.vs(sec, "CF2")],
        )
        report.check_that(
            not same_rounded(s2, ctx.vs(sec, "D2")), "INCONSISTENT-SALES"
        )
        report.check_that(
            not same_rounded(w2, ctx.param("w") * l2), "INCONSISTENT-WAGES"
        )
        report.check_that(ctx.vs(sec, "F2") < 1, "NO-FIRMS")

    def track(self, ctx: EvalContext) -> dict[str, float]:
        sec = ctx.sector("Consumer")
        return {"A2": ctx.vs(sec, "A2"), "Q2": ctx.vs(sec, "Q2")}

    def assess_growth(
        self, ctx: EvalContext, growth: dict[str, float], report: Report
    ) -> None:
        report.check_that(
            growth.get("A2", float("nan")) < 0, "PRODUCTIVITY-DECLINE"
        )


class ConsumerGoodFirms(ConsistencyCheck, name="test2firm", level="Stats"):
    """
    Per-firm checks and CSV dump for a range of consumption-good firms.

    The followed firms are set by ``test2firm_id_start``/``_id_end``; with
    ``id_start == 0`` the first ``id_end`` entrants of the window are
    followed instead.
    """

    title = "CONSUMER-GOOD FIRMS"
    banner = "###"
    csv_file = "firms2.csv"
    csv_header = (
        "t", "ID2", "t2ent", "Bank", "nVint", "f2", "p2", "A2",
        "S2", "Q2", "L2", "NW2", "Deb2",
    )

    def inspect(self, ctx: EvalContext, report: Report, state: CheckState) -> None:
        ctx.settle()
        tol = ctx.verifier.tolerance
        mu2 = ctx.param("mu2")
        sec = ctx.sector("Consumer")
        firms = self.selected(ctx, state, ctx.children("Firm2", agent=sec, safe=True))

        for firm in firms:
            v = {n: ctx.vs(firm, n) for n in (
                "f2", "p2", "c2", "A2", "S2", "Q2", "L2", "W2", "NW2", "Deb2", "CF2"
            )}
            detail = f"ID2={firm.id}"
            report.universal(
                nonneg=[v["f2"], v["S2"], v["Q2"], v["L2"], v["W2"], v["NW2"],
                        v["Deb2"]],
                posit=[v["p2"], v["c2"], v["A2"]],
                detail=detail,
            )
            report.check_that(
                not same_rounded(v["p2"], (1 + mu2) * v["c2"], 1e-9),
                "INCONSISTENT-PRICE", firm.id,
            )
            bank = ctx.hook("bank", agent=firm)
            report.check_that(bank is None, "NO-BANK", firm.id)
            if firm.born < ctx.t:
                gap = (
                    v["NW2"] - ctx.vs(firm, "NW2", 1) - v["CF2"]
                    - (v["Deb2"] - ctx.vs(firm, "Deb2", 1))
                )
                report.within(f"FIRM-CASH-FLOW[{firm.id}]", gap, tol)

            if state.sink is not None:
                state.sink.write(
                    ctx.t, firm.id, firm.born, bank.id if bank is not None else 0,
                    ctx.count("Vint", agent=firm), v["f2"], v["p2"], v["A2"],
                    v["S2"], v["Q2"], v["L2"], v["NW2"], v["Deb2"],
                )


class CapitalGoodSector(ConsistencyCheck, name="test1sec", level="Stats"):
    title = "CAPITAL-GOOD SECTOR"
    banner = "***"
    growth_offsets = {"Atau": 0.0, "Q1": 1.0}

    def inspect(self, ctx: EvalContext, report: Report, state: CheckState) -> None:
        ctx.settle()
        sec = ctx.sector("Capital")
        s1, w1, q1, l1 = (ctx.vs(sec, n) for n in ("S1", "W1", "Q1", "L1"))

        report.universal(
            nonneg=[s1, w1, q1, l1, ctx.vs(sec, "NW1"), ctx.vs(sec, "Div1")],
            posit=[ctx.vs(sec, "Atau"), ctx.vs(sec, "F1")],
            finite=[ctx.vs(sec, "Pi1"), ctx.vs(sec, "CF1")],
        )
        report.check_that(
            not same_rounded(s1, ctx.vs(ctx.sector("Consumer"), "I2")),
            "INCONSISTENT-MACHINE-SALES",
        )
        report.check_that(
            not same_rounded(w1, ctx.param("w") * l1), "INCONSISTENT-WAGES"
        )

    def track(self, ctx: EvalContext) -> dict[str, float]:
        sec = ctx.sector("Capital")
        return {"Atau": ctx.vs(sec, "Atau"), "Q1": ctx.vs(sec, "Q1")}

    def assess_growth(
        self, ctx: EvalContext, growth: dict[str, float], report: Report
    ) -> None:
        report.check_that(
            growth.get("Atau", float("nan")) < 0, "TECHNOLOGY-REGRESS"
        )


class CapitalGoodFirms(ConsistencyCheck, name="test1firm", level="Stats"):
    """Per-firm checks and CSV dump for capital-good firms ``id_start..id_end``."""

    title = "CAPITAL-GOOD FIRMS"
    banner = "###"
    csv_file = "firms1.csv"
    csv_header = (
        "t", "ID1", "Bank", "Clients", "Atau", "p1", "S1", "Q1", "L1", "NW1",
    )

    def inspect(self, ctx: EvalContext, report: Report, state: CheckState) -> None:
        ctx.settle()
        tol = ctx.verifier.tolerance
        w, mu1 = ctx.param("w"), ctx.param("mu1")
        consumer = ctx.sector("Consumer")
        firms = self.selected(
            ctx, state, ctx.children("Firm1", agent=ctx.sector("Capital"))
        )

        for firm in firms:
            v = {n: ctx.vs(firm, n) for n in (
                "Atau", "p1", "S1", "Q1", "L1", "W1", "NW1", "CF1"
            )}
            report.universal(
                nonneg=[v["S1"], v["Q1"], v["L1"], v["W1"], v["NW1"]],
                posit=[v["Atau"], v["p1"]],
                detail=f"ID1={firm.id}",
            )
            report.check_that(
                not same_rounded(v["p1"], (1 + mu1) * w / v["Atau"], 1e-9),
                "INCONSISTENT-PRICE", firm.id,
            )
            report.check_that(
                v["Atau"] < ctx.vs(firm, "Atau", 1), "TECHNOLOGY-REGRESS", firm.id
            )
            bank = ctx.hook("bank", agent=firm)
            report.check_that(bank is None, "NO-BANK", firm.id)
            report.within(
                f"FIRM-CASH-FLOW[{firm.id}]",
                v["NW1"] - ctx.vs(firm, "NW1", 1) - v["CF1"],
                tol,
            )

            if state.sink is not None:
                n_clients = sum(
                    1 for c in ctx.children("Firm2", agent=consumer)
                    if ctx.hook("supplier", agent=c) is firm
                )
                state.sink.write(
                    ctx.t, firm.id, bank.id if bank is not None else 0, n_clients,
                    v["Atau"], v["p1"], v["S1"], v["Q1"], v["L1"], v["NW1"],
                )
