"""Construction of the K+S model tree and its step-0 state."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

from ksengine.logging import getLogger
from ksengine.models.ks.capital import add_capital_firm
from ksengine.models.ks.consumer import add_firm

if TYPE_CHECKING:
    from ksengine.core.agent import Agent
    from ksengine.core.engine import Engine

log = getLogger(__name__)

SECTORS = ("Labor", "Consumer", "Capital", "Financial", "Stats")


def window_params(checks: Mapping[str, Mapping[str, Any]]) -> dict[str, float]:
    """Flatten ``{check: {start, end, ...}}`` into ``check_start`` style params."""
    flat: dict[str, float] = {}
    for name, spec in checks.items():
        for key, value in spec.items():
            flat[f"{name}_{key}"] = value
    return flat


def build_model(
    engine: Engine,
    *,
    n_firms: int,
    n_banks: int,
    n_firms1: int = 1,
    params: Mapping[str, float],
    checks: Mapping[str, Mapping[str, Any]] | None = None,
) -> Agent:
    """
    Create the agent tree and write the step-0 state.

    Tree::

        Country ── Labor
                ├─ Consumer ── Firm2* ── Vint*
                ├─ Capital ── Firm1*
                ├─ Financial ── Bank*
                └─ Stats

    Firms of both sectors are spread round-robin over banks, and
    consumption-good firms round-robin over capital firms. The initial state
    is stock-flow consistent: government debt equals bank bond holdings.

    Returns
    -------
    Agent
        The ``Country`` root.
    """
    if engine.t != 0:
        raise RuntimeError(f"model must be built at t=0, engine is at t={engine.t}")
    pop = engine.population
    root = pop.create_root("Country", params=params)
    sectors = {
        tag: pop.create_child(
            root, tag, params=window_params(checks or {}) if tag == "Stats" else None
        )
        for tag in SECTORS
    }
    consumer, capital = sectors["Consumer"], sectors["Capital"]
    financial = sectors["Financial"]
    banks = [pop.create_child(financial, "Bank") for _ in range(n_banks)]

    nw10 = params["NW10"]
    deposits = {bank.id: 0.0 for bank in banks}
    clients = {bank.id: 0 for bank in banks}
    suppliers = []
    for i in range(n_firms1):
        bank = banks[i % n_banks]
        suppliers.append(add_capital_firm(engine, capital, bank, params["A0"], nw10))
        deposits[bank.id] += nw10

    rng = engine.rng
    nw0 = params["NW20"]
    spread = params["A0spread"]
    for i in range(n_firms):
        bank = banks[i % n_banks]
        a2 = params["A0"] * (1 + rng.uniform(-spread, spread))
        add_firm(
            engine, consumer, bank, suppliers[i % n_firms1], a2, 1.0 / n_firms,
            nw0, params["nMach0"],
        )
        deposits[bank.id] += nw0
        clients[bank.id] += 1
    engine.write(consumer, "NW2", n_firms * nw0)
    engine.write(consumer, "Deb2", 0.0)
    engine.write(capital, "NW1", n_firms1 * nw10)

    sav = params["SavAcc0"]
    for bank in banks:
        depo = deposits[bank.id] + sav / n_banks
        for name, value in (
            ("Cl", clients[bank.id]), ("Loans", 0.0), ("Depo", depo),
            ("BondsB", depo), ("iB", 0.0), ("iDb", 0.0), ("PiB", 0.0),
            ("DivB", 0.0), ("BadDeb", 0.0),
        ):
            engine.write(bank, name, value)

    debt = sav + n_firms * nw0 + n_firms1 * nw10
    for name, value in (
        ("G", params["G0"]), ("YD", params["YD0"]), ("SavAcc", sav),
        ("Deb", debt), ("cEntry", 0.0), ("cExit", 0.0),
        ("entries", 0.0), ("exits", 0.0),
    ):
        engine.write(root, name, value)

    log.debug(
        "built K+S model: %d firms, %d capital firms, %d banks, "
        "government debt %.4g",
        n_firms, n_firms1, n_banks, debt,
    )
    return root
