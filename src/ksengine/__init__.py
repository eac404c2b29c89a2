"""
ksengine: lazy equation engine for Keynes+Schumpeter agent-based models.

Every economic quantity is a memoised, time-indexed variable living on an
agent of a strict tree (country → sectors → firms/banks → vintages).
Reading a variable evaluates its equation on demand, at most once per step;
lagged reads return values of closed steps. A consistency-verification
layer checks the simulated economy for accounting and behavioural
consistency while it runs.

Quick Start
-----------
>>> import ksengine as ks
>>> with ks.Simulation.init(n_periods=20, seed=42) as sim:
...     sim.run()
>>> sim.get("Country", "GDPnom") > 0
True

Define an equation:

>>> from ksengine import equation
>>> @equation("Markup", level="Firm2")
... def markup(ctx):
...     return ctx.v("p2") / ctx.v("c2") - 1

Write a windowed check:

>>> from ksengine import ConsistencyCheck
>>> class NoDebt(ConsistencyCheck, name="testNoDebt", level="Stats"):
...     def inspect(self, ctx, report, state):
...         report.check_that(ctx.vs(ctx.root, "Deb") > 0, "DEBT")

Core Components
---------------
- Engine: variable store, evaluation and the step sweep
- Equation / equation: formulas keyed by (level, name)
- Population: agent creation, destruction, hooks and aggregates
- ConsistencyCheck / Verifier: windowed checks with persistent state

See Also
--------
ksengine.simulation.Simulation : Main simulation facade
ksengine.core.engine.Engine : Evaluation engine
ksengine.verification.check.ConsistencyCheck : Check base class
"""

__version__ = "0.1.0"

from ksengine import logging
from ksengine.config import Config
from ksengine.core import (
    Agent,
    Engine,
    Equation,
    EvalContext,
    Population,
    equation,
    get_equation,
    list_equations,
)
from ksengine.errors import (
    CircularDependencyError,
    DanglingHookError,
    KsEngineError,
    StaleReadError,
    UnknownVariableError,
    WriteAfterReadError,
)
from ksengine.simulation import Simulation
from ksengine.verification import (
    CheckState,
    ConsistencyCheck,
    Report,
    SfcCheck,
    StructuralInconsistency,
    ValidationFailure,
    Verifier,
)

__all__ = [
    "__version__",
    "Agent",
    "CheckState",
    "CircularDependencyError",
    "Config",
    "ConsistencyCheck",
    "DanglingHookError",
    "Engine",
    "Equation",
    "EvalContext",
    "KsEngineError",
    "Population",
    "Report",
    "SfcCheck",
    "Simulation",
    "StaleReadError",
    "StructuralInconsistency",
    "UnknownVariableError",
    "ValidationFailure",
    "Verifier",
    "WriteAfterReadError",
    "equation",
    "get_equation",
    "list_equations",
    "logging",
]
