# src/ksengine/core/engine.py
"""
Lazy, memoised evaluation of time-indexed agent variables.

The engine owns the step counter, the per-level dispatch table built from
the equation registry, and the population. Reading a variable for the
current step evaluates its equation at most once; lagged reads only ever
return values of closed steps.

Step protocol
-------------
``step()`` advances ``t`` and sweeps the tree depth-first: for every live
agent, every ``auto`` equation of its level that has not been computed yet
is evaluated, in registration order. After the sweep the step is closed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from numpy.random import Generator, default_rng

from ksengine.core.agent import Agent
from ksengine.core.context import EvalContext
from ksengine.core.formula import Equation
from ksengine.core.population import Population
from ksengine.core.registry import resolve_equations
from ksengine.core.variable import Variable
from ksengine.errors import (
    CircularDependencyError,
    StaleReadError,
    UnknownVariableError,
    WriteAfterReadError,
)
from ksengine.logging import DEEP_DEBUG, getLogger
from ksengine.typing import Float1D, Listener

if TYPE_CHECKING:
    from ksengine.verification.verifier import Verifier

__all__ = ["Engine", "make_rng"]

log = getLogger(__name__)


def make_rng(seed: int | Generator | None = None) -> Generator:
    """Return *seed* if it is already a Generator, else a fresh one."""
    return seed if isinstance(seed, Generator) else default_rng(seed)


class Engine:
    """
    Variable store and evaluation engine.

    Parameters
    ----------
    rng : Generator or int, optional
        Random source exposed to equations as ``ctx.rng``.
    settlement : str
        Name of the root variable that ``settle()`` forces.
    strict_writes : bool
        Raise ``WriteAfterReadError`` on writes to already-read slots.
    verifier : Verifier, optional
        Holds persistent consistency-check state.

    Examples
    --------
    >>> eng = Engine(rng=42)
    >>> root = eng.population.create_root("Country")
    >>> eng.write(root, "G", 10.0)
    >>> eng.get(root, "G")
    10.0
    """

    def __init__(
        self,
        *,
        rng: Generator | int | None = None,
        settlement: str = "entryExit",
        strict_writes: bool = True,
        verifier: Verifier | None = None,
    ) -> None:
        self.t = 0
        self.rng = make_rng(rng)
        self.settlement = settlement
        self.strict_writes = strict_writes
        self.verifier = verifier
        self.population = Population(self)
        self._table: dict[str, dict[str, Equation]] = resolve_equations()
        self._stack: list[Variable] = []
        self._listeners: list[Listener] = []
        self.evaluations = 0

    @property
    def root(self) -> Agent:
        if self.population.root is None:
            raise RuntimeError("engine has no root agent yet")
        return self.population.root

    # instrumentation
    # ---------------------------------------------------------------------
    def add_listener(self, fn: Listener) -> None:
        """Call ``fn(agent, name, t, value)`` after every formula execution."""
        self._listeners.append(fn)

    def remove_listener(self, fn: Listener) -> None:
        self._listeners.remove(fn)

    # dispatch
    # ---------------------------------------------------------------------
    def equation_for(self, level: str, name: str) -> Equation | None:
        return self._table.get(level, {}).get(name)

    def equations_at(self, level: str) -> list[Equation]:
        return list(self._table.get(level, {}).values())

    def _variable(self, agent: Agent, name: str, create: bool = False) -> Variable:
        var = agent.variables.get(name)
        if var is not None:
            return var
        eq = self.equation_for(agent.tag, name)
        if eq is None and not create:
            raise UnknownVariableError(
                f"no equation or value for '{name}' at level '{agent.tag}'"
            )
        var = Variable(agent=agent, name=name, equation=eq)
        agent.variables[name] = var
        return var

    def exists(self, agent: Agent, name: str) -> bool:
        return name in agent.variables or self.equation_for(agent.tag, name) is not None

    # reads
    # ---------------------------------------------------------------------
    def get(self, agent: Agent, name: str, lag: int = 0) -> float:
        """
        Value of *name* on *agent* at step ``t - lag``.

        Raises
        ------
        StaleReadError
            If ``lag > 0`` and that step holds no value, or ``lag < 0``.
        CircularDependencyError
            If the current-step value is requested while being computed.
        UnknownVariableError
            If the name has neither an equation nor a written value.
        """
        var = self._variable(agent, name)
        step = self.t - lag
        if lag < 0:
            raise StaleReadError(
                f"{var.label}: step {step} lies in the future (t={self.t})"
            )
        if lag > 0:
            if not var.is_computed(step):
                raise StaleReadError(
                    f"{var.label}: no value for step {step} (lag {lag} at t={self.t})"
                )
            return var.value_at(step)
        if not var.is_computed(step):
            if not agent.alive:
                raise StaleReadError(
                    f"{var.label}: agent destroyed before step {step} was computed"
                )
            self._evaluate(var)
        var.read_step = step
        return var.value_at(step)

    def get_param(self, agent: Agent, name: str) -> float:
        """Parameter lookup on *agent*, then up its ancestor chain."""
        for node in agent.ancestors():
            if name in node.params:
                return node.params[name]
        raise UnknownVariableError(
            f"no parameter '{name}' on {agent.label} or its ancestors"
        )

    def series(self, agent: Agent, name: str) -> Float1D:
        """Computed history of a variable (NaN at steps without a value)."""
        return self._variable(agent, name).history()

    # writes and evaluation
    # ---------------------------------------------------------------------
    def write(self, agent: Agent, name: str, value: float) -> None:
        """Force the current-step value of *name* and mark it computed."""
        var = self._variable(agent, name, create=True)
        if var.in_progress:
            raise CircularDependencyError(self._chain(var))
        if self.strict_writes and var.read_step == self.t:
            raise WriteAfterReadError(
                f"{var.label} written at t={self.t} after it was already read"
            )
        var.store(self.t, float(value))
        log.deep("t=%d write %s = %r", self.t, var.label, value)

    def recalc(self, agent: Agent, name: str) -> float:
        """Re-run the equation of *name* for the current step, bypassing the cache."""
        var = self._variable(agent, name)
        self._evaluate(var)
        var.read_step = self.t
        return var.value_at(self.t)

    def settle(self) -> None:
        """Make sure the root's settlement variable is computed for this step."""
        root = self.root
        if self.exists(root, self.settlement):
            self.get(root, self.settlement)

    def _chain(self, var: Variable) -> list[str]:
        labels = [v.label for v in self._stack]
        if var in self._stack:
            labels = labels[self._stack.index(var):]
        return labels + [var.label]

    def _evaluate(self, var: Variable) -> None:
        if var.in_progress:
            raise CircularDependencyError(self._chain(var))
        if var.equation is None:
            raise UnknownVariableError(
                f"{var.label} has no equation and was not written at t={self.t}"
            )
        ctx = EvalContext(self, var.agent, var.name)
        var.in_progress = True
        self._stack.append(var)
        try:
            value = float(var.equation.compute(ctx))
        finally:
            self._stack.pop()
            var.in_progress = False
        var.store(self.t, value)
        self.evaluations += 1
        if log.isEnabledFor(DEEP_DEBUG):
            log.deep("t=%d eval %s = %r", self.t, var.label, value)
        for fn in self._listeners:
            fn(var.agent, var.name, self.t, value)

    # step protocol
    # ---------------------------------------------------------------------
    def sweep(self) -> int:
        """Evaluate every pending ``auto`` equation on every live agent."""
        visited = 0
        for agent in self.population.walk(self.root):
            visited += 1
            for eq in self.equations_at(agent.tag):
                if not eq.auto or not agent.alive:
                    continue
                var = agent.variables.get(eq.name)
                if var is None or not var.is_computed(self.t):
                    self.get(agent, eq.name)
        return visited

    def step(self) -> None:
        """Open the next step, sweep the tree and close the step."""
        self.t += 1
        before = self.evaluations
        visited = self.sweep()
        log.debug(
            "t=%d closed: %d agents, %d evaluations",
            self.t, visited, self.evaluations - before,
        )
