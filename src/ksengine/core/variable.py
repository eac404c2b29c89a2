"""Per-agent variable time series with memoisation state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

from ksengine.typing import Bool1D, Float1D

if TYPE_CHECKING:
    from ksengine.core.agent import Agent
    from ksengine.core.formula import Equation

_INITIAL_CAPACITY = 16


def _empty_values() -> Float1D:
    return np.full(_INITIAL_CAPACITY, np.nan, dtype=np.float64)


def _empty_mask() -> Bool1D:
    return np.zeros(_INITIAL_CAPACITY, dtype=np.bool_)


@dataclass(slots=True, eq=False)
class Variable:
    """
    Time series of one ``(agent, name)`` pair.

    Values are stored densely by absolute step; ``computed`` marks which
    steps hold a final value. Storage grows by doubling.

    Attributes
    ----------
    equation : Equation or None
        Bound on first use from the engine's dispatch table. ``None`` for
        variables that are only ever written.
    last_computed : int
        Most recent step holding a value, ``-1`` if none.
    in_progress : bool
        True while the bound equation is running.
    read_step : int
        Last step at which the current value was handed to a reader.
    """

    agent: Agent
    name: str
    equation: Equation | None = None
    values: Float1D = field(default_factory=_empty_values)
    computed: Bool1D = field(default_factory=_empty_mask)
    last_computed: int = -1
    in_progress: bool = False
    read_step: int = -1

    @property
    def label(self) -> str:
        return f"{self.agent.label}.{self.name}"

    def _reserve(self, step: int) -> None:
        size = self.values.shape[0]
        if step < size:
            return
        new_size = max(step + 1, 2 * size)
        values = np.full(new_size, np.nan, dtype=np.float64)
        values[:size] = self.values
        mask = np.zeros(new_size, dtype=np.bool_)
        mask[:size] = self.computed
        self.values, self.computed = values, mask

    def is_computed(self, step: int) -> bool:
        return 0 <= step < self.computed.shape[0] and bool(self.computed[step])

    def value_at(self, step: int) -> float:
        return float(self.values[step])

    def store(self, step: int, value: float) -> None:
        self._reserve(step)
        self.values[step] = value
        self.computed[step] = True
        if step > self.last_computed:
            self.last_computed = step

    def history(self) -> Float1D:
        """Read-only view of steps ``0 .. last_computed`` (NaN where missing)."""
        view = self.values[: self.last_computed + 1].view()
        view.flags.writeable = False
        return view
