"""
Exception hierarchy for ksengine.

Every error raised by the engine derives from :class:`KsEngineError`.
All of them are fatal: they propagate out of ``Simulation.step`` and abort
the run. Non-fatal consistency findings are *records*, not exceptions; see
:mod:`ksengine.verification.report`.
"""

from __future__ import annotations

from typing import Sequence


class KsEngineError(Exception):
    """Base class for all ksengine errors."""


class CircularDependencyError(KsEngineError):
    """
    Same-step re-entrant evaluation of a variable.

    Parameters
    ----------
    chain : sequence of str
        Evaluation chain, outermost first, ending with the variable that
        was requested again.
    """

    def __init__(self, chain: Sequence[str]) -> None:
        self.chain = list(chain)
        super().__init__("circular dependency: " + " -> ".join(self.chain))


class StaleReadError(KsEngineError):
    """Lagged read of a step that was never computed (or lies in the future)."""


class WriteAfterReadError(KsEngineError):
    """Write to a variable slot that was already read in the current step."""


class DanglingHookError(KsEngineError):
    """A hook was read after the agent it points at was destroyed."""


class UnknownVariableError(KsEngineError, KeyError):
    """No equation, written value or parameter exists for a name."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


__all__ = [
    "KsEngineError",
    "CircularDependencyError",
    "StaleReadError",
    "WriteAfterReadError",
    "DanglingHookError",
    "UnknownVariableError",
]
