"""Persistent consistency-check state for one run."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

from ksengine.logging import getLogger

if TYPE_CHECKING:
    from ksengine.core.agent import Agent
    from ksengine.core.engine import Engine
    from ksengine.verification.check import ConsistencyCheck
    from ksengine.verification.report import Finding
    from ksengine.verification.sink import CsvSink

log = getLogger(__name__)


class Phase(Enum):
    """Window phase of a consistency check."""

    IDLE = auto()
    ACTIVE = auto()
    FINALIZING = auto()


@dataclass(slots=True)
class CheckState:
    """
    Running state of one check across the whole run.

    Never reset within a run. ``step_errors`` is the contribution of
    ``last_step`` to ``errors_total``; a repeated call in the same step
    replaces it instead of adding to it. ``findings`` holds the records of
    the latest evaluated step only, plus growth findings once finalized;
    earlier steps survive as counts.
    """

    name: str
    phase: Phase = Phase.IDLE
    errors_total: int = 0
    calls: int = 0
    started_at: int | None = None
    finalized_at: int | None = None
    last_step: int | None = None
    step_errors: int = 0
    growth_errors: int = 0
    initial: dict[str, float] = field(default_factory=dict)
    latest: dict[str, float] = field(default_factory=dict)
    growth: dict[str, float] = field(default_factory=dict)
    entrants: list[int] = field(default_factory=list)
    findings: list[Finding] = field(default_factory=list)
    sink: CsvSink | None = None
    check: ConsistencyCheck | None = None
    agent: Agent | None = None

    @property
    def started(self) -> bool:
        return self.started_at is not None

    @property
    def finalized(self) -> bool:
        return self.finalized_at is not None

    def fold(self, t: int, errors: int) -> None:
        """Account *errors* as step *t*'s contribution to the total."""
        if self.last_step == t:
            self.errors_total -= self.step_errors
        self.errors_total += errors
        self.step_errors = errors
        self.last_step = t
        self.calls += 1


class Verifier:
    """
    Owner of every :class:`CheckState` of a run.

    Parameters
    ----------
    tolerance : float
        General relative tolerance used by domain predicates.
    sfc_threshold : float
        Residuals below this are rounded to exactly zero by SFC checks.
    output_dir : str or Path
        Directory for CSV dumps.
    """

    def __init__(
        self,
        tolerance: float = 0.1,
        sfc_threshold: float = 1e-4,
        output_dir: str | Path = ".",
    ) -> None:
        self.tolerance = tolerance
        self.sfc_threshold = sfc_threshold
        self.output_dir = Path(output_dir)
        self._states: dict[str, CheckState] = {}

    def state(self, name: str) -> CheckState:
        """State of check *name*, created on first access."""
        if name not in self._states:
            self._states[name] = CheckState(name=name)
        return self._states[name]

    def __iter__(self) -> Iterator[CheckState]:
        return iter(self._states.values())

    def __contains__(self, name: object) -> bool:
        return name in self._states

    def total_errors(self) -> int:
        return sum(s.errors_total for s in self._states.values())

    def summary(self) -> dict[str, int]:
        return {name: s.errors_total for name, s in self._states.items()}

    def finish(self, engine: Engine) -> int:
        """
        Finalize every check still open at the end of a run.

        Checks whose window end was never reached are finalized using their
        last evaluated step. Returns the number of checks finalized.
        """
        from ksengine.core.context import EvalContext

        done = 0
        for state in self._states.values():
            if not state.started or state.finalized or state.check is None:
                continue
            if state.agent is None:
                raise RuntimeError(f"check {state.name!r} started without an agent")
            ctx = EvalContext(engine, state.agent, state.name)
            state.check.finalize(ctx, state, at=state.last_step)
            done += 1
        if done:
            log.debug("finalized %d open check(s) at run end", done)
        return done

    def close(self) -> None:
        """Close any CSV sink left open."""
        for state in self._states.values():
            if state.sink is not None:
                state.sink.close()
