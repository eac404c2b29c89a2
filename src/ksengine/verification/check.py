"""
Windowed consistency-check equations.

A check is an equation whose value is its per-call error count. Each check
follows a state machine driven by two agent parameters,
``<name>_start`` and ``<name>_end``:

- Idle: ``end == 0`` (disabled), ``t < start`` or ``t > end``. Returns 0
  without reading anything.
- Active: ``start <= t < end``. Runs :meth:`ConsistencyCheck.inspect` with a
  fresh :class:`Report` and folds the call's count into the running total.
- Finalizing: ``t == end``, exactly once. Computes log growth of the
  tracked series, runs the growth predicates, logs the summary and closes
  the CSV sink.

Runs that stop before ``end`` are finalized by ``Verifier.finish``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, ClassVar, Iterable

from ksengine.core.formula import Equation
from ksengine.errors import UnknownVariableError
from ksengine.helpers import log_growth
from ksengine.verification.report import Report, StructuralInconsistency
from ksengine.verification.sink import CsvSink
from ksengine.verification.verifier import CheckState, Phase

if TYPE_CHECKING:
    from ksengine.core.agent import Agent
    from ksengine.core.context import EvalContext


class ConsistencyCheck(Equation):
    """
    Base class for consistency-check equations.

    Subclasses implement :meth:`inspect`; they may override :meth:`track`
    and :meth:`assess_growth` to take part in end-of-window growth checks,
    and set ``csv_file``/``csv_header`` to get a CSV sink for the window.

    Attributes
    ----------
    title : str
        Name used in the start/finish banners.
    banner : str
        Marker prefixed to banner lines.
    growth_offsets : dict
        Tracked series name -> offset added before taking logs.
    """

    title: ClassVar[str] = ""
    banner: ClassVar[str] = "@@@"
    csv_file: ClassVar[str | None] = None
    csv_header: ClassVar[tuple[str, ...]] = ()
    growth_offsets: ClassVar[dict[str, float]] = {}

    def get_logger(self) -> logging.Logger:
        """Logger named ``ksengine.checks.{name}``."""
        return logging.getLogger(f"ksengine.checks.{self.name}")

    # window
    # ---------------------------------------------------------------------
    def window(self, ctx: EvalContext) -> tuple[int, int]:
        """``(start, end)`` from the agent's parameters; ``(0, 0)`` if unset."""
        try:
            start = int(ctx.param(f"{self.name}_start"))
            end = int(ctx.param(f"{self.name}_end"))
        except UnknownVariableError:
            return 0, 0
        return start, end

    @staticmethod
    def phase_at(t: int, start: int, end: int) -> Phase:
        if end <= 0 or t < start or t > end:
            return Phase.IDLE
        if t < end:
            return Phase.ACTIVE
        return Phase.FINALIZING

    # equation entry point
    # ---------------------------------------------------------------------
    def compute(self, ctx: EvalContext) -> float:
        state = ctx.verifier.state(self.name)
        start, end = self.window(ctx)
        phase = self.phase_at(ctx.t, start, end)

        if phase is Phase.IDLE:
            return 0.0

        if phase is Phase.FINALIZING:
            if not state.finalized:
                if not state.started:
                    self.begin(ctx, state)
                self.finalize(ctx, state, at=ctx.t)
            return float(state.growth_errors)

        if not state.started:
            self.begin(ctx, state)
        state.phase = Phase.ACTIVE
        report = Report(self.name, ctx.t)
        self.inspect(ctx, report, state)
        state.fold(ctx.t, report.errors)
        state.latest = self.track(ctx)
        state.findings = list(report.findings)
        self._log_findings(report)
        return self.result(report)

    def begin(self, ctx: EvalContext, state: CheckState) -> None:
        """Enter the active window: record initial values, open the sink."""
        log = self.get_logger()
        state.phase = Phase.ACTIVE
        state.started_at = ctx.t
        state.check = self
        state.agent = ctx.agent
        state.initial = self.track(ctx)
        if self.csv_file:
            state.sink = CsvSink(
                ctx.verifier.output_dir / self.csv_file, self.csv_header
            ).open()
        log.info("%s TESTING OF %s STARTED", self.banner, self.title or self.name)

    def finalize(self, ctx: EvalContext, state: CheckState, at: int | None) -> int:
        """
        Close the window at step *at*.

        Growth is ``(ln(final + k) - ln(initial + k)) / (at - started_at)``
        for each tracked series. Returns the number of growth failures.
        """
        log = self.get_logger()
        state.phase = Phase.FINALIZING
        at = ctx.t if at is None else at
        if ctx.t == at:
            state.latest = self.track(ctx)
        periods = at - (state.started_at if state.started_at is not None else at)

        state.growth = {
            key: log_growth(
                state.latest[key], state.initial[key], periods, offset
            )
            for key, offset in self.growth_offsets.items()
            if key in state.latest and key in state.initial
        }
        report = Report(self.name, at)
        if periods > 0:
            self.assess_growth(ctx, state.growth, report)
        state.growth_errors = report.errors
        state.errors_total += report.errors
        state.findings = [f for f in state.findings if f.t == at]
        state.findings.extend(report.findings)
        self._log_findings(report)

        if state.sink is not None:
            state.sink.close()
        state.finalized_at = at
        state.phase = Phase.IDLE
        log.info(
            "%s TESTING OF %s FINISHED (%d)",
            self.banner, self.title or self.name, state.errors_total,
        )
        return report.errors

    # hooks for subclasses
    # ---------------------------------------------------------------------
    def inspect(self, ctx: EvalContext, report: Report, state: CheckState) -> None:
        """Pull variables and record findings into *report*."""
        raise NotImplementedError

    def track(self, ctx: EvalContext) -> dict[str, float]:
        """Current values of the series whose growth is assessed."""
        return {}

    def assess_growth(
        self, ctx: EvalContext, growth: dict[str, float], report: Report
    ) -> None:
        """Record growth-consistency failures into *report*."""

    def result(self, report: Report) -> float:
        """Equation value for an active call."""
        return float(report.errors)

    # helpers
    # ---------------------------------------------------------------------
    def selected(
        self, ctx: EvalContext, state: CheckState, candidates: Iterable[Agent]
    ) -> list[Agent]:
        """
        Agents covered by a per-agent check.

        With ``<name>_id_start == 0`` the first ``<name>_id_end`` agents
        created since the window opened are followed; otherwise agents with
        ids in ``[id_start, id_end]``. Without those parameters every
        candidate is selected.
        """
        try:
            id_start = int(ctx.param(f"{self.name}_id_start"))
            id_end = int(ctx.param(f"{self.name}_id_end"))
        except UnknownVariableError:
            return list(candidates)

        if id_start > 0:
            return [a for a in candidates if id_start <= a.id <= id_end]

        started = state.started_at if state.started_at is not None else ctx.t
        pool = list(candidates)
        for agent in pool:
            if len(state.entrants) >= id_end:
                break
            if agent.born >= started and agent.id not in state.entrants:
                state.entrants.append(agent.id)
        followed = set(state.entrants)
        return [a for a in pool if a.id in followed]

    def _log_findings(self, report: Report) -> None:
        log = self.get_logger()
        for finding in report.findings:
            if isinstance(finding, StructuralInconsistency):
                log.warning("%s", finding)
            else:
                log.info("%s", finding)
