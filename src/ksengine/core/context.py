"""Evaluation context handed to equations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, Mapping

from ksengine.logging import KsLogger, getLogger

if TYPE_CHECKING:
    from numpy.random import Generator

    from ksengine.core.agent import Agent
    from ksengine.core.engine import Engine
    from ksengine.verification.verifier import Verifier


@dataclass(slots=True)
class EvalContext:
    """
    View of the model from one ``(agent, name)`` evaluation.

    Most accessors default to the context's own agent; pass ``agent=`` to
    act on another one. Reads go through the engine and may evaluate other
    variables recursively.
    """

    engine: Engine
    agent: Agent
    name: str

    @property
    def t(self) -> int:
        return self.engine.t

    @property
    def rng(self) -> Generator:
        return self.engine.rng

    @property
    def root(self) -> Agent:
        return self.engine.root

    @property
    def parent(self) -> Agent:
        if self.agent.parent is None:
            raise LookupError(f"{self.agent.label} has no parent")
        return self.agent.parent

    @property
    def verifier(self) -> Verifier:
        if self.engine.verifier is None:
            raise RuntimeError("engine was built without a verifier")
        return self.engine.verifier

    @property
    def log(self) -> KsLogger:
        return getLogger(f"ksengine.equations.{self.agent.tag}.{self.name}")

    # reads and writes
    def v(self, name: str, lag: int = 0) -> float:
        return self.engine.get(self.agent, name, lag)

    def vs(self, agent: Agent, name: str, lag: int = 0) -> float:
        return self.engine.get(agent, name, lag)

    def write(self, name: str, value: float, agent: Agent | None = None) -> None:
        self.engine.write(agent or self.agent, name, value)

    def param(self, name: str, agent: Agent | None = None) -> float:
        return self.engine.get_param(agent or self.agent, name)

    def exists(self, name: str, agent: Agent | None = None) -> bool:
        return self.engine.exists(agent or self.agent, name)

    def settle(self) -> None:
        self.engine.settle()

    def recalc(self, name: str, agent: Agent | None = None) -> float:
        return self.engine.recalc(agent or self.agent, name)

    # structure
    def hook(self, name: str, agent: Agent | None = None) -> Agent | None:
        return self.engine.population.hook(agent or self.agent, name)

    def set_hook(
        self, name: str, target: Agent | None, agent: Agent | None = None
    ) -> None:
        self.engine.population.set_hook(agent or self.agent, name, target)

    def children(
        self, tag: str, agent: Agent | None = None, safe: bool = False
    ) -> Iterator[Agent]:
        return self.engine.population.children(agent or self.agent, tag, safe)

    def count(self, tag: str, agent: Agent | None = None) -> int:
        return self.engine.population.count_children(agent or self.agent, tag)

    def sum(self, tag: str, name: str, lag: int = 0, agent: Agent | None = None) -> float:
        return self.engine.population.sum_field(agent or self.agent, tag, name, lag)

    def wavg(
        self, tag: str, value: str, weight: str, lag: int = 0,
        agent: Agent | None = None,
    ) -> float:
        return self.engine.population.weighted_average(
            agent or self.agent, tag, value, weight, lag
        )

    def sector(self, tag: str) -> Agent:
        """First agent of type *tag* below the root."""
        return self.engine.population.find(self.engine.root, tag)

    def create(
        self,
        parent: Agent,
        tag: str,
        params: Mapping[str, float] | None = None,
        initial: Mapping[str, float] | None = None,
    ) -> Agent:
        return self.engine.population.create_child(parent, tag, params, initial)

    def destroy(self, agent: Agent) -> None:
        self.engine.population.destroy(agent)
