"""
Population manager: creation, destruction and traversal of the agent tree.

The manager owns id allocation (one counter per type tag, ids never reused
within a run) and the child-collection primitives equations use to
aggregate over agents. Aggregates read through the engine, so iterating
over children may trigger lazy evaluation of their variables.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING, Iterator, Mapping

import numpy as np

from ksengine.core.agent import Agent, Hook
from ksengine.helpers import weighted_mean
from ksengine.logging import getLogger

if TYPE_CHECKING:
    from ksengine.core.engine import Engine

log = getLogger(__name__)


class Population:
    """Agent tree bookkeeping bound to one :class:`Engine`."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.root: Agent | None = None
        self._next_id: dict[str, int] = {}

    # ids
    # ---------------------------------------------------------------------
    def _allocate(self, tag: str) -> int:
        next_id = self._next_id.get(tag, 1)
        self._next_id[tag] = next_id + 1
        return next_id

    def issued(self, tag: str) -> int:
        """Number of ids handed out so far for *tag*."""
        return self._next_id.get(tag, 1) - 1

    # lifecycle
    # ---------------------------------------------------------------------
    def create_root(
        self, tag: str, params: Mapping[str, float] | None = None
    ) -> Agent:
        if self.root is not None:
            raise ValueError(f"population already has root {self.root.label}")
        self.root = Agent(
            tag=tag, id=self._allocate(tag), params=dict(params or {}),
            born=self.engine.t,
        )
        return self.root

    def create_child(
        self,
        parent: Agent,
        tag: str,
        params: Mapping[str, float] | None = None,
        initial: Mapping[str, float] | None = None,
    ) -> Agent:
        """
        Append a new agent to *parent*'s ``tag`` collection.

        Parameters
        ----------
        parent : Agent
            Owning agent; must be alive.
        tag : str
            Type tag of the new agent.
        params : mapping, optional
            Scalar parameters of the new agent.
        initial : mapping, optional
            Values written for the current step.

        Returns
        -------
        Agent
            The new agent, with a fresh id for its tag.
        """
        if not parent.alive:
            raise ValueError(f"cannot add child to destroyed agent {parent.label}")
        child = Agent(
            tag=tag,
            id=self._allocate(tag),
            parent=parent,
            params=dict(params or {}),
            born=self.engine.t,
        )
        parent.children.setdefault(tag, []).append(child)
        parent.revision += 1
        for name, value in (initial or {}).items():
            self.engine.write(child, name, value)
        log.debug("t=%d created %s under %s", self.engine.t, child.label, parent.label)
        return child

    def destroy(self, agent: Agent) -> None:
        """
        Unlink *agent* from its parent and destroy it with all descendants.

        Hooks pointing at destroyed agents are left in place; use
        :meth:`clear_hooks_to` first if they must be nulled. Later reads of a
        stale hook raise ``DanglingHookError``.
        """
        if agent.parent is None:
            raise ValueError("the root agent cannot be destroyed")
        if not agent.alive:
            return
        siblings = agent.parent.children[agent.tag]
        siblings.remove(agent)
        agent.parent.revision += 1
        self._kill(agent)
        log.debug("t=%d destroyed %s", self.engine.t, agent.label)

    def _kill(self, agent: Agent) -> None:
        agent.alive = False
        for group in agent.children.values():
            for child in group:
                self._kill(child)

    # iteration and aggregation
    # ---------------------------------------------------------------------
    def children(
        self, agent: Agent, tag: str, safe: bool = False
    ) -> Iterator[Agent]:
        """
        Iterate *agent*'s ``tag`` children in insertion order.

        Plain iteration raises ``RuntimeError`` if the collection changes
        before the iteration ends. With ``safe=True`` a snapshot is iterated
        and agents destroyed meanwhile are skipped.
        """
        group = agent.children.get(tag, [])
        if safe:
            for child in list(group):
                if child.alive:
                    yield child
            return
        revision = agent.revision
        for child in group:
            yield child
            if agent.revision != revision:
                raise RuntimeError(
                    f"'{tag}' children of {agent.label} changed during iteration"
                )

    def count_children(self, agent: Agent, tag: str) -> int:
        return len(agent.children.get(tag, ()))

    def sum_field(self, agent: Agent, tag: str, name: str, lag: int = 0) -> float:
        """Sum of *name* over *agent*'s ``tag`` children."""
        total = 0.0
        for child in self.children(agent, tag):
            total += self.engine.get(child, name, lag)
        return total

    def weighted_average(
        self, agent: Agent, tag: str, value: str, weight: str, lag: int = 0
    ) -> float:
        """Average of *value* over ``tag`` children weighted by *weight*."""
        pairs = [
            (self.engine.get(c, value, lag), self.engine.get(c, weight, lag))
            for c in self.children(agent, tag)
        ]
        if not pairs:
            return float("nan")
        values, weights = np.array(pairs, dtype=np.float64).T
        return weighted_mean(values, weights)

    def walk(self, agent: Agent) -> Iterator[Agent]:
        """
        Depth-first, insertion-ordered traversal of live agents.

        Each child collection is snapshotted when the traversal reaches it,
        so agents created while the parent is being visited are included and
        agents destroyed before they are reached are skipped.
        """
        if not agent.alive:
            return
        yield agent
        for tag in list(agent.children):
            for child in list(agent.children.get(tag, ())):
                if child.alive:
                    yield from self.walk(child)

    def find(self, agent: Agent, tag: str) -> Agent:
        """First live descendant of *agent* with type *tag* (breadth-first)."""
        queue = deque([agent])
        while queue:
            node = queue.popleft()
            for group_tag, group in node.children.items():
                for child in group:
                    if group_tag == tag and child.alive:
                        return child
                    queue.append(child)
        raise LookupError(f"no '{tag}' agent below {agent.label}")

    # hooks
    # ---------------------------------------------------------------------
    def set_hook(self, agent: Agent, name: str, target: Agent | None) -> None:
        if target is not None and not target.alive:
            raise ValueError(f"cannot hook {agent.label} to destroyed {target.label}")
        agent.hooks[name] = Hook(owner=agent, name=name, target=target)

    def hook(self, agent: Agent, name: str) -> Agent | None:
        """Resolve a hook; ``None`` if unset, ``DanglingHookError`` if stale."""
        entry = agent.hooks.get(name)
        if entry is None:
            return None
        return entry.resolve()

    def clear_hook(self, agent: Agent, name: str) -> None:
        entry = agent.hooks.get(name)
        if entry is not None:
            entry.target = None

    def hooks_to(
        self, target: Agent, scope: Agent | None = None
    ) -> list[tuple[Agent, str]]:
        """All ``(agent, hook name)`` pairs below *scope* pointing at *target*."""
        start = scope if scope is not None else self.root
        if start is None:
            return []
        found = []
        for agent in self.walk(start):
            for name, entry in agent.hooks.items():
                if entry.target is target:
                    found.append((agent, name))
        return found

    def clear_hooks_to(self, target: Agent, scope: Agent | None = None) -> int:
        """Null every hook below *scope* pointing at *target*; return the count."""
        pairs = self.hooks_to(target, scope)
        for agent, name in pairs:
            agent.hooks[name].target = None
        return len(pairs)
