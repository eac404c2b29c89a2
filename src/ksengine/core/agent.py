"""Agent node and hook definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ksengine.errors import DanglingHookError

if TYPE_CHECKING:
    from ksengine.core.variable import Variable


@dataclass(slots=True, eq=False)
class Agent:
    """
    One node of the model tree.

    Every agent except the root has exactly one owning parent. Children are
    kept in insertion-ordered lists grouped by type tag; variables hold the
    agent's time series; hooks are non-owning references to other agents.

    Parameters
    ----------
    tag : str
        Type tag (``"Firm2"``, ``"Bank"``, ...). Equations are registered per
        tag.
    id : int
        Identifier, unique among agents sharing the tag over a whole run.
    parent : Agent, optional
        Owning parent, ``None`` for the root.
    params : dict
        Scalar parameters, looked up through the ancestor chain.
    born : int
        Step at which the agent was created.

    Notes
    -----
    Agents compare by identity. ``alive`` turns False once the agent is
    destroyed; it never comes back.

    Examples
    --------
    >>> root = Agent(tag="Country", id=1)
    >>> root.label
    'Country[1]'
    """

    tag: str
    id: int
    parent: Agent | None = None
    params: dict[str, float] = field(default_factory=dict)
    born: int = 0
    alive: bool = True
    children: dict[str, list[Agent]] = field(default_factory=dict)
    hooks: dict[str, Hook] = field(default_factory=dict)
    variables: dict[str, Variable] = field(default_factory=dict)
    revision: int = 0

    def __post_init__(self) -> None:
        if self.id < 1:
            raise ValueError(f"Agent ID must be positive, got {self.id}")

    @property
    def label(self) -> str:
        return f"{self.tag}[{self.id}]"

    @property
    def path(self) -> str:
        """Slash-separated labels from the root down to this agent."""
        parts = []
        node: Agent | None = self
        while node is not None:
            parts.append(node.label)
            node = node.parent
        return "/".join(reversed(parts))

    def ancestors(self) -> list[Agent]:
        """Return this agent followed by its parent chain up to the root."""
        chain = []
        node: Agent | None = self
        while node is not None:
            chain.append(node)
            node = node.parent
        return chain

    def __repr__(self) -> str:
        state = "" if self.alive else ", dead"
        return f"Agent({self.label}{state})"


@dataclass(slots=True, eq=False)
class Hook:
    """
    Named, non-owning reference from one agent to another.

    Reading a hook whose target has been destroyed raises
    :class:`~ksengine.errors.DanglingHookError` instead of returning a stale
    agent.
    """

    owner: Agent
    name: str
    target: Agent | None = None

    def resolve(self) -> Agent | None:
        if self.target is None:
            return None
        if not self.target.alive:
            raise DanglingHookError(
                f"hook '{self.name}' of {self.owner.label} points at destroyed "
                f"agent {self.target.label}"
            )
        return self.target
