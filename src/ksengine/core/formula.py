"""Equation base class definition."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from ksengine.core.context import EvalContext


@dataclass(slots=True)
class Equation(ABC):
    """
    Base class for the formula computing one variable at one level.

    An Equation is looked up by ``(level, name)``: ``level`` is the type tag
    of the agents the variable lives on and ``name`` the variable name. The
    engine runs :meth:`compute` at most once per agent and step, on the
    first read.

    Design Guidelines
    -----------------
    - Read inputs only through the :class:`EvalContext`
    - Return the value for the current step
    - Extra outputs go through ``ctx.write``
    - Call ``ctx.settle()`` before reading stocks changed by entry and exit

    Notes
    -----
    Subclasses with a non-empty ``level`` register automatically via
    ``__init_subclass__``. Abstract intermediate bases (no level) are not
    registered. ``auto`` equations are evaluated for every live agent by the
    end-of-step sweep even if nothing reads them.

    Examples
    --------
    >>> class Sales(Equation, name="S2", level="Firm2"):
    ...     def compute(self, ctx):
    ...         return ctx.v("f2") * ctx.vs(ctx.parent, "D2")
    """

    name: ClassVar[str] = ""
    level: ClassVar[str] = ""
    auto: ClassVar[bool] = True

    def __init_subclass__(
        cls, name: str = "", level: str = "", auto: bool | None = None, **kwargs: Any
    ) -> None:
        """
        Auto-register Equation subclasses in the global registry.

        Parameters
        ----------
        name : str, optional
            Variable name. Defaults to the inherited name, then the class
            name.
        level : str, optional
            Agent type tag. Without one the class is not registered.
        auto : bool, optional
            Whether the end-of-step sweep evaluates this equation.
        **kwargs
            Additional keyword arguments passed to parent __init_subclass__.
        """
        super(Equation, cls).__init_subclass__(**kwargs)

        if name != "":
            cls.name = name
        if level != "":
            cls.level = level
        if auto is not None:
            cls.auto = auto

        if cls.level:
            if cls.name == "":
                cls.name = cls.__name__

            from ksengine.core.registry import register_equation

            register_equation(cls)

    def get_logger(self) -> logging.Logger:
        """Logger named ``ksengine.equations.{level}.{name}``."""
        return logging.getLogger(f"ksengine.equations.{self.level}.{self.name}")

    @abstractmethod
    def compute(self, ctx: EvalContext) -> float:
        """
        Compute the variable's value for the current step.

        Parameters
        ----------
        ctx : EvalContext
            Evaluation context bound to the owning agent.

        Returns
        -------
        float
            The value stored for ``ctx.t``.
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(level={self.level!r}, name={self.name!r})"
