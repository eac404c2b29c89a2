# src/ksengine/core/decorators.py
"""
Decorator for concise equation definitions.

Instead of:
    from ksengine.core.formula import Equation

    class Sales(Equation, name="S2", level="Firm2"):
        def compute(self, ctx):
            return ctx.v("f2") * ctx.vs(ctx.parent, "D2")

You can write:
    from ksengine import equation

    @equation("S2", level="Firm2")
    def sales(ctx):
        return ctx.v("f2") * ctx.vs(ctx.parent, "D2")

The decorator handles:
- Wrapping a plain function into an Equation subclass
- Making a plain class with ``compute`` inherit from Equation
- Registration under ``(level, name)`` via Equation.__init_subclass__
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, TypeVar

T = TypeVar("T")


def equation(
    obj: Any = None,
    *,
    level: str,
    name: str | None = None,
    auto: bool = True,
) -> Any:
    """Register a function or class as the equation of a variable.

    Parameters
    ----------
    obj : callable or str, optional
        The decorated function/class, or the variable name when used as
        ``@equation("S2", level=...)``.
    level : str
        Agent type tag the variable lives on.
    name : str, optional
        Variable name. Defaults to the function or class name.
    auto : bool
        Whether the end-of-step sweep evaluates the variable for every
        live agent of the level.

    Returns
    -------
    callable
        Functions are returned unchanged (the generated class is attached
        as ``func.equation``); classes are returned as the registered
        Equation subclass.

    Examples
    --------
    >>> @equation("G", level="Country")
    ... def government_spending(ctx):
    ...     return ctx.v("G", 1) * (1 + ctx.param("gG"))
    """
    from ksengine.core.formula import Equation

    if isinstance(obj, str):
        name, obj = obj, None

    def decorator(target: Any) -> Any:
        var_name = name or target.__name__
        if inspect.isclass(target):
            if issubclass(target, Equation):
                namespace: dict[str, Any] = {"__module__": target.__module__}
                bases: tuple[type, ...] = (target,)
            else:
                namespace = {
                    attr: getattr(target, attr)
                    for attr in dir(target)
                    if not attr.startswith("__")
                }
                namespace["__module__"] = target.__module__
                bases = (Equation,)
            namespace["__qualname__"] = target.__qualname__
            namespace["__doc__"] = target.__doc__
            return type(
                target.__name__, bases, namespace, name=var_name, level=level, auto=auto
            )

        func: Callable[..., float] = target

        def compute(self: Any, ctx: Any) -> float:
            return func(ctx)

        cls = type(
            f"{func.__name__}_equation",
            (Equation,),
            {
                "compute": compute,
                "__module__": func.__module__,
                "__qualname__": func.__qualname__,
                "__doc__": func.__doc__,
            },
            name=var_name,
            level=level,
            auto=auto,
        )
        func.equation = cls  # type: ignore[attr-defined]
        return func

    if obj is None:
        return decorator
    return decorator(obj)
