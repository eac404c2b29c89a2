"""Registry of equations keyed by (level, name)."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ksengine.core.formula import Equation

# level (agent type tag) -> variable name -> equation class
_EQUATION_REGISTRY: dict[str, dict[str, type[Equation]]] = {}


def register_equation(cls: type[Equation]) -> None:
    """
    Add an equation class to the registry.

    Re-registering the same class (same module and qualified name) replaces
    the entry, so module reloads are harmless.

    Raises
    ------
    ValueError
        If a different class already defines the name at that level.
    """
    level = _EQUATION_REGISTRY.setdefault(cls.level, {})
    existing = level.get(cls.name)
    if existing is not None and (
        existing.__module__ != cls.__module__
        or existing.__qualname__ != cls.__qualname__
    ):
        raise ValueError(
            f"Equation '{cls.name}' already defined at level '{cls.level}' "
            f"by {existing.__module__}.{existing.__qualname__}"
        )
    level[cls.name] = cls


def get_equation(level: str, name: str) -> type[Equation]:
    """
    Retrieve an equation class from the registry.

    Parameters
    ----------
    level : str
        Agent type tag the equation is defined for.
    name : str
        Variable name.

    Returns
    -------
    type[Equation]
        The registered equation class.

    Raises
    ------
    KeyError
        If nothing is registered under ``(level, name)``.
    """
    table = _EQUATION_REGISTRY.get(level, {})
    if name not in table:
        available = ", ".join(sorted(table.keys())) or "<none>"
        raise KeyError(
            f"Equation '{name}' not found at level '{level}'. "
            f"Available equations: {available}"
        )
    return table[name]


def list_levels() -> list[str]:
    """Return sorted list of levels having at least one equation."""
    return sorted(level for level, table in _EQUATION_REGISTRY.items() if table)


def list_equations(level: str | None = None) -> list[str]:
    """
    Return sorted equation names.

    With *level* given, names registered at that level; otherwise
    ``"level.name"`` strings for the whole registry.
    """
    if level is not None:
        return sorted(_EQUATION_REGISTRY.get(level, {}).keys())
    return sorted(
        f"{lvl}.{name}"
        for lvl, table in _EQUATION_REGISTRY.items()
        for name in table
    )


def resolve_equations() -> dict[str, dict[str, Equation]]:
    """
    Build the dispatch table used by one engine.

    Each registered class is instantiated once; registration order is kept
    within a level, which fixes the order of the per-step sweep.
    """
    return {
        level: {name: cls() for name, cls in table.items()}
        for level, table in _EQUATION_REGISTRY.items()
    }


def clear_registry() -> None:
    """
    Clear all registered equations.

    Warning: This is primarily for testing. Use with caution.
    """
    _EQUATION_REGISTRY.clear()
