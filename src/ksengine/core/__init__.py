"""Core equation-engine infrastructure for ksengine."""

from ksengine.core.agent import Agent, Hook
from ksengine.core.context import EvalContext
from ksengine.core.decorators import equation
from ksengine.core.engine import Engine, make_rng
from ksengine.core.formula import Equation
from ksengine.core.population import Population
from ksengine.core.registry import (
    clear_registry,
    get_equation,
    list_equations,
    list_levels,
)
from ksengine.core.variable import Variable

__all__ = [
    "Agent",
    "Engine",
    "Equation",
    "EvalContext",
    "Hook",
    "Population",
    "Variable",
    "clear_registry",
    "equation",
    "get_equation",
    "list_equations",
    "list_levels",
    "make_rng",
]
