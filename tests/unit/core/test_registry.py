"""Tests for the equation registry."""

import pytest

from ksengine.core.formula import Equation
from ksengine.core.registry import (
    get_equation,
    list_equations,
    list_levels,
    resolve_equations,
)


def test_subclass_registers_under_level_and_name(clean_registry):
    class Output(Equation, name="Q", level="Unit"):
        def compute(self, ctx):
            return 1.0

    assert get_equation("Unit", "Q") is Output
    assert list_levels() == ["Unit"]
    assert list_equations("Unit") == ["Q"]
    assert list_equations() == ["Unit.Q"]


def test_name_defaults_to_class_name(clean_registry):
    class Price(Equation, level="Unit"):
        def compute(self, ctx):
            return 1.0

    assert Price.name == "Price"
    assert get_equation("Unit", "Price") is Price


def test_abstract_base_without_level_is_not_registered(clean_registry):
    class Base(Equation):
        def compute(self, ctx):
            return 0.0

    assert Base.name == ""
    assert list_levels() == []


def test_same_name_on_two_levels_is_allowed(clean_registry):
    class UnitSales(Equation, name="S", level="Unit"):
        def compute(self, ctx):
            return 1.0

    class SectorSales(Equation, name="S", level="Sector"):
        def compute(self, ctx):
            return 2.0

    assert get_equation("Unit", "S") is UnitSales
    assert get_equation("Sector", "S") is SectorSales


def test_conflicting_definition_raises(clean_registry):
    class First(Equation, name="S", level="Unit"):
        def compute(self, ctx):
            return 1.0

    with pytest.raises(ValueError, match="already defined"):

        class Second(Equation, name="S", level="Unit"):
            def compute(self, ctx):
                return 2.0


def test_missing_equation_lists_available(clean_registry):
    class Output(Equation, name="Q", level="Unit"):
        def compute(self, ctx):
            return 1.0

    with pytest.raises(KeyError, match="Available equations: Q"):
        get_equation("Unit", "missing")


def test_resolve_keeps_registration_order(clean_registry):
    for var in ("z", "a", "m"):
        type(
            f"Eq_{var}",
            (Equation,),
            {"compute": lambda self, ctx: 0.0},
            name=var,
            level="Unit",
        )

    table = resolve_equations()
    assert list(table["Unit"]) == ["z", "a", "m"]
    assert all(isinstance(eq, Equation) for eq in table["Unit"].values())


def test_model_equations_are_registered():
    assert "entryExit" in list_equations("Country")
    assert "testSFC" in list_equations("Stats")
    assert "S2" in list_equations("Firm2")
    assert "S2" in list_equations("Consumer")
