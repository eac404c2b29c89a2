"""
Configuration dataclass for simulation parameters.

Config instances are created by Simulation.init() after merging the package
defaults, user configuration and keyword overrides, and after validation by
ConfigValidator.

Design Notes
------------
- Immutable (frozen=True) to prevent accidental modification
- Memory-efficient (slots=True)
- No methods; validation happens in ConfigValidator

See Also
--------
ConfigValidator : Centralized validation for configuration parameters
ksengine.simulation.Simulation.init : Creates Config from merged parameters
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True, frozen=True)
class Config:
    """
    Immutable configuration of one simulation run.

    Parameters
    ----------
    n_firms : int
        Number of consumption-good firms (kept constant by entry).
    n_banks : int
        Number of banks.
    n_firms1 : int
        Number of capital-good firms.
    n_periods : int
        Default number of steps for ``Simulation.run``.
    seed : int or None
        Seed of the engine's random generator.
    sfc_threshold : float
        Normalised SFC residuals below this are reported as exactly 0.
    tolerance : float
        General tolerance of consistency predicates.
    strict_writes : bool
        Raise on writes to variables already read in the current step.
    output_dir : str
        Directory receiving CSV dumps of per-agent checks.
    params : dict
        Model scalars, stored on the root agent.
    checks : dict
        ``{check name: {start, end[, id_start, id_end]}}`` windows.
    """

    n_firms: int
    n_banks: int
    n_firms1: int
    n_periods: int
    seed: int | None
    sfc_threshold: float
    tolerance: float
    strict_writes: bool
    output_dir: str
    params: dict[str, float] = field(default_factory=dict)
    checks: dict[str, dict[str, Any]] = field(default_factory=dict)
