"""Centralized configuration validation for ksengine."""

from __future__ import annotations

import warnings
from typing import Any


class ConfigValidator:
    """
    Centralized validation for simulation configuration.

    All validation happens once at Simulation.init() to ensure:
    - Type correctness
    - Valid parameter ranges
    - Relationship constraints between parameters
    - Well-formed check windows and logging levels
    """

    VALID_LOG_LEVELS = {"DEEP_DEBUG", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    WINDOW_KEYS = {"start", "end", "id_start", "id_end"}

    @staticmethod
    def validate_config(cfg: dict[str, Any]) -> None:
        """
        Validate all configuration parameters.

        Parameters
        ----------
        cfg : dict
            Configuration dictionary to validate.

        Raises
        ------
        ValueError
            If any validation check fails.
        """
        ConfigValidator._validate_types(cfg)
        ConfigValidator._validate_ranges(cfg)
        ConfigValidator._validate_relationships(cfg)

        if "checks" in cfg:
            ConfigValidator._validate_checks(cfg["checks"])
        if "logging" in cfg:
            ConfigValidator._validate_logging(cfg["logging"])

    @staticmethod
    def _validate_types(cfg: dict[str, Any]) -> None:
        """Ensure correct types for top-level and model parameters."""
        int_params = ["n_firms", "n_banks", "n_firms1", "n_periods", "seed"]
        float_params = ["sfc_threshold", "tolerance"]

        for key in int_params:
            if key not in cfg:
                continue
            val = cfg[key]
            if val is not None and (isinstance(val, bool) or not isinstance(val, int)):
                raise ValueError(
                    f"Config parameter '{key}' must be int, got {type(val).__name__}"
                )

        for key in float_params:
            if key not in cfg:
                continue
            val = cfg[key]
            if isinstance(val, bool) or not isinstance(val, (int, float)):
                raise ValueError(
                    f"Config parameter '{key}' must be float, got {type(val).__name__}"
                )

        if "strict_writes" in cfg and not isinstance(cfg["strict_writes"], bool):
            raise ValueError(
                "Config parameter 'strict_writes' must be bool, "
                f"got {type(cfg['strict_writes']).__name__}"
            )

        if "output_dir" in cfg and not isinstance(cfg["output_dir"], str):
            raise ValueError(
                "Config parameter 'output_dir' must be str, "
                f"got {type(cfg['output_dir']).__name__}"
            )

        for key in ("params", "checks", "logging"):
            if key in cfg and not isinstance(cfg[key], dict):
                raise ValueError(
                    f"Config parameter '{key}' must be a mapping, "
                    f"got {type(cfg[key]).__name__}"
                )

        for name, val in cfg.get("params", {}).items():
            if isinstance(val, bool) or not isinstance(val, (int, float)):
                raise ValueError(
                    f"Model parameter '{name}' must be float, got {type(val).__name__}"
                )

    @staticmethod
    def _validate_ranges(cfg: dict[str, Any]) -> None:
        """Ensure parameters are in valid ranges."""
        constraints = {
            "n_firms": (1, None),
            "n_banks": (1, None),
            "n_firms1": (1, None),
            "n_periods": (1, None),
            "sfc_threshold": (0.0, 1.0),
            "tolerance": (0.0, 1.0),
        }
        # model parameters
        param_constraints = {
            "w": (0.0, None),
            "mu2": (0.0, None),
            "chi": (0.0, None),
            "tr": (0.0, 1.0),
            "d2": (0.0, 1.0),
            "d1": (0.0, 1.0),
            "mu1": (0.0, None),
            "pInv": (0.0, 1.0),
            "NW10": (0.0, None),
            "rep": (0.0, 1.0),
            "r": (0.0, 1.0),
            "rD": (0.0, 1.0),
            "rBonds": (0.0, 1.0),
            "f2min": (0.0, 1.0),
            "alpha1": (0.0, 1.0),
            "alpha2": (0.0, 1.0),
            "pInn": (0.0, 1.0),
            "sigmaInn": (0.0, None),
            "A0spread": (0.0, 1.0),
            "maxAge": (1, None),
            "Ls": (0.0, None),
            "A0": (0.0, None),
            "NW20": (0.0, None),
            "nMach0": (0.0, None),
            "nMachNew": (0.0, None),
        }

        def _check(label: str, val: Any, bounds: tuple[Any, Any]) -> None:
            min_val, max_val = bounds
            if val is None:
                return
            if min_val is not None and val < min_val:
                raise ValueError(f"{label} must be >= {min_val}, got {val}")
            if max_val is not None and val > max_val:
                raise ValueError(f"{label} must be <= {max_val}, got {val}")

        for key, bounds in constraints.items():
            if key in cfg:
                _check(f"Config parameter '{key}'", cfg[key], bounds)

        params = cfg.get("params", {})
        for key, bounds in param_constraints.items():
            if key in params:
                _check(f"Model parameter '{key}'", params[key], bounds)

        for key in ("w", "A0", "Ls"):
            if key in params and params[key] <= 0:
                raise ValueError(f"Model parameter '{key}' must be > 0, got {params[key]}")

    @staticmethod
    def _validate_relationships(cfg: dict[str, Any]) -> None:
        """Validate cross-parameter constraints."""
        n_firms = cfg.get("n_firms", 0)
        n_banks = cfg.get("n_banks", 0)
        if n_firms > 0 and n_banks > n_firms:
            warnings.warn(
                f"n_banks ({n_banks}) > n_firms ({n_firms}). "
                "Some banks will start without clients.",
                UserWarning,
                stacklevel=3,
            )

        params = cfg.get("params", {})
        rd, r_bonds, r = params.get("rD"), params.get("rBonds"), params.get("r")
        if None not in (rd, r_bonds, r) and not rd <= r_bonds <= r:
            warnings.warn(
                f"Interest rates should satisfy rD <= rBonds <= r "
                f"(got rD={rd}, rBonds={r_bonds}, r={r}). "
                "testFin will report INCONSISTENT-RATES.",
                UserWarning,
                stacklevel=3,
            )

        f2min = params.get("f2min")
        if f2min is not None and n_firms > 0 and f2min >= 1.0 / n_firms:
            raise ValueError(
                f"f2min ({f2min}) must be below the entry share 1/n_firms "
                f"({1.0 / n_firms:.4g}), otherwise every firm exits"
            )

    @staticmethod
    def _validate_checks(checks: dict[str, Any]) -> None:
        """
        Validate consistency-check windows.

        Raises
        ------
        ValueError
            If a window is malformed or names an unknown check.
        """
        from ksengine.core.registry import list_equations

        known = set(list_equations("Stats"))
        for name, spec in checks.items():
            if known and name not in known:
                raise ValueError(
                    f"Unknown check '{name}'. Available checks: {', '.join(sorted(known))}"
                )
            if not isinstance(spec, dict):
                raise ValueError(
                    f"Window of check '{name}' must be a mapping, "
                    f"got {type(spec).__name__}"
                )
            unknown = set(spec) - ConfigValidator.WINDOW_KEYS
            if unknown:
                raise ValueError(
                    f"Unknown key(s) {sorted(unknown)} in window of check '{name}'. "
                    f"Allowed: {sorted(ConfigValidator.WINDOW_KEYS)}"
                )
            for key, val in spec.items():
                if isinstance(val, bool) or not isinstance(val, int) or val < 0:
                    raise ValueError(
                        f"Window '{key}' of check '{name}' must be a non-negative "
                        f"int, got {val!r}"
                    )
            start, end = spec.get("start", 0), spec.get("end", 0)
            if end and start > end:
                raise ValueError(
                    f"Window of check '{name}' has start ({start}) > end ({end})"
                )
            if spec.get("id_start", 0) > spec.get("id_end", 0):
                raise ValueError(
                    f"Window of check '{name}' has id_start > id_end"
                )

    @staticmethod
    def _validate_logging(log_config: dict[str, Any]) -> None:
        """
        Validate logging configuration.

        Parameters
        ----------
        log_config : dict
            Logging configuration dictionary with keys:
            - default_level: str (e.g., 'INFO', 'DEBUG')
            - checks: dict[str, str] (per-check overrides)

        Raises
        ------
        ValueError
            If logging configuration is invalid.
        """
        if "default_level" in log_config:
            level = log_config["default_level"]
            if not isinstance(level, str):
                raise ValueError(
                    f"Logging default_level must be str, got {type(level).__name__}"
                )
            if level.upper() not in ConfigValidator.VALID_LOG_LEVELS:
                raise ValueError(
                    f"Invalid log level '{level}'. "
                    f"Must be one of {ConfigValidator.VALID_LOG_LEVELS}"
                )

        if "checks" in log_config:
            checks = log_config["checks"]
            if not isinstance(checks, dict):
                raise ValueError(
                    f"Logging checks must be dict, got {type(checks).__name__}"
                )
            for check_name, level in checks.items():
                if not isinstance(level, str):
                    raise ValueError(
                        f"Log level for check '{check_name}' must be str, "
                        f"got {type(level).__name__}"
                    )
                if level.upper() not in ConfigValidator.VALID_LOG_LEVELS:
                    raise ValueError(
                        f"Invalid log level '{level}' for check '{check_name}'. "
                        f"Must be one of {ConfigValidator.VALID_LOG_LEVELS}"
                    )
