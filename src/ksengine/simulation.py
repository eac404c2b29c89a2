# src/ksengine/simulation.py
from __future__ import annotations

from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Mapping

# noinspection PyPackageRequirements
import yaml

import ksengine.models.ks  # noqa: F401 - needed to register equations
from ksengine import logging as ks_logging
from ksengine.config import Config
from ksengine.core.agent import Agent
from ksengine.core.engine import Engine
from ksengine.logging import getLogger
from ksengine.models.ks import build_model
from ksengine.verification.verifier import Verifier

__all__ = ["Simulation"]

log = getLogger(__name__)


# helpers
# ---------------------------------------------------------------------------
def _read_yaml(obj: str | Path | Mapping[str, Any] | None) -> Dict[str, Any]:
    """Return a plain dict – {} if *obj* is None."""
    if obj is None:
        return {}
    if isinstance(obj, Mapping):
        return dict(obj)
    p = Path(obj)
    with p.open("rt", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, Mapping):
        raise TypeError(f"config root must be mapping, got {type(data)!r}")
    return dict(data)


def _package_defaults() -> Dict[str, Any]:
    """Load ksengine/defaults.yml"""
    txt = resources.files("ksengine").joinpath("defaults.yml").read_text()
    return yaml.safe_load(txt) or {}


def _merge(base: Dict[str, Any], extra: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge *extra* into *base*; nested mappings are merged key by key."""
    for key, value in extra.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            base[key] = _merge(dict(base[key]), value)
        else:
            base[key] = value
    return base


# Simulation
# ---------------------------------------------------------------------
@dataclass(slots=True)
class Simulation:
    """
    Facade that drives one K+S economy through consecutive steps.

    One call to `run` → *n* calls to `step`. Consistency checks run inside
    every step; ``close`` finalizes checks whose window is still open and
    closes their CSV sinks.

    Examples
    --------
    >>> with Simulation.init(n_periods=20, seed=1) as sim:
    ...     sim.run()
    >>> sim.verifier.state("testSFC").errors_total
    0
    """

    config: Config
    engine: Engine
    verifier: Verifier
    root: Agent
    n_periods: int
    closed: bool = False

    # Constructor
    # ---------------------------------------------------------------------
    @classmethod
    def init(
        cls,
        config: str | Path | Mapping[str, Any] | None = None,
        **overrides: Any,  # anything here wins last
    ) -> "Simulation":
        """
        Build a Simulation.

        Order of precedence (later overrides earlier):

            1. package defaults  (ksengine/defaults.yml)
            2. *config*  (Path / str / Mapping / None)
            3. explicit keyword arguments (**overrides)

        Nested mappings (``params``, ``checks``, ``logging``) are merged key
        by key, so overriding one model parameter keeps the others.
        """
        cfg_dict: Dict[str, Any] = _package_defaults()
        _merge(cfg_dict, _read_yaml(config))
        _merge(cfg_dict, overrides)

        from ksengine.config import ConfigValidator

        ConfigValidator.validate_config(cfg_dict)

        log_config = cfg_dict.pop("logging", {})
        cls._configure_logging(log_config)

        cfg = Config(
            n_firms=int(cfg_dict["n_firms"]),
            n_banks=int(cfg_dict["n_banks"]),
            n_firms1=int(cfg_dict["n_firms1"]),
            n_periods=int(cfg_dict["n_periods"]),
            seed=cfg_dict.get("seed"),
            sfc_threshold=float(cfg_dict["sfc_threshold"]),
            tolerance=float(cfg_dict["tolerance"]),
            strict_writes=bool(cfg_dict["strict_writes"]),
            output_dir=str(cfg_dict["output_dir"]),
            params={k: float(v) for k, v in cfg_dict.get("params", {}).items()},
            checks={k: dict(v) for k, v in cfg_dict.get("checks", {}).items()},
        )
        return cls._from_config(cfg)

    @staticmethod
    def _configure_logging(log_config: Dict[str, Any]) -> None:
        """
        Configure logging levels for ksengine loggers.

        Parameters
        ----------
        log_config : dict
            Logging configuration with keys:
            - default_level: str (e.g., 'INFO', 'DEBUG')
            - checks: dict[str, str] (per-check overrides)
        """
        import logging

        default_level = log_config.get("default_level", "INFO").upper()
        logging.getLogger("ksengine").setLevel(ks_logging.level_value(default_level))

        for check_name, level in log_config.get("checks", {}).items():
            logger_name = f"ksengine.checks.{check_name}"
            logging.getLogger(logger_name).setLevel(
                ks_logging.level_value(level.upper())
            )

    @classmethod
    def _from_config(cls, cfg: Config) -> "Simulation":
        verifier = Verifier(
            tolerance=cfg.tolerance,
            sfc_threshold=cfg.sfc_threshold,
            output_dir=cfg.output_dir,
        )
        engine = Engine(
            rng=cfg.seed,
            strict_writes=cfg.strict_writes,
            verifier=verifier,
        )
        root = build_model(
            engine,
            n_firms=cfg.n_firms,
            n_banks=cfg.n_banks,
            n_firms1=cfg.n_firms1,
            params=cfg.params,
            checks=cfg.checks,
        )
        return cls(
            config=cfg,
            engine=engine,
            verifier=verifier,
            root=root,
            n_periods=cfg.n_periods,
        )

    # public API
    # ---------------------------------------------------------------------
    @property
    def t(self) -> int:
        return self.engine.t

    @property
    def errors(self) -> int:
        """Sum of every check's running error total; 0 means a clean run."""
        return self.verifier.total_errors()

    def run(self, n_periods: int | None = None) -> None:
        """
        Advance the simulation *n_periods* steps
        (defaults to the ``n_periods`` of the configuration).
        """
        n = n_periods if n_periods is not None else self.n_periods
        for _ in range(int(n)):
            self.step()

    def step(self) -> None:
        """
        Advance the economy by exactly one step.

        Fatal engine errors (circular dependencies, stale reads, dangling
        hooks) propagate and abort the run.
        """
        if self.closed:
            raise RuntimeError("simulation is closed")
        self.engine.step()
        log.debug("t=%d done, %d check error(s) so far", self.t, self.errors)

    def close(self) -> None:
        """Finalize open checks and close their CSV sinks."""
        if self.closed:
            return
        self.verifier.finish(self.engine)
        self.verifier.close()
        self.closed = True
        log.info("Simulation finished at t=%d with %d check error(s)", self.t, self.errors)

    def sector(self, tag: str) -> Agent:
        """First agent of type *tag* below the root (e.g. ``"Consumer"``)."""
        return self.engine.population.find(self.root, tag)

    def get(self, target: str | Agent, name: str, lag: int = 0) -> float:
        """
        Read a variable.

        Parameters
        ----------
        target : str or Agent
            An agent, or a type tag resolved like :meth:`sector`. The root
            tag (``"Country"``) resolves to the root.
        name : str
            Variable name.
        lag : int
            Steps back from the current one.
        """
        if isinstance(target, str):
            agent = self.root if target == self.root.tag else self.sector(target)
        else:
            agent = target
        return self.engine.get(agent, name, lag)

    def __enter__(self) -> "Simulation":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
