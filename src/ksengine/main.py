"""Command-line demo runner for ksengine."""

from __future__ import annotations

import argparse
import logging

from ksengine.simulation import Simulation


def _cli(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run the K+S demo model with checks.")
    p.add_argument("--config", default=None, help="YAML configuration file")
    p.add_argument("--firms", type=int, default=None, help="Number of firms")
    p.add_argument("--banks", type=int, default=None, help="Number of banks")
    p.add_argument(
        "--capital-firms", type=int, default=None, help="Number of capital firms"
    )
    p.add_argument("--steps", type=int, default=None, help="Simulation periods")
    p.add_argument("--seed", type=int, default=None, help="RNG seed")
    p.add_argument("--output-dir", default=None, help="Directory for CSV dumps")
    p.add_argument("--log-level", default=None, help="Default ksengine log level")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _cli(argv)
    log = logging.getLogger("ksengine.main")

    overrides = {
        key: value
        for key, value in (
            ("n_firms", args.firms),
            ("n_banks", args.banks),
            ("n_firms1", args.capital_firms),
            ("n_periods", args.steps),
            ("seed", args.seed),
            ("output_dir", args.output_dir),
        )
        if value is not None
    }
    if args.log_level:
        overrides["logging"] = {"default_level": args.log_level.upper()}

    with Simulation.init(args.config, **overrides) as sim:
        sim.run()

    for name, total in sim.verifier.summary().items():
        log.info("%-12s %d", name, total)
    log.info("Simulation finished.")
    return 0 if sim.errors == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
