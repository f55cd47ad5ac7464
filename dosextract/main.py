# dosextract/main.py
"""
dosextract main entrypoint.

Usage examples:
    dosextract simulate --config config.yaml
    dosextract simulate --config config.yaml --set NLP/tolerance=1e-8 --set nThreads=4
    dosextract fit --config config.yaml --set FIT/iterationsNo=5
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from pathlib import Path
import argparse
import sys
from typing import List, Optional, Sequence

from .io.config import (
    FitSettings,
    RunOptions,
    SolverSettings,
    apply_overrides,
    load_config,
)
from .io.experimental_csv import load_cv
from .io.params_csv import load_param_table, params_from_row, select_rows
from .utils import logger
from .utils.errors import ConfigurationError, ConvergenceError
from .workflows.run_cv import run_fit, run_simulation
from .workflows.sweep import RunOutcome, run_rows

__all__ = ["main"]


@dataclass(slots=True)
class _Args:
    cmd: str
    config: Path
    overrides: List[str]
    debug: bool
    executor: str


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", "-f", required=True, type=Path, help="YAML run configuration")
    p.add_argument(
        "--set", dest="overrides", action="append", default=[], metavar="KEY=VALUE",
        help="Override a config knob, e.g. NLP/tolerance=1e-8 (repeatable)",
    )
    p.add_argument(
        "--executor", choices=["process", "thread"], default="process",
        help="How rows are run in parallel when nThreads > 1",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="dosextract: DOS extraction from C-V measurements"
    )
    sub = parser.add_subparsers(dest="cmd")

    p = sub.add_parser("simulate", help="Simulate the C-V curve of each selected row")
    _add_common(p)
    p.add_argument("--debug", action="store_true", help="Verbose Newton prints")

    p = sub.add_parser("fit", help="Fit the Gaussian width sigma of each selected row")
    _add_common(p)
    p.set_defaults(debug=False)
    return parser


def _report(outcomes: Sequence[RunOutcome], n_rows: int) -> int:
    failed = [o for o in outcomes if not o.ok]
    for o in failed:
        logger.error(f"simulation {o.simulation_no}: {type(o.error).__name__}: {o.error}")
    skipped = n_rows - len(outcomes)
    if skipped:
        logger.warn(f"{skipped} row(s) not run after the first failure")
    if failed or skipped:
        return 1
    logger.block("Tasks complete!")
    return 0


def _run(args: _Args) -> int:
    cfg = apply_overrides(load_config(args.config), args.overrides)
    settings = SolverSettings.from_config(cfg)
    opts = RunOptions.from_config(cfg)

    table = load_param_table(opts.input_params, has_headers=opts.has_headers)
    rows = [params_from_row(r, T_K=settings.T) for r in select_rows(table, opts.simulate_all, opts.indexes)]

    experim = None
    if opts.input_experim is not None:
        experim = load_cv(opts.input_experim, has_headers=opts.has_headers)
    elif args.cmd == "fit":
        raise ConfigurationError("fit needs input_experim")

    rule = settings.build_rule()
    logger.info(
        f"{len(rows)} row(s), DOS={settings.dos}, {settings.quad_family} rule "
        f"({settings.quad_nodes} nodes), {opts.n_threads} worker(s)"
    )

    if args.cmd == "simulate":
        out_dir = opts.output_directory
        job = partial(run_simulation, settings=settings, experim=experim,
                      out_dir=out_dir, rule=rule, debug=args.debug)
    else:
        out_dir = opts.output_directory.with_name(opts.output_directory.name + "_fitting")
        job = partial(run_fit, settings=settings, experim=experim,
                      fit=FitSettings.from_config(cfg), out_dir=out_dir, rule=rule)

    outcomes = run_rows(rows, job, n_workers=opts.n_threads, fail_fast=True, executor=args.executor)
    for o in outcomes:
        if o.ok:
            logger.info(f"simulation {o.simulation_no} complete -> {out_dir}")
    return _report(outcomes, len(rows))


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    ns = parser.parse_args(argv)
    if ns.cmd is None:
        parser.print_help()
        return 2

    args = _Args(
        cmd=str(ns.cmd),
        config=Path(ns.config),
        overrides=list(ns.overrides),
        debug=bool(ns.debug),
        executor=str(ns.executor),
    )
    try:
        return _run(args)
    except ConfigurationError as exc:
        logger.error(f"configuration: {exc}")
        return 2
    except ConvergenceError as exc:
        logger.error(f"quadrature: {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
