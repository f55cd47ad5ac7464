# -*- coding: utf-8 -*-
"""
Single-row workflows wiring params → simulation → post-processing → files.

Both functions are module level so they can be shipped to worker processes
(bind the shared arguments with functools.partial).
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import pandas as pd

from ..io.config import FitSettings, SolverSettings
from ..io.results import save_fields_npz, write_cv_csv, write_fit_log, write_metrics
from ..models.params import DosParameters
from ..numerics.quadrature import QuadratureRule
from ..postprocess.extract_cv import compare_cv, cv_table, sweep_table
from ..utils import logger
from ..viz.plots import params_title, save_cv_plot
from .fit import fit_sigma
from .simulate import simulate_cv

__all__ = ["output_prefix", "run_simulation", "run_fit"]


def output_prefix(params: DosParameters) -> str:
    return f"output_{params.simulation_no}"


def run_simulation(
    params: DosParameters,
    settings: SolverSettings,
    experim: Optional[pd.DataFrame],
    out_dir: Path,
    rule: Optional[QuadratureRule] = None,
    debug: bool = False,
) -> Dict[str, Any]:
    """Simulate one row and write CV table, fields, metrics and plot."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    prefix = output_prefix(params)

    with open(out_dir / f"{prefix}_log.txt", "w") as log:
        logger.block(f"Simulation No. {params.simulation_no} started.", extra=log)
        sweep = simulate_cv(params, settings, rule=rule, debug=debug, log=log)

        save_fields_npz(
            out_dir, name=f"{prefix}_fields.npz",
            x=sweep.mesh.x, V=sweep.V, phi=sweep.phi, c_tot=sweep.c_tot,
            q_tot=sweep.q_tot, density=sweep.density, charge_n=sweep.charge_n,
        )

        metrics: Dict[str, Any] = {
            "simulation_no": params.simulation_no,
            "elapsed_s": sweep.elapsed_s,
            "newton_iterations": [int(n.size) for n in sweep.norms],
            "C_acc_star_F_per_m2": float(sweep.c_tot.max()),
        }

        if experim is not None:
            cmp = compare_cv(sweep, experim)
            table = cv_table(cmp)
            metrics.update(cmp.metrics())
            save_cv_plot(
                table, out_dir / f"{prefix}_plot.png",
                title=params_title(params, cmp.V_shift),
            )
            logger.info(
                f"V_shift={cmp.V_shift:.4e} V | L2={cmp.error_l2:.4e} | "
                f"H1={cmp.error_h1:.4e} | charge centre of mass={cmp.charge_center_of_mass:.4e} m",
                extra=log,
            )
        else:
            table = sweep_table(sweep)

        write_cv_csv(out_dir, table, name=f"{prefix}_CV.csv")
        write_metrics(out_dir, metrics, name=f"{prefix}_metrics.json")
        logger.block(f"Simulation No. {params.simulation_no} complete.", extra=log)
    return metrics


def run_fit(
    params: DosParameters,
    settings: SolverSettings,
    experim: pd.DataFrame,
    fit: FitSettings,
    out_dir: Path,
    rule: Optional[QuadratureRule] = None,
) -> Dict[str, Any]:
    """Fit sigma for one row; trials run sequentially inside this call."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    prefix = output_prefix(params)

    with open(out_dir / f"{prefix}_log.txt", "w") as log:
        logger.block(f"Simulation No. {params.simulation_no} (fitting) started.", extra=log)
        result = fit_sigma(
            params, settings, experim,
            iterations_no=fit.iterations_no,
            n_splits=fit.n_splits,
            error_norm=fit.error_norm,
            negative_shift=fit.negative_shift,
            positive_shift=fit.positive_shift,
            rule=rule,
            log=log,
        )
        write_fit_log(out_dir, result.history, name=f"{prefix}_fit.txt")

        best = result.params
        table = cv_table(result.comparison)
        write_cv_csv(out_dir, table, name=f"{prefix}_CV.csv")
        save_cv_plot(
            table, out_dir / f"{prefix}_plot.png",
            title=params_title(best, result.comparison.V_shift),
        )
        metrics: Dict[str, Any] = {
            "simulation_no": best.simulation_no,
            "converged": result.converged,
            "sigma_kT": best.sigma / best.kT,
            "C_sb_F": best.C_sb,
            "t_semic_m": best.t_semic,
            "iterations": len(result.history),
        }
        metrics.update(result.comparison.metrics())
        write_metrics(out_dir, metrics, name=f"{prefix}_metrics.json")
        logger.block(f"Simulation No. {params.simulation_no} complete.", extra=log)
    return metrics
