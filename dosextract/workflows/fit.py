# dosextract/workflows/fit.py
"""
Fit the width of the main Gaussian DOS lobe to an experimental C–V curve.

Each iteration simulates a small grid of trial sigmas around the current
best value, keeps the one with the smallest error, then corrects the stray
capacitance C_sb (accumulation level) and the semiconductor thickness
(depletion level) from the experiment. The search window shrinks towards the
side the best value moved from; the fit stops early once the best sigma
repeats.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from typing import Any, Dict, Optional, TextIO, Tuple

import numpy as np
import pandas as pd

from ..io.config import SolverSettings
from ..models.params import DosParameters
from ..numerics.quadrature import QuadratureRule
from ..postprocess.extract_cv import CVComparison, compare_cv
from ..utils import logger
from ..utils.constants import EPS0
from ..utils.errors import ConfigurationError
from .simulate import simulate_cv
from .sweep import ExecutorKind, first_error, run_rows

__all__ = ["FitResult", "sigma_grid", "fit_sigma"]

SIGMA_MIN_KT = 0.1


@dataclass(frozen=True)
class FitResult:
    params: DosParameters                 # best sigma, updated C_sb and t_semic
    comparison: CVComparison              # comparison at the best trial
    history: Tuple[Dict[str, Any], ...]   # one record per iteration
    converged: bool


def sigma_grid(
    sigma: float,
    sigma_min: float,
    n_splits: int,
    negative_shift: float,
    positive_shift: float,
) -> np.ndarray:
    """
    2 * n_splits trial values: n_splits up to sigma from below (never under
    sigma_min), then n_splits above it. At sigma_min the grid only goes up.
    """
    if sigma <= sigma_min:
        return np.linspace(sigma, sigma + positive_shift, 2 * n_splits)
    below = np.linspace(max(sigma - negative_shift, sigma_min), sigma, n_splits)
    above = np.linspace(sigma, sigma + positive_shift, n_splits + 1)[1:]
    return np.concatenate([below, above])


def _trial(
    params: DosParameters,
    settings: SolverSettings,
    experim: pd.DataFrame,
    rule: Optional[QuadratureRule],
) -> CVComparison:
    sweep = simulate_cv(params, settings, rule=rule)
    return compare_cv(sweep, experim)


def _thickness_from_depletion(params: DosParameters, C_dep: float, C_sb: float) -> float:
    """Series-capacitor thickness matching C_dep = C_sb + A / (t_s/eps_s + t_i/eps_i)."""
    return params.eps_semic * EPS0 * (
        params.A_semic / (C_dep - C_sb) - params.t_ins / (params.eps_ins * EPS0)
    )


def fit_sigma(
    params: DosParameters,
    settings: SolverSettings,
    experim: pd.DataFrame,
    iterations_no: int = 3,
    n_splits: int = 3,
    error_norm: str = "peak",
    negative_shift: float = 1.0,
    positive_shift: float = 1.0,
    *,
    rule: Optional[QuadratureRule] = None,
    n_workers: int = 1,
    executor: ExecutorKind = "thread",
    log: Optional[TextIO] = None,
) -> FitResult:
    """
    Shifts are given in units of kT. Any failing trial aborts the fit with
    that trial's exception.
    """
    if iterations_no < 1:
        raise ConfigurationError("FIT/iterationsNo must be >= 1")
    if n_splits < 2:
        raise ConfigurationError("FIT/nSplits must be >= 2")
    if error_norm not in ("l2", "h1", "peak"):
        raise ConfigurationError(f"Unknown FIT/errorNorm: {error_norm!r}")

    kT = params.kT
    sigma_min = SIGMA_MIN_KT * kT
    neg = float(negative_shift) * kT
    pos = float(positive_shift) * kT
    tag = f"[fit {params.simulation_no}]"

    if rule is None:
        rule = settings.build_rule()
    job = partial(_trial, settings=settings, experim=experim, rule=rule)

    history = []
    best_cmp: Optional[CVComparison] = None
    converged = False

    for it in range(iterations_no):
        center = params.sigma
        grid = sigma_grid(center, sigma_min, n_splits, neg, pos)
        logger.info(
            f"{tag} iteration {it + 1}/{iterations_no}: {grid.size} trials, "
            f"σ∈[{grid[0] / kT:.3f},{grid[-1] / kT:.3f}] kT", extra=log,
        )

        outcomes = run_rows(
            [params.with_sigma(s) for s in grid], job,
            n_workers=n_workers, fail_fast=True, executor=executor,
        )
        exc = first_error(outcomes)
        if exc is not None:
            raise exc

        comparisons = [out.value for out in outcomes]
        errors = np.array([c.error(error_norm) for c in comparisons])
        if not np.any(np.isfinite(errors)):
            raise ValueError(f"{tag} simulated and experimental curves do not overlap")
        k = int(np.nanargmin(errors))
        best_cmp = comparisons[k]
        best = float(grid[k])

        C_sb = params.C_sb + best_cmp.C_acc_experim - best_cmp.C_acc_simulated
        t_semic = _thickness_from_depletion(params, best_cmp.C_dep_experim, C_sb)
        params = params.with_sigma(best).with_c_sb(C_sb)
        if t_semic > 0.0:
            params = params.with_t_semic(t_semic)
        else:
            logger.warn(
                f"{tag} thickness update gave t_semic={t_semic:.3e} m; keeping "
                f"{params.t_semic:.3e} m", extra=log,
            )

        converged = best == center
        history.append({
            "iteration": it + 1,
            "iterations_no": iterations_no,
            "trial": k + 1,
            "sigma_kT": best / kT,
            "error": float(errors[k]),
            "error_norm": error_norm,
            "C_sb": params.C_sb,
            "t_semic": params.t_semic,
            "converged": converged,
        })
        logger.info(
            f"{tag} best σ={best / kT:.4g} kT ({error_norm} error {errors[k]:.4e}), "
            f"C_sb={params.C_sb:.4e} F, t_semic={params.t_semic:.4e} m", extra=log,
        )

        if converged:
            logger.info(f"{tag} convergence reached", extra=log)
            break
        if best < center:
            pos = center - best
        else:
            neg = best - center

    return FitResult(params=params, comparison=best_cmp, history=tuple(history), converged=converged)
