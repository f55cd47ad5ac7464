# -*- coding: utf-8 -*-
"""
Results IO helpers.

Write, per simulation (prefix "output_<n>"):
  * <prefix>_metrics.json  (comparison metrics and run info)
  * <prefix>_fields.npz    (V, phi, c_tot, q_tot, density, ...)
  * <prefix>_CV.csv        (experimental vs. simulated C–V)
  * <prefix>_fit.txt       (sigma fit history)

This keeps on-disk layout stable for post-processing and reports.
"""
from __future__ import annotations
import json
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping

import numpy as np
import pandas as pd


def _jsonable(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, Path):
        return str(value)
    return value


def write_metrics(run_dir: Path, metrics: Dict[str, Any], name: str = "metrics.json") -> Path:
    run_dir.mkdir(parents=True, exist_ok=True)
    out = run_dir / name
    with open(out, "w") as f:
        json.dump({k: _jsonable(v) for k, v in metrics.items()}, f, indent=2, sort_keys=True)
    return out

def save_fields_npz(run_dir: Path, name: str = "fields.npz", **arrays) -> Path:
    """
    Save arrays for viz (e.g., x, V, phi, c_tot, q_tot, density, charge_n).
    """
    run_dir.mkdir(parents=True, exist_ok=True)
    out = run_dir / name
    np.savez_compressed(out, **arrays)
    return out

def write_cv_csv(run_dir: Path, table: pd.DataFrame, name: str = "CV.csv") -> Path:
    run_dir.mkdir(parents=True, exist_ok=True)
    out = run_dir / name
    table.to_csv(out, index=False, float_format="%.15e", na_rep="")
    return out

def write_fit_log(run_dir: Path, history: Iterable[Mapping[str, Any]], name: str = "fit.txt") -> Path:
    """One block per fit iteration: best sigma [kT], error, C_sb, t_semic."""
    run_dir.mkdir(parents=True, exist_ok=True)
    out = run_dir / name
    history = list(history)
    with open(out, "w") as f:
        for rec in history:
            f.write(f"Iteration {rec['iteration']}/{rec['iterations_no']}...\n")
            f.write(f"\tBest sigma: {rec['sigma_kT']:.4g} (trial {rec['trial']})\n")
            f.write(f"\t{rec['error_norm']}-error: {rec['error']:.15e}\n")
            f.write(f"\tC_sb: {rec['C_sb']:.15e}\n")
            f.write(f"\tt_semic: {rec['t_semic']:.15e}\n")
            if rec.get("converged"):
                f.write("Convergence reached!\n")
            f.write("\n")
    return out
