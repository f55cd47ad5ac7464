# dosextract/viz/plots.py
"""
C–V comparison figure: dC/dV (top) and C (bottom) against V_gate - V_shift,
experimental vs. simulated.

Drawn on matplotlib.figure.Figure directly, never through pyplot: rows may
plot concurrently from worker threads.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

import numpy as np
import pandas as pd
from matplotlib.figure import Figure

from ..models.params import DosParameters

__all__ = ["params_title", "plot_cv_comparison", "save_cv_plot"]


def params_title(params: DosParameters, V_shift: Optional[float] = None) -> str:
    """Multi-line figure title with the DOS parameters (widths in kT, shifts in eV)."""
    kT = params.kT
    head = []
    if V_shift is not None:
        head.append(f"V_shift={V_shift:.4e}")
    head.append(f"(Wf - Ea)={params.phi_offset:.4e}")
    head.append(f"N0={params.N0:.4e}, σ={params.sigma / kT:.4e}")
    lines = [", ".join(head)]
    for j, (N0, sigma, shift) in enumerate((
        (params.N0_2, params.sigma_2, params.shift_2),
        (params.N0_3, params.sigma_3, params.shift_3),
        (params.N0_4, params.sigma_4, params.shift_4),
    ), start=2):
        lines.append(f"N0_{j}={N0:.4e}, σ_{j}={sigma / kT:.4e}, shift_{j}={-shift:.4e}")
    lines.append(f"N0_e={params.N0_exp:.4e}, λ_e={params.lambda_exp / kT:.4e}")
    return "\n".join(lines)


def plot_cv_comparison(
    table: pd.DataFrame,
    title: Optional[str] = None,
) -> Tuple[Figure, np.ndarray]:
    """
    Two stacked panels from a cv_table() frame.

    Returns
    -------
    fig, axes : matplotlib Figure and the (2,) array of Axes
    """
    fig = Figure(figsize=(6.4, 6.0), layout="constrained")
    axes = fig.subplots(2, 1, sharex=True)

    exp = table[["V_experim", "C_experim", "dC/dV_experim"]].dropna()
    sim = table[["V_simulated", "C_simulated", "dC/dV_simulated"]].dropna()

    for ax, col_e, col_s, ylabel in (
        (axes[0], "dC/dV_experim", "dC/dV_simulated", "dC/dV (F/V)"),
        (axes[1], "C_experim", "C_simulated", "C (F)"),
    ):
        ax.plot(exp["V_experim"], exp[col_e], label="Experimental", linewidth=2.0)
        ax.plot(sim["V_simulated"], sim[col_s], label="Simulated", linewidth=2.0)
        ax.set_ylabel(ylabel)
        ax.ticklabel_format(axis="y", style="sci", scilimits=(0, 0))
        ax.grid(True, which="both", linestyle=":", linewidth=0.6)
        ax.legend(frameon=False, loc="best")

    if not exp.empty:
        axes[1].set_xlim(float(exp["V_experim"].min()), float(exp["V_experim"].max()))
    axes[1].set_xlabel("V_gate - V_shift (V)")
    if title:
        fig.suptitle(title, fontsize=8)
    return fig, axes


def save_cv_plot(table: pd.DataFrame, out: Path, title: Optional[str] = None) -> Path:
    fig, _ = plot_cv_comparison(table, title=title)
    fig.savefig(out, dpi=180)
    return out
