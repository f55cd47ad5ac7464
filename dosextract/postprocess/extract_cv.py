# -*- coding: utf-8 -*-
"""
C–V post-processing:
  - numerics: trapz(), deriv(), interp1(), error_l2(), quasi_static()
  - compare_cv(): simulated sweep vs. experimental curve (peak alignment,
    L2/H1/peak distances, accumulation/depletion capacitances)
  - cv_table(): side-by-side table written to output_<n>_CV.csv
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional, Tuple

import numpy as np
import pandas as pd
from scipy.integrate import trapezoid

if TYPE_CHECKING:
    from ..workflows.simulate import CVSweep

__all__ = [
    "trapz",
    "deriv",
    "interp1",
    "error_l2",
    "quasi_static",
    "CVComparison",
    "compare_cv",
    "cv_table",
    "sweep_table",
    "CV_COLUMNS",
]

CV_COLUMNS = (
    "V_experim", "C_experim", "dC/dV_experim",
    "V_simulated", "C_simulated", "dC/dV_simulated",
)


# ---------------------------------------------------------------------
# Numerics
# ---------------------------------------------------------------------


def trapz(y: np.ndarray, x: Optional[np.ndarray] = None) -> float:
    """Trapezoidal integral; unit spacing when x is None."""
    y = np.asarray(y, dtype=np.float64)
    if x is not None:
        x = np.asarray(x, dtype=np.float64)
        assert x.shape == y.shape, "trapz: size mismatch"
    if y.size < 2:
        return 0.0
    return float(trapezoid(y, x))


def deriv(y: np.ndarray, x: np.ndarray) -> np.ndarray:
    """dy/dx: forward difference at the first point, backward at the last, central inside."""
    y = np.asarray(y, dtype=np.float64)
    x = np.asarray(x, dtype=np.float64)
    assert x.shape == y.shape and x.size >= 2, "deriv: need two or more points of equal size"
    d = np.empty_like(y)
    d[0] = (y[1] - y[0]) / (x[1] - x[0])
    d[-1] = (y[-1] - y[-2]) / (x[-1] - x[-2])
    if y.size > 2:
        d[1:-1] = (y[2:] - y[:-2]) / (x[2:] - x[:-2])
    return d


def interp1(x: np.ndarray, y: np.ndarray, x_new: np.ndarray) -> np.ndarray:
    """Linear interpolation on a sorted grid; NaN outside [x[0], x[-1]]."""
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    assert x.shape == y.shape, "interp1: size mismatch"
    assert np.all(np.diff(x) >= 0.0), "interp1: grid must be sorted"
    return np.interp(np.asarray(x_new, dtype=np.float64), x, y, left=np.nan, right=np.nan)


def error_l2(interp: np.ndarray, simulated: np.ndarray, V: np.ndarray, V_shift: float = 0.0) -> float:
    """
    ∫ (interp - simulated)^2 dV over the points where both are finite
    (squared distance; take the sqrt for the norm). NaN if fewer than two
    points overlap.
    """
    interp = np.asarray(interp, dtype=np.float64)
    simulated = np.asarray(simulated, dtype=np.float64)
    V = np.asarray(V, dtype=np.float64)
    keep = np.isfinite(interp) & np.isfinite(simulated)
    if np.count_nonzero(keep) < 2:
        return float("nan")
    return trapz((interp[keep] - simulated[keep]) ** 2, V[keep] - V_shift)


def quasi_static(Vg: np.ndarray, Qg: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Finite-difference slope dQ/dV at interval midpoints. Arrays must be monotonically swept."""
    Vg = np.asarray(Vg, dtype=np.float64)
    Qg = np.asarray(Qg, dtype=np.float64)
    dV = np.diff(Vg)
    dQ = np.diff(Qg)
    C_mid = dQ / np.where(np.abs(dV) < 1e-30, np.sign(dV)*1e-30, dV)
    V_mid = 0.5*(Vg[1:] + Vg[:-1])
    return V_mid, C_mid


# ---------------------------------------------------------------------
# Comparison with experiment
# ---------------------------------------------------------------------


@dataclass(frozen=True)
class CVComparison:
    V_simulated: np.ndarray
    C_simulated: np.ndarray        # A * c_tot + C_sb [F]
    dCdV_simulated: np.ndarray
    V_experim: np.ndarray
    C_experim: np.ndarray
    dCdV_experim: np.ndarray
    V_shift: float                 # V_sim(peak) - V_exp(peak)
    error_l2: float
    error_h1: float
    error_peak: float              # relative distance of the dC/dV peaks
    charge_center_of_mass: float   # [m], last voltage step
    c_acc_star: float              # max c_tot [F/m^2]
    C_acc_experim: float
    C_dep_experim: float
    C_acc_simulated: float
    C_dep_simulated: float

    def error(self, norm: str) -> float:
        try:
            return {"l2": self.error_l2, "h1": self.error_h1, "peak": self.error_peak}[norm]
        except KeyError:
            raise ValueError(f"Unknown error norm: {norm!r}") from None

    def metrics(self) -> Dict[str, float]:
        return {
            "V_shift_V": float(self.V_shift),
            "error_L2": float(self.error_l2),
            "error_H1": float(self.error_h1),
            "error_peak": float(self.error_peak),
            "charge_center_of_mass_m": float(self.charge_center_of_mass),
            "C_acc_star_F_per_m2": float(self.c_acc_star),
            "C_acc_experim_F": float(self.C_acc_experim),
            "C_dep_experim_F": float(self.C_dep_experim),
            "C_acc_simulated_F": float(self.C_acc_simulated),
            "C_dep_simulated_F": float(self.C_dep_simulated),
        }


def _center_of_mass(x: np.ndarray, dens: np.ndarray) -> float:
    total = trapz(dens, x)
    if total == 0.0:
        return float("nan")
    return trapz(x * dens, x) / total


def compare_cv(
    sweep: "CVSweep",
    experim: pd.DataFrame,
    A_semic: Optional[float] = None,
    C_sb: Optional[float] = None,
) -> CVComparison:
    """
    Align the simulated curve on the experimental one by the position of the
    dC/dV maximum, then measure the distance on the simulated voltage grid.
    `experim` must be sorted by Vg (see io.experimental_csv.load_cv).
    """
    V_exp = experim["Vg"].to_numpy(dtype=np.float64)
    C_exp = experim["C"].to_numpy(dtype=np.float64)
    V_sim = np.asarray(sweep.V, dtype=np.float64)
    C_sim = sweep.device_capacitance(A_semic, C_sb)

    dC_exp = deriv(C_exp, V_exp)
    dC_sim = deriv(C_sim, V_sim)

    j_e = int(np.argmax(dC_exp))
    j_s = int(np.argmax(dC_sim))
    V_shift = float(V_sim[j_s] - V_exp[j_e])

    C_interp = interp1(V_exp, C_exp, V_sim - V_shift)
    dC_interp = interp1(V_exp, dC_exp, V_sim - V_shift)

    e0 = error_l2(C_interp, C_sim, V_sim, V_shift)
    e1 = error_l2(dC_interp, dC_sim, V_sim, V_shift)
    err_l2 = float(np.sqrt(e0))
    err_h1 = float(np.sqrt(e0 + e1))

    peak_exp = float(dC_exp[j_e])
    peak_sim = float(dC_sim[j_s])
    err_peak = abs(peak_sim - peak_exp) / abs(peak_exp) if peak_exp != 0.0 else float("nan")

    return CVComparison(
        V_simulated=V_sim,
        C_simulated=C_sim,
        dCdV_simulated=dC_sim,
        V_experim=V_exp,
        C_experim=C_exp,
        dCdV_experim=dC_exp,
        V_shift=V_shift,
        error_l2=err_l2,
        error_h1=err_h1,
        error_peak=float(err_peak),
        charge_center_of_mass=_center_of_mass(sweep.x_semic, sweep.density[-1]),
        c_acc_star=float(np.max(sweep.c_tot)),
        C_acc_experim=float(np.max(C_exp)),
        C_dep_experim=float(np.min(C_exp)),
        C_acc_simulated=float(np.max(C_sim)),
        C_dep_simulated=float(np.min(C_sim)),
    )


def cv_table(cmp: CVComparison) -> pd.DataFrame:
    """Experimental and shifted simulated curves side by side (NaN-padded)."""
    n = max(cmp.V_experim.size, cmp.V_simulated.size)

    def pad(a: np.ndarray) -> np.ndarray:
        out = np.full(n, np.nan)
        out[: a.size] = a
        return out

    return pd.DataFrame({
        "V_experim": pad(cmp.V_experim),
        "C_experim": pad(cmp.C_experim),
        "dC/dV_experim": pad(cmp.dCdV_experim),
        "V_simulated": pad(cmp.V_simulated - cmp.V_shift),
        "C_simulated": pad(cmp.C_simulated),
        "dC/dV_simulated": pad(cmp.dCdV_simulated),
    }, columns=list(CV_COLUMNS))


def sweep_table(sweep: "CVSweep") -> pd.DataFrame:
    """Simulated curve alone, for runs without experimental data."""
    C = sweep.device_capacitance()
    return pd.DataFrame({
        "V_simulated": np.asarray(sweep.V),
        "C_simulated": C,
        "dC/dV_simulated": deriv(C, sweep.V),
        "c_tot": np.asarray(sweep.c_tot),
        "q_tot": np.asarray(sweep.q_tot),
        "charge_n": np.asarray(sweep.charge_n),
    })
