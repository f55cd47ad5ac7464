"""
dosextract/utils/diagnostics.py

Targeted, low-noise diagnostics to understand why a solve fails.
Import and call these from solvers/workflows when debug=True.
"""

from __future__ import annotations

from typing import Optional

import numpy as np


def _fmt_range(x: np.ndarray, name: str) -> str:
    if x.size == 0:
        return f"{name}: (empty)"
    return f"{name}∈[{np.min(x):+.3e},{np.max(x):+.3e}]"


def log_state_summary(
    *,
    phi: np.ndarray,
    charge: Optional[np.ndarray] = None,
    resid: Optional[np.ndarray] = None,
    prefix: str = "[diag]",
) -> None:
    """Print compact ranges for core fields."""
    msg = [prefix, _fmt_range(phi, "φ")]
    if charge is not None:
        msg.append(_fmt_range(charge, "ρ"))
    if resid is not None:
        msg.append(f"||res||_inf={float(np.linalg.norm(resid, ord=np.inf)):.3e}")
    print(" | ".join(msg))


def log_quadrature_summary(
    *,
    family: str,
    nodes: np.ndarray,
    weights: np.ndarray,
    prefix: str = "[diag]",
) -> None:
    print(
        f"{prefix} quadrature {family} | N={nodes.size} | "
        f"{_fmt_range(nodes, 'x')} | Σw={float(np.sum(weights)):.15e} | "
        f"min(w)={float(np.min(weights)):.3e}"
    )


def log_solver_start(
    *,
    solver: str,
    phi_min: float,
    phi_max: float,
    n_nodes: int,
    prefix: str = "[sol]",
) -> None:
    print(
        f"{prefix} {solver} start | N={n_nodes} | "
        f"φ∈[{phi_min:+.3e},{phi_max:+.3e}] V"
    )


def log_solver_iter(
    *,
    solver: str,
    it: int,
    res_inf: float,
    max_dphi: float,
    phi_min: float,
    phi_max: float,
    prefix: str = "[sol]",
) -> None:
    print(
        f"{prefix} {solver} iter {it:02d} | ||res||_inf={res_inf:.3e} | "
        f"max|Δφ|={max_dphi:.3e} V | "
        f"φ∈[{phi_min:+.3e},{phi_max:+.3e}] V"
    )


def log_convergence_summary(
    *,
    solver: str,
    converged: bool,
    iters: int,
    last_norm: float,
    prefix: str = "[sol]",
) -> None:
    print(
        f"{prefix} {solver} done | converged={converged} | iters={iters} | "
        f"max|Δφ|={last_norm:.3e}"
    )


def log_capacitance(
    *,
    q_tot: float,
    c_tot: float,
    prefix: str = "[sol]",
) -> None:
    print(f"{prefix} q_tot={q_tot:+.6e} C/m^2 | c_tot={c_tot:.6e} F/m^2")
