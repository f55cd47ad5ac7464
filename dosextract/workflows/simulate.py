# dosextract/workflows/simulate.py
"""
One parameter row → simulated C–V sweep.

Wiring: mesh → Stiff/Mass (assembled once) → quadrature rule (computed once,
or shared by the caller) → charge model → Newton solve per gate voltage, with
voltage continuation between steps.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional, TextIO, Tuple

import numpy as np

from ..discretization.assemble import Bim1D
from ..geometry.mesh import Mesh1D, build_mis_mesh
from ..io.config import SolverSettings
from ..models.params import DosParameters
from ..numerics.quadrature import QuadratureRule
from ..physics.charge import build_charge_model
from ..postprocess.extract_cv import trapz
from ..solver.newton import NonLinearPoisson1D
from ..utils import diagnostics as diag
from ..utils import logger
from ..utils.constants import Q
from ..utils.errors import ConvergenceError

__all__ = ["CVSweep", "assemble_mis_system", "initial_guess", "simulate_cv"]


@dataclass(frozen=True)
class CVSweep:
    params: DosParameters
    mesh: Mesh1D
    V: np.ndarray            # (S,) gate voltages [V]
    phi: np.ndarray          # (S, N) potentials [V]
    c_tot: np.ndarray        # (S,) capacitance per unit area [F/m^2]
    q_tot: np.ndarray        # (S,) gate charge per unit area [C/m^2]
    density: np.ndarray      # (S, n_semic) electron density in the semiconductor [m^-3]
    charge_n: np.ndarray     # (S,) integrated semiconductor charge [C/m^2]
    norms: Tuple[np.ndarray, ...]   # Newton histories, one per step
    elapsed_s: float = 0.0

    @property
    def x_semic(self) -> np.ndarray:
        return self.mesh.x[: self.mesh.n_semic]

    @property
    def n_steps(self) -> int:
        return int(self.V.size)

    def device_capacitance(self, A_semic: Optional[float] = None, C_sb: Optional[float] = None) -> np.ndarray:
        """A * c_tot + C_sb [F]; defaults from the parameter row."""
        A = self.params.A_semic if A_semic is None else float(A_semic)
        C0 = self.params.C_sb if C_sb is None else float(C_sb)
        return A * self.c_tot + C0


def assemble_mis_system(mesh: Mesh1D, params: DosParameters) -> Bim1D:
    """Stiff with the layer permittivities; Mass restricted to the semiconductor."""
    bim = Bim1D(mesh.x)
    bim.assemble_stiff(mesh.permittivity(params.eps_semic, params.eps_ins), np.ones(mesh.n_nodes))
    bim.assemble_mass(mesh.semic_intervals.astype(np.float64), np.ones(mesh.n_nodes))
    return bim


def initial_guess(
    n_nodes: int,
    phi_offset: float,
    V: float,
    previous: Optional[np.ndarray] = None,
    V_previous: float = 0.0,
) -> np.ndarray:
    """
    First step: linear ramp from -(Wf - Ea) at the back contact to
    -(Wf - Ea - V) at the gate. Later steps: previous solution plus the
    ramp 0 → (V - V_previous).
    """
    if previous is None:
        return -np.linspace(phi_offset, phi_offset - V, n_nodes)
    return np.asarray(previous, dtype=np.float64) + np.linspace(0.0, V - V_previous, n_nodes)


def simulate_cv(
    params: DosParameters,
    settings: SolverSettings,
    rule: Optional[QuadratureRule] = None,
    debug: bool = False,
    log: Optional[TextIO] = None,
) -> CVSweep:
    """
    Run the full voltage sweep for one parameter row.

    Raises ConvergenceError (annotated with the failing step and voltage) if
    any Newton solve does not converge; earlier steps are discarded.
    """
    t0 = time.perf_counter()
    tag = f"[sim {params.simulation_no}]"

    mesh = build_mis_mesh(params.t_semic, params.t_ins, params.n_nodes)
    bim = assemble_mis_system(mesh, params)

    if rule is None:
        rule = settings.build_rule()
    charge_model = build_charge_model(settings.dos, params, rule)
    if debug:
        diag.log_quadrature_summary(family=rule.family, nodes=rule.nodes, weights=rule.weights)

    nlp = NonLinearPoisson1D(
        bim,
        max_iterations_no=settings.nlp_max_iterations_no,
        tolerance=settings.nlp_tolerance,
        max_step=settings.nlp_max_step,
        debug=debug,
    )

    V = np.linspace(params.V_min, params.V_max, params.n_steps)
    N, n_semic = mesh.n_nodes, mesh.n_semic
    x_semic = mesh.x[:n_semic]

    phi = np.zeros((V.size, N))
    density = np.zeros((V.size, n_semic))
    c_tot = np.zeros(V.size)
    q_tot = np.zeros(V.size)
    charge_n = np.zeros(V.size)
    norms = []

    logger.info(
        f"{tag} {rule.family} rule with {rule.n_nodes} nodes, "
        f"{N} mesh nodes, {V.size} voltage steps", extra=log,
    )

    for i, Vi in enumerate(V):
        if i == 0:
            seed = initial_guess(N, params.phi_offset, Vi)
        else:
            seed = initial_guess(N, params.phi_offset, Vi, phi[i - 1], V[i - 1])

        try:
            res = nlp.apply(seed, charge_model)
        except ConvergenceError as exc:
            raise exc.at_step(i, float(Vi)) from exc

        phi[i] = res.phi
        c_tot[i] = res.c_tot
        q_tot[i] = res.q_tot
        norms.append(res.norms)

        rho = charge_model.charge(res.phi[:n_semic])
        density[i] = -rho / Q
        charge_n[i] = trapz(rho, x_semic)

        if i == 0 or (i + 1) % 10 == 0 or i == V.size - 1:
            logger.info(
                f"{tag} step {i + 1}/{V.size} V={Vi:+.3f} V | iters={res.iterations} | "
                f"c_tot={res.c_tot:.4e} F/m^2", extra=log,
            )

    elapsed = time.perf_counter() - t0
    logger.info(f"{tag} sweep took {elapsed:.2f} s", extra=log)

    for arr in (V, phi, density, c_tot, q_tot, charge_n):
        arr.setflags(write=False)
    return CVSweep(
        params=params, mesh=mesh, V=V, phi=phi, c_tot=c_tot, q_tot=q_tot,
        density=density, charge_n=charge_n, norms=tuple(norms), elapsed_s=elapsed,
    )
