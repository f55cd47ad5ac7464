# dosextract/solver/newton.py
# Newton–Raphson solver for the 1-D non-linear Poisson equation
#     Stiff · phi = Mass · rho(phi)
# with Dirichlet values at both ends, followed by the small-signal solve that
# yields the total capacitance.

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy import sparse

from ..discretization.assemble import PdeSolver1D
from ..physics.charge import ChargeModel
from ..utils import diagnostics as diag
from ..utils.errors import ConfigurationError, ConvergenceError
from .linear import solve_linear

__all__ = ["PoissonSolveResult", "NonLinearPoisson1D"]


@dataclass(frozen=True)
class PoissonSolveResult:
    phi: np.ndarray        # converged potential [V], one value per node
    norms: np.ndarray      # max|Δφ| per Newton iteration
    q_tot: float           # charge on the last (gate) node [C/m^2]
    c_tot: float           # d q_tot / d phi[-1] [F/m^2]

    @property
    def iterations(self) -> int:
        return int(self.norms.size)


def _inf_norm(x: np.ndarray) -> float:
    return float(np.linalg.norm(x, ord=np.inf)) if x.size else 0.0


class NonLinearPoisson1D:
    """Newton iteration on the Dirichlet-eliminated interior system.

    Parameters
    ----------
    solver : assembled PdeSolver1D (Stiff and Mass available)
    max_iterations_no : Newton iteration cap (NLP/maxIterationsNo)
    tolerance : stop once max|Δφ| < tolerance [V] (NLP/tolerance)
    max_step : optional clip of |Δφ| [V] per iteration (NLP/maxStep)
    debug : print per-iteration summaries
    """

    def __init__(
        self,
        solver: PdeSolver1D,
        max_iterations_no: int = 100,
        tolerance: float = 1e-6,
        max_step: Optional[float] = None,
        debug: bool = False,
    ) -> None:
        if int(max_iterations_no) <= 0:
            raise ConfigurationError("NLP/maxIterationsNo must be > 0")
        if not float(tolerance) > 0.0:
            raise ConfigurationError("NLP/tolerance must be > 0")
        if max_step is not None and not float(max_step) > 0.0:
            raise ConfigurationError("NLP/maxStep must be > 0")

        N = solver.n_nodes
        assert solver.stiff.shape == (N, N), "Stiff does not match the mesh"
        assert solver.mass.shape == (N, N), "Mass does not match the mesh"

        self.solver = solver
        self.max_iterations_no = int(max_iterations_no)
        self.tolerance = float(tolerance)
        self.max_step = None if max_step is None else float(max_step)
        self.debug = bool(debug)
        self._mass_diag = solver.mass.diagonal()

    # ---- linear algebra helpers -------------------------------------------

    def compute_jacobian(self, dcharge: np.ndarray) -> sparse.csr_matrix:
        """Jac = Stiff - diag(Mass) · dcharge (Mass is lumped)."""
        dcharge = np.asarray(dcharge, dtype=np.float64)
        assert dcharge.size == self.solver.n_nodes, "dcharge does not match the mesh"
        jac = self.solver.stiff - sparse.diags(self._mass_diag * dcharge, format="csr")
        return sparse.csr_matrix(jac)

    def _gate_charge(self, phi: np.ndarray, charge: np.ndarray) -> float:
        N = self.solver.n_nodes
        last_row = self.solver.stiff[N - 1, :].toarray().ravel()
        return float(last_row @ phi - self._mass_diag[N - 1] * charge[N - 1])

    def _capacitance(self, jac: sparse.csr_matrix) -> float:
        """
        Unit boundary excitation u (u[0] = 0, u[-1] = 1), interior from
        Jac_II u_I = -Jac_IB u_B; the capacitance is the last row of Jac
        applied to u.
        """
        N = self.solver.n_nodes
        u = np.linspace(0.0, 1.0, N)
        jac_csc = jac.tocsc()
        boundary = (
            jac_csc[1:N - 1, 0].toarray().ravel() * u[0]
            + jac_csc[1:N - 1, N - 1].toarray().ravel() * u[N - 1]
        )
        u[1:N - 1] = solve_linear(jac_csc[1:N - 1, 1:N - 1], -boundary)
        return float(jac[N - 1, :].toarray().ravel() @ u)

    # ---- main entry point -------------------------------------------------

    def apply(self, init_guess: np.ndarray, charge_model: ChargeModel) -> PoissonSolveResult:
        """Solve from `init_guess`; its end values are the Dirichlet data.

        The seed is copied, never modified.
        """
        N = self.solver.n_nodes
        phi = np.array(init_guess, dtype=np.float64, copy=True)
        assert phi.shape == (N,), "initial guess does not match the mesh"

        stiff = self.solver.stiff
        mass = self.solver.mass
        norms = np.zeros(self.max_iterations_no, dtype=np.float64)

        if self.debug:
            diag.log_solver_start(
                solver="Newton", n_nodes=N,
                phi_min=float(phi.min()), phi_max=float(phi.max()),
            )

        converged = False
        k = 0
        for k in range(self.max_iterations_no):
            charge = charge_model.charge(phi)
            dcharge = charge_model.dcharge(phi)

            res = stiff @ phi - mass @ charge
            jac = self.compute_jacobian(dcharge)

            dphi = -solve_linear(jac[1:N - 1, 1:N - 1], res[1:N - 1])
            if self.max_step is not None:
                np.clip(dphi, -self.max_step, self.max_step, out=dphi)

            phi[1:N - 1] += dphi
            norms[k] = _inf_norm(dphi)

            if self.debug:
                diag.log_solver_iter(
                    solver="Newton", it=k + 1, res_inf=_inf_norm(res[1:N - 1]),
                    max_dphi=norms[k],
                    phi_min=float(phi.min()), phi_max=float(phi.max()),
                )

            if norms[k] < self.tolerance:
                converged = True
                break

        norms = norms[: k + 1].copy()

        if self.debug:
            diag.log_convergence_summary(
                solver="Newton", converged=converged, iters=k + 1,
                last_norm=float(norms[-1]),
            )
            if not converged:
                diag.log_state_summary(phi=phi, charge=charge_model.charge(phi), resid=res[1:N - 1])

        if not converged:
            raise ConvergenceError(
                f"Newton solver did not converge in {self.max_iterations_no} iterations "
                f"(last max|Δφ|={norms[-1]:.3e} V)",
                norms=norms, phi=phi,
            )

        charge = charge_model.charge(phi)
        q_tot = self._gate_charge(phi, charge)

        jac = self.compute_jacobian(charge_model.dcharge(phi))
        c_tot = self._capacitance(jac)

        if self.debug:
            diag.log_capacitance(q_tot=q_tot, c_tot=c_tot)

        phi.setflags(write=False)
        norms.setflags(write=False)
        return PoissonSolveResult(phi=phi, norms=norms, q_tot=q_tot, c_tot=c_tot)
