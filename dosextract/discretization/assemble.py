# dosextract/discretization/assemble.py
# Box Integration Method (BIM) matrices on a non-uniform 1-D mesh.
#
# - PdeSolver1D holds the mesh and the assembled Stiff/Mass operators.
# - Bim1D assembles them with Scharfetter–Gummel stabilization:
#     -d/dx( alpha * gamma * ( eta * du/dx - beta * u ) )   (advection–diffusion)
#     delta * zeta * u                                        (lumped reaction)
# Matrices are scipy.sparse CSR, square with one row per mesh node.

from __future__ import annotations

from typing import Optional

import numpy as np
from scipy import sparse

from .fluxes import bernoulli, log_mean


def _to_f64(x) -> np.ndarray:
    """Return a C-contiguous float64 ndarray without copying if possible."""
    a = np.asarray(x, dtype=np.float64)
    if not a.flags["C_CONTIGUOUS"]:
        a = np.ascontiguousarray(a)
    return a


class PdeSolver1D:
    """Mesh plus the Stiff/Mass operators a discretization produces.

    The operators are assembled once per mesh/material configuration and are
    read-only afterwards; reading them before assembly is a usage error.
    """

    def __init__(self, mesh: np.ndarray) -> None:
        mesh = _to_f64(mesh)
        assert mesh.ndim == 1 and mesh.size >= 3, "mesh needs at least 3 nodes"
        assert np.all(np.diff(mesh) > 0.0), "mesh must be strictly increasing"
        mesh.setflags(write=False)
        self.mesh = mesh
        self.n_nodes = int(mesh.size)
        self._stiff: Optional[sparse.csr_matrix] = None
        self._mass: Optional[sparse.csr_matrix] = None

    @property
    def stiff(self) -> sparse.csr_matrix:
        if self._stiff is None:
            raise RuntimeError("stiffness matrix not assembled")
        return self._stiff

    @property
    def mass(self) -> sparse.csr_matrix:
        if self._mass is None:
            raise RuntimeError("mass matrix not assembled")
        return self._mass

    @property
    def areas(self) -> np.ndarray:
        """Interval lengths, shape (N-1,)."""
        return np.diff(self.mesh)


class Bim1D(PdeSolver1D):
    """BIM / Scharfetter–Gummel assembler."""

    def __init__(self, mesh: np.ndarray) -> None:
        super().__init__(mesh)
        self.adv_diff: Optional[sparse.csr_matrix] = None

    def assemble_adv_diff(
        self,
        alpha: np.ndarray,
        gamma: np.ndarray,
        eta: np.ndarray,
        beta: np.ndarray | float,
    ) -> sparse.csr_matrix:
        """
        Assemble -d/dx( alpha gamma ( eta du/dx - beta u ) ).

        Parameters
        ----------
        alpha : per-interval coefficient, shape (N-1,)
        gamma, eta : per-node coefficients, shape (N,)
        beta : advection term, either scalar (size 1, no advection),
               per-interval velocity (N-1,) or per-node potential (N,)
        """
        N = self.n_nodes
        alpha = _to_f64(alpha)
        gamma = _to_f64(gamma)
        eta = _to_f64(eta)
        beta = np.atleast_1d(_to_f64(beta))

        assert alpha.size == N - 1, "alpha must be defined per interval"
        assert gamma.size == N, "gamma must be defined per node"
        assert eta.size == N, "eta must be defined per node"
        assert beta.size in (1, N - 1, N), "beta must be scalar, per interval or per node"

        area_k = self.areas

        if beta.size == 1:
            v_k = np.zeros(N - 1)
        elif beta.size == N - 1:
            v_k = beta * area_k
        else:
            v_k = beta[1:] - beta[:-1]

        gamma_eta = gamma * eta
        gamma_eta_k = log_mean(gamma_eta[:-1], gamma_eta[1:])
        eta_k = log_mean(eta[:-1], eta[1:])
        d_eta = eta[1:] - eta[:-1]
        c_k = alpha * gamma_eta_k * eta_k / area_k

        bp, bn = bernoulli((v_k - d_eta) / eta_k)

        main = np.zeros(N)
        # Diagonal balances the off-diagonals of its own row (zero row sums);
        # the zero-column-sum variant differs once v - d_eta != 0.
        main[:-1] += c_k * bn
        main[1:] += c_k * bp
        lower = -c_k * bp  # (i+1, i)
        upper = -c_k * bn  # (i, i+1)

        self.adv_diff = sparse.diags(
            [lower, main, upper], offsets=[-1, 0, 1], shape=(N, N), format="csr"
        )
        return self.adv_diff

    def assemble_stiff(self, eps: np.ndarray, kappa: np.ndarray) -> sparse.csr_matrix:
        """Pure diffusion -d/dx( eps kappa du/dx ): eta = 1, beta = 0."""
        self._stiff = self.assemble_adv_diff(eps, kappa, np.ones(self.n_nodes), 0.0)
        return self._stiff

    def assemble_mass(self, delta: np.ndarray, zeta: np.ndarray) -> sparse.csr_matrix:
        """
        Lumped reaction matrix: M_ii = zeta_i * (h_{i-1} + h_i) / 2 with
        h_k = delta_k * area_k; end nodes only see their single interval.
        """
        N = self.n_nodes
        delta = _to_f64(delta)
        zeta = _to_f64(zeta)
        assert delta.size == N - 1, "delta must be defined per interval"
        assert zeta.size == N, "zeta must be defined per node"

        h = delta * self.areas
        diag = np.zeros(N)
        diag[:-1] += 0.5 * h
        diag[1:] += 0.5 * h
        diag *= zeta

        self._mass = sparse.diags(diag, offsets=0, shape=(N, N), format="csr")
        return self._mass
