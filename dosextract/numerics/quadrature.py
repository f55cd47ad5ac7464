# dosextract/numerics/quadrature.py
"""
Gaussian quadrature rules on infinite domains.

Two families are supported (closed set, picked once at configuration time):

    "hermite"  : ∫_R     e^{-x^2} f(x) dx   (beta0 = sqrt(pi))
    "laguerre" : ∫_[0,∞) e^{-x}   f(x) dx   (beta0 = 1)

Nodes/weights are obtained either by Newton refinement of asymptotic root
guesses on the three-term recurrence ("iterative", the default), or from the
eigendecomposition of the symmetric tridiagonal Jacobi matrix ("eigen").

Typical usage:
    rule = QuadratureRule("hermite", 101)
    rule.apply()
    approx = np.dot(rule.weights, f(rule.nodes))
"""

from __future__ import annotations

import math
from typing import Literal, Optional, Tuple

import numpy as np

from ..utils.constants import SQRT_PI
from ..utils.errors import ConfigurationError, ConvergenceError

__all__ = [
    "QuadratureFamily",
    "QuadratureRule",
    "gauss_hermite_iterative",
    "gauss_laguerre_iterative",
    "gauss_hermite_eigen",
    "gauss_laguerre_eigen",
    "kernel_mass",
]

QuadratureFamily = Literal["hermite", "laguerre"]
Algorithm = Literal["iterative", "eigen"]

_PI_M4 = math.pi ** -0.25
# Relative slack on the zeroth moment of a Newton-built rule
_MASS_RTOL = 1e-8


def kernel_mass(family: QuadratureFamily) -> float:
    """Zeroth moment of the weighting kernel."""
    return SQRT_PI if family == "hermite" else 1.0


def _converged(z: float, z_old: float, tolerance: float) -> bool:
    # Relative once |z| > 1: large Laguerre roots sit above 1/ulp(tolerance).
    return abs(z - z_old) <= tolerance * max(1.0, abs(z))


# ---------------------------------------------------------------------
# Iterative (Newton) algorithms
# ---------------------------------------------------------------------


def _check_rule(
    family: QuadratureFamily, nodes: np.ndarray, weights: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """Reject a Newton-built rule whose roots collapsed or whose weights lost mass."""
    mass = kernel_mass(family)
    total = float(np.sum(weights))
    valid = (
        np.all(np.isfinite(nodes))
        and np.all(np.isfinite(weights))
        and np.all(np.diff(nodes) > 0.0)
        and abs(total - mass) <= _MASS_RTOL * mass
    )
    if not valid:
        raise ConvergenceError(
            f"Gauss-{family.capitalize()} iterative rule with {nodes.size} nodes is degenerate "
            f"(sum of weights {total:.6g}, expected {mass:.6g}); use algorithm 'eigen'"
        )
    return nodes, weights


def gauss_hermite_iterative(
    n_nodes: int,
    max_iterations_no: int = 1000,
    tolerance: float = 1e-14,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Gauss-Hermite nodes and weights by Newton's method.

    The roots are symmetric about the origin, so only ceil(N/2) of them are
    refined, from the largest downwards. The Hermite polynomial is evaluated
    in orthonormal form:
        p_{k+1} = z sqrt(2/(k+1)) p_k - sqrt(k/(k+1)) p_{k-1},  p_0 = pi^{-1/4}
    and its derivative is dp = sqrt(2N) p_{N-1}, so that w = 2 / dp^2.

    For large N the guesses drift onto already-found roots; the finished rule
    is checked and a degenerate one raises ConvergenceError.
    """
    n = int(n_nodes)
    nodes = np.zeros(n, dtype=np.float64)
    weights = np.zeros(n, dtype=np.float64)

    z = 0.0
    dp = 0.0
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        for i in range((n + 1) // 2):
            # Initial guesses for the largest roots
            if i == 0:
                z = math.sqrt(2.0 * n + 1.0) - 1.85575 * (2.0 * n + 1.0) ** -0.16667
            elif i == 1:
                z -= 1.14 * n ** 0.426 / z
            elif i == 2:
                z = 1.86 * z - 0.86 * nodes[n - 1]
            elif i == 3:
                z = 1.91 * z - 0.91 * nodes[n - 2]
            else:
                z = 2.0 * z - nodes[n - i + 1]

            for _ in range(int(max_iterations_no)):
                p1 = _PI_M4
                p2 = 0.0
                for k in range(n):
                    p3 = p2
                    p2 = p1
                    p1 = z * math.sqrt(2.0 / (k + 1.0)) * p2 - math.sqrt(k / (k + 1.0)) * p3
                dp = math.sqrt(2.0 * n) * p2

                z_old = z
                z -= p1 / dp
                if _converged(z, z_old, tolerance):
                    break
            else:
                raise ConvergenceError(
                    f"Gauss-Hermite root {i} did not converge in {max_iterations_no} iterations"
                )

            nodes[i] = -z
            nodes[n - i - 1] = z
            weights[i] = 2.0 / (dp * dp)
            weights[n - i - 1] = weights[i]

    return _check_rule("hermite", nodes, weights)


def gauss_laguerre_iterative(
    n_nodes: int,
    max_iterations_no: int = 1000,
    tolerance: float = 1e-14,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Gauss-Laguerre nodes and weights by Newton's method.

    Recurrence: p_{k+1} = ((2k+1-z) p_k - k p_{k-1}) / (k+1), p_0 = 1.
    Derivative: dp = N (p_N - p_{N-1}) / z;  weight: w = -1 / (dp N p_{N-1}).
    """
    n = int(n_nodes)
    nodes = np.zeros(n, dtype=np.float64)
    weights = np.zeros(n, dtype=np.float64)

    z = 0.0
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        for i in range(n):
            # Initial guesses, smallest root first
            if i == 0:
                z = 3.0 / (1.0 + 2.4 * n)
            elif i == 1:
                z += 15.0 / (1.0 + 2.5 * n)
            else:
                ai = i - 1
                z += ((1.0 + 2.55 * ai) / (1.9 * ai)) * (z - nodes[i - 2])

            p2 = 0.0
            dp = 0.0
            for _ in range(int(max_iterations_no)):
                p1 = 1.0
                p2 = 0.0
                for k in range(n):
                    p3 = p2
                    p2 = p1
                    p1 = ((2.0 * k + 1.0 - z) * p2 - k * p3) / (k + 1.0)
                dp = n * (p1 - p2) / z

                z_old = z
                z -= p1 / dp
                if _converged(z, z_old, tolerance):
                    break
            else:
                raise ConvergenceError(
                    f"Gauss-Laguerre root {i} did not converge in {max_iterations_no} iterations"
                )

            nodes[i] = z
            weights[i] = -1.0 / (dp * n * p2)

    return _check_rule("laguerre", nodes, weights)


# ---------------------------------------------------------------------
# Golub-Welsch (eigendecomposition) algorithms
# ---------------------------------------------------------------------


def _golub_welsch(diag: np.ndarray, offdiag: np.ndarray, beta0: float) -> Tuple[np.ndarray, np.ndarray]:
    jac = np.diag(diag)
    if offdiag.size:
        jac += np.diag(offdiag, k=1) + np.diag(offdiag, k=-1)
    evals, evecs = np.linalg.eigh(jac)
    # eigh returns unit eigenvectors
    weights = beta0 * evecs[0, :] ** 2
    return np.ascontiguousarray(evals), np.ascontiguousarray(weights)


def gauss_hermite_eigen(n_nodes: int) -> Tuple[np.ndarray, np.ndarray]:
    """Jacobi matrix: zero diagonal, off-diagonal sqrt(k/2), k = 1..N-1."""
    k = np.arange(1, int(n_nodes), dtype=np.float64)
    return _golub_welsch(np.zeros(int(n_nodes)), np.sqrt(0.5 * k), kernel_mass("hermite"))


def gauss_laguerre_eigen(n_nodes: int) -> Tuple[np.ndarray, np.ndarray]:
    """Jacobi matrix: diagonal 2k-1 (k = 1..N), off-diagonal k (k = 1..N-1)."""
    k = np.arange(1, int(n_nodes) + 1, dtype=np.float64)
    return _golub_welsch(2.0 * k - 1.0, k[:-1], kernel_mass("laguerre"))


# ---------------------------------------------------------------------
# Rule object
# ---------------------------------------------------------------------


class QuadratureRule:
    """
    Nodes/weights of an N-point Gaussian rule.

    Constructed empty; `apply()` computes the rule once, after which the
    arrays are read-only. Accessing them earlier is a usage error.
    """

    __slots__ = ("family", "n_nodes", "_nodes", "_weights")

    def __init__(self, family: QuadratureFamily, n_nodes: int) -> None:
        if family not in ("hermite", "laguerre"):
            raise ConfigurationError(f"Unknown quadrature family: {family!r}")
        if int(n_nodes) < 1:
            raise ConfigurationError(f"Quadrature rule needs n_nodes >= 1 (got {n_nodes})")
        self.family: QuadratureFamily = family
        self.n_nodes = int(n_nodes)
        self._nodes: Optional[np.ndarray] = None
        self._weights: Optional[np.ndarray] = None

    def __repr__(self) -> str:
        state = "computed" if self.computed else "uncomputed"
        return f"QuadratureRule({self.family!r}, n_nodes={self.n_nodes}, {state})"

    @property
    def computed(self) -> bool:
        return self._nodes is not None

    @property
    def nodes(self) -> np.ndarray:
        if self._nodes is None:
            raise RuntimeError("QuadratureRule.nodes accessed before apply()")
        return self._nodes

    @property
    def weights(self) -> np.ndarray:
        if self._weights is None:
            raise RuntimeError("QuadratureRule.weights accessed before apply()")
        return self._weights

    def apply(
        self,
        max_iterations_no: int = 1000,
        tolerance: float = 1e-14,
        algorithm: Algorithm = "iterative",
    ) -> "QuadratureRule":
        """Compute nodes and weights (once)."""
        if self.computed:
            return self
        if int(max_iterations_no) <= 0:
            raise ConfigurationError("QuadratureRule/maxIterationsNo must be > 0")
        if not float(tolerance) > 0.0:
            raise ConfigurationError("QuadratureRule/tolerance must be > 0")

        if algorithm == "iterative":
            if self.family == "hermite":
                x, w = gauss_hermite_iterative(self.n_nodes, max_iterations_no, tolerance)
            else:
                x, w = gauss_laguerre_iterative(self.n_nodes, max_iterations_no, tolerance)
        elif algorithm == "eigen":
            if self.family == "hermite":
                x, w = gauss_hermite_eigen(self.n_nodes)
            else:
                x, w = gauss_laguerre_eigen(self.n_nodes)
        else:
            raise ConfigurationError(f"Unknown quadrature algorithm: {algorithm!r}")

        x.setflags(write=False)
        w.setflags(write=False)
        self._nodes, self._weights = x, w
        return self

    @classmethod
    def from_config(cls, cfg, family: QuadratureFamily) -> "QuadratureRule":
        """Build and apply a rule from the `QuadratureRule/*` knobs."""
        rule = cls(family, int(cfg.get("QuadratureRule/nNodes", 101)))
        return rule.apply(
            max_iterations_no=int(cfg.get("QuadratureRule/maxIterationsNo", 1000)),
            tolerance=float(cfg.get("QuadratureRule/tolerance", 1e-14)),
            algorithm=str(cfg.get("QuadratureRule/algorithm", "iterative")),
        )

    def integrate(self, values: np.ndarray) -> float:
        """Σ w_i f(x_i) for f already evaluated at the nodes."""
        return float(np.dot(self.weights, np.asarray(values, dtype=np.float64)))
