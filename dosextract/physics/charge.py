# dosextract/physics/charge.py
"""
Charge constitutive models (SI units) for the non-linear Poisson problem.

The semiconductor holds electrons only, distributed over a density of states
g(E). With Fermi-Dirac occupation f(t) = 1/(1+e^t),

    n(phi) = ∫ g(E) f((E - q phi)/kT) dE,     rho(phi) = -q n(phi)

and the integral is evaluated with a Gaussian quadrature rule:

  Gaussian DOS    g(E) = N0/(sqrt(2 pi) sigma) exp(-E^2/(2 sigma^2)), E = sqrt2 sigma x
                  n    = Σ_i w_i N0/sqrt(pi) f((sqrt2 sigma x_i - q phi)/kT)   [Gauss-Hermite]
  Exponential DOS g(E) = N0/lambda exp(-E/lambda), E >= 0, E = lambda x
                  n    = Σ_i w_i N0 f((lambda x_i - q phi)/kT)                 [Gauss-Laguerre]

Up to three extra Gaussian lobes (N0_j > 0) are added, each evaluated at
phi + shift_j. The potential derivative uses the closed form
d f(t)/d phi = (q/kT) f(t) (1 - f(t)).

dcharge is clamped from above at DCHARGE_CEILING = -exp(-20). This is a
numerical safeguard that keeps the Newton Jacobian diagonal strictly
dominant when the material is fully depleted; it is not a physical bound.

All arrays are float64 & C-contiguous, one value per mesh node.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Literal, Tuple, Union

import numpy as np
from scipy.special import expit

from ..models.params import DosParameters
from ..numerics.quadrature import QuadratureFamily, QuadratureRule
from ..utils.constants import Q, SQRT_2, SQRT_PI
from ..utils.errors import ConfigurationError

__all__ = [
    "DCHARGE_CEILING",
    "DOS_EXPONENTIAL",
    "DOS_GAUSSIAN",
    "GaussianCharge",
    "ExponentialCharge",
    "ChargeModel",
    "build_charge_model",
    "default_quadrature_family",
]

DCHARGE_CEILING = -math.exp(-20.0)

DOS_EXPONENTIAL = 0
DOS_GAUSSIAN = 1


def _c64(a) -> np.ndarray:
    return np.ascontiguousarray(np.asarray(a, dtype=np.float64))


def _occupation_sums(
    phi: np.ndarray,
    width: float,
    rule: QuadratureRule,
    kT: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Σ_i w_i f(t_i) and Σ_i w_i f(t_i)(1 - f(t_i)) for every phi,
    with t_i = (width x_i - q phi) / kT.
    """
    t = (width * rule.nodes[np.newaxis, :] - Q * phi[:, np.newaxis]) / kT
    occ = expit(-t)
    return occ @ rule.weights, (occ * expit(t)) @ rule.weights


def _check_rule(rule: QuadratureRule) -> None:
    assert rule.n_nodes >= 1, "charge model needs a non-empty quadrature rule"
    assert rule.computed, "quadrature rule must be applied before use"


@dataclass(frozen=True)
class GaussianCharge:
    """Sum of up to four Gaussian DOS lobes (Gauss-Hermite rule)."""

    params: DosParameters
    rule: QuadratureRule
    kind: Literal["gaussian"] = "gaussian"

    def __post_init__(self) -> None:
        _check_rule(self.rule)

    def _lobe(self, phi: np.ndarray, N0: float, sigma: float) -> Tuple[np.ndarray, np.ndarray]:
        kT = self.params.kT
        s0, s1 = _occupation_sums(phi, SQRT_2 * sigma, self.rule, kT)
        scale = N0 / SQRT_PI
        return scale * s0, scale * (Q / kT) * s1

    def density(self, phi: np.ndarray) -> np.ndarray:
        """Electron density n(phi) [m^-3], all active lobes."""
        phi = _c64(phi)
        n = np.zeros_like(phi)
        for lobe in self.params.gaussian_lobes():
            n += self._lobe(phi + lobe.shift, lobe.N0, lobe.sigma)[0]
        return n

    def charge(self, phi: np.ndarray) -> np.ndarray:
        """rho(phi) = -q n(phi) [C/m^3]."""
        return -Q * self.density(phi)

    def dcharge(self, phi: np.ndarray) -> np.ndarray:
        """d rho / d phi [C/(m^3 V)], clamped at DCHARGE_CEILING."""
        phi = _c64(phi)
        dn = np.zeros_like(phi)
        for lobe in self.params.gaussian_lobes():
            dn += self._lobe(phi + lobe.shift, lobe.N0, lobe.sigma)[1]
        return np.minimum(-Q * dn, DCHARGE_CEILING)


@dataclass(frozen=True)
class ExponentialCharge:
    """Single exponential DOS tail (Gauss-Laguerre rule)."""

    params: DosParameters
    rule: QuadratureRule
    kind: Literal["exponential"] = "exponential"

    def __post_init__(self) -> None:
        _check_rule(self.rule)

    def _sums(self, phi: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        kT = self.params.kT
        s0, s1 = _occupation_sums(_c64(phi), self.params.lambda_exp, self.rule, kT)
        N0 = self.params.N0_exp
        return N0 * s0, N0 * (Q / kT) * s1

    def density(self, phi: np.ndarray) -> np.ndarray:
        return self._sums(phi)[0]

    def charge(self, phi: np.ndarray) -> np.ndarray:
        return -Q * self.density(phi)

    def dcharge(self, phi: np.ndarray) -> np.ndarray:
        return np.minimum(-Q * self._sums(phi)[1], DCHARGE_CEILING)


ChargeModel = Union[GaussianCharge, ExponentialCharge]


def default_quadrature_family(dos: int) -> QuadratureFamily:
    """Rule whose kernel matches the DOS shape."""
    if dos == DOS_GAUSSIAN:
        return "hermite"
    if dos == DOS_EXPONENTIAL:
        return "laguerre"
    raise ConfigurationError(f'wrong "DOS" selector {dos!r} (only 1 or 0 allowed)')


def build_charge_model(dos: int, params: DosParameters, rule: QuadratureRule) -> ChargeModel:
    """Pick the constitutive relation once, from the DOS selector (0/1)."""
    if dos == DOS_GAUSSIAN:
        return GaussianCharge(params, rule)
    if dos == DOS_EXPONENTIAL:
        return ExponentialCharge(params, rule)
    raise ConfigurationError(f'wrong "DOS" selector {dos!r} (only 1 or 0 allowed)')
