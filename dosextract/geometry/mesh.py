# dosextract/geometry/mesh.py
"""
1D mesh for a metal / insulator / semiconductor capacitor.

- SI units throughout.
- The semiconductor occupies [-t_semic, 0], the insulator (0, t_ins].
- Node 0 is the grounded back contact, node N-1 the gate.
- A fixed fraction of the nodes (default 0.6) is spent on the semiconductor,
  where the charge lives; the rest resolves the insulator.

Public API:
    Mesh1D
    build_mis_mesh(t_semic, t_ins, n_nodes, semic_fraction=0.6) -> Mesh1D
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from ..utils.constants import EPS0
from ..utils.errors import ConfigurationError

__all__ = ["Mesh1D", "build_mis_mesh"]


@dataclass(frozen=True, slots=True)
class Mesh1D:
    """
    Node coordinates plus the per-interval layer map.

    Attributes
    ----------
    x : (N,) node coordinates [m], strictly increasing
    n_semic : number of nodes in [-t_semic, 0] (the last one sits on the interface)
    """
    x: np.ndarray
    n_semic: int

    @property
    def n_nodes(self) -> int:
        return int(self.x.size)

    @property
    def xm(self) -> np.ndarray:
        """Interval midpoints, shape (N-1,)."""
        return 0.5 * (self.x[1:] + self.x[:-1])

    @property
    def semic_intervals(self) -> np.ndarray:
        """True on intervals that lie in the semiconductor."""
        return self.xm < 0.0

    @property
    def semic_nodes(self) -> np.ndarray:
        return self.x <= 0.0

    def permittivity(self, eps_semic: float, eps_ins: float) -> np.ndarray:
        """Absolute permittivity per interval [F/m]."""
        return np.where(self.semic_intervals, EPS0 * eps_semic, EPS0 * eps_ins)


def build_mis_mesh(
    t_semic: float,
    t_ins: float,
    n_nodes: int,
    semic_fraction: float = 0.6,
) -> Mesh1D:
    """
    Uniform mesh in each layer: floor(fraction * N) nodes on [-t_semic, 0],
    the remaining N - floor(fraction * N) nodes on (0, t_ins].
    """
    if not (t_semic > 0.0 and t_ins > 0.0):
        raise ConfigurationError("layer thicknesses must be > 0")
    if not 0.0 < semic_fraction < 1.0:
        raise ConfigurationError("semic_fraction must lie in (0, 1)")

    n_semic = int(math.floor(semic_fraction * n_nodes))
    n_ins = int(n_nodes) - n_semic
    if n_semic < 2 or n_ins < 1:
        raise ConfigurationError(f"n_nodes={n_nodes} too small to mesh both layers")

    x_semic = np.linspace(-t_semic, 0.0, n_semic)
    x_ins = np.linspace(0.0, t_ins, n_ins + 1)[1:]
    x = np.concatenate([x_semic, x_ins])
    x.setflags(write=False)
    return Mesh1D(x=x, n_semic=n_semic)
