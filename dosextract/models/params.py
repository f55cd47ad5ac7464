# -*- coding: utf-8 -*-
"""
DosParameters: one row of the parameter table, in SI units.

Row conventions (columns of the parameter CSV):
  - thicknesses in m, relative permittivities, Wf/Ea in eV,
  - N0_* in m^-3,
  - sigma_* and lambda_exp in units of K_B*T,
  - shift_* in eV (energy shift of the lobe with respect to the first one),
  - A_semic in m^2, C_sb in F.

Internally sigma_*/lambda_exp are energies [J] and shift_* are potential
shifts [V] added to phi before evaluating the lobe.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Mapping, Tuple

from ..utils.constants import T_REF, thermal_energy
from ..utils.errors import ConfigurationError

__all__ = ["GaussianLobe", "DosParameters"]


@dataclass(frozen=True, slots=True)
class GaussianLobe:
    N0: float         # [m^-3]
    sigma: float      # [J]
    shift: float      # [V] added to phi


@dataclass(frozen=True, slots=True)
class DosParameters:
    simulation_no: int
    t_semic: float        # [m]
    t_ins: float          # [m]
    eps_semic: float      # relative
    eps_ins: float        # relative
    Wf: float             # work function [eV]
    Ea: float             # electron affinity [eV]
    N0: float
    sigma: float          # [J]
    N0_2: float = 0.0
    sigma_2: float = 0.0
    shift_2: float = 0.0  # [V]
    N0_3: float = 0.0
    sigma_3: float = 0.0
    shift_3: float = 0.0
    N0_4: float = 0.0
    sigma_4: float = 0.0
    shift_4: float = 0.0
    N0_exp: float = 0.0
    lambda_exp: float = 0.0   # [J]
    A_semic: float = 1.0      # [m^2]
    C_sb: float = 0.0         # stray capacitance [F]
    n_nodes: int = 101
    n_steps: int = 41
    V_min: float = -2.0
    V_max: float = 2.0
    T: float = T_REF

    def __post_init__(self) -> None:
        if self.simulation_no <= 0:
            raise ConfigurationError("simulation_no must be > 0")
        if not (self.t_semic > 0.0 and self.t_ins > 0.0):
            raise ConfigurationError("layer thicknesses must be > 0")
        if not (self.eps_semic > 0.0 and self.eps_ins > 0.0):
            raise ConfigurationError("relative permittivities must be > 0")
        for name in ("N0", "N0_2", "N0_3", "N0_4", "N0_exp"):
            if getattr(self, name) < 0.0:
                raise ConfigurationError(f"{name} must be >= 0")
        for name in ("sigma", "sigma_2", "sigma_3", "sigma_4", "lambda_exp"):
            if getattr(self, name) < 0.0:
                raise ConfigurationError(f"{name} must be >= 0")
        if self.n_nodes < 3:
            raise ConfigurationError("n_nodes must be >= 3")
        if self.n_steps < 1:
            raise ConfigurationError("n_steps must be >= 1")
        if self.T <= 0.0:
            raise ConfigurationError("temperature must be > 0")

    # ---- derived -----------------------------------------------------------

    @property
    def kT(self) -> float:
        return thermal_energy(self.T)

    @property
    def phi_offset(self) -> float:
        """Wf - Ea [V]: potential drop imposed across the stack at V = 0."""
        return self.Wf - self.Ea

    def gaussian_lobes(self) -> Tuple[GaussianLobe, ...]:
        """First lobe always; lobes 2..4 only when their N0 > 0."""
        lobes = [GaussianLobe(self.N0, self.sigma, 0.0)]
        for N0, sigma, shift in (
            (self.N0_2, self.sigma_2, self.shift_2),
            (self.N0_3, self.sigma_3, self.shift_3),
            (self.N0_4, self.sigma_4, self.shift_4),
        ):
            if N0 > 0.0:
                lobes.append(GaussianLobe(N0, sigma, shift))
        return tuple(lobes)

    # ---- updated copies (used by the sigma fit) ----------------------------

    def with_sigma(self, sigma: float) -> "DosParameters":
        return replace(self, sigma=float(sigma))

    def with_c_sb(self, C_sb: float) -> "DosParameters":
        return replace(self, C_sb=float(C_sb))

    def with_t_semic(self, t_semic: float) -> "DosParameters":
        return replace(self, t_semic=float(t_semic))

    # ---- row conversion ----------------------------------------------------

    @classmethod
    def from_row(cls, row: Mapping[str, float], T_K: float = T_REF) -> "DosParameters":
        """Build from a parameter-table row (normalized units, see module doc)."""
        kT = thermal_energy(T_K)
        try:
            return cls(
                simulation_no=int(row["simulationNo"]),
                t_semic=float(row["t_semic"]),
                t_ins=float(row["t_ins"]),
                eps_semic=float(row["eps_semic"]),
                eps_ins=float(row["eps_ins"]),
                Wf=float(row["Wf"]),
                Ea=float(row["Ea"]),
                N0=float(row["N0"]),
                sigma=float(row["sigma"]) * kT,
                N0_2=float(row["N0_2"]),
                sigma_2=float(row["sigma_2"]) * kT,
                shift_2=-float(row["shift_2"]),
                N0_3=float(row["N0_3"]),
                sigma_3=float(row["sigma_3"]) * kT,
                shift_3=-float(row["shift_3"]),
                N0_4=float(row["N0_4"]),
                sigma_4=float(row["sigma_4"]) * kT,
                shift_4=-float(row["shift_4"]),
                N0_exp=float(row["N0_exp"]),
                lambda_exp=float(row["lambda_exp"]) * kT,
                A_semic=float(row["A_semic"]),
                C_sb=float(row["C_sb"]),
                n_nodes=int(row["nNodes"]),
                n_steps=int(row["nSteps"]),
                V_min=float(row["V_min"]),
                V_max=float(row["V_max"]),
                T=float(T_K),
            )
        except KeyError as exc:
            raise ConfigurationError(f"parameter row is missing column {exc}") from exc
