# dosextract/utils/constants.py
from __future__ import annotations

import math

__all__ = ["Q", "K_B", "EPS0", "T_REF", "SQRT_PI", "SQRT_2", "thermal_energy"]

# Fundamental constants (SI)
Q    = 1.602176634e-19       # elementary charge [C]
K_B  = 1.380649e-23          # Boltzmann constant [J/K]
EPS0 = 8.8541878128e-12      # vacuum permittivity [F/m]
T_REF = 300.0                # reference temperature [K]

SQRT_PI = math.sqrt(math.pi)
SQRT_2  = math.sqrt(2.0)


def thermal_energy(T_K: float = T_REF) -> float:
    """K_B * T [J]."""
    return K_B * float(T_K)
