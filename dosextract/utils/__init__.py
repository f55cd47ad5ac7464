# dosextract/utils/__init__.py
from __future__ import annotations
from .constants import Q, K_B, EPS0, T_REF, SQRT_PI, SQRT_2
from .errors import ConfigurationError, ConvergenceError, SingularSystemError

__all__ = [
    "Q", "K_B", "EPS0", "T_REF", "SQRT_PI", "SQRT_2",
    "ConfigurationError", "ConvergenceError", "SingularSystemError",
]
