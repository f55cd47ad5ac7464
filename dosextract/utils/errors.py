# dosextract/utils/errors.py
"""
Exception taxonomy shared by the numerical core and the workflows.

- ConfigurationError : bad knobs or parameter rows; fatal, never retried.
- ConvergenceError   : an iterative method ran out of iterations. Carries the
                       residual history and the last iterate.
- SingularSystemError: the direct sparse solve could not factorize.
"""
from __future__ import annotations

from typing import Optional

import numpy as np

__all__ = ["ConfigurationError", "ConvergenceError", "SingularSystemError"]


class ConfigurationError(ValueError):
    pass


class ConvergenceError(RuntimeError):
    def __init__(
        self,
        message: str,
        *,
        norms: Optional[np.ndarray] = None,
        phi: Optional[np.ndarray] = None,
        step: Optional[int] = None,
        voltage: Optional[float] = None,
    ) -> None:
        super().__init__(message)
        self.norms = np.zeros(0) if norms is None else np.asarray(norms, dtype=np.float64)
        self.phi = phi
        self.step = step
        self.voltage = voltage

    def __reduce__(self):
        # Keyword-only context must survive pickling across worker processes.
        return (
            _rebuild_convergence_error,
            (str(self), self.norms, self.phi, self.step, self.voltage),
        )

    def at_step(self, step: int, voltage: float) -> "ConvergenceError":
        """Copy of this error annotated with the sweep position."""
        return ConvergenceError(
            f"voltage step {step} (V={voltage:+.4f} V): {self}",
            norms=self.norms, phi=self.phi, step=step, voltage=voltage,
        )


class SingularSystemError(RuntimeError):
    pass


def _rebuild_convergence_error(message, norms, phi, step, voltage) -> ConvergenceError:
    return ConvergenceError(message, norms=norms, phi=phi, step=step, voltage=voltage)
