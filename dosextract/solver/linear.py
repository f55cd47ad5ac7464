# -*- coding: utf-8 -*-
"""
Linear solver backend (sparse direct).
Keep the API tiny so you can swap SciPy/PETSc/etc. later.
"""
from __future__ import annotations

import numpy as np
from scipy import sparse
from scipy.sparse import linalg as spla

from ..utils.errors import SingularSystemError

__all__ = ["solve_linear"]


def solve_linear(A: sparse.spmatrix, b: np.ndarray) -> np.ndarray:
    """Solve A x = b with a sparse LU factorization.

    Raises SingularSystemError when the factorization fails or the solution
    is not finite.
    """
    A = sparse.csc_matrix(A)
    b = np.asarray(b, dtype=np.float64)
    assert A.shape[0] == A.shape[1] == b.shape[0], "solve_linear: dimension mismatch"
    try:
        lu = spla.splu(A)
    except RuntimeError as exc:  # "Factor is exactly singular"
        raise SingularSystemError(f"sparse LU failed: {exc}") from exc
    x = lu.solve(b)
    if not np.all(np.isfinite(x)):
        raise SingularSystemError("sparse LU produced a non-finite solution")
    return x
