"""
dosextract/discretization/fluxes.py

Scharfetter–Gummel (SG) building blocks for the Box Integration Method.
Provides numerically stable Bernoulli functions and the logarithmic mean
used to average nodal coefficients onto mesh intervals.

Sign convention (1-D mesh):
- Nodes increase with index i → i+1 (left → right).
- Interval k lies between nodes k (left) and k+1 (right).
- B(x) = x / (e^x - 1), so that B(-x) - B(x) = x.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np


_BERN_SMALL = 1.0e-2   # Taylor branch for |x| <= _BERN_SMALL
_BERN_LARGE = 80.0     # asymptotic branch for |x| > _BERN_LARGE
_SERIES_TOL = 1.0e-16


def log_mean(x1: np.ndarray, x2: np.ndarray) -> np.ndarray:
    """
    Logarithmic mean (x2 - x1) / ln(x2 / x1), elementwise.

    Degenerate cases: 0 when either entry is 0, x1 when the entries are
    equal, and the arithmetic mean when they differ by less than 100 ulps.
    Inputs must be non-negative and of equal size.
    """
    x1 = np.atleast_1d(np.asarray(x1, dtype=np.float64))
    x2 = np.atleast_1d(np.asarray(x2, dtype=np.float64))
    assert x1.shape == x2.shape, "log_mean: size mismatch"
    assert np.all(x1 >= 0.0) and np.all(x2 >= 0.0), "log_mean: negative input"

    out = np.zeros(x1.shape, dtype=np.float64)

    zero = (x1 == 0.0) | (x2 == 0.0)
    equal = ~zero & (x1 == x2)
    close = ~zero & ~equal & (np.abs(x2 - x1) < 100.0 * np.finfo(np.float64).eps)
    general = ~(zero | equal | close)

    out[equal] = x1[equal]
    out[close] = 0.5 * (x1[close] + x2[close])
    a, b = x1[general], x2[general]
    out[general] = (b - a) / np.log(b / a)
    return out


def _bernoulli_series(x: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    1/B(x) = Σ x^k/(k+1)! and 1/B(-x) = Σ (-x)^k/(k+1)!, summed while the
    increment exceeds _SERIES_TOL.
    """
    fp = np.ones_like(x)
    fn = np.ones_like(x)
    df = np.ones_like(x)
    j = 1.0
    sign = 1.0
    while np.any(np.abs(df) > _SERIES_TOL):
        j += 1.0
        sign = -sign
        df = df * x / j
        fp += df
        fn += sign * df
    return 1.0 / fp, 1.0 / fn


def bernoulli(x: np.ndarray | float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Return (B(x), B(-x)) elementwise, piecewise:
      x == 0        : (1, 1)
      |x| > 80      : asymptotes (0, x) for x > 0, (-x, 0) for x < 0
      0.01 < |x|    : B(x) = x / (e^x - 1), B(-x) = x + B(x)
      |x| <= 0.01   : Taylor series (avoids cancellation in e^x - 1)
    """
    x = np.atleast_1d(np.asarray(x, dtype=np.float64))
    bp = np.ones_like(x)
    bn = np.ones_like(x)
    ax = np.abs(x)

    big_pos = (ax > _BERN_LARGE) & (x > 0.0)
    big_neg = (ax > _BERN_LARGE) & (x < 0.0)
    bp[big_pos] = 0.0
    bn[big_pos] = x[big_pos]
    bp[big_neg] = -x[big_neg]
    bn[big_neg] = 0.0

    mid = (ax <= _BERN_LARGE) & (ax > _BERN_SMALL)
    xm = x[mid]
    bp[mid] = xm / np.expm1(xm)
    bn[mid] = xm + bp[mid]

    small = (ax <= _BERN_SMALL) & (x != 0.0)
    if np.any(small):
        bp[small], bn[small] = _bernoulli_series(x[small])

    return bp, bn

