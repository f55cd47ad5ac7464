# dosextract/tests/test_bim_discretization.py
"""Bernoulli / log-mean helpers and the BIM stiffness and mass operators."""
from __future__ import annotations

import numpy as np
import pytest

from dosextract.discretization.assemble import Bim1D
from dosextract.discretization.fluxes import bernoulli, log_mean


@pytest.mark.parametrize("x", [0.01, 0.011, -0.01, -0.011, 1.0, -2.5, 79.9, 80.1, -79.9, -80.1])
def test_bernoulli_identity_across_branches(x):
    bp, bn = bernoulli(x)
    assert bn[0] - bp[0] == pytest.approx(x, rel=1e-12, abs=1e-14)


def test_bernoulli_at_zero_and_continuity_at_small_branch():
    bp, bn = bernoulli(np.array([0.0]))
    assert bp[0] == 1.0 and bn[0] == 1.0

    lo, hi = bernoulli(np.array([0.01, 0.01 + 1e-12]))
    assert lo[0] == pytest.approx(lo[1], rel=1e-9)
    assert hi[0] == pytest.approx(hi[1], rel=1e-9)


def test_bernoulli_matches_closed_form():
    x = np.array([-3.0, -0.5, 0.005, 0.3, 4.0, 20.0])
    bp, bn = bernoulli(x)
    assert np.allclose(bp, x / np.expm1(x), rtol=1e-13)
    assert np.allclose(bn, -x / np.expm1(-x), rtol=1e-13)


def test_bernoulli_asymptotes():
    bp, bn = bernoulli(np.array([100.0, -100.0]))
    assert bp[0] == 0.0 and bn[0] == 100.0
    assert bp[1] == 100.0 and bn[1] == 0.0


def test_log_mean_cases():
    assert log_mean(0.0, 3.0)[0] == 0.0
    assert log_mean(2.5, 2.5)[0] == 2.5
    a, b = 1.0, 1.0 + 1e-15
    assert log_mean(a, b)[0] == pytest.approx(0.5 * (a + b), rel=1e-15)
    assert log_mean(1.0, np.e)[0] == pytest.approx(np.e - 1.0, rel=1e-14)


def test_log_mean_symmetric_and_between_inputs():
    rng = np.random.default_rng(7)
    x1 = rng.uniform(0.1, 10.0, 50)
    x2 = rng.uniform(0.1, 10.0, 50)
    m12 = log_mean(x1, x2)
    assert np.allclose(m12, log_mean(x2, x1), rtol=1e-9)
    assert np.all(m12 <= np.maximum(x1, x2) * (1.0 + 1e-9))
    assert np.all(m12 >= np.minimum(x1, x2) * (1.0 - 1e-9))


def test_log_mean_rejects_bad_input():
    with pytest.raises(AssertionError):
        log_mean(-1.0, 2.0)
    with pytest.raises(AssertionError):
        log_mean(np.ones(3), np.ones(2))


def _nonuniform_mesh(n=12):
    return np.cumsum(np.r_[0.0, np.linspace(1.0, 3.0, n - 1)]) * 1e-9


def test_stiffness_annihilates_constants_and_is_symmetric():
    x = _nonuniform_mesh()
    bim = Bim1D(x)
    eps = np.linspace(2.0, 5.0, x.size - 1)
    A = bim.assemble_stiff(eps, np.ones(x.size))
    assert np.allclose(A @ np.ones(x.size), 0.0, atol=1e-12 * np.abs(A).max())
    assert np.allclose(A.toarray(), A.toarray().T)
    h = np.diff(x)
    assert A[0, 1] == pytest.approx(-eps[0] / h[0], rel=1e-13)
    assert A[1, 1] == pytest.approx(eps[0] / h[0] + eps[1] / h[1], rel=1e-13)


def test_stiffness_reproduces_linear_profile_flux():
    x = _nonuniform_mesh()
    bim = Bim1D(x)
    A = bim.assemble_stiff(np.full(x.size - 1, 3.0), np.ones(x.size))
    r = A @ x
    assert np.allclose(r[1:-1], 0.0, atol=1e-9)
    assert r[-1] == pytest.approx(3.0, rel=1e-12)


def test_adv_diff_rows_sum_to_zero_with_advection():
    x = np.linspace(0.0, 1.0, 9)
    bim = Bim1D(x)
    beta = np.sin(3.0 * x)
    M = bim.assemble_adv_diff(np.ones(x.size - 1), np.ones(x.size), np.ones(x.size), beta)
    assert np.allclose(np.asarray(M.sum(axis=1)).ravel(), 0.0, atol=1e-12)
    # column sums carry the advection
    assert not np.allclose(np.asarray(M.sum(axis=0)).ravel(), 0.0, atol=1e-6)

    still = Bim1D(x).assemble_adv_diff(
        np.ones(x.size - 1), np.ones(x.size), np.ones(x.size), np.zeros(x.size)
    )
    assert np.allclose(np.asarray(still.sum(axis=0)).ravel(), 0.0, atol=1e-12)


def test_mass_is_lumped_interval_halves():
    x = np.array([0.0, 1.0, 3.0, 6.0])
    bim = Bim1D(x)
    M = bim.assemble_mass(np.array([1.0, 1.0, 0.0]), np.ones(x.size))
    assert np.allclose(M.diagonal(), [0.5, 1.5, 1.0, 0.0])
    assert M.nnz <= x.size


def test_operators_unavailable_before_assembly():
    bim = Bim1D(np.linspace(0.0, 1.0, 5))
    with pytest.raises(RuntimeError):
        _ = bim.stiff
    with pytest.raises(RuntimeError):
        _ = bim.mass


def test_dimension_mismatch_is_rejected():
    bim = Bim1D(np.linspace(0.0, 1.0, 5))
    with pytest.raises(AssertionError):
        bim.assemble_stiff(np.ones(5), np.ones(5))
    with pytest.raises(AssertionError):
        bim.assemble_mass(np.ones(4), np.ones(3))
    with pytest.raises(AssertionError):
        Bim1D(np.array([0.0, 2.0, 1.0]))
