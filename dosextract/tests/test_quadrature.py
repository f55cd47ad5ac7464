# dosextract/tests/test_quadrature.py
"""Gauss-Hermite / Gauss-Laguerre rules: sums, symmetry, exactness, algorithm agreement.
Run with:  pytest -q
"""
from __future__ import annotations

import math

import numpy as np
import pytest

from dosextract.io.config import RunConfig
from dosextract.numerics.quadrature import (
    QuadratureRule,
    gauss_hermite_eigen,
    gauss_hermite_iterative,
    gauss_laguerre_iterative,
)
from dosextract.utils.errors import ConfigurationError, ConvergenceError


@pytest.mark.parametrize("n", [1, 2, 5, 20, 101])
def test_hermite_weights_sum_to_sqrt_pi(n):
    rule = QuadratureRule("hermite", n).apply()
    assert np.isclose(rule.weights.sum(), math.sqrt(math.pi), rtol=1e-11)
    assert np.all(rule.weights > 0.0)


@pytest.mark.parametrize("n", [4, 7, 101])
def test_hermite_nodes_symmetric_and_sorted(n):
    rule = QuadratureRule("hermite", n).apply()
    x, w = rule.nodes, rule.weights
    assert np.all(np.diff(x) > 0.0)
    assert np.allclose(x, -x[::-1], atol=1e-13)
    assert np.allclose(w, w[::-1], rtol=1e-12)


def test_hermite_exact_up_to_degree_2n_minus_1():
    n = 10
    x, w = gauss_hermite_iterative(n)
    for m in range(2 * n):
        approx = float(np.dot(w, x ** m))
        if m % 2:
            assert abs(approx) < 1e-10 * math.gamma((m + 2) / 2.0)
        else:
            exact = math.gamma((m + 1) / 2.0)
            assert approx == pytest.approx(exact, rel=1e-10)


@pytest.mark.parametrize("n", [1, 3, 10, 20, 40])
def test_laguerre_weights_sum_to_one_and_nodes_non_negative(n):
    rule = QuadratureRule("laguerre", n).apply()
    assert np.isclose(rule.weights.sum(), 1.0, rtol=1e-11)
    assert np.all(rule.nodes >= 0.0)
    assert np.all(np.diff(rule.nodes) > 0.0)


@pytest.mark.parametrize("n", [1, 4, 12, 20])
def test_laguerre_exact_up_to_degree_2n_minus_1(n):
    x, w = gauss_laguerre_iterative(n)
    for m in range(2 * n):
        approx = float(np.dot(w, x ** m))
        assert approx == pytest.approx(math.factorial(m), rel=1e-9)


def test_single_node_rules():
    h = QuadratureRule("hermite", 1).apply()
    assert h.nodes[0] == pytest.approx(0.0, abs=1e-14)
    assert h.weights[0] == pytest.approx(math.sqrt(math.pi), rel=1e-14)

    lag = QuadratureRule("laguerre", 1).apply()
    assert lag.nodes[0] == pytest.approx(1.0, rel=1e-14)
    assert lag.weights[0] == pytest.approx(1.0, rel=1e-14)


@pytest.mark.parametrize("family", ["hermite", "laguerre"])
def test_iterative_and_eigen_agree(family):
    it = QuadratureRule(family, 16).apply(algorithm="iterative")
    ei = QuadratureRule(family, 16).apply(algorithm="eigen")
    assert np.allclose(it.nodes, ei.nodes, rtol=1e-10, atol=1e-12)
    assert np.allclose(it.weights, ei.weights, rtol=1e-8, atol=1e-14)


def test_eigen_hermite_matches_numpy_reference():
    x_ref, w_ref = np.polynomial.hermite.hermgauss(12)
    x, w = gauss_hermite_eigen(12)
    assert np.allclose(x, x_ref, atol=1e-12)
    assert np.allclose(w, w_ref, rtol=1e-8, atol=1e-14)


def test_laguerre_matches_numpy_reference():
    x_ref, w_ref = np.polynomial.laguerre.laggauss(15)
    x, w = gauss_laguerre_iterative(15)
    assert np.allclose(x, x_ref, rtol=1e-12)
    assert np.allclose(w, w_ref, rtol=1e-8, atol=1e-14)


def test_arrays_unavailable_before_apply_and_read_only_after():
    rule = QuadratureRule("hermite", 5)
    assert not rule.computed
    with pytest.raises(RuntimeError):
        _ = rule.nodes
    with pytest.raises(RuntimeError):
        _ = rule.weights

    rule.apply()
    assert rule.computed
    with pytest.raises(ValueError):
        rule.nodes[0] = 1.0


def test_invalid_construction_and_settings():
    with pytest.raises(ConfigurationError):
        QuadratureRule("legendre", 5)
    with pytest.raises(ConfigurationError):
        QuadratureRule("hermite", 0)
    with pytest.raises(ConfigurationError):
        QuadratureRule("hermite", 5).apply(tolerance=0.0)
    with pytest.raises(ConfigurationError):
        QuadratureRule("hermite", 5).apply(max_iterations_no=0)
    with pytest.raises(ConfigurationError):
        QuadratureRule("hermite", 5).apply(algorithm="magic")


def test_iteration_cap_raises_convergence_error():
    with pytest.raises(ConvergenceError):
        gauss_hermite_iterative(30, max_iterations_no=1, tolerance=1e-15)


def test_from_config_reads_slash_knobs():
    cfg = RunConfig(raw={"QuadratureRule": {"nNodes": 7, "algorithm": "eigen"}})
    rule = QuadratureRule.from_config(cfg, "laguerre")
    assert rule.n_nodes == 7
    assert rule.computed
    assert rule.integrate(np.ones(7)) == pytest.approx(1.0, rel=1e-12)


@pytest.mark.parametrize("family", ["hermite", "laguerre"])
def test_large_rule_iterative_degenerates_loudly_eigen_stays_exact(family):
    mass = math.sqrt(math.pi) if family == "hermite" else 1.0
    with pytest.raises(ConvergenceError):
        QuadratureRule(family, 250).apply(algorithm="iterative")

    rule = QuadratureRule(family, 250).apply(algorithm="eigen")
    assert rule.weights.sum() == pytest.approx(mass, rel=1e-10)
    assert np.all(np.diff(rule.nodes) > 0.0)
    if family == "hermite":
        assert np.allclose(rule.nodes, -rule.nodes[::-1], atol=1e-10)
