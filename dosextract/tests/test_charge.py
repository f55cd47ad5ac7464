# dosextract/tests/test_charge.py
"""
Charge constitutive relations: derivative consistency, the dcharge ceiling,
limits of full occupation/depletion, and extra Gaussian lobes.
"""
from __future__ import annotations

import numpy as np
import pytest

from dosextract.models.params import DosParameters
from dosextract.numerics.quadrature import QuadratureRule
from dosextract.physics.charge import (
    DCHARGE_CEILING,
    DOS_EXPONENTIAL,
    DOS_GAUSSIAN,
    ExponentialCharge,
    GaussianCharge,
    build_charge_model,
    default_quadrature_family,
)
from dosextract.utils.constants import K_B, Q, T_REF
from dosextract.utils.errors import ConfigurationError

KT = K_B * T_REF


def _params(**kw) -> DosParameters:
    base = dict(
        simulation_no=1, t_semic=100e-9, t_ins=100e-9, eps_semic=3.0, eps_ins=3.9,
        Wf=4.3, Ea=3.3, N0=1e24, sigma=3.0 * KT, N0_exp=1e24, lambda_exp=KT,
    )
    base.update(kw)
    return DosParameters(**base)


@pytest.fixture(scope="module")
def hermite():
    return QuadratureRule("hermite", 101).apply()


@pytest.fixture(scope="module")
def laguerre():
    return QuadratureRule("laguerre", 40).apply()


def test_dcharge_never_above_ceiling(hermite, laguerre):
    phi = np.linspace(-5.0, 5.0, 401)
    for model in (GaussianCharge(_params(), hermite), ExponentialCharge(_params(), laguerre)):
        d = model.dcharge(phi)
        assert np.all(d <= DCHARGE_CEILING)
        assert np.all(np.isfinite(d))


def test_dcharge_clamped_when_depleted(hermite, laguerre):
    phi = np.full(5, -3.0)
    assert np.all(GaussianCharge(_params(), hermite).dcharge(phi) == DCHARGE_CEILING)
    assert np.all(ExponentialCharge(_params(), laguerre).dcharge(phi) == DCHARGE_CEILING)


@pytest.mark.parametrize("phi0", [-0.1, 0.0, 0.05, 0.2])
def test_gaussian_dcharge_matches_finite_difference(hermite, phi0):
    model = GaussianCharge(_params(), hermite)
    h = 1e-6
    phi = np.array([phi0])
    fd = (model.charge(phi + h) - model.charge(phi - h)) / (2.0 * h)
    assert model.dcharge(phi)[0] == pytest.approx(fd[0], rel=1e-5)


@pytest.mark.parametrize("phi0", [0.0, 0.05, 0.15])
def test_exponential_dcharge_matches_finite_difference(laguerre, phi0):
    model = ExponentialCharge(_params(), laguerre)
    h = 1e-6
    phi = np.array([phi0])
    fd = (model.charge(phi + h) - model.charge(phi - h)) / (2.0 * h)
    assert model.dcharge(phi)[0] == pytest.approx(fd[0], rel=1e-5)


def test_full_occupation_limit(hermite, laguerre):
    phi = np.array([2.0])
    assert GaussianCharge(_params(), hermite).density(phi)[0] == pytest.approx(1e24, rel=1e-6)
    assert ExponentialCharge(_params(), laguerre).density(phi)[0] == pytest.approx(1e24, rel=1e-6)


def test_charge_is_negative_electron_density(hermite):
    model = GaussianCharge(_params(), hermite)
    phi = np.linspace(-0.5, 0.5, 11)
    assert np.allclose(model.charge(phi), -Q * model.density(phi))
    assert np.all(np.diff(model.density(phi)) > 0.0)


def test_inactive_lobes_leave_charge_unchanged(hermite):
    phi = np.linspace(-1.0, 1.0, 57)
    plain = GaussianCharge(_params(), hermite)
    ghost = GaussianCharge(
        _params(sigma_2=2.0 * KT, shift_2=0.3, sigma_3=KT, shift_3=-0.2, sigma_4=5.0 * KT, shift_4=0.1),
        hermite,
    )
    assert np.array_equal(plain.charge(phi), ghost.charge(phi))
    assert np.array_equal(plain.dcharge(phi), ghost.dcharge(phi))


def test_second_lobe_is_first_lobe_shifted(hermite):
    phi = np.linspace(-0.6, 0.6, 31)
    shift = 0.25
    one = GaussianCharge(_params(), hermite)
    two = GaussianCharge(_params(N0_2=1e24, sigma_2=3.0 * KT, shift_2=shift), hermite)
    assert np.allclose(two.charge(phi), one.charge(phi) + one.charge(phi + shift), rtol=1e-12)


def test_evaluation_is_deterministic(hermite):
    model = GaussianCharge(_params(), hermite)
    phi = np.linspace(-1.0, 1.0, 101)
    assert np.array_equal(model.charge(phi), model.charge(phi.copy()))
    assert np.array_equal(model.dcharge(phi), model.dcharge(phi.copy()))


def test_factory_and_default_families(hermite):
    assert isinstance(build_charge_model(DOS_GAUSSIAN, _params(), hermite), GaussianCharge)
    assert default_quadrature_family(DOS_GAUSSIAN) == "hermite"
    assert default_quadrature_family(DOS_EXPONENTIAL) == "laguerre"
    with pytest.raises(ConfigurationError):
        build_charge_model(2, _params(), hermite)
    with pytest.raises(ConfigurationError):
        default_quadrature_family(-1)


def test_unapplied_rule_is_rejected():
    with pytest.raises(AssertionError):
        GaussianCharge(_params(), QuadratureRule("hermite", 11))
