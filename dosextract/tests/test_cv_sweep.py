# dosextract/tests/test_cv_sweep.py
"""
C–V sweeps through simulate_cv: Gaussian accumulation curve, exponential
deep depletion against the series capacitance, determinism, failure reports.
"""
from __future__ import annotations

import numpy as np
import pytest

from dosextract.io.config import SolverSettings
from dosextract.models.params import DosParameters
from dosextract.physics.charge import DOS_EXPONENTIAL
from dosextract.utils.constants import EPS0, K_B, T_REF
from dosextract.utils.errors import ConvergenceError
from dosextract.workflows.simulate import simulate_cv

KT = K_B * T_REF


def _params(**kw) -> DosParameters:
    base = dict(
        simulation_no=1, t_semic=100e-9, t_ins=100e-9, eps_semic=3.0, eps_ins=3.9,
        Wf=4.3, Ea=3.3, N0=1e24, sigma=3.0 * KT, N0_exp=1e24, lambda_exp=KT,
        n_nodes=101, n_steps=41, V_min=-2.0, V_max=2.0,
    )
    base.update(kw)
    return DosParameters(**base)


@pytest.fixture(scope="module")
def gaussian_sweep():
    return simulate_cv(_params(), SolverSettings(nlp_tolerance=1e-8))


def test_gaussian_sweep_shapes_and_convergence(gaussian_sweep):
    s = gaussian_sweep
    assert s.V.shape == (41,)
    assert s.phi.shape == (41, 101)
    assert s.density.shape == (41, s.mesh.n_semic)
    assert len(s.norms) == 41
    assert all(n[-1] < 1e-8 for n in s.norms)
    assert np.allclose(s.phi[:, 0], -1.0)
    assert np.allclose(s.phi[:, -1], s.V - 1.0)


def test_gaussian_sweep_rises_from_depletion_to_accumulation(gaussian_sweep):
    p = gaussian_sweep.params
    c = gaussian_sweep.c_tot
    C_ins = EPS0 * p.eps_ins / p.t_ins
    C_geo = 1.0 / (p.t_ins / (EPS0 * p.eps_ins) + p.t_semic / (EPS0 * p.eps_semic))

    assert c[0] == pytest.approx(C_geo, rel=1e-3)
    assert c[-1] > 1.3 * c[0]
    assert np.all(c <= C_ins * (1.0 + 1e-6))
    assert np.all(np.diff(c) >= -0.02 * c.max())


def test_gaussian_sweep_charge_bookkeeping(gaussian_sweep):
    s = gaussian_sweep
    # semiconductor charge is electrons only and grows with the gate voltage
    assert np.all(s.density >= 0.0)
    assert np.all(s.charge_n <= 0.0)
    assert s.charge_n[-1] < s.charge_n[0]
    assert np.all(np.diff(s.q_tot) > 0.0)


def test_exponential_deep_depletion_matches_series_capacitance():
    p = _params(V_min=-2.1, V_max=-1.9, n_steps=3)
    settings = SolverSettings(dos=DOS_EXPONENTIAL, quad_family="laguerre", quad_nodes=40,
                              nlp_tolerance=1e-10)
    s = simulate_cv(p, settings)

    C_geo = 1.0 / (p.t_ins / (EPS0 * p.eps_ins) + p.t_semic / (EPS0 * p.eps_semic))
    assert s.c_tot[1] == pytest.approx(C_geo, rel=1e-2)

    dq_dv = (s.q_tot[2] - s.q_tot[0]) / (s.V[2] - s.V[0])
    assert s.c_tot[1] == pytest.approx(dq_dv, rel=1e-2)


def test_sweep_is_deterministic():
    p = _params(n_nodes=41, n_steps=9, V_min=-1.0, V_max=1.0)
    settings = SolverSettings(quad_nodes=31)
    a = simulate_cv(p, settings)
    b = simulate_cv(p, settings)
    assert np.array_equal(a.phi, b.phi)
    assert np.array_equal(a.c_tot, b.c_tot)
    assert np.array_equal(a.q_tot, b.q_tot)


def test_inactive_lobes_give_identical_sweep():
    settings = SolverSettings(quad_nodes=31)
    base = dict(n_nodes=41, n_steps=9, V_min=-1.0, V_max=1.5)
    a = simulate_cv(_params(**base), settings)
    b = simulate_cv(_params(sigma_2=4.0 * KT, shift_2=0.2, sigma_4=KT, shift_4=-0.1, **base), settings)
    assert np.array_equal(a.c_tot, b.c_tot)
    assert np.array_equal(a.phi, b.phi)


def test_failing_step_reports_position():
    p = _params(n_nodes=41, n_steps=5, V_min=-1.0, V_max=1.0)
    settings = SolverSettings(quad_nodes=21, nlp_max_iterations_no=1, nlp_tolerance=1e-14)
    with pytest.raises(ConvergenceError) as info:
        simulate_cv(p, settings)
    assert info.value.step == 0
    assert info.value.voltage == pytest.approx(-1.0)
    assert "voltage step 0" in str(info.value)


def test_shared_rule_is_reused():
    settings = SolverSettings(quad_nodes=21)
    rule = settings.build_rule()
    p = _params(n_nodes=31, n_steps=3, V_min=-1.0, V_max=0.0)
    a = simulate_cv(p, settings, rule=rule)
    b = simulate_cv(p, settings)
    assert np.array_equal(a.c_tot, b.c_tot)
