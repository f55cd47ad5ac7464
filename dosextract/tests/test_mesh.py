# dosextract/tests/test_mesh.py
"""Semiconductor / insulator mesh layout."""
from __future__ import annotations

import numpy as np
import pytest

from dosextract.geometry.mesh import build_mis_mesh
from dosextract.utils.constants import EPS0
from dosextract.utils.errors import ConfigurationError


def test_node_split_and_interface():
    mesh = build_mis_mesh(100e-9, 50e-9, 101)
    assert mesh.n_nodes == 101
    assert mesh.n_semic == 60
    assert mesh.x[0] == pytest.approx(-100e-9)
    assert mesh.x[mesh.n_semic - 1] == 0.0
    assert mesh.x[-1] == pytest.approx(50e-9)
    assert np.all(np.diff(mesh.x) > 0.0)
    assert np.count_nonzero(mesh.semic_nodes) == mesh.n_semic


def test_interval_masks_and_permittivity():
    mesh = build_mis_mesh(10e-9, 10e-9, 10)
    assert np.allclose(mesh.xm, 0.5 * (mesh.x[1:] + mesh.x[:-1]))
    assert np.count_nonzero(mesh.semic_intervals) == mesh.n_semic - 1

    eps = mesh.permittivity(3.0, 3.9)
    assert eps.shape == (mesh.n_nodes - 1,)
    assert np.allclose(eps[mesh.semic_intervals], 3.0 * EPS0)
    assert np.allclose(eps[~mesh.semic_intervals], 3.9 * EPS0)


def test_read_only_coordinates():
    mesh = build_mis_mesh(10e-9, 10e-9, 10)
    with pytest.raises(ValueError):
        mesh.x[0] = 0.0


@pytest.mark.parametrize("args", [
    (0.0, 1e-9, 10),
    (1e-9, -1e-9, 10),
    (1e-9, 1e-9, 3),
])
def test_bad_geometry_rejected(args):
    with pytest.raises(ConfigurationError):
        build_mis_mesh(*args)
