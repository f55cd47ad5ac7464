# -*- coding: utf-8 -*-
"""Parameter table and experimental C–V ingest."""
import numpy as np
import pandas as pd
import pytest

from dosextract.io.experimental_csv import load_cv
from dosextract.io.params_csv import PARAM_COLUMNS, load_param_table, params_from_row, select_rows
from dosextract.utils.constants import K_B, T_REF
from dosextract.utils.errors import ConfigurationError

ROW_1 = [1, 1e-7, 5e-8, 3.0, 3.9, 4.3, 3.3,
         1e24, 3.0, 5e23, 2.0, 0.1, 0.0, 1.0, 0.0,
         0.0, 0.0, 0.0, 1e22, 1.5,
         1e-6, 2e-12, 101, 41, -2.0, 2.0]
ROW_2 = [2, 2e-7, 5e-8, 3.0, 3.9, 4.3, 3.3,
         2e24, 4.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0,
         0.0, 0.0, 0.0, 0.0, 0.0,
         1e-6, 0.0, 81, 21, -1.0, 3.0]


def _write_table(tmp_path, header=True, sep=","):
    df = pd.DataFrame([ROW_1, ROW_2], columns=list(PARAM_COLUMNS))
    p = tmp_path / "params.csv"
    df.to_csv(p, index=False, header=header, sep=sep)
    return p


@pytest.mark.parametrize("sep", [",", "\t"])
def test_table_with_headers(tmp_path, sep):
    table = load_param_table(_write_table(tmp_path, sep=sep), has_headers=True)
    assert list(table.columns) == list(PARAM_COLUMNS)
    assert len(table) == 2
    assert table.loc[1, "N0"] == pytest.approx(2e24)


def test_table_without_headers(tmp_path):
    table = load_param_table(_write_table(tmp_path, header=False), has_headers=False)
    assert table.loc[0, "lambda_exp"] == pytest.approx(1.5)
    assert table.loc[1, "nNodes"] == 81


def test_headerless_wrong_width(tmp_path):
    p = tmp_path / "params.csv"
    p.write_text("1,2,3\n4,5,6\n")
    with pytest.raises(ConfigurationError):
        load_param_table(p, has_headers=False)


def test_missing_column(tmp_path):
    df = pd.DataFrame([ROW_1], columns=list(PARAM_COLUMNS)).drop(columns=["sigma"])
    p = tmp_path / "params.csv"
    df.to_csv(p, index=False)
    with pytest.raises(ConfigurationError):
        load_param_table(p)


def test_unit_conversion(tmp_path):
    table = load_param_table(_write_table(tmp_path))
    params = params_from_row(table.iloc[0])
    kT = K_B * T_REF
    assert params.simulation_no == 1
    assert params.sigma == pytest.approx(3.0 * kT)
    assert params.sigma_2 == pytest.approx(2.0 * kT)
    assert params.lambda_exp == pytest.approx(1.5 * kT)
    assert params.shift_2 == pytest.approx(-0.1)
    assert params.phi_offset == pytest.approx(1.0)
    assert params.n_nodes == 101 and params.n_steps == 41
    # lobe 3 has sigma but no N0, so it stays inactive
    assert len(params.gaussian_lobes()) == 2

    hot = params_from_row(table.iloc[0], T_K=600.0)
    assert hot.sigma == pytest.approx(2.0 * params.sigma)


def test_select_rows(tmp_path):
    table = load_param_table(_write_table(tmp_path))
    assert [int(r["simulationNo"]) for r in select_rows(table, True)] == [1, 2]
    assert [int(r["simulationNo"]) for r in select_rows(table, False, [2, 1])] == [2, 1]
    with pytest.raises(ConfigurationError):
        select_rows(table, False, [])
    with pytest.raises(ConfigurationError):
        select_rows(table, False, [3])
    with pytest.raises(ConfigurationError):
        select_rows(table, False, [0])


def test_invalid_row_values(tmp_path):
    bad = list(ROW_1)
    bad[PARAM_COLUMNS.index("t_semic")] = -1e-7
    df = pd.DataFrame([bad], columns=list(PARAM_COLUMNS))
    p = tmp_path / "params.csv"
    df.to_csv(p, index=False)
    with pytest.raises(ConfigurationError):
        params_from_row(load_param_table(p).iloc[0])


def test_experimental_cv_sorted(tmp_path):
    p = tmp_path / "experim.csv"
    p.write_text("Vg,C,extra\n1.0,3e-12,0\n-1.0,1e-12,0\n0.0,2e-12,0\n")
    df = load_cv(p)
    assert list(df.columns) == ["Vg", "C"]
    assert np.array_equal(df["Vg"].to_numpy(), [-1.0, 0.0, 1.0])
    assert np.allclose(df["C"].to_numpy(), [1e-12, 2e-12, 3e-12])


def test_experimental_cv_headerless(tmp_path):
    p = tmp_path / "experim.txt"
    p.write_text("0.5\t2e-12\n-0.5\t1e-12\n")
    df = load_cv(p, has_headers=False)
    assert np.array_equal(df["Vg"].to_numpy(), [-0.5, 0.5])


def test_experimental_cv_rejects_bad_files(tmp_path):
    p = tmp_path / "experim.csv"
    p.write_text("V,Cap\n0.0,1.0\n1.0,2.0\n")
    with pytest.raises(ConfigurationError):
        load_cv(p)
    p.write_text("Vg,C\n0.0,1.0\n")
    with pytest.raises(ConfigurationError):
        load_cv(p)
