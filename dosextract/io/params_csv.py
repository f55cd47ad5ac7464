# dosextract/io/params_csv.py
# -*- coding: utf-8 -*-
"""
Parameter table ingest → DosParameters, one row per simulation.

CSV columns (26, in this order; the header row is optional):
  simulationNo, t_semic, t_ins, eps_semic, eps_ins, Wf, Ea,
  N0, sigma, N0_2, sigma_2, shift_2, N0_3, sigma_3, shift_3,
  N0_4, sigma_4, shift_4, N0_exp, lambda_exp,
  A_semic, C_sb, nNodes, nSteps, V_min, V_max

Units:
  t_* [m], Wf/Ea [eV], N0_* [m^-3], sigma_*/lambda_exp [kT], shift_* [eV],
  A_semic [m^2], C_sb [F], V_* [V]

The separator (comma, TAB, colon or blank) is sniffed from the file.
"""
from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

import pandas as pd

from ..models.params import DosParameters
from ..utils.constants import T_REF
from ..utils.errors import ConfigurationError

__all__ = ["PARAM_COLUMNS", "load_param_table", "params_from_row", "select_rows"]

PARAM_COLUMNS = (
    "simulationNo", "t_semic", "t_ins", "eps_semic", "eps_ins", "Wf", "Ea",
    "N0", "sigma", "N0_2", "sigma_2", "shift_2", "N0_3", "sigma_3", "shift_3",
    "N0_4", "sigma_4", "shift_4", "N0_exp", "lambda_exp",
    "A_semic", "C_sb", "nNodes", "nSteps", "V_min", "V_max",
)


def load_param_table(csv_path: Path, has_headers: bool = True) -> pd.DataFrame:
    """
    Read the parameter table. With headers the canonical names must all be
    present (extra columns are ignored); without, columns are positional.
    """
    try:
        if has_headers:
            df = pd.read_csv(csv_path, sep=None, engine="python", skipinitialspace=True)
            df.columns = [str(c).strip() for c in df.columns]
        else:
            df = pd.read_csv(csv_path, sep=None, engine="python", header=None,
                             skipinitialspace=True)
            if df.shape[1] != len(PARAM_COLUMNS):
                raise ConfigurationError(
                    f"{csv_path}: expected {len(PARAM_COLUMNS)} columns, found {df.shape[1]}"
                )
            df.columns = list(PARAM_COLUMNS)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise ConfigurationError(f"cannot read parameter table {csv_path}: {exc}") from exc

    missing = [c for c in PARAM_COLUMNS if c not in df.columns]
    if missing:
        raise ConfigurationError(f"{csv_path}: missing columns {missing}")
    if df.empty:
        raise ConfigurationError(f"{csv_path}: parameter table is empty")

    return df.loc[:, list(PARAM_COLUMNS)].astype(float).reset_index(drop=True)


def params_from_row(row: pd.Series, T_K: float = T_REF) -> DosParameters:
    return DosParameters.from_row(row.to_dict(), T_K=T_K)


def select_rows(table: pd.DataFrame, simulate_all: bool, indexes: Sequence[int] = ()) -> List[pd.Series]:
    """All rows, or the 1-based `indexes` in the order given."""
    if simulate_all:
        return [row for _, row in table.iterrows()]

    if not indexes:
        raise ConfigurationError("no rows selected: set simulate_all or give indexes")
    n = len(table)
    rows = []
    for i in indexes:
        if not 1 <= int(i) <= n:
            raise ConfigurationError(f"row index {i} out of range 1..{n}")
        rows.append(table.iloc[int(i) - 1])
    return rows
