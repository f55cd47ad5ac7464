# -*- coding: utf-8 -*-
"""
Load experimental C–V datasets for comparison with simulations.

CSV schema:
  with headers : Vg [V], C [F] (further columns ignored)
  headerless   : first column V, second column C

Rows are returned sorted by Vg; downstream interpolation needs a monotonic
grid.
"""
from pathlib import Path

import pandas as pd

from ..utils.errors import ConfigurationError


def load_cv(csv_path: Path, has_headers: bool = True) -> pd.DataFrame:
    if has_headers:
        df = pd.read_csv(csv_path, sep=None, engine="python", skipinitialspace=True)
        df.columns = [str(c).strip() for c in df.columns]
    else:
        df = pd.read_csv(csv_path, sep=None, engine="python", header=None,
                         skipinitialspace=True)
        if df.shape[1] < 2:
            raise ConfigurationError(f"{csv_path}: need at least 2 columns (V, C)")
        df = df.iloc[:, :2]
        df.columns = ["Vg", "C"]

    if not {"Vg", "C"}.issubset(df.columns):
        raise ConfigurationError(f"{csv_path}: CV CSV must have Vg,C columns")
    if len(df) < 2:
        raise ConfigurationError(f"{csv_path}: need at least 2 C-V points")

    df = df.loc[:, ["Vg", "C"]].astype(float)
    return df.sort_values("Vg", kind="mergesort").reset_index(drop=True)
