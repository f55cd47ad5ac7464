# dosextract/io/config.py
# -*- coding: utf-8 -*-
"""
YAML run configuration → SolverSettings / RunOptions / FitSettings.

Keys are addressed with slash paths ("NLP/tolerance"); the YAML may nest them
or spell them flat. Schema (example):

DOS: 1                      # 1 = Gaussian, 0 = exponential
T_K: 300
input_params: params.csv
input_experim: experim.csv
output_directory: output
hasHeaders: true            # header row in both input tables
simulate_all: false
indexes: [1, 3]             # 1-based rows of the parameter table
nThreads: 4

QuadratureRule:
  nNodes: 101
  maxIterationsNo: 1000
  tolerance: 1.0e-14
  algorithm: iterative      # or eigen
  # method: 1               # 1 = Hermite, 0 = Laguerre (defaults from DOS)

NLP:
  maxIterationsNo: 100
  tolerance: 1.0e-6
  # maxStep: 0.5            # optional Newton step clip [V]

FIT:
  iterationsNo: 3
  nSplits: 3
  errorNorm: 2              # 0 = L2, 1 = H1, 2 = peak
  negative_shift: 1.0       # [kT]
  positive_shift: 1.0       # [kT]
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional, Tuple

import yaml

from ..numerics.quadrature import QuadratureFamily, QuadratureRule
from ..physics.charge import DOS_EXPONENTIAL, DOS_GAUSSIAN, default_quadrature_family
from ..utils.constants import T_REF
from ..utils.errors import ConfigurationError

__all__ = [
    "RunConfig",
    "load_config",
    "apply_overrides",
    "SolverSettings",
    "RunOptions",
    "FitSettings",
    "ERROR_NORMS",
]

_MISSING = object()

ERROR_NORMS = {0: "l2", 1: "h1", 2: "peak"}


class _Loader(yaml.SafeLoader):
    """SafeLoader that also reads dot-less exponents (1e-10) as floats."""


_Loader.add_implicit_resolver(
    "tag:yaml.org,2002:float",
    re.compile(
        r"""^(?:[-+]?(?:[0-9][0-9_]*)\.[0-9_]*(?:[eE][-+]?[0-9]+)?
        |[-+]?(?:[0-9][0-9_]*)(?:[eE][-+]?[0-9]+)
        |\.[0-9_]+(?:[eE][-+]?[0-9]+)?
        |[-+]?\.(?:inf|Inf|INF)
        |\.(?:nan|NaN|NAN))$""",
        re.X,
    ),
    list("-+0123456789."),
)


@dataclass
class RunConfig:
    raw: dict = field(default_factory=dict)
    path: Optional[Path] = None

    def _lookup(self, key: str) -> Any:
        if key in self.raw:
            return self.raw[key]
        node: Any = self.raw
        for part in key.split("/"):
            if not isinstance(node, dict) or part not in node:
                return _MISSING
            node = node[part]
        return node

    def get(self, key: str, default: Any = None) -> Any:
        value = self._lookup(key)
        return default if value is _MISSING or value is None else value

    def has(self, key: str) -> bool:
        return self._lookup(key) is not _MISSING

    def set(self, key: str, value: Any) -> None:
        """Store `value` at a nested slash path (drops a flat alias)."""
        self.raw.pop(key, None)
        parts = key.split("/")
        node = self.raw
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value

    def resolve_path(self, key: str, default: Optional[str] = None) -> Optional[Path]:
        """Path knob, relative to the config file's directory."""
        value = self.get(key, default)
        if value is None:
            return None
        p = Path(str(value)).expanduser()
        if not p.is_absolute() and self.path is not None:
            p = self.path.parent / p
        return p


def load_config(path: Path) -> RunConfig:
    try:
        data = yaml.load(Path(path).read_text(), Loader=_Loader)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"cannot parse {path}: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError("Top-level YAML must be a mapping")
    return RunConfig(raw=data, path=Path(path))


def apply_overrides(cfg: RunConfig, overrides: Iterable[str]) -> RunConfig:
    """Apply KEY=VALUE strings (VALUE parsed as a YAML scalar) in place."""
    for item in overrides or ():
        key, sep, text = str(item).partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigurationError(f"override {item!r} is not KEY=VALUE")
        try:
            value = yaml.load(text, Loader=_Loader)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"override {item!r}: {exc}") from exc
        cfg.set(key, value)
    return cfg


# ---------------------------------------------------------------------
# Typed views
# ---------------------------------------------------------------------


def _as_int(cfg: RunConfig, key: str, default: int) -> int:
    value = cfg.get(key, default)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{key} must be an integer (got {value!r})") from exc


def _as_float(cfg: RunConfig, key: str, default: Optional[float]) -> Optional[float]:
    value = cfg.get(key, default)
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{key} must be a number (got {value!r})") from exc


def _as_bool(cfg: RunConfig, key: str, default: bool) -> bool:
    value = cfg.get(key, default)
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


@dataclass(frozen=True, slots=True)
class SolverSettings:
    """Numerical knobs shared by every simulation of a run."""

    dos: int = DOS_GAUSSIAN
    quad_family: QuadratureFamily = "hermite"
    quad_nodes: int = 101
    quad_max_iterations_no: int = 1000
    quad_tolerance: float = 1e-14
    quad_algorithm: str = "iterative"
    nlp_max_iterations_no: int = 100
    nlp_tolerance: float = 1e-6
    nlp_max_step: Optional[float] = None
    T: float = T_REF

    def __post_init__(self) -> None:
        if self.dos not in (DOS_EXPONENTIAL, DOS_GAUSSIAN):
            raise ConfigurationError(f'wrong "DOS" selector {self.dos!r} (only 1 or 0 allowed)')
        if self.quad_family not in ("hermite", "laguerre"):
            raise ConfigurationError(f"Unknown quadrature family: {self.quad_family!r}")
        if self.quad_nodes < 1:
            raise ConfigurationError("QuadratureRule/nNodes must be >= 1")
        if self.quad_max_iterations_no <= 0:
            raise ConfigurationError("QuadratureRule/maxIterationsNo must be > 0")
        if not self.quad_tolerance > 0.0:
            raise ConfigurationError("QuadratureRule/tolerance must be > 0")
        if self.quad_algorithm not in ("iterative", "eigen"):
            raise ConfigurationError(f"Unknown quadrature algorithm: {self.quad_algorithm!r}")
        if self.nlp_max_iterations_no <= 0:
            raise ConfigurationError("NLP/maxIterationsNo must be > 0")
        if not self.nlp_tolerance > 0.0:
            raise ConfigurationError("NLP/tolerance must be > 0")
        if self.nlp_max_step is not None and not self.nlp_max_step > 0.0:
            raise ConfigurationError("NLP/maxStep must be > 0")
        if not self.T > 0.0:
            raise ConfigurationError("T_K must be > 0")

    @classmethod
    def from_config(cls, cfg: RunConfig) -> "SolverSettings":
        dos = _as_int(cfg, "DOS", DOS_GAUSSIAN)
        family = default_quadrature_family(dos)
        if cfg.has("QuadratureRule/method") and cfg.get("QuadratureRule/method") is not None:
            method = _as_int(cfg, "QuadratureRule/method", 1)
            if method not in (0, 1):
                raise ConfigurationError(
                    f'wrong "QuadratureRule/method" {method!r} (1 = Hermite, 0 = Laguerre)'
                )
            family = "hermite" if method == 1 else "laguerre"

        return cls(
            dos=dos,
            quad_family=family,
            quad_nodes=_as_int(cfg, "QuadratureRule/nNodes", 101),
            quad_max_iterations_no=_as_int(cfg, "QuadratureRule/maxIterationsNo", 1000),
            quad_tolerance=_as_float(cfg, "QuadratureRule/tolerance", 1e-14),
            quad_algorithm=str(cfg.get("QuadratureRule/algorithm", "iterative")).lower(),
            nlp_max_iterations_no=_as_int(cfg, "NLP/maxIterationsNo", 100),
            nlp_tolerance=_as_float(cfg, "NLP/tolerance", 1e-6),
            nlp_max_step=_as_float(cfg, "NLP/maxStep", None),
            T=_as_float(cfg, "T_K", T_REF),
        )

    def build_rule(self) -> QuadratureRule:
        """Quadrature rule for this run, computed once and shared read-only."""
        return QuadratureRule(self.quad_family, self.quad_nodes).apply(
            max_iterations_no=self.quad_max_iterations_no,
            tolerance=self.quad_tolerance,
            algorithm=self.quad_algorithm,
        )


@dataclass(frozen=True, slots=True)
class RunOptions:
    """Input/output and dispatch knobs."""

    input_params: Path
    input_experim: Optional[Path]
    output_directory: Path
    has_headers: bool = True
    simulate_all: bool = True
    indexes: Tuple[int, ...] = ()
    n_threads: int = 1

    @classmethod
    def from_config(cls, cfg: RunConfig) -> "RunOptions":
        params = cfg.resolve_path("input_params")
        if params is None:
            raise ConfigurationError("input_params is required")
        indexes = cfg.get("indexes", ())
        if isinstance(indexes, (int, str)):
            indexes = [indexes]
        try:
            indexes = tuple(int(i) for i in indexes)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"indexes must be integers (got {indexes!r})") from exc
        n_threads = _as_int(cfg, "nThreads", 1)
        if n_threads < 1:
            raise ConfigurationError("nThreads must be >= 1")
        return cls(
            input_params=params,
            input_experim=cfg.resolve_path("input_experim"),
            output_directory=cfg.resolve_path("output_directory", "output"),
            has_headers=_as_bool(cfg, "hasHeaders", True),
            simulate_all=_as_bool(cfg, "simulate_all", True),
            indexes=indexes,
            n_threads=n_threads,
        )


@dataclass(frozen=True, slots=True)
class FitSettings:
    iterations_no: int = 3
    n_splits: int = 3
    error_norm: str = "peak"
    negative_shift: float = 1.0   # [kT]
    positive_shift: float = 1.0   # [kT]

    def __post_init__(self) -> None:
        if self.iterations_no < 1:
            raise ConfigurationError("FIT/iterationsNo must be >= 1")
        if self.n_splits < 2:
            raise ConfigurationError("FIT/nSplits must be >= 2")
        if self.error_norm not in ERROR_NORMS.values():
            raise ConfigurationError(f"Unknown FIT/errorNorm: {self.error_norm!r}")
        if self.negative_shift < 0.0 or self.positive_shift < 0.0:
            raise ConfigurationError("FIT shifts must be >= 0")

    @classmethod
    def from_config(cls, cfg: RunConfig) -> "FitSettings":
        norm = cfg.get("FIT/errorNorm", 2)
        if isinstance(norm, str) and not norm.strip().isdigit():
            norm_name = norm.strip().lower()
        else:
            code = int(norm)
            if code not in ERROR_NORMS:
                raise ConfigurationError(f"Unknown FIT/errorNorm: {norm!r}")
            norm_name = ERROR_NORMS[code]
        return cls(
            iterations_no=_as_int(cfg, "FIT/iterationsNo", 3),
            n_splits=_as_int(cfg, "FIT/nSplits", 3),
            error_norm=norm_name,
            negative_shift=_as_float(cfg, "FIT/negative_shift", 1.0),
            positive_shift=_as_float(cfg, "FIT/positive_shift", 1.0),
        )
