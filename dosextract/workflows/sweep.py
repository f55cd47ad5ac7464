# -*- coding: utf-8 -*-
"""
Parallel dispatch of independent parameter rows.

Each row is one unit of work; results (or the exception a row raised) come
back through futures and are aggregated here. With fail_fast, no new row is
dispatched once one has failed; rows already running are allowed to finish.
"""
from __future__ import annotations

from concurrent.futures import (
    FIRST_COMPLETED,
    Executor,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    wait,
)
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Literal, Optional, Sequence

from ..models.params import DosParameters
from ..utils.errors import ConfigurationError

__all__ = ["RunOutcome", "run_rows", "first_error"]

ExecutorKind = Literal["process", "thread"]


@dataclass(frozen=True)
class RunOutcome:
    simulation_no: int
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _run_one(job: Callable[[DosParameters], Any], params: DosParameters) -> RunOutcome:
    try:
        return RunOutcome(params.simulation_no, value=job(params))
    except Exception as exc:  # reported to the caller through the outcome
        return RunOutcome(params.simulation_no, error=exc)


def _make_executor(kind: ExecutorKind, n_workers: int) -> Executor:
    if kind == "process":
        return ProcessPoolExecutor(max_workers=n_workers)
    return ThreadPoolExecutor(max_workers=n_workers)


def run_rows(
    rows: Sequence[DosParameters],
    job: Callable[[DosParameters], Any],
    n_workers: int = 1,
    fail_fast: bool = True,
    executor: ExecutorKind = "process",
) -> List[RunOutcome]:
    """
    Run `job(params)` for every row; outcomes are returned in row order.

    With a process executor `job` must be picklable (a module-level function
    or a functools.partial of one). Rows that were never dispatched because
    of an earlier failure have no outcome.
    """
    rows = list(rows)
    if int(n_workers) < 1:
        raise ConfigurationError("n_workers must be >= 1")
    if executor not in ("process", "thread"):
        raise ConfigurationError(f"Unknown executor: {executor!r}")

    outcomes: Dict[int, RunOutcome] = {}

    if int(n_workers) == 1 or len(rows) <= 1:
        for i, params in enumerate(rows):
            outcomes[i] = _run_one(job, params)
            if fail_fast and not outcomes[i].ok:
                break
        return [outcomes[i] for i in sorted(outcomes)]

    n_workers = min(int(n_workers), len(rows))
    queue = iter(enumerate(rows))
    failed = False

    with _make_executor(executor, n_workers) as pool:
        running = {}

        def submit_next() -> bool:
            item = next(queue, None)
            if item is None:
                return False
            i, params = item
            running[pool.submit(job, params)] = (i, params)
            return True

        while len(running) < n_workers and submit_next():
            pass

        while running:
            done, _ = wait(running, return_when=FIRST_COMPLETED)
            for fut in done:
                i, params = running.pop(fut)
                exc = fut.exception()
                if exc is None:
                    outcomes[i] = RunOutcome(params.simulation_no, value=fut.result())
                else:
                    outcomes[i] = RunOutcome(params.simulation_no, error=exc)
                    failed = True
            if failed and fail_fast:
                continue
            while len(running) < n_workers and submit_next():
                pass

    return [outcomes[i] for i in sorted(outcomes)]


def first_error(outcomes: Sequence[RunOutcome]) -> Optional[BaseException]:
    for out in outcomes:
        if out.error is not None:
            return out.error
    return None
