# -*- coding: utf-8 -*-
"""
Minimal logger; replace with structlog/loguru if desired.

Every function accepts an optional extra stream (e.g. the per-run log file)
that receives the same line.
"""
import sys, time
from typing import Optional, TextIO


def _emit(line: str, stream: TextIO, extra: Optional[TextIO]) -> None:
    print(line, file=stream)
    if extra is not None:
        print(line, file=extra)


def info(msg: str, extra: Optional[TextIO] = None):
    _emit(f"[{time.strftime('%H:%M:%S')}] {msg}", sys.stdout, extra)


def warn(msg: str, extra: Optional[TextIO] = None):
    _emit(f"[{time.strftime('%H:%M:%S')}] WARNING: {msg}", sys.stderr, extra)


def error(msg: str, extra: Optional[TextIO] = None):
    _emit(f"[{time.strftime('%H:%M:%S')}] ERROR: {msg}", sys.stderr, extra)


def block(msg: str, extra: Optional[TextIO] = None):
    """Framed banner, used at the start/end of a run."""
    bar = "=" * (len(msg) + 4)
    for line in (bar, f"| {msg} |", bar):
        _emit(line, sys.stdout, extra)
