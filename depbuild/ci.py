"""Collapsible log groups for CI runners."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Mapping, TextIO
import os
import sys

_TRUE_VALUES = {"1", "true", "yes", "on"}


def running_under_ci(environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return env.get("CI", "").strip().lower() in _TRUE_VALUES


@contextmanager
def log_group(
    title: str,
    *,
    environ: Mapping[str, str] | None = None,
    stream: TextIO | None = None,
) -> Iterator[None]:
    """Wrap the enclosed output in a ``::group::`` block when running under CI.

    Outside CI a plain ``==>`` header is printed instead.
    """

    out = stream or sys.stdout
    grouped = running_under_ci(environ)
    if grouped:
        print(f"::group::{title}", file=out, flush=True)
    else:
        print(f"==> {title}", file=out, flush=True)
    try:
        yield
    finally:
        if grouped:
            print("::endgroup::", file=out, flush=True)


__all__ = ["log_group", "running_under_ci"]
