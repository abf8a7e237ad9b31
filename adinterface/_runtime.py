#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

import numpy as np

from ._strict import StrictModule


class Tolerance(StrictModule):
    """Relative/absolute tolerance pair used by numerical consistency checks."""

    rtol: float
    atol: float

    def __init__(self, rtol: float, atol: float):
        if rtol < 0 or atol < 0:
            raise ValueError("Tolerances must be non-negative.")
        self.rtol = float(rtol)
        self.atol = float(atol)


DEFAULT_TOLERANCE = Tolerance(rtol=1e-6, atol=1e-9)


_TOLERANCE_CONTEXT: ContextVar[Tolerance | None] = ContextVar(
    "_TOLERANCE_CONTEXT", default=None
)


@contextmanager
def tolerance_context(
    *, rtol: float | None = None, atol: float | None = None
) -> Iterator[Tolerance]:
    """Override the comparison tolerance within a `with` block.

    Unspecified components are inherited from the enclosing context, or from
    `DEFAULT_TOLERANCE` at the top level. Backend defaults are ignored while
    an override is active.
    """
    current = _TOLERANCE_CONTEXT.get() or DEFAULT_TOLERANCE
    tol = Tolerance(
        rtol=current.rtol if rtol is None else rtol,
        atol=current.atol if atol is None else atol,
    )
    token = _TOLERANCE_CONTEXT.set(tol)
    try:
        yield tol
    finally:
        _TOLERANCE_CONTEXT.reset(token)


def get_tolerance(backend: Any = None, /) -> Tolerance:
    """Return the active tolerance.

    Precedence: an enclosing `tolerance_context`, then the backend's
    `default_tolerance` (for `SecondOrder`, the looser of outer and inner),
    then `DEFAULT_TOLERANCE`.
    """
    override = _TOLERANCE_CONTEXT.get()
    if override is not None:
        return override
    if backend is None:
        return DEFAULT_TOLERANCE
    tol = getattr(backend, "default_tolerance", None)
    return tol if isinstance(tol, Tolerance) else DEFAULT_TOLERANCE


def isapprox(a: Any, b: Any, /, *, backend: Any = None) -> bool:
    tol = get_tolerance(backend)
    a_arr = np.asarray(a, dtype=float)
    b_arr = np.asarray(b, dtype=float)
    if a_arr.shape != b_arr.shape:
        return False
    return bool(np.allclose(a_arr, b_arr, rtol=tol.rtol, atol=tol.atol))


def check_symmetric(matrix: Any, /, *, backend: Any = None) -> bool:
    """Whether a square matrix equals its transpose within tolerance."""
    m = np.asarray(matrix, dtype=float)
    if m.ndim != 2 or m.shape[0] != m.shape[1]:
        return False
    return isapprox(m, m.T, backend=backend)
