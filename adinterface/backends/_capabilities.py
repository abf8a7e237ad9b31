#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

"""Capability queries accepting both plain backends and `SecondOrder` pairs."""

from __future__ import annotations

from typing import Any

from .._errors import BackendUnavailableError
from ._base import AbstractBackend, Mode
from ._second_order import SecondOrder


def is_backend(obj: Any, /) -> bool:
    return isinstance(obj, (AbstractBackend, SecondOrder))


def _require_backend(obj: Any, /) -> AbstractBackend | SecondOrder:
    if not is_backend(obj):
        raise BackendUnavailableError(
            f"HINT: {type(obj).__name__} is not a backend. Pass an instance such as "
            "AutoJaxForward(), AutoJaxReverse(), AutoDual() or "
            "AutoFiniteDifferences(), or SecondOrder(outer, inner)."
        )
    return obj


def mode(backend: Any, /) -> Mode:
    return _require_backend(backend).mode


def check_available(backend: Any, /) -> bool:
    """Whether `backend` can run in the current environment.

    Non-backend objects are reported as unavailable instead of raising.
    """
    if not is_backend(backend):
        return False
    return bool(backend.check_available())


def check_inplace(backend: Any, /) -> bool:
    """Whether `backend` can differentiate mutating functions `f(y, x)`."""
    return bool(_require_backend(backend).inplace_support)


def pick_batchsize(backend: Any, dimension: int, /) -> int:
    """Tangent bundle size used when iterating over `dimension` basis seeds."""
    return int(_require_backend(backend).pick_batchsize(int(dimension)))


def ensure_available(backend: Any, /, *, name: str) -> AbstractBackend | SecondOrder:
    backend = _require_backend(backend)
    if backend.check_available():
        return backend
    pairs = [backend.outer, backend.inner] if isinstance(backend, SecondOrder) else [backend]
    missing = sorted(
        {b.requirement for b in pairs if not b.check_available() and b.requirement}
    )
    if missing:
        hint = "install " + " and ".join(f"`{m}`" for m in missing) + " to enable it"
    else:
        hint = "the engine reported itself unavailable"
    raise BackendUnavailableError(
        f"HINT: {name} cannot use {type(backend).__name__}; {hint}."
    )


def check_nesting(backend: Any, /) -> bool:
    """Whether the inner backend of a pair accepts the points its outer backend lifts.

    A plain backend is checked as nested in itself.
    """
    backend = _require_backend(backend)
    if isinstance(backend, SecondOrder):
        outer, inner = backend.outer, backend.inner
    else:
        outer = inner = backend
    return outer.lifted_point_kind in inner.point_kinds
