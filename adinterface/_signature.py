#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

"""Positional call-signature dispatch shared by every operator.

Operators take their arguments in the order

    f, [y], [result buffers...], [extras], backend, x, [tangents], *contexts

where `y` is present only for mutating functions `f(y, x, *c)`. The first
argument that is an `Extras` or a backend splits the call: the arguments in
front of it are `y` (if any) followed by the result buffers of in-place
variants.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, NamedTuple

import numpy as np

from ._context import Context, ensure_contexts
from ._errors import BackendUnavailableError, UnsupportedOperatorError
from ._extras import Extras
from ._tangents import Tangents
from .backends._base import AbstractBackend
from .backends._capabilities import check_nesting, ensure_available, is_backend
from .backends._second_order import SecondOrder


class OperatorCall(NamedTuple):
    f: Callable
    y: Any
    outputs: tuple[Any, ...]
    extras: Extras | None
    backend: Any
    x: Any
    tangents: Tangents | None
    contexts: tuple[Context, ...]


def parse_call(
    name: str,
    f: Callable,
    args: Sequence[Any],
    /,
    *,
    n_outputs: int = 0,
    with_tangents: bool = False,
    allow_extras: bool = True,
) -> OperatorCall:
    if not callable(f):
        raise TypeError(f"{name}: expected a callable function; got {type(f).__name__}.")
    split = next(
        (i for i, a in enumerate(args) if isinstance(a, Extras) or is_backend(a)), None
    )
    if split is None:
        raise BackendUnavailableError(
            f"HINT: {name} expects a backend argument such as AutoJaxForward() "
            "or AutoDual(); none of the positional arguments is a backend."
        )
    lead = tuple(args[:split])
    n_mutating = len(lead) - n_outputs
    if n_mutating not in (0, 1):
        raise TypeError(
            f"{name}: expected {n_outputs} result buffer(s) (plus y for mutating "
            f"functions) before the backend; got {len(lead)} argument(s)."
        )
    y = lead[0] if n_mutating else None
    if y is not None and not isinstance(y, np.ndarray):
        raise TypeError(
            f"{name}: the output of a mutating function must be a numpy.ndarray; "
            f"got {type(y).__name__}."
        )
    rest = list(args[split:])
    extras = None
    if isinstance(rest[0], Extras):
        if not allow_extras:
            raise TypeError(f"{name}: does not accept an extras argument.")
        extras = rest.pop(0)
        if not rest or not is_backend(rest[0]):
            got = type(rest[0]).__name__ if rest else "nothing"
            raise BackendUnavailableError(
                f"HINT: {name} expects a backend right after the extras; got {got}."
            )
    backend = rest.pop(0)
    if not rest:
        raise TypeError(f"{name}: missing the point x after the backend.")
    x = rest.pop(0)
    tangents = None
    if with_tangents:
        if not rest or not isinstance(rest[0], Tangents):
            got = type(rest[0]).__name__ if rest else "nothing"
            raise TypeError(f"{name}: expected Tangents after x; got {got}.")
        tangents = rest.pop(0)
    contexts = ensure_contexts(rest, name=name)
    return OperatorCall(f, y, lead[n_mutating:], extras, backend, x, tangents, contexts)


def first_order_backend(name: str, backend: Any, y: Any, /) -> AbstractBackend:
    """Validate a backend for a first-order operator on `f` (mutating if `y`)."""
    if isinstance(backend, SecondOrder):
        raise UnsupportedOperatorError(
            f"{name} is a first-order operator; pass SecondOrder(...).outer or a "
            "plain backend instead of a SecondOrder pair."
        )
    backend = ensure_available(backend, name=name)
    _check_mutation(name, backend, y)
    return backend


def as_second_order(name: str, backend: Any, y: Any, /) -> SecondOrder:
    """Validate a backend for a second-order operator, promoting plain backends."""
    backend = ensure_available(backend, name=name)
    if not isinstance(backend, SecondOrder):
        backend = SecondOrder(backend, backend)
    if not check_nesting(backend):
        outer, inner = type(backend.outer).__name__, type(backend.inner).__name__
        raise UnsupportedOperatorError(
            f"{name}: SecondOrder({outer}, {inner}) is not a supported combination; "
            f"{inner} cannot differentiate at the {backend.outer.lifted_point_kind} "
            f"points lifted by {outer}."
        )
    _check_mutation(name, backend, y)
    return backend


def _check_mutation(name: str, backend: Any, y: Any, /) -> None:
    if y is not None and not backend.inplace_support:
        raise UnsupportedOperatorError(
            f"{name}: {type(backend).__name__} does not support mutating functions "
            "f(y, x); use a pure function or a backend with inplace support."
        )
