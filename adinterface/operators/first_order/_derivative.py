#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from ... import _arrays
from ..._context import Context
from ..._errors import SignatureMismatchError
from ..._extras import Extras, PushforwardExtras
from ..._signature import first_order_backend, parse_call
from ..._tangents import Tangents
from ...backends._base import AbstractBackend
from ._primitives import _pushforward_eval, _pushforward_prepare


class DerivativeExtras(Extras):
    pushforward: PushforwardExtras


def _require_scalar_point(name: str, x: Any, /) -> None:
    if not _arrays.is_scalar(x):
        raise SignatureMismatchError(
            f"{name} requires a scalar point x; got shape {_arrays.shape(x)}. "
            "Use jacobian or pushforward for array inputs."
        )


def _derivative_prepare(
    f: Callable,
    y: Any,
    backend: AbstractBackend,
    x: Any,
    contexts: Sequence[Context],
    /,
) -> DerivativeExtras:
    _require_scalar_point("derivative", x)
    x = _arrays.as_point(x)
    tx = Tangents(_arrays.one(x))
    return DerivativeExtras(_pushforward_prepare(f, y, backend, x, tx, contexts))


def _derivative_eval(
    f: Callable,
    y: Any,
    extras: Extras | None,
    backend: AbstractBackend,
    x: Any,
    contexts: Sequence[Context],
    /,
) -> tuple[Any, Any]:
    if extras is None:
        extras = _derivative_prepare(f, y, backend, x, contexts)
    elif not isinstance(extras, DerivativeExtras):
        raise TypeError(
            f"Expected DerivativeExtras from prepare_derivative; got {type(extras).__name__}."
        )
    _require_scalar_point("derivative", x)
    x = _arrays.as_point(x)
    yv, ty = _pushforward_eval(
        f, y, extras.pushforward, backend, x, Tangents(_arrays.one(x)), contexts
    )
    return yv, ty.only()


def prepare_derivative(f: Callable, /, *args: Any) -> DerivativeExtras:
    """Prepare `derivative`. Call as `prepare_derivative(f, [y], backend, x, *contexts)`."""
    call = parse_call("prepare_derivative", f, args, allow_extras=False)
    backend = first_order_backend("prepare_derivative", call.backend, call.y)
    return _derivative_prepare(f, call.y, backend, call.x, call.contexts)


def value_and_derivative(f: Callable, /, *args: Any) -> tuple[Any, Any]:
    r"""Value and derivative $f'(x)$ of a function of a scalar.

    **Arguments:**

    Positional, as `value_and_derivative(f, [y], [extras], backend, x, *contexts)`.
    The output of `f` may have any shape; the derivative has the same shape.

    **Returns:**

    `(y, dy)`.

    **Example:**

    ```python
    value_and_derivative(lambda x: x**2, AutoDual(), 3.0)  # (9.0, 6.0)
    ```
    """
    call = parse_call("value_and_derivative", f, args)
    backend = first_order_backend("value_and_derivative", call.backend, call.y)
    return _derivative_eval(f, call.y, call.extras, backend, call.x, call.contexts)


def derivative(f: Callable, /, *args: Any) -> Any:
    """Derivative of a function of a scalar; see `value_and_derivative`."""
    call = parse_call("derivative", f, args)
    backend = first_order_backend("derivative", call.backend, call.y)
    return _derivative_eval(f, call.y, call.extras, backend, call.x, call.contexts)[1]


def value_and_derivative_(f: Callable, /, *args: Any) -> tuple[Any, Any]:
    """In-place `value_and_derivative` into a numpy buffer `der`.

    Call as `value_and_derivative_(f, [y], der, [extras], backend, x, *contexts)`.
    """
    call = parse_call("value_and_derivative_", f, args, n_outputs=1)
    backend = first_order_backend("value_and_derivative_", call.backend, call.y)
    (der,) = call.outputs
    yv, dy = _derivative_eval(f, call.y, call.extras, backend, call.x, call.contexts)
    return yv, _arrays.copyto(der, dy)


def derivative_(f: Callable, /, *args: Any) -> Any:
    """In-place `derivative`; see `value_and_derivative_`."""
    call = parse_call("derivative_", f, args, n_outputs=1)
    backend = first_order_backend("derivative_", call.backend, call.y)
    (der,) = call.outputs
    _, dy = _derivative_eval(f, call.y, call.extras, backend, call.x, call.contexts)
    return _arrays.copyto(der, dy)
