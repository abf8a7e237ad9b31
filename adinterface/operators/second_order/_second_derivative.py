#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from ... import _arrays
from ..._callable import call_function
from ..._context import Context, Rewrap
from ..._extras import Extras, PushforwardExtras
from ..._signature import as_second_order, parse_call
from ..._tangents import Tangents
from ...backends._base import AbstractBackend
from ...backends._second_order import SecondOrder, tag_backend
from ..first_order._derivative import _derivative_prepare, _require_scalar_point
from ..first_order._primitives import _pushforward_eval, _pushforward_prepare
from ._closures import InnerDerivative, pure_view, warn_nested_finite_differences


class SecondDerivativeExtras(Extras):
    outer: AbstractBackend
    inner_derivative: InnerDerivative
    pushforward: PushforwardExtras


def _second_derivative_prepare(
    f: Callable,
    y: Any,
    backend: SecondOrder,
    x: Any,
    contexts: Sequence[Context],
    /,
) -> SecondDerivativeExtras:
    _require_scalar_point("second_derivative", x)
    warn_nested_finite_differences(backend)
    x = _arrays.as_point(x)
    tx = Tangents(_arrays.one(x))
    pure_f = pure_view(f, y, x, contexts)
    outer = tag_backend(f, backend.outer, x, "second_derivative", contexts)
    xlift = outer.lift_point(x, tx)
    der_extras = _derivative_prepare(pure_f, None, backend.inner, xlift, contexts)
    inner = InnerDerivative(pure_f, backend.inner, der_extras, Rewrap(*contexts))
    pushforward = _pushforward_prepare(inner, None, outer, x, tx, contexts)
    return SecondDerivativeExtras(outer, inner, pushforward)


def _second_derivative_eval(
    f: Callable,
    y: Any,
    extras: Extras | None,
    backend: SecondOrder,
    x: Any,
    contexts: Sequence[Context],
    /,
) -> tuple[Any, Any]:
    if extras is None:
        extras = _second_derivative_prepare(f, y, backend, x, contexts)
    elif not isinstance(extras, SecondDerivativeExtras):
        raise TypeError(
            "Expected SecondDerivativeExtras from prepare_second_derivative; "
            f"got {type(extras).__name__}."
        )
    _require_scalar_point("second_derivative", x)
    x = _arrays.as_point(x)
    der, td = _pushforward_eval(
        extras.inner_derivative,
        None,
        extras.pushforward,
        extras.outer,
        x,
        Tangents(_arrays.one(x)),
        contexts,
    )
    return der, td.only()


def prepare_second_derivative(f: Callable, /, *args: Any) -> SecondDerivativeExtras:
    """Prepare `second_derivative`.

    Call as `prepare_second_derivative(f, [y], backend, x, *contexts)`.
    """
    name = "prepare_second_derivative"
    call = parse_call(name, f, args, allow_extras=False)
    backend = as_second_order(name, call.backend, call.y)
    return _second_derivative_prepare(f, call.y, backend, call.x, call.contexts)


def value_derivative_and_second_derivative(
    f: Callable, /, *args: Any
) -> tuple[Any, Any, Any]:
    r"""Value, first and second derivative of a function of a scalar.

    **Arguments:**

    Positional, as
    `value_derivative_and_second_derivative(f, [y], [extras], backend, x, *contexts)`.

    **Returns:**

    `(y, dy, d2y)`, each shaped like the output of `f`.

    **Example:**

    ```python
    second_derivative(lambda x: x**3, AutoDual(), 2.0)  # 12.0
    ```
    """
    name = "value_derivative_and_second_derivative"
    call = parse_call(name, f, args)
    backend = as_second_order(name, call.backend, call.y)
    x = _arrays.as_point(call.x)
    value = call_function(f, call.y, x, call.contexts)
    der, der2 = _second_derivative_eval(
        f, call.y, call.extras, backend, x, call.contexts
    )
    return value, der, der2


def second_derivative(f: Callable, /, *args: Any) -> Any:
    """Second derivative; see `value_derivative_and_second_derivative`."""
    call = parse_call("second_derivative", f, args)
    backend = as_second_order("second_derivative", call.backend, call.y)
    x = _arrays.as_point(call.x)
    if call.y is not None:
        call_function(f, call.y, x, call.contexts)
    return _second_derivative_eval(f, call.y, call.extras, backend, x, call.contexts)[1]


def value_derivative_and_second_derivative_(
    f: Callable, /, *args: Any
) -> tuple[Any, Any, Any]:
    """In-place variant writing into numpy buffers `der` and `der2`.

    Call as
    `value_derivative_and_second_derivative_(f, [y], der, der2, [extras], backend, x, *contexts)`.
    """
    name = "value_derivative_and_second_derivative_"
    call = parse_call(name, f, args, n_outputs=2)
    backend = as_second_order(name, call.backend, call.y)
    der_out, der2_out = call.outputs
    x = _arrays.as_point(call.x)
    value = call_function(f, call.y, x, call.contexts)
    der, der2 = _second_derivative_eval(
        f, call.y, call.extras, backend, x, call.contexts
    )
    return value, _arrays.copyto(der_out, der), _arrays.copyto(der2_out, der2)


def second_derivative_(f: Callable, /, *args: Any) -> Any:
    """In-place `second_derivative`.

    Call as `second_derivative_(f, [y], der2, [extras], backend, x, *contexts)`.
    """
    call = parse_call("second_derivative_", f, args, n_outputs=1)
    backend = as_second_order("second_derivative_", call.backend, call.y)
    (der2_out,) = call.outputs
    x = _arrays.as_point(call.x)
    if call.y is not None:
        call_function(f, call.y, x, call.contexts)
    _, der2 = _second_derivative_eval(f, call.y, call.extras, backend, x, call.contexts)
    return _arrays.copyto(der2_out, der2)
