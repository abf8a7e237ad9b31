#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from ... import _arrays
from ..._callable import call_function
from ..._context import Context
from ..._errors import SignatureMismatchError
from ..._extras import Extras, PullbackExtras
from ..._signature import first_order_backend, parse_call
from ..._tangents import Tangents
from ...backends._base import AbstractBackend
from ._primitives import _pullback_eval, _pullback_prepare


class GradientExtras(Extras):
    pullback: PullbackExtras


def _require_scalar_output(y: Any, /) -> None:
    if not _arrays.is_scalar(y):
        raise SignatureMismatchError(
            f"gradient requires a scalar-valued function; got output of shape "
            f"{_arrays.shape(y)}. Use jacobian or pullback instead."
        )


def _gradient_prepare(
    f: Callable,
    y: Any,
    backend: AbstractBackend,
    x: Any,
    contexts: Sequence[Context],
    /,
) -> GradientExtras:
    x = _arrays.as_point(x)
    _require_scalar_output(call_function(f, y, x, contexts))
    return GradientExtras(_pullback_prepare(f, y, backend, x, Tangents(1.0), contexts))


def _gradient_eval(
    f: Callable,
    y: Any,
    extras: Extras | None,
    backend: AbstractBackend,
    x: Any,
    contexts: Sequence[Context],
    /,
) -> tuple[Any, Any]:
    if extras is None:
        extras = _gradient_prepare(f, y, backend, x, contexts)
    elif not isinstance(extras, GradientExtras):
        raise TypeError(
            f"Expected GradientExtras from prepare_gradient; got {type(extras).__name__}."
        )
    yv, tx = _pullback_eval(f, y, extras.pullback, backend, x, Tangents(1.0), contexts)
    _require_scalar_output(yv)
    return yv, tx.only()


def prepare_gradient(f: Callable, /, *args: Any) -> GradientExtras:
    """Prepare `gradient`, evaluating `f` once to check its output is scalar.

    Call as `prepare_gradient(f, [y], backend, x, *contexts)`.
    """
    call = parse_call("prepare_gradient", f, args, allow_extras=False)
    backend = first_order_backend("prepare_gradient", call.backend, call.y)
    return _gradient_prepare(f, call.y, backend, call.x, call.contexts)


def value_and_gradient(f: Callable, /, *args: Any) -> tuple[Any, Any]:
    r"""Value and gradient $\nabla f(x)$ of a scalar-valued function.

    **Arguments:**

    Positional, as `value_and_gradient(f, [y], [extras], backend, x, *contexts)`.

    **Returns:**

    `(y, g)` with `g` shaped like `x`.

    **Example:**

    ```python
    value_and_gradient(lambda x: (x**2).sum(), AutoJaxReverse(), jnp.array([1.0, 2.0]))
    # (5.0, [2.0, 4.0])
    ```
    """
    call = parse_call("value_and_gradient", f, args)
    backend = first_order_backend("value_and_gradient", call.backend, call.y)
    return _gradient_eval(f, call.y, call.extras, backend, call.x, call.contexts)


def gradient(f: Callable, /, *args: Any) -> Any:
    """Gradient of a scalar-valued function; see `value_and_gradient`."""
    call = parse_call("gradient", f, args)
    backend = first_order_backend("gradient", call.backend, call.y)
    return _gradient_eval(f, call.y, call.extras, backend, call.x, call.contexts)[1]


def value_and_gradient_(f: Callable, /, *args: Any) -> tuple[Any, Any]:
    """In-place `value_and_gradient` into a numpy buffer `grad`.

    Call as `value_and_gradient_(f, [y], grad, [extras], backend, x, *contexts)`.
    """
    call = parse_call("value_and_gradient_", f, args, n_outputs=1)
    backend = first_order_backend("value_and_gradient_", call.backend, call.y)
    (grad,) = call.outputs
    yv, g = _gradient_eval(f, call.y, call.extras, backend, call.x, call.contexts)
    return yv, _arrays.copyto(grad, g)


def gradient_(f: Callable, /, *args: Any) -> Any:
    """In-place `gradient`; see `value_and_gradient_`."""
    call = parse_call("gradient_", f, args, n_outputs=1)
    backend = first_order_backend("gradient_", call.backend, call.y)
    (grad,) = call.outputs
    _, g = _gradient_eval(f, call.y, call.extras, backend, call.x, call.contexts)
    return _arrays.copyto(grad, g)
