#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

r"""Pushforward (JVP) and pullback (VJP) operators.

For $f:\mathbb{R}^n\to\mathbb{R}^m$ with Jacobian $J$, the pushforward maps
input tangents $v$ to $Jv$ and the pullback maps output cotangents $w$ to
$J^\top w$. Both act on a `Tangents` bundle and return a bundle of the same
length and order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from ... import _arrays
from ..._callable import call_function
from ..._context import Context, check_contexts, context_signature
from ..._extras import Extras, PullbackExtras, PushforwardExtras
from ..._signature import first_order_backend, parse_call
from ..._tangents import check_shapes, Tangents
from ...backends._base import AbstractBackend, copy_tangents


logger = logging.getLogger(__name__)


# Internal entry points shared with the derived and second-order operators.


def _pushforward_prepare(
    f: Callable,
    y: Any,
    backend: AbstractBackend,
    x: Any,
    tx: Tangents,
    contexts: Sequence[Context],
    /,
    *,
    same_point: bool = False,
) -> PushforwardExtras:
    x = _arrays.as_point(x)
    check_shapes("pushforward", tx, _arrays.shape(x))
    if y is not None:
        call_function(f, y, x, contexts)
    if same_point:
        token = backend.prepare_pushforward_same_point(f, y, x, tx, contexts)
    else:
        token = backend.prepare_pushforward(f, y, x, tx, contexts)
    logger.debug(
        "Prepared pushforward with %s for %d tangent(s) (same_point=%s).",
        type(backend).__name__,
        len(tx),
        same_point,
    )
    return PushforwardExtras(token, context_signature(contexts), same_point)


def _pushforward_eval(
    f: Callable,
    y: Any,
    extras: Extras | None,
    backend: AbstractBackend,
    x: Any,
    tx: Tangents,
    contexts: Sequence[Context],
    /,
) -> tuple[Any, Tangents]:
    if extras is None:
        extras = _pushforward_prepare(f, y, backend, x, tx, contexts)
    elif not isinstance(extras, PushforwardExtras):
        raise TypeError(
            f"Expected PushforwardExtras from prepare_pushforward; got {type(extras).__name__}."
        )
    check_contexts(extras.contexts, contexts)
    x = _arrays.as_point(x)
    check_shapes("pushforward", tx, _arrays.shape(x))
    return backend.value_and_pushforward(f, y, extras.token, x, tx, contexts)


def _pullback_prepare(
    f: Callable,
    y: Any,
    backend: AbstractBackend,
    x: Any,
    ty: Tangents,
    contexts: Sequence[Context],
    /,
    *,
    same_point: bool = False,
) -> PullbackExtras:
    x = _arrays.as_point(x)
    if y is not None:
        check_shapes("pullback", ty, _arrays.shape(y), side="y")
        call_function(f, y, x, contexts)
    if same_point:
        token = backend.prepare_pullback_same_point(f, y, x, ty, contexts)
    else:
        token = backend.prepare_pullback(f, y, x, ty, contexts)
    logger.debug(
        "Prepared pullback with %s for %d cotangent(s) (same_point=%s).",
        type(backend).__name__,
        len(ty),
        same_point,
    )
    return PullbackExtras(token, context_signature(contexts), same_point)


def _pullback_eval(
    f: Callable,
    y: Any,
    extras: Extras | None,
    backend: AbstractBackend,
    x: Any,
    ty: Tangents,
    contexts: Sequence[Context],
    /,
) -> tuple[Any, Tangents]:
    if extras is None:
        extras = _pullback_prepare(f, y, backend, x, ty, contexts)
    elif not isinstance(extras, PullbackExtras):
        raise TypeError(
            f"Expected PullbackExtras from prepare_pullback; got {type(extras).__name__}."
        )
    check_contexts(extras.contexts, contexts)
    x = _arrays.as_point(x)
    if y is not None:
        check_shapes("pullback", ty, _arrays.shape(y), side="y")
    return backend.value_and_pullback(f, y, extras.token, x, ty, contexts)


# Pushforward


def prepare_pushforward(f: Callable, /, *args: Any) -> PushforwardExtras:
    """Prepare `pushforward` for points of the type and shape of `x`.

    Call as `prepare_pushforward(f, [y], backend, x, tx, *contexts)`.
    """
    call = parse_call("prepare_pushforward", f, args, with_tangents=True, allow_extras=False)
    backend = first_order_backend("prepare_pushforward", call.backend, call.y)
    return _pushforward_prepare(f, call.y, backend, call.x, call.tangents, call.contexts)


def prepare_pushforward_same_point(f: Callable, /, *args: Any) -> PushforwardExtras:
    """Like `prepare_pushforward`, but only valid at this exact `x` and contexts."""
    name = "prepare_pushforward_same_point"
    call = parse_call(name, f, args, with_tangents=True, allow_extras=False)
    backend = first_order_backend(name, call.backend, call.y)
    return _pushforward_prepare(
        f, call.y, backend, call.x, call.tangents, call.contexts, same_point=True
    )


def value_and_pushforward(f: Callable, /, *args: Any) -> tuple[Any, Tangents]:
    r"""Primal value $f(x)$ and the pushforward $J_f(x)\,v$ of every tangent.

    **Arguments:**

    Positional, as `value_and_pushforward(f, [y], [extras], backend, x, tx, *contexts)`.

    - `f`: Pure `f(x, *c)` or mutating `f(y, x, *c)`.
    - `y`: Output buffer of a mutating `f`; it holds $f(x)$ on return.
    - `extras`: Result of `prepare_pushforward`; prepared on the fly if omitted.
    - `backend`: First-order backend.
    - `x`: Point.
    - `tx`: `Tangents` shaped like `x`.
    - `contexts`: `Context` wrappers of the extra arguments of `f`.

    **Returns:**

    `(y, ty)` where `ty` is a `Tangents` of the same length as `tx`.

    **Example:**

    ```python
    y, ty = value_and_pushforward(jnp.sin, AutoJaxForward(), 0.0, Tangents(2.0))
    ty.only()  # 2.0
    ```
    """
    call = parse_call("value_and_pushforward", f, args, with_tangents=True)
    backend = first_order_backend("value_and_pushforward", call.backend, call.y)
    return _pushforward_eval(
        f, call.y, call.extras, backend, call.x, call.tangents, call.contexts
    )


def pushforward(f: Callable, /, *args: Any) -> Tangents:
    """Pushforward only; see `value_and_pushforward`."""
    call = parse_call("pushforward", f, args, with_tangents=True)
    backend = first_order_backend("pushforward", call.backend, call.y)
    extras = call.extras
    if extras is None:
        extras = _pushforward_prepare(
            f, call.y, backend, call.x, call.tangents, call.contexts
        )
    elif not isinstance(extras, PushforwardExtras):
        raise TypeError(
            f"Expected PushforwardExtras from prepare_pushforward; got {type(extras).__name__}."
        )
    check_contexts(extras.contexts, call.contexts)
    x = _arrays.as_point(call.x)
    return backend.pushforward(f, call.y, extras.token, x, call.tangents, call.contexts)


def value_and_pushforward_(f: Callable, /, *args: Any) -> tuple[Any, Tangents]:
    """In-place `value_and_pushforward` writing into a `Tangents` of numpy buffers.

    Call as `value_and_pushforward_(f, [y], ty, [extras], backend, x, tx, *contexts)`.
    """
    call = parse_call("value_and_pushforward_", f, args, n_outputs=1, with_tangents=True)
    backend = first_order_backend("value_and_pushforward_", call.backend, call.y)
    (ty_out,) = call.outputs
    yv, ty = _pushforward_eval(
        f, call.y, call.extras, backend, call.x, call.tangents, call.contexts
    )
    return yv, copy_tangents(ty_out, ty)


def pushforward_(f: Callable, /, *args: Any) -> Tangents:
    """In-place `pushforward`; see `value_and_pushforward_`."""
    call = parse_call("pushforward_", f, args, n_outputs=1, with_tangents=True)
    backend = first_order_backend("pushforward_", call.backend, call.y)
    (ty_out,) = call.outputs
    _, ty = _pushforward_eval(
        f, call.y, call.extras, backend, call.x, call.tangents, call.contexts
    )
    return copy_tangents(ty_out, ty)


# Pullback


def prepare_pullback(f: Callable, /, *args: Any) -> PullbackExtras:
    """Prepare `pullback` for points of the type and shape of `x`.

    Call as `prepare_pullback(f, [y], backend, x, ty, *contexts)`.
    """
    call = parse_call("prepare_pullback", f, args, with_tangents=True, allow_extras=False)
    backend = first_order_backend("prepare_pullback", call.backend, call.y)
    return _pullback_prepare(f, call.y, backend, call.x, call.tangents, call.contexts)


def prepare_pullback_same_point(f: Callable, /, *args: Any) -> PullbackExtras:
    """Like `prepare_pullback`, but only valid at this exact `x` and contexts."""
    name = "prepare_pullback_same_point"
    call = parse_call(name, f, args, with_tangents=True, allow_extras=False)
    backend = first_order_backend(name, call.backend, call.y)
    return _pullback_prepare(
        f, call.y, backend, call.x, call.tangents, call.contexts, same_point=True
    )


def value_and_pullback(f: Callable, /, *args: Any) -> tuple[Any, Tangents]:
    r"""Primal value $f(x)$ and the pullback $J_f(x)^\top w$ of every cotangent.

    **Arguments:**

    Positional, as `value_and_pullback(f, [y], [extras], backend, x, ty, *contexts)`,
    with `ty` a `Tangents` shaped like the output of `f`.

    **Returns:**

    `(y, tx)` where `tx` is a `Tangents` shaped like `x`.
    """
    call = parse_call("value_and_pullback", f, args, with_tangents=True)
    backend = first_order_backend("value_and_pullback", call.backend, call.y)
    return _pullback_eval(
        f, call.y, call.extras, backend, call.x, call.tangents, call.contexts
    )


def pullback(f: Callable, /, *args: Any) -> Tangents:
    """Pullback only; see `value_and_pullback`."""
    call = parse_call("pullback", f, args, with_tangents=True)
    backend = first_order_backend("pullback", call.backend, call.y)
    extras = call.extras
    if extras is None:
        extras = _pullback_prepare(f, call.y, backend, call.x, call.tangents, call.contexts)
    elif not isinstance(extras, PullbackExtras):
        raise TypeError(
            f"Expected PullbackExtras from prepare_pullback; got {type(extras).__name__}."
        )
    check_contexts(extras.contexts, call.contexts)
    x = _arrays.as_point(call.x)
    return backend.pullback(f, call.y, extras.token, x, call.tangents, call.contexts)


def value_and_pullback_(f: Callable, /, *args: Any) -> tuple[Any, Tangents]:
    """In-place `value_and_pullback` writing into a `Tangents` of numpy buffers.

    Call as `value_and_pullback_(f, [y], tx, [extras], backend, x, ty, *contexts)`.
    """
    call = parse_call("value_and_pullback_", f, args, n_outputs=1, with_tangents=True)
    backend = first_order_backend("value_and_pullback_", call.backend, call.y)
    (tx_out,) = call.outputs
    yv, tx = _pullback_eval(
        f, call.y, call.extras, backend, call.x, call.tangents, call.contexts
    )
    return yv, copy_tangents(tx_out, tx)


def pullback_(f: Callable, /, *args: Any) -> Tangents:
    """In-place `pullback`; see `value_and_pullback_`."""
    call = parse_call("pullback_", f, args, n_outputs=1, with_tangents=True)
    backend = first_order_backend("pullback_", call.backend, call.y)
    (tx_out,) = call.outputs
    _, tx = _pullback_eval(
        f, call.y, call.extras, backend, call.x, call.tangents, call.contexts
    )
    return copy_tangents(tx_out, tx)
