#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from ... import _arrays
from ..._callable import call_function
from ..._context import Context, Rewrap
from ..._extras import Extras, PushforwardExtras
from ..._signature import as_second_order, parse_call
from ..._tangents import Tangents
from ...backends._base import AbstractBackend, copy_tangents
from ...backends._second_order import SecondOrder, tag_backend
from ..first_order._gradient import _gradient_prepare
from ..first_order._primitives import _pushforward_eval, _pushforward_prepare
from ._closures import InnerGradient, pure_view, warn_nested_finite_differences


logger = logging.getLogger(__name__)


class HVPExtras(Extras):
    outer: AbstractBackend
    inner_gradient: InnerGradient
    pushforward: PushforwardExtras


def _hvp_prepare(
    f: Callable,
    y: Any,
    backend: SecondOrder,
    x: Any,
    tx: Tangents,
    contexts: Sequence[Context],
    /,
    *,
    same_point: bool = False,
    kind: str = "hvp",
) -> HVPExtras:
    warn_nested_finite_differences(backend)
    x = _arrays.as_point(x)
    pure_f = pure_view(f, y, x, contexts)
    outer = tag_backend(f, backend.outer, x, kind, contexts)
    xlift = outer.lift_point(x, tx)
    grad_extras = _gradient_prepare(pure_f, None, backend.inner, xlift, contexts)
    inner_gradient = InnerGradient(pure_f, backend.inner, grad_extras, Rewrap(*contexts))
    pushforward = _pushforward_prepare(
        inner_gradient, None, outer, x, tx, contexts, same_point=same_point
    )
    logger.debug(
        "Prepared %s as %s over %s.",
        kind,
        type(outer).__name__,
        type(backend.inner).__name__,
    )
    return HVPExtras(outer, inner_gradient, pushforward)


def _hvp_eval(
    f: Callable,
    y: Any,
    extras: Extras | None,
    backend: SecondOrder,
    x: Any,
    tx: Tangents,
    contexts: Sequence[Context],
    /,
) -> tuple[Any, Tangents]:
    if extras is None:
        extras = _hvp_prepare(f, y, backend, x, tx, contexts)
    elif not isinstance(extras, HVPExtras):
        raise TypeError(f"Expected HVPExtras from prepare_hvp; got {type(extras).__name__}.")
    x = _arrays.as_point(x)
    grad, tg = _pushforward_eval(
        extras.inner_gradient, None, extras.pushforward, extras.outer, x, tx, contexts
    )
    if y is not None:
        call_function(f, y, x, contexts)
    return grad, tg


def prepare_hvp(f: Callable, /, *args: Any) -> HVPExtras:
    """Prepare `hvp`. Call as `prepare_hvp(f, [y], backend, x, tx, *contexts)`.

    The outer backend is tagged (when it supports nested tags), the inner
    gradient is prepared at the point lifted by the outer backend, and the
    outer pushforward of the inner gradient closure is prepared at `x`.
    """
    call = parse_call("prepare_hvp", f, args, with_tangents=True, allow_extras=False)
    backend = as_second_order("prepare_hvp", call.backend, call.y)
    return _hvp_prepare(f, call.y, backend, call.x, call.tangents, call.contexts)


def prepare_hvp_same_point(f: Callable, /, *args: Any) -> HVPExtras:
    """Like `prepare_hvp`, but only valid at this exact `x` and contexts."""
    name = "prepare_hvp_same_point"
    call = parse_call(name, f, args, with_tangents=True, allow_extras=False)
    backend = as_second_order(name, call.backend, call.y)
    return _hvp_prepare(
        f, call.y, backend, call.x, call.tangents, call.contexts, same_point=True
    )


def gradient_and_hvp(f: Callable, /, *args: Any) -> tuple[Any, Tangents]:
    r"""Gradient and Hessian-vector products $\nabla^2 f(x)\,v$ for each tangent.

    **Arguments:**

    Positional, as `gradient_and_hvp(f, [y], [extras], backend, x, tx, *contexts)`.

    - `f`: Scalar-valued pure `f(x, *c)` or mutating `f(y, x, *c)`.
    - `backend`: `SecondOrder(outer, inner)`, or a plain backend used for both.
    - `tx`: `Tangents` shaped like `x`.

    **Returns:**

    `(g, tg)` with `g` the gradient and `tg` a `Tangents` of the same length
    as `tx`.

    **Example:**

    ```python
    def f(x):
        return (x**2).sum()

    backend = SecondOrder(AutoJaxForward(), AutoJaxReverse())
    hvp(f, backend, jnp.array([1.0, 2.0]), Tangents(jnp.array([1.0, 0.0])))
    # Tangents([2.0, 0.0])
    ```
    """
    call = parse_call("gradient_and_hvp", f, args, with_tangents=True)
    backend = as_second_order("gradient_and_hvp", call.backend, call.y)
    return _hvp_eval(
        f, call.y, call.extras, backend, call.x, call.tangents, call.contexts
    )


def hvp(f: Callable, /, *args: Any) -> Tangents:
    """Hessian-vector products only; see `gradient_and_hvp`."""
    call = parse_call("hvp", f, args, with_tangents=True)
    backend = as_second_order("hvp", call.backend, call.y)
    return _hvp_eval(
        f, call.y, call.extras, backend, call.x, call.tangents, call.contexts
    )[1]


def gradient_and_hvp_(f: Callable, /, *args: Any) -> tuple[Any, Tangents]:
    """In-place `gradient_and_hvp` into a numpy buffer `grad` and a `Tangents` `tg`.

    Call as `gradient_and_hvp_(f, [y], grad, tg, [extras], backend, x, tx, *contexts)`.
    """
    call = parse_call("gradient_and_hvp_", f, args, n_outputs=2, with_tangents=True)
    backend = as_second_order("gradient_and_hvp_", call.backend, call.y)
    grad_out, tg_out = call.outputs
    grad, tg = _hvp_eval(
        f, call.y, call.extras, backend, call.x, call.tangents, call.contexts
    )
    return _arrays.copyto(grad_out, grad), copy_tangents(tg_out, tg)


def hvp_(f: Callable, /, *args: Any) -> Tangents:
    """In-place `hvp`. Call as `hvp_(f, [y], tg, [extras], backend, x, tx, *contexts)`."""
    call = parse_call("hvp_", f, args, n_outputs=1, with_tangents=True)
    backend = as_second_order("hvp_", call.backend, call.y)
    (tg_out,) = call.outputs
    _, tg = _hvp_eval(
        f, call.y, call.extras, backend, call.x, call.tangents, call.contexts
    )
    return copy_tangents(tg_out, tg)
