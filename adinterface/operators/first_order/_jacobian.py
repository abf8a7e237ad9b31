#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from ... import _arrays
from ..._callable import call_function
from ..._context import Context
from ..._extras import Extras
from ..._signature import first_order_backend, parse_call
from ..._tangents import Tangents, basis_batches
from ...backends._base import AbstractBackend, JacobianDirection
from ...backends._capabilities import pick_batchsize
from ._primitives import (
    _pullback_eval,
    _pullback_prepare,
    _pushforward_eval,
    _pushforward_prepare,
)


logger = logging.getLogger(__name__)


class JacobianExtras(Extras):
    direction: JacobianDirection
    batch_size: int
    n_seeds: int
    seeds: tuple[Tangents, ...]
    primitive: Extras | None


def _jacobian_prepare(
    f: Callable,
    y: Any,
    backend: AbstractBackend,
    x: Any,
    contexts: Sequence[Context],
    /,
) -> JacobianExtras:
    x = _arrays.as_point(x)
    direction = backend.jacobian_direction
    if direction == "pushforward":
        n = _arrays.size(x)
        batch_size = pick_batchsize(backend, n)
        seeds = basis_batches(x, batch_size)
        primitive = (
            _pushforward_prepare(f, y, backend, x, seeds[0], contexts) if seeds else None
        )
    else:
        y0 = call_function(f, y, x, contexts)
        n = _arrays.size(y0)
        batch_size = pick_batchsize(backend, n)
        seeds = basis_batches(y0, batch_size)
        primitive = (
            _pullback_prepare(f, y, backend, x, seeds[0], contexts) if seeds else None
        )
    logger.debug(
        "Prepared jacobian with %s: %d %s seed(s) in %d batch(es) of %d.",
        type(backend).__name__,
        n,
        direction,
        len(seeds),
        batch_size,
    )
    return JacobianExtras(direction, batch_size, n, seeds, primitive)


def _jacobian_eval(
    f: Callable,
    y: Any,
    extras: Extras | None,
    backend: AbstractBackend,
    x: Any,
    contexts: Sequence[Context],
    /,
) -> tuple[Any, Any]:
    if extras is None:
        extras = _jacobian_prepare(f, y, backend, x, contexts)
    elif not isinstance(extras, JacobianExtras):
        raise TypeError(
            f"Expected JacobianExtras from prepare_jacobian; got {type(extras).__name__}."
        )
    x = _arrays.as_point(x)
    if not extras.seeds:
        yv = call_function(f, y, x, contexts)
        xp = _arrays.namespace(x, yv)
        return yv, xp.zeros((_arrays.size(yv), _arrays.size(x)))
    evaluate = _pushforward_eval if extras.direction == "pushforward" else _pullback_eval
    yv = None
    pieces: list[Any] = []
    for batch in extras.seeds:
        yv, out = evaluate(f, y, extras.primitive, backend, x, batch, contexts)
        keep = min(extras.batch_size, extras.n_seeds - len(pieces))
        pieces.extend(_arrays.flatten(t) for t in tuple(out)[:keep])
    if extras.direction == "pushforward":
        jac = _arrays.stack(pieces, axis=1)
    else:
        jac = _arrays.stack(pieces, axis=0)
    return yv, jac


def prepare_jacobian(f: Callable, /, *args: Any) -> JacobianExtras:
    """Prepare `jacobian`. Call as `prepare_jacobian(f, [y], backend, x, *contexts)`."""
    call = parse_call("prepare_jacobian", f, args, allow_extras=False)
    backend = first_order_backend("prepare_jacobian", call.backend, call.y)
    return _jacobian_prepare(f, call.y, backend, call.x, call.contexts)


def value_and_jacobian(f: Callable, /, *args: Any) -> tuple[Any, Any]:
    r"""Value and Jacobian matrix of `f` at `x`.

    The Jacobian is assembled column by column with pushforwards, or row by
    row with pullbacks, following `backend.jacobian_direction`. Basis seeds
    are processed in bundles of `pick_batchsize(backend, n)`.

    **Arguments:**

    Positional, as `value_and_jacobian(f, [y], [extras], backend, x, *contexts)`.

    **Returns:**

    `(y, J)` with `J[i, j]` $= \partial y_i / \partial x_j$ over the flattened
    layouts, i.e. of shape `(size(y), size(x))`.

    **Example:**

    ```python
    def f(x):
        return x[0] * x  # [x0**2, x0*x1]

    jacobian(f, AutoJaxForward(), jnp.array([2.0, 3.0]))  # [[4, 0], [3, 2]]
    ```
    """
    call = parse_call("value_and_jacobian", f, args)
    backend = first_order_backend("value_and_jacobian", call.backend, call.y)
    return _jacobian_eval(f, call.y, call.extras, backend, call.x, call.contexts)


def jacobian(f: Callable, /, *args: Any) -> Any:
    """Jacobian matrix; see `value_and_jacobian`."""
    call = parse_call("jacobian", f, args)
    backend = first_order_backend("jacobian", call.backend, call.y)
    return _jacobian_eval(f, call.y, call.extras, backend, call.x, call.contexts)[1]


def value_and_jacobian_(f: Callable, /, *args: Any) -> tuple[Any, Any]:
    """In-place `value_and_jacobian` into a numpy buffer `jac`.

    Call as `value_and_jacobian_(f, [y], jac, [extras], backend, x, *contexts)`.
    """
    call = parse_call("value_and_jacobian_", f, args, n_outputs=1)
    backend = first_order_backend("value_and_jacobian_", call.backend, call.y)
    (jac,) = call.outputs
    yv, j = _jacobian_eval(f, call.y, call.extras, backend, call.x, call.contexts)
    return yv, _arrays.copyto(jac, j)


def jacobian_(f: Callable, /, *args: Any) -> Any:
    """In-place `jacobian`; see `value_and_jacobian_`."""
    call = parse_call("jacobian_", f, args, n_outputs=1)
    backend = first_order_backend("jacobian_", call.backend, call.y)
    (jac,) = call.outputs
    _, j = _jacobian_eval(f, call.y, call.extras, backend, call.x, call.contexts)
    return _arrays.copyto(jac, j)
