#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from ... import _arrays
from ..._callable import call_function
from ..._context import Context
from ..._extras import Extras
from ..._signature import as_second_order, parse_call
from ..._tangents import Tangents, basis_batches
from ...backends._capabilities import pick_batchsize
from ...backends._second_order import SecondOrder
from ._hvp import HVPExtras, _hvp_eval, _hvp_prepare


class HessianExtras(Extras):
    hvp: HVPExtras | None
    batch_size: int
    n_seeds: int
    seeds: tuple[Tangents, ...]


def _hessian_prepare(
    f: Callable,
    y: Any,
    backend: SecondOrder,
    x: Any,
    contexts: Sequence[Context],
    /,
) -> HessianExtras:
    x = _arrays.as_point(x)
    n = _arrays.size(x)
    batch_size = pick_batchsize(backend, n)
    seeds = basis_batches(x, batch_size)
    if not seeds:
        return HessianExtras(None, batch_size, n, seeds)
    hvp_extras = _hvp_prepare(f, y, backend, x, seeds[0], contexts, kind="hessian")
    return HessianExtras(hvp_extras, batch_size, n, seeds)


def _hessian_eval(
    f: Callable,
    y: Any,
    extras: Extras | None,
    backend: SecondOrder,
    x: Any,
    contexts: Sequence[Context],
    /,
) -> tuple[Any, Any]:
    if extras is None:
        extras = _hessian_prepare(f, y, backend, x, contexts)
    elif not isinstance(extras, HessianExtras):
        raise TypeError(
            f"Expected HessianExtras from prepare_hessian; got {type(extras).__name__}."
        )
    x = _arrays.as_point(x)
    if not extras.seeds:
        xp = _arrays.namespace(x)
        return _arrays.zero(x), xp.zeros((0, 0))
    grad = None
    columns: list[Any] = []
    for batch in extras.seeds:
        grad, tg = _hvp_eval(f, None, extras.hvp, backend, x, batch, contexts)
        keep = min(extras.batch_size, extras.n_seeds - len(columns))
        columns.extend(_arrays.flatten(t) for t in tuple(tg)[:keep])
    return grad, _arrays.stack(columns, axis=1)


def prepare_hessian(f: Callable, /, *args: Any) -> HessianExtras:
    """Prepare `hessian`. Call as `prepare_hessian(f, [y], backend, x, *contexts)`."""
    call = parse_call("prepare_hessian", f, args, allow_extras=False)
    backend = as_second_order("prepare_hessian", call.backend, call.y)
    return _hessian_prepare(f, call.y, backend, call.x, call.contexts)


def value_gradient_and_hessian(f: Callable, /, *args: Any) -> tuple[Any, Any, Any]:
    r"""Value, gradient and Hessian matrix of a scalar-valued function.

    The Hessian is assembled column by column from Hessian-vector products
    over the standard basis, in bundles of `pick_batchsize(backend.outer, n)`.

    **Arguments:**

    Positional, as `value_gradient_and_hessian(f, [y], [extras], backend, x, *contexts)`.

    **Returns:**

    `(y, g, H)` with `H` of shape `(size(x), size(x))`.

    **Example:**

    ```python
    hessian(lambda x: (x**2).sum(), AutoDual(), np.array([1.0, 2.0]))
    # [[2, 0], [0, 2]]
    ```
    """
    call = parse_call("value_gradient_and_hessian", f, args)
    backend = as_second_order("value_gradient_and_hessian", call.backend, call.y)
    x = _arrays.as_point(call.x)
    value = call_function(f, call.y, x, call.contexts)
    grad, hess = _hessian_eval(f, call.y, call.extras, backend, x, call.contexts)
    return value, grad, hess


def hessian(f: Callable, /, *args: Any) -> Any:
    """Hessian matrix; see `value_gradient_and_hessian`."""
    call = parse_call("hessian", f, args)
    backend = as_second_order("hessian", call.backend, call.y)
    x = _arrays.as_point(call.x)
    if call.y is not None:
        call_function(f, call.y, x, call.contexts)
    return _hessian_eval(f, call.y, call.extras, backend, x, call.contexts)[1]


def value_gradient_and_hessian_(f: Callable, /, *args: Any) -> tuple[Any, Any, Any]:
    """In-place `value_gradient_and_hessian` into numpy buffers `grad` and `hess`.

    Call as `value_gradient_and_hessian_(f, [y], grad, hess, [extras], backend, x, *contexts)`.
    """
    name = "value_gradient_and_hessian_"
    call = parse_call(name, f, args, n_outputs=2)
    backend = as_second_order(name, call.backend, call.y)
    grad_out, hess_out = call.outputs
    x = _arrays.as_point(call.x)
    value = call_function(f, call.y, x, call.contexts)
    grad, hess = _hessian_eval(f, call.y, call.extras, backend, x, call.contexts)
    return value, _arrays.copyto(grad_out, grad), _arrays.copyto(hess_out, hess)


def hessian_(f: Callable, /, *args: Any) -> Any:
    """In-place `hessian`. Call as `hessian_(f, [y], hess, [extras], backend, x, *contexts)`."""
    call = parse_call("hessian_", f, args, n_outputs=1)
    backend = as_second_order("hessian_", call.backend, call.y)
    (hess_out,) = call.outputs
    x = _arrays.as_point(call.x)
    if call.y is not None:
        call_function(f, call.y, x, call.contexts)
    _, hess = _hessian_eval(f, call.y, call.extras, backend, x, call.contexts)
    return _arrays.copyto(hess_out, hess)
