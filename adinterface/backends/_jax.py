#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

from __future__ import annotations

import functools
from collections.abc import Callable, Sequence
from typing import Any

import jax
import jax.numpy as jnp
from jaxtyping import Array, ArrayLike

from .. import _arrays
from .._context import Context, unwrap
from .._errors import SignatureMismatchError, UnsupportedOperatorError
from .._strict import StrictModule
from .._tangents import Tangents
from ._base import AbstractBackend, Mode, PointKind


def _as_jax_point(x: ArrayLike, /) -> Array:
    return _arrays.as_point(jnp.asarray(_arrays.as_point(x)))


def _match(t: ArrayLike, ref: Array, /) -> Array:
    t_arr = jnp.asarray(t, dtype=ref.dtype)
    if t_arr.shape != ref.shape:
        raise SignatureMismatchError(
            f"Tangent of shape {t_arr.shape} does not match shape {ref.shape}."
        )
    return t_arr


def _apply_batched(
    fn: Callable[[Array], Array], vs: Sequence[Array], batch_size: int | None, /
) -> tuple[Array, ...]:
    """Apply a linear map to each tangent, vmapping over chunks of `batch_size`."""
    if len(vs) == 1:
        return (fn(vs[0]),)
    step = len(vs) if batch_size is None else max(int(batch_size), 1)
    out: list[Array] = []
    for start in range(0, len(vs), step):
        chunk = vs[start : start + step]
        if len(chunk) == 1:
            out.append(fn(chunk[0]))
            continue
        res = jax.vmap(fn)(jnp.stack(chunk))
        out.extend(res[i] for i in range(len(chunk)))
    return tuple(out)


def _linearize(f: Callable, x: Array, values: tuple[Any, ...], /):
    return jax.linearize(lambda xi: f(xi, *values), x)


def _value_and_jvp(
    f: Callable,
    batch_size: int | None,
    x: Array,
    vs: tuple[Array, ...],
    values: tuple[Any, ...],
) -> tuple[Array, tuple[Array, ...]]:
    y, lin = _linearize(f, x, values)
    return y, _apply_batched(lin, [_match(v, x) for v in vs], batch_size)


def _vjp(f: Callable, x: Array, values: tuple[Any, ...], /):
    y, vjp_fn = jax.vjp(lambda xi: f(xi, *values), x)
    return y, (lambda w: vjp_fn(w)[0])


def _value_and_vjp(
    f: Callable,
    batch_size: int | None,
    x: Array,
    ws: tuple[Array, ...],
    values: tuple[Any, ...],
) -> tuple[Array, tuple[Array, ...]]:
    y, pull = _vjp(f, x, values)
    return y, _apply_batched(pull, [_match(w, y) for w in ws], batch_size)


class _JaxToken(StrictModule):
    compiled: Callable | None
    cached: tuple[Array, Callable] | None


class _AbstractJaxBackend(AbstractBackend):
    batch_size: int | None = None
    jit: bool = False

    @property
    def requirement(self) -> str | None:
        return "jax"

    @property
    def inplace_support(self) -> bool:
        return False

    @property
    def lifted_point_kind(self) -> PointKind:
        return "jax"

    @property
    def point_kinds(self) -> frozenset[PointKind]:
        return frozenset(("array", "jax"))

    def pick_batchsize(self, dimension: int, /) -> int:
        if self.batch_size is None:
            return max(int(dimension), 1)
        return max(min(int(dimension), int(self.batch_size)), 1)

    def _reject_mutating(self, y: Any, /) -> None:
        if y is not None:
            raise UnsupportedOperatorError(
                f"{type(self).__name__} cannot differentiate mutating functions "
                "f(y, x): JAX arrays are immutable. Use a pure function, or an "
                "engine with inplace support such as AutoDual or AutoFiniteDifferences."
            )

    def _compile(self, impl: Callable, f: Callable, /) -> Callable | None:
        if not self.jit:
            return None
        return jax.jit(functools.partial(impl, f, self.batch_size))

    # Pushforward

    def prepare_pushforward(
        self, f: Callable, y: Any, x: Any, tx: Tangents, contexts: Sequence[Context]
    ) -> _JaxToken:
        self._reject_mutating(y)
        return _JaxToken(compiled=self._compile(_value_and_jvp, f), cached=None)

    def prepare_pushforward_same_point(
        self, f: Callable, y: Any, x: Any, tx: Tangents, contexts: Sequence[Context]
    ) -> _JaxToken:
        self._reject_mutating(y)
        cached = _linearize(f, _as_jax_point(x), unwrap(contexts))
        return _JaxToken(compiled=None, cached=cached)

    def value_and_pushforward(
        self,
        f: Callable,
        y: Any,
        token: Any,
        x: Any,
        tx: Tangents,
        contexts: Sequence[Context],
    ) -> tuple[Any, Tangents]:
        self._reject_mutating(y)
        x_arr = _as_jax_point(x)
        if isinstance(token, _JaxToken) and token.cached is not None:
            yv, lin = token.cached
            ty = _apply_batched(lin, [_match(v, x_arr) for v in tx], self.batch_size)
            return yv, Tangents(*ty)
        values = unwrap(contexts)
        if isinstance(token, _JaxToken) and token.compiled is not None:
            yv, ty = token.compiled(x_arr, tuple(tx), values)
        else:
            yv, ty = _value_and_jvp(f, self.batch_size, x_arr, tuple(tx), values)
        return yv, Tangents(*ty)

    # Pullback

    def prepare_pullback(
        self, f: Callable, y: Any, x: Any, ty: Tangents, contexts: Sequence[Context]
    ) -> _JaxToken:
        self._reject_mutating(y)
        return _JaxToken(compiled=self._compile(_value_and_vjp, f), cached=None)

    def prepare_pullback_same_point(
        self, f: Callable, y: Any, x: Any, ty: Tangents, contexts: Sequence[Context]
    ) -> _JaxToken:
        self._reject_mutating(y)
        cached = _vjp(f, _as_jax_point(x), unwrap(contexts))
        return _JaxToken(compiled=None, cached=cached)

    def value_and_pullback(
        self,
        f: Callable,
        y: Any,
        token: Any,
        x: Any,
        ty: Tangents,
        contexts: Sequence[Context],
    ) -> tuple[Any, Tangents]:
        self._reject_mutating(y)
        x_arr = _as_jax_point(x)
        if isinstance(token, _JaxToken) and token.cached is not None:
            yv, pull = token.cached
            tx = _apply_batched(pull, [_match(w, yv) for w in ty], self.batch_size)
            return yv, Tangents(*tx)
        values = unwrap(contexts)
        if isinstance(token, _JaxToken) and token.compiled is not None:
            yv, tx = token.compiled(x_arr, tuple(ty), values)
        else:
            yv, tx = _value_and_vjp(f, self.batch_size, x_arr, tuple(ty), values)
        return yv, Tangents(*tx)


class AutoJaxForward(_AbstractJaxBackend):
    """JAX engine preferring forward mode (`jax.linearize`/`jax.jvp`).

    **Arguments:**

    - `batch_size`: Maximum number of tangents pushed through one `jax.vmap`
      call. `None` vmaps the whole bundle at once.
    - `jit`: Compile the prepared primitive with `jax.jit`. Context values must
      then be valid JAX arguments (arrays or pytrees of arrays).
    """

    @property
    def mode(self) -> Mode:
        return "forward"


class AutoJaxReverse(_AbstractJaxBackend):
    """JAX engine preferring reverse mode (`jax.vjp`).

    Same arguments as `AutoJaxForward`; jacobians are assembled row by row.
    """

    @property
    def mode(self) -> Mode:
        return "reverse"
