#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

"""Tagged dual numbers and the `AutoDual` forward-mode engine.

A `Dual(tag, value, partials)` carries one primal value and one partial per
tangent in the bundle. Values may themselves be duals of an older tag, which
is how nested forward passes are represented. When two duals of different
tags meet, the one with the newer tag treats the other as a constant.

Functions differentiated with `AutoDual` must be written with Python
arithmetic or numpy operations (object arrays of duals flow through numpy
ufuncs such as `np.exp`, `np.sin`, `np.sum` and `@`).
"""

from __future__ import annotations

import operator
from collections.abc import Callable, Sequence
from typing import Any

import numpy as np

from .. import _arrays
from .._callable import call_function
from .._context import Context
from .._errors import TagMismatchError, UnsupportedOperatorError
from .._strict import StrictModule
from .._tags import newest_perturbation, Tag, tag_for
from .._tangents import Tangents
from ._base import AbstractBackend, Mode, PointKind


_DEFAULT_CHUNKSIZE = 8


def _is_array(value: Any) -> bool:
    return isinstance(value, np.ndarray) and value.ndim > 0


def _call_math(name: str, z: Any) -> Any:
    if isinstance(z, Dual):
        return getattr(z, name)()
    return getattr(np, name)(z)


class Dual:
    """Number carrying first-order perturbations for a single tag."""

    __slots__ = ("tag", "value", "partials")

    def __init__(self, tag: Tag, value: Any, partials: Sequence[Any]):
        self.tag = tag
        self.value = value
        self.partials = tuple(partials)

    def __repr__(self) -> str:
        return f"Dual({self.tag!r}, {self.value!r}, {self.partials!r})"

    # Tag resolution

    @staticmethod
    def _top(a: Any, b: Any) -> Tag:
        ta = a.tag if isinstance(a, Dual) else None
        tb = b.tag if isinstance(b, Dual) else None
        if ta is None:
            return tb
        if tb is None or ta.order >= tb.order:
            return ta
        return tb

    @staticmethod
    def _split(a: Any, tag: Tag) -> tuple[Any, tuple[Any, ...] | None]:
        if isinstance(a, Dual) and a.tag is tag:
            return a.value, a.partials
        return a, None

    def _unary(self, value: Any, scale: Any) -> Dual:
        return Dual(self.tag, value, tuple(p * scale for p in self.partials))

    # Arithmetic

    def __add__(self, other: Any) -> Dual:
        if _is_array(other):
            return NotImplemented
        tag = Dual._top(self, other)
        av, ap = Dual._split(self, tag)
        bv, bp = Dual._split(other, tag)
        if ap is None:
            return Dual(tag, av + bv, bp)
        if bp is None:
            return Dual(tag, av + bv, ap)
        return Dual(tag, av + bv, tuple(p + q for p, q in zip(ap, bp, strict=True)))

    def __radd__(self, other: Any) -> Dual:
        return Dual.__add__(self, other)

    def __sub__(self, other: Any) -> Dual:
        return self + (-other)

    def __rsub__(self, other: Any) -> Dual:
        return (-self) + other

    def __mul__(self, other: Any) -> Dual:
        if _is_array(other):
            return NotImplemented
        tag = Dual._top(self, other)
        av, ap = Dual._split(self, tag)
        bv, bp = Dual._split(other, tag)
        if ap is None:
            return Dual(tag, av * bv, tuple(av * q for q in bp))
        if bp is None:
            return Dual(tag, av * bv, tuple(p * bv for p in ap))
        return Dual(
            tag, av * bv, tuple(p * bv + av * q for p, q in zip(ap, bp, strict=True))
        )

    def __rmul__(self, other: Any) -> Dual:
        return Dual.__mul__(self, other)

    def __truediv__(self, other: Any) -> Dual:
        if _is_array(other):
            return NotImplemented
        tag = Dual._top(self, other)
        av, ap = Dual._split(self, tag)
        bv, bp = Dual._split(other, tag)
        value = av / bv
        if bp is None:
            return Dual(tag, value, tuple(p / bv for p in ap))
        scale = -value / bv
        if ap is None:
            return Dual(tag, value, tuple(q * scale for q in bp))
        return Dual(
            tag,
            value,
            tuple(p / bv + q * scale for p, q in zip(ap, bp, strict=True)),
        )

    def __rtruediv__(self, other: Any) -> Dual:
        value = other / self.value
        return self._unary(value, -value / self.value)

    def __pow__(self, other: Any) -> Dual:
        if _is_array(other):
            return NotImplemented
        tag = Dual._top(self, other)
        av, ap = Dual._split(self, tag)
        bv, bp = Dual._split(other, tag)
        value = av**bv
        if bp is None:
            if isinstance(bv, (int, float)) and bv == 0:
                return Dual(tag, value, tuple(p * 0 for p in ap))
            scale = bv * av ** (bv - 1)
            return Dual(tag, value, tuple(p * scale for p in ap))
        log_av = _call_math("log", av)
        if ap is None:
            scale = value * log_av
            return Dual(tag, value, tuple(q * scale for q in bp))
        da = bv * av ** (bv - 1)
        db = value * log_av
        return Dual(
            tag, value, tuple(p * da + q * db for p, q in zip(ap, bp, strict=True))
        )

    def __rpow__(self, other: Any) -> Dual:
        value = other**self.value
        return self._unary(value, value * _call_math("log", other))

    def __neg__(self) -> Dual:
        return Dual(self.tag, -self.value, tuple(-p for p in self.partials))

    def __pos__(self) -> Dual:
        return self

    def __abs__(self) -> Dual:
        return self if primal(self) >= 0 else -self

    # Comparisons act on the innermost primal value.

    def __lt__(self, other: Any) -> bool:
        return primal(self) < primal(other)

    def __le__(self, other: Any) -> bool:
        return primal(self) <= primal(other)

    def __gt__(self, other: Any) -> bool:
        return primal(self) > primal(other)

    def __ge__(self, other: Any) -> bool:
        return primal(self) >= primal(other)

    # Elementwise math; numpy object loops call these by name.

    def exp(self) -> Dual:
        value = _call_math("exp", self.value)
        return self._unary(value, value)

    def log(self) -> Dual:
        return self._unary(_call_math("log", self.value), 1 / self.value)

    def sqrt(self) -> Dual:
        value = _call_math("sqrt", self.value)
        return self._unary(value, 0.5 / value)

    def sin(self) -> Dual:
        return self._unary(_call_math("sin", self.value), _call_math("cos", self.value))

    def cos(self) -> Dual:
        return self._unary(
            _call_math("cos", self.value), -_call_math("sin", self.value)
        )

    def tan(self) -> Dual:
        value = _call_math("tan", self.value)
        return self._unary(value, 1 + value * value)

    def tanh(self) -> Dual:
        value = _call_math("tanh", self.value)
        return self._unary(value, 1 - value * value)

    def arctan(self) -> Dual:
        return self._unary(
            _call_math("arctan", self.value), 1 / (1 + self.value * self.value)
        )

    def __array_ufunc__(self, ufunc, method, *inputs, **kwargs):
        fn = _UFUNCS.get(ufunc)
        if method != "__call__" or kwargs or fn is None:
            return NotImplemented
        if not any(isinstance(a, np.ndarray) for a in inputs):
            return fn(*(a.item() if isinstance(a, np.generic) else a for a in inputs))
        wrapped = []
        for a in inputs:
            if isinstance(a, Dual):
                box = np.empty((), dtype=object)
                box[()] = a
                a = box
            wrapped.append(a)
        return np.frompyfunc(fn, len(inputs), 1)(*wrapped)


_UFUNCS: dict[np.ufunc, Callable[..., Any]] = {
    np.add: operator.add,
    np.subtract: operator.sub,
    np.multiply: operator.mul,
    np.true_divide: operator.truediv,
    np.power: operator.pow,
    np.negative: operator.neg,
    np.positive: operator.pos,
    np.absolute: abs,
    np.square: lambda a: a * a,
    np.exp: lambda a: _call_math("exp", a),
    np.log: lambda a: _call_math("log", a),
    np.sqrt: lambda a: _call_math("sqrt", a),
    np.sin: lambda a: _call_math("sin", a),
    np.cos: lambda a: _call_math("cos", a),
    np.tan: lambda a: _call_math("tan", a),
    np.tanh: lambda a: _call_math("tanh", a),
    np.arctan: lambda a: _call_math("arctan", a),
}


def primal(value: Any, /) -> Any:
    """Innermost non-dual value."""
    while isinstance(value, Dual):
        value = value.value
    return value


def make_dual(tag: Tag, x: Any, tangents: Sequence[Any], /) -> Any:
    """Lift `x` to duals of `tag`, one partial per tangent."""
    if _arrays.is_scalar(x):
        x_val = np.asarray(x)[()] if isinstance(x, np.ndarray) else x
        parts = tuple(np.asarray(t).reshape(()).item() for t in tangents)
        return Dual(tag, x_val, parts)
    x_arr = np.asarray(x)
    flat_t = [np.asarray(t).reshape((-1,)) for t in tangents]
    out = np.empty(x_arr.shape, dtype=object)
    for i, v in enumerate(x_arr.reshape((-1,))):
        if x_arr.dtype != object:
            v = v.item()
        out.flat[i] = Dual(tag, v, tuple(ft[i].item() for ft in flat_t))
    return out


def _check_leaked(tag: Tag, value: Any, /) -> None:
    if isinstance(value, Dual) and value.tag.order > tag.order:
        raise TagMismatchError(
            f"Found a perturbation of {value.tag!r} while extracting {tag!r}; a "
            "nested forward pass was not tagged before the outer one was prepared."
        )


def _pack(values: list[Any], out_shape: tuple[int, ...], /) -> Any:
    if out_shape == ():
        return values[0]
    if any(isinstance(v, Dual) for v in values):
        out = np.empty(len(values), dtype=object)
        for i, v in enumerate(values):
            out[i] = v
        return out.reshape(out_shape)
    return np.asarray(values, dtype=float).reshape(out_shape)


def extract(tag: Tag, y: Any, n: int, /) -> tuple[Any, tuple[Any, ...]]:
    """Split `y` into its primal with respect to `tag` and `n` partials."""
    if isinstance(y, np.ndarray) and y.ndim == 0:
        y = y[()]
    y_shape = _arrays.shape(y)
    elements = [y] if y_shape == () else list(np.asarray(y, dtype=object).reshape(-1))
    values = []
    partials: list[list[Any]] = [[] for _ in range(n)]
    for e in elements:
        _check_leaked(tag, e)
        if isinstance(e, Dual) and e.tag is tag:
            values.append(e.value)
            for k in range(n):
                partials[k].append(e.partials[k])
        else:
            values.append(e)
            for k in range(n):
                partials[k].append(0.0)
    return _pack(values, y_shape), tuple(_pack(p, y_shape) for p in partials)


class _DualToken(StrictModule):
    tag: Tag


class AutoDual(AbstractBackend):
    """Forward-mode engine based on tagged dual numbers.

    **Arguments:**

    - `chunksize`: Number of partials carried per dual number, i.e. the number
      of tangents pushed forward in one evaluation of `f`. `None` picks
      `min(dimension, 8)` for jacobians and hessians.
    - `tag`: Fixed tag for the duals. `None` derives a stable tag from the
      function and the element type of the point at preparation.

    Supports nested differentiation through the `nested_tag_support`
    capability: second-order operators bind the outer pass to a function-linked
    tag before preparing the inner pass.
    """

    chunksize: int | None = None
    tag: Tag | None = None

    @property
    def mode(self) -> Mode:
        return "forward"

    def pick_batchsize(self, dimension: int, /) -> int:
        limit = _DEFAULT_CHUNKSIZE if self.chunksize is None else int(self.chunksize)
        return max(min(int(dimension), limit), 1)

    @property
    def nested_tag_support(self) -> bool:
        return True

    @property
    def lifted_point_kind(self) -> PointKind:
        return "dual"

    @property
    def point_kinds(self) -> frozenset[PointKind]:
        return frozenset(("array", "dual"))

    def with_tag(self, tag: Tag, /) -> AutoDual:
        return AutoDual(chunksize=self.chunksize, tag=tag)

    def lift_point(self, x: Any, tx: Tangents, /) -> Any:
        if self.tag is None:
            raise UnsupportedOperatorError("lift_point requires a tagged AutoDual.")
        return make_dual(self.tag, x, tuple(tx))

    def prepare_pushforward(
        self, f: Callable, y: Any, x: Any, tx: Tangents, contexts: Sequence[Context]
    ) -> _DualToken:
        if self.tag is not None:
            return _DualToken(self.tag)
        return _DualToken(tag_for(f, x, contexts=contexts))

    def _chunks(self, tx: Tangents, /) -> list[tuple[Any, ...]]:
        step = len(tx) if self.chunksize is None else max(int(self.chunksize), 1)
        items = tuple(tx)
        return [items[i : i + step] for i in range(0, len(items), step)]

    def _evaluate(
        self, f: Callable, y: Any, tag: Tag, x: Any, chunk: tuple[Any, ...], contexts
    ) -> tuple[Any, tuple[Any, ...]]:
        xd = make_dual(tag, x, chunk)
        if y is None:
            yd = call_function(f, None, xd, contexts)
        else:
            buf = np.zeros(y.shape, dtype=object)
            call_function(f, buf, xd, contexts)
            yd = buf
        return extract(tag, yd, len(chunk))

    def value_and_pushforward(
        self,
        f: Callable,
        y: Any,
        token: Any,
        x: Any,
        tx: Tangents,
        contexts: Sequence[Context],
    ) -> tuple[Any, Tangents]:
        tag = token.tag if isinstance(token, _DualToken) else self.tag
        if self.tag is None and (
            tag is None or newest_perturbation(x, contexts) >= tag.order
        ):
            tag = tag_for(f, x, contexts=contexts)
        x = _arrays.as_point(x)
        value = None
        results: list[Any] = []
        for chunk in self._chunks(tx):
            value, parts = self._evaluate(f, y, tag, x, chunk, contexts)
            results.extend(parts)
        if y is not None:
            _arrays.copyto(y, value)
            value = y
        return value, Tangents(*results)

