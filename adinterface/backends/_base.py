#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

"""Engine interface and capability descriptor.

An engine implements at least one of the two primitives

- `value_and_pushforward(f, y, token, x, tx, contexts) -> (y, Tangents)`
- `value_and_pullback(f, y, token, x, ty, contexts) -> (y, Tangents)`

together with the matching `prepare_*` methods returning an opaque token.
Here `y` is `None` for a pure function `f(x, *c)` and the caller-owned output
buffer for a mutating `f(y, x, *c)`; `contexts` is a tuple of `Context`.
The missing primitive is derived from the Jacobian computed with the other
one over a standard basis.
"""

from __future__ import annotations

import abc
import importlib.util
import logging
from collections.abc import Callable, Sequence
from typing import Any, Literal, TypeAlias

from .. import _arrays
from .._callable import call_function
from .._context import Context
from .._errors import UnsupportedOperatorError
from .._runtime import DEFAULT_TOLERANCE, Tolerance
from .._strict import StrictModule
from .._tangents import check_shapes, Tangents


logger = logging.getLogger(__name__)


Mode: TypeAlias = Literal["forward", "reverse", "finite_differences", "symbolic"]
JacobianDirection: TypeAlias = Literal["pushforward", "pullback"]
PointKind: TypeAlias = Literal["array", "dual", "jax"]


class _DerivedToken(StrictModule):
    inner: Any
    seeds: Tangents | None
    out_shape: tuple[int, ...]


def copy_tangents(out: Tangents, values: Tangents, /) -> Tangents:
    if not isinstance(out, Tangents):
        raise TypeError(
            f"In-place results must be passed as Tangents of buffers; got {type(out).__name__}."
        )
    if len(out) != len(values):
        raise ValueError(
            f"Result buffer holds {len(out)} tangent(s) but {len(values)} were computed."
        )
    for buf, val in zip(out, values, strict=True):
        _arrays.copyto(buf, val)
    return out


class AbstractBackend(StrictModule):
    """Immutable descriptor of a differentiation engine and its capabilities."""

    # Capability descriptor

    @property
    @abc.abstractmethod
    def mode(self) -> Mode:
        """Differentiation mode: forward, reverse, finite_differences or symbolic."""

    @property
    def requirement(self) -> str | None:
        """Optional module that must be importable for this engine to run."""
        return None

    def check_available(self) -> bool:
        req = self.requirement
        return req is None or importlib.util.find_spec(req) is not None

    @property
    def inplace_support(self) -> bool:
        """Whether mutating functions `f(y, x)` can be differentiated."""
        return True

    def pick_batchsize(self, dimension: int, /) -> int:
        """Number of tangents processed in one engine call for `dimension` seeds."""
        del dimension
        return 1

    @property
    def nested_tag_support(self) -> bool:
        """Whether the engine isolates nested forward passes with tags."""
        return False

    def with_tag(self, tag: Any, /) -> AbstractBackend:
        del tag
        return self

    def lift_point(self, x: Any, tx: Tangents, /) -> Any:
        """Point as seen by an inner pass nested under this (outer) engine."""
        del tx
        return x

    @property
    def lifted_point_kind(self) -> PointKind:
        """Kind of point an inner backend receives when nested under this one."""
        return "array"

    @property
    def point_kinds(self) -> frozenset[PointKind]:
        """Kinds of point this backend can differentiate at as an inner backend."""
        return frozenset(("array", "dual", "jax"))

    @property
    def jacobian_direction(self) -> JacobianDirection:
        return "pullback" if self.mode == "reverse" else "pushforward"

    @property
    def default_tolerance(self) -> Tolerance:
        return DEFAULT_TOLERANCE

    def _implements(self, name: str, /) -> bool:
        return getattr(type(self), name) is not getattr(AbstractBackend, name)

    def _empty_derived(
        self,
        f: Callable,
        y: Any,
        x: Any,
        token: _DerivedToken,
        n: int,
        contexts: Sequence[Context],
    ) -> tuple[Any, Tangents]:
        # The Jacobian has a zero-size side, so every product is an empty array.
        yv = call_function(f, y, x, contexts)
        xp = _arrays.namespace(x, yv)
        return yv, Tangents(*(xp.zeros(token.out_shape) for _ in range(n)))

    # Pushforward

    def prepare_pushforward(
        self, f: Callable, y: Any, x: Any, tx: Tangents, contexts: Sequence[Context]
    ) -> Any:
        if self._implements("value_and_pushforward"):
            return None
        return self._prepare_from_pullback(f, y, x, contexts, same_point=False)

    def prepare_pushforward_same_point(
        self, f: Callable, y: Any, x: Any, tx: Tangents, contexts: Sequence[Context]
    ) -> Any:
        if self._implements("value_and_pushforward"):
            return self.prepare_pushforward(f, y, x, tx, contexts)
        return self._prepare_from_pullback(f, y, x, contexts, same_point=True)

    def value_and_pushforward(
        self,
        f: Callable,
        y: Any,
        token: Any,
        x: Any,
        tx: Tangents,
        contexts: Sequence[Context],
    ) -> tuple[Any, Tangents]:
        if not isinstance(token, _DerivedToken):
            raise UnsupportedOperatorError(
                f"{type(self).__name__} implements neither pushforward nor pullback."
            )
        if token.seeds is None:
            return self._empty_derived(f, y, x, token, len(tx), contexts)
        yv, rows = self.value_and_pullback(f, y, token.inner, x, token.seeds, contexts)
        jac = _arrays.stack([_arrays.flatten(r) for r in rows], axis=0)
        out = tuple(
            _arrays.unflatten(jac @ _arrays.flatten(v), token.out_shape) for v in tx
        )
        return yv, Tangents(*out)

    def pushforward(
        self,
        f: Callable,
        y: Any,
        token: Any,
        x: Any,
        tx: Tangents,
        contexts: Sequence[Context],
    ) -> Tangents:
        return self.value_and_pushforward(f, y, token, x, tx, contexts)[1]

    def value_and_pushforward_(
        self,
        f: Callable,
        y: Any,
        ty_out: Tangents,
        token: Any,
        x: Any,
        tx: Tangents,
        contexts: Sequence[Context],
    ) -> tuple[Any, Tangents]:
        yv, ty = self.value_and_pushforward(f, y, token, x, tx, contexts)
        return yv, copy_tangents(ty_out, ty)

    def _prepare_from_pullback(
        self, f: Callable, y: Any, x: Any, contexts: Sequence[Context], *, same_point: bool
    ) -> _DerivedToken:
        if not self._implements("value_and_pullback"):
            raise UnsupportedOperatorError(
                f"{type(self).__name__} implements neither pushforward nor pullback."
            )
        y0 = call_function(f, y, x, contexts)
        n_out = _arrays.size(y0)
        if n_out == 0:
            return _DerivedToken(None, None, _arrays.shape(y0))
        seeds = Tangents(*(_arrays.basis(y0, i) for i in range(n_out)))
        logger.debug(
            "%s: deriving pushforward from %d pullback seed(s).", type(self).__name__, n_out
        )
        if same_point:
            inner = self.prepare_pullback_same_point(f, y, x, seeds, contexts)
        else:
            inner = self.prepare_pullback(f, y, x, seeds, contexts)
        return _DerivedToken(inner, seeds, _arrays.shape(y0))

    # Pullback

    def prepare_pullback(
        self, f: Callable, y: Any, x: Any, ty: Tangents, contexts: Sequence[Context]
    ) -> Any:
        if self._implements("value_and_pullback"):
            return None
        return self._prepare_from_pushforward(f, y, x, contexts, same_point=False)

    def prepare_pullback_same_point(
        self, f: Callable, y: Any, x: Any, ty: Tangents, contexts: Sequence[Context]
    ) -> Any:
        if self._implements("value_and_pullback"):
            return self.prepare_pullback(f, y, x, ty, contexts)
        return self._prepare_from_pushforward(f, y, x, contexts, same_point=True)

    def value_and_pullback(
        self,
        f: Callable,
        y: Any,
        token: Any,
        x: Any,
        ty: Tangents,
        contexts: Sequence[Context],
    ) -> tuple[Any, Tangents]:
        if not isinstance(token, _DerivedToken):
            raise UnsupportedOperatorError(
                f"{type(self).__name__} implements neither pushforward nor pullback."
            )
        if token.seeds is None:
            yv, tx = self._empty_derived(f, y, x, token, len(ty), contexts)
            check_shapes("pullback", ty, _arrays.shape(yv), side="y")
            return yv, tx
        yv, cols = self.value_and_pushforward(
            f, y, token.inner, x, token.seeds, contexts
        )
        check_shapes("pullback", ty, _arrays.shape(yv), side="y")
        jac = _arrays.stack([_arrays.flatten(c) for c in cols], axis=1)
        out = tuple(
            _arrays.unflatten(jac.T @ _arrays.flatten(w), token.out_shape) for w in ty
        )
        return yv, Tangents(*out)

    def pullback(
        self,
        f: Callable,
        y: Any,
        token: Any,
        x: Any,
        ty: Tangents,
        contexts: Sequence[Context],
    ) -> Tangents:
        return self.value_and_pullback(f, y, token, x, ty, contexts)[1]

    def value_and_pullback_(
        self,
        f: Callable,
        y: Any,
        tx_out: Tangents,
        token: Any,
        x: Any,
        ty: Tangents,
        contexts: Sequence[Context],
    ) -> tuple[Any, Tangents]:
        yv, tx = self.value_and_pullback(f, y, token, x, ty, contexts)
        return yv, copy_tangents(tx_out, tx)

    def _prepare_from_pushforward(
        self, f: Callable, y: Any, x: Any, contexts: Sequence[Context], *, same_point: bool
    ) -> _DerivedToken:
        if not self._implements("value_and_pushforward"):
            raise UnsupportedOperatorError(
                f"{type(self).__name__} implements neither pushforward nor pullback."
            )
        n_in = _arrays.size(x)
        if n_in == 0:
            return _DerivedToken(None, None, _arrays.shape(x))
        seeds = Tangents(*(_arrays.basis(x, j) for j in range(n_in)))
        logger.debug(
            "%s: deriving pullback from %d pushforward seed(s).", type(self).__name__, n_in
        )
        if same_point:
            inner = self.prepare_pushforward_same_point(f, y, x, seeds, contexts)
        else:
            inner = self.prepare_pushforward(f, y, x, seeds, contexts)
        return _DerivedToken(inner, seeds, _arrays.shape(x))
