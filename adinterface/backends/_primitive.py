#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

"""Wrappers exposing a single primitive of another backend.

Every other operator is then derived by the operator layer, which makes these
wrappers useful to check that derivations from a primitive agree with the
engine's own implementations.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from .._context import Context
from .._runtime import Tolerance
from .._tangents import Tangents
from ._base import AbstractBackend, Mode, PointKind


class _AbstractFromPrimitive(AbstractBackend):
    backend: AbstractBackend

    @property
    def requirement(self) -> str | None:
        return self.backend.requirement

    def check_available(self) -> bool:
        return self.backend.check_available()

    @property
    def inplace_support(self) -> bool:
        return self.backend.inplace_support

    def pick_batchsize(self, dimension: int, /) -> int:
        return self.backend.pick_batchsize(dimension)

    @property
    def default_tolerance(self) -> Tolerance:
        return self.backend.default_tolerance

    @property
    def nested_tag_support(self) -> bool:
        return self.backend.nested_tag_support

    @property
    def lifted_point_kind(self) -> PointKind:
        return self.backend.lifted_point_kind

    @property
    def point_kinds(self) -> frozenset[PointKind]:
        return self.backend.point_kinds

    @property
    def tag(self) -> Any:
        return getattr(self.backend, "tag", None)

    def with_tag(self, tag: Any, /) -> _AbstractFromPrimitive:
        return type(self)(self.backend.with_tag(tag))

    def lift_point(self, x: Any, tx: Tangents, /) -> Any:
        return self.backend.lift_point(x, tx)


class AutoForwardFromPrimitive(_AbstractFromPrimitive):
    """Forward-mode view of `backend` using only its pushforward."""

    @property
    def mode(self) -> Mode:
        return "forward"

    def prepare_pushforward(
        self, f: Callable, y: Any, x: Any, tx: Tangents, contexts: Sequence[Context]
    ) -> Any:
        return self.backend.prepare_pushforward(f, y, x, tx, contexts)

    def prepare_pushforward_same_point(
        self, f: Callable, y: Any, x: Any, tx: Tangents, contexts: Sequence[Context]
    ) -> Any:
        return self.backend.prepare_pushforward_same_point(f, y, x, tx, contexts)

    def value_and_pushforward(
        self,
        f: Callable,
        y: Any,
        token: Any,
        x: Any,
        tx: Tangents,
        contexts: Sequence[Context],
    ) -> tuple[Any, Tangents]:
        return self.backend.value_and_pushforward(f, y, token, x, tx, contexts)


class AutoReverseFromPrimitive(_AbstractFromPrimitive):
    """Reverse-mode view of `backend` using only its pullback."""

    @property
    def mode(self) -> Mode:
        return "reverse"

    def prepare_pullback(
        self, f: Callable, y: Any, x: Any, ty: Tangents, contexts: Sequence[Context]
    ) -> Any:
        return self.backend.prepare_pullback(f, y, x, ty, contexts)

    def prepare_pullback_same_point(
        self, f: Callable, y: Any, x: Any, ty: Tangents, contexts: Sequence[Context]
    ) -> Any:
        return self.backend.prepare_pullback_same_point(f, y, x, ty, contexts)

    def value_and_pullback(
        self,
        f: Callable,
        y: Any,
        token: Any,
        x: Any,
        ty: Tangents,
        contexts: Sequence[Context],
    ) -> tuple[Any, Tangents]:
        return self.backend.value_and_pullback(f, y, token, x, ty, contexts)
