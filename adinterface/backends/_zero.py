#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

"""Engines returning zero derivatives.

They evaluate the primal exactly like a real engine and are used to test the
dispatch, preparation and mutation contracts independently of numerics.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from .. import _arrays
from .._callable import call_function
from .._context import Context
from .._tangents import check_shapes, Tangents
from ._base import AbstractBackend, Mode


class AutoZeroForward(AbstractBackend):
    """Forward-mode engine whose pushforward is identically zero."""

    @property
    def mode(self) -> Mode:
        return "forward"

    def value_and_pushforward(
        self,
        f: Callable,
        y: Any,
        token: Any,
        x: Any,
        tx: Tangents,
        contexts: Sequence[Context],
    ) -> tuple[Any, Tangents]:
        yv = call_function(f, y, _arrays.as_point(x), contexts)
        return yv, Tangents(*(_arrays.zero(yv) for _ in tx))


class AutoZeroReverse(AbstractBackend):
    """Reverse-mode engine whose pullback is identically zero."""

    @property
    def mode(self) -> Mode:
        return "reverse"

    def value_and_pullback(
        self,
        f: Callable,
        y: Any,
        token: Any,
        x: Any,
        ty: Tangents,
        contexts: Sequence[Context],
    ) -> tuple[Any, Tangents]:
        x = _arrays.as_point(x)
        yv = call_function(f, y, x, contexts)
        check_shapes("pullback", ty, _arrays.shape(yv), side="y")
        return yv, Tangents(*(_arrays.zero(x) for _ in ty))
