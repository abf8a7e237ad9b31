#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, Literal

import numpy as np

from .. import _arrays
from .._callable import call_function
from .._context import Context
from .._runtime import Tolerance
from .._strict import StrictModule
from .._tangents import Tangents
from ._base import AbstractBackend, Mode


_EPS = float(np.finfo(np.float64).eps)


class _FDToken(StrictModule):
    value: Any


class AutoFiniteDifferences(AbstractBackend):
    r"""Directional finite differences.

    Central differences evaluate

    $$
    \frac{f(x + h v) - f(x - h v)}{2h},
    $$

    forward differences evaluate $(f(x + h v) - f(x)) / h$. Each tangent costs
    one or two extra evaluations of `f`; tangents are processed sequentially.

    **Arguments:**

    - `step`: Step size $h$. Defaults to $\epsilon^{1/3}$ for central and
      $\epsilon^{1/2}$ for forward differences.
    - `method`: `"central"` or `"forward"`.
    """

    step: float | None = None
    method: Literal["central", "forward"] = "central"

    def __check_init__(self):
        if self.method not in ("central", "forward"):
            raise ValueError("method must be one of 'central' or 'forward'.")
        if self.step is not None and not self.step > 0:
            raise ValueError(f"step must be positive; got {self.step}.")

    @property
    def mode(self) -> Mode:
        return "finite_differences"

    @property
    def default_tolerance(self) -> Tolerance:
        if self.method == "forward":
            return Tolerance(rtol=1e-4, atol=1e-6)
        return Tolerance(rtol=1e-5, atol=1e-7)

    def _h(self) -> float:
        if self.step is not None:
            return float(self.step)
        return _EPS ** (1 / 3) if self.method == "central" else _EPS**0.5

    def _eval(self, f: Callable, y: Any, x: Any, contexts: Sequence[Context]) -> Any:
        if y is None:
            return call_function(f, None, x, contexts)
        buf = np.zeros_like(y)
        call_function(f, buf, x, contexts)
        return buf

    def prepare_pushforward(
        self, f: Callable, y: Any, x: Any, tx: Tangents, contexts: Sequence[Context]
    ) -> _FDToken:
        return _FDToken(value=None)

    def prepare_pushforward_same_point(
        self, f: Callable, y: Any, x: Any, tx: Tangents, contexts: Sequence[Context]
    ) -> _FDToken:
        if self.method == "forward":
            return _FDToken(value=self._eval(f, y, _arrays.as_point(x), contexts))
        return _FDToken(value=None)

    def _directional(
        self, f: Callable, y: Any, x: Any, v: Any, fx: Any, contexts
    ) -> Any:
        h = self._h()
        if self.method == "central":
            f_plus = self._eval(f, y, x + h * v, contexts)
            f_minus = self._eval(f, y, x - h * v, contexts)
            return (f_plus - f_minus) / (2 * h)
        f_plus = self._eval(f, y, x + h * v, contexts)
        return (f_plus - fx) / h

    def value_and_pushforward(
        self,
        f: Callable,
        y: Any,
        token: Any,
        x: Any,
        tx: Tangents,
        contexts: Sequence[Context],
    ) -> tuple[Any, Tangents]:
        x = _arrays.as_point(x)
        cached = token.value if isinstance(token, _FDToken) else None
        fx = cached if cached is not None else self._eval(f, y, x, contexts)
        ty = tuple(self._directional(f, y, x, v, fx, contexts) for v in tx)
        if y is not None:
            _arrays.copyto(y, fx)
            fx = y
        return fx, Tangents(*ty)

    def pushforward(
        self,
        f: Callable,
        y: Any,
        token: Any,
        x: Any,
        tx: Tangents,
        contexts: Sequence[Context],
    ) -> Tangents:
        if self.method == "forward" or y is not None:
            return self.value_and_pushforward(f, y, token, x, tx, contexts)[1]
        x = _arrays.as_point(x)
        return Tangents(*(self._directional(f, y, x, v, None, contexts) for v in tx))
