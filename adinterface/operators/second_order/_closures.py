#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

"""Inner closures differentiated by the outer backend of a `SecondOrder` pair."""

from __future__ import annotations

import warnings
from collections.abc import Callable, Sequence
from typing import Any

from ..._callable import MutatingAsPure, call_function
from ..._context import Context, Rewrap
from ..._extras import Extras
from ..._strict import StrictModule
from ...backends._base import AbstractBackend
from ...backends._second_order import SecondOrder
from ..first_order._derivative import _derivative_eval
from ..first_order._gradient import _gradient_eval


class InnerGradient(StrictModule):
    """`x -> gradient(f, extras, inner, x, *contexts)` with raw context values."""

    f: Callable
    backend: AbstractBackend
    extras: Extras
    rewrap: Rewrap

    def __call__(self, x: Any, /, *values: Any) -> Any:
        contexts = self.rewrap(*values)
        return _gradient_eval(self.f, None, self.extras, self.backend, x, contexts)[1]


class InnerDerivative(StrictModule):
    """`x -> derivative(f, extras, inner, x, *contexts)` with raw context values."""

    f: Callable
    backend: AbstractBackend
    extras: Extras
    rewrap: Rewrap

    def __call__(self, x: Any, /, *values: Any) -> Any:
        contexts = self.rewrap(*values)
        return _derivative_eval(self.f, None, self.extras, self.backend, x, contexts)[1]


def pure_view(
    f: Callable, y: Any, x: Any, contexts: Sequence[Context], /
) -> Callable:
    """Pure function differentiated by the inner backend.

    Mutating functions are evaluated once into `y` and replaced by a view that
    allocates a fresh output buffer per call.
    """
    if y is None:
        return f
    call_function(f, y, x, contexts)
    return MutatingAsPure(f, y)


def warn_nested_finite_differences(backend: SecondOrder, /) -> None:
    if backend.outer.mode == "finite_differences" and backend.inner.mode == (
        "finite_differences"
    ):
        warnings.warn(
            "Nesting finite differences inside finite differences loses about half "
            "of the significant digits; prefer an AD backend for the inner gradient.",
            UserWarning,
            stacklevel=3,
        )
