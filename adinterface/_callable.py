#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

import numpy as np

from ._context import Context, unwrap
from ._strict import StrictModule


def call_function(
    f: Callable, y: Any, x: Any, contexts: Sequence[Context], /
) -> Any:
    """Evaluate a pure `f(x, *c)` or a mutating `f(y, x, *c)` and return the primal."""
    values = unwrap(contexts)
    if y is None:
        return f(x, *values)
    f(y, x, *values)
    return y


def _buffer_dtype(template_dtype: Any, x: Any, /) -> Any:
    x_dtype = np.asarray(x).dtype if not hasattr(x, "dtype") else x.dtype
    if x_dtype == object or template_dtype == object:
        return object
    return np.result_type(template_dtype, x_dtype)


class MutatingAsPure(StrictModule):
    """Pure view `x -> y` of a mutating function `f(y, x)`.

    Every call allocates a fresh buffer shaped like the template output; the
    buffer has object dtype whenever the point carries dual numbers.
    """

    f: Callable
    out_shape: tuple[int, ...]
    out_dtype: Any

    def __init__(self, f: Callable, y: np.ndarray, /):
        if not isinstance(y, np.ndarray):
            raise TypeError(
                f"Mutating functions need a numpy.ndarray output buffer; got {type(y).__name__}."
            )
        self.f = f
        self.out_shape = tuple(y.shape)
        self.out_dtype = y.dtype

    def __call__(self, x: Any, /, *args: Any) -> np.ndarray:
        dtype = _buffer_dtype(self.out_dtype, x)
        buf = np.zeros(self.out_shape, dtype=dtype)
        self.f(buf, x, *args)
        if buf.ndim == 0:
            return buf[()]
        return buf
