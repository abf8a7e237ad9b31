#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

"""Numeric-kernel helpers shared by the operators and the engines.

Points, outputs and tangents may be Python scalars, numpy arrays (including
object arrays of dual numbers) or JAX arrays/tracers. Everything here keeps
JAX values inside `jax.numpy` so the helpers remain traceable.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import jax
import jax.numpy as jnp
import numpy as np


def is_jax(value: Any, /) -> bool:
    return isinstance(value, jax.Array)


def namespace(*values: Any):
    """`jax.numpy` if any value is a JAX array, else `numpy`."""
    return jnp if any(is_jax(v) for v in values) else np


def as_point(x: Any, /) -> Any:
    """Promote integer/sequence inputs to a floating point array or scalar."""
    if is_jax(x):
        if jnp.issubdtype(x.dtype, jnp.inexact):
            return x
        return x.astype(jnp.result_type(float))
    if isinstance(x, (list, tuple)):
        x = np.asarray(x)
    if isinstance(x, np.ndarray):
        if x.dtype == object or np.issubdtype(x.dtype, np.inexact):
            return x
        return x.astype(float)
    if isinstance(x, (bool, int, np.bool_, np.integer)):
        return float(x)
    return x


def shape(value: Any, /) -> tuple[int, ...]:
    return tuple(int(s) for s in np.shape(value))


def size(value: Any, /) -> int:
    return int(np.prod(shape(value), dtype=int))


def is_scalar(value: Any, /) -> bool:
    return len(shape(value)) == 0


def _float_dtype(value: Any, /) -> Any:
    dtype = getattr(value, "dtype", None)
    if dtype is None or dtype == object:
        return float
    if np.issubdtype(dtype, np.inexact):
        return dtype
    return float


def one(value: Any, /) -> Any:
    """Unit element shaped like `value` (all ones)."""
    if is_jax(value):
        return jnp.ones(value.shape, dtype=jnp.result_type(_float_dtype(value)))
    if isinstance(value, np.ndarray):
        return np.ones(value.shape, dtype=_float_dtype(value))
    return 1.0


def zero(value: Any, /) -> Any:
    """Additive identity shaped like `value`."""
    if is_jax(value):
        return jnp.zeros(value.shape, dtype=jnp.result_type(_float_dtype(value)))
    if isinstance(value, np.ndarray):
        return np.zeros(value.shape, dtype=_float_dtype(value))
    return 0.0


def basis(value: Any, index: int, /) -> Any:
    """Standard basis element `e_index` over the flattened layout of `value`."""
    n = size(value)
    if not 0 <= index < max(n, 1):
        raise IndexError(f"Basis index {index} out of range for size {n}.")
    if is_jax(value):
        dtype = jnp.result_type(_float_dtype(value))
        flat = jnp.zeros((n,), dtype=dtype).at[index].set(1)
        return flat.reshape(value.shape)
    if isinstance(value, np.ndarray):
        out = np.zeros(value.shape, dtype=_float_dtype(value))
        out.flat[index] = 1
        return out
    return 1.0


def flatten(value: Any, /) -> Any:
    if is_jax(value):
        return jnp.reshape(value, (-1,))
    return np.asarray(value).reshape((-1,))


def unflatten(vec: Any, out_shape: Sequence[int], /) -> Any:
    """Inverse of `flatten`; a scalar shape unwraps to a scalar element."""
    out_shape = tuple(out_shape)
    if out_shape == ():
        return vec[0]
    xp = namespace(vec)
    return xp.reshape(vec, out_shape)


def stack(values: Sequence[Any], /, *, axis: int = 0) -> Any:
    xp = namespace(*values)
    if xp is np:
        return np.stack([np.asarray(v) for v in values], axis=axis)
    return jnp.stack([jnp.asarray(v) for v in values], axis=axis)


def copyto(buffer: Any, value: Any, /) -> Any:
    """Write `value` into the caller-owned `buffer` and return the buffer."""
    if not isinstance(buffer, np.ndarray):
        raise TypeError(
            "In-place operator variants need a mutable numpy.ndarray buffer; "
            f"got {type(buffer).__name__}."
        )
    src = np.asarray(value)
    if src.shape != buffer.shape and src.size != buffer.size:
        raise ValueError(
            f"Result of shape {src.shape} does not fit buffer of shape {buffer.shape}."
        )
    buffer[...] = src.reshape(buffer.shape)
    return buffer
