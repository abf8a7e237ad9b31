#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

from . import _arrays
from ._errors import SignatureMismatchError
from ._strict import StrictModule


class Tangents(StrictModule):
    """Ordered bundle of one or more tangents (or cotangents).

    All elements share the shape and type of the point `x` (pushforward side)
    or of the output `y` (pullback side). The bundle length is the batch size.

    **Example:**

    ```python
    tx = Tangents(jnp.array([1.0, 0.0]), jnp.array([0.0, 1.0]))
    len(tx)  # 2
    ```
    """

    d: tuple[Any, ...]

    def __init__(self, *d: Any):
        if len(d) == 0:
            raise ValueError("Tangents requires at least one element.")
        self.d = tuple(d)

    def __len__(self) -> int:
        return len(self.d)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.d)

    def __getitem__(self, i: int) -> Any:
        return self.d[i]

    def only(self) -> Any:
        """Unwrap a bundle of size one."""
        if len(self.d) != 1:
            raise ValueError(
                f"Tangents.only() requires a single element; got {len(self.d)}."
            )
        return self.d[0]

    def map(self, fn: Callable[[Any], Any], /) -> Tangents:
        return Tangents(*(fn(t) for t in self.d))

    def __repr__(self) -> str:
        return "Tangents(" + ", ".join(repr(t) for t in self.d) + ")"


def check_shapes(
    name: str, tangents: Tangents, expected: tuple[int, ...], /, *, side: str = "x"
) -> None:
    """Reject tangents whose shape differs from the point (or output) they act on."""
    for i, t in enumerate(tangents):
        got = _arrays.shape(t)
        if got != tuple(expected):
            raise SignatureMismatchError(
                f"{name}: tangent {i} has shape {got} but {side} has shape "
                f"{tuple(expected)}."
            )


def basis_batches(value: Any, batch_size: int, /) -> tuple[Tangents, ...]:
    """Standard basis over `value`, grouped into bundles of `batch_size`.

    The final bundle is padded by repeating its last seed so every bundle has
    the same length; callers drop results past `size(value)`.
    """
    n = _arrays.size(value)
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive; got {batch_size}.")
    seeds = [_arrays.basis(value, j) for j in range(n)]
    batches = []
    for start in range(0, n, batch_size):
        chunk = seeds[start : start + batch_size]
        chunk = chunk + [chunk[-1]] * (batch_size - len(chunk))
        batches.append(Tangents(*chunk))
    return tuple(batches)
