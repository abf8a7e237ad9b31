#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from .._context import Context
from .._runtime import Tolerance
from .._strict import StrictModule
from .._tags import tag_for
from ._base import AbstractBackend, Mode


logger = logging.getLogger(__name__)


class SecondOrder(StrictModule):
    r"""Pair of backends for second-order operators.

    Hessian-vector products are computed as the `outer` pushforward of the
    gradient of `f` computed with `inner`:

    $$
    \nabla^2 f(x)\,v = \partial_t \big[\nabla f(x + t v)\big]_{t=0}.
    $$

    **Arguments:**

    - `outer`: Backend used for the pushforward of the inner gradient.
    - `inner`: Backend used for the gradient (or derivative) of `f`.

    **Example:**

    ```python
    backend = SecondOrder(AutoJaxForward(), AutoJaxReverse())
    hessian(lambda x: (x**2).sum(), backend, jnp.array([1.0, 2.0]))
    ```
    """

    outer: AbstractBackend
    inner: AbstractBackend

    @property
    def mode(self) -> Mode:
        return self.outer.mode

    def check_available(self) -> bool:
        return self.outer.check_available() and self.inner.check_available()

    @property
    def inplace_support(self) -> bool:
        return self.outer.inplace_support and self.inner.inplace_support

    def pick_batchsize(self, dimension: int, /) -> int:
        return self.outer.pick_batchsize(dimension)

    @property
    def default_tolerance(self) -> Tolerance:
        a = self.outer.default_tolerance
        b = self.inner.default_tolerance
        return Tolerance(rtol=max(a.rtol, b.rtol), atol=max(a.atol, b.atol))


def tag_backend(
    f: Callable,
    backend: AbstractBackend,
    x: Any,
    kind: str,
    contexts: Sequence[Context] = (),
    /,
) -> AbstractBackend:
    """Bind an untagged outer backend to the tag linked to `f`, `kind` and `x`.

    Perturbations carried by the context values are part of the tag key.
    Backends without the `nested_tag_support` capability, and backends already
    carrying a tag, are returned unchanged.
    """
    if not backend.nested_tag_support or getattr(backend, "tag", None) is not None:
        return backend
    tag = tag_for(f, x, kind=kind, contexts=contexts)
    logger.debug("Tagged outer %s with %r for %s.", type(backend).__name__, tag, kind)
    return backend.with_tag(tag)
