#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from ._errors import ContextMismatchError
from ._strict import StrictModule


class Context(StrictModule):
    """Extra function argument that is not differentiated."""

    value: Any


class Constant(Context):
    """Context held constant across operator calls.

    **Example:**

    ```python
    def f(x, a):
        return a * x**2

    derivative(f, AutoDual(), 3.0, Constant(2.0))  # 12.0
    ```
    """

    def __init__(self, value: Any):
        self.value = value


ContextSignature = tuple[type, ...]


def context_signature(contexts: Sequence[Context], /) -> ContextSignature:
    return tuple(type(c) for c in contexts)


def check_contexts(expected: ContextSignature, contexts: Sequence[Context], /) -> None:
    """Reject evaluation contexts that differ from those seen at preparation."""
    got = context_signature(contexts)
    if len(got) != len(expected):
        raise ContextMismatchError(
            f"Extras were prepared with {len(expected)} context(s) but "
            f"{len(got)} were given."
        )
    for i, (a, b) in enumerate(zip(expected, got, strict=True)):
        if a is not b:
            raise ContextMismatchError(
                f"Context {i} was prepared as {a.__name__} but given as {b.__name__}."
            )


def ensure_contexts(values: Sequence[Any], /, *, name: str) -> tuple[Context, ...]:
    out = []
    for i, c in enumerate(values):
        if not isinstance(c, Context):
            raise TypeError(
                f"{name}: trailing argument {i} must be wrapped in a Context such as "
                f"Constant(...); got {type(c).__name__}."
            )
        out.append(c)
    return tuple(out)


def unwrap(contexts: Sequence[Context], /) -> tuple[Any, ...]:
    return tuple(c.value for c in contexts)


class Rewrap(StrictModule):
    """Re-wrap raw context values into the context types recorded at creation."""

    kinds: tuple[type, ...]

    def __init__(self, *contexts: Context):
        self.kinds = context_signature(contexts)

    def __call__(self, *values: Any) -> tuple[Context, ...]:
        if len(values) != len(self.kinds):
            raise ContextMismatchError(
                f"Rewrap expected {len(self.kinds)} value(s); got {len(values)}."
            )
        return tuple(kind(v) for kind, v in zip(self.kinds, values, strict=True))


class _WithContexts(StrictModule):
    f: Callable
    values: tuple[Any, ...]

    def __call__(self, x: Any, /) -> Any:
        return self.f(x, *self.values)


def with_contexts(f: Callable, /, *contexts: Context) -> Callable[[Any], Any]:
    """Close `f` over the unwrapped context values: `x -> f(x, *values)`."""
    return _WithContexts(f, unwrap(contexts))
