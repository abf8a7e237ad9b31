#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

"""Tags separating nested forward-mode perturbations.

Each tag has a creation `order`. A perturbation carrying a newer tag always
wraps perturbations of older tags, so an outer differentiation pass must be
tagged before the inner pass is prepared.
"""

from __future__ import annotations

import itertools
import logging
import weakref
from collections.abc import Callable, Hashable, Sequence
from typing import Any

import numpy as np

from ._strict import StrictModule


logger = logging.getLogger(__name__)

_TAG_ORDER = itertools.count(1)
_TAG_REGISTRY: weakref.WeakKeyDictionary[Any, dict[Hashable, Tag]] = (
    weakref.WeakKeyDictionary()
)


class Tag(StrictModule):
    order: int
    name: str

    def __repr__(self) -> str:
        return f"Tag({self.name}#{self.order})"


def new_tag(name: str = "anonymous", /) -> Tag:
    return Tag(order=next(_TAG_ORDER), name=name)


def _first_element(x: Any, /) -> Any:
    arr = np.asarray(x) if not hasattr(x, "dtype") else x
    if getattr(arr, "dtype", None) == object:
        return arr.flat[0] if arr.size else 0.0
    return x


def eltype_key(x: Any, /) -> Hashable:
    """Hashable description of the element type of `x`.

    Dual-number elements are described by their tag and the element type of
    their primal, so a point lifted by an outer pass never shares a key with
    the plain point.
    """
    first = _first_element(x)
    tag = getattr(first, "tag", None)
    if isinstance(tag, Tag):
        return ("dual", tag.order, eltype_key(first.value))
    dtype = getattr(first, "dtype", None)
    if dtype is not None:
        return np.dtype(dtype).name
    return np.result_type(first).name


def _perturbation_tag(value: Any, /) -> Tag | None:
    if isinstance(value, np.ndarray) and value.dtype == object:
        if value.size == 0:
            return None
        value = value.flat[0]
    tag = getattr(value, "tag", None)
    if isinstance(tag, Tag) and hasattr(value, "partials"):
        return tag
    return None


def newest_perturbation(x: Any, contexts: Sequence[Any] = (), /) -> int:
    """Order of the newest tag perturbing `x` or the context values (0 if none)."""
    tags = [_perturbation_tag(x)] + [_perturbation_tag(c.value) for c in contexts]
    return max((t.order for t in tags if t is not None), default=0)


def _contexts_key(contexts: Sequence[Any], /) -> tuple[Hashable, ...]:
    return tuple(
        eltype_key(c.value) if _perturbation_tag(c.value) is not None else None
        for c in contexts
    )


def tag_for(
    f: Callable,
    x: Any,
    /,
    *,
    kind: str = "function",
    contexts: Sequence[Any] = (),
) -> Tag:
    """Stable tag linked to `f`, the operator `kind` and the element type of `x`.

    Repeated calls with the same function return the same tag; different
    functions never share one. Perturbations carried by `x` or by the values of
    `contexts` are part of the key, so a function first differentiated on plain
    values gets a newer tag once it is called inside an outer pass. Callables
    that cannot be weakly referenced get a fresh tag on every call.
    """
    key = (kind, eltype_key(x), _contexts_key(contexts))
    name = f"{kind}:{getattr(f, '__name__', type(f).__name__)}"
    try:
        per_function = _TAG_REGISTRY.setdefault(f, {})
    except TypeError:
        tag = new_tag(name)
        logger.debug("Created unregistered %r for non-weakrefable %r.", tag, f)
        return tag
    tag = per_function.get(key)
    if tag is None:
        tag = new_tag(name)
        per_function[key] = tag
        logger.debug("Registered %r for %r with key %r.", tag, f, key)
    return tag
