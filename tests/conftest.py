#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

import jax
import numpy as np
import pytest


jax.config.update("jax_enable_x64", True)

from adinterface import (  # noqa: E402
    AutoDual,
    AutoFiniteDifferences,
    AutoForwardFromPrimitive,
    AutoJaxForward,
    AutoJaxReverse,
    AutoReverseFromPrimitive,
)


def _backend_id(backend) -> str:
    name = type(backend).__name__
    inner = getattr(backend, "backend", None)
    if inner is not None:
        return f"{name}[{type(inner).__name__}]"
    return name


FIRST_ORDER_BACKENDS = (
    AutoJaxForward(),
    AutoJaxForward(batch_size=1),
    AutoJaxReverse(),
    AutoJaxReverse(jit=True),
    AutoDual(),
    AutoDual(chunksize=1),
    AutoFiniteDifferences(),
    AutoFiniteDifferences(method="forward"),
    AutoForwardFromPrimitive(AutoJaxReverse()),
    AutoReverseFromPrimitive(AutoDual()),
)

INPLACE_BACKENDS = (
    AutoDual(),
    AutoFiniteDifferences(),
    AutoReverseFromPrimitive(AutoDual()),
)


@pytest.fixture(params=FIRST_ORDER_BACKENDS, ids=_backend_id)
def backend(request):
    return request.param


@pytest.fixture(params=INPLACE_BACKENDS, ids=_backend_id)
def inplace_backend(request):
    return request.param


@pytest.fixture
def square_map():
    """Pure f(x) = [x0**2, x0*x1] together with its Jacobian."""

    def f(x):
        return x[0] * x

    def jac(x):
        x = np.asarray(x)
        return np.array([[2.0 * x[0], 0.0], [x[1], x[0]]])

    return f, jac


@pytest.fixture
def square_map_mutating():
    """Mutating version of `square_map`: writes [x0**2, x0*x1] into y."""

    def f(y, x):
        y[0] = x[0] ** 2
        y[1] = x[0] * x[1]

    return f
