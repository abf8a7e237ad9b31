#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

import numpy as np
import pytest

from adinterface import (
    AutoDual,
    AutoJaxForward,
    AutoJaxReverse,
    isapprox,
    jacobian,
    jacobian_,
    JacobianExtras,
    prepare_jacobian,
    pullback,
    pushforward,
    Tangents,
    value_and_jacobian,
    value_and_jacobian_,
)


def test_jacobian_of_square_map(backend, square_map):
    f, jac = square_map
    x = np.array([2.0, 3.0])
    expected = np.array([[4.0, 0.0], [3.0, 2.0]])
    assert isapprox(jacobian(f, backend, x), expected, backend=backend)
    y, j = value_and_jacobian(f, backend, x)
    assert isapprox(y, np.array([4.0, 6.0]), backend=backend)
    assert isapprox(j, jac(x), backend=backend)


def test_jacobian_assembly_order(backend, square_map):
    f, _ = square_map
    x = np.array([2.0, 3.0])
    j = np.asarray(jacobian(f, backend, x))
    for k, e in enumerate(np.eye(2)):
        col = pushforward(f, backend, x, Tangents(e)).only()
        row = pullback(f, backend, x, Tangents(e)).only()
        assert isapprox(j[:, k], col, backend=backend)
        assert isapprox(j[k, :], row, backend=backend)


def test_jacobian_shape_flattens_matrix_inputs(backend):
    def f(x):
        return x**2

    x = np.array([[1.0, 2.0], [3.0, 4.0]])
    j = jacobian(f, backend, x)
    assert j.shape == (4, 4)
    assert isapprox(j, np.diag(2.0 * x.reshape(-1)), backend=backend)


@pytest.mark.parametrize(
    "batched",
    [
        AutoDual(chunksize=2),
        AutoJaxForward(batch_size=2),
        AutoJaxReverse(batch_size=2),
    ],
)
def test_jacobian_padded_batches(batched):
    def f(x):
        return x * x.sum()

    x = np.array([1.0, 2.0, 3.0])
    expected = np.diag(np.full(3, x.sum())) + x[:, None]
    extras = prepare_jacobian(f, batched, x)
    assert isinstance(extras, JacobianExtras)
    assert extras.batch_size == 2
    assert len(extras.seeds) == 2
    assert isapprox(jacobian(f, extras, batched, x), expected)


def test_jacobian_extras_reused_and_inplace(backend, square_map):
    f, jac = square_map
    extras = prepare_jacobian(f, backend, np.array([2.0, 3.0]))
    x2 = np.array([-1.0, 4.0])
    out = np.zeros((2, 2))
    assert jacobian_(f, out, extras, backend, x2) is out
    assert isapprox(out, jac(x2), backend=backend)
    y, _ = value_and_jacobian_(f, out, backend, x2)
    assert isapprox(y, np.array([1.0, -4.0]), backend=backend)


def test_scalar_function_jacobian_is_a_row(backend):
    def f(x):
        return (x**2).sum()

    j = jacobian(f, backend, np.array([1.0, 2.0]))
    assert j.shape == (1, 2)
    assert isapprox(j, np.array([[2.0, 4.0]]), backend=backend)


def test_jacobian_of_empty_input(backend):
    j = jacobian(lambda x: 2 * x, backend, np.zeros(0))
    assert j.shape == (0, 0)

    y, j = value_and_jacobian(lambda x: x.sum() + np.ones(2), backend, np.zeros(0))
    assert isapprox(y, np.ones(2), backend=backend)
    assert j.shape == (2, 0)


def test_jacobian_of_empty_output(backend):
    j = jacobian(lambda x: x[:0], backend, np.array([1.0, 2.0]))
    assert j.shape == (0, 2)


def test_mutating_jacobian(inplace_backend, square_map_mutating, square_map):
    _, jac = square_map
    x = np.array([2.0, 3.0])
    y = np.zeros(2)
    j = jacobian(square_map_mutating, y, inplace_backend, x)
    assert np.allclose(y, [4.0, 6.0])
    assert isapprox(j, jac(x), backend=inplace_backend)
