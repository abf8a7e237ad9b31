#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

import numpy as np
import pytest

from adinterface import (
    AutoDual,
    AutoFiniteDifferences,
    AutoJaxForward,
    AutoJaxReverse,
    AutoReverseFromPrimitive,
    check_nesting,
    check_symmetric,
    Constant,
    ContextMismatchError,
    gradient_and_hvp,
    gradient_and_hvp_,
    hessian,
    hessian_,
    HessianExtras,
    hvp,
    hvp_,
    HVPExtras,
    isapprox,
    prepare_hessian,
    prepare_hvp,
    prepare_hvp_same_point,
    SecondOrder,
    Tangents,
    tolerance_context,
    UnsupportedOperatorError,
    value_gradient_and_hessian,
    value_gradient_and_hessian_,
)


SECOND_ORDER_BACKENDS = (
    AutoDual(),
    SecondOrder(AutoDual(), AutoDual(chunksize=1)),
    SecondOrder(AutoDual(chunksize=1), AutoReverseFromPrimitive(AutoDual())),
    AutoJaxForward(),
    SecondOrder(AutoJaxForward(), AutoJaxReverse()),
    SecondOrder(AutoJaxReverse(), AutoJaxReverse()),
    SecondOrder(AutoFiniteDifferences(), AutoDual()),
    SecondOrder(AutoFiniteDifferences(), AutoJaxReverse()),
)

INPLACE_SECOND_ORDER_BACKENDS = (
    AutoDual(),
    SecondOrder(AutoFiniteDifferences(), AutoDual()),
)


def _backend_id(backend):
    if isinstance(backend, SecondOrder):
        return f"{type(backend.outer).__name__}-over-{type(backend.inner).__name__}"
    return type(backend).__name__


@pytest.fixture(params=SECOND_ORDER_BACKENDS, ids=_backend_id)
def so_backend(request):
    return request.param


def _sum_of_squares(x):
    return (x**2).sum()


def _cubic(x):
    return x[0] ** 2 * x[1] + x[1] ** 3


def _cubic_hessian(x):
    return np.array([[2.0 * x[1], 2.0 * x[0]], [2.0 * x[0], 6.0 * x[1]]])


def test_hessian_of_sum_of_squares(so_backend):
    h = hessian(_sum_of_squares, so_backend, np.array([1.0, 2.0]))
    assert isapprox(h, 2.0 * np.eye(2), backend=so_backend)


def test_hvp_of_sum_of_squares(so_backend):
    tg = hvp(_sum_of_squares, so_backend, np.array([1.0, 2.0]), Tangents(np.array([1.0, 0.0])))
    assert isapprox(tg.only(), np.array([2.0, 0.0]), backend=so_backend)


def test_hessian_matches_closed_form_and_is_symmetric(so_backend):
    x = np.array([1.0, 2.0])
    y, g, h = value_gradient_and_hessian(_cubic, so_backend, x)
    assert isapprox(y, 10.0, backend=so_backend)
    assert isapprox(g, np.array([4.0, 13.0]), backend=so_backend)
    assert isapprox(h, _cubic_hessian(x), backend=so_backend)
    assert check_symmetric(h, backend=so_backend)


def test_hvp_matches_hessian_times_tangent(so_backend):
    x = np.array([1.0, 2.0])
    v1, v2 = np.array([1.0, -1.0]), np.array([0.5, 2.0])
    g, tg = gradient_and_hvp(_cubic, so_backend, x, Tangents(v1, v2))
    assert isapprox(g, np.array([4.0, 13.0]), backend=so_backend)
    assert isapprox(tg[0], _cubic_hessian(x) @ v1, backend=so_backend)
    assert isapprox(tg[1], _cubic_hessian(x) @ v2, backend=so_backend)


def test_prepared_hvp_is_reused_at_new_point(so_backend):
    v = Tangents(np.array([0.0, 1.0]))
    extras = prepare_hvp(_cubic, so_backend, np.array([1.0, 2.0]), v)
    assert isinstance(extras, HVPExtras)
    x2 = np.array([-1.0, 0.5])
    first = hvp(_cubic, extras, so_backend, x2, v).only()
    second = hvp(_cubic, extras, so_backend, x2, v).only()
    assert isapprox(first, _cubic_hessian(x2) @ np.array([0.0, 1.0]), backend=so_backend)
    assert isapprox(first, second, backend=so_backend)


def test_same_point_hvp_accepts_new_tangents(so_backend):
    x = np.array([1.0, 2.0])
    extras = prepare_hvp_same_point(_cubic, so_backend, x, Tangents(np.array([1.0, 0.0])))
    tg = hvp(_cubic, extras, so_backend, x, Tangents(np.array([0.0, 1.0])))
    assert isapprox(tg.only(), _cubic_hessian(x)[:, 1], backend=so_backend)


def test_hessian_padded_batches():
    def f(x):
        return (x**3).sum() + x[0] * x[1] * x[2]

    x = np.array([1.0, 2.0, 3.0])
    expected = np.array([[6.0, 3.0, 2.0], [3.0, 12.0, 1.0], [2.0, 1.0, 18.0]])
    backend = SecondOrder(AutoDual(chunksize=2), AutoDual())
    extras = prepare_hessian(f, backend, x)
    assert isinstance(extras, HessianExtras)
    assert extras.batch_size == 2
    assert len(extras.seeds) == 2
    assert isapprox(hessian(f, extras, backend, x), expected)


def test_inplace_second_order_variants(so_backend):
    x = np.array([1.0, 2.0])
    hess = np.zeros((2, 2))
    assert hessian_(_cubic, hess, so_backend, x) is hess
    assert isapprox(hess, _cubic_hessian(x), backend=so_backend)

    grad = np.zeros(2)
    y, _, _ = value_gradient_and_hessian_(_cubic, grad, hess, so_backend, x)
    assert isapprox(y, 10.0, backend=so_backend)
    assert isapprox(grad, np.array([4.0, 13.0]), backend=so_backend)

    tg = Tangents(np.zeros(2))
    hvp_(_cubic, tg, so_backend, x, Tangents(np.array([1.0, 0.0])))
    assert isapprox(tg.only(), _cubic_hessian(x)[:, 0], backend=so_backend)
    gradient_and_hvp_(_cubic, grad, tg, so_backend, x, Tangents(np.array([0.0, 1.0])))
    assert isapprox(tg.only(), _cubic_hessian(x)[:, 1], backend=so_backend)


def test_hessian_with_contexts(so_backend):
    def f(x, a):
        return a * (x**2).sum()

    x = np.array([1.0, 2.0])
    extras = prepare_hessian(f, so_backend, x, Constant(3.0))
    h = hessian(f, extras, so_backend, x, Constant(3.0))
    assert isapprox(h, 6.0 * np.eye(2), backend=so_backend)
    with pytest.raises(ContextMismatchError, match="1 context"):
        hessian(f, extras, so_backend, x)


@pytest.mark.parametrize("backend", INPLACE_SECOND_ORDER_BACKENDS, ids=_backend_id)
def test_mutating_hessian(backend):
    def f(y, x):
        y[()] = x[0] ** 2 * x[1] + x[1] ** 3

    x = np.array([1.0, 2.0])
    y = np.zeros(())
    h = hessian(f, y, backend, x)
    assert float(y) == pytest.approx(10.0)
    assert isapprox(h, _cubic_hessian(x), backend=backend)

    y = np.zeros(())
    tg = hvp(f, y, backend, x, Tangents(np.array([1.0, 0.0])))
    assert float(y) == pytest.approx(10.0)
    assert isapprox(tg.only(), _cubic_hessian(x)[:, 0], backend=backend)


def test_mutating_hessian_needs_inplace_support():
    def f(y, x):
        y[()] = (x**2).sum()

    backend = SecondOrder(AutoFiniteDifferences(), AutoJaxReverse())
    with pytest.raises(UnsupportedOperatorError, match="mutating"):
        hessian(f, np.zeros(()), backend, np.array([1.0, 2.0]))


def test_nested_finite_differences_warn():
    with pytest.warns(UserWarning, match="finite differences"):
        h = hessian(_sum_of_squares, AutoFiniteDifferences(), np.array([1.0, 2.0]))
    with tolerance_context(rtol=1e-3, atol=1e-3):
        assert isapprox(h, 2.0 * np.eye(2))


def test_hessian_of_empty_point(so_backend):
    x = np.zeros(0)
    y, g, h = value_gradient_and_hessian(_sum_of_squares, so_backend, x)
    assert float(y) == 0.0
    assert g.shape == (0,)
    assert h.shape == (0, 0)
    assert hessian(_sum_of_squares, so_backend, x).shape == (0, 0)


@pytest.mark.parametrize(
    "backend",
    [
        SecondOrder(AutoDual(), AutoJaxReverse()),
        SecondOrder(AutoJaxForward(), AutoDual()),
        SecondOrder(AutoJaxReverse(), AutoReverseFromPrimitive(AutoDual())),
    ],
    ids=_backend_id,
)
def test_mixed_engine_pairs_are_rejected(backend):
    assert not check_nesting(backend)
    with pytest.raises(UnsupportedOperatorError, match="not a supported combination"):
        hessian(_sum_of_squares, backend, np.array([1.0, 2.0]))
    with pytest.raises(UnsupportedOperatorError, match="not a supported combination"):
        prepare_hvp(_sum_of_squares, backend, np.array([1.0, 2.0]), Tangents(np.ones(2)))


def test_supported_pairs_pass_nesting_check(so_backend):
    assert check_nesting(so_backend)
