#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

import jax.numpy as jnp
import numpy as np
import pytest

from adinterface import (
    AutoJaxForward,
    Constant,
    ContextMismatchError,
    isapprox,
    prepare_pullback,
    prepare_pullback_same_point,
    prepare_pushforward,
    prepare_pushforward_same_point,
    pullback,
    pullback_,
    PullbackExtras,
    pushforward,
    pushforward_,
    PushforwardExtras,
    SignatureMismatchError,
    Tangents,
    value_and_pullback,
    value_and_pushforward,
    value_and_pushforward_,
)


X = np.array([2.0, 3.0])
V = np.array([1.0, -1.0])
W = np.array([0.5, 2.0])


def test_pushforward_pullback_duality(backend, square_map):
    f, _ = square_map
    jv = pushforward(f, backend, X, Tangents(V)).only()
    jtw = pullback(f, backend, X, Tangents(W)).only()
    lhs = float(np.dot(W, np.asarray(jv)))
    rhs = float(np.dot(np.asarray(jtw), V))
    assert isapprox(lhs, rhs, backend=backend)


def test_pushforward_batch_is_order_preserving(backend, square_map):
    f, jac = square_map
    e1, e2 = np.array([1.0, 0.0]), np.array([0.0, 1.0])
    ty = pushforward(f, backend, X, Tangents(e1, e2, V))
    assert len(ty) == 3
    assert isapprox(ty[0], jac(X)[:, 0], backend=backend)
    assert isapprox(ty[1], jac(X)[:, 1], backend=backend)
    assert isapprox(ty[2], jac(X) @ V, backend=backend)


def test_pullback_batch_is_order_preserving(backend, square_map):
    f, jac = square_map
    e1, e2 = np.array([1.0, 0.0]), np.array([0.0, 1.0])
    tx = pullback(f, backend, X, Tangents(e2, e1))
    assert isapprox(tx[0], jac(X)[1], backend=backend)
    assert isapprox(tx[1], jac(X)[0], backend=backend)


def test_value_and_primitives_return_primal(backend, square_map):
    f, jac = square_map
    y, ty = value_and_pushforward(f, backend, X, Tangents(V))
    assert isapprox(y, np.array([4.0, 6.0]), backend=backend)
    assert isapprox(ty.only(), jac(X) @ V, backend=backend)
    y, tx = value_and_pullback(f, backend, X, Tangents(W))
    assert isapprox(y, np.array([4.0, 6.0]), backend=backend)
    assert isapprox(tx.only(), jac(X).T @ W, backend=backend)


def test_inplace_variants_write_into_buffers(backend, square_map):
    f, jac = square_map
    out = Tangents(np.zeros(2), np.zeros(2))
    result = pushforward_(f, out, backend, X, Tangents(V, W))
    assert result is out
    assert isapprox(out[0], jac(X) @ V, backend=backend)
    assert isapprox(out[1], jac(X) @ W, backend=backend)

    y, result = value_and_pushforward_(f, out, backend, X, Tangents(W, V))
    assert isapprox(y, np.array([4.0, 6.0]), backend=backend)
    assert isapprox(out[0], jac(X) @ W, backend=backend)

    buf = Tangents(np.zeros(2))
    pullback_(f, buf, backend, X, Tangents(W))
    assert isapprox(buf.only(), jac(X).T @ W, backend=backend)


def test_prepared_extras_are_reusable_at_other_points(backend, square_map):
    f, jac = square_map
    extras = prepare_pushforward(f, backend, X, Tangents(V))
    assert isinstance(extras, PushforwardExtras)
    assert not extras.same_point
    x2 = np.array([-1.0, 0.5])
    first = pushforward(f, extras, backend, x2, Tangents(V)).only()
    second = pushforward(f, extras, backend, x2, Tangents(V)).only()
    assert isapprox(first, jac(x2) @ V, backend=backend)
    assert isapprox(first, second, backend=backend)

    extras = prepare_pullback(f, backend, X, Tangents(W))
    assert isinstance(extras, PullbackExtras)
    assert isapprox(
        pullback(f, extras, backend, x2, Tangents(W)).only(),
        jac(x2).T @ W,
        backend=backend,
    )


def test_same_point_extras_accept_new_tangents(backend, square_map):
    f, jac = square_map
    extras = prepare_pushforward_same_point(f, backend, X, Tangents(V))
    assert extras.same_point
    assert isapprox(
        pushforward(f, extras, backend, X, Tangents(W)).only(), jac(X) @ W, backend=backend
    )
    extras = prepare_pullback_same_point(f, backend, X, Tangents(W))
    assert isapprox(
        pullback(f, extras, backend, X, Tangents(V)).only(), jac(X).T @ V, backend=backend
    )


def test_mutating_function_updates_output(inplace_backend, square_map_mutating, square_map):
    _, jac = square_map
    y = np.zeros(2)
    y_out, ty = value_and_pushforward(square_map_mutating, y, inplace_backend, X, Tangents(V))
    assert np.allclose(y, [4.0, 6.0])
    assert y_out is y
    assert isapprox(ty.only(), jac(X) @ V, backend=inplace_backend)

    y = np.zeros(2)
    tx = pullback(square_map_mutating, y, inplace_backend, X, Tangents(W))
    assert np.allclose(y, [4.0, 6.0])
    assert isapprox(tx.only(), jac(X).T @ W, backend=inplace_backend)


def test_mutating_preparation_calls_function(inplace_backend):
    calls = {"count": 0}

    def f(y, x):
        calls["count"] += 1
        y[0] = x[0] * x[1]

    prepare_pushforward(f, np.zeros(1), inplace_backend, X, Tangents(V))
    assert calls["count"] >= 1


def test_contexts_are_threaded_into_function(backend):
    def f(x, a):
        return a * x**2

    ty = pushforward(f, backend, X, Tangents(V), Constant(3.0))
    assert isapprox(ty.only(), 6.0 * X * V, backend=backend)


def test_context_arity_change_is_rejected(backend):
    def f(x, a=1.0):
        return a * x**2

    extras = prepare_pushforward(f, backend, X, Tangents(V), Constant(3.0))
    with pytest.raises(ContextMismatchError, match="1 context"):
        pushforward(f, extras, backend, X, Tangents(V))


def test_unwrapped_context_is_rejected(backend):
    def f(x, a):
        return a * x

    with pytest.raises(TypeError, match="Context"):
        pushforward(f, backend, X, Tangents(V), 3.0)


def test_tangent_shape_must_match_point(backend, square_map):
    f, _ = square_map
    with pytest.raises(SignatureMismatchError, match="shape"):
        pushforward(f, backend, X, Tangents(3.0))
    with pytest.raises(SignatureMismatchError, match="shape"):
        pushforward(f, backend, X, Tangents(V, np.ones(3)))
    extras = prepare_pushforward(f, backend, X, Tangents(V))
    with pytest.raises(SignatureMismatchError, match="shape"):
        pushforward(f, extras, backend, X, Tangents(np.ones(3)))


def test_cotangent_shape_must_match_output(backend, square_map):
    f, _ = square_map
    with pytest.raises(SignatureMismatchError, match="shape"):
        pullback(f, backend, X, Tangents(np.ones(3)))


def test_mutating_cotangent_shape_must_match_output(inplace_backend, square_map_mutating):
    with pytest.raises(SignatureMismatchError, match="shape"):
        pullback(square_map_mutating, np.zeros(2), inplace_backend, X, Tangents(1.0))


def test_scalar_tangent_is_not_broadcast_over_jax_point():
    with pytest.raises(SignatureMismatchError, match="shape"):
        pushforward(lambda x: 2 * x, AutoJaxForward(), jnp.array([1.0, 2.0]), Tangents(3.0))
