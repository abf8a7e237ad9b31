#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

import jax.numpy as jnp
import numpy as np
import pytest

from adinterface import (
    AbstractBackend,
    AutoDual,
    AutoFiniteDifferences,
    AutoForwardFromPrimitive,
    AutoJaxForward,
    AutoJaxReverse,
    AutoReverseFromPrimitive,
    AutoZeroForward,
    AutoZeroReverse,
    BackendUnavailableError,
    check_available,
    check_inplace,
    check_nesting,
    derivative,
    gradient,
    jacobian,
    mode,
    pick_batchsize,
    pullback,
    pushforward,
    SecondOrder,
    Tangents,
    UnsupportedOperatorError,
)


class _Unavailable(AutoZeroForward):
    @property
    def requirement(self):
        return "adinterface_missing_engine"


class _NoPrimitive(AbstractBackend):
    @property
    def mode(self):
        return "symbolic"


@pytest.mark.parametrize(
    "backend, expected",
    [
        (AutoJaxForward(), "forward"),
        (AutoJaxReverse(), "reverse"),
        (AutoDual(), "forward"),
        (AutoFiniteDifferences(), "finite_differences"),
        (AutoZeroReverse(), "reverse"),
        (AutoForwardFromPrimitive(AutoJaxReverse()), "forward"),
        (SecondOrder(AutoJaxForward(), AutoJaxReverse()), "forward"),
    ],
)
def test_mode(backend, expected):
    assert mode(backend) == expected


def test_capability_descriptor():
    assert check_available(AutoJaxForward())
    assert check_available(SecondOrder(AutoDual(), AutoDual()))
    assert not check_available("jax")
    assert not check_available(_Unavailable())
    assert not check_inplace(AutoJaxReverse())
    assert check_inplace(AutoDual())
    assert not check_inplace(SecondOrder(AutoDual(), AutoJaxReverse()))
    assert AutoDual().nested_tag_support
    assert not AutoJaxForward().nested_tag_support
    assert AutoJaxReverse().jacobian_direction == "pullback"
    assert AutoFiniteDifferences().jacobian_direction == "pushforward"



@pytest.mark.parametrize(
    "outer, inner, expected",
    [
        (AutoDual(), AutoDual(chunksize=1), True),
        (AutoJaxForward(), AutoJaxReverse(), True),
        (AutoFiniteDifferences(), AutoDual(), True),
        (AutoFiniteDifferences(), AutoJaxReverse(), True),
        (AutoDual(), AutoReverseFromPrimitive(AutoDual()), True),
        (AutoForwardFromPrimitive(AutoJaxForward()), AutoJaxReverse(), True),
        (AutoDual(), AutoJaxReverse(), False),
        (AutoJaxForward(), AutoDual(), False),
        (AutoForwardFromPrimitive(AutoDual()), AutoJaxReverse(), False),
    ],
)
def test_nesting_follows_lifted_point_kinds(outer, inner, expected):
    assert check_nesting(SecondOrder(outer, inner)) is expected
    assert check_nesting(outer)
    assert inner.point_kinds >= {"array"}


@pytest.mark.parametrize(
    "backend, dimension, expected",
    [
        (AutoJaxForward(), 5, 5),
        (AutoJaxForward(batch_size=2), 5, 2),
        (AutoDual(), 20, 8),
        (AutoDual(chunksize=3), 2, 2),
        (AutoFiniteDifferences(), 5, 1),
        (AutoReverseFromPrimitive(AutoDual(chunksize=4)), 10, 4),
        (SecondOrder(AutoDual(chunksize=2), AutoJaxReverse()), 10, 2),
    ],
)
def test_pick_batchsize(backend, dimension, expected):
    assert pick_batchsize(backend, dimension) == expected


def test_unavailable_backend_raises_with_hint():
    hint = "HINT: .*install `adinterface_missing_engine`"
    with pytest.raises(BackendUnavailableError, match=hint):
        derivative(lambda x: x, _Unavailable(), 1.0)


def test_non_backend_argument_raises_with_hint():
    hint = "HINT: .*none of the positional arguments"
    with pytest.raises(BackendUnavailableError, match=hint):
        derivative(lambda x: x, "forward", 1.0)


def test_second_order_backend_rejected_by_first_order_operator():
    backend = SecondOrder(AutoDual(), AutoDual())
    with pytest.raises(UnsupportedOperatorError, match="first-order operator"):
        gradient(lambda x: (x**2).sum(), backend, np.ones(2))


def test_backend_without_primitives_is_unsupported():
    with pytest.raises(UnsupportedOperatorError, match="neither pushforward"):
        pushforward(lambda x: x, _NoPrimitive(), 1.0, Tangents(1.0))


def test_finite_differences_validates_configuration():
    with pytest.raises(ValueError, match="method"):
        AutoFiniteDifferences(method="backward")
    with pytest.raises(ValueError, match="positive"):
        AutoFiniteDifferences(step=0.0)


def test_zero_forward_returns_value_and_zero_tangents(square_map):
    f, _ = square_map
    x = np.array([2.0, 3.0])
    assert np.array_equal(jacobian(f, AutoZeroForward(), x), np.zeros((2, 2)))
    (ty,) = pushforward(f, AutoZeroForward(), x, Tangents(np.ones(2)))
    assert np.array_equal(ty, np.zeros(2))


def test_zero_reverse_mutates_output(square_map_mutating):
    y = np.zeros(2)
    x = np.array([2.0, 3.0])
    tx = pullback(square_map_mutating, y, AutoZeroReverse(), x, Tangents(np.ones(2)))
    assert np.array_equal(y, np.array([4.0, 6.0]))
    assert np.array_equal(tx.only(), np.zeros(2))


@pytest.mark.parametrize(
    "wrapped",
    [AutoJaxForward(), AutoJaxReverse(), AutoDual(), AutoFiniteDifferences()],
)
def test_from_primitive_backends_match_wrapped_backend(wrapped, square_map):
    f, jac = square_map
    x = np.array([2.0, 3.0])
    expected = jacobian(f, wrapped, x)
    for backend in (AutoForwardFromPrimitive(wrapped), AutoReverseFromPrimitive(wrapped)):
        assert np.allclose(jacobian(f, backend, x), expected, rtol=1e-5, atol=1e-7)
    assert np.allclose(expected, jac(x), rtol=1e-5, atol=1e-7)


def test_jax_backends_reject_mutating_functions(square_map_mutating):
    with pytest.raises(UnsupportedOperatorError, match="mutating"):
        jacobian(square_map_mutating, np.zeros(2), AutoJaxForward(), jnp.array([2.0, 3.0]))
