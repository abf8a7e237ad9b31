#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

"""Backend-agnostic differentiation operators.

Every operator takes its arguments positionally as

    op(f, [y], [results...], [extras], backend, x, [tangents], *contexts)

and behaves identically for every backend. Preparation (`prepare_*`) returns
extras that can be passed back to amortize work across calls.
"""

from ._context import (
    Constant as Constant,
    Context as Context,
    Rewrap as Rewrap,
    with_contexts as with_contexts,
)
from ._errors import (
    BackendUnavailableError as BackendUnavailableError,
    ContextMismatchError as ContextMismatchError,
    DifferentiationError as DifferentiationError,
    SignatureMismatchError as SignatureMismatchError,
    TagMismatchError as TagMismatchError,
    UnsupportedOperatorError as UnsupportedOperatorError,
)
from ._extras import (
    Extras as Extras,
    PullbackExtras as PullbackExtras,
    PushforwardExtras as PushforwardExtras,
)
from ._runtime import (
    check_symmetric as check_symmetric,
    DEFAULT_TOLERANCE as DEFAULT_TOLERANCE,
    get_tolerance as get_tolerance,
    isapprox as isapprox,
    Tolerance as Tolerance,
    tolerance_context as tolerance_context,
)
from ._tags import Tag as Tag, tag_for as tag_for
from ._tangents import Tangents as Tangents
from .backends import (
    AbstractBackend as AbstractBackend,
    AutoDual as AutoDual,
    AutoFiniteDifferences as AutoFiniteDifferences,
    AutoForwardFromPrimitive as AutoForwardFromPrimitive,
    AutoJaxForward as AutoJaxForward,
    AutoJaxReverse as AutoJaxReverse,
    AutoReverseFromPrimitive as AutoReverseFromPrimitive,
    AutoZeroForward as AutoZeroForward,
    AutoZeroReverse as AutoZeroReverse,
    check_available as check_available,
    check_inplace as check_inplace,
    check_nesting as check_nesting,
    Dual as Dual,
    mode as mode,
    pick_batchsize as pick_batchsize,
    SecondOrder as SecondOrder,
)
from .backends._second_order import tag_backend as tag_backend
from .operators.first_order import (
    derivative as derivative,
    derivative_ as derivative_,
    DerivativeExtras as DerivativeExtras,
    gradient as gradient,
    gradient_ as gradient_,
    GradientExtras as GradientExtras,
    jacobian as jacobian,
    jacobian_ as jacobian_,
    JacobianExtras as JacobianExtras,
    prepare_derivative as prepare_derivative,
    prepare_gradient as prepare_gradient,
    prepare_jacobian as prepare_jacobian,
    prepare_pullback as prepare_pullback,
    prepare_pullback_same_point as prepare_pullback_same_point,
    prepare_pushforward as prepare_pushforward,
    prepare_pushforward_same_point as prepare_pushforward_same_point,
    pullback as pullback,
    pullback_ as pullback_,
    pushforward as pushforward,
    pushforward_ as pushforward_,
    value_and_derivative as value_and_derivative,
    value_and_derivative_ as value_and_derivative_,
    value_and_gradient as value_and_gradient,
    value_and_gradient_ as value_and_gradient_,
    value_and_jacobian as value_and_jacobian,
    value_and_jacobian_ as value_and_jacobian_,
    value_and_pullback as value_and_pullback,
    value_and_pullback_ as value_and_pullback_,
    value_and_pushforward as value_and_pushforward,
    value_and_pushforward_ as value_and_pushforward_,
)
from .operators.second_order import (
    gradient_and_hvp as gradient_and_hvp,
    gradient_and_hvp_ as gradient_and_hvp_,
    hessian as hessian,
    hessian_ as hessian_,
    HessianExtras as HessianExtras,
    hvp as hvp,
    hvp_ as hvp_,
    HVPExtras as HVPExtras,
    prepare_hessian as prepare_hessian,
    prepare_hvp as prepare_hvp,
    prepare_hvp_same_point as prepare_hvp_same_point,
    prepare_second_derivative as prepare_second_derivative,
    second_derivative as second_derivative,
    second_derivative_ as second_derivative_,
    SecondDerivativeExtras as SecondDerivativeExtras,
    value_derivative_and_second_derivative as value_derivative_and_second_derivative,
    value_derivative_and_second_derivative_ as value_derivative_and_second_derivative_,
    value_gradient_and_hessian as value_gradient_and_hessian,
    value_gradient_and_hessian_ as value_gradient_and_hessian_,
)


__version__ = "0.1.0"
