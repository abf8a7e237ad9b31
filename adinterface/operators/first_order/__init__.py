#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

from ._derivative import (
    DerivativeExtras as DerivativeExtras,
    derivative as derivative,
    derivative_ as derivative_,
    prepare_derivative as prepare_derivative,
    value_and_derivative as value_and_derivative,
    value_and_derivative_ as value_and_derivative_,
)
from ._gradient import (
    GradientExtras as GradientExtras,
    gradient as gradient,
    gradient_ as gradient_,
    prepare_gradient as prepare_gradient,
    value_and_gradient as value_and_gradient,
    value_and_gradient_ as value_and_gradient_,
)
from ._jacobian import (
    JacobianExtras as JacobianExtras,
    jacobian as jacobian,
    jacobian_ as jacobian_,
    prepare_jacobian as prepare_jacobian,
    value_and_jacobian as value_and_jacobian,
    value_and_jacobian_ as value_and_jacobian_,
)
from ._primitives import (
    prepare_pullback as prepare_pullback,
    prepare_pullback_same_point as prepare_pullback_same_point,
    prepare_pushforward as prepare_pushforward,
    prepare_pushforward_same_point as prepare_pushforward_same_point,
    pullback as pullback,
    pullback_ as pullback_,
    pushforward as pushforward,
    pushforward_ as pushforward_,
    value_and_pullback as value_and_pullback,
    value_and_pullback_ as value_and_pullback_,
    value_and_pushforward as value_and_pushforward,
    value_and_pushforward_ as value_and_pushforward_,
)
