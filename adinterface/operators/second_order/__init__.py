#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

from ._hessian import (
    HessianExtras as HessianExtras,
    hessian as hessian,
    hessian_ as hessian_,
    prepare_hessian as prepare_hessian,
    value_gradient_and_hessian as value_gradient_and_hessian,
    value_gradient_and_hessian_ as value_gradient_and_hessian_,
)
from ._hvp import (
    HVPExtras as HVPExtras,
    gradient_and_hvp as gradient_and_hvp,
    gradient_and_hvp_ as gradient_and_hvp_,
    hvp as hvp,
    hvp_ as hvp_,
    prepare_hvp as prepare_hvp,
    prepare_hvp_same_point as prepare_hvp_same_point,
)
from ._second_derivative import (
    SecondDerivativeExtras as SecondDerivativeExtras,
    prepare_second_derivative as prepare_second_derivative,
    second_derivative as second_derivative,
    second_derivative_ as second_derivative_,
    value_derivative_and_second_derivative as value_derivative_and_second_derivative,
    value_derivative_and_second_derivative_ as value_derivative_and_second_derivative_,
)
