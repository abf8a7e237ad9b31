#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

from ._base import AbstractBackend as AbstractBackend
from ._capabilities import (
    check_available as check_available,
    check_inplace as check_inplace,
    check_nesting as check_nesting,
    mode as mode,
    pick_batchsize as pick_batchsize,
)
from ._dual import AutoDual as AutoDual, Dual as Dual
from ._finite_diff import AutoFiniteDifferences as AutoFiniteDifferences
from ._jax import AutoJaxForward as AutoJaxForward, AutoJaxReverse as AutoJaxReverse
from ._primitive import (
    AutoForwardFromPrimitive as AutoForwardFromPrimitive,
    AutoReverseFromPrimitive as AutoReverseFromPrimitive,
)
from ._second_order import SecondOrder as SecondOrder
from ._zero import AutoZeroForward as AutoZeroForward, AutoZeroReverse as AutoZeroReverse
