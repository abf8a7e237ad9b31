#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

from .first_order import *  # noqa: F403
from .second_order import *  # noqa: F403
