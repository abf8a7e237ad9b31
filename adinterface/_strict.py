#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

import equinox as eqx


class StrictModule(eqx.Module):
    """Immutable record base shared by backends, extras and bundles."""
