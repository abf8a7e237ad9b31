#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

"""Extras: reusable preparation results.

Extras are created by a `prepare_*` call and passed back explicitly to the
matching operator. They are valid for a fixed function, point shape/type,
tangent count and context signature; `same_point` extras are additionally
tied to the exact point. Apart from the context signature, misuse is not
detected.
"""

from __future__ import annotations

from typing import Any

from ._context import ContextSignature
from ._strict import StrictModule


class Extras(StrictModule):
    """Base class of every object returned by a `prepare_*` function."""


class PushforwardExtras(Extras):
    token: Any
    contexts: ContextSignature
    same_point: bool


class PullbackExtras(Extras):
    token: Any
    contexts: ContextSignature
    same_point: bool
