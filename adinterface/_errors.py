#
#  Copyright © 2026 PHYDRA, Inc. All rights reserved.
#

from __future__ import annotations


class DifferentiationError(Exception):
    """Base class for errors raised by the operator layer."""


class UnsupportedOperatorError(DifferentiationError, NotImplementedError):
    """The backend's capabilities do not cover the requested operator."""


class SignatureMismatchError(DifferentiationError, ValueError):
    """The function's input/output shape does not fit the operator."""


class ContextMismatchError(DifferentiationError, ValueError):
    """Contexts at evaluation differ in arity or kind from preparation."""


class BackendUnavailableError(DifferentiationError, RuntimeError):
    """The requested backend cannot be used in the current environment."""


class TagMismatchError(DifferentiationError, ValueError):
    """A nested forward-mode perturbation escaped its own differentiation."""
