"""Error taxonomy shared by the multibody, linearization and contact packages.

All errors are raised synchronously by the call that detects them and are
never retried internally.
"""

import numpy as np


class DimensionError(ValueError):
    """A buffer, view or matrix does not have the expected length or shape."""


class UnresolvedValueError(ValueError):
    """A state built from optimization variables has no numeric value yet."""


class PreconditionError(ValueError):
    """An operation was called outside its supported operating regime."""


class SingularMatrixError(np.linalg.LinAlgError):
    """A matrix that must be inverted is singular."""
