"""Cost matrix construction for LQR.

Provides functions to build Q and R for the infinite-horizon cost
    J = integral(x^T Q x + u^T R u, 0, inf)
"""

import numpy as np

from multibody import DimensionError
from contact_control._internal.validation import validate_cost_diagonal


def build_state_cost_matrix(diagonal, state_dimension: int) -> np.ndarray:
    """Build state cost matrix Q from diagonal elements.

    Args:
        diagonal: Array of diagonal elements (state_dimension,)
        state_dimension: Stacked configuration + velocity dimension

    Returns:
        Diagonal state cost matrix Q (state_dimension, state_dimension)

    Raises:
        DimensionError: If diagonal has wrong shape
        ValueError: If an element is negative or non-finite
    """
    diagonal = np.asarray(diagonal, dtype=float)
    if diagonal.shape != (state_dimension,):
        raise DimensionError(
            f"diagonal must have shape ({state_dimension},), got {diagonal.shape}"
        )
    validate_cost_diagonal(diagonal, 'state_cost_diagonal', strictly_positive=False)
    return np.diag(diagonal)


def build_control_cost_matrix(diagonal, control_dimension: int) -> np.ndarray:
    """Build control cost matrix R from diagonal elements.

    Args:
        diagonal: Array of diagonal elements (control_dimension,)
        control_dimension: Generalized force dimension

    Returns:
        Diagonal control cost matrix R (control_dimension, control_dimension)

    Raises:
        DimensionError: If diagonal has wrong shape
        ValueError: If an element is not strictly positive
    """
    diagonal = np.asarray(diagonal, dtype=float)
    if diagonal.shape != (control_dimension,):
        raise DimensionError(
            f"diagonal must have shape ({control_dimension},), got {diagonal.shape}"
        )
    validate_cost_diagonal(diagonal, 'control_cost_diagonal', strictly_positive=True)
    return np.diag(diagonal)
