"""Validation utilities for the contact_control package.

Provides input validation for LQR configuration and solver inputs.
"""

import numpy as np

from multibody import DimensionError


def validate_non_negative(value: float, name: str) -> None:
    """Validate that a value is non-negative.

    Args:
        value: The value to validate
        name: Parameter name for error messages

    Raises:
        ValueError: If value is negative
    """
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


def validate_cost_diagonal(diagonal: np.ndarray, name: str, strictly_positive: bool) -> None:
    """Validate cost diagonal elements.

    Args:
        diagonal: Array of diagonal elements
        name: Parameter name for error messages
        strictly_positive: Reject zero entries (control costs must be invertible)

    Raises:
        ValueError: If diagonal is not one-dimensional, not finite, or has
            entries of the wrong sign
    """
    if diagonal.ndim != 1 or diagonal.size == 0:
        raise ValueError(
            f"{name} must be a non-empty vector, got shape {diagonal.shape}"
        )
    if not np.all(np.isfinite(diagonal)):
        raise ValueError(f"All {name} elements must be finite")
    if strictly_positive and not np.all(diagonal > 0):
        raise ValueError(f"All {name} elements must be positive")
    if not strictly_positive and not np.all(diagonal >= 0):
        raise ValueError(f"All {name} elements must be non-negative")


def validate_vector(values, length: int, name: str) -> np.ndarray:
    """Validate a numeric vector and return it as a float array.

    Raises:
        DimensionError: If the vector does not have `length` entries
        ValueError: If it contains non-finite values
    """
    vector = np.asarray(values, dtype=float).reshape(-1)
    if vector.shape != (length,):
        raise DimensionError(
            f"{name} must have shape ({length},), got {np.shape(values)}"
        )
    if not np.all(np.isfinite(vector)):
        raise ValueError(f"{name} contains non-finite values: {vector}")
    return vector


def validate_matrix(matrix, shape: tuple, name: str) -> np.ndarray:
    """Validate a matrix shape and return it as a 2-D float array.

    A None entry in `shape` accepts any size along that axis.

    Raises:
        DimensionError: If the shape does not match
    """
    matrix = np.atleast_2d(np.asarray(matrix, dtype=float))
    if matrix.ndim != 2 or any(
        expected is not None and actual != expected
        for actual, expected in zip(matrix.shape, shape)
    ):
        raise DimensionError(
            f"{name} must have shape {shape}, got {matrix.shape}"
        )
    return matrix
