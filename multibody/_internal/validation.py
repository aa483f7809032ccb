"""Runtime contract validation utilities.

Internal module for parameter and input validation.
"""

import numpy as np

from multibody.errors import DimensionError


def validate_non_negative(value: float, name: str) -> None:
    """Validate that a value is non-negative.

    Args:
        value: Value to validate
        name: Parameter name for error message

    Raises:
        ValueError: If value < 0
    """
    if value < 0:
        raise ValueError(
            f"{name} must be non-negative, got {value}"
        )


def validate_length(length: int, expected: int, name: str) -> None:
    """Validate a vector length.

    Raises:
        DimensionError: If length differs from expected
    """
    if length != expected:
        raise DimensionError(
            f"{name} must have length {expected}, got {length}"
        )


def validate_planar_vector(values, name: str) -> tuple:
    """Validate and normalise an (x, z) pair.

    Returns:
        Tuple of two floats

    Raises:
        DimensionError: If values does not hold exactly two entries
        ValueError: If an entry is not finite
    """
    values = tuple(float(value) for value in values)
    validate_length(len(values), 2, name)
    if not np.all(np.isfinite(values)):
        raise ValueError(
            f"{name} contains non-finite values: {values}"
        )
    return values
