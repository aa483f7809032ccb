"""Linearization engine.

Public API:
    - StateBuffer: Flat state storage with aliasing sub-views
    - LinearizedState: Numeric first-order approximations and Jacobians
    - SymbolicLinearizedState: Affine models over optimization variables
    - AffineExpression: Sparse affine expression
"""

from linearization.state_record import StateBuffer
from linearization.affine import AffineExpression
from linearization.linearized_state import (
    DEFAULT_MIN_COEFFICIENT,
    LinearizedState,
    SymbolicLinearizedState,
)

__all__ = [
    'StateBuffer',
    'AffineExpression',
    'DEFAULT_MIN_COEFFICIENT',
    'LinearizedState',
    'SymbolicLinearizedState',
]
