"""Continuous-time algebraic Riccati equation and LQR gain.

Solves
    Aᵀ X + X A - X B R⁻¹ Bᵀ X + Q = 0
for the stabilizing X with the Schur method: the ordered real Schur form
of the Hamiltonian

    Z = [[ A, -B R⁻¹ Bᵀ],
         [-Q, -Aᵀ      ]]

places the n stable eigenvalues first, and with U = [[U11, U12], [U21, U22]]
the solution is X = U21 U11⁻¹.
"""

import logging

import numpy as np
import scipy.linalg

from multibody import SingularMatrixError
from contact_control._internal.validation import validate_matrix

logger = logging.getLogger(__name__)


def _validated(A, B, Q, R):
    A = validate_matrix(A, (None, None), 'A')
    num_states = A.shape[0]
    A = validate_matrix(A, (num_states, num_states), 'A')
    B = validate_matrix(B, (num_states, None), 'B')
    num_controls = B.shape[1]
    Q = validate_matrix(Q, (num_states, num_states), 'Q')
    R = validate_matrix(R, (num_controls, num_controls), 'R')
    return A, B, Q, R


def solve_riccati(A, B, Q, R) -> np.ndarray:
    """Stabilizing solution of the continuous algebraic Riccati equation.

    Args:
        A: State matrix (n, n)
        B: Control matrix (n, m)
        Q: State cost matrix (n, n), symmetric positive semi-definite
        R: Control cost matrix (m, m), symmetric positive definite

    Returns:
        X (n, n)

    Raises:
        DimensionError: If matrix shapes are inconsistent
        SingularMatrixError: If R or U11 is not invertible, or the Hamiltonian
            has eigenvalues on the imaginary axis
    """
    A, B, Q, R = _validated(A, B, Q, R)
    num_states = A.shape[0]

    try:
        control_cost_inverse = np.linalg.inv(R)
    except np.linalg.LinAlgError as err:
        raise SingularMatrixError("Control cost matrix R is singular") from err

    hamiltonian = np.block([
        [A, -B @ control_cost_inverse @ B.T],
        [-Q, -A.T],
    ])
    _, schur_vectors, num_stable = scipy.linalg.schur(
        hamiltonian, output='real', sort='lhp'
    )
    if num_stable != num_states:
        # eigenvalues on the imaginary axis: no stabilizing solution exists
        raise SingularMatrixError(
            f"Hamiltonian has {num_stable} stable eigenvalues, expected {num_states}; "
            "(A, B) is not stabilizable or (A, Q) has an unobservable marginal mode"
        )

    u11 = schur_vectors[:num_states, :num_states]
    u21 = schur_vectors[num_states:, :num_states]
    condition = np.linalg.cond(u11)
    if not np.isfinite(condition):
        raise SingularMatrixError("Schur basis block U11 is singular")
    if condition > 1e12:
        logger.warning("Schur basis block U11 is ill-conditioned (cond = %.3e)", condition)

    # X U11 = U21  <=>  U11ᵀ Xᵀ = U21ᵀ
    try:
        solution = np.linalg.solve(u11.T, u21.T).T
    except np.linalg.LinAlgError as err:
        raise SingularMatrixError("Schur basis block U11 is singular") from err
    return 0.5 * (solution + solution.T)


def lqr_gain(A, B, Q, R) -> np.ndarray:
    """Continuous-time LQR gain K = R⁻¹ Bᵀ X for u = -K x.

    Args:
        A: State matrix (n, n)
        B: Control matrix (n, m)
        Q: State cost matrix (n, n)
        R: Control cost matrix (m, m)

    Returns:
        K (m, n)
    """
    A, B, Q, R = _validated(A, B, Q, R)
    solution = solve_riccati(A, B, Q, R)
    return np.linalg.solve(R, B.T @ solution)
