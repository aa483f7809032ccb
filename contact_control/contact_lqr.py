"""LQR synthesis for mechanisms held by contacts.

The constrained dynamics keep Jc q and Jc v constant, so the linearized
system is uncontrollable along those directions. The Riccati equation is
solved on the nullspace N of blockdiag(Jc, Jc) and the reduced gain mapped
back to the full state:

    A_m = Nᵀ A N,  B_m = Nᵀ B,  Q_m = Nᵀ Q N
    K   = K_m Nᵀ
"""

import logging
from typing import Sequence

import numpy as np
import scipy.linalg

from multibody import DynamicsState
from contact_control._internal.validation import validate_matrix
from contact_control.config import ContactLQRConfig
from contact_control.contact_dynamics import (
    ContactPoint,
    contact_jacobian,
    linearize_constrained,
)
from contact_control.cost_matrices import (
    build_control_cost_matrix,
    build_state_cost_matrix,
)
from contact_control.riccati import lqr_gain

logger = logging.getLogger(__name__)


def constraint_nullspace(contact_jacobian_matrix) -> np.ndarray:
    """Orthonormal basis of null([[Jc, 0], [0, Jc]]).

    Args:
        contact_jacobian_matrix: Jc (rows, nv)

    Returns:
        N (2 nv, 2 nv - rank) with NᵀN = I; the identity when Jc has no rows
    """
    jc = np.atleast_2d(np.asarray(contact_jacobian_matrix, dtype=float))
    num_velocities = jc.shape[1]
    if jc.shape[0] == 0:
        return np.eye(2 * num_velocities)
    return scipy.linalg.null_space(scipy.linalg.block_diag(jc, jc))


def contact_lqr(
    state: DynamicsState,
    input,
    Q,
    R,
    contacts: Sequence[ContactPoint],
    velocity_tolerance: float = 0.0,
) -> np.ndarray:
    """Feedback gain for a static posture held by contacts.

    Args:
        state: Numeric state with zero velocity
        input: Equilibrium input u0 (nv,)
        Q: State cost matrix (nq + nv, nq + nv)
        R: Control cost matrix (nv, nv)
        contacts: Contact points holding the mechanism
        velocity_tolerance: Largest accepted velocity norm

    Returns:
        K (nv, nq + nv) for u = u0 - K (x - x0); K N_perp = 0 for every
        direction the contacts remove

    Raises:
        PreconditionError: If the state is not static
        SingularMatrixError: If the contacts are redundant or R is singular
        DimensionError: If Q or R have the wrong shape
    """
    mechanism = state.mechanism
    num_states = mechanism.num_positions + mechanism.num_velocities
    Q = validate_matrix(Q, (num_states, num_states), 'Q')
    R = validate_matrix(R, (mechanism.num_velocities, mechanism.num_velocities), 'R')

    jc = contact_jacobian(state, contacts)
    A, B, _ = linearize_constrained(state, input, jc, velocity_tolerance)
    nullspace = constraint_nullspace(jc)
    logger.debug(
        "Contact Jacobian %s, reduced state dimension %d of %d",
        jc.shape, nullspace.shape[1], num_states,
    )

    reduced_gain = lqr_gain(
        nullspace.T @ A @ nullspace,
        nullspace.T @ B,
        nullspace.T @ Q @ nullspace,
        R,
    )
    return reduced_gain @ nullspace.T


def contact_lqr_from_config(
    state: DynamicsState,
    input,
    contacts: Sequence[ContactPoint],
    config: ContactLQRConfig,
) -> np.ndarray:
    """contact_lqr with cost matrices and tolerance taken from a config."""
    mechanism = state.mechanism
    Q = build_state_cost_matrix(
        config.state_cost_diagonal, mechanism.num_positions + mechanism.num_velocities
    )
    R = build_control_cost_matrix(config.control_cost_diagonal, mechanism.num_velocities)
    return contact_lqr(
        state, input, Q, R, contacts,
        velocity_tolerance=config.static_velocity_tolerance,
    )
