"""Contact-constrained dynamics and LQR synthesis.

Public API:
    - ContactPoint: Body-fixed point held by a contact
    - contact_jacobian, actuation_selection: Constraint and actuation maps
    - constrained_dynamics, build_constrained_dynamics: Projected dynamics
    - linearize_constrained, LinearizedDynamics: (A, B, c) at a static posture
    - solve_riccati, lqr_gain: Continuous-time Riccati / LQR
    - constraint_nullspace, contact_lqr, contact_lqr_from_config: Reduced LQR
    - ContactLQRConfig: Cost weights loaded from YAML
    - build_state_cost_matrix, build_control_cost_matrix: Q and R builders
"""

from contact_control.config import ContactLQRConfig
from contact_control.contact_dynamics import (
    ContactPoint,
    LinearizedDynamics,
    actuation_selection,
    build_constrained_dynamics,
    constrained_dynamics,
    contact_jacobian,
    gravity_compensation,
    linearize_constrained,
)
from contact_control.contact_lqr import (
    constraint_nullspace,
    contact_lqr,
    contact_lqr_from_config,
)
from contact_control.cost_matrices import (
    build_control_cost_matrix,
    build_state_cost_matrix,
)
from contact_control.riccati import lqr_gain, solve_riccati

__all__ = [
    'ContactLQRConfig',
    'ContactPoint',
    'LinearizedDynamics',
    'actuation_selection',
    'build_constrained_dynamics',
    'constrained_dynamics',
    'contact_jacobian',
    'gravity_compensation',
    'linearize_constrained',
    'constraint_nullspace',
    'contact_lqr',
    'contact_lqr_from_config',
    'build_control_cost_matrix',
    'build_state_cost_matrix',
    'lqr_gain',
    'solve_riccati',
]
