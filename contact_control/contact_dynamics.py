"""Contact-constrained forward dynamics and its linearization.

Contacts are modelled as holonomic velocity constraints Jc v = 0. The
constrained acceleration is the unconstrained one projected onto the
constraint nullspace in the mass-weighted metric:

    Λ    = Jc M⁻¹ Jcᵀ
    Jcbar = M⁻¹ Jcᵀ Λ⁻¹
    v̇    = (I - Jcbar Jc) M⁻¹ (S u - h)

where S is the diagonal actuation selection matrix (unit entry for motorized
joints, zero otherwise) and h the bias force.

Uses CasADi for symbolic expressions and automatic differentiation.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, Sequence, Tuple

import casadi as ca
import numpy as np

from multibody import (
    DimensionError,
    DynamicsState,
    Mechanism,
    Point3D,
    PreconditionError,
    SingularMatrixError,
)
from multibody._internal.validation import validate_planar_vector
from linearization import LinearizedState
from contact_control._internal.validation import validate_matrix, validate_vector

logger = logging.getLogger(__name__)

WORLD_AXES = ((1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0))


@dataclass(frozen=True)
class ContactPoint:
    """Body-fixed point held still along a set of world directions.

    Attributes:
        body: Name of the body the point is fixed to
        offset_m: Point location (x, z) in the body frame [m]
        directions: Constrained world directions; the default constrains the
            full point velocity
    """
    body: str
    offset_m: Tuple[float, float] = (0.0, 0.0)
    directions: Tuple[Tuple[float, float, float], ...] = WORLD_AXES

    def __post_init__(self):
        object.__setattr__(self, 'offset_m', validate_planar_vector(self.offset_m, 'offset_m'))
        directions = np.atleast_2d(np.asarray(self.directions, dtype=float))
        if directions.ndim != 2 or directions.shape[1] != 3 or directions.shape[0] == 0:
            raise DimensionError(
                f"directions must be a non-empty sequence of 3-vectors, got shape {directions.shape}"
            )
        norms = np.linalg.norm(directions, axis=1)
        if not np.all(norms > 0):
            raise ValueError(f"Contact directions for {self.body} must be non-zero")
        normalized = directions / norms[:, np.newaxis]
        object.__setattr__(self, 'directions', tuple(tuple(row) for row in normalized))

    @property
    def point(self) -> Point3D:
        return Point3D.planar(self.body, *self.offset_m)

    @property
    def direction_matrix(self) -> np.ndarray:
        return np.array(self.directions)

    def constrained_velocity(self, state: DynamicsState):
        """Velocity of the point projected on the constrained directions."""
        velocity = state.point_velocity(self.point).v
        if isinstance(velocity, np.ndarray):
            return self.direction_matrix @ velocity
        return ca.mtimes(ca.DM(self.direction_matrix), velocity)


@dataclass(frozen=True)
class LinearizedDynamics:
    """Linearized contact-constrained dynamics ẋ ≈ A δx + B δu + c.

    Attributes:
        state_matrix: A = ∂ẋ/∂x (nq+nv, nq+nv)
        control_matrix: B = ∂ẋ/∂u (nq+nv, nv)
        state_derivative: c = ẋ at the equilibrium (nq+nv,)
        equilibrium_state: x0 = [q0; v0] (nq+nv,)
        equilibrium_control: u0 (nv,)
    """
    state_matrix: np.ndarray
    control_matrix: np.ndarray
    state_derivative: np.ndarray
    equilibrium_state: np.ndarray
    equilibrium_control: np.ndarray

    def __post_init__(self):
        num_states = self.state_matrix.shape[0]
        if self.state_matrix.shape != (num_states, num_states):
            raise DimensionError(
                f"state_matrix must be square, got {self.state_matrix.shape}"
            )
        if self.control_matrix.shape[0] != num_states:
            raise DimensionError(
                f"control_matrix must have {num_states} rows, got {self.control_matrix.shape}"
            )
        if self.state_derivative.shape != (num_states,):
            raise DimensionError(
                f"state_derivative must have shape ({num_states},), got {self.state_derivative.shape}"
            )
        if self.equilibrium_state.shape != (num_states,):
            raise DimensionError(
                f"equilibrium_state must have shape ({num_states},), got {self.equilibrium_state.shape}"
            )
        if self.equilibrium_control.shape != (self.control_matrix.shape[1],):
            raise DimensionError(
                f"equilibrium_control must have shape ({self.control_matrix.shape[1]},), "
                f"got {self.equilibrium_control.shape}"
            )

    def __iter__(self) -> Iterator[np.ndarray]:
        return iter((self.state_matrix, self.control_matrix, self.state_derivative))


def actuation_selection(mechanism: Mechanism) -> np.ndarray:
    """Diagonal selection matrix S (nv, nv).

    Entry (i, i) is 1 when the joint owning velocity index i is motorized
    and 0 when its effort bounds are both zero.
    """
    selection = np.zeros(mechanism.num_velocities)
    for joint in mechanism.joints():
        if joint.is_motorized:
            selection[mechanism.velocity_index(joint)] = 1.0
    return np.diag(selection)


def contact_jacobian(state: DynamicsState, contacts: Sequence[ContactPoint]) -> np.ndarray:
    """Stacked contact Jacobian Jc (rows, nv).

    For each contact the constrained point velocity is differentiated with
    respect to the velocity entries of the linearization seed, which equals
    the derivative of the point position with respect to the configuration.
    Rows that are identically zero are dropped.

    Args:
        state: Numeric dynamics state
        contacts: Contact points, stacked in order

    Returns:
        Contact Jacobian with zero rows removed
    """
    num_positions = state.mechanism.num_positions
    num_velocities = state.mechanism.num_velocities
    if not contacts:
        return np.zeros((0, num_velocities))

    linearized = LinearizedState(state)
    stacked = np.vstack([
        linearized.jacobian(contact.constrained_velocity)[:, num_positions:]
        for contact in contacts
    ])
    nonzero_rows = np.any(stacked != 0.0, axis=1)
    if not np.all(nonzero_rows):
        logger.debug(
            "Dropping %d zero rows from %d-row contact Jacobian",
            int(np.sum(~nonzero_rows)), stacked.shape[0],
        )
    return stacked[nonzero_rows]


def _casadi_type(*values):
    if any(isinstance(value, ca.MX) for value in values):
        return ca.MX
    if any(isinstance(value, ca.SX) for value in values):
        return ca.SX
    return ca.DM


def _cast(value, kind):
    if isinstance(value, kind):
        return value
    if isinstance(value, (ca.DM, ca.SX, ca.MX)):
        return kind(value)
    return kind(ca.DM(np.asarray(value, dtype=float)))


def _constrained_state_derivative(
    state: DynamicsState,
    control,
    contact_jacobian_matrix: np.ndarray,
    selection: np.ndarray,
):
    """[v; v̇] as a CasADi value of the widest type among the inputs."""
    velocity = state.velocity
    mass_matrix = state.mass_matrix()
    bias_force = state.bias_force()
    kind = _casadi_type(velocity, mass_matrix, bias_force, control)
    velocity, mass_matrix, bias_force, control, selection = (
        _cast(value, kind)
        for value in (velocity, mass_matrix, bias_force, control, selection)
    )

    unconstrained_acceleration = ca.solve(
        mass_matrix, ca.mtimes(selection, control) - bias_force
    )
    if contact_jacobian_matrix.shape[0] == 0:
        return ca.vertcat(velocity, unconstrained_acceleration)

    jc = _cast(contact_jacobian_matrix, kind)
    inverse_mass_jc_t = ca.solve(mass_matrix, jc.T)
    projected_inertia = ca.mtimes(jc, inverse_mass_jc_t)
    correction = ca.mtimes(
        inverse_mass_jc_t,
        ca.solve(projected_inertia, ca.mtimes(jc, unconstrained_acceleration)),
    )
    return ca.vertcat(velocity, unconstrained_acceleration - correction)


def _check_invertible(matrix: np.ndarray, name: str) -> None:
    rank = np.linalg.matrix_rank(matrix)
    if rank < matrix.shape[0]:
        raise SingularMatrixError(
            f"{name} is singular (rank {rank} < {matrix.shape[0]})"
        )


def _validated_inputs(state: DynamicsState, control, contact_jacobian_matrix):
    num_velocities = state.mechanism.num_velocities
    if not isinstance(control, (ca.SX, ca.MX)):
        control = validate_vector(control, num_velocities, 'input')
    if np.size(contact_jacobian_matrix) == 0:
        return control, np.zeros((0, num_velocities))
    contact_jacobian_matrix = validate_matrix(
        contact_jacobian_matrix, (None, num_velocities), 'contact_jacobian'
    )
    return control, contact_jacobian_matrix


def constrained_dynamics(state: DynamicsState, control, contact_jacobian_matrix):
    """Time derivative of the stacked state under contact constraints.

    Args:
        state: Dynamics state (numeric, or symbolic for expression building)
        control: Generalized force input u (nv,)
        contact_jacobian_matrix: Jc (rows, nv); zero rows means unconstrained

    Returns:
        [v; v̇] (nq+nv,), a NumPy array for numeric inputs

    Raises:
        DimensionError: If input or Jc have the wrong size
        SingularMatrixError: If M or Jc M⁻¹ Jcᵀ is singular (redundant or
            dependent contacts)
    """
    control, jc = _validated_inputs(state, control, contact_jacobian_matrix)
    mechanism = state.mechanism

    if not state.is_symbolic and not isinstance(control, (ca.SX, ca.MX)):
        mass_matrix = state.mass_matrix()
        _check_invertible(mass_matrix, 'Mass matrix')
        if jc.shape[0] > 0:
            _check_invertible(
                jc @ np.linalg.solve(mass_matrix, jc.T),
                'Contact-space inverse inertia Jc M⁻¹ Jcᵀ',
            )

    derivative = _constrained_state_derivative(
        state, control, jc, actuation_selection(mechanism)
    )
    if isinstance(derivative, ca.DM):
        return np.array(derivative).flatten()
    return derivative


def build_constrained_dynamics(mechanism: Mechanism, contact_jacobian_matrix) -> ca.Function:
    """Compile the contact-constrained dynamics for a fixed contact Jacobian.

    Args:
        mechanism: Mechanism model
        contact_jacobian_matrix: Jc (rows, nv), held constant

    Returns:
        CasADi Function f(state, control) -> state_derivative
    """
    num_positions = mechanism.num_positions
    num_velocities = mechanism.num_velocities
    state = ca.SX.sym('state', num_positions + num_velocities)
    control = ca.SX.sym('control', num_velocities)
    symbolic_state = DynamicsState(mechanism, state[:num_positions], state[num_positions:])

    _, jc = _validated_inputs(symbolic_state, control, contact_jacobian_matrix)
    derivative = _constrained_state_derivative(
        symbolic_state, control, jc, actuation_selection(mechanism)
    )
    return ca.Function(
        'constrained_dynamics',
        [state, control],
        [derivative],
        ['state', 'control'],
        ['state_derivative'],
    )


def linearize_constrained(
    state0: DynamicsState,
    input0,
    contact_jacobian_matrix,
    velocity_tolerance: float = 0.0,
) -> LinearizedDynamics:
    """Linearize the contact-constrained dynamics at a static posture.

    The contact Jacobian is held fixed; only M(q) and h(q, v) vary.

    Args:
        state0: Numeric state with zero velocity
        input0: Equilibrium input u0 (nv,)
        contact_jacobian_matrix: Jc (rows, nv)
        velocity_tolerance: Largest accepted velocity norm

    Returns:
        LinearizedDynamics, unpackable as (A, B, c)

    Raises:
        PreconditionError: If the velocity norm exceeds velocity_tolerance
        SingularMatrixError: If Jc M⁻¹ Jcᵀ is singular
    """
    if state0.is_symbolic:
        raise TypeError("linearize_constrained requires a numeric state")
    velocity_norm = float(np.linalg.norm(state0.velocity))
    if velocity_norm > velocity_tolerance:
        raise PreconditionError(
            "Only static postures are currently supported, got velocity norm "
            f"{velocity_norm:.3e} > {velocity_tolerance:.3e}"
        )

    mechanism = state0.mechanism
    input0, jc = _validated_inputs(state0, input0, contact_jacobian_matrix)
    state_derivative = constrained_dynamics(state0, input0, jc)
    selection = actuation_selection(mechanism)

    linearized = LinearizedState(state0)
    state_matrix = linearized.jacobian(
        lambda shadow: _constrained_state_derivative(shadow, input0, jc, selection)
    )

    control = ca.SX.sym('control', mechanism.num_velocities)
    derivative = _constrained_state_derivative(state0, control, jc, selection)
    control_jacobian = ca.Function(
        'control_jacobian', [control], [ca.jacobian(derivative, control)]
    )
    control_matrix = np.array(control_jacobian(input0))

    logger.debug(
        "Linearized constrained dynamics: A %s, B %s, |c| = %.3e",
        state_matrix.shape, control_matrix.shape, np.linalg.norm(state_derivative),
    )
    return LinearizedDynamics(
        state_matrix=state_matrix,
        control_matrix=control_matrix,
        state_derivative=state_derivative,
        equilibrium_state=np.concatenate([state0.configuration, state0.velocity]),
        equilibrium_control=input0,
    )


def gravity_compensation(state: DynamicsState) -> np.ndarray:
    """Input S h that cancels the bias force on motorized joints.

    For a fully actuated static posture this holds the mechanism still
    without contact forces.
    """
    return actuation_selection(state.mechanism) @ state.bias_force()
