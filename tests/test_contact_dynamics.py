"""Tests for contact Jacobians and contact-constrained dynamics."""

import numpy as np
import pytest

from multibody import (
    DimensionError,
    DynamicsState,
    PreconditionError,
    SingularMatrixError,
    planar_base,
)
from contact_control import (
    ContactPoint,
    LinearizedDynamics,
    actuation_selection,
    build_constrained_dynamics,
    constrained_dynamics,
    contact_jacobian,
    gravity_compensation,
    linearize_constrained,
)


@pytest.fixture
def bottom_corners():
    return [ContactPoint('brick', (0.1, -0.2)), ContactPoint('brick', (-0.1, -0.2))]


def test_actuation_selection(brick, passive_shoulder_arm):
    np.testing.assert_array_equal(actuation_selection(brick), np.eye(3))
    np.testing.assert_array_equal(actuation_selection(passive_shoulder_arm), np.diag([0.0, 1.0]))

    mechanism, _ = planar_base()
    np.testing.assert_array_equal(actuation_selection(mechanism), np.zeros((2, 2)))


def test_contact_point_directions_normalized():
    contact = ContactPoint('brick', (0.0, -0.2), directions=((0.0, 0.0, 2.0),))
    np.testing.assert_allclose(contact.direction_matrix, [[0.0, 0.0, 1.0]])
    with pytest.raises(ValueError):
        ContactPoint('brick', directions=((0.0, 0.0, 0.0),))
    with pytest.raises(DimensionError):
        ContactPoint('brick', directions=((1.0, 0.0),))


def test_normal_contact_jacobian(brick_state, brick_normal_contact):
    jc = contact_jacobian(brick_state, [brick_normal_contact])
    np.testing.assert_allclose(jc, [[0.0, 1.0, 0.0]], atol=1e-12)


def test_zero_rows_dropped(brick_state):
    """The world y row of a planar contact is identically zero."""
    jc = contact_jacobian(brick_state, [ContactPoint('brick', (0.0, -0.2))])
    np.testing.assert_allclose(jc, [[1.0, 0.0, -0.2], [0.0, 1.0, 0.0]], atol=1e-12)


def test_corner_contacts_stack_in_order(brick_state, bottom_corners):
    jc = contact_jacobian(brick_state, bottom_corners)
    np.testing.assert_allclose(jc, [
        [1.0, 0.0, -0.2],
        [0.0, 1.0, -0.1],
        [1.0, 0.0, -0.2],
        [0.0, 1.0, 0.1],
    ], atol=1e-12)


def test_no_contacts(brick_state):
    assert contact_jacobian(brick_state, []).shape == (0, 3)


def test_admissible_velocity_keeps_contact_still(brick):
    """Sliding and rolling about the contact point cancel at the contact."""
    state = DynamicsState(brick, [0.0, 0.2, 0.0], [0.2, 0.0, 1.0])
    contact = ContactPoint('brick', (0.0, -0.2))
    jc = contact_jacobian(state, [contact])
    np.testing.assert_allclose(jc @ state.velocity, 0.0, atol=1e-12)
    np.testing.assert_allclose(state.point_velocity(contact.point).v, 0.0, atol=1e-12)


def test_constrained_acceleration_respects_contacts(arm_state, arm_tip_contact):
    jc = contact_jacobian(arm_state, [arm_tip_contact])
    derivative = constrained_dynamics(arm_state, np.array([1.5, -2.0]), jc)
    assert derivative.shape == (4,)
    np.testing.assert_allclose(derivative[:2], arm_state.velocity)
    np.testing.assert_allclose(jc @ derivative[2:], 0.0, atol=1e-10)


def test_gravity_compensation_holds_posture(arm_state, arm_tip_contact):
    control = gravity_compensation(arm_state)
    np.testing.assert_allclose(control, arm_state.bias_force())
    jc = contact_jacobian(arm_state, [arm_tip_contact])
    np.testing.assert_allclose(constrained_dynamics(arm_state, control, jc), 0.0, atol=1e-10)


def test_unconstrained_dynamics(brick_state):
    """Without contacts the brick only feels gravity and the input."""
    control = np.array([2.0, 0.0, 0.5])
    derivative = constrained_dynamics(brick_state, control, np.zeros((0, 3)))
    np.testing.assert_allclose(derivative[3:], [2.0, -9.81, 5.0], atol=1e-10)


def test_normal_contact_cancels_vertical_acceleration(brick_state, brick_normal_contact):
    jc = contact_jacobian(brick_state, [brick_normal_contact])
    derivative = constrained_dynamics(brick_state, np.array([2.0, 0.0, 0.5]), jc)
    np.testing.assert_allclose(derivative[3:], [2.0, 0.0, 5.0], atol=1e-10)


def test_redundant_contacts_are_singular(brick_state, bottom_corners):
    jc = contact_jacobian(brick_state, bottom_corners)
    with pytest.raises(SingularMatrixError):
        constrained_dynamics(brick_state, np.zeros(3), jc)


def test_input_dimension_checked(arm_state):
    with pytest.raises(DimensionError):
        constrained_dynamics(arm_state, np.zeros(3), np.zeros((0, 2)))
    with pytest.raises(DimensionError):
        constrained_dynamics(arm_state, np.zeros(2), np.zeros((1, 3)))


def test_compiled_dynamics_matches_numeric(arm, arm_state, arm_tip_contact):
    jc = contact_jacobian(arm_state, [arm_tip_contact])
    function = build_constrained_dynamics(arm, jc)
    state = np.array([0.3, 0.9, -0.5, 0.2])
    control = np.array([0.4, -1.0])
    expected = constrained_dynamics(DynamicsState(arm, state[:2], state[2:]), control, jc)
    np.testing.assert_allclose(np.array(function(state, control)).flatten(), expected, atol=1e-10)


def test_linearization_structure(arm_state, arm_tip_contact):
    jc = contact_jacobian(arm_state, [arm_tip_contact])
    control = gravity_compensation(arm_state)
    linear = linearize_constrained(arm_state, control, jc)

    assert isinstance(linear, LinearizedDynamics)
    A, B, c = linear
    assert A.shape == (4, 4)
    assert B.shape == (4, 2)
    np.testing.assert_allclose(c, 0.0, atol=1e-10)
    np.testing.assert_allclose(A[:2, :2], 0.0, atol=1e-12)
    np.testing.assert_allclose(A[:2, 2:], np.eye(2), atol=1e-12)
    np.testing.assert_allclose(B[:2], 0.0, atol=1e-12)

    # Constrained accelerations stay in the contact nullspace
    np.testing.assert_allclose(jc @ A[2:], 0.0, atol=1e-9)
    np.testing.assert_allclose(jc @ B[2:], 0.0, atol=1e-9)
    np.testing.assert_allclose(linear.equilibrium_state, [0.5, 0.5, 0.0, 0.0])
    np.testing.assert_allclose(linear.equilibrium_control, control)


def test_linearization_matches_finite_differences(arm, arm_state, arm_tip_contact):
    jc = contact_jacobian(arm_state, [arm_tip_contact])
    control = gravity_compensation(arm_state)
    A, B, _ = linearize_constrained(arm_state, control, jc)

    step = 1e-6
    x0 = np.concatenate([arm_state.configuration, arm_state.velocity])
    for index in range(4):
        offset = np.zeros(4)
        offset[index] = step
        forward = constrained_dynamics(
            DynamicsState(arm, (x0 + offset)[:2], (x0 + offset)[2:]), control, jc
        )
        backward = constrained_dynamics(
            DynamicsState(arm, (x0 - offset)[:2], (x0 - offset)[2:]), control, jc
        )
        np.testing.assert_allclose((forward - backward) / (2 * step), A[:, index], atol=1e-6)

    for index in range(2):
        offset = np.zeros(2)
        offset[index] = step
        forward = constrained_dynamics(arm_state, control + offset, jc)
        backward = constrained_dynamics(arm_state, control - offset, jc)
        np.testing.assert_allclose((forward - backward) / (2 * step), B[:, index], atol=1e-6)


def test_unmotorized_joint_has_no_control_column(passive_shoulder_arm, arm_tip_contact):
    state = DynamicsState(passive_shoulder_arm, [0.5, 0.5], [0.0, 0.0])
    jc = contact_jacobian(state, [arm_tip_contact])
    _, B, _ = linearize_constrained(state, gravity_compensation(state), jc)
    np.testing.assert_allclose(B[:, 0], 0.0, atol=1e-12)
    assert np.linalg.norm(B[:, 1]) > 0.0


def test_linearization_requires_static_posture(arm, arm_tip_contact):
    state = DynamicsState(arm, [0.5, 0.5], [0.0, 0.1])
    with pytest.raises(PreconditionError):
        linearize_constrained(state, np.zeros(2), np.zeros((1, 2)))

    # A tolerance admits nearly static states
    jc = contact_jacobian(state, [arm_tip_contact])
    linear = linearize_constrained(state, np.zeros(2), jc, velocity_tolerance=0.2)
    assert linear.state_matrix.shape == (4, 4)


def test_linearization_of_redundant_contacts_fails(brick_state, bottom_corners):
    jc = contact_jacobian(brick_state, bottom_corners)
    with pytest.raises(SingularMatrixError):
        linearize_constrained(brick_state, gravity_compensation(brick_state), jc)
