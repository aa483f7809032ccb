"""Tests for the Schur-method Riccati solver and LQR gain."""

import numpy as np
import pytest
import scipy.linalg

from multibody import DimensionError, SingularMatrixError
from contact_control import lqr_gain, solve_riccati


@pytest.fixture
def double_integrator():
    A = np.array([[0.0, 1.0], [0.0, 0.0]])
    B = np.array([[0.0], [1.0]])
    return A, B, np.eye(2), np.array([[1.0]])


@pytest.fixture
def random_system():
    rng = np.random.default_rng(7)
    A = rng.normal(size=(5, 5))
    B = rng.normal(size=(5, 2))
    Q = np.diag(rng.uniform(0.5, 2.0, size=5))
    R = np.diag(rng.uniform(0.1, 1.0, size=2))
    return A, B, Q, R


def riccati_residual(A, B, Q, R, X):
    return A.T @ X + X @ A - X @ B @ np.linalg.solve(R, B.T @ X) + Q


def test_double_integrator_gain(double_integrator):
    """Known closed form K = [1, sqrt(3)] for Q = I, R = 1."""
    K = lqr_gain(*double_integrator)
    np.testing.assert_allclose(K, [[1.0, np.sqrt(3.0)]], atol=1e-10)


def test_solution_matches_scipy(random_system):
    A, B, Q, R = random_system
    X = solve_riccati(A, B, Q, R)
    np.testing.assert_allclose(X, scipy.linalg.solve_continuous_are(A, B, Q, R), rtol=1e-7, atol=1e-8)
    np.testing.assert_allclose(riccati_residual(A, B, Q, R, X), 0.0, atol=1e-7)
    np.testing.assert_allclose(X, X.T, atol=1e-12)


def test_gain_stabilizes(random_system):
    A, B, Q, R = random_system
    K = lqr_gain(A, B, Q, R)
    assert K.shape == (2, 5)
    assert np.all(np.linalg.eigvals(A - B @ K).real < 0)


def test_singular_control_cost(double_integrator):
    A, B, Q, _ = double_integrator
    with pytest.raises(SingularMatrixError):
        solve_riccati(A, B, Q, np.zeros((1, 1)))


def test_shape_mismatch(double_integrator):
    A, B, Q, R = double_integrator
    with pytest.raises(DimensionError):
        solve_riccati(A, B, np.eye(3), R)
    with pytest.raises(DimensionError):
        lqr_gain(A, np.ones((3, 1)), Q, R)


def test_unreachable_marginal_mode_has_no_stabilizing_solution():
    """An uncontrollable mode on the imaginary axis leaves the Schur split short."""
    A = np.diag([0.0, -1.0])
    B = np.array([[0.0], [1.0]])
    with pytest.raises(SingularMatrixError, match="1 stable eigenvalues, expected 2"):
        solve_riccati(A, B, np.diag([0.0, 1.0]), np.eye(1))


def test_uncontrollable_integrator_is_rejected_by_gain():
    A = np.zeros((1, 1))
    B = np.zeros((1, 1))
    with pytest.raises(SingularMatrixError, match="not stabilizable"):
        lqr_gain(A, B, np.eye(1), np.eye(1))
