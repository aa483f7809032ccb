"""First-order approximation of mechanism functionals around a moving point.

A LinearizedState keeps three states of one mechanism:
    - the current (operating) point, a StateBuffer
    - the linearization (reference) point, a DynamicsState
    - a shadow DynamicsState whose configuration and velocity are the entries
      of a CasADi seed vector x = [q; v]. Differentiating with respect to the
      seed gives each output's partials along the unit tangent directions; the
      primal values of the seed are the reference values.

A functional f maps a DynamicsState to a value (scalar, vector, matrix, or a
Point3D/FreeVector3D/Transform3D). Evaluating f on the shadow state and
differentiating yields the value v0 and Jacobian J at the reference point,
from which

    f(x_current) ≈ v0 + J (x_current - x_linear)

Uses CasADi automatic differentiation for exact Jacobians.
"""

import logging
from typing import Callable, Optional, Tuple

import casadi as ca
import numpy as np

from multibody import (
    DimensionError,
    DynamicsState,
    Joint,
    Mechanism,
    UnresolvedValueError,
)
from multibody.dynamics_state import as_state_vector
from multibody.spatial import unwrap
from linearization.affine import AffineExpression
from linearization.state_record import StateBuffer

logger = logging.getLogger(__name__)

DEFAULT_MIN_COEFFICIENT = 1e-15


def _as_expression(output) -> ca.SX:
    if isinstance(output, ca.SX):
        return output
    if isinstance(output, ca.MX):
        raise TypeError(
            "Functionals must be built from the shadow state's SX entries, got MX"
        )
    return ca.SX(ca.DM(np.atleast_1d(np.asarray(output, dtype=float))))


def _reshape(values: np.ndarray, shape: Tuple[int, int]):
    """Restore the functional's output shape from flat (column-major) values."""
    if shape == (1, 1):
        return values[0]
    if shape[1] == 1:
        return values
    return values.reshape(shape, order='F')


class LinearizedState:
    """Numeric linearization of mechanism functionals.

    Attributes:
        current_state: Operating point (StateBuffer)
        linearization_state: Reference point (DynamicsState, mutated in place
            by the set_linearization_* methods)
    """

    def __init__(self, linear: DynamicsState, current=None) -> None:
        """Seed a linearization at `linear`.

        Args:
            linear: Numeric reference state
            current: Optional StateBuffer or DynamicsState giving the initial
                operating point (defaults to the reference point)

        Raises:
            UnresolvedValueError: If `linear` holds symbolic values
        """
        if linear.is_symbolic:
            raise UnresolvedValueError(
                "To construct a linearized state, the given state must have a "
                "numeric value; use LinearizedState.from_unresolved() for "
                "states built from optimization variables"
            )
        mechanism = linear.mechanism
        num_positions = mechanism.num_positions
        num_velocities = mechanism.num_velocities

        self._mechanism = mechanism
        self._linearization_state = linear
        self._seed = ca.SX.sym('x', num_positions + num_velocities)
        self._primal = np.concatenate([linear.configuration, linear.velocity])
        self._shadow_state = DynamicsState(
            mechanism,
            self._seed[:num_positions],
            self._seed[num_positions:],
            np.zeros(mechanism.num_additional_states),
        )
        self._current_state = self._make_current_state(mechanism)
        if current is not None:
            self.set_current(current.configuration, current.velocity)

    def _make_current_state(self, mechanism: Mechanism) -> StateBuffer:
        current = StateBuffer.zeros(mechanism)
        current.set_configuration(self._linearization_state.configuration)
        current.set_velocity(self._linearization_state.velocity)
        return current

    @classmethod
    def from_unresolved(
        cls,
        state: DynamicsState,
        value_of: Callable,
        *args,
        **kwargs,
    ) -> 'LinearizedState':
        """Linearize around the assigned values of a variable-backed state.

        Args:
            state: DynamicsState whose entries are optimization variables
            value_of: Maps a symbolic vector to its assigned numeric values,
                e.g. ``lambda x: opti.value(x, opti.initial())``
            *args, **kwargs: Forwarded to the constructor

        Raises:
            UnresolvedValueError: If any configuration, velocity or additional
                state entry has no assigned value
        """
        resolved = []
        for name in ('configuration', 'velocity', 'additional_state'):
            values = getattr(state, name)
            if isinstance(values, (ca.SX, ca.MX)):
                try:
                    values = value_of(values)
                except RuntimeError as err:
                    raise UnresolvedValueError(
                        f"Could not resolve the {name} of the given state"
                    ) from err
            values = np.array(values, dtype=float).reshape(-1)
            if np.any(np.isnan(values)):
                raise UnresolvedValueError(
                    "To construct a linearized state, the given state must have a "
                    f"defined value; the {name} has unassigned entries"
                )
            resolved.append(values)

        linear = DynamicsState(state.mechanism, *resolved)
        return cls(linear, *args, **kwargs)

    @property
    def mechanism(self) -> Mechanism:
        return self._mechanism

    @property
    def current_state(self) -> StateBuffer:
        return self._current_state

    @property
    def linearization_state(self) -> DynamicsState:
        return self._linearization_state

    @property
    def shadow_state(self) -> DynamicsState:
        return self._shadow_state

    def linearization_state_vector(self) -> np.ndarray:
        return self._linearization_state.state_vector()

    def current_configuration(self, joint: Optional[Joint] = None) -> np.ndarray:
        """View of the operating-point configuration, optionally of one joint."""
        configuration = self._current_state.configuration
        if joint is None:
            return configuration
        index = self._mechanism.velocity_index(joint)
        return configuration[index:index + 1]

    def current_velocity(self, joint: Optional[Joint] = None) -> np.ndarray:
        """View of the operating-point velocity, optionally of one joint."""
        velocity = self._current_state.velocity
        if joint is None:
            return velocity
        index = self._mechanism.velocity_index(joint)
        return velocity[index:index + 1]

    # Operating point ------------------------------------------------------

    def _checked(self, configuration, velocity, numeric: bool):
        """Validate both parts of a new point before either one is applied."""
        if configuration is not None:
            configuration = as_state_vector(
                configuration, self._mechanism.num_positions, 'configuration'
            )
        if velocity is not None:
            velocity = as_state_vector(
                velocity, self._mechanism.num_velocities, 'velocity'
            )
        if not numeric:
            return configuration, velocity
        for name, values in (('configuration', configuration), ('velocity', velocity)):
            if isinstance(values, (ca.SX, ca.MX)):
                raise UnresolvedValueError(
                    f"This point must be numeric; the {name} is symbolic"
                )
        return configuration, velocity

    def set_current_configuration(self, configuration) -> None:
        self.set_current(configuration=configuration)

    def set_current_velocity(self, velocity) -> None:
        self.set_current(velocity=velocity)

    def set_current(self, configuration=None, velocity=None) -> None:
        """Move the operating point; the reference point is untouched.

        Raises:
            DimensionError: If either part has the wrong length
            UnresolvedValueError: If a symbolic part is given for a numeric
                operating point

        On error neither part is applied.
        """
        configuration, velocity = self._checked(
            configuration, velocity,
            numeric=not self._current_state.is_variable_backed,
        )
        if configuration is not None:
            self._current_state.set_configuration(configuration)
        if velocity is not None:
            self._current_state.set_velocity(velocity)

    # Reference point ------------------------------------------------------

    def set_linearization_configuration(self, configuration) -> None:
        """Re-center the configuration of the reference and shadow states.

        The seed directions are kept; only their primal values move.
        """
        self.set_linearization(configuration=configuration)

    def set_linearization_velocity(self, velocity) -> None:
        """Re-center the velocity of the reference and shadow states."""
        self.set_linearization(velocity=velocity)

    def set_linearization(self, configuration=None, velocity=None) -> None:
        """Re-center the reference point.

        Raises:
            DimensionError: If either part has the wrong length
            UnresolvedValueError: If either part is symbolic

        On error neither the reference nor the shadow state changes.
        """
        configuration, velocity = self._checked(configuration, velocity, numeric=True)
        num_positions = self._mechanism.num_positions
        if configuration is not None:
            self._linearization_state.set_configuration(configuration)
            self._primal[:num_positions] = configuration
        if velocity is not None:
            self._linearization_state.set_velocity(velocity)
            self._primal[num_positions:] = velocity
        self._shadow_state.invalidate()

    # Evaluation -----------------------------------------------------------

    def _expand(self, functional: Callable):
        """Value and Jacobian of `functional` at the reference point.

        Returns:
            (rewrap, shape, value, jacobian) with value flattened column-major
            and jacobian of shape (value.size, nq + nv)
        """
        rewrap, output = unwrap(functional(self._shadow_state))
        expression = _as_expression(output)
        flat = ca.vec(expression)
        function = ca.Function(
            'linearized',
            [self._seed],
            [flat, ca.jacobian(flat, self._seed)],
        )
        value, jacobian = function(self._primal)
        return rewrap, expression.shape, np.array(value).flatten(), np.array(jacobian)

    def _current_vector(self) -> np.ndarray:
        return np.concatenate([
            self._current_state.configuration,
            self._current_state.velocity,
        ]).astype(float)

    def evaluate(self, functional: Callable):
        """First-order approximation of `functional` at the operating point.

        Returns v0 + J (x_current - x_linear), with the functional's frame
        metadata and shape preserved. Single-entry outputs are returned as
        scalars.
        """
        rewrap, shape, value, jacobian = self._expand(functional)
        offset = self._current_vector() - self._primal
        return rewrap(_reshape(value + jacobian @ offset, shape))

    def jacobian(self, functional: Callable) -> np.ndarray:
        """Jacobian (output_dim, nq + nv) of `functional` at the reference point."""
        return self._expand(functional)[3]

    def value_and_jacobian(self, functional: Callable):
        rewrap, shape, value, jacobian = self._expand(functional)
        return rewrap(_reshape(value, shape)), jacobian


class SymbolicLinearizedState(LinearizedState):
    """Linearization whose operating point is a vector of decision variables.

    Evaluation produces affine expressions over the variables instead of
    numbers, for use as linear constraints or objective terms.
    """

    def __init__(
        self,
        linear: DynamicsState,
        variables,
        min_coefficient: float = DEFAULT_MIN_COEFFICIENT,
    ) -> None:
        if min_coefficient < 0:
            raise ValueError(
                f"min_coefficient must be non-negative, got {min_coefficient}"
            )
        self._variables = variables
        self._min_coefficient = min_coefficient
        super().__init__(linear)

    def _make_current_state(self, mechanism: Mechanism) -> StateBuffer:
        current = StateBuffer.from_variables(mechanism, self._variables)
        expected = mechanism.num_positions + mechanism.num_velocities
        if len(current) != expected:
            raise DimensionError(
                f"variables must have length {expected}, got {len(current)}"
            )
        return current

    def evaluate(self, functional: Callable):
        raise TypeError(
            "The operating point is variable-backed; use evaluate_symbolic()"
        )

    def evaluate_symbolic(self, functional: Callable, min_coefficient: Optional[float] = None):
        """Affine first-order model of `functional` over the current variables.

        Each output entry i becomes
            sum_j J[i, j] x_current[j] + (v0[i] - sum_j J[i, j] x_linear[j])
        where only coefficients with |J[i, j]| >= min_coefficient are kept.

        Returns:
            AffineExpression for single-entry outputs, otherwise an object
            array of them (wrapped in the functional's frame metadata)
        """
        threshold = self._min_coefficient if min_coefficient is None else min_coefficient
        rewrap, shape, value, jacobian = self._expand(functional)
        x_current = tuple(np.concatenate([
            self._current_state.configuration,
            self._current_state.velocity,
        ]))
        x_linear = self._primal

        result = np.empty(len(value), dtype=object)
        dropped = 0
        for row in range(len(value)):
            terms = []
            constant = value[row]
            for column in range(len(x_current)):
                coefficient = jacobian[row, column]
                if abs(coefficient) >= threshold:
                    terms.append((column, float(coefficient)))
                    constant -= coefficient * x_linear[column]
                else:
                    dropped += 1
            result[row] = AffineExpression(x_current, tuple(terms), float(constant))

        logger.debug(
            "Affine model with %d rows, %d coefficients below %g omitted",
            len(value), dropped, threshold,
        )
        return rewrap(_reshape(result, shape))
