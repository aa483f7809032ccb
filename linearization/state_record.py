"""Flat state storage with aliasing configuration/velocity/additional views.

The backing array is never resized. Views are NumPy basic slices, so writes
through a view mutate the backing array and vice versa.
"""

import casadi as ca
import numpy as np

from multibody import DimensionError, DynamicsState, Mechanism


def _elements(values):
    """Split a CasADi vector into a list of scalar expressions."""
    if isinstance(values, ca.DM):
        return np.array(values).flatten()
    if isinstance(values, (ca.SX, ca.MX)):
        return [values[index] for index in range(values.numel())]
    return values


class StateBuffer:
    """State record over a flat buffer of `nq + nv (+ na)` scalars.

    Numeric buffers hold floats. Variable-backed buffers are object arrays of
    CasADi scalar expressions, typically the entries of an optimization
    variable.
    """

    def __init__(self, mechanism: Mechanism, state) -> None:
        num_positions = mechanism.num_positions
        num_velocities = mechanism.num_velocities
        num_states = num_positions + num_velocities
        num_total = num_states + mechanism.num_additional_states

        if not isinstance(state, np.ndarray):
            state = np.array(state, dtype=float)
        elif state.dtype != object and not np.issubdtype(state.dtype, np.floating):
            # integer backings would silently truncate float writes
            raise TypeError(
                f"State buffer must have a floating or object dtype, got {state.dtype}"
            )
        if state.ndim != 1 or len(state) not in (num_states, num_total):
            raise DimensionError(
                f"State buffer must have length {num_states} or {num_total}, "
                f"got shape {state.shape}"
            )

        self._mechanism = mechanism
        self._state = state
        self._configuration = state[:num_positions]
        self._velocity = state[num_positions:num_states]
        self._additional_state = state[num_states:]

    @classmethod
    def zeros(cls, mechanism: Mechanism, with_additional_state: bool = False) -> 'StateBuffer':
        length = mechanism.num_positions + mechanism.num_velocities
        if with_additional_state:
            length += mechanism.num_additional_states
        return cls(mechanism, np.zeros(length))

    @classmethod
    def from_variables(cls, mechanism: Mechanism, variables) -> 'StateBuffer':
        """Variable-backed buffer over the entries of a CasADi column vector."""
        elements = _elements(variables)
        backing = np.empty(len(elements), dtype=object)
        for index, element in enumerate(elements):
            backing[index] = element
        return cls(mechanism, backing)

    @classmethod
    def from_dynamics_state(cls, state: DynamicsState) -> 'StateBuffer':
        """Independent numeric copy of a dynamics state."""
        return cls(state.mechanism, np.array(state.state_vector(), dtype=float))

    @property
    def mechanism(self) -> Mechanism:
        return self._mechanism

    @property
    def state(self) -> np.ndarray:
        return self._state

    @property
    def configuration(self) -> np.ndarray:
        return self._configuration

    @property
    def velocity(self) -> np.ndarray:
        return self._velocity

    @property
    def additional_state(self) -> np.ndarray:
        return self._additional_state

    @property
    def num_positions(self) -> int:
        return len(self._configuration)

    @property
    def num_velocities(self) -> int:
        return len(self._velocity)

    @property
    def is_variable_backed(self) -> bool:
        return self._state.dtype == object

    def _assign(self, view: np.ndarray, values, name: str) -> None:
        values = _elements(values)
        if len(values) != len(view):
            raise DimensionError(
                f"{name} must have length {len(view)}, got {len(values)}"
            )
        if view.dtype == object:
            for index, value in enumerate(values):
                view[index] = value
        else:
            view[:] = values

    def set_configuration(self, configuration) -> None:
        self._assign(self._configuration, configuration, 'configuration')

    def set_velocity(self, velocity) -> None:
        self._assign(self._velocity, velocity, 'velocity')

    def set_additional_state(self, additional_state) -> None:
        self._assign(self._additional_state, additional_state, 'additional_state')

    def copy_to(self, state: DynamicsState) -> None:
        """Copy values into a dynamics state; the two stay independent."""
        state.set_configuration(self._configuration)
        state.set_velocity(self._velocity)
        if len(self._additional_state):
            state.set_additional_state(self._additional_state)

    def copy_from(self, state: DynamicsState) -> None:
        """Copy values out of a dynamics state."""
        self.set_configuration(state.configuration)
        self.set_velocity(state.velocity)
        if len(self._additional_state):
            self.set_additional_state(state.additional_state)

    def __len__(self) -> int:
        return len(self._state)
