"""Mechanism state and derived dynamic quantities.

A DynamicsState owns a configuration, a velocity and an additional-state
vector for one mechanism. The vectors are either numeric (float NumPy arrays)
or symbolic (CasADi SX/MX column vectors); derived quantities are returned as
NumPy arrays in the first case and as CasADi expressions in the second.
"""

from typing import Any, Callable

import casadi as ca
import numpy as np

from multibody.errors import DimensionError
from multibody.mechanism import Mechanism
from multibody.spatial import WORLD_FRAME, FreeVector3D, Point3D, Transform3D

SYMBOLIC_TYPES = (ca.SX, ca.MX)


def as_state_vector(values, length: int, name: str):
    if isinstance(values, SYMBOLIC_TYPES):
        if values.numel() != length:
            raise DimensionError(
                f"{name} must have length {length}, got {values.numel()}"
            )
        return ca.vec(values)
    if isinstance(values, np.ndarray) and values.dtype == object:
        if values.size != length:
            raise DimensionError(
                f"{name} must have length {length}, got {values.size}"
            )
        if length == 0:
            return np.zeros(0)
        return ca.vertcat(*values.ravel())
    vector = np.array(values, dtype=float).reshape(-1)
    if vector.shape != (length,):
        raise DimensionError(
            f"{name} must have length {length}, got {vector.size}"
        )
    return vector


def _output(value, vector: bool = False):
    """Convert a numeric CasADi result to NumPy, pass symbolic results through."""
    if isinstance(value, ca.DM):
        array = np.array(value)
        return array.flatten() if vector else array
    return value


def _offset(point: Point3D) -> np.ndarray:
    offset = np.array(point.v, dtype=float).reshape(-1)
    if offset.shape != (3,):
        raise DimensionError(
            f"Point offset must have length 3, got {offset.size}"
        )
    return offset


class DynamicsState:
    """Configuration, velocity and additional state of a mechanism.

    Derived quantities are cached until the configuration or velocity changes.
    """

    def __init__(
        self,
        mechanism: Mechanism,
        configuration=None,
        velocity=None,
        additional_state=None,
    ) -> None:
        self._mechanism = mechanism
        self._configuration = np.zeros(mechanism.num_positions)
        self._velocity = np.zeros(mechanism.num_velocities)
        self._additional_state = np.zeros(mechanism.num_additional_states)
        self._cache = {}
        if configuration is not None:
            self.set_configuration(configuration)
        if velocity is not None:
            self.set_velocity(velocity)
        if additional_state is not None:
            self.set_additional_state(additional_state)

    @property
    def mechanism(self) -> Mechanism:
        return self._mechanism

    @property
    def configuration(self):
        return self._configuration

    @property
    def velocity(self):
        return self._velocity

    @property
    def additional_state(self):
        return self._additional_state

    @property
    def is_symbolic(self) -> bool:
        return any(
            isinstance(values, SYMBOLIC_TYPES)
            for values in (self._configuration, self._velocity, self._additional_state)
        )

    def set_configuration(self, configuration) -> None:
        self._configuration = as_state_vector(
            configuration, self._mechanism.num_positions, 'configuration'
        )
        self.invalidate()

    def set_velocity(self, velocity) -> None:
        self._velocity = as_state_vector(
            velocity, self._mechanism.num_velocities, 'velocity'
        )
        self.invalidate()

    def set_additional_state(self, additional_state) -> None:
        self._additional_state = as_state_vector(
            additional_state, self._mechanism.num_additional_states, 'additional_state'
        )

    def invalidate(self) -> None:
        """Drop all cached derived quantities."""
        self._cache.clear()

    def state_vector(self):
        """Stacked [configuration; velocity; additional_state]."""
        parts = (self._configuration, self._velocity, self._additional_state)
        if self.is_symbolic:
            symbolic_parts = []
            for part in parts:
                if isinstance(part, np.ndarray):
                    if part.size == 0:
                        continue
                    part = ca.DM(part)
                symbolic_parts.append(part)
            return ca.vertcat(*symbolic_parts)
        return np.concatenate(parts)

    def copy(self) -> 'DynamicsState':
        return DynamicsState(
            self._mechanism,
            self._configuration,
            self._velocity,
            self._additional_state,
        )

    def _cached(self, key: tuple, compute: Callable[[], Any]):
        if key not in self._cache:
            self._cache[key] = compute()
        return self._cache[key]

    def mass_matrix(self):
        """Joint-space mass matrix M(q) (nv, nv)."""
        function = self._mechanism.mass_matrix_function()
        return self._cached(
            ('mass_matrix',),
            lambda: _output(function(self._configuration)),
        )

    def bias_force(self):
        """Coriolis, centrifugal and gravity terms h(q, v) (nv,)."""
        function = self._mechanism.bias_force_function()
        return self._cached(
            ('bias_force',),
            lambda: _output(function(self._configuration, self._velocity), vector=True),
        )

    def transform_to_root(self, body: str) -> Transform3D:
        return self.transform(body, WORLD_FRAME)

    def transform(self, from_body: str, to_body: str) -> Transform3D:
        """Transform mapping coordinates in `from_body` to `to_body`."""
        function = self._mechanism.transform_function(from_body, to_body)
        matrix = self._cached(
            ('transform', from_body, to_body),
            lambda: _output(function(self._configuration)),
        )
        return Transform3D(from_body, to_body, matrix)

    def point_position(self, point: Point3D) -> Point3D:
        """World position of a body-fixed point."""
        offset = _offset(point)
        function = self._mechanism.point_position_function(point.frame)
        position = self._cached(
            ('point_position', point.frame, tuple(offset)),
            lambda: _output(function(self._configuration, offset), vector=True),
        )
        return Point3D(WORLD_FRAME, position)

    def point_velocity(self, point: Point3D) -> FreeVector3D:
        """World-frame velocity of a body-fixed point."""
        offset = _offset(point)
        function = self._mechanism.point_velocity_function(point.frame)
        velocity = self._cached(
            ('point_velocity', point.frame, tuple(offset)),
            lambda: _output(
                function(self._configuration, self._velocity, offset), vector=True
            ),
        )
        return FreeVector3D(WORLD_FRAME, velocity)

    def point_jacobian(self, point: Point3D):
        """Jacobian (3, nv) mapping velocity to the point's world velocity."""
        offset = _offset(point)
        function = self._mechanism.point_jacobian_function(point.frame)
        return self._cached(
            ('point_jacobian', point.frame, tuple(offset)),
            lambda: _output(function(self._configuration, offset)),
        )
