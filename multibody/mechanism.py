"""Planar multibody mechanism model.

A kinematic tree in the x-z plane built from one-DOF joints:
    - 'prismatic': translation along `axis`, expressed in the parent frame
    - 'revolute': rotation about the world y axis (pitch)

Every joint contributes one configuration and one velocity coordinate, so
configuration derivative and velocity coincide (q_dot = v).

Kinematic and dynamic quantities are built once per mechanism as CasADi
Functions. Calling them with NumPy arrays returns numeric DM values; calling
them with CasADi symbols returns symbolic expressions that can be
differentiated.
"""

import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple, Union

import casadi as ca
import yaml

from multibody.spatial import WORLD_FRAME
from multibody._internal.validation import (
    validate_non_negative,
    validate_planar_vector,
)

JOINT_TYPES = ('prismatic', 'revolute')


@dataclass(frozen=True)
class Bounds:
    """Closed interval [lower, upper]."""
    lower: float = -math.inf
    upper: float = math.inf

    def __post_init__(self):
        if self.lower > self.upper:
            raise ValueError(
                f"lower bound {self.lower} exceeds upper bound {self.upper}"
            )

    @property
    def is_zero(self) -> bool:
        return self.lower == 0 and self.upper == 0


@dataclass(frozen=True)
class Body:
    """Rigid body with planar inertia.

    Attributes:
        name: Unique body name (also the name of its frame)
        mass_kg: Body mass
        com_offset_m: Centre of mass (x, z) in the body frame
        pitch_inertia_kg_m2: Rotational inertia about the body y axis at the CoM
    """
    name: str
    mass_kg: float = 0.0
    com_offset_m: Tuple[float, float] = (0.0, 0.0)
    pitch_inertia_kg_m2: float = 0.0

    def __post_init__(self):
        validate_non_negative(self.mass_kg, 'mass_kg')
        validate_non_negative(self.pitch_inertia_kg_m2, 'pitch_inertia_kg_m2')
        object.__setattr__(
            self, 'com_offset_m',
            validate_planar_vector(self.com_offset_m, 'com_offset_m')
        )


@dataclass(frozen=True)
class Joint:
    """One-DOF joint connecting a parent body to a child body.

    Attributes:
        name: Unique joint name
        joint_type: 'prismatic' or 'revolute'
        axis: Translation direction (x, z) in the parent frame (prismatic only)
        offset_m: Joint origin (x, z) in the parent frame
        position_bounds: Configuration limits
        velocity_bounds: Velocity limits
        effort_bounds: Actuation limits; both zero means unmotorized
    """
    name: str
    joint_type: str
    axis: Tuple[float, float] = (1.0, 0.0)
    offset_m: Tuple[float, float] = (0.0, 0.0)
    position_bounds: Bounds = field(default_factory=Bounds)
    velocity_bounds: Bounds = field(default_factory=Bounds)
    effort_bounds: Bounds = field(default_factory=Bounds)

    def __post_init__(self):
        if self.joint_type not in JOINT_TYPES:
            raise ValueError(
                f"joint_type must be one of {JOINT_TYPES}, got '{self.joint_type}'"
            )
        axis = validate_planar_vector(self.axis, 'axis')
        norm = math.hypot(*axis)
        if norm == 0:
            raise ValueError(f"axis of joint '{self.name}' must be non-zero")
        object.__setattr__(self, 'axis', (axis[0] / norm, axis[1] / norm))
        object.__setattr__(
            self, 'offset_m', validate_planar_vector(self.offset_m, 'offset_m')
        )

    @property
    def is_motorized(self) -> bool:
        return not self.effort_bounds.is_zero


def _rotate(pitch, x, z):
    """Rotate a body-frame (x, z) vector about y by `pitch`."""
    cos_pitch = ca.cos(pitch)
    sin_pitch = ca.sin(pitch)
    return x * cos_pitch + z * sin_pitch, -x * sin_pitch + z * cos_pitch


class Mechanism:
    """Planar kinematic tree rooted at the world body.

    Bodies are attached in topological order, so the joint list order is also
    the coordinate order of the configuration and velocity vectors.
    """

    def __init__(
        self,
        gravity_mps2: float = 9.81,
        num_additional_states: int = 0,
    ) -> None:
        validate_non_negative(gravity_mps2, 'gravity_mps2')
        if not isinstance(num_additional_states, int) or num_additional_states < 0:
            raise ValueError(
                f"num_additional_states must be a non-negative integer, "
                f"got {num_additional_states}"
            )
        self._gravity_mps2 = float(gravity_mps2)
        self._num_additional_states = num_additional_states
        self._bodies: Dict[str, Body] = {WORLD_FRAME: Body(WORLD_FRAME)}
        self._joints: List[Joint] = []
        self._parent_of_joint: Dict[str, str] = {}
        self._child_of_joint: Dict[str, str] = {}
        self._joint_to_parent: Dict[str, Joint] = {}
        self._functions: Dict[tuple, ca.Function] = {}

    def attach(self, parent: str, body: Body, joint: Joint) -> Body:
        """Attach `body` to the existing body `parent` through `joint`.

        Raises:
            ValueError: If the parent is unknown or a name is already in use
        """
        if parent not in self._bodies:
            raise ValueError(f"Unknown parent body '{parent}'")
        if body.name in self._bodies:
            raise ValueError(f"Body '{body.name}' is already part of the mechanism")
        if joint.name in self._parent_of_joint:
            raise ValueError(f"Joint '{joint.name}' is already part of the mechanism")

        self._bodies[body.name] = body
        self._joints.append(joint)
        self._parent_of_joint[joint.name] = parent
        self._child_of_joint[joint.name] = body.name
        self._joint_to_parent[body.name] = joint
        self._functions.clear()
        return body

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'Mechanism':
        """Load a mechanism description from a YAML file.

        The file lists `bodies` (Body fields) and `joints` (Joint fields plus
        `parent` and `child` body names) in attachment order; bounds are
        given as `[lower, upper]` pairs.

        Raises:
            FileNotFoundError: If YAML file does not exist
            ValueError: If the description is inconsistent
        """
        with open(yaml_path, 'r') as file:
            config = yaml.safe_load(file)

        return cls.from_dict(config)

    @classmethod
    def from_dict(cls, config: dict) -> 'Mechanism':
        mechanism = cls(
            gravity_mps2=config.get('gravity_mps2', 9.81),
            num_additional_states=config.get('num_additional_states', 0),
        )
        bodies = {
            body_config['name']: Body(**body_config)
            for body_config in config.get('bodies', [])
        }
        for joint_config in config.get('joints', []):
            joint_config = dict(joint_config)
            parent = joint_config.pop('parent')
            child = joint_config.pop('child')
            if child not in bodies:
                raise ValueError(
                    f"Joint '{joint_config.get('name')}' refers to unknown body '{child}'"
                )
            for key in ('position_bounds', 'velocity_bounds', 'effort_bounds'):
                if key in joint_config:
                    lower, upper = joint_config[key]
                    joint_config[key] = Bounds(float(lower), float(upper))
            mechanism.attach(parent, bodies[child], Joint(**joint_config))
        return mechanism

    @property
    def gravity_mps2(self) -> float:
        return self._gravity_mps2

    @property
    def num_positions(self) -> int:
        return len(self._joints)

    @property
    def num_velocities(self) -> int:
        return len(self._joints)

    @property
    def num_additional_states(self) -> int:
        return self._num_additional_states

    def bodies(self) -> List[Body]:
        return list(self._bodies.values())

    def joints(self) -> List[Joint]:
        return list(self._joints)

    def find_body(self, name: str) -> Body:
        try:
            return self._bodies[name]
        except KeyError:
            raise KeyError(f"No body named '{name}'") from None

    def find_joint(self, name: str) -> Joint:
        for joint in self._joints:
            if joint.name == name:
                return joint
        raise KeyError(f"No joint named '{name}'")

    def joint_to_parent(self, body: str) -> Joint:
        return self._joint_to_parent[body]

    def parent_body(self, joint: Union[Joint, str]) -> str:
        name = joint.name if isinstance(joint, Joint) else joint
        return self._parent_of_joint[name]

    def velocity_index(self, joint: Union[Joint, str]) -> int:
        """Index of the joint's coordinate in the velocity (and configuration) vector."""
        name = joint.name if isinstance(joint, Joint) else joint
        for index, candidate in enumerate(self._joints):
            if candidate.name == name:
                return index
        raise KeyError(f"No joint named '{name}'")

    # Symbolic model -------------------------------------------------------

    def _body_poses(self, configuration) -> Dict[str, tuple]:
        """World pose (x, z, pitch) of every body as CasADi expressions."""
        zero = ca.SX(0)
        poses = {WORLD_FRAME: (zero, zero, zero)}
        for index, joint in enumerate(self._joints):
            parent_x, parent_z, parent_pitch = poses[self._parent_of_joint[joint.name]]
            local_x, local_z = joint.offset_m
            child_pitch = parent_pitch
            if joint.joint_type == 'prismatic':
                local_x = local_x + joint.axis[0] * configuration[index]
                local_z = local_z + joint.axis[1] * configuration[index]
            else:
                child_pitch = parent_pitch + configuration[index]
            world_x, world_z = _rotate(parent_pitch, local_x, local_z)
            poses[self._child_of_joint[joint.name]] = (
                parent_x + world_x, parent_z + world_z, child_pitch
            )
        return poses

    @staticmethod
    def _point_in_world(pose: tuple, offset) -> ca.SX:
        x, z, pitch = pose
        world_x, world_z = _rotate(pitch, offset[0], offset[2])
        return ca.vertcat(x + world_x, offset[1], z + world_z)

    @staticmethod
    def _transform_matrix(pose: tuple) -> ca.SX:
        x, z, pitch = pose
        cos_pitch = ca.cos(pitch)
        sin_pitch = ca.sin(pitch)
        return ca.vertcat(
            ca.horzcat(cos_pitch, 0, sin_pitch, x),
            ca.horzcat(0, 1, 0, 0),
            ca.horzcat(-sin_pitch, 0, cos_pitch, z),
            ca.horzcat(0, 0, 0, 1),
        )

    def _mass_matrix_expression(self, configuration, poses) -> ca.SX:
        dimension = self.num_velocities
        mass_matrix = ca.SX.zeros(dimension, dimension)
        for body in self._bodies.values():
            if body.name == WORLD_FRAME:
                continue
            com_x, com_z = body.com_offset_m
            com = self._point_in_world(poses[body.name], (com_x, 0.0, com_z))
            com_jacobian = ca.jacobian(ca.vertcat(com[0], com[2]), configuration)
            pitch_jacobian = ca.jacobian(poses[body.name][2], configuration)
            mass_matrix += body.mass_kg * ca.mtimes(com_jacobian.T, com_jacobian)
            mass_matrix += (
                body.pitch_inertia_kg_m2 * ca.mtimes(pitch_jacobian.T, pitch_jacobian)
            )
        return mass_matrix

    def _potential_energy_expression(self, poses) -> ca.SX:
        potential = ca.SX(0)
        for body in self._bodies.values():
            if body.name == WORLD_FRAME:
                continue
            com_x, com_z = body.com_offset_m
            com = self._point_in_world(poses[body.name], (com_x, 0.0, com_z))
            potential += body.mass_kg * self._gravity_mps2 * com[2]
        return potential

    def _cached_function(self, key: tuple, builder: Callable[[], ca.Function]) -> ca.Function:
        function = self._functions.get(key)
        if function is None:
            function = builder()
            self._functions[key] = function
        return function

    def _check_body(self, body: str) -> None:
        if body not in self._bodies:
            raise KeyError(f"No body named '{body}'")

    def mass_matrix_function(self) -> ca.Function:
        """CasADi Function configuration -> mass matrix M(q) (nv, nv)."""
        def build():
            configuration = ca.SX.sym('configuration', self.num_positions)
            poses = self._body_poses(configuration)
            return ca.Function(
                'mass_matrix',
                [configuration],
                [self._mass_matrix_expression(configuration, poses)],
                ['configuration'],
                ['mass_matrix'],
            )
        return self._cached_function(('mass_matrix',), build)

    def bias_force_function(self) -> ca.Function:
        """CasADi Function (configuration, velocity) -> bias force h(q, v).

        From the Lagrangian L = T - V with T = v'M(q)v / 2 and q_dot = v:
            M(q) v_dot + h(q, v) = tau
            h = d(M v)/dq · v - dT/dq + dV/dq
        i.e. Coriolis, centrifugal and gravity terms.
        """
        def build():
            configuration = ca.SX.sym('configuration', self.num_positions)
            velocity = ca.SX.sym('velocity', self.num_velocities)
            poses = self._body_poses(configuration)
            mass_matrix = self._mass_matrix_expression(configuration, poses)
            momentum = ca.mtimes(mass_matrix, velocity)
            kinetic_energy = 0.5 * ca.dot(velocity, momentum)
            potential_energy = self._potential_energy_expression(poses)
            bias_force = (
                ca.mtimes(ca.jacobian(momentum, configuration), velocity)
                - ca.gradient(kinetic_energy, configuration)
                + ca.gradient(potential_energy, configuration)
            )
            return ca.Function(
                'bias_force',
                [configuration, velocity],
                [bias_force],
                ['configuration', 'velocity'],
                ['bias_force'],
            )
        return self._cached_function(('bias_force',), build)

    def point_position_function(self, body: str) -> ca.Function:
        """CasADi Function (configuration, offset) -> world position (3,)."""
        self._check_body(body)

        def build():
            configuration = ca.SX.sym('configuration', self.num_positions)
            offset = ca.SX.sym('offset', 3)
            poses = self._body_poses(configuration)
            return ca.Function(
                'point_position',
                [configuration, offset],
                [self._point_in_world(poses[body], offset)],
                ['configuration', 'offset'],
                ['position'],
            )
        return self._cached_function(('point_position', body), build)

    def point_jacobian_function(self, body: str) -> ca.Function:
        """CasADi Function (configuration, offset) -> point Jacobian (3, nv)."""
        self._check_body(body)

        def build():
            configuration = ca.SX.sym('configuration', self.num_positions)
            offset = ca.SX.sym('offset', 3)
            poses = self._body_poses(configuration)
            position = self._point_in_world(poses[body], offset)
            return ca.Function(
                'point_jacobian',
                [configuration, offset],
                [ca.jacobian(position, configuration)],
                ['configuration', 'offset'],
                ['jacobian'],
            )
        return self._cached_function(('point_jacobian', body), build)

    def point_velocity_function(self, body: str) -> ca.Function:
        """CasADi Function (configuration, velocity, offset) -> world velocity (3,)."""
        self._check_body(body)

        def build():
            configuration = ca.SX.sym('configuration', self.num_positions)
            velocity = ca.SX.sym('velocity', self.num_velocities)
            offset = ca.SX.sym('offset', 3)
            poses = self._body_poses(configuration)
            position = self._point_in_world(poses[body], offset)
            return ca.Function(
                'point_velocity',
                [configuration, velocity, offset],
                [ca.mtimes(ca.jacobian(position, configuration), velocity)],
                ['configuration', 'velocity', 'offset'],
                ['point_velocity'],
            )
        return self._cached_function(('point_velocity', body), build)

    def transform_function(self, from_body: str, to_body: Optional[str] = None) -> ca.Function:
        """CasADi Function configuration -> 4x4 transform from `from_body` to `to_body`.

        `to_body` defaults to the world frame.
        """
        to_body = WORLD_FRAME if to_body is None else to_body
        self._check_body(from_body)
        self._check_body(to_body)

        def build():
            configuration = ca.SX.sym('configuration', self.num_positions)
            poses = self._body_poses(configuration)
            from_to_world = self._transform_matrix(poses[from_body])
            to_to_world = self._transform_matrix(poses[to_body])
            rotation = to_to_world[:3, :3]
            translation = to_to_world[:3, 3]
            world_to_to = ca.vertcat(
                ca.horzcat(rotation.T, -ca.mtimes(rotation.T, translation)),
                ca.horzcat(0, 0, 0, 1),
            )
            return ca.Function(
                'transform',
                [configuration],
                [ca.mtimes(world_to_to, from_to_world)],
                ['configuration'],
                ['transform'],
            )
        return self._cached_function(('transform', from_body, to_body), build)
