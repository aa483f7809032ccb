"""Planar multibody model used by the linearization and contact packages.

Public API:
    - Bounds, Body, Joint, Mechanism: Mechanism description
    - DynamicsState: Configuration/velocity with mass matrix, bias force,
      transforms and point kinematics
    - Point3D, FreeVector3D, Transform3D: Frame-tagged spatial values
    - planar_base, planar_revolute_base: Floating planar bases
    - DimensionError, UnresolvedValueError, PreconditionError,
      SingularMatrixError: Error taxonomy
"""

from multibody.errors import (
    DimensionError,
    UnresolvedValueError,
    PreconditionError,
    SingularMatrixError,
)
from multibody.mechanism import Bounds, Body, Joint, Mechanism
from multibody.spatial import (
    WORLD_FRAME,
    Point3D,
    FreeVector3D,
    Transform3D,
)
from multibody.dynamics_state import DynamicsState
from multibody.bases import planar_base, planar_revolute_base

__all__ = [
    'DimensionError',
    'UnresolvedValueError',
    'PreconditionError',
    'SingularMatrixError',
    'Bounds',
    'Body',
    'Joint',
    'Mechanism',
    'WORLD_FRAME',
    'Point3D',
    'FreeVector3D',
    'Transform3D',
    'DynamicsState',
    'planar_base',
    'planar_revolute_base',
]
