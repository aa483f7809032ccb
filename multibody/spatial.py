"""Frame-tagged spatial values.

Points, free vectors and homogeneous transforms carry the name of the frame
they are expressed in. The numeric payload may be a NumPy array, a CasADi
expression, or an array of affine expressions; the frame metadata is never
touched by the linearization code.
"""

from dataclasses import dataclass
from typing import Any, Callable, Tuple

import numpy as np

WORLD_FRAME = 'world'


@dataclass(frozen=True)
class Point3D:
    """A point expressed in `frame` (a body name or 'world')."""
    frame: str
    v: Any

    @classmethod
    def planar(cls, frame: str, x: float, z: float) -> 'Point3D':
        return cls(frame, np.array([x, 0.0, z]))


@dataclass(frozen=True)
class FreeVector3D:
    """A direction or velocity expressed in `frame`."""
    frame: str
    v: Any


@dataclass(frozen=True)
class Transform3D:
    """Homogeneous transform mapping coordinates in `from_frame` to `to_frame`."""
    from_frame: str
    to_frame: str
    mat: Any

    @property
    def rotation(self):
        return self.mat[:3, :3]

    @property
    def translation(self):
        return self.mat[:3, 3]


def unwrap(value) -> Tuple[Callable[[Any], Any], Any]:
    """Split a spatial value into a rewrapping function and its raw payload.

    Values without frame metadata are returned unchanged with an identity
    rewrapper.
    """
    if isinstance(value, Point3D):
        return (lambda v: Point3D(value.frame, v)), value.v
    if isinstance(value, FreeVector3D):
        return (lambda v: FreeVector3D(value.frame, v)), value.v
    if isinstance(value, Transform3D):
        return (lambda v: Transform3D(value.from_frame, value.to_frame, v)), value.mat
    return (lambda v: v), value
