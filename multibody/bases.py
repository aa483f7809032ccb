"""Planar base mechanisms.

Floating planar bases are built from prismatic and revolute joints in series
with massless dummy bodies, so that any payload body attached to the returned
body moves with x, z (and pitch) degrees of freedom.
"""

import math
from typing import Optional, Tuple

from multibody.mechanism import Body, Bounds, Joint, Mechanism

UNMOTORIZED = Bounds(0.0, 0.0)


def planar_base(
    body: Optional[Body] = None,
    effort_bounds: Bounds = UNMOTORIZED,
    gravity_mps2: float = 9.81,
) -> Tuple[Mechanism, Body]:
    """Mechanism whose `body` translates in x and z.

    Args:
        body: Body moved by the base (massless 'base' body if None)
        effort_bounds: Effort bounds of both base joints (unmotorized by default)
        gravity_mps2: Gravitational acceleration

    Returns:
        (mechanism, body)
    """
    mechanism = Mechanism(gravity_mps2=gravity_mps2)
    dummy = mechanism.attach('world', Body('dummy'), Joint(
        'base_x', 'prismatic', axis=(1.0, 0.0),
        position_bounds=Bounds(-10.0, 10.0),
        velocity_bounds=Bounds(-10.0, 10.0),
        effort_bounds=effort_bounds,
    ))
    base = body if body is not None else Body('base')
    mechanism.attach(dummy.name, base, Joint(
        'base_z', 'prismatic', axis=(0.0, 1.0),
        position_bounds=Bounds(-10.0, 10.0),
        velocity_bounds=Bounds(-10.0, 10.0),
        effort_bounds=effort_bounds,
    ))
    return mechanism, base


def planar_revolute_base(
    body: Optional[Body] = None,
    effort_bounds: Bounds = UNMOTORIZED,
    gravity_mps2: float = 9.81,
) -> Tuple[Mechanism, Body]:
    """Mechanism whose `body` translates in x and z and rotates in pitch.

    Coordinates are ordered (x, z, pitch).
    """
    mechanism, base = planar_base(effort_bounds=effort_bounds, gravity_mps2=gravity_mps2)
    rotating = body if body is not None else Body('base_revolute')
    mechanism.attach(base.name, rotating, Joint(
        'base_rotation', 'revolute',
        position_bounds=Bounds(-2 * math.pi, 2 * math.pi),
        velocity_bounds=Bounds(-2 * math.pi, 2 * math.pi),
        effort_bounds=effort_bounds,
    ))
    return mechanism, rotating
