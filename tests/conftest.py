"""Shared mechanism fixtures.

    - pendulum: single revolute link hanging from the world
    - brick: fully actuated planar brick on an (x, z, pitch) base
    - arm: two-link arm loaded from config/two_link_arm.yaml
"""

from pathlib import Path

import numpy as np
import pytest

from multibody import Body, Bounds, DynamicsState, Joint, Mechanism, planar_revolute_base
from contact_control import ContactPoint

CONFIG_DIR = Path(__file__).resolve().parent.parent / 'config'

BRICK_HALF_HEIGHT_M = 0.2
ARM_CONFIGURATION = np.array([0.5, 0.5])


@pytest.fixture
def config_dir():
    return CONFIG_DIR


@pytest.fixture
def pendulum():
    """Point-ish pendulum: 2 kg at 0.3 m from a motorized pivot at the origin."""
    mechanism = Mechanism()
    mechanism.attach('world', Body(
        'pendulum', mass_kg=2.0, com_offset_m=(0.3, 0.0), pitch_inertia_kg_m2=0.05,
    ), Joint('pivot', 'revolute', effort_bounds=Bounds(-10.0, 10.0)))
    return mechanism


@pytest.fixture
def brick():
    mechanism, _ = planar_revolute_base(
        Body('brick', mass_kg=1.0, pitch_inertia_kg_m2=0.1),
        effort_bounds=Bounds(-50.0, 50.0),
    )
    return mechanism


@pytest.fixture
def brick_state(brick):
    return DynamicsState(brick, [0.0, BRICK_HALF_HEIGHT_M, 0.0], [0.0, 0.0, 0.0])


@pytest.fixture
def brick_normal_contact():
    """Bottom centre of the brick, constrained along the world z axis only."""
    return ContactPoint('brick', (0.0, -BRICK_HALF_HEIGHT_M), directions=((0.0, 0.0, 1.0),))


@pytest.fixture
def arm():
    return Mechanism.from_yaml(str(CONFIG_DIR / 'two_link_arm.yaml'))


@pytest.fixture
def arm_state(arm):
    return DynamicsState(arm, ARM_CONFIGURATION, np.zeros(2))


@pytest.fixture
def arm_tip_contact():
    return ContactPoint('lower_link', (0.5, 0.0), directions=((0.0, 0.0, 1.0),))


@pytest.fixture
def passive_shoulder_arm():
    """Two-link arm whose shoulder has zero effort bounds."""
    mechanism = Mechanism()
    mechanism.attach('world', Body(
        'upper_link', mass_kg=1.0, com_offset_m=(0.25, 0.0), pitch_inertia_kg_m2=0.02,
    ), Joint('shoulder', 'revolute', offset_m=(0.0, 0.5), effort_bounds=Bounds(0.0, 0.0)))
    mechanism.attach('upper_link', Body(
        'lower_link', mass_kg=0.8, com_offset_m=(0.25, 0.0), pitch_inertia_kg_m2=0.015,
    ), Joint('elbow', 'revolute', offset_m=(0.5, 0.0), effort_bounds=Bounds(-20.0, 20.0)))
    return mechanism
