"""Tests for LQR configuration loading and cost matrix construction."""

import numpy as np
import pytest
import yaml

from multibody import DimensionError, Mechanism
from contact_control import (
    ContactLQRConfig,
    build_control_cost_matrix,
    build_state_cost_matrix,
)


def test_load_from_yaml(config_dir):
    config = ContactLQRConfig.from_yaml(str(config_dir / 'contact_lqr.yaml'))
    assert config.state_dimension == 4
    assert config.control_dimension == 2
    assert config.static_velocity_tolerance == 0.0
    np.testing.assert_allclose(config.state_cost_matrix, np.diag([10.0, 10.0, 1.0, 1.0]))
    np.testing.assert_allclose(config.control_cost_matrix, np.diag([0.1, 0.1]))


def test_optional_fields_default(tmp_path):
    path = tmp_path / 'lqr.yaml'
    path.write_text(yaml.safe_dump({
        'state_cost_diagonal': [1.0, 0.0],
        'control_cost_diagonal': [2.0],
    }))
    config = ContactLQRConfig.from_yaml(str(path))
    assert config.static_velocity_tolerance == 0.0
    assert config.state_cost_diagonal == (1.0, 0.0)


@pytest.mark.parametrize('kwargs', [
    {'state_cost_diagonal': (1.0, -1.0), 'control_cost_diagonal': (1.0,)},
    {'state_cost_diagonal': (1.0,), 'control_cost_diagonal': (0.0,)},
    {'state_cost_diagonal': (), 'control_cost_diagonal': (1.0,)},
    {'state_cost_diagonal': (1.0,), 'control_cost_diagonal': (float('nan'),)},
    {'state_cost_diagonal': (1.0,), 'control_cost_diagonal': (1.0,),
     'static_velocity_tolerance': -1e-3},
])
def test_invalid_config_rejected(kwargs):
    with pytest.raises(ValueError):
        ContactLQRConfig(**kwargs)


def test_config_is_frozen():
    config = ContactLQRConfig((1.0,), (1.0,))
    with pytest.raises(AttributeError):
        config.static_velocity_tolerance = 1.0


def test_cost_matrix_builders():
    np.testing.assert_allclose(build_state_cost_matrix([1.0, 0.0, 2.0], 3), np.diag([1.0, 0.0, 2.0]))
    np.testing.assert_allclose(build_control_cost_matrix([0.5], 1), [[0.5]])

    with pytest.raises(DimensionError):
        build_state_cost_matrix([1.0, 2.0], 3)
    with pytest.raises(DimensionError):
        build_control_cost_matrix([1.0, 2.0], 1)
    with pytest.raises(ValueError):
        build_control_cost_matrix([0.0], 1)


def test_mechanism_yaml_bounds(tmp_path):
    path = tmp_path / 'slider.yaml'
    path.write_text(yaml.safe_dump({
        'gravity_mps2': 0.0,
        'num_additional_states': 1,
        'bodies': [{'name': 'cart', 'mass_kg': 2.0}],
        'joints': [{
            'name': 'rail', 'joint_type': 'prismatic', 'parent': 'world', 'child': 'cart',
            'axis': [1.0, 0.0], 'effort_bounds': [0.0, 0.0],
        }],
    }))
    mechanism = Mechanism.from_yaml(str(path))
    assert mechanism.gravity_mps2 == 0.0
    assert mechanism.num_additional_states == 1
    assert not mechanism.find_joint('rail').is_motorized

    path.write_text(yaml.safe_dump({
        'bodies': [],
        'joints': [{'name': 'rail', 'joint_type': 'prismatic', 'parent': 'world', 'child': 'cart'}],
    }))
    with pytest.raises(ValueError):
        Mechanism.from_yaml(str(path))
