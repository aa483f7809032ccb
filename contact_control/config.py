"""Contact LQR configuration parameters.

Single source of truth for controller weights.
See config/contact_lqr.yaml for parameter values.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np
import yaml

from contact_control._internal.validation import (
    validate_cost_diagonal,
    validate_non_negative,
)


@dataclass(frozen=True)
class ContactLQRConfig:
    """Configuration parameters for contact-constrained LQR.

    All parameters immutable after construction (frozen=True).

    Attributes:
        state_cost_diagonal: Q matrix diagonal elements (nq + nv,)
        control_cost_diagonal: R matrix diagonal elements (nv,)
        static_velocity_tolerance: Largest velocity norm still treated as a
            static posture
    """
    state_cost_diagonal: Tuple[float, ...]
    control_cost_diagonal: Tuple[float, ...]
    static_velocity_tolerance: float = 0.0

    def __post_init__(self) -> None:
        """Validate parameters satisfy constraints."""
        validate_cost_diagonal(
            np.array(self.state_cost_diagonal, dtype=float),
            'state_cost_diagonal',
            strictly_positive=False,
        )
        validate_cost_diagonal(
            np.array(self.control_cost_diagonal, dtype=float),
            'control_cost_diagonal',
            strictly_positive=True,
        )
        validate_non_negative(self.static_velocity_tolerance, 'static_velocity_tolerance')

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'ContactLQRConfig':
        """Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML file containing LQR parameters

        Returns:
            ContactLQRConfig instance

        Raises:
            FileNotFoundError: If YAML file does not exist
            KeyError: If a required parameter is missing
            ValueError: If a parameter is invalid
        """
        with open(yaml_path, 'r') as file:
            config = yaml.safe_load(file)

        # Convert lists to tuples for immutability
        return cls(
            state_cost_diagonal=tuple(config['state_cost_diagonal']),
            control_cost_diagonal=tuple(config['control_cost_diagonal']),
            static_velocity_tolerance=config.get('static_velocity_tolerance', 0.0),
        )

    @property
    def state_dimension(self) -> int:
        return len(self.state_cost_diagonal)

    @property
    def control_dimension(self) -> int:
        return len(self.control_cost_diagonal)

    @property
    def state_cost_matrix(self) -> np.ndarray:
        """Diagonal state cost matrix Q."""
        return np.diag(self.state_cost_diagonal)

    @property
    def control_cost_matrix(self) -> np.ndarray:
        """Diagonal control cost matrix R."""
        return np.diag(self.control_cost_diagonal)
