"""Sparse affine expressions over optimization decision variables."""

from dataclasses import dataclass
from typing import Any, Tuple

import numpy as np


@dataclass(frozen=True)
class AffineExpression:
    """constant + sum(coefficient * variables[index] for index, coefficient in terms)

    Attributes:
        variables: Decision variables the term indices refer to
        terms: (index, coefficient) pairs; omitted indices have no term
        constant: Constant offset
    """
    variables: Tuple[Any, ...]
    terms: Tuple[Tuple[int, float], ...]
    constant: float

    @property
    def num_terms(self) -> int:
        return len(self.terms)

    def coefficient(self, index: int) -> float:
        for term_index, coefficient in self.terms:
            if term_index == index:
                return coefficient
        return 0.0

    def to_casadi(self):
        """Expression in the variables' own symbolic type."""
        expression = self.constant
        for index, coefficient in self.terms:
            expression = expression + coefficient * self.variables[index]
        return expression

    def evaluate(self, values) -> float:
        """Value when the variables take the numeric `values`."""
        values = np.asarray(values, dtype=float).reshape(-1)
        return self.constant + sum(
            coefficient * values[index] for index, coefficient in self.terms
        )
