"""Data models for blend models and their solutions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Sequence


class ConstraintSense(Enum):
    """Direction of a linear constraint."""

    LE = "<="
    EQ = "=="
    GE = ">="


class SolveStatus(Enum):
    """Outcome of a solver call."""

    OPTIMAL = "optimal"
    INFEASIBLE = "infeasible"
    UNBOUNDED = "unbounded"
    ERROR = "error"


@dataclass(frozen=True)
class LinearConstraint:
    """A single linear constraint: sum(coef * var) <sense> rhs.

    Variables missing from coefficients have a zero coefficient.
    """

    name: str
    coefficients: Mapping[str, float]
    sense: ConstraintSense
    rhs: float

    def evaluate(self, values: Mapping[str, float]) -> float:
        """Left-hand side value for the given variable assignment."""
        return sum(coef * values.get(var, 0.0) for var, coef in self.coefficients.items())

    def slack(self, values: Mapping[str, float]) -> float:
        """Signed distance from the bound (positive means room to spare)."""
        lhs = self.evaluate(values)
        if self.sense is ConstraintSense.LE:
            return self.rhs - lhs
        if self.sense is ConstraintSense.GE:
            return lhs - self.rhs
        return -abs(lhs - self.rhs)

    def is_satisfied(self, values: Mapping[str, float], tolerance: float = 1e-6) -> bool:
        return self.slack(values) >= -tolerance


@dataclass(frozen=True)
class BlendModel:
    """An immutable LP instance.

    All variables are continuous with a lower bound of zero. The objective
    is always minimised. A non-empty tie_break is minimised second, among
    the solutions that are optimal for the objective.
    """

    name: str
    variables: tuple[str, ...]
    constraints: tuple[LinearConstraint, ...]
    objective: Mapping[str, float] = field(default_factory=dict)
    tie_break: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.variables:
            raise InvalidModelError(f"Model '{self.name}' has no variables")
        if len(set(self.variables)) != len(self.variables):
            raise InvalidModelError(f"Model '{self.name}' has duplicate variables")

        known = set(self.variables)
        for constraint in self.constraints:
            unknown = set(constraint.coefficients) - known
            if unknown:
                raise InvalidModelError(
                    f"Constraint '{constraint.name}' references unknown variables: "
                    f"{', '.join(sorted(unknown))}"
                )
        unknown = set(self.objective) - known
        if unknown:
            raise InvalidModelError(
                f"Objective references unknown variables: {', '.join(sorted(unknown))}"
            )
        unknown = set(self.tie_break) - known
        if unknown:
            raise InvalidModelError(
                f"Tie-break references unknown variables: {', '.join(sorted(unknown))}"
            )

    def constraint(self, name: str) -> LinearConstraint:
        for constraint in self.constraints:
            if constraint.name == name:
                return constraint
        raise KeyError(f"Model '{self.name}' has no constraint '{name}'")


@dataclass
class BlendSolution:
    """Result of solving a BlendModel."""

    model_name: str
    status: SolveStatus
    message: str
    values: dict[str, float]  # empty unless status is OPTIMAL
    objective_value: Optional[float] = None
    solver_info: dict = field(default_factory=dict)  # iterations, time, etc.

    @property
    def success(self) -> bool:
        return self.status is SolveStatus.OPTIMAL

    def value(self, variable: str) -> float:
        return self.values[variable]

    def row(self, variables: Sequence[str]) -> list[float]:
        """Values in the given variable order."""
        return [self.values[v] for v in variables]


# Custom exceptions


class BlendError(Exception):
    """Base exception for milkblend errors."""

    pass


class InvalidModelError(BlendError):
    """Raised when a model references unknown variables or is empty."""

    pass


class SolveFailedError(BlendError):
    """Raised when a solve does not reach an optimal solution.

    index and r identify the sweep point, when there is one.
    """

    def __init__(
        self,
        message: str,
        status: SolveStatus,
        index: Optional[int] = None,
        r: Optional[float] = None,
    ):
        super().__init__(message)
        self.status = status
        self.index = index
        self.r = r


class InfeasibleBlendError(SolveFailedError):
    """Raised when no blend satisfies the constraints."""

    pass


class UnboundedBlendError(SolveFailedError):
    """Raised when the objective is unbounded below."""

    pass


class SolverError(SolveFailedError):
    """Raised on iteration limits or numerical trouble in the solver."""

    pass
