"""Infeasibility diagnosis for blend models."""

from __future__ import annotations

from typing import Any

from milkblend.optimizer.models import (
    BlendModel,
    ConstraintSense,
    LinearConstraint,
    SolveStatus,
)
from milkblend.optimizer.solver import solve_model

DEVIATION_TOLERANCE = 1e-7


def _under(name: str) -> str:
    return f"under_{name}"


def _over(name: str) -> str:
    return f"over_{name}"


def relax_model(model: BlendModel) -> BlendModel:
    """Add deviation variables to every constraint and minimise their sum.

    For a constraint row a'x <sense> b the relaxed row is
    a'x + under - over <sense> b, where under is only added to EQ/GE rows
    and over only to EQ/LE rows. The relaxed model is always feasible.
    """
    variables = list(model.variables)
    constraints = []
    objective: dict[str, float] = {}

    for constraint in model.constraints:
        coefficients = dict(constraint.coefficients)
        if constraint.sense in (ConstraintSense.EQ, ConstraintSense.GE):
            coefficients[_under(constraint.name)] = 1.0
            variables.append(_under(constraint.name))
            objective[_under(constraint.name)] = 1.0
        if constraint.sense in (ConstraintSense.EQ, ConstraintSense.LE):
            coefficients[_over(constraint.name)] = -1.0
            variables.append(_over(constraint.name))
            objective[_over(constraint.name)] = 1.0
        constraints.append(
            LinearConstraint(
                name=constraint.name,
                coefficients=coefficients,
                sense=constraint.sense,
                rhs=constraint.rhs,
            )
        )

    return BlendModel(
        name=f"{model.name}[relaxed]",
        variables=tuple(variables),
        constraints=tuple(constraints),
        objective=objective,
    )


def diagnose_infeasibility(model: BlendModel, method: str = "highs") -> dict[str, Any]:
    """Analyze why a blend model is infeasible.

    Finds the blend closest to satisfying every constraint (smallest total
    deviation) and reports which constraints it still misses. The blend is
    returned for reference only; it does not satisfy the original model.

    Args:
        model: The model that failed
        method: linprog method

    Returns:
        Diagnosis dict with the closest blend, violations and suggestions
    """
    relaxed = solve_model(relax_model(model), method=method)
    diagnosis: dict[str, Any] = {
        "model": model.name,
        "feasible": False,
        "closest_blend": {},
        "total_deviation": None,
        "violations": [],
        "suggestions": [],
    }

    if relaxed.status is not SolveStatus.OPTIMAL:
        # Only possible if the objective of the relaxation is unbounded,
        # which non-negative deviations rule out, or the solver failed
        diagnosis["suggestions"].append(f"Relaxed model could not be solved: {relaxed.message}")
        return diagnosis

    blend = {name: relaxed.values[name] for name in model.variables}
    diagnosis["closest_blend"] = blend
    diagnosis["total_deviation"] = relaxed.objective_value

    for constraint in model.constraints:
        under = relaxed.values.get(_under(constraint.name), 0.0)
        over = relaxed.values.get(_over(constraint.name), 0.0)
        if under <= DEVIATION_TOLERANCE and over <= DEVIATION_TOLERANCE:
            continue
        achieved = constraint.evaluate(blend)
        diagnosis["violations"].append({
            "constraint": constraint.name,
            "sense": constraint.sense.value,
            "target": constraint.rhs,
            "achieved": achieved,
            "shift": achieved - constraint.rhs,
        })
        gap = abs(achieved - constraint.rhs)
        if achieved < constraint.rhs:
            diagnosis["suggestions"].append(
                f"{constraint.name}: closest blend is {gap:.4g} short of {constraint.rhs:.4g}; "
                f"add a supplement that provides {constraint.name} or relax the target"
            )
        else:
            diagnosis["suggestions"].append(
                f"{constraint.name}: closest blend is {gap:.4g} over {constraint.rhs:.4g}; "
                f"dilute further or relax the target"
            )

    diagnosis["feasible"] = not diagnosis["violations"]
    return diagnosis
