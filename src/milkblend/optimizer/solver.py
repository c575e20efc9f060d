"""LP solver for blend models."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import numpy as np
from scipy.optimize import linprog

from milkblend.optimizer.models import (
    BlendModel,
    BlendSolution,
    ConstraintSense,
    InfeasibleBlendError,
    LinearConstraint,
    SolveFailedError,
    SolverError,
    SolveStatus,
    UnboundedBlendError,
)

logger = logging.getLogger(__name__)

# Relative room left on the primary objective during the tie-break solve
OBJECTIVE_SLACK = 1e-9

# scipy.optimize.linprog status codes
_LINPROG_STATUS: dict[int, SolveStatus] = {
    0: SolveStatus.OPTIMAL,
    1: SolveStatus.ERROR,  # iteration limit
    2: SolveStatus.INFEASIBLE,
    3: SolveStatus.UNBOUNDED,
    4: SolveStatus.ERROR,  # numerical difficulties
}

_STATUS_ERRORS: dict[SolveStatus, type[SolveFailedError]] = {
    SolveStatus.INFEASIBLE: InfeasibleBlendError,
    SolveStatus.UNBOUNDED: UnboundedBlendError,
    SolveStatus.ERROR: SolverError,
}


def solve_lp(
    costs: np.ndarray,
    A_ub: Optional[np.ndarray],
    b_ub: Optional[np.ndarray],
    A_eq: Optional[np.ndarray],
    b_eq: Optional[np.ndarray],
    bounds: list[tuple[float, Optional[float]]],
    method: str = "highs",
) -> dict[str, Any]:
    """Solve a linear program using scipy.optimize.linprog.

    Objective: min c'x
    Subject to:
        A_ub @ x <= b_ub
        A_eq @ x == b_eq
        lb <= x <= ub

    Args:
        costs: Objective coefficients, shape (n_vars,)
        A_ub: Inequality matrix, shape (n_ub, n_vars), or None
        b_ub: Inequality bounds, shape (n_ub,), or None
        A_eq: Equality matrix, shape (n_eq, n_vars), or None
        b_eq: Equality right-hand sides, shape (n_eq,), or None
        bounds: List of (min, max) for each variable
        method: linprog method

    Returns:
        Dict with solution info
    """
    start_time = time.time()

    result = linprog(
        c=costs,
        A_ub=A_ub,
        b_ub=b_ub,
        A_eq=A_eq,
        b_eq=b_eq,
        bounds=bounds,
        method=method,
    )

    elapsed = time.time() - start_time

    return {
        "success": result.success,
        "status": _LINPROG_STATUS.get(result.status, SolveStatus.ERROR),
        "x": result.x if result.success else None,
        "fun": float(result.fun) if result.success else None,
        "message": result.message,
        "iterations": getattr(result, "nit", None),
        "elapsed_seconds": elapsed,
    }


def model_to_arrays(model: BlendModel) -> dict[str, Any]:
    """Lower a BlendModel to the matrices linprog expects.

    GE rows are negated into LE rows.

    Returns:
        Dict with costs, A_ub, b_ub, A_eq, b_eq and bounds
    """
    index = {name: j for j, name in enumerate(model.variables)}
    n_vars = len(model.variables)

    costs = np.zeros(n_vars)
    for name, coef in model.objective.items():
        costs[index[name]] = coef

    ub_rows: list[np.ndarray] = []
    ub_rhs: list[float] = []
    eq_rows: list[np.ndarray] = []
    eq_rhs: list[float] = []

    for constraint in model.constraints:
        row = np.zeros(n_vars)
        for name, coef in constraint.coefficients.items():
            row[index[name]] = coef

        if constraint.sense is ConstraintSense.EQ:
            eq_rows.append(row)
            eq_rhs.append(constraint.rhs)
        elif constraint.sense is ConstraintSense.LE:
            ub_rows.append(row)
            ub_rhs.append(constraint.rhs)
        else:
            ub_rows.append(-row)
            ub_rhs.append(-constraint.rhs)

    return {
        "costs": costs,
        "A_ub": np.array(ub_rows) if ub_rows else None,
        "b_ub": np.array(ub_rhs) if ub_rhs else None,
        "A_eq": np.array(eq_rows) if eq_rows else None,
        "b_eq": np.array(eq_rhs) if eq_rhs else None,
        "bounds": [(0.0, None)] * n_vars,
    }


def _tie_break_model(model: BlendModel, optimum: float) -> BlendModel:
    """Pin the primary objective at its optimum and minimise the tie-break."""
    bound = LinearConstraint(
        name="objective_bound",
        coefficients=dict(model.objective),
        sense=ConstraintSense.LE,
        rhs=optimum + OBJECTIVE_SLACK * max(1.0, abs(optimum)),
    )
    return BlendModel(
        name=f"{model.name}[tie-break]",
        variables=model.variables,
        constraints=(*model.constraints, bound),
        objective=dict(model.tie_break),
    )


def solve_model(
    model: BlendModel,
    method: str = "highs",
    tolerance: float = 1e-6,
) -> BlendSolution:
    """Solve a blend model.

    The model is not modified. Values within tolerance below zero are
    reported as exactly zero. If the model has a tie-break objective, a
    second LP picks the optimal solution that minimises it.

    Args:
        model: Model to solve
        method: linprog method
        tolerance: Clamp threshold for tiny negative values

    Returns:
        BlendSolution; check its status before using the values
    """
    arrays = model_to_arrays(model)
    logger.debug(
        "Solving %s: %d variables, %d constraints",
        model.name,
        len(model.variables),
        len(model.constraints),
    )

    lp = solve_lp(method=method, **arrays)
    status = lp["status"]
    objective_value = lp["fun"]

    if status is SolveStatus.OPTIMAL and model.tie_break:
        tie_break = _tie_break_model(model, objective_value)
        second = solve_lp(method=method, **model_to_arrays(tie_break))
        if second["status"] is SolveStatus.OPTIMAL:
            second["elapsed_seconds"] += lp["elapsed_seconds"]
            lp = second
        else:
            logger.warning(
                "%s: tie-break solve was %s, keeping first solution",
                model.name,
                second["status"].value,
            )

    values: dict[str, float] = {}
    if status is SolveStatus.OPTIMAL:
        for name, x in zip(model.variables, lp["x"]):
            x = float(x)
            if -tolerance < x < 0:
                x = 0.0
            values[name] = x
    else:
        logger.warning("%s: %s (%s)", model.name, status.value, lp["message"])

    return BlendSolution(
        model_name=model.name,
        status=status,
        message=lp["message"],
        values=values,
        objective_value=objective_value,
        solver_info={
            "solver": method,
            "iterations": lp["iterations"],
            "elapsed_seconds": lp["elapsed_seconds"],
        },
    )


def require_optimal(
    solution: BlendSolution,
    index: Optional[int] = None,
    r: Optional[float] = None,
) -> BlendSolution:
    """Return the solution if optimal, otherwise raise.

    Raises:
        InfeasibleBlendError: If the model is infeasible
        UnboundedBlendError: If the objective is unbounded
        SolverError: On any other solver failure
    """
    if solution.success:
        return solution

    where = solution.model_name
    if index is not None:
        where = f"sweep point {index} (r={r:.6g})" if r is not None else f"sweep point {index}"
    error_cls = _STATUS_ERRORS[solution.status]
    raise error_cls(
        f"{where}: {solution.status.value}: {solution.message}",
        status=solution.status,
        index=index,
        r=r,
    )
