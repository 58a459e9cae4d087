"""Public API.

Every function accepts:
- a MarkovProcess, a ReactionProcess / LangevinProcess, or a bare
  ReactionNetwork (with optional initial condition S0 for closed networks,
  state scales or auto_scaling for numerical conditioning)
- observables as sympy expressions; for reaction networks species names or
  expressions in the species symbols are accepted too
- the relaxation order, a solver (cvxpy solver name or SolverSpec) and an
  optional partition of the state space

Optional:
- inner_approx: override of config.inner_approx
- config: RelaxationConfig (inner approximation, side information)
"""

from __future__ import annotations

from dataclasses import replace
from typing import Mapping, Sequence

import sympy as sp

from . import programs
from .bound import Bound
from .config import DEFAULT_CONFIG, RelaxationConfig
from .partition import Partition
from .reaction_process import System, polynomialize_expr, resolve
from .sets import BasicSemialgebraicSet
from .sos import InnerApprox, SolverSpec

Solver = str | SolverSpec
InitialCondition = Mapping[str, float] | Sequence[float] | None


def _observable(expr, species_to_state: Mapping[str, sp.Expr]) -> sp.Expr:
    if species_to_state:
        return polynomialize_expr(expr, species_to_state)
    if isinstance(expr, str):
        raise ValueError(f"species name {expr!r} given for a process without species")
    return sp.sympify(expr)


def _set(X: BasicSemialgebraicSet, species_to_state) -> BasicSemialgebraicSet:
    if not species_to_state:
        return X
    return BasicSemialgebraicSet(
        inequalities=[polynomialize_expr(g, species_to_state) for g in X.inequalities],
        equalities=[polynomialize_expr(h, species_to_state) for h in X.equalities],
    )


def _config(config: RelaxationConfig, inner_approx: InnerApprox | None, species_to_state) -> RelaxationConfig:
    if inner_approx is not None:
        config = replace(config, inner_approx=InnerApprox(inner_approx))
    if species_to_state and not config.side_infos.is_full_space:
        config = replace(config, side_infos=_set(config.side_infos, species_to_state))
    return config


def stationary_polynomial(
    system: System,
    p,
    order: int,
    solver: Solver = "CLARABEL",
    partition: Partition | None = None,
    *,
    S0: InitialCondition = None,
    scales: Sequence[float] | None = None,
    auto_scaling: bool = False,
    inner_approx: InnerApprox | None = None,
    config: RelaxationConfig = DEFAULT_CONFIG,
) -> Bound:
    """Lower bound on the stationary expectation of `p`."""
    process, s2s = resolve(system, S0, scales=scales, auto_scaling=auto_scaling)
    return programs.stationary_polynomial(
        process, _observable(p, s2s), order, solver, partition, config=_config(config, inner_approx, s2s)
    )


def stationary_mean(
    system: System,
    p,
    order: int,
    solver: Solver = "CLARABEL",
    partition: Partition | None = None,
    *,
    S0: InitialCondition = None,
    scales: Sequence[float] | None = None,
    auto_scaling: bool = False,
    inner_approx: InnerApprox | None = None,
    config: RelaxationConfig = DEFAULT_CONFIG,
) -> tuple[Bound, Bound]:
    """(lower, upper) bounds on the stationary mean of `p` (e.g. a species name)."""
    process, s2s = resolve(system, S0, scales=scales, auto_scaling=auto_scaling)
    return programs.stationary_mean(
        process, _observable(p, s2s), order, solver, partition, config=_config(config, inner_approx, s2s)
    )


def stationary_variance(
    system: System,
    p,
    order: int,
    solver: Solver = "CLARABEL",
    partition: Partition | None = None,
    *,
    S0: InitialCondition = None,
    scales: Sequence[float] | None = None,
    auto_scaling: bool = False,
    inner_approx: InnerApprox | None = None,
    config: RelaxationConfig = DEFAULT_CONFIG,
) -> Bound:
    """Upper bound on the stationary variance of `p`."""
    process, s2s = resolve(system, S0, scales=scales, auto_scaling=auto_scaling)
    return programs.stationary_variance(
        process, _observable(p, s2s), order, solver, partition, config=_config(config, inner_approx, s2s)
    )


def stationary_covariance_ellipsoid(
    system: System,
    v: Sequence,
    order: int,
    solver: Solver = "CLARABEL",
    partition: Partition | None = None,
    *,
    S0: InitialCondition = None,
    scales: Sequence[float] | None = None,
    auto_scaling: bool = False,
    inner_approx: InnerApprox | None = None,
    config: RelaxationConfig = DEFAULT_CONFIG,
) -> Bound:
    """Upper bound on the generalized variance det Cov[v]."""
    process, s2s = resolve(system, S0, scales=scales, auto_scaling=auto_scaling)
    return programs.stationary_covariance_ellipsoid(
        process,
        [_observable(e, s2s) for e in v],
        order,
        solver,
        partition,
        config=_config(config, inner_approx, s2s),
    )


def stationary_probability_mass(
    system: System,
    target: BasicSemialgebraicSet | int | Sequence[int],
    order: int,
    solver: Solver = "CLARABEL",
    partition: Partition | None = None,
    *,
    S0: InitialCondition = None,
    scales: Sequence[float] | None = None,
    auto_scaling: bool = False,
    inner_approx: InnerApprox | None = None,
    config: RelaxationConfig = DEFAULT_CONFIG,
) -> tuple[Bound, Bound]:
    """(lower, upper) bounds on the stationary probability of a set or of partition vertices."""
    process, s2s = resolve(system, S0, scales=scales, auto_scaling=auto_scaling)
    if isinstance(target, BasicSemialgebraicSet):
        target = _set(target, s2s)
    return programs.stationary_probability_mass(
        process, target, order, solver, partition, config=_config(config, inner_approx, s2s)
    )


def approximate_stationary_measure(
    system: System,
    v,
    order: int,
    solver: Solver = "CLARABEL",
    partition: Partition | None = None,
    *,
    S0: InitialCondition = None,
    scales: Sequence[float] | None = None,
    auto_scaling: bool = False,
    inner_approx: InnerApprox | None = None,
    config: RelaxationConfig = DEFAULT_CONFIG,
) -> tuple[Bound, list[float]]:
    """Approximate cell masses of a stationary measure, regularized by minimizing E[v]."""
    process, s2s = resolve(system, S0, scales=scales, auto_scaling=auto_scaling)
    return programs.approximate_stationary_measure(
        process, _observable(v, s2s), order, solver, partition, config=_config(config, inner_approx, s2s)
    )


def max_entropy_measure(
    system: System,
    order: int,
    solver: Solver = "CLARABEL",
    partition: Partition | None = None,
    *,
    S0: InitialCondition = None,
    scales: Sequence[float] | None = None,
    auto_scaling: bool = False,
    inner_approx: InnerApprox | None = None,
    config: RelaxationConfig = DEFAULT_CONFIG,
) -> tuple[Bound, list[float]]:
    """Cell masses of the maximum-entropy stationary measure on the partition."""
    process, s2s = resolve(system, S0, scales=scales, auto_scaling=auto_scaling)
    return programs.max_entropy_measure(
        process, order, solver, partition, config=_config(config, inner_approx, s2s)
    )
