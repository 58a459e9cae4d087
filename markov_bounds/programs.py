"""SOS programs bounding stationary statistics of Markov processes.

Every template follows the same pattern:
1) allocate one weight per partition vertex
2) impose A W - target >= 0 on every cell and couple adjacent cells
3) maximize an objective built from the free scalar s

Because E_pi[A W] = 0 for every stationary measure pi, step 2 certifies
E_pi[target] <= 0, which each template turns into its bound. The masses
reported by the measure reconstructions are the duals of the constant
coefficient rows of the per-cell certificates; they sum to one because s
is free.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Sequence

import sympy as sp

from .bound import Bound, cell_masses, make_bound
from .config import DEFAULT_CONFIG, RelaxationConfig
from .constraints import add_coupling_constraints, add_stationarity_constraints
from .partition import Partition, split_state_space, trivial_partition
from .process import MarkovProcess
from .sets import BasicSemialgebraicSet
from .sos import SolverSpec, SOSModel
from .utils import constant_coefficient
from .weights import allocate_weights

logger = logging.getLogger(__name__)


def _impose(
    model: SOSModel,
    process: MarkovProcess,
    partition: Partition,
    weights: dict[int, sp.Expr],
    target_of: Callable[[int], sp.Expr],
) -> dict[int, object]:
    handles = {}
    for v in partition.vertices:
        handles[v] = add_stationarity_constraints(
            model, process, v, partition, partition.cell(v), weights, target_of(v)
        )
    for e in partition.edges:
        add_coupling_constraints(model, process, e, partition, weights)
    logger.debug(
        "imposed stationarity on %d vertices and coupling on %d edges",
        len(partition.vertices),
        len(partition.edges),
    )
    return handles


def _setup(process, order, solver, partition, config):
    partition = partition if partition is not None else trivial_partition(process)
    model = SOSModel(solver, config.inner_approx)
    weights = allocate_weights(model, process, partition, order)
    return model, weights, partition


def _moment_terms(model: SOSModel, process: MarkovProcess, side_infos: BasicSemialgebraicSet):
    """Lagrangian terms for E[g] >= 0 and E[h] == 0.

    Returns (slack, offset) with slack + offset = sum mu g + sum lam h; the
    non-constant part goes into the stationarity target, the constant part
    into the objective.
    """
    slack, offset = sp.Integer(0), sp.Integer(0)
    ineqs, eqs = side_infos.inequalities, side_infos.equalities
    mu = model.variables("mu", len(ineqs), nonneg=True) if ineqs else []
    lam = model.variables("lam", len(eqs)) if eqs else []
    for m, g in zip(list(mu) + list(lam), ineqs + eqs):
        g0 = constant_coefficient(g, process.x)
        slack += m * (g - g0)
        offset += m * g0
    return sp.expand(slack), sp.expand(offset)


# =============================================================================
# Expectations
# =============================================================================
def stationary_pop(
    process: MarkovProcess,
    p: sp.Expr,
    order: int,
    solver: str | SolverSpec = "CLARABEL",
    partition: Partition | None = None,
    *,
    config: RelaxationConfig = DEFAULT_CONFIG,
) -> tuple[SOSModel, dict[int, sp.Expr], Partition]:
    """Unsolved program whose optimal value is a lower bound on E[p]."""
    model, weights, partition = _setup(process, order, solver, partition, config)
    s = model.variable("s")
    _impose(model, process, partition, weights, lambda v: s - p)
    model.maximize(s)
    return model, weights, partition


def stationary_polynomial(
    process: MarkovProcess,
    p: sp.Expr,
    order: int,
    solver: str | SolverSpec = "CLARABEL",
    partition: Partition | None = None,
    *,
    config: RelaxationConfig = DEFAULT_CONFIG,
) -> Bound:
    """Lower bound on E[p] under any stationary distribution."""
    model, weights, partition = stationary_pop(process, p, order, solver, partition, config=config)
    model.optimize()
    return make_bound(model.objective_value, model, partition, weights)


def stationary_mean(
    process: MarkovProcess,
    p: sp.Expr,
    order: int,
    solver: str | SolverSpec = "CLARABEL",
    partition: Partition | None = None,
    *,
    config: RelaxationConfig = DEFAULT_CONFIG,
) -> tuple[Bound, Bound]:
    """(lower, upper) bounds on E[p]; the upper bound is minus the lower bound on E[-p]."""
    lb = stationary_polynomial(process, p, order, solver, partition, config=config)
    ub = stationary_polynomial(process, -sp.sympify(p), order, solver, partition, config=config).negated()
    return lb, ub


# =============================================================================
# Second moments
# =============================================================================
def stationary_variance(
    process: MarkovProcess,
    p: sp.Expr,
    order: int,
    solver: str | SolverSpec = "CLARABEL",
    partition: Partition | None = None,
    *,
    config: RelaxationConfig = DEFAULT_CONFIG,
) -> Bound:
    """Upper bound on Var[p].

    With S = [[1, a], [a, b]] PSD (b >= a^2) the certificate gives
    s + E[p^2] + 2 a E[p] <= 0, hence s - b <= -(E[p^2] - E[p]^2).
    """
    p = sp.sympify(p)
    model, weights, partition = _setup(process, order, solver, partition, config)
    s = model.variable("s")
    S = model.psd_matrix("S", 2)
    model.add_equal([S[0, 0]], [1])
    _impose(model, process, partition, weights, lambda v: s + p**2 + 2 * S[0, 1] * p)
    model.maximize(s - S[1, 1])
    model.optimize()
    return make_bound(-model.objective_value, model, partition, weights)


def stationary_covariance_ellipsoid(
    process: MarkovProcess,
    v: Sequence[sp.Expr],
    order: int,
    solver: str | SolverSpec = "CLARABEL",
    partition: Partition | None = None,
    *,
    config: RelaxationConfig = DEFAULT_CONFIG,
) -> Bound:
    """Upper bound on det Cov[v] (the squared volume of the covariance ellipsoid up to a constant).

    P = S[:n, :n] plays the role of an inverse covariance. The block matrix
    U = [[P, Z^T], [Z, D]] with Z upper triangular and diag(D) = diag(Z) = r
    gives log det P >= sum log r_i, and the dual exponential cone
    constraints give -q_i <= 1 + log r_i. Together with
    tr(P C) - log det(P C) >= n this bounds the objective by -log det C.
    Needs a solver with exponential cone support.
    """
    v = [sp.sympify(e) for e in v]
    n = len(v)
    if n == 0:
        raise ValueError("need at least one observable")
    model, weights, partition = _setup(process, order, solver, partition, config)
    s = model.variable("s")
    S = model.psd_matrix("S", n + 1)
    U = model.psd_matrix("U", 2 * n)
    r = model.variables("r", n)
    q = model.variables("q", n)

    upper = [(i, j) for i in range(n) for j in range(i, n)]
    model.add_equal([S[i, j] for i, j in upper], [U[i, j] for i, j in upper])
    below = [(n + i, j) for i in range(n) for j in range(i)]
    if below:
        model.add_equal([U[i, j] for i, j in below], [0] * len(below))
    model.add_equal([U[n + i, n + i] for i in range(n)], [U[n + i, i] for i in range(n)])
    model.add_equal(r, [U[n + i, i] for i in range(n)])
    model.add_dual_exp_cone(-1.0, q, r)

    quad = sum(S[i, j] * v[i] * v[j] for i in range(n) for j in range(n))
    lin = 2 * sum(S[n, j] * v[j] for j in range(n))
    target = sp.expand(s + quad + lin)
    _impose(model, process, partition, weights, lambda _: target)
    model.maximize(s - S[n, n] - sum(q))
    model.optimize()
    return make_bound(math.exp(-model.objective_value), model, partition, weights)


# =============================================================================
# Probability mass
# =============================================================================
def stationary_indicator(
    process: MarkovProcess,
    targets: Sequence[int],
    order: int,
    partition: Partition,
    solver: str | SolverSpec = "CLARABEL",
    *,
    sense: int = 1,
    config: RelaxationConfig = DEFAULT_CONFIG,
) -> tuple[SOSModel, dict[int, sp.Expr]]:
    """Unsolved indicator program; sense=+1 bounds the mass of `targets` from above, -1 from below."""
    if sense not in (1, -1):
        raise ValueError("sense must be +1 or -1")
    targets = set(targets)
    model, weights, partition = _setup(process, order, solver, partition, config)
    s = model.variable("s")
    _impose(model, process, partition, weights, lambda v: s + sense * int(v in targets))
    model.maximize(s)
    return model, weights


def stationary_probability_mass(
    process: MarkovProcess,
    target: BasicSemialgebraicSet | int | Sequence[int],
    order: int,
    solver: str | SolverSpec = "CLARABEL",
    partition: Partition | None = None,
    *,
    config: RelaxationConfig = DEFAULT_CONFIG,
) -> tuple[Bound, Bound]:
    """(lower, upper) bounds on the stationary probability of a set or of partition vertices.

    A set target is turned into vertex 0 of `split_state_space`; for
    sharper results pass a refined partition and the ids of the vertices
    that make up the target instead.
    """
    if isinstance(target, BasicSemialgebraicSet):
        if partition is not None:
            raise ValueError("pass either a target set or a partition with target vertices, not both")
        partition = split_state_space(process, target)
        vertices = [0]
    else:
        if partition is None:
            raise ValueError("target vertices require a partition")
        vertices = [target] if isinstance(target, int) else list(target)
        unknown = set(vertices) - set(partition.vertices)
        if unknown:
            raise ValueError(f"unknown partition vertices {sorted(unknown)}")

    model, weights = stationary_indicator(process, vertices, order, partition, solver, sense=1, config=config)
    model.optimize()
    ub = make_bound(-model.objective_value, model, partition, weights)

    model, weights = stationary_indicator(process, vertices, order, partition, solver, sense=-1, config=config)
    model.optimize()
    lb = make_bound(model.objective_value, model, partition, weights)
    return lb, ub


# =============================================================================
# Measure reconstruction
# =============================================================================
def approximate_stationary_measure(
    process: MarkovProcess,
    v: sp.Expr,
    order: int,
    solver: str | SolverSpec = "CLARABEL",
    partition: Partition | None = None,
    *,
    config: RelaxationConfig = DEFAULT_CONFIG,
) -> tuple[Bound, list[float]]:
    """Cell masses of a stationary measure minimizing E[v], plus the lower bound on E[v].

    `v` regularizes the reconstruction; config.side_infos adds moment
    information on the measure.
    """
    model, weights, partition = _setup(process, order, solver, partition, config)
    s = model.variable("s")
    slack, offset = _moment_terms(model, process, config.side_infos)
    target = sp.expand(s - v + slack)
    handles = _impose(model, process, partition, weights, lambda _: target)
    model.maximize(s - offset)
    model.optimize()
    bound = make_bound(model.objective_value, model, partition, weights)
    return bound, cell_masses(partition, handles)


def max_entropy_measure(
    process: MarkovProcess,
    order: int,
    solver: str | SolverSpec = "CLARABEL",
    partition: Partition | None = None,
    *,
    config: RelaxationConfig = DEFAULT_CONFIG,
) -> tuple[Bound, list[float]]:
    """Cell masses of the stationary measure with maximal entropy over the partition cells.

    The returned bound is an upper bound on the entropy -sum p_v log p_v of
    the cell masses of any stationary measure. Needs a solver with
    exponential cone support.
    """
    model, weights, partition = _setup(process, order, solver, partition, config)
    vertices = partition.vertices
    u = dict(zip(vertices, model.variables("u", len(vertices))))
    q = dict(zip(vertices, model.variables("q", len(vertices))))
    s = model.variable("s")
    slack, offset = _moment_terms(model, process, config.side_infos)
    handles = _impose(model, process, partition, weights, lambda k: sp.expand(s + q[k] + slack))
    model.add_dual_exp_cone(-1.0, [q[k] for k in vertices], [u[k] for k in vertices])
    model.maximize(-sum(u.values()) + s - offset)
    model.optimize()
    bound = make_bound(-model.objective_value, model, partition, weights)
    return bound, cell_masses(partition, handles)
