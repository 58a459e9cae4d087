"""Stationarity and coupling constraints on a partition.

With W the piecewise weight (W = w_v on cell v), every stationary measure
pi satisfies E_pi[A W] = 0. Requiring A W - target >= 0 on every cell
therefore certifies E_pi[target] <= 0. Coupling constraints make the
piecewise weight consistent, so that the generator computed from w_v inside
cell v equals the generator of W.
"""

from __future__ import annotations

import logging

import cvxpy as cp
import numpy as np
import sympy as sp

from .partition import Cell, Partition, PointCell, RegionCell, cell_sets, check_cell
from .process import JumpProcess, MarkovProcess
from .sos import Certificate, SOSModel
from .utils import FLOAT_TOL, substitute

logger = logging.getLogger(__name__)


def add_stationarity_constraints(
    model: SOSModel,
    process: MarkovProcess,
    vertex: int,
    partition: Partition,
    cell: Cell,
    weights: dict[int, sp.Expr],
    target: sp.Expr,
) -> cp.Constraint | Certificate | list[Certificate]:
    """A W - target >= 0 on the cell of `vertex`.

    Returns the handle whose dual is the mass of the cell: a scalar
    constraint for points, a certificate for regions and one certificate per
    member set for region groups.
    """
    cell = check_cell(cell)
    if isinstance(cell, PointCell):
        return _point_stationarity(model, process, vertex, partition, cell, weights, target)
    expr = sp.expand(process.generator(weights[vertex]) - target)
    if isinstance(cell, RegionCell):
        return model.add_nonneg(expr, process.x, cell.set)
    return [model.add_nonneg(expr, process.x, X) for X in cell.sets]


def _point_stationarity(model, process, vertex, partition, cell, weights, target):
    if not isinstance(process, JumpProcess):
        raise ValueError("point cells are only supported for jump processes")
    x0 = np.asarray(cell.point)
    w_v = weights[vertex]
    candidates = [vertex] + partition.neighbors(vertex)
    expr = -substitute(target, process.x, x0)
    for r in range(process.n_jumps):
        a = process.propensity_at(r, x0)
        if abs(a) <= FLOAT_TOL:
            continue
        y = process.jump_target(r, x0)
        if np.allclose(y, x0):
            continue
        u = partition.locate(process.x, y, candidates)
        if u is None:
            raise ValueError(
                f"jump {r} takes point {tuple(x0)} of vertex {vertex} to {tuple(y)}, "
                "which lies outside the vertex and its neighbours"
            )
        w_u = weights[u]
        if not isinstance(partition.cell(u), PointCell):
            w_u = substitute(w_u, process.x, y)
        expr += a * (w_u - w_v)
    return model.add_scalar_nonneg(expr)


def add_coupling_constraints(
    model: SOSModel,
    process: MarkovProcess,
    edge: tuple[int, int],
    partition: Partition,
    weights: dict[int, sp.Expr],
) -> list:
    u, v = edge
    cu, cv = check_cell(partition.cell(u)), check_cell(partition.cell(v))
    if isinstance(process, JumpProcess):
        handles = []
        for src, dst in ((u, v), (v, u)):
            handles.extend(_jump_coupling(model, process, src, dst, partition, weights))
        return handles

    if isinstance(cu, PointCell) or isinstance(cv, PointCell):
        raise ValueError("point cells are only supported for jump processes")
    handles = []
    for Xu in cu.sets:
        for Xv in cv.sets:
            for expr, domain in process.coupling_conditions(weights[u], weights[v], Xu, Xv):
                handles.append(model.add_zero(expr, process.x, domain))
    return handles


def _jump_coupling(model, process: JumpProcess, src, dst, partition, weights) -> list:
    c_src, c_dst = partition.cell(src), partition.cell(dst)
    if isinstance(c_src, PointCell):
        # jumps out of a point are resolved exactly by its stationarity constraint
        return []
    if isinstance(c_dst, PointCell):
        return _region_to_point(model, process, src, dst, partition, weights)

    handles = []
    for Xs in cell_sets(c_src):
        for Xd in cell_sets(c_dst):
            for expr, domain in process.coupling_conditions(weights[src], weights[dst], Xs, Xd):
                handles.append(model.add_zero(expr, process.x, domain))
    logger.debug("coupled vertex %d to %d with %d identities", src, dst, len(handles))
    return handles


def _region_to_point(model, process: JumpProcess, src, dst, partition, weights) -> list:
    y0 = np.asarray(partition.cell(dst).point)
    for r in range(process.n_jumps):
        nu = process.shift(r)
        if nu is None:
            raise ValueError("coupling a region to a point cell requires translation jumps")
        x_pre = y0 - nu
        if not partition.cell(src).contains(process.x, x_pre):
            continue
        if abs(process.propensity_at(r, x_pre)) <= FLOAT_TOL:
            continue
        w_at_point = substitute(weights[src], process.x, y0)
        return [model.add_equal([w_at_point], [weights[dst]])]
    return []
