"""Per-vertex weight variables."""

from __future__ import annotations

import sympy as sp

from .partition import Partition, PointCell, check_cell
from .sos import SOSModel


def allocate_weights(model: SOSModel, process, partition: Partition, order: int) -> dict[int, sp.Expr]:
    """One decision object per vertex: a scalar for point cells, else a polynomial of degree <= order."""
    weights: dict[int, sp.Expr] = {}
    for v in partition.vertices:
        cell = check_cell(partition.cell(v))
        if isinstance(cell, PointCell):
            weights[v] = model.variable(f"w{v}")
        else:
            weights[v] = model.polynomial(f"w{v}_", process.x, order)
    return weights
