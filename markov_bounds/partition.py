"""State-space partitions.

A partition is a graph whose vertices are integer ids, each carrying exactly
one cell descriptor in its `cell` node attribute. Edges mark pairs of cells
whose weights must be coupled.

Cell kinds:
- PointCell: a single state; the weight is a scalar.
- RegionCell: one basic semialgebraic set; the weight is a polynomial.
- RegionGroupCell: a union of basic semialgebraic sets sharing one
  polynomial weight; one certificate is issued per member set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence, Union

import cvxpy as cp
import networkx as nx
import numpy as np
import sympy as sp

from .sets import BasicSemialgebraicSet
from .sos import Certificate
from .utils import MEMBERSHIP_TOL, as_float_vector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PointCell:
    point: tuple[float, ...]

    def __post_init__(self):
        object.__setattr__(self, "point", tuple(float(p) for p in self.point))

    def contains(self, x: Sequence[sp.Symbol], point, tol: float = MEMBERSHIP_TOL) -> bool:
        return bool(np.allclose(as_float_vector(point, len(x)), self.point, atol=tol, rtol=0.0))

    def mass(self, handle: cp.Constraint) -> float:
        dual = handle.dual_value
        if dual is None:
            raise RuntimeError("constraint has no dual value; optimize the model first")
        return float(np.asarray(dual).reshape(-1)[0])


@dataclass(frozen=True)
class RegionCell:
    set: BasicSemialgebraicSet

    @property
    def sets(self) -> tuple[BasicSemialgebraicSet, ...]:
        return (self.set,)

    def contains(self, x: Sequence[sp.Symbol], point, tol: float = MEMBERSHIP_TOL) -> bool:
        return self.set.contains(x, point, tol)

    def mass(self, handle: Certificate) -> float:
        return handle.mass()


@dataclass(frozen=True)
class RegionGroupCell:
    sets: tuple[BasicSemialgebraicSet, ...]

    def __post_init__(self):
        object.__setattr__(self, "sets", tuple(self.sets))
        if not self.sets:
            raise ValueError("a region group needs at least one set")

    def contains(self, x: Sequence[sp.Symbol], point, tol: float = MEMBERSHIP_TOL) -> bool:
        return any(X.contains(x, point, tol) for X in self.sets)

    def mass(self, handles: Sequence[Certificate]) -> float:
        return float(sum(h.mass() for h in handles))


Cell = Union[PointCell, RegionCell, RegionGroupCell]
CELL_TYPES = (PointCell, RegionCell, RegionGroupCell)


def check_cell(cell) -> Cell:
    if not isinstance(cell, CELL_TYPES):
        raise TypeError(
            f"malformed cell descriptor of type {type(cell).__name__}; "
            "expected PointCell, RegionCell or RegionGroupCell"
        )
    return cell


def cell_sets(cell: Cell) -> tuple[BasicSemialgebraicSet, ...]:
    """Member sets of a region or region group (empty for points)."""
    if isinstance(cell, PointCell):
        return ()
    return check_cell(cell).sets


class Partition:
    """Read-only view of a cell graph."""

    def __init__(self, graph: nx.Graph):
        for v, data in graph.nodes(data=True):
            if "cell" not in data:
                raise ValueError(f"vertex {v} has no cell attribute")
            check_cell(data["cell"])
        self.graph = nx.freeze(graph.copy())

    @classmethod
    def from_cells(
        cls,
        cells: Sequence[Cell],
        edges: Iterable[tuple[int, int]] | None = None,
    ) -> Partition:
        """Partition with vertices 0..len(cells)-1; all pairs coupled unless edges are given."""
        g = nx.Graph()
        for i, cell in enumerate(cells):
            g.add_node(i, cell=check_cell(cell))
        if edges is None:
            g.add_edges_from((i, j) for i in range(len(cells)) for j in range(i + 1, len(cells)))
        else:
            g.add_edges_from(edges)
        return cls(g)

    @property
    def vertices(self) -> list[int]:
        return list(self.graph.nodes)

    @property
    def edges(self) -> list[tuple[int, int]]:
        return list(self.graph.edges)

    def __len__(self) -> int:
        return self.graph.number_of_nodes()

    def cell(self, v: int) -> Cell:
        return self.graph.nodes[v]["cell"]

    def neighbors(self, v: int) -> list[int]:
        return list(self.graph.neighbors(v))

    def locate(
        self,
        x: Sequence[sp.Symbol],
        point,
        candidates: Iterable[int] | None = None,
    ) -> int | None:
        """Vertex whose cell contains `point`; point cells take precedence."""
        candidates = list(self.vertices if candidates is None else candidates)
        for v in candidates:
            if isinstance(self.cell(v), PointCell) and self.cell(v).contains(x, point):
                return v
        for v in candidates:
            cell = self.cell(v)
            if not isinstance(cell, PointCell) and cell.contains(x, point):
                return v
        return None


def trivial_partition(process) -> Partition:
    """One region covering the whole state space."""
    return Partition.from_cells([RegionCell(process.state_space)])


def split_state_space(process, X: BasicSemialgebraicSet, margin: float | None = None) -> Partition:
    """Two-cell partition: vertex 0 is X within the state space, vertex 1 its complement.

    The complement of {g_i >= 0} is covered by the sets {-g_i - margin >= 0};
    for lattice processes a margin of 1 separates the two cells while keeping
    every lattice point in exactly one of them.
    """
    if X.equalities:
        raise ValueError("split_state_space only supports targets described by inequalities")
    if not X.inequalities:
        raise ValueError("the target set is the full space; nothing to split")
    margin = process.boundary_margin if margin is None else margin
    inside = process.state_space & X
    outside = tuple(
        process.state_space & BasicSemialgebraicSet(inequalities=[-g - sp.nsimplify(margin)])
        for g in X.inequalities
    )
    logger.debug("split state space into target and %d complement sets", len(outside))
    return Partition.from_cells([RegionCell(inside), RegionGroupCell(outside)], edges=[(0, 1)])
