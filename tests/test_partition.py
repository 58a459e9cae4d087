from __future__ import annotations

import networkx as nx
import pytest
import sympy as sp

from markov_bounds.partition import (
    Partition,
    PointCell,
    RegionCell,
    RegionGroupCell,
    check_cell,
    split_state_space,
    trivial_partition,
)
from markov_bounds.process import JumpProcess
from markov_bounds.sets import BasicSemialgebraicSet, box, nonnegative_orthant
from markov_bounds.sos import SOSModel
from markov_bounds.weights import allocate_weights

x = sp.Symbol("x")


def birth_death():
    return JumpProcess.from_shifts([x], [2, x], [[1], [-1]], nonnegative_orthant([x]))


def test_malformed_cell_descriptor_fails_fast():
    with pytest.raises(TypeError):
        check_cell(box([x], [0], [1]))
    with pytest.raises(TypeError):
        Partition.from_cells([RegionCell(box([x], [0], [1])), "x >= 2"])

    g = nx.Graph()
    g.add_node(0)
    with pytest.raises(ValueError):
        Partition(g)


def test_from_cells_defaults_to_complete_graph():
    cells = [PointCell([0]), PointCell([1]), RegionCell(box([x], [2], [None]))]
    P = Partition.from_cells(cells)
    assert P.vertices == [0, 1, 2]
    assert len(P.edges) == 3
    assert sorted(P.neighbors(0)) == [1, 2]

    chain = Partition.from_cells(cells, edges=[(0, 1), (1, 2)])
    assert chain.neighbors(0) == [1]


def test_locate_prefers_points():
    cells = [RegionCell(box([x], [0], [None])), PointCell([3])]
    P = Partition.from_cells(cells)
    assert P.locate([x], [3]) == 1
    assert P.locate([x], [5]) == 0
    assert P.locate([x], [-1]) is None
    assert P.locate([x], [3], candidates=[0]) == 0


def test_region_group_membership():
    cell = RegionGroupCell([box([x], [None], [0]), box([x], [5], [None])])
    assert cell.contains([x], [-2])
    assert cell.contains([x], [6])
    assert not cell.contains([x], [2])
    with pytest.raises(ValueError):
        RegionGroupCell([])


def test_trivial_partition_covers_state_space():
    P = trivial_partition(birth_death())
    assert len(P) == 1
    assert P.cell(0) == RegionCell(nonnegative_orthant([x]))
    assert P.edges == []


def test_split_state_space_uses_lattice_margin():
    P = split_state_space(birth_death(), BasicSemialgebraicSet(inequalities=[2 - x]))
    inside, outside = P.cell(0), P.cell(1)
    assert isinstance(inside, RegionCell)
    assert isinstance(outside, RegionGroupCell)
    assert inside.contains([x], [2]) and not inside.contains([x], [3])
    assert outside.contains([x], [3]) and not outside.contains([x], [2])
    assert P.edges == [(0, 1)]

    # margin 0 for continuous state spaces: the two cells share the boundary
    P0 = split_state_space(birth_death(), BasicSemialgebraicSet(inequalities=[2 - x]), margin=0)
    assert P0.cell(1).contains([x], [2])


def test_split_state_space_rejects_equalities():
    with pytest.raises(ValueError):
        split_state_space(birth_death(), BasicSemialgebraicSet(equalities=[x - 2]))


@pytest.mark.parametrize("order", [0, 2, 6])
def test_singletons_always_get_scalar_weights(order):
    P = Partition.from_cells([PointCell([0]), RegionCell(box([x], [1], [None]))])
    model = SOSModel()
    w = allocate_weights(model, birth_death(), P, order)
    assert set(w) == {0, 1}
    assert w[0].is_Symbol and model.is_decision(w[0])
    assert sp.Poly(w[1], x).degree() <= order
    assert len(sp.Poly(w[1], x).monoms()) == order + 1
