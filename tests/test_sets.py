from __future__ import annotations

import sympy as sp

from markov_bounds.sets import BasicSemialgebraicSet, box, full_space, nonnegative_orthant

x, y = sp.symbols("x y")


def test_full_space_and_intersection():
    assert full_space().is_full_space
    X = nonnegative_orthant([x, y]) & BasicSemialgebraicSet(equalities=[x - y])
    assert not X.is_full_space
    assert X.inequalities == (x, y)
    assert X.equalities == (x - y,)


def test_contains_with_tolerance():
    X = box([x], [0], [3])
    assert X.contains([x], [0])
    assert X.contains([x], [3 + 1e-12])
    assert not X.contains([x], [3.5])
    assert not X.contains([x], [-1])


def test_compose_is_preimage():
    X = box([x], [0], [3])
    # { x : x + 1 in [0, 3] } = [-1, 2]
    pre = X.compose([x], [x + 1])
    assert pre.contains([x], [2])
    assert pre.contains([x], [-1])
    assert not pre.contains([x], [2.5])


def test_simplified_merges_opposite_inequalities():
    X = BasicSemialgebraicSet(inequalities=[x, 3 - x, x - 3, x, sp.Integer(1)])
    S = X.simplified()
    assert S.equalities == (3 - x,)
    assert S.inequalities == (x,)


def test_is_empty_for_affine_sets():
    assert BasicSemialgebraicSet(inequalities=[x - 4, 2 - x]).is_empty([x])
    assert not BasicSemialgebraicSet(inequalities=[x - 2, 2 - x]).is_empty([x])
    assert BasicSemialgebraicSet(inequalities=[x], equalities=[x + 1]).is_empty([x])
    assert not full_space().is_empty([x])
    # nonlinear: undecided, reported as not empty
    assert not BasicSemialgebraicSet(inequalities=[-x**2 - 1]).is_empty([x])


def test_degree_and_affinity():
    X = BasicSemialgebraicSet(inequalities=[x * y - 1], equalities=[x])
    assert X.degree([x, y]) == 2
    assert not X.is_affine([x, y])
    assert box([x, y], [0, None], [None, 1]).is_affine([x, y])
