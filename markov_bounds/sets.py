"""Basic semialgebraic sets.

A basic semialgebraic set is described by polynomial inequalities and
equalities in the state variables:

    X = { x : g_i(x) >= 0 for all i,  h_j(x) == 0 for all j }

Sets are used for the state space of a process, for partition cells and for
side information. They are immutable; set operations return new sets.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
import sympy as sp
from scipy.optimize import linprog

from .utils import MEMBERSHIP_TOL, as_float_vector, coefficients, total_degree


def _as_exprs(polys) -> tuple[sp.Expr, ...]:
    return tuple(sp.expand(sp.sympify(p)) for p in polys)


@dataclass(frozen=True)
class BasicSemialgebraicSet:
    inequalities: tuple[sp.Expr, ...] = ()
    equalities: tuple[sp.Expr, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "inequalities", _as_exprs(self.inequalities))
        object.__setattr__(self, "equalities", _as_exprs(self.equalities))

    @property
    def is_full_space(self) -> bool:
        return not self.inequalities and not self.equalities

    def intersect(self, other: BasicSemialgebraicSet) -> BasicSemialgebraicSet:
        return BasicSemialgebraicSet(
            inequalities=self.inequalities + other.inequalities,
            equalities=self.equalities + other.equalities,
        )

    def __and__(self, other: BasicSemialgebraicSet) -> BasicSemialgebraicSet:
        return self.intersect(other)

    def compose(self, x: Sequence[sp.Symbol], h: Sequence[sp.Expr]) -> BasicSemialgebraicSet:
        """Preimage { x : h(x) in self } under the polynomial map x -> h(x)."""
        sub = dict(zip(x, h))
        return BasicSemialgebraicSet(
            inequalities=[g.subs(sub, simultaneous=True) for g in self.inequalities],
            equalities=[e.subs(sub, simultaneous=True) for e in self.equalities],
        )

    def contains(self, x: Sequence[sp.Symbol], point, tol: float = MEMBERSHIP_TOL) -> bool:
        pt = as_float_vector(point, len(x))
        sub = dict(zip(x, pt))
        for g in self.inequalities:
            if float(g.subs(sub)) < -tol:
                return False
        for e in self.equalities:
            if abs(float(e.subs(sub))) > tol:
                return False
        return True

    def simplified(self) -> BasicSemialgebraicSet:
        """Merge inequality pairs g >= 0, -g >= 0 into g == 0 and drop duplicates.

        Landing sets of lattice jumps between neighbouring cells are typically
        thin slabs {c <= x_i <= c}; stating them as equalities lets the SOS
        certificate use a free multiplier instead of two SOS multipliers.
        """
        ineqs: list[sp.Expr] = []
        eqs: list[sp.Expr] = list(self.equalities)
        used = [False] * len(self.inequalities)
        for i, g in enumerate(self.inequalities):
            if used[i]:
                continue
            if g.is_number:
                # trivially true constraints carry no information
                if float(g) >= 0:
                    used[i] = True
                    continue
            for j in range(i + 1, len(self.inequalities)):
                if not used[j] and sp.expand(g + self.inequalities[j]) == 0:
                    used[i] = used[j] = True
                    eqs.append(g)
                    break
            if not used[i]:
                used[i] = True
                if not any(sp.expand(g - q) == 0 for q in ineqs):
                    ineqs.append(g)
        return BasicSemialgebraicSet(inequalities=ineqs, equalities=eqs)

    def is_affine(self, x: Sequence[sp.Symbol]) -> bool:
        return all(total_degree(p, x) <= 1 for p in self.inequalities + self.equalities)

    def is_empty(self, x: Sequence[sp.Symbol]) -> bool:
        """Detect emptiness of affine constraint systems by an LP feasibility check.

        For sets with nonlinear constraints emptiness is not decided and False
        is returned.
        """
        if not self.is_affine(x):
            return False
        n = len(x)
        rows_ub: list[np.ndarray] = []
        b_ub: list[float] = []
        rows_eq: list[np.ndarray] = []
        b_eq: list[float] = []
        for polys, rows, b, sign in (
            (self.inequalities, rows_ub, b_ub, -1.0),
            (self.equalities, rows_eq, b_eq, 1.0),
        ):
            for p in polys:
                a = np.zeros(n)
                c0 = 0.0
                for m, c in coefficients(p, x).items():
                    if sum(m) == 0:
                        c0 = float(c)
                    else:
                        a[m.index(1)] = float(c)
                # g(x) = a.x + c0 >= 0  ->  -a.x <= c0
                rows.append(sign * a)
                b.append(c0 if sign < 0 else -c0)

        if not rows_ub and not rows_eq:
            return False

        res = linprog(
            np.zeros(n),
            A_ub=np.vstack(rows_ub) if rows_ub else None,
            b_ub=np.array(b_ub) if b_ub else None,
            A_eq=np.vstack(rows_eq) if rows_eq else None,
            b_eq=np.array(b_eq) if b_eq else None,
            bounds=(None, None),
            method="highs",
        )
        # status 2: infeasible
        return res.status == 2

    def degree(self, x: Sequence[sp.Symbol]) -> int:
        return max((total_degree(p, x) for p in self.inequalities + self.equalities), default=0)


def full_space() -> BasicSemialgebraicSet:
    return BasicSemialgebraicSet()


def nonnegative_orthant(x: Sequence[sp.Symbol]) -> BasicSemialgebraicSet:
    """{ x : x_i >= 0 }, the natural state space of molecular counts."""
    return BasicSemialgebraicSet(inequalities=list(x))


def box(x: Sequence[sp.Symbol], lower: Sequence[float | None], upper: Sequence[float | None]) -> BasicSemialgebraicSet:
    """Axis-aligned box; None entries leave that side open."""
    ineqs: list[sp.Expr] = []
    for xi, lo, hi in zip(x, lower, upper):
        if lo is not None:
            ineqs.append(xi - sp.nsimplify(lo))
        if hi is not None:
            ineqs.append(sp.nsimplify(hi) - xi)
    return BasicSemialgebraicSet(inequalities=ineqs)
