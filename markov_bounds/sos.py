"""SOS model builder on top of cvxpy.

The model keeps two views of every decision variable:
- a cvxpy variable (what the conic solver sees)
- sympy Dummy symbols mirroring its entries (what the generator acts on)

Polynomials whose coefficients are affine in the symbols are turned into
cvxpy expressions coefficient by coefficient (`SOSModel.linear`). Polynomial
nonnegativity on a basic semialgebraic set K = {g_i >= 0, h_j == 0} is
certified Putinar-style:

    f = sigma_0 + sum_i sigma_i g_i + sum_j tau_j h_j + c,   c >= 0

with sigma_i = m_i^T Q_i m_i, Q_i in the configured inner approximation of
the PSD cone, tau_j free polynomials. All certificate degrees are bounded by
the smallest even number >= max(deg f, deg g_i, deg h_j).

The constant-monomial row of the coefficient match is stated as the
inequality `c >= 0` instead of an equality, so its dual value is the
(non-negative) mass the dual measure puts on the certified set.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Sequence

import cvxpy as cp
import numpy as np
import scipy.sparse as sps
import sympy as sp

from .sets import BasicSemialgebraicSet, full_space
from .utils import coefficients, monomial_exponents, monomials

logger = logging.getLogger(__name__)


class InnerApprox(Enum):
    """Cone used for the Gram matrices of SOS certificates."""

    SOS = "sos"      # positive semidefinite
    SDSOS = "sdsos"  # scaled diagonally dominant (second-order cones)
    DSOS = "dsos"    # diagonally dominant (linear)


# cone families each cvxpy solver handles; "psd", "soc", "exp"
KNOWN_SOLVER_CONES: dict[str, frozenset[str]] = {
    "CLARABEL": frozenset({"psd", "soc", "exp"}),
    "SCS": frozenset({"psd", "soc", "exp"}),
    "MOSEK": frozenset({"psd", "soc", "exp"}),
    "COPT": frozenset({"psd", "soc", "exp"}),
    "CVXOPT": frozenset({"psd", "soc"}),
    "ECOS": frozenset({"soc", "exp"}),
}

ACCEPTED_STATUSES = (cp.OPTIMAL, cp.OPTIMAL_INACCURATE)


class SolveStatusError(RuntimeError):
    """The solver terminated without an (approximately) optimal solution."""

    def __init__(self, status: str, message: str | None = None):
        self.status = status
        super().__init__(message or f"solve finished with status {status!r}")


class SolverCapabilityError(ValueError):
    """The program needs a cone the chosen solver does not declare."""


@dataclass(frozen=True)
class SolverSpec:
    """A cvxpy solver name, the cone families it supports and solve options."""

    name: str = "CLARABEL"
    cones: frozenset[str] = frozenset({"psd", "soc", "exp"})
    options: Mapping[str, Any] = field(default_factory=dict)


def as_solver(solver: str | SolverSpec) -> SolverSpec:
    if isinstance(solver, SolverSpec):
        return solver
    name = str(solver).upper()
    cones = KNOWN_SOLVER_CONES.get(name)
    if cones is None:
        logger.warning(
            "unknown solver %s: assuming psd and soc support only; "
            "pass a SolverSpec to declare exponential cone support",
            name,
        )
        cones = frozenset({"psd", "soc"})
    return SolverSpec(name=name, cones=cones)


def _flat(var: cp.Expression) -> cp.Expression:
    """Column-major vectorisation (matches the flat indices used below)."""
    return cp.reshape(var, (var.size,), order="F")


@dataclass
class Certificate:
    """Handle of one SOS nonnegativity certificate."""

    constant: cp.Constraint
    coefficients: cp.Constraint | None
    grams: list[cp.Expression]

    def mass(self) -> float:
        dual = self.constant.dual_value
        if dual is None:
            raise RuntimeError("certificate has no dual value; optimize the model first")
        return float(np.asarray(dual).reshape(-1)[0])


class SOSModel:
    def __init__(self, solver: str | SolverSpec = "CLARABEL", inner_approx: InnerApprox = InnerApprox.SOS):
        self.solver = as_solver(solver)
        self.inner_approx = InnerApprox(inner_approx)
        self.constraints: list[cp.Constraint] = []
        self.cones_used: set[str] = set()
        self.problem: cp.Problem | None = None
        self._variables: list[cp.Variable] = []
        self._index: dict[sp.Symbol, tuple[int, int]] = {}
        self._objective: cp.Expression | None = None

    # ------------------------------------------------------------------
    # decision variables
    # ------------------------------------------------------------------
    def _register(self, var: cp.Variable, entries: Sequence[tuple[sp.Symbol, int]]) -> None:
        slot = len(self._variables)
        self._variables.append(var)
        for sym, k in entries:
            self._index[sym] = (slot, k)

    def variable(self, name: str = "v", *, nonneg: bool = False) -> sp.Symbol:
        sym = sp.Dummy(name)
        self._register(cp.Variable(nonneg=nonneg, name=name), [(sym, 0)])
        return sym

    def variables(self, name: str, n: int, *, nonneg: bool = False) -> list[sp.Symbol]:
        syms = [sp.Dummy(f"{name}{i}") for i in range(n)]
        self._register(cp.Variable(n, nonneg=nonneg, name=name), [(s, i) for i, s in enumerate(syms)])
        return syms

    def psd_matrix(self, name: str, n: int) -> sp.ImmutableMatrix:
        """Symmetric n x n matrix of symbols constrained to the PSD cone."""
        var = cp.Variable((n, n), PSD=True, name=name)
        entries = {}
        for j in range(n):
            for i in range(j + 1):
                entries[i, j] = sp.Dummy(f"{name}_{i}{j}")
        self._register(var, [(s, i + j * n) for (i, j), s in entries.items()])
        self.cones_used.add("psd")
        return sp.ImmutableMatrix(n, n, lambda i, j: entries[min(i, j), max(i, j)])

    def polynomial(self, name: str, x: Sequence[sp.Symbol], order: int) -> sp.Expr:
        """Decision polynomial in x of total degree <= order."""
        monos = monomials(x, order)
        coeffs = self.variables(name, len(monos))
        return sp.Add(*[c * m for c, m in zip(coeffs, monos)])

    def is_decision(self, sym: sp.Basic) -> bool:
        return sym in self._index

    # ------------------------------------------------------------------
    # sympy -> cvxpy
    # ------------------------------------------------------------------
    def linear(self, exprs: Sequence) -> cp.Expression:
        """Stack affine sympy expressions in the decision symbols into a cvxpy vector."""
        exprs = [sp.expand(sp.sympify(e)) for e in exprs]
        n = len(exprs)
        const = np.zeros(n)
        triplets: dict[int, tuple[list[int], list[int], list[float]]] = {}
        for i, e in enumerate(exprs):
            for term in sp.Add.make_args(e):
                if term == 0:
                    continue
                decisions = [s for s in term.free_symbols if s in self._index]
                coeff, rest = term.as_independent(*decisions, as_Add=False)
                if coeff.free_symbols:
                    raise ValueError(f"term {term} has a coefficient that is not a number")
                if rest == 1:
                    const[i] += float(coeff)
                    continue
                key = self._index.get(rest)
                if key is None:
                    raise ValueError(f"term {term} is not affine in the decision variables of this model")
                slot, k = key
                rows, cols, vals = triplets.setdefault(slot, ([], [], []))
                rows.append(i)
                cols.append(k)
                vals.append(float(coeff))

        out = cp.Constant(const)
        for slot, (rows, cols, vals) in triplets.items():
            var = self._variables[slot]
            A = sps.csr_matrix((vals, (rows, cols)), shape=(n, var.size))
            out = out + A @ _flat(var)
        return out

    # ------------------------------------------------------------------
    # constraints
    # ------------------------------------------------------------------
    def _gram(self, nb: int) -> cp.Expression:
        """vec(Q) of an nb x nb Gram matrix in the configured inner approximation."""
        if nb == 1:
            return cp.Variable(1, nonneg=True)
        if self.inner_approx is InnerApprox.SOS:
            self.cones_used.add("psd")
            return _flat(cp.Variable((nb, nb), PSD=True))
        if self.inner_approx is InnerApprox.DSOS:
            Q = cp.Variable((nb, nb), symmetric=True)
            self.constraints.append(2 * cp.diag(Q) >= cp.sum(cp.abs(Q), axis=1))
            return _flat(Q)

        # SDSOS: Q is a sum of PSD matrices each supported on one 2x2 principal block
        pairs = [(i, j) for i in range(nb) for j in range(i + 1, nb)]
        P = len(pairs)
        a, b, c = cp.Variable(P), cp.Variable(P), cp.Variable(P)
        self.constraints.append(cp.SOC(a + c, cp.vstack([a - c, 2 * b]), axis=0))
        self.cones_used.add("soc")
        idx = np.arange(P)
        ii = np.array([i for i, _ in pairs])
        jj = np.array([j for _, j in pairs])
        shape = (nb * nb, P)
        Ma = sps.csr_matrix((np.ones(P), (ii + ii * nb, idx)), shape=shape)
        Mc = sps.csr_matrix((np.ones(P), (jj + jj * nb, idx)), shape=shape)
        Mb = sps.csr_matrix(
            (np.ones(2 * P), (np.concatenate([ii + jj * nb, jj + ii * nb]), np.concatenate([idx, idx]))),
            shape=shape,
        )
        return Ma @ a + Mb @ b + Mc @ c

    def add_nonneg(
        self,
        f: sp.Expr,
        x: Sequence[sp.Symbol],
        domain: BasicSemialgebraicSet | None = None,
    ) -> Certificate:
        """Certify f(x) >= 0 for all x in domain."""
        x = tuple(x)
        domain = domain if domain is not None else full_space()
        f_coeffs = coefficients(f, x)
        deg = max([sum(m) for m in f_coeffs] + [domain.degree(x), 0])
        top = 2 * ((deg + 1) // 2)

        index: dict[tuple[int, ...], int] = {}

        def row(m: tuple[int, ...]) -> int:
            return index.setdefault(m, len(index))

        row((0,) * len(x))
        parts: list[tuple[list[int], list[int], list[float], int, cp.Expression]] = []
        grams: list[cp.Expression] = []

        for g in (sp.Integer(1),) + domain.inequalities:
            g_coeffs = {m: float(c) for m, c in coefficients(g, x).items()}
            if not g_coeffs:
                continue
            k = (top - max(sum(m) for m in g_coeffs)) // 2
            if k < 0:
                continue
            basis = monomial_exponents(len(x), k)
            nb = len(basis)
            rows, cols, vals = [], [], []
            for i, bi in enumerate(basis):
                for j, bj in enumerate(basis):
                    for m, gc in g_coeffs.items():
                        alpha = tuple(p + q + r for p, q, r in zip(bi, bj, m))
                        rows.append(row(alpha))
                        cols.append(i + j * nb)
                        vals.append(gc)
            gram = self._gram(nb)
            grams.append(gram)
            parts.append((rows, cols, vals, nb * nb, gram))

        for h in domain.equalities:
            h_coeffs = {m: float(c) for m, c in coefficients(h, x).items()}
            if not h_coeffs:
                continue
            d = top - max(sum(m) for m in h_coeffs)
            if d < 0:
                continue
            basis = monomial_exponents(len(x), d)
            tau = cp.Variable(len(basis))
            rows, cols, vals = [], [], []
            for i, bi in enumerate(basis):
                for m, hc in h_coeffs.items():
                    rows.append(row(tuple(p + q for p, q in zip(bi, m))))
                    cols.append(i)
                    vals.append(hc)
            parts.append((rows, cols, vals, len(basis), tau))

        for m in f_coeffs:
            row(m)
        M = len(index)

        rhs = None
        for rows, cols, vals, ncols, expr in parts:
            term = sps.csr_matrix((vals, (rows, cols)), shape=(M, ncols)) @ expr
            rhs = term if rhs is None else rhs + term

        lhs_exprs: list[sp.Expr] = [sp.Integer(0)] * M
        for m, c in f_coeffs.items():
            lhs_exprs[index[m]] = c
        lhs = self.linear(lhs_exprs)

        constant = lhs[0] - rhs[0] >= 0
        self.constraints.append(constant)
        coeff_match = None
        if M > 1:
            coeff_match = lhs[1:] == rhs[1:]
            self.constraints.append(coeff_match)
        logger.debug(
            "SOS certificate: degree %d, %d monomials, %d multipliers", top, M, len(parts)
        )
        return Certificate(constant=constant, coefficients=coeff_match, grams=grams)

    def add_zero(
        self,
        f: sp.Expr,
        x: Sequence[sp.Symbol],
        domain: BasicSemialgebraicSet | None = None,
    ) -> list[Certificate] | cp.Constraint:
        """Certify f(x) == 0 for all x in domain."""
        if domain is None or domain.is_full_space:
            f_coeffs = coefficients(f, x)
            if not f_coeffs:
                return []
            con = self.linear(list(f_coeffs.values())) == 0
            self.constraints.append(con)
            return con
        return [self.add_nonneg(f, x, domain), self.add_nonneg(-f, x, domain)]

    def add_scalar_nonneg(self, expr: sp.Expr) -> cp.Constraint:
        con = self.linear([expr])[0] >= 0
        self.constraints.append(con)
        return con

    def add_equal(self, lhs: Sequence, rhs: Sequence) -> cp.Constraint:
        con = self.linear([sp.sympify(a) - sp.sympify(b) for a, b in zip(lhs, rhs)]) == 0
        self.constraints.append(con)
        return con

    def add_dual_exp_cone(self, u: float, v: Sequence, w: Sequence) -> cp.Constraint:
        """(u, v_k, w_k) in the dual exponential cone for every k, with constant u < 0.

        For u < 0 membership reads -u exp(v/u) <= e w, which is the primal
        exponential cone constraint (u - v, -u, w).
        """
        if u >= 0:
            raise ValueError("the first dual exponential cone argument must be a negative constant")
        n = len(v)
        con = cp.constraints.ExpCone(u - self.linear(v), np.full(n, -float(u)), self.linear(w))
        self.constraints.append(con)
        self.cones_used.add("exp")
        return con

    # ------------------------------------------------------------------
    # objective, solve, read back
    # ------------------------------------------------------------------
    def maximize(self, expr: sp.Expr) -> None:
        self._objective = self.linear([expr])[0]

    def optimize(self) -> str:
        missing = self.cones_used - set(self.solver.cones)
        if missing:
            raise SolverCapabilityError(
                f"solver {self.solver.name} does not support the {', '.join(sorted(missing))} "
                "cone(s) required by this program"
            )
        if self._objective is None:
            raise ValueError("no objective has been set")

        self.problem = cp.Problem(cp.Maximize(self._objective), self.constraints)
        t0 = time.perf_counter()
        self.problem.solve(solver=self.solver.name, **dict(self.solver.options))
        status = self.problem.status
        logger.info(
            "%s finished with status %s, objective %s (%d constraints, %.2fs)",
            self.solver.name,
            status,
            self.problem.value,
            len(self.constraints),
            time.perf_counter() - t0,
        )
        if status not in ACCEPTED_STATUSES:
            raise SolveStatusError(status)
        return status

    @property
    def status(self) -> str | None:
        return None if self.problem is None else self.problem.status

    @property
    def objective_value(self) -> float:
        if self.problem is None:
            raise RuntimeError("model has not been optimized")
        return float(self.problem.value)

    def value(self, expr: sp.Expr) -> sp.Expr | float:
        """Substitute optimal values for all decision symbols in expr."""
        expr = sp.sympify(expr)
        sub = {}
        for sym in expr.free_symbols:
            key = self._index.get(sym)
            if key is None:
                continue
            slot, k = key
            val = self._variables[slot].value
            if val is None:
                raise RuntimeError("model has not been optimized")
            sub[sym] = float(np.asarray(val).reshape(-1, order="F")[k])
        out = sp.expand(expr.xreplace(sub))
        return float(out) if out.is_number else out
