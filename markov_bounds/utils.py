"""Shared utilities for the SOS bound computations.

This module provides common functions used across the package:
- Tolerance constants for floating point comparisons
- Graded monomial enumeration
- Polynomial helpers on top of sympy (degree, coefficients, substitution)
"""

from __future__ import annotations

from functools import reduce
from math import gcd
from typing import Sequence

import numpy as np
import sympy as sp
from numpy.typing import NDArray


# =============================================================================
# Tolerance constants for floating point comparisons
# =============================================================================
FLOAT_TOL = 1e-12
MEMBERSHIP_TOL = 1e-9


# =============================================================================
# Helper functions for integer operations
# =============================================================================
def _gcd_list(xs: list[int]) -> int:
    """Compute GCD of a list of integers."""
    xs = [abs(x) for x in xs if x != 0]
    return reduce(gcd, xs, 0) if xs else 1


def primitive_integer_vector(v: NDArray[np.int64]) -> NDArray[np.int64]:
    """Divide by the GCD and make the first nonzero entry positive."""
    v = np.asarray(v, dtype=np.int64)
    g = _gcd_list(v.tolist())
    v = v // g
    for x in v:
        if x != 0:
            if x < 0:
                v = -v
            break
    return v


# =============================================================================
# Monomials
# =============================================================================
def monomial_exponents(nvars: int, max_deg: int) -> list[tuple[int, ...]]:
    """All exponent tuples in `nvars` variables with total degree <= max_deg.

    Graded order: degree 0 first, so index 0 is always the constant monomial.
    """
    if max_deg < 0:
        return []
    if nvars == 0:
        return [()]

    def of_degree(n: int, d: int) -> list[tuple[int, ...]]:
        if n == 1:
            return [(d,)]
        out = []
        for first in range(d, -1, -1):
            for rest in of_degree(n - 1, d - first):
                out.append((first,) + rest)
        return out

    result: list[tuple[int, ...]] = []
    for d in range(max_deg + 1):
        result.extend(of_degree(nvars, d))
    return result


def monomials(x: Sequence[sp.Symbol], max_deg: int) -> list[sp.Expr]:
    """Monomials in `x` of total degree <= max_deg (graded order)."""
    return [
        sp.Mul(*[xi**e for xi, e in zip(x, exps)])
        for exps in monomial_exponents(len(x), max_deg)
    ]


# =============================================================================
# Polynomial helpers
# =============================================================================
def total_degree(expr: sp.Expr, x: Sequence[sp.Symbol]) -> int:
    """Total degree of `expr` in the variables `x` (0 for constants and zero)."""
    expr = sp.expand(sp.sympify(expr))
    if expr == 0:
        return 0
    return int(sp.Poly(expr, *x).total_degree())


def coefficients(expr: sp.Expr, x: Sequence[sp.Symbol]) -> dict[tuple[int, ...], sp.Expr]:
    """Map exponent tuple -> coefficient of `expr` as a polynomial in `x`.

    Coefficients may still contain other symbols (decision variables).
    """
    expr = sp.expand(sp.sympify(expr))
    if expr == 0:
        return {}
    poly = sp.Poly(expr, *x)
    return {tuple(m): c for m, c in poly.terms() if c != 0}


def constant_coefficient(expr: sp.Expr, x: Sequence[sp.Symbol]) -> sp.Expr:
    """Coefficient of the constant monomial of `expr` in `x`."""
    return sp.expand(sp.sympify(expr)).subs({xi: 0 for xi in x}, simultaneous=True)


def substitute(expr: sp.Expr, x: Sequence[sp.Symbol], values: Sequence) -> sp.Expr:
    """Simultaneously replace x[i] by values[i] and expand."""
    return sp.expand(sp.sympify(expr).subs(dict(zip(x, values)), simultaneous=True))


def falling_factorial(x: sp.Expr, n: int) -> sp.Expr:
    """x (x-1) ... (x-n+1); 1 for n == 0."""
    out = sp.Integer(1)
    for i in range(int(n)):
        out *= x - i
    return out


def as_float_vector(values: Sequence, n: int | None = None) -> NDArray[np.float64]:
    """Coerce a point to a float array, optionally checking its length."""
    arr = np.asarray([float(v) for v in values], dtype=float)
    if n is not None and arr.shape != (n,):
        raise ValueError(f"expected a point with {n} coordinates, got shape {arr.shape}")
    return arr
