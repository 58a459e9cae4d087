"""Conservation laws (left nullspace) of a reaction network.

Conservation laws are integer vectors c with c^T S = 0; the total c . n is
then invariant along every trajectory. Closed networks use them to
eliminate species and to bound molecular counts.

NOTE: exact arithmetic via sympy; intended for small/moderate networks.
"""

from __future__ import annotations

from fractions import Fraction
from math import gcd

import numpy as np
import sympy as sp
from numpy.typing import NDArray

from .model import ReactionNetwork
from .utils import primitive_integer_vector


def rational_nullspace_left(S: NDArray[np.int64]) -> list[list[Fraction]]:
    """Rational basis of {c : c^T S = 0}."""
    M = sp.Matrix(np.asarray(S, dtype=np.int64).tolist())
    out: list[list[Fraction]] = []
    for v in M.T.nullspace():
        out.append([Fraction(int(sp.Rational(e).p), int(sp.Rational(e).q)) for e in v])
    return out


def conservation_laws(network: ReactionNetwork) -> NDArray[np.int64]:
    """Primitive integer basis of the conservation laws, one law per row (shape (k, nS))."""
    rows = []
    for v in rational_nullspace_left(network.stoichiometry()):
        L = 1
        for f in v:
            L = L * f.denominator // gcd(L, f.denominator)
        rows.append(primitive_integer_vector(np.array([int(f * L) for f in v], dtype=np.int64)))
    if not rows:
        return np.zeros((0, network.nS), dtype=np.int64)
    return np.vstack(rows)


def eliminable_species(laws: NDArray[np.int64]) -> list[int]:
    """Pivot species of the reduced row echelon form; one per law."""
    if laws.shape[0] == 0:
        return []
    _, pivots = sp.Matrix(laws.tolist()).rref()
    return list(pivots)
