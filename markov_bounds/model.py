"""Reaction networks with stochastic mass-action kinetics.

We provide:
- ReactionNetwork container (stoichiometry split into reactants/products)
- combinatoric (stochastic) mass-action propensities
- deterministic mass-action rate laws used by the chemical Langevin equation
"""

from __future__ import annotations

from dataclasses import dataclass
from math import factorial
from typing import Sequence

import numpy as np
import sympy as sp
from numpy.typing import NDArray

from .utils import falling_factorial


@dataclass(frozen=True)
class ReactionNetwork:
    species: tuple[str, ...]
    nu_plus: NDArray[np.int64]    # (nS, nR) reactant coefficients
    nu_minus: NDArray[np.int64]   # (nS, nR) product coefficients
    rates: NDArray[np.float64]    # (nR,) forward rate constants
    reverse_rates: NDArray[np.float64] | None = None  # (nR,) 0 marks an irreversible reaction

    def __post_init__(self):
        object.__setattr__(self, "species", tuple(str(s) for s in self.species))
        nu_plus = np.atleast_2d(np.asarray(self.nu_plus, dtype=np.int64))
        nu_minus = np.atleast_2d(np.asarray(self.nu_minus, dtype=np.int64))
        if nu_plus.shape != nu_minus.shape:
            raise ValueError(f"nu_plus has shape {nu_plus.shape} but nu_minus has shape {nu_minus.shape}")
        if nu_plus.shape[0] != len(self.species):
            raise ValueError(f"{len(self.species)} species but stoichiometry has {nu_plus.shape[0]} rows")
        if np.any(nu_plus < 0) or np.any(nu_minus < 0):
            raise ValueError("stoichiometric coefficients must be non-negative")
        rates = np.asarray(self.rates, dtype=float).reshape(-1)
        if rates.shape != (nu_plus.shape[1],):
            raise ValueError("need one rate constant per reaction")
        object.__setattr__(self, "nu_plus", nu_plus)
        object.__setattr__(self, "nu_minus", nu_minus)
        object.__setattr__(self, "rates", rates)
        if self.reverse_rates is not None:
            rev = np.asarray(self.reverse_rates, dtype=float).reshape(-1)
            if rev.shape != rates.shape:
                raise ValueError("need one reverse rate constant per reaction")
            object.__setattr__(self, "reverse_rates", rev)

    @property
    def nS(self) -> int:
        return int(self.nu_plus.shape[0])

    @property
    def nR(self) -> int:
        return int(self.nu_plus.shape[1])

    def stoichiometry(self) -> NDArray[np.int64]:
        """Net change of every species per reaction, shape (nS, nR)."""
        return self.nu_minus - self.nu_plus

    def reversible(self) -> NDArray[np.bool_]:
        if self.reverse_rates is None:
            return np.zeros(self.nR, dtype=bool)
        return self.reverse_rates > 0

    def symbols(self) -> tuple[sp.Symbol, ...]:
        return tuple(sp.Symbol(s, nonnegative=True) for s in self.species)

    def index(self, species: str) -> int:
        try:
            return self.species.index(str(species))
        except ValueError:
            raise ValueError(f"unknown species {species!r}") from None


def stochastic_propensity(network: ReactionNetwork, r: int, n: Sequence[sp.Expr]) -> sp.Expr:
    """k_r prod_i n_i (n_i - 1) ... (n_i - nu_ir + 1) / nu_ir! for reaction r (forward direction)."""
    out = sp.nsimplify(network.rates[r])
    for i in range(network.nS):
        m = int(network.nu_plus[i, r])
        if m:
            out *= falling_factorial(n[i], m) / factorial(m)
    return sp.expand(out)


def deterministic_rate(network: ReactionNetwork, r: int, c: Sequence[sp.Expr]) -> sp.Expr:
    """k_r prod_i c_i^nu_ir / nu_ir! (large-volume limit of the stochastic propensity)."""
    out = sp.nsimplify(network.rates[r])
    for i in range(network.nS):
        m = int(network.nu_plus[i, r])
        if m:
            out *= c[i] ** m / factorial(m)
    return sp.expand(out)
