"""Markov processes described by their infinitesimal generator.

Two process classes are provided:
- JumpProcess: continuous-time jump process with polynomial propensities
  a_r(x) and polynomial jump maps h_r(x),
      A w(x) = sum_r a_r(x) * (w(h_r(x)) - w(x))
- DiffusionProcess: Ito diffusion with polynomial drift f(x) and diffusion
  matrix D(x) = sigma(x) sigma(x)^T,
      A w(x) = f(x) . grad w(x) + 1/2 tr(D(x) hess w(x))

Both expose the operator "apply the generator to a polynomial". The
polynomial may carry decision-variable symbols in its coefficients; the
generator is linear, so the result stays affine in those symbols.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np
import sympy as sp
from numpy.typing import NDArray

from .sets import BasicSemialgebraicSet, full_space
from .utils import substitute


class MarkovProcess:
    """Base class: state variables `x`, a state space and a generator."""

    x: tuple[sp.Symbol, ...]
    state_space: BasicSemialgebraicSet

    #: spacing used to separate a target set from its complement when the
    #: state space is split (1 for processes living on the integer lattice)
    boundary_margin: float = 0.0

    @property
    def n(self) -> int:
        return len(self.x)

    def generator(self, w: sp.Expr) -> sp.Expr:
        raise NotImplementedError

    def coupling_conditions(
        self,
        w_src: sp.Expr,
        w_dst: sp.Expr,
        X_src: BasicSemialgebraicSet,
        X_dst: BasicSemialgebraicSet,
    ) -> list[tuple[sp.Expr, BasicSemialgebraicSet]]:
        """Polynomial identities (expr == 0 on set) tying two region weights together."""
        raise NotImplementedError


@dataclass(frozen=True)
class JumpProcess(MarkovProcess):
    x: tuple[sp.Symbol, ...]
    propensities: tuple[sp.Expr, ...]
    jumps: tuple[tuple[sp.Expr, ...], ...]
    state_space: BasicSemialgebraicSet = field(default_factory=full_space)
    boundary_margin: float = 1.0

    def __post_init__(self):
        object.__setattr__(self, "x", tuple(self.x))
        object.__setattr__(self, "propensities", tuple(sp.sympify(a) for a in self.propensities))
        object.__setattr__(self, "jumps", tuple(tuple(sp.sympify(c) for c in h) for h in self.jumps))
        if len(self.propensities) != len(self.jumps):
            raise ValueError(
                f"got {len(self.propensities)} propensities but {len(self.jumps)} jump maps"
            )
        for h in self.jumps:
            if len(h) != len(self.x):
                raise ValueError("every jump map must have one component per state variable")

    @classmethod
    def from_shifts(
        cls,
        x: Sequence[sp.Symbol],
        propensities: Sequence[sp.Expr],
        shifts: Sequence[Sequence[float]],
        state_space: BasicSemialgebraicSet | None = None,
        boundary_margin: float = 1.0,
    ) -> JumpProcess:
        """Jump process whose jumps are translations x -> x + nu_r."""
        x = tuple(x)
        jumps = [tuple(xi + sp.nsimplify(d) for xi, d in zip(x, nu)) for nu in shifts]
        return cls(
            x=x,
            propensities=tuple(propensities),
            jumps=tuple(jumps),
            state_space=state_space if state_space is not None else full_space(),
            boundary_margin=boundary_margin,
        )

    @property
    def n_jumps(self) -> int:
        return len(self.jumps)

    def shift(self, r: int) -> NDArray[np.float64] | None:
        """Translation vector of jump r, or None if h_r is not a translation."""
        nu = []
        for xi, hi in zip(self.x, self.jumps[r]):
            d = sp.expand(hi - xi)
            if not d.is_number:
                return None
            nu.append(float(d))
        return np.asarray(nu)

    def jump_target(self, r: int, point) -> NDArray[np.float64]:
        sub = dict(zip(self.x, point))
        return np.asarray([float(hi.subs(sub)) for hi in self.jumps[r]])

    def propensity_at(self, r: int, point) -> float:
        return float(self.propensities[r].subs(dict(zip(self.x, point))))

    def compose(self, w: sp.Expr, r: int) -> sp.Expr:
        """w(h_r(x))."""
        return substitute(w, self.x, self.jumps[r])

    def generator(self, w: sp.Expr) -> sp.Expr:
        out = sp.Integer(0)
        for r, a in enumerate(self.propensities):
            out += a * (self.compose(w, r) - w)
        return sp.expand(out)

    def coupling_conditions(self, w_src, w_dst, X_src, X_dst):
        # w_src(h_r(x)) must agree with w_dst wherever jump r leaves the source
        # cell and lands in the destination cell
        out = []
        for r in range(self.n_jumps):
            landing = (X_src & X_dst.compose(self.x, self.jumps[r])).simplified()
            if landing.is_empty(self.x):
                continue
            out.append((self.compose(w_src, r) - self.compose(w_dst, r), landing))
        return out


@dataclass(frozen=True)
class DiffusionProcess(MarkovProcess):
    x: tuple[sp.Symbol, ...]
    drift: tuple[sp.Expr, ...]
    diffusion: sp.ImmutableMatrix
    state_space: BasicSemialgebraicSet = field(default_factory=full_space)

    def __post_init__(self):
        object.__setattr__(self, "x", tuple(self.x))
        object.__setattr__(self, "drift", tuple(sp.sympify(f) for f in self.drift))
        D = sp.ImmutableMatrix(self.diffusion)
        n = len(self.x)
        if len(self.drift) != n:
            raise ValueError("drift must have one component per state variable")
        if D.shape != (n, n):
            raise ValueError(f"diffusion matrix must have shape ({n}, {n}), got {D.shape}")
        object.__setattr__(self, "diffusion", D)

    @classmethod
    def from_sigma(cls, x, drift, sigma, state_space=None) -> DiffusionProcess:
        """Diffusion dX = f dt + sigma dW; the generator only needs sigma sigma^T."""
        S = sp.Matrix(sigma)
        return cls(
            x=tuple(x),
            drift=tuple(drift),
            diffusion=(S * S.T).expand(),
            state_space=state_space if state_space is not None else full_space(),
        )

    def generator(self, w: sp.Expr) -> sp.Expr:
        out = sp.Integer(0)
        for i, xi in enumerate(self.x):
            dwi = sp.diff(w, xi)
            out += self.drift[i] * dwi
            for j, xj in enumerate(self.x):
                Dij = self.diffusion[i, j]
                if Dij != 0:
                    out += sp.Rational(1, 2) * Dij * sp.diff(dwi, xj)
        return sp.expand(out)

    def coupling_conditions(self, w_src, w_dst, X_src, X_dst):
        # C^1 continuity across the interface keeps Ito's formula valid for
        # the piecewise weight
        interface = (X_src & X_dst).simplified()
        if interface.is_empty(self.x):
            return []
        diff = sp.expand(w_src - w_dst)
        out = [(diff, interface)]
        for xi in self.x:
            d = sp.diff(diff, xi)
            if d != 0:
                out.append((d, interface))
        return out
