"""Reaction networks as Markov processes.

Two translations are provided:
- reaction_process_setup: the chemical master equation, a jump process on
  molecular counts with stochastic mass-action propensities
- langevin_process_setup: the chemical Langevin equation, a diffusion with
  drift S a(n) and diffusion matrix S diag(a(n)) S^T

For closed networks with an initial condition, one species per conservation
law is eliminated; `species_to_state` maps every species to its count as a
polynomial in the remaining state variables. With scaling, the state
variables are counts divided by per-species scales.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Sequence, Union

import numpy as np
import sympy as sp
from numpy.typing import NDArray

from .conservation import conservation_laws, eliminable_species
from .model import ReactionNetwork, deterministic_rate, stochastic_propensity
from .process import DiffusionProcess, JumpProcess, MarkovProcess
from .scaling import initial_counts, max_molecular_counts
from .sets import BasicSemialgebraicSet
from .split import split_reversible

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReactionProcess:
    network: ReactionNetwork          # irreversible (split) network; one jump per reaction
    process: JumpProcess
    species_to_state: dict[str, sp.Expr]
    scales: NDArray[np.float64]       # (nS,)


@dataclass(frozen=True)
class LangevinProcess:
    network: ReactionNetwork
    process: DiffusionProcess
    species_to_state: dict[str, sp.Expr]
    scales: NDArray[np.float64]


@dataclass(frozen=True)
class _StateMap:
    x: tuple[sp.Symbol, ...]
    kept: list[int]
    counts: list[sp.Expr]                     # molecular count of every species in terms of x
    state_space: BasicSemialgebraicSet
    scales: NDArray[np.float64]


def _state_map(
    network: ReactionNetwork,
    S0: Mapping[str, float] | Sequence[float] | None,
    scales: Sequence[float] | None,
    auto_scaling: bool,
) -> _StateMap:
    laws = conservation_laws(network) if S0 is not None else np.zeros((0, network.nS), dtype=np.int64)
    eliminated = eliminable_species(laws)
    kept = [i for i in range(network.nS) if i not in eliminated]
    if not kept:
        raise ValueError("every species is fixed by the conservation laws")

    upper = None
    if auto_scaling:
        if S0 is None:
            raise ValueError("auto_scaling needs an initial condition S0")
        upper = max_molecular_counts(network, S0)
        scales = np.where(upper > 0, upper, 1.0)
    scales = np.ones(network.nS) if scales is None else np.asarray(scales, dtype=float).reshape(-1)
    if scales.shape != (network.nS,) or np.any(scales <= 0):
        raise ValueError(f"scales must be {network.nS} positive numbers")

    x = tuple(sp.Symbol(network.species[i]) for i in kept)
    counts: list[sp.Expr] = [sp.Integer(0)] * network.nS
    for xi, i in zip(x, kept):
        counts[i] = sp.nsimplify(scales[i]) * xi

    if eliminated:
        # rows of the reduced echelon form: n_p + sum_j R_pj n_j = (R n0)_p
        R, pivots = sp.Matrix(laws.tolist()).rref()
        n0 = [sp.nsimplify(v) for v in initial_counts(network, S0)]
        for k, p in enumerate(pivots):
            total = sum(R[k, j] * n0[j] for j in range(network.nS))
            counts[p] = sp.expand(total - sum(R[k, j] * counts[j] for j in kept))

    ineqs: list[sp.Expr] = list(x)
    ineqs += [counts[p] for p in eliminated]
    if upper is not None:
        ineqs += [sp.nsimplify(upper[i] / scales[i]) - counts[i] / sp.nsimplify(scales[i]) for i in kept]
    logger.debug(
        "state variables %s, eliminated species %s",
        [str(s) for s in x],
        [network.species[p] for p in eliminated],
    )
    return _StateMap(
        x=x,
        kept=kept,
        counts=counts,
        state_space=BasicSemialgebraicSet(inequalities=ineqs),
        scales=scales,
    )


def reaction_process_setup(
    network: ReactionNetwork,
    S0: Mapping[str, float] | Sequence[float] | None = None,
    *,
    scales: Sequence[float] | None = None,
    auto_scaling: bool = False,
) -> ReactionProcess:
    """Jump process of the chemical master equation of `network`."""
    split = split_reversible(network).network
    sm = _state_map(network, S0, scales, auto_scaling)
    S = split.stoichiometry()

    propensities, shifts = [], []
    for r in range(split.nR):
        nu = [sp.Rational(int(S[i, r])) / sp.nsimplify(sm.scales[i]) for i in sm.kept]
        if all(d == 0 for d in nu):
            continue
        propensities.append(stochastic_propensity(split, r, sm.counts))
        shifts.append(nu)

    margin = float(min(1.0 / sm.scales[i] for i in sm.kept))
    process = JumpProcess.from_shifts(sm.x, propensities, shifts, sm.state_space, boundary_margin=margin)
    return ReactionProcess(
        network=split,
        process=process,
        species_to_state=dict(zip(network.species, sm.counts)),
        scales=sm.scales,
    )


def langevin_process_setup(
    network: ReactionNetwork,
    S0: Mapping[str, float] | Sequence[float] | None = None,
    *,
    scales: Sequence[float] | None = None,
    auto_scaling: bool = False,
) -> LangevinProcess:
    """Chemical Langevin diffusion of `network` with mass-action rate laws."""
    split = split_reversible(network).network
    sm = _state_map(network, S0, scales, auto_scaling)
    S = split.stoichiometry()
    n = len(sm.kept)

    drift = [sp.Integer(0)] * n
    D = sp.zeros(n, n)
    for r in range(split.nR):
        a = deterministic_rate(split, r, sm.counts)
        nu = [sp.Rational(int(S[i, r])) / sp.nsimplify(sm.scales[i]) for i in sm.kept]
        for k in range(n):
            if nu[k] == 0:
                continue
            drift[k] += nu[k] * a
            for l in range(n):
                if nu[l] != 0:
                    D[k, l] += nu[k] * nu[l] * a
    process = DiffusionProcess(
        x=sm.x,
        drift=tuple(sp.expand(f) for f in drift),
        diffusion=sp.ImmutableMatrix(D.applyfunc(sp.expand)),
        state_space=sm.state_space,
    )
    return LangevinProcess(
        network=split,
        process=process,
        species_to_state=dict(zip(network.species, sm.counts)),
        scales=sm.scales,
    )


def polynomialize_expr(expr, species_to_state: Mapping[str, sp.Expr]) -> sp.Expr:
    """Rewrite an expression in species symbols (or a species name) in terms of the state variables."""
    if isinstance(expr, str):
        if expr not in species_to_state:
            raise ValueError(f"unknown species {expr!r}")
        return species_to_state[expr]
    expr = sp.sympify(expr)
    sub = {sym: species_to_state[sym.name] for sym in expr.free_symbols if sym.name in species_to_state}
    return sp.expand(expr.xreplace(sub))


System = Union[MarkovProcess, ReactionProcess, LangevinProcess, ReactionNetwork]


def resolve(
    system: System,
    S0: Mapping[str, float] | Sequence[float] | None = None,
    *,
    scales: Sequence[float] | None = None,
    auto_scaling: bool = False,
) -> tuple[MarkovProcess, dict[str, sp.Expr]]:
    """Markov process and species map of anything the public functions accept.

    `S0`, `scales` and `auto_scaling` only apply to a bare ReactionNetwork;
    setup options for other systems are rejected.
    """
    if not isinstance(system, ReactionNetwork) and (scales is not None or auto_scaling):
        raise ValueError("scales and auto_scaling require a bare ReactionNetwork")
    if isinstance(system, (ReactionProcess, LangevinProcess)):
        return system.process, system.species_to_state
    if isinstance(system, ReactionNetwork):
        rp = reaction_process_setup(system, S0, scales=scales, auto_scaling=auto_scaling)
        return rp.process, rp.species_to_state
    if isinstance(system, MarkovProcess):
        return system, {}
    raise TypeError(f"cannot build a Markov process from {type(system).__name__}")
