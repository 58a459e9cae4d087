"""Molecular count bounds for closed networks (used for auto-scaling).

For an initial condition n0 the reachable counts satisfy C n = C n0 and
n >= 0, where the rows of C are the conservation laws. Maximizing each n_i
over this polyhedron is a linear program.
"""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

import numpy as np
from numpy.typing import NDArray
from scipy.optimize import linprog

from .conservation import conservation_laws
from .model import ReactionNetwork

logger = logging.getLogger(__name__)


def initial_counts(network: ReactionNetwork, S0: Mapping[str, float] | Sequence[float]) -> NDArray[np.float64]:
    """Initial condition as a vector ordered like `network.species` (missing species are 0)."""
    if isinstance(S0, Mapping):
        n0 = np.zeros(network.nS)
        for name, value in S0.items():
            n0[network.index(name)] = float(value)
        return n0
    n0 = np.asarray(S0, dtype=float).reshape(-1)
    if n0.shape != (network.nS,):
        raise ValueError(f"initial condition must have {network.nS} entries")
    return n0


def max_molecular_counts(network: ReactionNetwork, S0: Mapping[str, float] | Sequence[float]) -> NDArray[np.float64]:
    """Upper bound on the count of every species reachable from S0.

    Raises ValueError when some species is not bounded by the conservation
    laws (open networks).
    """
    n0 = initial_counts(network, S0)
    C = conservation_laws(network).astype(float)
    nS = network.nS
    out = np.zeros(nS)
    for i in range(nS):
        c = np.zeros(nS)
        c[i] = -1.0  # linprog minimizes
        res = linprog(
            c,
            A_eq=C if C.shape[0] else None,
            b_eq=C @ n0 if C.shape[0] else None,
            bounds=[(0, None)] * nS,
            method="highs",
        )
        if res.status == 3:
            raise ValueError(
                f"species {network.species[i]} is not bounded by the conservation laws; "
                "auto-scaling needs a closed network"
            )
        if res.status != 0:
            raise RuntimeError(f"molecular count LP failed for {network.species[i]}: {res.message}")
        out[i] = -res.fun
    logger.debug("max molecular counts: %s", dict(zip(network.species, out)))
    return out
