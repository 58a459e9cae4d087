"""Example reaction networks.

Columns of nu_plus are reactants, columns of nu_minus products. Chemostatted
species (fuel, waste, food) are absorbed into the rate constants.
"""

from __future__ import annotations

import numpy as np

from .model import ReactionNetwork


def birth_death(birth: float = 2.0, death: float = 1.0) -> ReactionNetwork:
    """0 -> A at rate `birth`, A -> 0 at rate `death` per molecule.

    The stationary distribution is Poisson with mean birth/death.
    """
    return ReactionNetwork(
        species=("A",),
        nu_plus=np.array([[0, 1]]),
        nu_minus=np.array([[1, 0]]),
        rates=np.array([birth, death]),
    )


def schloegl(k1: float = 3.0, k2: float = 0.6, k3: float = 0.25, k4: float = 2.95) -> ReactionNetwork:
    """Schloegl model, bistable for the default rates.

      2X <-> 3X   (k1, k2)
      0  <-> X    (k4, k3)
    """
    return ReactionNetwork(
        species=("X",),
        nu_plus=np.array([[2, 0]]),
        nu_minus=np.array([[3, 1]]),
        rates=np.array([k1, k4]),
        reverse_rates=np.array([k2, k3]),
    )


def dimerization(k_on: float = 1.0, k_off: float = 1.0) -> ReactionNetwork:
    """2 M <-> D; closed, with conservation law M + 2 D."""
    return ReactionNetwork(
        species=("M", "D"),
        nu_plus=np.array([[2], [0]]),
        nu_minus=np.array([[0], [1]]),
        rates=np.array([k_on]),
        reverse_rates=np.array([k_off]),
    )


def self_assembly(
    k: tuple[float, float, float] = (1.0, 1.0, 1.0),
    k_rev: tuple[float, float, float] = (0.1, 0.1, 0.1),
) -> ReactionNetwork:
    """Fuel-driven self-assembly of monomers X1 into dimers X2 and trimers X3.

      F + 2 X1 <-> X2 + W
      X1 + X2  <-> X3
      X3       <-> 3 X1

    Closed in the internal species, with conservation law X1 + 2 X2 + 3 X3.
    """
    nu_plus = np.array([
        [2, 1, 0],  # X1
        [0, 1, 0],  # X2
        [0, 0, 1],  # X3
    ])
    nu_minus = np.array([
        [0, 0, 3],  # X1
        [1, 0, 0],  # X2
        [0, 1, 0],  # X3
    ])
    return ReactionNetwork(
        species=("X1", "X2", "X3"),
        nu_plus=nu_plus,
        nu_minus=nu_minus,
        rates=np.asarray(k, dtype=float),
        reverse_rates=np.asarray(k_rev, dtype=float),
    )
