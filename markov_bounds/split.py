from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .model import ReactionNetwork


@dataclass(frozen=True)
class SplitResult:
    """Reversible-split mapping.

    For each original reaction rho we create up to two split reactions:
      rho+  reactants nu_plus[:, rho], products nu_minus[:, rho], rate k_rho
      rho-  reactants nu_minus[:, rho], products nu_plus[:, rho], rate k'_rho

    The bookkeeping arrays map split indices -> original index and sign.
    """

    network: ReactionNetwork
    split_to_orig: np.ndarray  # (nR_split,) int
    split_sign: np.ndarray     # (nR_split,) in {+1,-1}


def split_reversible(network: ReactionNetwork) -> SplitResult:
    """Split reversible reactions into irreversible channels.

    A reaction is reversible when its reverse rate constant is positive.
    The returned network has no reverse rates; every jump of the associated
    jump process is one of its reactions.
    """
    reversible = network.reversible()

    plus, minus, rates = [], [], []
    split_to_orig = []
    split_sign = []

    for rho in range(network.nR):
        plus.append(network.nu_plus[:, rho])
        minus.append(network.nu_minus[:, rho])
        rates.append(network.rates[rho])
        split_to_orig.append(rho)
        split_sign.append(+1)

        if reversible[rho]:
            plus.append(network.nu_minus[:, rho])
            minus.append(network.nu_plus[:, rho])
            rates.append(network.reverse_rates[rho])
            split_to_orig.append(rho)
            split_sign.append(-1)

    return SplitResult(
        network=ReactionNetwork(
            species=network.species,
            nu_plus=np.stack(plus, axis=1),
            nu_minus=np.stack(minus, axis=1),
            rates=np.asarray(rates, dtype=float),
        ),
        split_to_orig=np.asarray(split_to_orig, dtype=int),
        split_sign=np.asarray(split_sign, dtype=int),
    )
