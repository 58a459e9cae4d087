"""Relaxation settings shared by the program templates."""

from __future__ import annotations

from dataclasses import dataclass, field

from .sets import BasicSemialgebraicSet, full_space
from .sos import InnerApprox


@dataclass(frozen=True)
class RelaxationConfig:
    """
    inner_approx: cone used for the Gram matrices of all SOS certificates.
    side_infos: moment information E[g] >= 0, E[h] == 0 on the stationary
        measure (inequalities g, equalities h); only the measure
        reconstruction programs use it.
    """

    inner_approx: InnerApprox = InnerApprox.SOS
    side_infos: BasicSemialgebraicSet = field(default_factory=full_space)


DEFAULT_CONFIG = RelaxationConfig()
