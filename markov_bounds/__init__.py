"""SOS bounds on stationary statistics of Markov processes.

Core contract:
- inputs: a jump or diffusion process with polynomial data (or a reaction
  network), a polynomial observable, a relaxation order and a partition
- workflow: per-cell stationarity certificates + coupling -> conic program
  (cvxpy) -> Bound
"""

from .api import (
    approximate_stationary_measure,
    max_entropy_measure,
    stationary_covariance_ellipsoid,
    stationary_mean,
    stationary_polynomial,
    stationary_probability_mass,
    stationary_variance,
)
from .bound import Bound
from .config import DEFAULT_CONFIG, RelaxationConfig
from .model import ReactionNetwork
from .partition import (
    Partition,
    PointCell,
    RegionCell,
    RegionGroupCell,
    split_state_space,
    trivial_partition,
)
from .process import DiffusionProcess, JumpProcess, MarkovProcess
from .reaction_process import langevin_process_setup, reaction_process_setup
from .sets import BasicSemialgebraicSet, box, full_space, nonnegative_orthant
from .sos import InnerApprox, SolverCapabilityError, SolverSpec, SolveStatusError
