from __future__ import annotations

import numpy as np
import pytest
import sympy as sp

from markov_bounds.conservation import conservation_laws, eliminable_species
from markov_bounds.model import ReactionNetwork, stochastic_propensity
from markov_bounds.networks import birth_death, dimerization, schloegl, self_assembly
from markov_bounds.process import MarkovProcess
from markov_bounds.reaction_process import (
    langevin_process_setup,
    polynomialize_expr,
    reaction_process_setup,
    resolve,
)
from markov_bounds.scaling import max_molecular_counts
from markov_bounds.split import split_reversible


def test_network_validation():
    with pytest.raises(ValueError):
        ReactionNetwork(species=("A",), nu_plus=[[1, 0]], nu_minus=[[0]], rates=[1.0])
    with pytest.raises(ValueError):
        ReactionNetwork(species=("A",), nu_plus=[[1]], nu_minus=[[0]], rates=[1.0, 2.0])
    with pytest.raises(ValueError):
        birth_death().index("B")


def test_split_shapes_and_mapping():
    out = split_reversible(schloegl(k1=3.0, k2=0.6, k3=0.25, k4=2.95))
    net = out.network

    assert net.nR == 4
    assert net.reverse_rates is None
    assert out.split_to_orig.tolist() == [0, 0, 1, 1]
    assert out.split_sign.tolist() == [1, -1, 1, -1]
    assert np.allclose(net.rates, [3.0, 0.6, 2.95, 0.25])

    # reverse channels swap reactants and products
    S = net.stoichiometry()
    assert np.allclose(S[:, 0], -S[:, 1])
    assert np.allclose(S[:, 2], -S[:, 3])


def test_irreversible_network_is_unchanged_by_split():
    out = split_reversible(birth_death())
    assert out.network.nR == 2
    assert out.split_sign.tolist() == [1, 1]


def test_stochastic_propensity_is_combinatoric():
    n = sp.Symbol("n")
    net = dimerization(k_on=2.0, k_off=1.0)
    # 2 M -> D: k n (n - 1) / 2
    a = stochastic_propensity(net, 0, [n, sp.Integer(0)])
    assert sp.expand(a - n * (n - 1)) == 0


def test_conservation_laws():
    assert conservation_laws(birth_death()).shape == (0, 1)
    assert conservation_laws(dimerization()).tolist() == [[1, 2]]
    laws = conservation_laws(self_assembly())
    assert laws.tolist() == [[1, 2, 3]]
    assert eliminable_species(laws) == [0]


def test_max_molecular_counts():
    counts = max_molecular_counts(dimerization(), {"M": 10, "D": 0})
    assert np.allclose(counts, [10.0, 5.0])
    with pytest.raises(ValueError):
        max_molecular_counts(birth_death(), {"A": 3})


def test_birth_death_process_setup():
    rp = reaction_process_setup(birth_death(birth=2.0, death=1.0))
    A = sp.Symbol("A")
    P = rp.process
    assert P.x == (A,)
    assert sp.expand(P.generator(A) - (2 - A)) == 0
    assert rp.species_to_state == {"A": A}
    assert P.boundary_margin == 1.0


def test_closed_network_eliminates_species():
    rp = reaction_process_setup(dimerization(), {"M": 10, "D": 0})
    D = sp.Symbol("D")
    assert rp.process.x == (D,)
    assert sp.expand(rp.species_to_state["M"] - (10 - 2 * D)) == 0
    # state space: D >= 0 and M = 10 - 2 D >= 0
    assert rp.process.state_space.contains([D], [5])
    assert not rp.process.state_space.contains([D], [6])
    assert rp.process.n_jumps == 2


def test_auto_scaling():
    rp = reaction_process_setup(dimerization(), {"M": 10, "D": 0}, auto_scaling=True)
    (xD,) = rp.process.x
    assert np.allclose(rp.scales, [10.0, 5.0])
    assert sp.expand(rp.species_to_state["D"] - 5 * xD) == 0
    assert np.allclose(sorted(float(rp.process.shift(r)[0]) for r in range(2)), [-0.2, 0.2])
    assert abs(rp.process.boundary_margin - 0.2) < 1e-12
    assert not rp.process.state_space.contains([xD], [1.1])

    with pytest.raises(ValueError):
        reaction_process_setup(dimerization(), auto_scaling=True)


def test_langevin_setup():
    lp = langevin_process_setup(birth_death(birth=2.0, death=1.0))
    A = sp.Symbol("A")
    P = lp.process
    assert sp.expand(P.drift[0] - (2 - A)) == 0
    assert sp.expand(P.diffusion[0, 0] - (2 + A)) == 0


def test_polynomialize_and_resolve():
    rp = reaction_process_setup(dimerization(), {"M": 10, "D": 0})
    M, D = sp.symbols("M D")
    assert sp.expand(polynomialize_expr(M * D, rp.species_to_state) - (10 - 2 * D) * D) == 0
    assert polynomialize_expr("D", rp.species_to_state) == D
    with pytest.raises(ValueError):
        polynomialize_expr("X", rp.species_to_state)

    process, s2s = resolve(dimerization(), {"M": 10, "D": 0})
    assert isinstance(process, MarkovProcess)
    assert set(s2s) == {"M", "D"}
    with pytest.raises(TypeError):
        resolve("not a process")

    process, s2s = resolve(dimerization(), {"M": 10, "D": 0}, auto_scaling=True)
    assert sp.expand(s2s["D"] - 5 * process.x[0]) == 0
    with pytest.raises(ValueError):
        resolve(rp, auto_scaling=True)
