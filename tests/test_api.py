"""End-to-end checks of the public functions on reaction networks."""

from __future__ import annotations

import math

import pytest
import sympy as sp

import markov_bounds as mb
from markov_bounds.networks import birth_death, dimerization, schloegl
from markov_bounds.sos import InnerApprox

TOL = 1e-4


def test_birth_death_mean_by_species_name():
    lb, ub = mb.stationary_mean(birth_death(birth=2.0, death=1.0), "A", 2)
    assert abs(lb.value - 2.0) < TOL
    assert abs(ub.value - 2.0) < TOL


def test_observable_in_species_symbols():
    A = sp.Symbol("A")
    lb = mb.stationary_polynomial(birth_death(), 3 * A + 1, 2)
    assert abs(lb.value - 7.0) < 1e-3


@pytest.mark.parametrize("cone", list(InnerApprox))
def test_linear_certificates_are_exact_for_every_cone(cone):
    lb, ub = mb.stationary_mean(birth_death(birth=2.0, death=1.0), "A", 2, inner_approx=cone)
    assert abs(lb.value - 2.0) < TOL
    assert abs(ub.value - 2.0) < TOL


def test_cheaper_inner_approximations_are_looser():
    net = schloegl()
    lb = mb.stationary_polynomial(net, "X", 4)
    for cone in (InnerApprox.SDSOS, InnerApprox.DSOS):
        lb_c = mb.stationary_polynomial(net, "X", 4, inner_approx=cone)
        assert -TOL <= lb_c.value <= lb.value + TOL


def test_closed_network_bounds():
    net = dimerization(k_on=1.0, k_off=1.0)
    S0 = {"M": 10, "D": 0}
    lb, ub = mb.stationary_mean(net, "D", 2, S0=S0)
    assert -TOL <= lb.value <= ub.value + TOL
    assert ub.value <= 5.0 + TOL

    # M = 10 - 2 D, so the bounds mirror each other
    lb_m, ub_m = mb.stationary_mean(net, "M", 2, S0=S0)
    assert abs(lb_m.value - (10 - 2 * ub.value)) < 1e-3
    assert abs(ub_m.value - (10 - 2 * lb.value)) < 1e-3


def test_variance_and_mass_via_api():
    net = birth_death(birth=2.0, death=1.0)
    var = mb.stationary_variance(net, "A", 2)
    assert abs(var.value - 2.0) < 1e-3

    A = sp.Symbol("A")
    lb, ub = mb.stationary_probability_mass(net, mb.BasicSemialgebraicSet(inequalities=[2 - A]), 4)
    exact = 5 * math.exp(-2)
    assert lb.value <= exact + TOL <= ub.value + 2 * TOL


def test_langevin_process_mean():
    lp = mb.langevin_process_setup(birth_death(birth=2.0, death=1.0))
    lb, ub = mb.stationary_mean(lp, "A", 2)
    assert abs(lb.value - 2.0) < TOL
    assert abs(ub.value - 2.0) < TOL


def test_species_names_need_a_reaction_network():
    x = sp.Symbol("x")
    P = mb.JumpProcess.from_shifts([x], [2, x], [[1], [-1]], mb.nonnegative_orthant([x]))
    with pytest.raises(ValueError):
        mb.stationary_mean(P, "x", 2)


def test_point_cells_are_rejected_for_diffusions():
    x = sp.Symbol("x")
    P = mb.DiffusionProcess.from_sigma([x], [-x], [[1]])
    part = mb.Partition.from_cells([mb.PointCell([0]), mb.RegionCell(mb.full_space())])
    with pytest.raises(ValueError):
        mb.stationary_polynomial(P, x, 2, partition=part)


def test_jumps_leaving_the_neighbourhood_are_rejected():
    x = sp.Symbol("x")
    P = mb.JumpProcess.from_shifts([x], [2, x], [[1], [-1]], mb.nonnegative_orthant([x]))
    part = mb.Partition.from_cells([mb.PointCell([k]) for k in range(3)])
    with pytest.raises(ValueError):
        mb.stationary_polynomial(P, x, 2, partition=part)


def test_bare_network_accepts_scaling_options():
    net = dimerization(k_on=1.0, k_off=1.0)
    S0 = {"M": 10, "D": 0}
    lb, ub = mb.stationary_mean(net, "D", 2, S0=S0, auto_scaling=True)
    rp = mb.reaction_process_setup(net, S0, auto_scaling=True)
    lb_rp, ub_rp = mb.stationary_mean(rp, "D", 2)
    assert abs(lb.value - lb_rp.value) < 1e-6
    assert abs(ub.value - ub_rp.value) < 1e-6
    assert -TOL <= lb.value <= ub.value <= 5.0 + TOL

    lb_s, _ = mb.stationary_mean(birth_death(birth=2.0, death=1.0), "A", 2, scales=[4.0])
    assert abs(lb_s.value - 2.0) < TOL

    with pytest.raises(ValueError):
        mb.stationary_mean(rp, "D", 2, scales=[10.0])
