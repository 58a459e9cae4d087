from __future__ import annotations

import math

import numpy as np
import pytest
import sympy as sp

from markov_bounds.sets import BasicSemialgebraicSet, box, nonnegative_orthant
from markov_bounds.sos import (
    InnerApprox,
    SolverCapabilityError,
    SolverSpec,
    SolveStatusError,
    SOSModel,
    as_solver,
)

x = sp.Symbol("x")


def test_as_solver_registry():
    assert as_solver("clarabel").cones == frozenset({"psd", "soc", "exp"})
    assert "exp" not in as_solver("CVXOPT").cones
    spec = SolverSpec("SCS", cones=frozenset({"psd"}), options={"eps": 1e-6})
    assert as_solver(spec) is spec
    # unknown solvers are assumed to handle psd and soc only
    assert as_solver("SOMETHING_ELSE").cones == frozenset({"psd", "soc"})


def test_linear_rejects_non_affine_terms():
    model = SOSModel()
    a, b = model.variables("c", 2)
    with pytest.raises(ValueError):
        model.linear([a * b])
    with pytest.raises(ValueError):
        model.linear([x * a])
    expr = model.linear([2 * a - b + 3, sp.Integer(1)])
    assert expr.shape == (2,)
    const = model.linear([sp.pi, sp.sqrt(2) + 1])
    np.testing.assert_allclose(const.value, [math.pi, math.sqrt(2) + 1])
    assert model.linear([sp.sqrt(2) * a]).shape == (1,)


def test_psd_matrix_is_symmetric():
    model = SOSModel()
    S = model.psd_matrix("S", 3)
    assert S[0, 2] == S[2, 0]
    assert S[0, 1] != S[1, 1]
    assert "psd" in model.cones_used


@pytest.mark.parametrize("cone", [InnerApprox.SOS, InnerApprox.SDSOS, InnerApprox.DSOS])
def test_global_minimum_of_quadratic(cone):
    # min x^2 - 2x + 3 = 2, certified by (x - 1)^2 which is diagonally dominant
    model = SOSModel("CLARABEL", cone)
    t = model.variable("t")
    model.add_nonneg(x**2 - 2 * x + 3 - t, [x])
    model.maximize(t)
    model.optimize()
    assert abs(model.objective_value - 2.0) < 1e-5
    assert abs(model.value(t) - 2.0) < 1e-5


def test_minimum_on_a_box():
    model = SOSModel()
    t = model.variable("t")
    model.add_nonneg(x - t, [x], box([x], [1], [3]))
    model.maximize(t)
    model.optimize()
    assert abs(model.objective_value - 1.0) < 1e-5


def test_minimum_on_a_hyperplane():
    model = SOSModel()
    t = model.variable("t")
    model.add_nonneg(x**2 - t, [x], BasicSemialgebraicSet(equalities=[x - 2]))
    model.maximize(t)
    model.optimize()
    assert abs(model.objective_value - 4.0) < 1e-5


def test_certificate_mass_is_the_constant_row_dual():
    # maximize t subject to x - t >= 0 on x >= 0; the dual measure is the point mass at 0
    model = SOSModel()
    t = model.variable("t")
    cert = model.add_nonneg(x - t, [x], nonnegative_orthant([x]))
    model.maximize(t)
    model.optimize()
    assert abs(model.objective_value) < 1e-5
    assert abs(cert.mass() - 1.0) < 1e-4


def test_polynomial_values_are_resolved():
    model = SOSModel()
    p = model.polynomial("p", [x], 2)
    model.add_zero(p - (x**2 + 1), [x])
    model.maximize(sp.Integer(0))
    model.optimize()
    resolved = model.value(p)
    coeffs = sp.Poly(resolved, x).all_coeffs()
    assert np.allclose([float(c) for c in coeffs], [1.0, 0.0, 1.0], atol=1e-6)


def test_dual_exponential_cone():
    # (-1, v, w) in the dual exponential cone means w >= exp(-v - 1)
    model = SOSModel()
    v, w = model.variable("v"), model.variable("w")
    model.add_equal([v], [0])
    model.add_dual_exp_cone(-1.0, [v], [w])
    model.maximize(-w)
    model.optimize()
    assert abs(model.value(w) - math.exp(-1.0)) < 1e-5
    assert "exp" in model.cones_used

    with pytest.raises(ValueError):
        model.add_dual_exp_cone(1.0, [v], [w])


def test_capability_mismatch_fails_before_solving():
    model = SOSModel(SolverSpec("CLARABEL", cones=frozenset({"psd", "soc"})))
    v, w = model.variable("v"), model.variable("w")
    model.add_dual_exp_cone(-1.0, [v], [w])
    model.maximize(-w)
    with pytest.raises(SolverCapabilityError):
        model.optimize()
    assert model.problem is None


def test_solve_status_errors():
    model = SOSModel()
    t = model.variable("t")
    model.add_scalar_nonneg(t - 1)
    model.add_scalar_nonneg(-t)
    model.maximize(t)
    with pytest.raises(SolveStatusError) as err:
        model.optimize()
    assert "infeasible" in err.value.status

    model = SOSModel()
    t = model.variable("t")
    model.add_scalar_nonneg(t)
    model.maximize(t)
    with pytest.raises(SolveStatusError) as err:
        model.optimize()
    assert "unbounded" in err.value.status
