from __future__ import annotations

import numpy as np
import pytest
import sympy as sp

from markov_bounds.process import DiffusionProcess, JumpProcess
from markov_bounds.sets import box, nonnegative_orthant

x, y = sp.symbols("x y")


def birth_death(birth=2, death=1):
    return JumpProcess.from_shifts([x], [birth, death * x], [[1], [-1]], nonnegative_orthant([x]))


def test_jump_generator_on_moments():
    P = birth_death()
    assert sp.expand(P.generator(x) - (2 - x)) == 0
    # A x^2 = 2 (2x + 1) + x (1 - 2x)
    assert sp.expand(P.generator(x**2) - (-2 * x**2 + 5 * x + 2)) == 0
    assert P.generator(sp.Integer(7)) == 0


def test_shift_and_jump_target():
    P = birth_death()
    assert np.allclose(P.shift(0), [1.0])
    assert np.allclose(P.jump_target(1, [4]), [3.0])
    assert P.propensity_at(1, [4]) == 4.0

    doubling = JumpProcess(x=(x,), propensities=(x,), jumps=((2 * x,),))
    assert doubling.shift(0) is None


def test_jump_process_rejects_mismatched_data():
    with pytest.raises(ValueError):
        JumpProcess(x=(x,), propensities=(1, x), jumps=((x + 1,),))
    with pytest.raises(ValueError):
        JumpProcess(x=(x, y), propensities=(1,), jumps=((x + 1,),))


def test_jump_coupling_skips_empty_landing_sets():
    P = birth_death()
    low = box([x], [0], [3])
    high = box([x], [4], [None])
    conds = P.coupling_conditions(x**2, 2 * x, low, high)
    # only the birth jump can take [0, 3] into [4, oo), and only from x = 3
    assert len(conds) == 1
    expr, landing = conds[0]
    assert landing.equalities == (3 - x,) or landing.equalities == (x - 3,)
    assert sp.expand(expr - ((x + 1) ** 2 - 2 * (x + 1))) == 0


def test_diffusion_generator():
    # Ornstein-Uhlenbeck: dX = -X dt + sqrt(2) dW
    P = DiffusionProcess.from_sigma([x], [-x], [[sp.sqrt(2)]])
    assert P.diffusion[0, 0] == 2
    assert sp.expand(P.generator(x**2) - (2 - 2 * x**2)) == 0
    assert P.boundary_margin == 0.0


def test_diffusion_coupling_matches_values_and_gradients():
    P = DiffusionProcess(x=(x, y), drift=(-x, -y), diffusion=sp.eye(2))
    left = box([x, y], [None, None], [0, None])
    right = box([x, y], [0, None], [None, None])
    conds = P.coupling_conditions(x**2 + y, y, left, right)
    exprs = [sp.expand(e) for e, _ in conds]
    assert x**2 in exprs
    assert 2 * x in exprs
    # the y-derivative of the difference vanishes and is not imposed
    assert len(conds) == 2


def test_diffusion_rejects_bad_shapes():
    with pytest.raises(ValueError):
        DiffusionProcess(x=(x, y), drift=(-x, -y), diffusion=sp.eye(3))
