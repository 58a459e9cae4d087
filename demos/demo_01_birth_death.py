#!/usr/bin/env python3
"""
Demo 1: Birth-death process
===========================

Network:
  R1: 0 -> A   (rate lam)
  R2: A -> 0   (rate mu per molecule)

The stationary law is Poisson(lam/mu), so every bound can be compared with
the exact value:
  E[A] = Var[A] = lam/mu
  P(A <= k) = sum_{j<=k} e^{-lam/mu} (lam/mu)^j / j!
"""

import argparse
import logging
import math

import sympy as sp

import markov_bounds as mb
from markov_bounds.networks import birth_death


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument('--lam', type=float, default=2.0)
    parser.add_argument('--mu', type=float, default=1.0)
    parser.add_argument('--order', type=int, default=4)
    parser.add_argument('--solver', default='CLARABEL')
    parser.add_argument('-v', '--verbose', action='store_true')
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    net = birth_death(args.lam, args.mu)
    m = args.lam / args.mu

    print("=" * 60)
    print("Demo 1: birth-death process")
    print("=" * 60)
    print(f"\nlam = {args.lam}, mu = {args.mu}, order = {args.order}")

    lb, ub = mb.stationary_mean(net, "A", args.order, args.solver)
    print(f"\nE[A]:      [{lb.value:.6f}, {ub.value:.6f}]   exact {m:.6f}")

    var = mb.stationary_variance(net, "A", args.order, args.solver)
    print(f"Var[A]:   <= {var.value:.6f}              exact {m:.6f}")

    A = sp.Symbol("A")
    k = int(math.floor(m))
    exact = sum(math.exp(-m) * m**j / math.factorial(j) for j in range(k + 1))
    X = mb.BasicSemialgebraicSet(inequalities=[k - A])
    lb, ub = mb.stationary_probability_mass(net, X, args.order, args.solver)
    print(f"P(A <= {k}): [{lb.value:.6f}, {ub.value:.6f}]   exact {exact:.6f}")

    # point cells for small counts, one region for the tail
    cells = [mb.PointCell([j]) for j in range(2 * k + 2)]
    cells.append(mb.RegionCell(mb.box([A], [2 * k + 2], [None])))
    part = mb.Partition.from_cells(cells)
    bound, masses = mb.max_entropy_measure(net, args.order, args.solver, part)
    print(f"\nmax-entropy cell masses (entropy <= {bound.value:.4f}):")
    for j, p in enumerate(masses[:-1]):
        q = math.exp(-m) * m**j / math.factorial(j)
        print(f"  A = {j:2d}: {p:.5f}   exact {q:.5f}")
    print(f"  tail  : {masses[-1]:.5f}")


if __name__ == '__main__':
    main()
