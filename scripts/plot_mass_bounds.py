"""Plot bounds on the stationary CDF P(A <= k) of the birth-death process.

Each k is a separate pair of indicator programs on the partition
{A <= k} / {A >= k + 1}; the exact Poisson CDF must lie inside the band.
"""

from __future__ import annotations

import argparse
import math

import matplotlib.pyplot as plt
import numpy as np
import sympy as sp

import markov_bounds as mb
from markov_bounds.networks import birth_death


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--out", required=True)
    ap.add_argument("--lam", type=float, default=5.0)
    ap.add_argument("--kmax", type=int, default=12)
    ap.add_argument("--order", type=int, default=4)
    args = ap.parse_args()

    net = birth_death(args.lam, 1.0)
    A = sp.Symbol("A")
    ks = np.arange(args.kmax + 1)
    lo, hi = [], []
    for k in ks:
        X = mb.BasicSemialgebraicSet(inequalities=[int(k) - A])
        lb, ub = mb.stationary_probability_mass(net, X, args.order)
        lo.append(lb.value)
        hi.append(ub.value)
    exact = np.cumsum([math.exp(-args.lam) * args.lam**j / math.factorial(j) for j in ks])

    fig, ax = plt.subplots(figsize=(5.2, 4.0))
    ax.fill_between(ks, lo, hi, step="mid", color="#b9e7b9", alpha=0.4, label="SOS bounds")
    ax.step(ks, lo, where="mid", color="red", lw=2.0)
    ax.step(ks, hi, where="mid", color="blue", lw=2.0)
    ax.plot(ks, exact, "k.", label="Poisson CDF")
    ax.set_xlabel(r"$k$")
    ax.set_ylabel(r"$P(A \leq k)$")
    ax.set_title(f"Birth-death, order {args.order}")
    ax.grid(True, alpha=0.25)
    ax.legend(frameon=False)
    fig.tight_layout()
    fig.savefig(args.out, dpi=200)
    print(f"Wrote: {args.out}")


if __name__ == "__main__":
    main()
