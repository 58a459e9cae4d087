#!/usr/bin/env python3
"""
Demo 2: Schlögl model
=====================

Network:
  R1: 2X <-> 3X   (k1, k2)
  R2: 0  <-> X    (k4, k3)

Bistable in the deterministic limit. Plots the SOS bounds on E[X] and the
variance bound against the relaxation order; bounds tighten monotonically.
"""

import argparse
from pathlib import Path

import matplotlib.pyplot as plt

import markov_bounds as mb
from markov_bounds.networks import schloegl

COLORS = {
    'bound_fill': '#b9e7b9',
    'upper_bound': 'blue',
    'lower_bound': 'red',
}


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument('--out', default='notes/demo_schlogl_bounds.png')
    parser.add_argument('--max-order', type=int, default=8)
    parser.add_argument('--solver', default='CLARABEL')
    parser.add_argument('--svg', action='store_true', help='Also save SVG')
    args = parser.parse_args()

    outdir = Path(args.out).parent
    outdir.mkdir(parents=True, exist_ok=True)

    net = schloegl()
    orders = list(range(2, args.max_order + 1, 2))
    lower, upper, var = [], [], []

    print("=" * 60)
    print("Demo 2: Schlögl model")
    print("=" * 60)
    for d in orders:
        lb, ub = mb.stationary_mean(net, "X", d, args.solver)
        v = mb.stationary_variance(net, "X", d, args.solver)
        lower.append(lb.value)
        upper.append(ub.value)
        var.append(v.value)
        print(f"order {d}: {lb.value:9.4f} <= E[X] <= {ub.value:9.4f},  Var[X] <= {v.value:9.4f}")

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(9, 3.8))
    ax1.fill_between(orders, lower, upper, color=COLORS['bound_fill'], alpha=0.4, label='Admissible E[X]')
    ax1.plot(orders, lower, 'o-', color=COLORS['lower_bound'], lw=2.0, label='lower bound')
    ax1.plot(orders, upper, 'o-', color=COLORS['upper_bound'], lw=2.0, label='upper bound')
    ax1.set_xlabel('relaxation order')
    ax1.set_ylabel(r'$\mathbb{E}[X]$')
    ax1.legend(frameon=False)
    ax1.grid(True, alpha=0.25)

    ax2.plot(orders, var, 'o-', color=COLORS['upper_bound'], lw=2.0)
    ax2.set_xlabel('relaxation order')
    ax2.set_ylabel(r'upper bound on Var$[X]$')
    ax2.set_yscale('log')
    ax2.grid(True, alpha=0.25)

    fig.tight_layout()
    fig.savefig(args.out, dpi=150, bbox_inches='tight')
    print(f"\nSaved: {args.out}")

    if args.svg:
        svg_out = args.out.replace('.png', '.svg')
        fig.savefig(svg_out, format='svg', bbox_inches='tight')
        print(f"Saved: {svg_out}")

    plt.close(fig)


if __name__ == '__main__':
    main()
