"""Result values of the program templates."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping

import sympy as sp

from .partition import Partition, check_cell
from .sos import SOSModel


@dataclass(frozen=True)
class Bound:
    value: float
    model: SOSModel = field(repr=False, compare=False)
    partition: Partition = field(repr=False, compare=False)
    weights: Mapping[int, sp.Expr | float] = field(repr=False, compare=False)  # vertex -> optimal weight
    status: str | None = None

    def negated(self) -> Bound:
        return replace(self, value=-self.value)

    def __float__(self) -> float:
        return float(self.value)


def make_bound(value: float, model: SOSModel, partition: Partition, weights: Mapping[int, sp.Expr]) -> Bound:
    """Wrap a solved model; weights are resolved to numeric polynomials/scalars."""
    resolved = MappingProxyType({v: model.value(w) for v, w in weights.items()})
    return Bound(value=float(value), model=model, partition=partition, weights=resolved, status=model.status)


def cell_masses(partition: Partition, handles: Mapping[int, object]) -> list[float]:
    """Dual mass of every cell, in the order of `partition.vertices`."""
    return [check_cell(partition.cell(v)).mass(handles[v]) for v in partition.vertices]
