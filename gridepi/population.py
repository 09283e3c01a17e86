"""Population initialization and record invariants.

Individuals are laid out on a regular grid spanning [0, 100) in both
axes. Row width is w = floor(sqrt(size)); individual i sits at

    x = 100 * (i mod w) / w
    y = 100 * floor(i / w) / n_rows

where n_rows = ceil(size / w). For perfect squares n_rows == w, so the
layout is the exact w × w grid.

Age classes are assigned by index, not at random: the first
floor(young_ratio/100 * size) individuals are YOUNG, the rest OLD.
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

from gridepi.config import validate_population_inputs
from gridepi.types import (
    AgeClass,
    InfectionState,
    InvariantViolation,
    N_STATES,
    allocate_population,
)


def grid_positions(size: int) -> tuple:
    """Grid coordinates for `size` individuals in creation order.

    Returns:
        (x, y) float64 arrays of shape (size,).
    """
    w = max(math.isqrt(size), 1)
    n_rows = -(-size // w)
    idx = np.arange(size)
    x = 100.0 * (idx % w) / w
    y = 100.0 * (idx // w) / n_rows
    return x, y


def create_population(
    size: int,
    young_ratio: float,
    rng: Optional[np.random.Generator] = None,
    initial_infected: int = 1,
) -> np.ndarray:
    """Build the initial population.

    Args:
        size: Number of individuals (positive; ideally a perfect square).
        young_ratio: Percentage [0, 100] of individuals that are YOUNG.
        rng: Random generator used to pick patients zero. A fresh,
            unseeded generator is used if None.
        initial_infected: Number of distinct patients zero.

    Returns:
        Structured array with INDIVIDUAL_DTYPE.

    Raises:
        ConfigurationError: On invalid size, ratio or seed count.
    """
    validate_population_inputs(size, young_ratio, initial_infected)
    if rng is None:
        rng = np.random.default_rng()

    population = allocate_population(size)
    population['x'], population['y'] = grid_positions(size)

    n_young = int(math.floor(young_ratio / 100.0 * size))
    population['age_class'][:n_young] = AgeClass.YOUNG
    population['age_class'][n_young:] = AgeClass.OLD

    population['state'] = InfectionState.HEALTHY
    if initial_infected > 0:
        patients = rng.choice(size, size=initial_infected, replace=False)
        population['state'][patients] = InfectionState.INFECTED
        population['days_infected'][patients] = 0

    return population


def check_invariants(
    population: np.ndarray,
    reference: Optional[np.ndarray] = None,
) -> None:
    """Verify per-record invariants.

    Args:
        population: Snapshot to check.
        reference: Optional earlier snapshot of the same run; when given,
            ids, positions and age classes must be unchanged and DEAD
            records must be identical.

    Raises:
        InvariantViolation: On the first broken invariant.
    """
    n = len(population)
    state = population['state']

    if not np.array_equal(population['id'], np.arange(n)):
        raise InvariantViolation("ids must be dense 0..N-1 in creation order")
    if np.any((state < 0) | (state >= N_STATES)):
        raise InvariantViolation("unknown infection state")
    if np.any((population['days_infected'] != 0) & (state != InfectionState.INFECTED)):
        raise InvariantViolation("days_infected nonzero outside INFECTED")
    if np.any((population['rounds_since_immune'] != 0) & (state != InfectionState.IMMUNE)):
        raise InvariantViolation("rounds_since_immune nonzero outside IMMUNE")
    if np.any(population['days_infected'] < 0) or np.any(population['rounds_since_immune'] < 0):
        raise InvariantViolation("negative counter")

    if reference is None:
        return
    if len(reference) != n:
        raise InvariantViolation(
            f"population size changed from {len(reference)} to {n}"
        )
    for name in ('x', 'y', 'age_class'):
        if not np.array_equal(population[name], reference[name]):
            raise InvariantViolation(f"immutable field '{name}' changed")
    was_dead = reference['state'] == InfectionState.DEAD
    if not np.array_equal(population[was_dead], reference[was_dead]):
        raise InvariantViolation("a DEAD record changed")
