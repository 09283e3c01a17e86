"""Seeded RNG factory for reproducible simulations.

Uses NumPy's SeedSequence → PCG64 hierarchy to guarantee:
  - Statistical independence between the initialization and round streams
  - Bit-exact replay with the same master seed
  - Changing the population size doesn't perturb the round stream's seed

Streams created:
  - 'init':   Population initialization (patient-zero selection)
  - 'rounds': Per-round transition draws
"""

from __future__ import annotations

from typing import Dict

import numpy as np


STREAM_NAMES = ('init', 'rounds')


def create_rng_hierarchy(master_seed: int) -> Dict[str, np.random.Generator]:
    """Create independent RNG streams for initialization and rounds.

    Args:
        master_seed: Master RNG seed (non-negative integer).

    Returns:
        Dictionary mapping stream names to numpy Generator instances.

    Example:
        >>> rngs = create_rng_hierarchy(42)
        >>> rngs['rounds'].random()  # reproducible
    """
    ss = np.random.SeedSequence(master_seed)
    child_seeds = ss.spawn(len(STREAM_NAMES))
    return {
        name: np.random.Generator(np.random.PCG64(child))
        for name, child in zip(STREAM_NAMES, child_seeds)
    }


def rng_state_snapshot(
    rngs: Dict[str, np.random.Generator],
) -> Dict[str, dict]:
    """Bit-generator state of every stream, as used by Simulation.checkpoint()."""
    return {name: rng.bit_generator.state for name, rng in rngs.items()}


def restore_rng_state(
    rngs: Dict[str, np.random.Generator],
    states: Dict[str, dict],
) -> None:
    """Rewind streams to states captured by rng_state_snapshot().

    Streams absent from `states` are left where they are.

    Raises:
        KeyError: On a stream name that `rngs` does not have.
    """
    unknown = sorted(set(states) - set(rngs))
    if unknown:
        raise KeyError(f"no RNG stream named {unknown}")
    for name, state in states.items():
        rngs[name].bit_generator.state = state
