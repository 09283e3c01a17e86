"""Core data types for GridEpi.

This module is the SINGLE SOURCE OF TRUTH for:
  - INDIVIDUAL_DTYPE: NumPy structured array dtype for individuals
  - AgeClass and InfectionState enumerations
  - StatisticsRecord (per-round counters)
  - ConfigurationError / InvariantViolation

All modules import these types from here. No other module defines
individual fields.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Dict

import numpy as np


# ═══════════════════════════════════════════════════════════════════════
# ENUMERATIONS
# ═══════════════════════════════════════════════════════════════════════

class AgeClass(IntEnum):
    """Age class, assigned once at creation."""
    YOUNG = 0
    OLD   = 1


class InfectionState(IntEnum):
    """Mutually exclusive infection states.

    HEALTHY   → INFECTED  (contact transmission or baseline infection)
    INFECTED  → RECOVERED (after recovery_delay_days) → IMMUNE (optional)
    INFECTED  → DEAD      (only when death_rate > 0; terminal)
    IMMUNE    → INFECTED  (waning immunity)
    RECOVERED → INFECTED  (when recovered individuals stay susceptible)
    """
    HEALTHY   = 0
    INFECTED  = 1
    RECOVERED = 2
    IMMUNE    = 3
    DEAD      = 4


N_STATES = len(InfectionState)


# ═══════════════════════════════════════════════════════════════════════
# ERRORS
# ═══════════════════════════════════════════════════════════════════════

class ConfigurationError(ValueError):
    """Invalid caller input (size, percentages, unknown options)."""


class InvariantViolation(AssertionError):
    """An individual record is in an impossible combination of fields."""


# ═══════════════════════════════════════════════════════════════════════
# INDIVIDUAL_DTYPE — Canonical structured array for individuals
# ═══════════════════════════════════════════════════════════════════════

INDIVIDUAL_DTYPE = np.dtype([
    # --- Identity & placement (INIT writes, immutable afterwards) ---
    ('id',                  np.int32),    # dense 0..N-1, creation order
    ('x',                   np.float64),  # logical X in [0, 100)
    ('y',                   np.float64),  # logical Y in [0, 100)
    ('age_class',           np.int8),     # AgeClass enum

    # --- Disease (STEP writes) ---
    ('state',               np.int8),     # InfectionState enum
    ('days_infected',       np.int32),    # rounds spent INFECTED (count-up)
    ('rounds_since_immune', np.int32),    # rounds spent IMMUNE (count-up)
    ('has_been_reinfected', np.bool_),    # set on first IMMUNE → INFECTED
])


def allocate_population(n: int) -> np.ndarray:
    """Allocate a zeroed population array.

    Zeroed records are HEALTHY, YOUNG, at the origin, with all counters
    cleared; ids are filled in creation order.

    Args:
        n: Number of individuals.

    Returns:
        Structured array of shape (n,) with INDIVIDUAL_DTYPE.
    """
    population = np.zeros(n, dtype=INDIVIDUAL_DTYPE)
    population['id'] = np.arange(n, dtype=np.int32)
    return population


# ═══════════════════════════════════════════════════════════════════════
# STATISTICS RECORD
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StatisticsRecord:
    """Counters for one population snapshot, tagged with the round number."""
    round: int
    infected: int = 0
    dead: int = 0
    immune: int = 0
    recovered: int = 0
    healthy: int = 0

    @property
    def total(self) -> int:
        return self.infected + self.dead + self.immune + self.recovered + self.healthy

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


STAT_COUNTERS = ('infected', 'dead', 'immune', 'recovered', 'healthy')
