"""GridEpi: agent-based epidemic model on a fixed 2-D grid.

A classroom model in which every round each individual may:
  - resolve an infection (recover, optionally become immune, or die)
  - lose immunity after a configured number of rounds
  - catch the disease from infected neighbours within a proximity threshold
  - catch it from a small age-dependent background rate

Core operations:
  create_population → advance_round (repeated) → compute_statistics
"""

__version__ = "0.1.0"

from gridepi.config import SimulationParameters  # noqa: F401
from gridepi.disease import advance_round  # noqa: F401
from gridepi.population import create_population  # noqa: F401
from gridepi.stats import compute_statistics  # noqa: F401
from gridepi.types import (  # noqa: F401
    AgeClass,
    ConfigurationError,
    InfectionState,
    InvariantViolation,
    StatisticsRecord,
)
