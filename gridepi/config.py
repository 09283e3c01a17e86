"""Configuration system for GridEpi.

Hierarchical YAML configuration with deep-merge support:
  base.yaml → scenario override → programmatic overrides

Sections map 1:1 to YAML top-level keys:
  simulation:  seed, number of rounds
  population:  size, young ratio, number of patients zero
  parameters:  the per-round SimulationParameters record

Design decisions:
  - Contacts default to the spatial proximity model with a flat
    per-contact probability; the shuffle-pairing model is opt-in.
  - Deaths are modeled iff death_rate > 0.
  - Recovered individuals stay susceptible unless configured otherwise.
"""

from __future__ import annotations

import copy
import dataclasses
import math
import numbers
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from gridepi.types import ConfigurationError


CONTACT_MODELS = ("proximity", "shuffle")


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class SimulationParameters:
    """Per-round transition parameters. Percentages are in [0, 100]."""
    infection_chance: float = 50.0     # per-contact (%), shuffle model only
    death_rate: float = 0.0            # % of resolving infections that die
    immunity_chance: float = 50.0      # % of recoveries that become immune
    flu_season_active: bool = False
    flu_season_multiplier: float = 2.0
    proximity_threshold: float = 10.0  # logical units, both axes
    recovery_delay_days: int = 3
    immunity_reinfection_rounds: int = 40
    contact_model: str = "proximity"
    baseline_infection: bool = True
    recovered_susceptible: bool = True

    @property
    def models_deaths(self) -> bool:
        return self.death_rate > 0


@dataclass
class SimulationSection:
    """Run control."""
    seed: int = 42
    n_rounds: int = 100


@dataclass
class PopulationSection:
    """Population initialization."""
    size: int = 400          # 20 × 20 grid
    young_ratio: float = 50.0
    initial_infected: int = 1


@dataclass
class SimulationConfig:
    """Complete simulation configuration.

    Load from YAML via `load_config()`.
    """
    simulation: SimulationSection = field(default_factory=SimulationSection)
    population: PopulationSection = field(default_factory=PopulationSection)
    parameters: SimulationParameters = field(default_factory=SimulationParameters)


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base. Modifies base in place.

    - Dict values are merged recursively
    - Non-dict values are replaced
    - Keys in override but not base are added

    Returns:
        The merged base dictionary.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _dict_to_section(section_cls, data: Dict, section: str, strict: bool = False) -> Any:
    """Convert a dict to a dataclass.

    Unknown keys raise ConfigurationError when strict, otherwise they are
    dropped with a UserWarning.
    """
    valid_fields = {f.name for f in dataclasses.fields(section_cls)}
    unknown = sorted(set(data) - valid_fields)
    if unknown and strict:
        raise ConfigurationError(f"unknown {section} keys: {unknown}")
    if unknown:
        warnings.warn(
            f"ignoring unknown {section} keys: {unknown}",
            UserWarning,
            stacklevel=4,
        )
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return section_cls(**filtered)


def _yaml_to_config(data: Dict) -> SimulationConfig:
    """Convert a merged YAML dict to a SimulationConfig."""
    section_map = {
        'simulation': SimulationSection,
        'population': PopulationSection,
        'parameters': SimulationParameters,
    }
    extra = sorted(set(data) - set(section_map))
    if extra:
        warnings.warn(
            f"ignoring unknown config sections: {extra}",
            UserWarning,
            stacklevel=3,
        )
    sections = {}
    for key, cls in section_map.items():
        if key in data and isinstance(data[key], dict):
            sections[key] = _dict_to_section(
                cls, data[key], key, strict=(key == 'parameters'),
            )
        else:
            sections[key] = cls()
    return SimulationConfig(**sections)


# ═══════════════════════════════════════════════════════════════════════
# VALIDATION
# ═══════════════════════════════════════════════════════════════════════

def _check_percentage(name: str, value: float) -> None:
    if not (0.0 <= value <= 100.0):
        raise ConfigurationError(f"{name} must be in [0, 100], got {value}")


def _check_integer(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")


def validate_parameters(params: SimulationParameters) -> None:
    """Validate a SimulationParameters record. Raises ConfigurationError."""
    _check_percentage("parameters.infection_chance", params.infection_chance)
    _check_percentage("parameters.death_rate", params.death_rate)
    _check_percentage("parameters.immunity_chance", params.immunity_chance)

    if params.contact_model not in CONTACT_MODELS:
        raise ConfigurationError(
            f"parameters.contact_model must be one of {CONTACT_MODELS}, "
            f"got '{params.contact_model}'"
        )
    if params.flu_season_multiplier < 0:
        raise ConfigurationError(
            f"parameters.flu_season_multiplier must be >= 0, "
            f"got {params.flu_season_multiplier}"
        )
    if params.proximity_threshold <= 0:
        raise ConfigurationError(
            f"parameters.proximity_threshold must be positive, "
            f"got {params.proximity_threshold}"
        )
    _check_integer("parameters.recovery_delay_days", params.recovery_delay_days)
    _check_integer("parameters.immunity_reinfection_rounds",
                   params.immunity_reinfection_rounds)
    if params.recovery_delay_days < 1:
        raise ConfigurationError(
            f"parameters.recovery_delay_days must be >= 1, "
            f"got {params.recovery_delay_days}"
        )
    if params.immunity_reinfection_rounds < 0:
        raise ConfigurationError(
            f"parameters.immunity_reinfection_rounds must be >= 0, "
            f"got {params.immunity_reinfection_rounds}"
        )


def validate_population_inputs(size: int, young_ratio: float,
                               initial_infected: int = 1,
                               stacklevel: int = 3) -> None:
    """Validate population initializer inputs. Raises ConfigurationError.

    A size that is not a perfect square is accepted with a UserWarning:
    the last grid row is then only partially filled. The default
    stacklevel attributes the warning to the caller of the function that
    called this one.
    """
    _check_integer("population size", size)
    if size <= 0:
        raise ConfigurationError(f"population size must be positive, got {size}")
    _check_percentage("young_ratio", young_ratio)
    _check_integer("initial_infected", initial_infected)
    if not (0 <= initial_infected <= size):
        raise ConfigurationError(
            f"initial_infected must be in [0, {size}], got {initial_infected}"
        )
    if math.isqrt(int(size)) ** 2 != size:
        warnings.warn(
            f"population size {size} is not a perfect square; "
            f"the last grid row will be partially filled",
            UserWarning,
            stacklevel=stacklevel,
        )


def validate_config(config: SimulationConfig, stacklevel: int = 2) -> None:
    """Validate configuration constraints. Raises ConfigurationError on failure.

    Args:
        config: Configuration to check.
        stacklevel: Frame that soft warnings are attributed to, counted as
            for warnings.warn from this function (2 = the direct caller).
    """
    if config.simulation.seed < 0:
        raise ConfigurationError("simulation.seed must be non-negative")
    if config.simulation.n_rounds < 0:
        raise ConfigurationError(
            f"simulation.n_rounds must be >= 0, got {config.simulation.n_rounds}"
        )
    pop = config.population
    validate_population_inputs(pop.size, pop.young_ratio, pop.initial_infected,
                               stacklevel=stacklevel + 1)
    validate_parameters(config.parameters)


def load_config(
    base_path: Union[str, Path],
    scenario_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict] = None,
) -> SimulationConfig:
    """Load and merge hierarchical YAML configuration.

    Merge order: base → scenario → overrides.
    Each layer overrides only the fields it specifies.

    Args:
        base_path: Path to base configuration YAML.
        scenario_path: Optional scenario override YAML.
        overrides: Optional dict of parameter overrides.

    Returns:
        Validated SimulationConfig.

    Raises:
        FileNotFoundError: If base_path doesn't exist.
        ConfigurationError: If validation fails.
    """
    base_path = Path(base_path)
    if not base_path.exists():
        raise FileNotFoundError(f"Config file not found: {base_path}")

    with open(base_path) as f:
        config_dict = yaml.safe_load(f) or {}

    if scenario_path is not None:
        scenario_path = Path(scenario_path)
        if scenario_path.exists():
            with open(scenario_path) as f:
                scenario = yaml.safe_load(f) or {}
            deep_merge(config_dict, scenario)

    if overrides is not None:
        deep_merge(config_dict, copy.deepcopy(overrides))

    config = _yaml_to_config(config_dict)
    validate_config(config, stacklevel=3)
    return config


def default_config() -> SimulationConfig:
    """Return a SimulationConfig with all default values."""
    config = SimulationConfig()
    validate_config(config)
    return config
