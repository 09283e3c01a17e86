"""Simulation driver — repeated rounds with an in-memory statistics history.

The core operations are pure; this module owns the mutable bits a caller
needs to drive them: the current snapshot, the round counter, the RNG
streams and the history of StatisticsRecords. It mirrors the classroom
controls (run one turn, run N turns, reset, tweak parameters between
turns).

Usage:
    sim = Simulation(default_config())
    sim.run(50)
    result = sim.result()
    result.peak_infected
"""

from __future__ import annotations

import copy
import dataclasses
import logging
import warnings
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from gridepi.config import (
    SimulationConfig,
    SimulationParameters,
    default_config,
    validate_config,
    validate_parameters,
)
from gridepi.disease import advance_round
from gridepi.population import create_population
from gridepi.rng import create_rng_hierarchy, restore_rng_state, rng_state_snapshot
from gridepi.stats import compute_statistics
from gridepi.types import ConfigurationError, StatisticsRecord

logger = logging.getLogger(__name__)


@dataclass
class SimulationResult:
    """Results of a run. history[0] describes the initial population."""
    population: np.ndarray
    history: List[StatisticsRecord] = field(default_factory=list)
    snapshots: Optional[List[np.ndarray]] = None
    seed: int = 0

    @property
    def n_rounds(self) -> int:
        return self.history[-1].round if self.history else 0

    @property
    def peak_infected(self) -> int:
        return max((r.infected for r in self.history), default=0)

    @property
    def peak_round(self) -> int:
        """First round at which the infected count peaked."""
        peak = self.peak_infected
        for record in self.history:
            if record.infected == peak:
                return record.round
        return 0


@dataclass
class SimulationCheckpoint:
    """Everything needed to resume a Simulation at a given round."""
    round: int
    population: np.ndarray
    history: List[StatisticsRecord]
    snapshots: Optional[List[np.ndarray]]
    parameters: SimulationParameters
    rng_state: Dict[str, dict]


class Simulation:
    """Stateful driver around create_population / advance_round.

    Args:
        config: Validated SimulationConfig (defaults if None).
        record_snapshots: Keep a copy of every snapshot in memory.
        validate: Check record invariants after every round.
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        record_snapshots: bool = False,
        validate: bool = False,
    ):
        if config is None:
            config = default_config()
        else:
            validate_config(config, stacklevel=3)
            config = copy.deepcopy(config)
        self.config = config
        self.record_snapshots = record_snapshots
        self.validate = validate
        self.reset()

    def reset(self) -> None:
        """Rebuild the population and clear the history."""
        seed = self.config.simulation.seed
        self.rngs = create_rng_hierarchy(seed)
        pop = self.config.population
        # a non-square size was already reported by validate_config
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", UserWarning)
            self._population = create_population(
                pop.size, pop.young_ratio,
                rng=self.rngs['init'],
                initial_infected=pop.initial_infected,
            )
        self._round = 0
        self.history: List[StatisticsRecord] = [compute_statistics(self._population, 0)]
        self.snapshots: Optional[List[np.ndarray]] = (
            [self._population.copy()] if self.record_snapshots else None
        )
        logger.info(
            "New population: size=%d young_ratio=%s initial_infected=%d seed=%d",
            pop.size, pop.young_ratio, pop.initial_infected, seed,
        )

    @property
    def population(self) -> np.ndarray:
        return self._population

    @property
    def round(self) -> int:
        return self._round

    def update_parameters(self, **changes) -> None:
        """Replace transition parameters before the next round.

        Raises:
            ConfigurationError: On unknown names or invalid values.
        """
        valid = {f.name for f in dataclasses.fields(self.config.parameters)}
        unknown = sorted(set(changes) - valid)
        if unknown:
            raise ConfigurationError(f"unknown simulation parameters: {unknown}")
        params = dataclasses.replace(self.config.parameters, **changes)
        validate_parameters(params)
        self.config.parameters = params
        logger.debug("Parameters updated: %s", changes)

    def checkpoint(self) -> SimulationCheckpoint:
        """Capture the current round so it can be replayed with restore()."""
        return SimulationCheckpoint(
            round=self._round,
            population=self._population.copy(),
            history=list(self.history),
            snapshots=([s.copy() for s in self.snapshots]
                       if self.snapshots is not None else None),
            parameters=dataclasses.replace(self.config.parameters),
            rng_state=rng_state_snapshot(self.rngs),
        )

    def restore(self, checkpoint: SimulationCheckpoint) -> None:
        """Rewind to a checkpoint taken from this simulation.

        Rounds run after a restore draw exactly the numbers they drew the
        first time, so unchanged parameters reproduce the same history.
        """
        self._round = checkpoint.round
        self._population = checkpoint.population.copy()
        self.history = list(checkpoint.history)
        if checkpoint.snapshots is not None and self.record_snapshots:
            self.snapshots = [s.copy() for s in checkpoint.snapshots]
        self.config.parameters = dataclasses.replace(checkpoint.parameters)
        restore_rng_state(self.rngs, checkpoint.rng_state)
        logger.debug("Restored checkpoint at round %d", checkpoint.round)

    def step(self) -> StatisticsRecord:
        """Advance one round and record its statistics."""
        self._population = advance_round(
            self._population,
            self.config.parameters,
            rng=self.rngs['rounds'],
            validate=self.validate,
        )
        self._round += 1
        record = compute_statistics(self._population, self._round)
        self.history.append(record)
        if self.snapshots is not None:
            self.snapshots.append(self._population.copy())
        logger.debug(
            "Round %d: infected=%d recovered=%d immune=%d dead=%d",
            record.round, record.infected, record.recovered, record.immune, record.dead,
        )
        return record

    def run(self, n_rounds: int) -> List[StatisticsRecord]:
        """Advance n_rounds rounds. Returns the records they produced."""
        if n_rounds < 0:
            raise ConfigurationError(f"n_rounds must be >= 0, got {n_rounds}")
        return [self.step() for _ in range(n_rounds)]

    def result(self) -> SimulationResult:
        return SimulationResult(
            population=self._population,
            history=list(self.history),
            snapshots=list(self.snapshots) if self.snapshots is not None else None,
            seed=self.config.simulation.seed,
        )


def run_simulation(
    config: Optional[SimulationConfig] = None,
    n_rounds: Optional[int] = None,
    record_snapshots: bool = False,
    validate: bool = False,
) -> SimulationResult:
    """Run a full simulation.

    Args:
        config: Simulation configuration (defaults if None).
        n_rounds: Rounds to run; config.simulation.n_rounds if None.
        record_snapshots: Keep every snapshot in the result.
        validate: Check record invariants after every round.

    Returns:
        SimulationResult.
    """
    sim = Simulation(config, record_snapshots=record_snapshots, validate=validate)
    if n_rounds is None:
        n_rounds = sim.config.simulation.n_rounds
    sim.run(n_rounds)
    result = sim.result()
    logger.info(
        "Finished %d rounds: peak infected %d at round %d",
        result.n_rounds, result.peak_infected, result.peak_round,
    )
    return result
