"""Tests for gridepi.model — simulation driver and run results."""

import logging

import numpy as np
import pytest

from gridepi.config import (
    PopulationSection,
    SimulationConfig,
    SimulationParameters,
    SimulationSection,
)
from gridepi.model import Simulation, SimulationResult, run_simulation
from gridepi.types import ConfigurationError, InfectionState, StatisticsRecord


@pytest.fixture
def small_config() -> SimulationConfig:
    return SimulationConfig(
        simulation=SimulationSection(seed=7, n_rounds=20),
        population=PopulationSection(size=100, young_ratio=50, initial_infected=3),
        parameters=SimulationParameters(death_rate=20),
    )


class TestSimulation:
    def test_initial_history(self, small_config):
        sim = Simulation(small_config)
        assert sim.round == 0
        assert len(sim.history) == 1
        assert sim.history[0].round == 0
        assert sim.history[0].infected == 3

    def test_step(self, small_config):
        sim = Simulation(small_config)
        record = sim.step()
        assert isinstance(record, StatisticsRecord)
        assert record.round == 1
        assert sim.round == 1
        assert sim.history[-1] is record

    def test_run(self, small_config):
        sim = Simulation(small_config)
        records = sim.run(10)
        assert [r.round for r in records] == list(range(1, 11))
        assert len(sim.history) == 11

    def test_run_zero_rounds(self, small_config):
        sim = Simulation(small_config)
        assert sim.run(0) == []

    def test_run_negative_rounds(self, small_config):
        with pytest.raises(ConfigurationError, match="n_rounds"):
            Simulation(small_config).run(-1)

    def test_partition_every_round(self, small_config):
        sim = Simulation(small_config, validate=True)
        sim.run(40)
        assert all(r.total == 100 for r in sim.history)

    def test_reset_restores_initial_state(self, small_config):
        sim = Simulation(small_config)
        first = sim.population.copy()
        sim.run(5)
        sim.reset()
        assert sim.round == 0
        assert len(sim.history) == 1
        np.testing.assert_array_equal(sim.population, first)

    def test_same_seed_same_history(self, small_config):
        a = Simulation(small_config)
        b = Simulation(small_config)
        a.run(15)
        b.run(15)
        assert a.history == b.history
        assert a.population.tobytes() == b.population.tobytes()

    def test_reset_replays_run(self, small_config):
        sim = Simulation(small_config)
        sim.run(10)
        first = list(sim.history)
        sim.reset()
        sim.run(10)
        assert sim.history == first

    def test_update_parameters(self, small_config):
        sim = Simulation(small_config)
        sim.update_parameters(flu_season_active=True, infection_chance=10)
        assert sim.config.parameters.flu_season_active is True
        assert sim.config.parameters.infection_chance == 10

    def test_update_parameters_does_not_touch_caller_config(self, small_config):
        sim = Simulation(small_config)
        sim.update_parameters(immunity_chance=90)
        assert small_config.parameters.immunity_chance == 50.0

    def test_update_unknown_parameter(self, small_config):
        sim = Simulation(small_config)
        with pytest.raises(ConfigurationError, match="bogus"):
            sim.update_parameters(bogus=1)

    def test_update_invalid_value(self, small_config):
        sim = Simulation(small_config)
        with pytest.raises(ConfigurationError, match="death_rate"):
            sim.update_parameters(death_rate=-5)
        assert sim.config.parameters.death_rate == 20

    def test_invalid_config_rejected(self):
        config = SimulationConfig(population=PopulationSection(size=-1))
        with pytest.raises(ConfigurationError):
            Simulation(config)

    def test_default_config(self):
        sim = Simulation()
        assert len(sim.population) == 400

    def test_snapshots_recorded(self, small_config):
        sim = Simulation(small_config, record_snapshots=True)
        sim.run(4)
        assert len(sim.snapshots) == 5
        assert sim.snapshots[-1].tobytes() == sim.population.tobytes()
        assert sim.snapshots[0] is not sim.snapshots[1]

    def test_snapshots_off_by_default(self, small_config):
        sim = Simulation(small_config)
        sim.step()
        assert sim.snapshots is None

    def test_non_square_size_warns_once_at_caller(self, small_config):
        small_config.population.size = 90
        with pytest.warns(UserWarning, match="not a perfect square") as record:
            Simulation(small_config)
        assert len(record) == 1
        assert record[0].filename == __file__

    def test_logs_rounds(self, small_config, caplog):
        sim = Simulation(small_config)
        with caplog.at_level(logging.DEBUG, logger="gridepi.model"):
            sim.step()
        assert "Round 1" in caplog.text


class TestCheckpoint:
    def test_restore_replays_rounds(self, small_config):
        sim = Simulation(small_config)
        sim.run(5)
        saved = sim.checkpoint()
        sim.run(10)
        first = list(sim.history)
        population = sim.population.copy()

        sim.restore(saved)
        assert sim.round == 5
        assert len(sim.history) == 6
        sim.run(10)
        assert sim.history == first
        assert sim.population.tobytes() == population.tobytes()

    def test_checkpoint_is_independent(self, small_config):
        sim = Simulation(small_config)
        saved = sim.checkpoint()
        before = saved.population.copy()
        assert saved.population is not sim.population
        sim.run(3)
        sim.population['state'][:] = InfectionState.DEAD
        assert saved.round == 0
        assert len(saved.history) == 1
        np.testing.assert_array_equal(saved.population, before)

    def test_restore_reinstates_parameters(self, small_config):
        sim = Simulation(small_config)
        saved = sim.checkpoint()
        sim.update_parameters(flu_season_active=True)
        sim.restore(saved)
        assert sim.config.parameters.flu_season_active is False

    def test_parameters_can_change_after_restore(self, small_config):
        sim = Simulation(small_config)
        sim.run(2)
        saved = sim.checkpoint()
        sim.restore(saved)
        sim.update_parameters(death_rate=100, recovery_delay_days=1)
        sim.run(1)
        assert sim.history[-1].dead >= sim.history[2].infected

    def test_restore_snapshots(self, small_config):
        sim = Simulation(small_config, record_snapshots=True)
        sim.run(2)
        saved = sim.checkpoint()
        sim.run(3)
        sim.restore(saved)
        assert len(sim.snapshots) == 3


class TestSimulationResult:
    def test_peaks(self):
        history = [
            StatisticsRecord(round=0, infected=1),
            StatisticsRecord(round=1, infected=4),
            StatisticsRecord(round=2, infected=4),
            StatisticsRecord(round=3, infected=2),
        ]
        result = SimulationResult(population=np.zeros(0), history=history)
        assert result.peak_infected == 4
        assert result.peak_round == 1
        assert result.n_rounds == 3

    def test_empty(self):
        result = SimulationResult(population=np.zeros(0))
        assert result.peak_infected == 0
        assert result.peak_round == 0
        assert result.n_rounds == 0


class TestRunSimulation:
    def test_uses_config_rounds(self, small_config):
        result = run_simulation(small_config)
        assert result.n_rounds == 20
        assert len(result.history) == 21
        assert result.seed == 7

    def test_explicit_rounds(self, small_config):
        assert run_simulation(small_config, n_rounds=5).n_rounds == 5

    def test_reproducible(self, small_config):
        a = run_simulation(small_config, validate=True)
        b = run_simulation(small_config)
        assert a.history == b.history

    def test_different_seeds_differ(self, small_config):
        a = run_simulation(small_config, n_rounds=30)
        small_config.simulation.seed = 8
        b = run_simulation(small_config, n_rounds=30)
        assert a.history != b.history

    def test_snapshots(self, small_config):
        result = run_simulation(small_config, n_rounds=3, record_snapshots=True)
        assert len(result.snapshots) == 4

    def test_deaths_counted(self, small_config):
        small_config.parameters = SimulationParameters(death_rate=100)
        result = run_simulation(small_config, n_rounds=10)
        assert result.history[-1].dead > 0
        assert np.count_nonzero(result.population['state'] == InfectionState.DEAD) == result.history[-1].dead
