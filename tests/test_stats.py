"""Tests for gridepi.stats — statistics aggregation."""

import numpy as np
import pytest

from gridepi.population import create_population
from gridepi.stats import compute_statistics, statistics_history_to_arrays
from gridepi.types import InfectionState, StatisticsRecord, allocate_population


@pytest.fixture
def mixed_population():
    pop = allocate_population(10)
    pop['state'] = [
        InfectionState.HEALTHY, InfectionState.HEALTHY, InfectionState.HEALTHY,
        InfectionState.INFECTED, InfectionState.INFECTED,
        InfectionState.RECOVERED,
        InfectionState.IMMUNE, InfectionState.IMMUNE, InfectionState.IMMUNE,
        InfectionState.DEAD,
    ]
    return pop


class TestComputeStatistics:
    def test_counts(self, mixed_population):
        rec = compute_statistics(mixed_population, 7)
        assert rec == StatisticsRecord(round=7, infected=2, dead=1, immune=3,
                                       recovered=1, healthy=3)

    def test_partition(self, mixed_population):
        assert compute_statistics(mixed_population, 0).total == len(mixed_population)

    def test_round_passed_through(self, mixed_population):
        assert compute_statistics(mixed_population, 123).round == 123

    def test_plain_ints(self, mixed_population):
        rec = compute_statistics(mixed_population, np.int64(2))
        assert type(rec.round) is int
        assert type(rec.infected) is int

    def test_initial_population(self):
        pop = create_population(100, 50, rng=np.random.default_rng(0))
        rec = compute_statistics(pop, 0)
        assert rec.infected == 1
        assert rec.healthy == 99
        assert rec.dead == rec.immune == rec.recovered == 0

    def test_no_side_effects(self, mixed_population):
        before = mixed_population.copy()
        compute_statistics(mixed_population, 1)
        np.testing.assert_array_equal(mixed_population, before)

    def test_empty(self):
        rec = compute_statistics(allocate_population(0), 0)
        assert rec.total == 0


class TestHistoryToArrays:
    def test_columns(self):
        history = [
            StatisticsRecord(round=0, infected=1, healthy=9),
            StatisticsRecord(round=1, infected=3, healthy=7),
            StatisticsRecord(round=2, infected=2, recovered=1, healthy=7),
        ]
        cols = statistics_history_to_arrays(history)
        np.testing.assert_array_equal(cols['round'], [0, 1, 2])
        np.testing.assert_array_equal(cols['infected'], [1, 3, 2])
        np.testing.assert_array_equal(cols['recovered'], [0, 0, 1])
        assert set(cols) == {'round', 'infected', 'dead', 'immune', 'recovered', 'healthy'}

    def test_empty_history(self):
        cols = statistics_history_to_arrays([])
        assert len(cols['round']) == 0
