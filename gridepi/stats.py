"""Statistics aggregation — population snapshot → per-round counters."""

from __future__ import annotations

from typing import Dict, Sequence

import numpy as np

from gridepi.types import N_STATES, STAT_COUNTERS, InfectionState, StatisticsRecord


def compute_statistics(population: np.ndarray, round: int) -> StatisticsRecord:
    """Count individuals by infection state.

    Args:
        population: Snapshot (INDIVIDUAL_DTYPE).
        round: Caller-supplied sequence number, stored as-is.

    Returns:
        Immutable StatisticsRecord.
    """
    counts = np.bincount(population['state'].astype(np.intp), minlength=N_STATES)
    return StatisticsRecord(
        round=int(round),
        infected=int(counts[InfectionState.INFECTED]),
        dead=int(counts[InfectionState.DEAD]),
        immune=int(counts[InfectionState.IMMUNE]),
        recovered=int(counts[InfectionState.RECOVERED]),
        healthy=int(counts[InfectionState.HEALTHY]),
    )


def statistics_history_to_arrays(
    history: Sequence[StatisticsRecord],
) -> Dict[str, np.ndarray]:
    """Column view of a statistics history, for plotting and tables.

    Returns:
        Dict with a 'round' array plus one int array per counter.
    """
    columns = {'round': np.array([r.round for r in history], dtype=np.int64)}
    for name in STAT_COUNTERS:
        columns[name] = np.array([getattr(r, name) for r in history], dtype=np.int64)
    return columns
