"""Population grid and epidemic-curve views.

Every function:
  - Returns a matplotlib Figure
  - Has an optional ``save_path`` parameter (saves PNG when given)
  - Uses the shared dark theme from ``gridepi.viz.style``

matplotlib backend is forced to Agg (no display) on import.
"""

from __future__ import annotations

import matplotlib
matplotlib.use('Agg')

from typing import Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np

from gridepi.stats import statistics_history_to_arrays
from gridepi.types import STAT_COUNTERS, InfectionState, StatisticsRecord
from gridepi.viz.style import (
    COUNTER_COLORS,
    STATE_COLORS,
    dark_figure,
    legend_kwargs,
    save_figure,
)


def plot_population_grid(
    population: np.ndarray,
    max_individuals: Optional[int] = 1000,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Scatter every individual at its grid position, colored by state.

    Args:
        population: Snapshot (INDIVIDUAL_DTYPE).
        max_individuals: Only the first N individuals are drawn; the
            title notes the subset. None draws everyone.
        save_path: Optional path to save figure.

    Returns:
        matplotlib Figure.
    """
    n_total = len(population)
    shown = population if max_individuals is None else population[:max_individuals]

    fig, ax = dark_figure()
    for state in InfectionState:
        mask = shown['state'] == state
        if not np.any(mask):
            continue
        ax.scatter(shown['x'][mask], shown['y'][mask], s=30,
                   color=STATE_COLORS[state.name], label=state.name.title(),
                   edgecolors='none')

    ax.set_xlim(-2, 102)
    ax.set_ylim(102, -2)  # row 0 at the top
    ax.set_aspect('equal')
    title = 'Population'
    if len(shown) < n_total:
        title += f' (showing {len(shown)} of {n_total})'
    ax.set_title(title, fontsize=14, fontweight='bold')
    if len(shown):
        ax.legend(loc='upper right', **legend_kwargs())

    if save_path:
        save_figure(fig, save_path)
    return fig


def plot_statistics_history(
    history: Sequence[StatisticsRecord],
    counters: Optional[Sequence[str]] = None,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Line chart of counters over rounds.

    Args:
        history: Ordered StatisticsRecords.
        counters: Counter names to draw (default: infected, recovered,
            immune, dead).
        save_path: Optional path to save figure.

    Returns:
        matplotlib Figure.

    Raises:
        ValueError: On an unknown counter name.
    """
    if counters is None:
        counters = ('infected', 'recovered', 'immune', 'dead')
    unknown = [c for c in counters if c not in STAT_COUNTERS]
    if unknown:
        raise ValueError(f"unknown counters {unknown}; expected any of {STAT_COUNTERS}")

    columns = statistics_history_to_arrays(history)
    fig, ax = dark_figure(figsize=(12, 6))
    for name in counters:
        ax.plot(columns['round'], columns[name], color=COUNTER_COLORS[name],
                linewidth=2, label=name.title())

    ax.set_xlabel('Round', fontsize=12)
    ax.set_ylabel('Individuals', fontsize=12)
    ax.set_title('Epidemic Curve', fontsize=15, fontweight='bold')
    ax.set_ylim(bottom=0)
    ax.legend(loc='upper right', **legend_kwargs())

    if save_path:
        save_figure(fig, save_path)
    return fig
