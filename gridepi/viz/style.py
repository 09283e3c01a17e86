"""Dark theme styling for GridEpi visualizations.

Provides consistent colors and a theme-application helper so every plot
has the same look.
"""

import matplotlib as mpl
import matplotlib.pyplot as plt
import numpy as np

from gridepi.types import InfectionState

# ═══════════════════════════════════════════════════════════════════════
# COLOR PALETTE
# ═══════════════════════════════════════════════════════════════════════

DARK_BG = '#1a1a2e'
DARK_PANEL = '#16213e'
TEXT_COLOR = '#e0e0e0'
GRID_COLOR = '#2a2a4a'

# Indexed by InfectionState name
STATE_COLORS = {
    InfectionState.HEALTHY.name:   '#48c9b0',   # teal
    InfectionState.INFECTED.name:  '#e74c3c',   # red
    InfectionState.RECOVERED.name: '#f39c12',   # amber
    InfectionState.IMMUNE.name:    '#3498db',   # sky blue
    InfectionState.DEAD.name:      '#7f8c8d',   # grey
}

# Statistics counter → color
COUNTER_COLORS = {
    'healthy':   STATE_COLORS['HEALTHY'],
    'infected':  STATE_COLORS['INFECTED'],
    'recovered': STATE_COLORS['RECOVERED'],
    'immune':    STATE_COLORS['IMMUNE'],
    'dead':      STATE_COLORS['DEAD'],
}


# ═══════════════════════════════════════════════════════════════════════
# THEME HELPERS
# ═══════════════════════════════════════════════════════════════════════

def apply_dark_theme(fig=None, ax=None):
    """Apply dark theme to a matplotlib Figure and/or Axes."""
    if fig is not None:
        fig.patch.set_facecolor(DARK_BG)
    if ax is not None:
        ax.set_facecolor(DARK_PANEL)
        ax.tick_params(colors=TEXT_COLOR)
        ax.xaxis.label.set_color(TEXT_COLOR)
        ax.yaxis.label.set_color(TEXT_COLOR)
        ax.title.set_color(TEXT_COLOR)
        for spine in ax.spines.values():
            spine.set_color(GRID_COLOR)
        ax.grid(True, color=GRID_COLOR, alpha=0.3, linewidth=0.5)


def dark_figure(nrows=1, ncols=1, figsize=None, **kwargs):
    """Create a Figure + Axes with the dark theme already applied.

    Returns (fig, ax) where ax may be a single Axes or an ndarray.
    """
    if figsize is None:
        figsize = (8, 8) if (nrows == 1 and ncols == 1) else (14, 5 * nrows)
    fig, axes = plt.subplots(nrows, ncols, figsize=figsize, **kwargs)
    apply_dark_theme(fig=fig)
    if isinstance(axes, np.ndarray):
        for a in axes.flat:
            apply_dark_theme(ax=a)
    else:
        apply_dark_theme(ax=axes)
    return fig, axes


def legend_kwargs():
    """Shared legend styling."""
    return dict(facecolor=DARK_PANEL, edgecolor=GRID_COLOR,
                labelcolor=TEXT_COLOR, fontsize=mpl.rcParams['legend.fontsize'])


def save_figure(fig, save_path, dpi=150):
    """Save a figure with tight layout and dark background."""
    fig.tight_layout()
    fig.savefig(save_path, dpi=dpi, facecolor=fig.get_facecolor(),
                edgecolor='none', bbox_inches='tight')
    plt.close(fig)
