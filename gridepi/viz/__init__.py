"""GridEpi visualization library.

Modules:
  - style: Dark theme colours and helpers
  - disease: Population grid and epidemic curve
"""

from gridepi.viz.style import (  # noqa: F401
    COUNTER_COLORS,
    DARK_BG,
    DARK_PANEL,
    GRID_COLOR,
    STATE_COLORS,
    TEXT_COLOR,
    apply_dark_theme,
    dark_figure,
    save_figure,
)

from gridepi.viz.disease import (  # noqa: F401
    plot_population_grid,
    plot_statistics_history,
)
