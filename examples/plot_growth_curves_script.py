"""
Configured pipeline for tidying and plotting a plate-reader growth experiment.

Point ``MEASUREMENTS_SOURCE`` at a wide export (one row per read, one column per
well) and ``DESIGN_SOURCE`` at a per-well design table, then run:

    python plot_growth_curves_script.py

Both sources can be local paths or URLs. The script writes the tidy table and a
faceted chart with one line per replicate.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------

# Wide measurement table exported by the plate reader (path or URL).
MEASUREMENTS_SOURCE = "growth_plate.csv"

# Design table with one row per well (path or URL); set to None to skip merging.
DESIGN_SOURCE = "growth_design.csv"

# Constant instrument columns to discard before reshaping.
DROP_COLUMNS = ("filename", "temperature")

# Name of the HH:MM:SS column in the export.
TIME_COLUMN = "time"

# "raise" stops on readings like OVRFLW; "coerce" turns them into NaN with a warning.
NUMERIC_ERRORS = "raise"

# Design column and values that mark empty/control wells.
EXCLUDE_COLUMN = "strain"
EXCLUDE_VALUES = ("blank",)

# Design factors that define a group of replicate wells.
REPLICATE_BY = ("strain", "treatment")

# Chart output.
PLOT_PATH = "plots/growth_curves.png"
PLOT_WIDTH = 8.0
PLOT_HEIGHT = 6.0
PLOT_DPI = 300
LOG_Y = False

# Optional CSV of the merged tidy table (set to None to disable).
TIDY_CSV = "growth_tidy.csv"

# Also plot mean ± sd across replicates.
SUMMARY_PLOT_PATH = "plots/growth_curves_summary.png"

# ---------------------------------------------------------------------------
# Imports and setup
# ---------------------------------------------------------------------------

import os
from pathlib import Path

# Ensure Matplotlib and fontconfig use writable cache directories even if HOME is read-only.
_MPL_CACHE = Path(".matplotlib_cache")
_XDG_CACHE = Path(".cache")
os.environ.setdefault("MPLCONFIGDIR", str(_MPL_CACHE.resolve()))
os.environ.setdefault("XDG_CACHE_HOME", str(_XDG_CACHE.resolve()))
(_XDG_CACHE / "fontconfig").mkdir(parents=True, exist_ok=True)
_MPL_CACHE.mkdir(parents=True, exist_ok=True)

from tidygrowth import (
    ChartSpec,
    PipelineConfig,
    plot_replicate_summary,
    run_pipeline,
    save_figure,
    summarize_replicates,
)

# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------

_SCRIPT_DIR = Path(__file__).resolve().parent


def _resolve(source: str | None) -> str | Path | None:
    if source is None or "://" in source:
        return source
    path = Path(source)
    return path if path.is_absolute() else _SCRIPT_DIR / path


CONFIG = PipelineConfig(
    measurements_source=_resolve(MEASUREMENTS_SOURCE),
    design_source=_resolve(DESIGN_SOURCE),
    drop_columns=DROP_COLUMNS,
    time_column=TIME_COLUMN,
    numeric_errors=NUMERIC_ERRORS,
    exclude_column=EXCLUDE_COLUMN,
    exclude_values=EXCLUDE_VALUES,
    replicate_by=REPLICATE_BY,
    chart=ChartSpec(
        x=TIME_COLUMN,
        y="value",
        color=("replicate",),
        facet=REPLICATE_BY,
        log_y=LOG_Y,
        xlabel="Time (h)",
        ylabel="OD600",
    ),
    plot_path=Path(PLOT_PATH),
    plot_width=PLOT_WIDTH,
    plot_height=PLOT_HEIGHT,
    plot_dpi=PLOT_DPI,
    tidy_csv=None if TIDY_CSV is None else Path(TIDY_CSV),
)


def main(config: PipelineConfig) -> None:
    tidy = run_pipeline(config)
    if SUMMARY_PLOT_PATH and config.design_source is not None:
        summary = summarize_replicates(
            tidy,
            by=list(REPLICATE_BY),
            time_column=config.time_column,
            value_column=config.value_column,
        )
        spec = ChartSpec(
            x=config.time_column,
            color=REPLICATE_BY[:1],
            facet=REPLICATE_BY[1:],
            log_y=LOG_Y,
            xlabel="Time (h)",
            ylabel="OD600 (mean ± sd)",
        )
        fig = plot_replicate_summary(summary, spec)
        output = save_figure(
            fig, Path(SUMMARY_PLOT_PATH), width=PLOT_WIDTH, height=PLOT_HEIGHT, dpi=PLOT_DPI
        )
        print(f"Wrote summary plot to {output}")


if __name__ == "__main__":
    main(CONFIG)
