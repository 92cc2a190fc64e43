"""High-level pipeline for tidying, annotating and plotting growth curves."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import pandas as pd

from .growth_curves_module import (
    coerce_numeric,
    drop_columns,
    drop_missing,
    load_design,
    load_measurements,
    normalize_time,
    pivot_longer,
)
from .pipeline_utils import merge_design, number_replicates
from .plotting import ChartSpec, plot_growth_curves, save_figure


def _as_source(value: str | Path) -> str | Path:
    if isinstance(value, str) and "://" in value:
        return value
    return Path(value)


@dataclass
class PipelineConfig:
    """User-tunable knobs for the growth-curve pipeline."""

    measurements_source: str | Path
    design_source: str | Path | None = None
    drop_columns: Sequence[str] = ("filename", "temperature")
    time_column: str = "time"
    well_column: str = "well"
    value_column: str = "value"
    unwrap_midnight: bool = False
    numeric_errors: str = "raise"
    exclude_column: str | None = "strain"
    exclude_values: Sequence[str] = ("blank",)
    on_unmatched: str = "raise"
    canonicalize_wells: bool = True
    replicate_by: Sequence[str] = ("strain", "treatment")
    replicate_column: str = "replicate"
    chart: ChartSpec | None = None
    plot_path: Path | None = Path("plots/growth_curves.png")
    plot_width: float = 8.0
    plot_height: float = 6.0
    plot_dpi: float = 300
    plot_units: str = "in"
    tidy_csv: Path | None = None

    def __post_init__(self) -> None:
        self.measurements_source = _as_source(self.measurements_source)
        if self.design_source is not None:
            self.design_source = _as_source(self.design_source)
        if self.plot_path is not None:
            self.plot_path = Path(self.plot_path)
        if self.tidy_csv is not None:
            self.tidy_csv = Path(self.tidy_csv)
        if self.numeric_errors not in ("raise", "coerce"):
            raise ValueError(
                f"numeric_errors must be 'raise' or 'coerce', got {self.numeric_errors!r}"
            )

    def resolve_chart(self, columns: Sequence[str] | None = None) -> ChartSpec:
        """
        Return ``chart``, or a default suited to whether a design is merged.

        With a design, replicates are coloured within facets of the design
        factors; without one, each well gets its own colour. Design factors absent
        from ``columns`` are left out of the facets.
        """
        if self.chart is not None:
            return self.chart
        if self.design_source is None:
            return ChartSpec(x=self.time_column, y=self.value_column, color=self.well_column)
        return ChartSpec(
            x=self.time_column,
            y=self.value_column,
            color=self.replicate_column,
            facet=[
                col for col in self.replicate_by if columns is None or col in columns
            ],
        )


def tidy_measurements(frame: pd.DataFrame, config: PipelineConfig) -> pd.DataFrame:
    """
    Turn a wide instrument export into a long ``{time, well, value}`` table.
    """
    # Filename/temperature columns are constant and would otherwise be treated as wells.
    pruned = drop_columns(frame, config.drop_columns)
    # Instruments pad the export with empty rows after the last read.
    filtered = drop_missing(pruned, config.time_column)
    timed = normalize_time(
        filtered,
        column=config.time_column,
        unwrap_midnight=config.unwrap_midnight,
    )
    long = pivot_longer(
        timed,
        id_columns=config.time_column,
        names_to=config.well_column,
        values_to=config.value_column,
    )
    return coerce_numeric(long, config.value_column, errors=config.numeric_errors)


def run_pipeline(config: PipelineConfig) -> pd.DataFrame:
    """
    Execute the configured pipeline and return the merged, tidy dataframe.
    """
    print(f"Loading measurements from {config.measurements_source} ...")
    wide = load_measurements(config.measurements_source, time_column=config.time_column)
    tidy = tidy_measurements(wide, config)
    print(f"Tidied {tidy[config.well_column].nunique()} wells into {len(tidy)} rows")

    if config.design_source is not None:
        print(f"Merging design from {config.design_source} ...")
        # Sheet exports often end with empty rows that have no well label.
        design = drop_missing(load_design(config.design_source), config.well_column)
        tidy = merge_design(
            tidy,
            design,
            on=config.well_column,
            exclude_column=config.exclude_column,
            exclude_values=config.exclude_values,
            on_unmatched=config.on_unmatched,
            canonicalize_wells=config.canonicalize_wells,
        )
        replicate_by = [col for col in config.replicate_by if col in tidy.columns]
        tidy = number_replicates(
            tidy,
            by=replicate_by,
            time_column=config.time_column,
            replicate_column=config.replicate_column,
        )

    if config.tidy_csv is not None:
        config.tidy_csv.parent.mkdir(parents=True, exist_ok=True)
        tidy.to_csv(config.tidy_csv, index=False)
        print(f"Wrote tidy table to {config.tidy_csv}")

    if config.plot_path is not None:
        fig = plot_growth_curves(tidy, config.resolve_chart(list(tidy.columns)))
        save_figure(
            fig,
            config.plot_path,
            width=config.plot_width,
            height=config.plot_height,
            dpi=config.plot_dpi,
            units=config.plot_units,
        )
        print(f"Wrote plot to {config.plot_path}")

    print("Done.")
    return tidy


__all__ = ["PipelineConfig", "run_pipeline", "tidy_measurements"]
