"""Tidygrowth package exposing growth-curve tidying and plotting helpers."""

from .exceptions import (
    JoinIntegrityError,
    NumericParseError,
    ResourceError,
    TableParseError,
    TidyGrowthError,
    TimeParseError,
)
from .growth_curves_module import (
    coerce_numeric,
    drop_columns,
    drop_missing,
    filter_rows,
    hms_to_hours,
    load_design,
    load_measurements,
    load_table,
    normalize_time,
    pivot_longer,
    pivot_wider,
    select_columns,
)
from .pipeline import PipelineConfig, run_pipeline, tidy_measurements
from .pipeline_utils import (
    canonical_well,
    merge_design,
    number_replicates,
    split_well,
    summarize_replicates,
)
from .plotting import (
    ChartSpec,
    plot_growth_curves,
    plot_replicate_summary,
    save_figure,
)

__all__ = [
    "TidyGrowthError",
    "ResourceError",
    "TableParseError",
    "TimeParseError",
    "NumericParseError",
    "JoinIntegrityError",
    "load_table",
    "load_measurements",
    "load_design",
    "drop_columns",
    "select_columns",
    "filter_rows",
    "drop_missing",
    "hms_to_hours",
    "normalize_time",
    "pivot_longer",
    "pivot_wider",
    "coerce_numeric",
    "canonical_well",
    "split_well",
    "merge_design",
    "number_replicates",
    "summarize_replicates",
    "ChartSpec",
    "plot_growth_curves",
    "plot_replicate_summary",
    "save_figure",
    "PipelineConfig",
    "run_pipeline",
    "tidy_measurements",
]
