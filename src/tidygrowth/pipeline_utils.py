"""Well labels, design merging and replicate helpers shared by the pipeline."""

from __future__ import annotations

from typing import Iterable, Sequence

import pandas as pd
from loguru import logger

from .exceptions import JoinIntegrityError


def split_well(well: str) -> tuple[str, int]:
    """Split a label like ``B7`` into its row letter and column number."""
    well = str(well).strip().upper()
    if not well:
        raise ValueError("Empty well label")
    row = well[0]
    col_part = well[1:]
    if not row.isalpha() or not col_part.isdigit():
        raise ValueError(f"Invalid well label: {well}")
    return row, int(col_part)


def canonical_well(well: str) -> str:
    """Return ``well`` as row letter + unpadded column, e.g. ``a01`` -> ``A1``."""
    row, col = split_well(well)
    return f"{row}{col}"


def well_sort_key(well: str) -> tuple[str, int]:
    """Sort key ordering wells A1, A2, ..., A12, B1 rather than lexically."""
    try:
        return split_well(well)
    except ValueError:
        return str(well), -1


def _as_list(fields: str | Sequence[str] | None) -> list[str]:
    if fields is None:
        return []
    if isinstance(fields, str):
        return [fields]
    return list(fields)


def _canonical_keys(keys: pd.Series, table_name: str) -> pd.Series:
    bad = []
    for key in pd.unique(keys):
        if pd.isna(key):
            bad.append(None)
            continue
        try:
            canonical_well(key)
        except ValueError:
            bad.append(str(key))
    if bad:
        raise JoinIntegrityError(
            f"The {table_name} table has {len(bad)} invalid well labels: {bad}",
            {"column": keys.name, "table": table_name, "invalid": bad},
        )
    return keys.map(canonical_well)


def merge_design(
    measurements: pd.DataFrame,
    design: pd.DataFrame,
    on: str = "well",
    exclude_column: str | None = "strain",
    exclude_values: str | Iterable[str] = ("blank",),
    on_unmatched: str = "raise",
    canonicalize_wells: bool = False,
) -> pd.DataFrame:
    """
    Attach per-well design factors to the long measurement table.

    Duplicate keys in ``design`` always raise ``JoinIntegrityError``. Wells
    measured but missing from ``design`` raise when ``on_unmatched='raise'``
    or are kept with empty factors (and logged) when ``on_unmatched='warn'``.
    Rows whose ``exclude_column`` equals one of ``exclude_values`` are removed.
    """
    if on_unmatched not in ("raise", "warn"):
        raise ValueError(f"on_unmatched must be 'raise' or 'warn', got {on_unmatched!r}")
    for name, table in (("measurement", measurements), ("design", design)):
        if on not in table.columns:
            raise KeyError(f"The {name} table has no '{on}' column")
    if exclude_column is not None and exclude_column not in design.columns:
        raise KeyError(f"The design table has no '{exclude_column}' column")

    measurements = measurements.copy()
    design = design.copy()
    if canonicalize_wells:
        measurements[on] = _canonical_keys(measurements[on], "measurement")
        design[on] = _canonical_keys(design[on], "design")

    duplicated = design.loc[design[on].duplicated(keep=False), on]
    if not duplicated.empty:
        dupes = sorted(set(duplicated.astype(str)))
        raise JoinIntegrityError(
            f"Design table lists {len(dupes)} '{on}' values more than once: {dupes}",
            {"column": on, "duplicates": dupes},
        )

    design_keys = set(design[on])
    measured_keys = list(pd.unique(measurements[on]))
    unmatched = [key for key in measured_keys if key not in design_keys]
    if unmatched:
        message = (
            f"{len(unmatched)} measured '{on}' values have no design entry: "
            f"{[str(key) for key in unmatched]}"
        )
        if on_unmatched == "raise":
            raise JoinIntegrityError(message, {"column": on, "unmatched": unmatched})
        logger.warning(message)

    unused = sorted(str(key) for key in design_keys.difference(measured_keys))
    if unused:
        logger.debug(f"Design entries without measurements: {unused}")

    merged = measurements.merge(design, on=on, how="left", validate="many_to_one")

    if exclude_column is not None:
        if isinstance(exclude_values, str):
            exclude_values = [exclude_values]
        excluded = merged[exclude_column].isin(list(exclude_values))
        n_excluded = int(excluded.sum())
        if n_excluded:
            logger.info(
                f"Excluded {n_excluded} rows where '{exclude_column}' is one of "
                f"{list(exclude_values)}"
            )
        merged = merged.loc[~excluded]
    return merged.reset_index(drop=True)


def number_replicates(
    frame: pd.DataFrame,
    by: str | Sequence[str],
    time_column: str = "time",
    replicate_column: str = "replicate",
) -> pd.DataFrame:
    """
    Number rows 1..k within each (``by``..., ``time_column``) group in row order.

    The numbers only separate overlapping lines in a chart; they are not a
    replicate identity and can change when the input order changes.
    """
    keys = _as_list(by) + [time_column]
    missing = [col for col in keys if col not in frame.columns]
    if missing:
        raise KeyError(f"Columns not found: {missing}")
    output = frame.copy()
    output[replicate_column] = (
        output.groupby(keys, sort=False, dropna=False).cumcount() + 1
    ).astype(int)
    return output


def summarize_replicates(
    frame: pd.DataFrame,
    by: str | Sequence[str],
    time_column: str = "time",
    value_column: str = "value",
) -> pd.DataFrame:
    """Return mean, sd and n of ``value_column`` per (``by``..., time) group."""
    keys = _as_list(by) + [time_column]
    missing = [col for col in keys + [value_column] if col not in frame.columns]
    if missing:
        raise KeyError(f"Columns not found: {missing}")
    summary = (
        frame.groupby(keys, sort=True, dropna=False)[value_column]
        .agg(mean="mean", sd="std", n="count")
        .reset_index()
    )
    summary["n"] = summary["n"].astype(int)
    return summary


__all__ = [
    "split_well",
    "canonical_well",
    "well_sort_key",
    "merge_design",
    "number_replicates",
    "summarize_replicates",
]
