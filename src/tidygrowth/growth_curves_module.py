#!/usr/bin/env python3
"""Helpers for loading, cleaning and reshaping plate-reader growth curves."""

from __future__ import annotations

import re
import zipfile
from datetime import datetime, time, timedelta
from pathlib import Path
from typing import Callable, Iterable, Sequence
from urllib.error import URLError
from urllib.parse import urlparse

import numpy as np
import pandas as pd
from loguru import logger

from .exceptions import (
    NumericParseError,
    ResourceError,
    TableParseError,
    TimeParseError,
)

URL_SCHEMES = ("http", "https", "ftp", "file")
EXCEL_SUFFIXES = (".xlsx", ".xls", ".xlsm")
TAB_SUFFIXES = (".tsv", ".tab", ".txt")
HMS_PATTERN = re.compile(r"^\s*(\d+):([0-5]?\d):([0-5]?\d(?:\.\d+)?)\s*$")


def _is_url(source: str | Path) -> bool:
    if isinstance(source, Path):
        return False
    return urlparse(str(source)).scheme.lower() in URL_SCHEMES


def _source_suffix(source: str | Path) -> str:
    if _is_url(source):
        return Path(urlparse(str(source)).path).suffix.lower()
    return Path(source).suffix.lower()


def _infer_separator(source: str | Path) -> str:
    return "\t" if _source_suffix(source) in TAB_SUFFIXES else ","


def load_table(
    source: str | Path,
    sep: str | None = None,
    sheet_name: str | int = 0,
    **read_kwargs,
) -> pd.DataFrame:
    """
    Read a delimited table or Excel sheet from a path or URL.

    Columns and rows are kept verbatim and pandas infers the column types.
    ``read_kwargs`` are forwarded to ``pandas.read_csv``/``pandas.read_excel``.
    """
    if not _is_url(source):
        source = Path(source)
        if not source.exists():
            raise ResourceError(f"No such file: {source}", {"source": str(source)})

    suffix = _source_suffix(source)
    try:
        if suffix in EXCEL_SUFFIXES:
            try:
                frame = pd.read_excel(source, sheet_name=sheet_name, **read_kwargs)
            except (ValueError, zipfile.BadZipFile) as exc:
                raise TableParseError(
                    f"Could not parse workbook {source}: {exc}", {"source": str(source)}
                ) from exc
        else:
            frame = pd.read_csv(
                source,
                sep=sep if sep is not None else _infer_separator(source),
                **read_kwargs,
            )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise TableParseError(
            f"Could not parse table from {source}: {exc}", {"source": str(source)}
        ) from exc
    except (URLError, OSError) as exc:
        raise ResourceError(
            f"Could not read {source}: {exc}", {"source": str(source)}
        ) from exc

    if frame.columns.empty:
        raise TableParseError(f"Table at {source} has no columns", {"source": str(source)})
    return frame


def load_measurements(
    source: str | Path,
    time_column: str = "time",
    sep: str | None = None,
    sheet_name: str | int = 0,
) -> pd.DataFrame:
    """
    Load a wide measurement table.

    Delimited sources keep the time column as text. Workbooks keep the native
    cell values (durations, times of day) so ``hms_to_hours`` can read them.
    """
    read_kwargs = {}
    if _source_suffix(source) not in EXCEL_SUFFIXES:
        read_kwargs["dtype"] = {time_column: str}
    frame = load_table(source, sep=sep, sheet_name=sheet_name, **read_kwargs)
    if time_column not in frame.columns:
        raise TableParseError(
            f"Measurement table {source} has no '{time_column}' column",
            {"source": str(source), "columns": list(frame.columns)},
        )
    return frame


def load_design(
    source: str | Path,
    sep: str | None = None,
    sheet_name: str | int = 0,
) -> pd.DataFrame:
    """Load a per-well design table with every column read as text."""
    return load_table(source, sep=sep, sheet_name=sheet_name, dtype=str)


def drop_columns(
    frame: pd.DataFrame,
    columns: Iterable[str],
    errors: str = "raise",
) -> pd.DataFrame:
    """Return ``frame`` without ``columns``; unknown names raise unless ``errors='ignore'``."""
    if errors not in ("raise", "ignore"):
        raise ValueError(f"errors must be 'raise' or 'ignore', got {errors!r}")
    columns = list(columns)
    missing = [col for col in columns if col not in frame.columns]
    if missing and errors == "raise":
        raise KeyError(f"Columns not found: {missing}")
    dropped = set(columns)
    keep = [col for col in frame.columns if col not in dropped]
    return frame[keep].copy()


def select_columns(frame: pd.DataFrame, columns: Iterable[str]) -> pd.DataFrame:
    """Return only ``columns``, in the order they appear in ``frame``."""
    wanted = set(columns)
    missing = wanted.difference(frame.columns)
    if missing:
        raise KeyError(f"Columns not found: {sorted(missing)}")
    return frame[[col for col in frame.columns if col in wanted]].copy()


def filter_rows(
    frame: pd.DataFrame,
    predicate: Callable[[pd.DataFrame], pd.Series],
) -> pd.DataFrame:
    """Keep the rows for which ``predicate(frame)`` is True."""
    mask = predicate(frame)
    mask = pd.Series(mask, index=frame.index).fillna(False).astype(bool)
    return frame.loc[mask].reset_index(drop=True)


def _is_missing(series: pd.Series) -> pd.Series:
    blank_text = series.map(lambda v: isinstance(v, str) and not v.strip())
    return series.isna() | blank_text.astype(bool)


def drop_missing(frame: pd.DataFrame, column: str) -> pd.DataFrame:
    """Remove rows whose ``column`` is missing or blank (instrument padding rows)."""
    if column not in frame.columns:
        raise KeyError(f"Column not found: {column}")
    return filter_rows(frame, lambda df: ~_is_missing(df[column]))


def hms_to_hours(value: object) -> float:
    """Convert an ``HH:MM:SS`` reading to decimal hours."""
    if isinstance(value, str):
        match = HMS_PATTERN.match(value)
        if match is None:
            raise TimeParseError(
                f"Invalid HH:MM:SS time: {value!r}", {"value": value}
            )
        hours, minutes, seconds = match.groups()
        return int(hours) + int(minutes) / 60 + float(seconds) / 3600

    if isinstance(value, timedelta):
        return pd.Timedelta(value).total_seconds() / 3600
    if isinstance(value, np.timedelta64):
        return hms_to_hours(pd.to_timedelta(value))
    if isinstance(value, (pd.Timestamp, datetime)):
        if pd.isna(value):
            raise TimeParseError("Missing time value", {"value": value})
        value = value.time()
    if isinstance(value, time):
        return value.hour + value.minute / 60 + (value.second + value.microsecond / 1e6) / 3600

    raise TimeParseError(f"Invalid HH:MM:SS time: {value!r}", {"value": value})


def normalize_time(
    frame: pd.DataFrame,
    column: str = "time",
    output_column: str | None = None,
    unwrap_midnight: bool = False,
) -> pd.DataFrame:
    """
    Replace the text time ``column`` with decimal hours.

    The new column takes the position of the old one. With ``unwrap_midnight``
    a reading earlier than its predecessor is shifted by 24 h, for instrument
    clocks that report time of day.
    """
    if column not in frame.columns:
        raise KeyError(f"Column not found: {column}")

    hours = []
    for row_idx, value in enumerate(frame[column]):
        try:
            hours.append(hms_to_hours(value))
        except TimeParseError as exc:
            raise exc.with_context({"column": column, "row": row_idx})

    hours_arr = np.asarray(hours, dtype=float)
    if unwrap_midnight:
        for idx in range(1, hours_arr.size):
            if hours_arr[idx] < hours_arr[idx - 1]:
                hours_arr[idx:] += 24

    output = frame.copy()
    position = output.columns.get_loc(column)
    output = output.drop(columns=[column])
    output.insert(position, output_column or column, hours_arr)
    return output


def pivot_longer(
    frame: pd.DataFrame,
    id_columns: str | Sequence[str],
    value_columns: Sequence[str] | None = None,
    names_to: str = "well",
    values_to: str = "value",
) -> pd.DataFrame:
    """
    Reshape a wide table (one column per well) into one row per observation.

    Rows come out in input row order, then in the original column order.
    ``value_columns`` defaults to every column that is not an id column.
    """
    id_columns = [id_columns] if isinstance(id_columns, str) else list(id_columns)
    missing = [col for col in id_columns if col not in frame.columns]
    if missing:
        raise KeyError(f"Columns not found: {missing}")
    if value_columns is None:
        value_columns = [col for col in frame.columns if col not in id_columns]
    value_columns = list(value_columns)
    if not value_columns:
        raise ValueError("Expected at least one value column to reshape")

    long = frame.reset_index(drop=True).melt(
        id_vars=id_columns,
        value_vars=value_columns,
        var_name=names_to,
        value_name=values_to,
        ignore_index=False,
    )
    # melt emits one block per column; a stable sort on the row index interleaves them.
    long = long.sort_index(kind="stable").reset_index(drop=True)
    return long


def pivot_wider(
    long: pd.DataFrame,
    id_columns: str | Sequence[str],
    names_from: str = "well",
    values_from: str = "value",
) -> pd.DataFrame:
    """Inverse of ``pivot_longer``: one row per id, one column per name."""
    id_columns = [id_columns] if isinstance(id_columns, str) else list(id_columns)
    if long.duplicated(subset=id_columns + [names_from]).any():
        raise ValueError(
            f"Duplicate ({', '.join(id_columns)}, {names_from}) pairs; cannot widen"
        )
    names = list(pd.unique(long[names_from]))
    wide = long.pivot(index=id_columns, columns=names_from, values=values_from)
    wide = wide.reindex(columns=names).reset_index()
    wide.columns.name = None
    row_order = long[id_columns].drop_duplicates()
    return row_order.merge(wide, on=id_columns, how="left").reset_index(drop=True)


def coerce_numeric(
    frame: pd.DataFrame,
    column: str,
    errors: str = "raise",
) -> pd.DataFrame:
    """
    Parse ``column`` as numbers.

    ``errors="raise"`` fails on any non-missing entry that is not numeric
    (e.g. an ``OVRFLW`` reading). ``errors="coerce"`` turns those entries into
    NaN and logs a warning with the count and a sample of the values.
    """
    if errors not in ("raise", "coerce"):
        raise ValueError(f"errors must be 'raise' or 'coerce', got {errors!r}")
    if column not in frame.columns:
        raise KeyError(f"Column not found: {column}")

    original = frame[column]
    parsed = pd.to_numeric(original, errors="coerce")
    bad_mask = parsed.isna() & ~_is_missing(original)
    n_bad = int(bad_mask.sum())
    if n_bad:
        samples = sorted({str(v) for v in original[bad_mask]})[:5]
        if errors == "raise":
            raise NumericParseError(
                f"Column '{column}' has {n_bad} non-numeric entries: {samples}",
                {"column": column, "count": n_bad, "samples": samples},
            )
        logger.warning(
            f"Coerced {n_bad} non-numeric entries in '{column}' to NaN: {samples}"
        )

    output = frame.copy()
    output[column] = parsed.astype(float)
    return output


__all__ = [
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
]
