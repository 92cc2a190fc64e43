"""Line charts of tidy growth-curve tables."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Sequence

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.figure import Figure

from .pipeline_utils import well_sort_key

UNIT_PER_INCH = {"in": 1.0, "cm": 2.54, "mm": 25.4}


@dataclass
class ChartSpec:
    """Which columns drive the axes, colours, facets and line identity."""

    x: str = "time"
    y: str = "value"
    color: Sequence[str] = field(default_factory=tuple)
    facet: Sequence[str] = field(default_factory=tuple)
    group: Sequence[str] = field(default_factory=tuple)
    log_y: bool = False
    title: str | None = None
    xlabel: str | None = None
    ylabel: str | None = None
    ncols: int = 3
    cmap: str = "tab10"
    linewidth: float = 1.0
    marker: str | None = None

    def __post_init__(self) -> None:
        self.color = _as_tuple(self.color)
        self.facet = _as_tuple(self.facet)
        self.group = _as_tuple(self.group)
        if self.ncols < 1:
            raise ValueError("ncols must be at least 1")

    def required_columns(self) -> list[str]:
        fields = [self.x, self.y, *self.color, *self.facet, *self.group]
        return list(dict.fromkeys(fields))


def _as_tuple(fields: str | Sequence[str] | None) -> tuple[str, ...]:
    if fields is None:
        return ()
    if isinstance(fields, str):
        return (fields,)
    return tuple(fields)


def _check_columns(frame: pd.DataFrame, columns: Sequence[str]) -> None:
    missing = [col for col in columns if col not in frame.columns]
    if missing:
        raise KeyError(f"Columns not found for plotting: {missing}")


def _key_label(fields: Sequence[str], key: tuple) -> str:
    if len(fields) == 1:
        return str(key[0])
    return ", ".join(f"{name}={value}" for name, value in zip(fields, key))


def _value_sort_key(value: object) -> tuple:
    if pd.isna(value):
        return (2, 0.0, "", -1)
    if isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool):
        return (0, float(value), "", -1)
    return (1, 0.0, *well_sort_key(str(value)))


def _level_sort_key(key: tuple) -> tuple:
    return tuple(_value_sort_key(value) for value in key)


def _levels(frame: pd.DataFrame, fields: Sequence[str]) -> list[tuple]:
    if not fields:
        return [()]
    keys = frame[list(fields)].drop_duplicates().itertuples(index=False, name=None)
    return sorted(keys, key=_level_sort_key)


def _color_map(frame: pd.DataFrame, fields: Sequence[str], cmap: str) -> Dict[tuple, object]:
    levels = _levels(frame, fields)
    colormap = plt.get_cmap(cmap)
    n_colors = getattr(colormap, "N", 256)
    if n_colors <= 20:
        colors = [colormap(idx % n_colors) for idx in range(len(levels))]
    else:
        colors = [colormap(v) for v in np.linspace(0, 1, max(len(levels), 1))]
    return dict(zip(levels, colors))


def _facet_axes(n_panels: int, ncols: int, figsize: tuple[float, float] | None):
    ncols = min(ncols, n_panels)
    nrows = math.ceil(n_panels / ncols)
    if figsize is None:
        figsize = (4.0 * ncols, 3.0 * nrows)
    fig, axes = plt.subplots(
        nrows,
        ncols,
        figsize=figsize,
        sharex=True,
        sharey=True,
        squeeze=False,
        layout="constrained",
    )
    axes_flat = axes.flatten()
    for idx in range(n_panels, len(axes_flat)):
        fig.delaxes(axes_flat[idx])
    return fig, axes_flat[:n_panels]


def _subset(frame: pd.DataFrame, fields: Sequence[str], key: tuple) -> pd.DataFrame:
    mask = np.ones(len(frame), dtype=bool)
    for name, value in zip(fields, key):
        column = frame[name]
        if pd.isna(value):
            mask &= column.isna().to_numpy()
        else:
            mask &= (column == value).to_numpy()
    return frame.loc[mask]


def _finish_figure(fig: Figure, axes, spec: ChartSpec, handles: dict) -> None:
    for ax in axes:
        if spec.log_y:
            ax.set_yscale("log")
        ax.tick_params(labelsize=8)
    if len(axes) == 1:
        axes[0].set_xlabel(spec.xlabel or spec.x)
        axes[0].set_ylabel(spec.ylabel or spec.y)
    else:
        fig.supxlabel(spec.xlabel or spec.x)
        fig.supylabel(spec.ylabel or spec.y)
    if handles:
        fig.legend(
            list(handles.values()),
            list(handles.keys()),
            title=", ".join(spec.color) or None,
            loc="outside right center",
            fontsize=8,
        )
    if spec.title:
        fig.suptitle(spec.title, fontsize=12)


def plot_growth_curves(
    frame: pd.DataFrame,
    spec: ChartSpec,
    figsize: tuple[float, float] | None = None,
) -> Figure:
    """
    Draw one line per (colour, group) combination in each facet panel.

    Lines are sorted by ``spec.x`` and coloured by the ``spec.color`` key;
    ``spec.group`` (e.g. a replicate number) only separates lines that would
    otherwise share a colour key. Missing y values leave gaps in the line.
    """
    _check_columns(frame, spec.required_columns())
    if frame.empty:
        raise ValueError("Cannot plot an empty table")

    facets = _levels(frame, spec.facet)
    colors = _color_map(frame, spec.color, spec.cmap)
    line_fields = list(dict.fromkeys([*spec.color, *spec.group]))

    fig, axes = _facet_axes(len(facets), spec.ncols, figsize)
    handles: dict[str, object] = {}
    for ax, facet_key in zip(axes, facets):
        panel = _subset(frame, spec.facet, facet_key)
        for line_key in _levels(panel, line_fields):
            line = _subset(panel, line_fields, line_key).sort_values(spec.x, kind="stable")
            color_key = tuple(line_key[line_fields.index(name)] for name in spec.color)
            (artist,) = ax.plot(
                line[spec.x].to_numpy(dtype=float),
                line[spec.y].to_numpy(dtype=float),
                color=colors.get(color_key),
                linewidth=spec.linewidth,
                marker=spec.marker,
                markersize=2,
            )
            if spec.color:
                handles.setdefault(_key_label(spec.color, color_key), artist)
        if spec.facet:
            ax.set_title(_key_label(spec.facet, facet_key), fontsize=9)

    _finish_figure(fig, axes, spec, handles)
    return fig


def plot_replicate_summary(
    summary: pd.DataFrame,
    spec: ChartSpec,
    figsize: tuple[float, float] | None = None,
    band_alpha: float = 0.25,
) -> Figure:
    """
    Plot ``mean`` lines with a ``mean ± sd`` band from ``summarize_replicates``.

    ``spec.y`` is ignored; the ``mean`` and ``sd`` columns are used instead.
    """
    _check_columns(summary, [spec.x, "mean", "sd", *spec.color, *spec.facet])
    if summary.empty:
        raise ValueError("Cannot plot an empty table")

    facets = _levels(summary, spec.facet)
    colors = _color_map(summary, spec.color, spec.cmap)

    fig, axes = _facet_axes(len(facets), spec.ncols, figsize)
    handles: dict[str, object] = {}
    for ax, facet_key in zip(axes, facets):
        panel = _subset(summary, spec.facet, facet_key)
        for color_key in _levels(panel, spec.color):
            line = _subset(panel, spec.color, color_key).sort_values(spec.x, kind="stable")
            x_vals = line[spec.x].to_numpy(dtype=float)
            mean = line["mean"].to_numpy(dtype=float)
            sd = np.nan_to_num(line["sd"].to_numpy(dtype=float))
            color = colors.get(color_key)
            (artist,) = ax.plot(x_vals, mean, color=color, linewidth=spec.linewidth)
            ax.fill_between(x_vals, mean - sd, mean + sd, color=color, alpha=band_alpha, linewidth=0)
            if spec.color:
                handles.setdefault(_key_label(spec.color, color_key), artist)
        if spec.facet:
            ax.set_title(_key_label(spec.facet, facet_key), fontsize=9)

    _finish_figure(fig, axes, spec, handles)
    return fig


def save_figure(
    fig: Figure,
    output_path: Path,
    width: float = 6.0,
    height: float = 4.0,
    dpi: float = 300,
    units: str = "in",
    format: str | None = None,
    close: bool = True,
) -> Path:
    """
    Write ``fig`` to ``output_path`` at the given size and resolution.

    The canvas is not cropped, so a PNG comes out at exactly
    ``width x height`` (converted to inches) times ``dpi`` pixels.
    """
    if units not in UNIT_PER_INCH:
        raise ValueError(f"units must be one of {sorted(UNIT_PER_INCH)}, got {units!r}")
    if width <= 0 or height <= 0 or dpi <= 0:
        raise ValueError("width, height and dpi must be positive")

    scale = UNIT_PER_INCH[units]
    fig.set_size_inches(width / scale, height / scale)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, format=format, dpi=dpi)
    if close:
        plt.close(fig)
    return output_path


__all__ = [
    "ChartSpec",
    "plot_growth_curves",
    "plot_replicate_summary",
    "save_figure",
]
