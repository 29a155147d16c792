"""Per-column pixel statistics over an analysis raster."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ._constants import DEFAULT_DARK_THRESHOLD
from ._models import ColumnProfile, Raster


_FIELDS = (
    "mean",
    "minimum",
    "p10",
    "p25",
    "median",
    "max_dark_run",
    "transitions",
    "dark_std_dev",
)


@dataclass(frozen=True)
class ColumnProfiles:
    """Read-only, column-major statistics for a contiguous run of columns.

    Every attribute is a 1-D array indexed by column offset from ``start``.
    Slicing with :meth:`window` returns views over the same arrays, so the wide
    gutter search and the narrow text check never recompute statistics.
    """

    start: int
    mean: np.ndarray
    minimum: np.ndarray
    p10: np.ndarray
    p25: np.ndarray
    median: np.ndarray
    max_dark_run: np.ndarray
    transitions: np.ndarray
    dark_std_dev: np.ndarray

    def __post_init__(self) -> None:
        lengths = {len(getattr(self, name)) for name in _FIELDS}
        if len(lengths) != 1:
            raise ValueError("All column statistic arrays must have the same length.")
        for name in _FIELDS:
            getattr(self, name).setflags(write=False)

    def __len__(self) -> int:
        return len(self.mean)

    def __getitem__(self, index: int) -> ColumnProfile:
        if index < 0:
            index += len(self)
        if not 0 <= index < len(self):
            raise IndexError(f"column {index} out of range for {len(self)} columns")
        return ColumnProfile(
            x=self.start + index,
            mean=float(self.mean[index]),
            min=int(self.minimum[index]),
            p10=int(self.p10[index]),
            p25=int(self.p25[index]),
            median=int(self.median[index]),
            max_dark_run=float(self.max_dark_run[index]),
            transitions=int(self.transitions[index]),
            dark_std_dev=float(self.dark_std_dev[index]),
        )

    def window(self, start: int, end: int) -> ColumnProfiles:
        """Return a view over columns ``[start, end)``, clamped to the available range."""
        start = max(0, start)
        end = min(len(self), end)
        if end < start:
            end = start
        return ColumnProfiles(
            start=self.start + start,
            **{name: getattr(self, name)[start:end] for name in _FIELDS},
        )

    @classmethod
    def from_arrays(
        cls,
        *,
        transitions: np.ndarray | list[int],
        max_dark_run: np.ndarray | list[float],
        dark_std_dev: np.ndarray | list[float],
        p10: np.ndarray | list[int] | None = None,
        mean: np.ndarray | list[float] | None = None,
    ) -> ColumnProfiles:
        """Build profiles from precomputed statistics, filling the rest from ``p10``/``mean``."""
        transitions_arr = np.array(transitions, dtype=np.int64)
        count = len(transitions_arr)
        p10_arr = np.array(p10 if p10 is not None else [255] * count, dtype=np.int64)
        mean_arr = np.array(mean if mean is not None else p10_arr, dtype=np.float64)
        return cls(
            start=0,
            mean=mean_arr,
            minimum=p10_arr.copy(),
            p10=p10_arr,
            p25=p10_arr.copy(),
            median=p10_arr.copy(),
            max_dark_run=np.array(max_dark_run, dtype=np.float64),
            transitions=transitions_arr,
            dark_std_dev=np.array(dark_std_dev, dtype=np.float64),
        )


def _longest_dark_runs(dark: np.ndarray) -> np.ndarray:
    height, width = dark.shape
    padded = np.zeros((height + 2, width), dtype=np.int8)
    padded[1:-1] = dark
    edges = np.diff(padded, axis=0).T
    # Row-major scan of the transposed edges keeps each column's runs in order,
    # so the k-th start pairs with the k-th end.
    start_cols, start_rows = np.nonzero(edges == 1)
    _, end_rows = np.nonzero(edges == -1)
    runs = np.zeros(width, dtype=np.int64)
    if len(start_cols):
        np.maximum.at(runs, start_cols, end_rows - start_rows)
    return runs


def analyze_columns(raster: Raster, dark_threshold: int = DEFAULT_DARK_THRESHOLD) -> ColumnProfiles:
    """Compute a :class:`ColumnProfiles` for every column of ``raster``.

    Pixels strictly below ``dark_threshold`` count as dark. Percentiles index the
    sorted column at ``floor(height * q)``; the dark std-dev is the population
    standard deviation of the darkest quarter of the column.
    """
    pixels = raster.pixels
    height = pixels.shape[0]
    ordered = np.sort(pixels, axis=0)
    dark = pixels < dark_threshold

    quartile = int(height * 0.25)
    if quartile > 0:
        dark_std_dev = ordered[:quartile].astype(np.float64).std(axis=0)
    else:
        dark_std_dev = np.zeros(pixels.shape[1], dtype=np.float64)

    return ColumnProfiles(
        start=0,
        mean=pixels.mean(axis=0, dtype=np.float64),
        minimum=ordered[0].astype(np.int64),
        p10=ordered[int(height * 0.1)].astype(np.int64),
        p25=ordered[quartile].astype(np.int64),
        median=ordered[int(height * 0.5)].astype(np.int64),
        max_dark_run=_longest_dark_runs(dark) / height * 100.0,
        transitions=np.count_nonzero(dark[1:] != dark[:-1], axis=0).astype(np.int64),
        dark_std_dev=dark_std_dev,
    )


__all__ = ["ColumnProfiles", "analyze_columns"]
