"""
Saving and loading of series
"""

from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pandas as pd

from syndromic.calendar import Granularity
from syndromic.series import SurveillanceSeries

DETECTION_LAYERS: tuple[str, ...] = ("alarms", "ucl", "lcl")
"""
Names of the detection layers
"""

FORMAT_VERSION: int = 1
"""
Version of the on-disk format
"""


def calendar_column_to_array(values: pd.Series) -> np.ndarray:
    """
    Convert a calendar column to an array which can be saved without pickling

    Non-numeric columns are saved as strings.
    """
    if pd.api.types.is_numeric_dtype(values):
        return values.to_numpy()

    return values.astype(str).to_numpy(dtype=str)


def save_series(series: SurveillanceSeries, path: Path | str) -> None:
    """
    Save a series to disk

    All layers are written to a single (compressed) `.npz` archive.
    Absent layers are not written,
    so absent layers and layers which are present but zero-size
    (e.g. alarms from zero detection algorithms) survive the round trip.

    Parameters
    ----------
    series
        Series to save

    path
        File in which to save the series
    """
    metadata = {
        "format_version": FORMAT_VERSION,
        "granularity": series.granularity.value,
        "groups": series.groups,
        "calendar_columns": [str(c) for c in series.calendar.columns],
        "group_model": list(series.group_model),
        "excluded_weekdays": list(series.excluded_weekdays),
        "has_baseline": series.baseline is not None,
        "detection_layers": [
            name for name in DETECTION_LAYERS if getattr(series, name) is not None
        ],
    }

    arrays = {
        "metadata": np.array(json.dumps(metadata)),
        "counts": series.counts.to_numpy(),
    }
    for i, column in enumerate(series.calendar.columns):
        arrays[f"calendar_{i}"] = calendar_column_to_array(series.calendar[column])

    if series.baseline is not None:
        arrays["baseline"] = series.baseline.to_numpy()

    for name in metadata["detection_layers"]:
        arrays[name] = getattr(series, name)

    with open(path, "wb") as fh:
        np.savez_compressed(fh, **arrays)


def load_series(path: Path | str) -> SurveillanceSeries:
    """
    Load a series saved with [save_series][(m).]

    Parameters
    ----------
    path
        File from which to load the series

    Returns
    -------
    :
        Loaded series

    Raises
    ------
    ValueError
        The file was written with an unsupported format version
    """
    with np.load(path, allow_pickle=False) as data:
        metadata = json.loads(data["metadata"].item())
        if metadata["format_version"] != FORMAT_VERSION:
            msg = (
                f"Unsupported format version: {metadata['format_version']}. "
                f"Supported version: {FORMAT_VERSION}"
            )
            raise ValueError(msg)

        granularity = Granularity(metadata["granularity"])
        calendar = pd.DataFrame(
            {
                column: data[f"calendar_{i}"]
                for i, column in enumerate(metadata["calendar_columns"])
            }
        )
        label_column = granularity.label_column
        calendar[label_column] = calendar[label_column].astype(object)

        index = pd.Index(calendar[label_column].to_numpy(), name=label_column)
        columns = pd.Index(metadata["groups"], dtype=object)

        counts = pd.DataFrame(data["counts"], index=index, columns=columns)
        baseline = None
        if metadata["has_baseline"]:
            baseline = pd.DataFrame(data["baseline"], index=index, columns=columns)

        detection_layers = {name: data[name] for name in metadata["detection_layers"]}

    return SurveillanceSeries(
        counts=counts,
        calendar=calendar,
        granularity=granularity,
        baseline=baseline,
        group_model=metadata["group_model"],
        excluded_weekdays=metadata["excluded_weekdays"],
        **detection_layers,
    )
