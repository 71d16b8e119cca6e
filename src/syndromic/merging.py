"""
Merging of newly aggregated counts into an existing series
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import pandas as pd
from loguru import logger

from syndromic.aggregation import AlignedCounts
from syndromic.exceptions import ConfigurationError, NoNewDataError
from syndromic.series import SurveillanceSeries
from syndromic.typing import NP_ARRAY_OF_FLOAT


def take_time_points(block: AlignedCounts, locator: np.ndarray) -> AlignedCounts:
    """
    Take a subset of the time points in a block

    Parameters
    ----------
    block
        Block from which to take the time points

    locator
        Boolean array, `True` for the time points to keep

    Returns
    -------
    :
        Block with only the selected time points
    """
    return AlignedCounts(
        counts=block.counts.loc[locator],
        calendar=block.calendar.loc[locator].reset_index(drop=True),
        granularity=block.granularity,
        excluded_weekdays=block.excluded_weekdays,
    )


def pad_groups(
    layer: NP_ARRAY_OF_FLOAT, n_new_groups: int, fill_value: float = np.nan
) -> NP_ARRAY_OF_FLOAT:
    """
    Add groups to a detection layer

    Parameters
    ----------
    layer
        Layer (time points x groups x algorithms)

    n_new_groups
        Number of groups to add after the existing groups

    fill_value
        Value to use for the new groups

    Returns
    -------
    :
        Layer with `n_new_groups` more columns
    """
    padding = np.full(
        (layer.shape[0], n_new_groups, layer.shape[2]), fill_value, dtype=float
    )

    return np.concatenate([layer, padding], axis=1)


def merge_detection_layer(
    layer: NP_ARRAY_OF_FLOAT | None,
    n_keep: int,
    n_new_groups: int,
    n_new_time_points: int,
) -> NP_ARRAY_OF_FLOAT | None:
    """
    Merge a detection layer (alarms, UCL or LCL) with new time points

    Detection has not been run on the new time points
    nor on the new groups, so all of these are filled with NaN.

    Parameters
    ----------
    layer
        Existing layer (`None` if absent)

    n_keep
        Number of existing time points to keep

    n_new_groups
        Number of groups being added

    n_new_time_points
        Number of time points being added

    Returns
    -------
    :
        Merged layer (`None` if `layer` is `None`)
    """
    if layer is None:
        return None

    history = pad_groups(layer[:n_keep], n_new_groups)
    new_rows = np.full(
        (n_new_time_points, history.shape[1], layer.shape[2]), np.nan, dtype=float
    )

    return np.concatenate([history, new_rows], axis=0)


def get_merged_groups(existing: Sequence[str], new: Sequence[str]) -> list[str]:
    """
    Get the groups of the merged series

    Parameters
    ----------
    existing
        Groups of the existing series

    new
        Groups of the new block

    Returns
    -------
    :
        `existing`, followed by groups only in `new` (in the order of `new`)
    """
    known = set(existing)

    return [*existing, *(g for g in new if g not in known)]


def merge_block(
    x: SurveillanceSeries,
    block: AlignedCounts,
    replace_existing: bool = True,
) -> SurveillanceSeries:
    """
    Merge a block of new counts into a series

    The new block is spliced in after the last time point of `x`
    which is strictly before the block's first time point.
    All later time points of `x` are discarded
    (i.e. overlapping time points are replaced, not summed).

    Groups in the block which are not in `x` are added as new columns.
    Historical counts and baseline values for them are zero,
    historical alarms, UCL and LCL are NaN.
    Baseline values for the new time points are the new counts.
    Alarms, UCL and LCL for the new time points are NaN.
    Layers which are absent in `x` remain absent.

    Parameters
    ----------
    x
        Existing series

    block
        New counts, at the same resolution as `x`

    replace_existing
        If `False`, time points in `block` at or before the last time point of `x`
        are ignored rather than replacing the existing data

    Returns
    -------
    :
        New series. `x` itself is not modified.

    Raises
    ------
    ConfigurationError
        `block` is not at the same resolution as `x`

    NoNewDataError
        `block` has no time points to add

    InvariantViolationError
        The merged series is not consistent
        (e.g. there would be a gap between the existing data and `block`)
    """
    if block.granularity is not x.granularity:
        msg = (
            "The block must have the same granularity as the series. "
            f"{block.granularity=} {x.granularity=}"
        )
        raise ConfigurationError(msg)

    x_starts = x.time_starts
    block_starts = block.time_starts

    if not replace_existing:
        is_new = np.asarray(block_starts > x_starts[-1])
        if not is_new.any():
            latest = block.counts.index[-1] if block.n_time_points else None
            raise NoNewDataError(x.last_time_point, latest)

        block = take_time_points(block, is_new)
        block_starts = block_starts[is_new]

    if block.n_time_points == 0:
        raise NoNewDataError(x.last_time_point, None)

    # Number of existing time points strictly before the block
    n_keep = int(x_starts.searchsorted(block_starts[0], side="left"))
    groups = get_merged_groups(x.groups, [str(g) for g in block.counts.columns])
    n_new_groups = len(groups) - len(x.groups)
    group_idx = pd.Index(groups, dtype=object)

    logger.debug(
        "Merging {} new time point(s) ({} to {}) after keeping {} of {} existing, "
        "adding {} group(s)",
        block.n_time_points,
        block.counts.index[0],
        block.counts.index[-1],
        n_keep,
        x.n_time_points,
        n_new_groups,
    )

    new_counts = block.counts.reindex(columns=group_idx, fill_value=0)
    counts = pd.concat(
        [x.counts.iloc[:n_keep].reindex(columns=group_idx, fill_value=0), new_counts]
    )
    calendar = pd.concat(
        [x.calendar.iloc[:n_keep], block.calendar], ignore_index=True
    )

    baseline = None
    if x.baseline is not None:
        baseline = pd.concat(
            [
                x.baseline.iloc[:n_keep].reindex(columns=group_idx, fill_value=0),
                new_counts.copy(),
            ]
        )

    group_model = x.group_model
    if group_model:
        group_model = (*group_model, *([None] * n_new_groups))

    return SurveillanceSeries(
        counts=counts,
        calendar=calendar,
        granularity=x.granularity,
        baseline=baseline,
        alarms=merge_detection_layer(
            x.alarms, n_keep, n_new_groups, block.n_time_points
        ),
        ucl=merge_detection_layer(x.ucl, n_keep, n_new_groups, block.n_time_points),
        lcl=merge_detection_layer(x.lcl, n_keep, n_new_groups, block.n_time_points),
        group_model=group_model,
        excluded_weekdays=(*x.excluded_weekdays, *block.excluded_weekdays),
    )
