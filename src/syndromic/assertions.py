"""
Assertions about the consistency of a series' layers
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

from syndromic.calendar import (
    WEEKDAY_CODES,
    Granularity,
    date_to_isoweek,
    make_calendar,
    time_point_starts,
)
from syndromic.exceptions import ConfigurationError, InvariantViolationError
from syndromic.typing import CalendarDataFrame

if TYPE_CHECKING:
    from syndromic.series import SurveillanceSeries


def find_calendar_problems(
    calendar: CalendarDataFrame,
    granularity: Granularity,
    excluded_weekdays: Collection[int] = (),
) -> list[str]:
    """
    Find problems with a calendar

    Parameters
    ----------
    calendar
        Calendar to check

    granularity
        Expected resolution of `calendar`

    excluded_weekdays
        Weekday codes which may be missing from a daily calendar

    Returns
    -------
    :
        Description of each problem found (empty if there are no problems)
    """
    label_column = granularity.label_column
    if calendar.shape[1] < 1 or calendar.columns[0] != label_column:
        return [
            f"the first calendar column must be {label_column!r}, "
            f"found columns {calendar.columns.tolist()}"
        ]

    labels = calendar[label_column]
    if labels.duplicated().any():
        return [
            f"calendar labels are not unique: {labels[labels.duplicated()].tolist()}"
        ]

    if labels.empty:
        return []

    try:
        starts = time_point_starts(calendar, granularity)
    except (ConfigurationError, ValueError) as exc:
        return [f"calendar labels are not valid {granularity.value} labels: {exc}"]

    problems = []
    if not (starts.is_monotonic_increasing and starts.is_unique):
        problems.append("calendar labels are not strictly increasing")
        return problems

    if granularity is Granularity.WEEKLY:
        non_canonical = [
            label
            for label, start in zip(labels, starts)
            if label != date_to_isoweek(start)
        ]
        if non_canonical:
            problems.append(
                f"weekly labels must be anchored to Monday (e.g. '2010-W01-1'), "
                f"found {non_canonical}"
            )

    expected = make_calendar(
        starts.min(), starts.max(), granularity, excluded_weekdays=excluded_weekdays
    )[label_column]
    missing = sorted(set(expected) - set(labels))
    if missing:
        problems.append(f"calendar has gaps, missing time points: {missing}")

    return problems


def find_layer_problems(  # noqa: PLR0913, PLR0912
    counts: pd.DataFrame,
    calendar: CalendarDataFrame,
    granularity: Granularity,
    baseline: pd.DataFrame | None = None,
    alarms: np.ndarray | None = None,
    ucl: np.ndarray | None = None,
    lcl: np.ndarray | None = None,
    group_model: Sequence[str | None] = (),
    excluded_weekdays: Collection[int] = (),
) -> list[str]:
    """
    Find inconsistencies between the layers of a series

    Parameters
    ----------
    counts
        Counts

    calendar
        Calendar

    granularity
        Resolution of the time points

    baseline
        Baseline (`None` if absent)

    alarms
        Alarms (`None` if absent)

    ucl
        Upper control limits (`None` if absent)

    lcl
        Lower control limits (`None` if absent)

    group_model
        Per-group model specification

    excluded_weekdays
        Weekday codes which are not represented in a daily series

    Returns
    -------
    :
        Description of each problem found (empty if there are no problems)
    """
    problems = []
    n_times, n_groups = counts.shape
    if n_times < 1 or n_groups < 1:
        problems.append(
            f"counts must have at least one time point and one group, {counts.shape=}"
        )

    if counts.columns.duplicated().any():
        problems.append(f"group names are not unique: {counts.columns.tolist()}")

    if calendar.shape[0] != n_times:
        problems.append(
            f"calendar has {calendar.shape[0]} rows, counts has {n_times} rows"
        )

    elif granularity.label_column in calendar.columns and (
        counts.index.tolist() != calendar[granularity.label_column].tolist()
    ):
        problems.append("counts index does not match the calendar labels")

    if baseline is not None:
        if baseline.shape != counts.shape:
            problems.append(f"{baseline.shape=} does not match {counts.shape=}")

        elif not baseline.columns.equals(counts.columns):
            problems.append("baseline columns do not match counts columns")

    for name, layer in (("alarms", alarms), ("ucl", ucl), ("lcl", lcl)):
        if layer is None:
            continue

        if layer.ndim != 3:  # noqa: PLR2004
            problems.append(f"{name} must be three-dimensional, {layer.shape=}")

        elif layer.shape[:2] != (n_times, n_groups):
            problems.append(
                f"{name} has shape {layer.shape}, "
                f"expected ({n_times}, {n_groups}, n_algorithms)"
            )

    if group_model and len(group_model) != n_groups:
        problems.append(
            f"group_model has {len(group_model)} entries "
            f"but there are {n_groups} groups"
        )

    invalid_weekdays = [v for v in excluded_weekdays if v not in WEEKDAY_CODES]
    if invalid_weekdays:
        problems.append(f"invalid excluded weekday codes: {invalid_weekdays}")

    elif excluded_weekdays and granularity is not Granularity.DAILY:
        problems.append("weekdays can only be excluded from daily series")

    problems.extend(
        find_calendar_problems(
            calendar, granularity, excluded_weekdays=excluded_weekdays
        )
    )

    return problems


def assert_series_is_consistent(series: SurveillanceSeries) -> None:
    """
    Assert that all the layers of a series are consistent

    Parameters
    ----------
    series
        Series to check

    Raises
    ------
    InvariantViolationError
        The layers are not consistent
    """
    problems = find_layer_problems(
        counts=series.counts,
        calendar=series.calendar,
        granularity=series.granularity,
        baseline=series.baseline,
        alarms=series.alarms,
        ucl=series.ucl,
        lcl=series.lcl,
        group_model=series.group_model,
        excluded_weekdays=series.excluded_weekdays,
    )
    if problems:
        raise InvariantViolationError(problems)


def assert_history_preserved(
    before: SurveillanceSeries, after: SurveillanceSeries, n_retained: int
) -> None:
    """
    Assert that an update kept the retained history of a series unchanged

    Parameters
    ----------
    before
        Series before the update

    after
        Series after the update

    n_retained
        Number of leading time points of `before` which the update retained

    Raises
    ------
    InvariantViolationError
        Groups were lost or re-ordered,
        or the retained time points have different labels or counts
    """
    n_groups = len(before.groups)
    if after.groups[:n_groups] != before.groups:
        raise InvariantViolationError(
            [
                "groups were lost or re-ordered by the update: "
                f"before={before.groups} after={after.groups}"
            ]
        )

    if n_retained == 0:
        return

    history_before = before.counts.iloc[:n_retained]
    history_after = after.counts.iloc[:n_retained, :n_groups]
    if history_before.index.tolist() != history_after.index.tolist():
        raise InvariantViolationError(
            [f"the labels of the first {n_retained} time point(s) changed"]
        )

    if not np.array_equal(history_before.to_numpy(), history_after.to_numpy()):
        raise InvariantViolationError(
            [f"the counts of the first {n_retained} time point(s) changed"]
        )
