"""
The surveillance series container
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from typing import Any

import attr
import numpy as np
import numpy.typing as npt
import pandas as pd
from attrs import define, evolve, field

from syndromic.assertions import assert_series_is_consistent
from syndromic.calendar import Granularity, make_calendar, time_point_starts
from syndromic.exceptions import ConfigurationError, InvariantViolationError
from syndromic.typing import (
    DATE_LIKE,
    NP_ARRAY_OF_FLOAT,
    CalendarDataFrame,
    CountsDataFrame,
)


def to_detection_layer(value: npt.ArrayLike | None) -> NP_ARRAY_OF_FLOAT | None:
    """
    Convert a value to a detection layer (alarms, UCL or LCL)

    Parameters
    ----------
    value
        Value to convert.

        Two-dimensional values (time points x groups) are treated
        as the output of a single detection algorithm.

    Returns
    -------
    :
        `None` if `value` is `None`,
        otherwise a three-dimensional float array
        (time points x groups x algorithms)
    """
    if value is None:
        return None

    res = np.array(value, dtype=float)
    if res.ndim == 2:  # noqa: PLR2004
        res = res[:, :, np.newaxis]

    return res


def to_group_model(value: Sequence[str | None] | None) -> tuple[str | None, ...]:
    """
    Convert a value to a per-group model specification

    Parameters
    ----------
    value
        Value to convert

    Returns
    -------
    :
        One entry per group, `None` for groups without a model
    """
    if value is None:
        return ()

    return tuple(None if v is None or pd.isna(v) else str(v) for v in value)


def to_weekday_codes(value: Collection[int]) -> tuple[int, ...]:
    """
    Convert a collection of weekday codes to a sorted tuple without duplicates
    """
    return tuple(sorted({int(v) for v in value}))


@define(frozen=True, eq=False)
class SurveillanceSeries:
    """
    Counts of events per monitored group over time, plus their analysis layers

    Instances are never modified.
    Every update produces a new, fully validated, instance.

    The analysis layers (`baseline`, `alarms`, `ucl`, `lcl`) are optional.
    `None` means the layer is absent, i.e. it has not been computed yet.
    A present layer always has the same number of time points and groups
    as `counts`.
    """

    counts: CountsDataFrame = field()
    """
    Counts, one column per group, indexed by the time point labels
    """

    calendar: CalendarDataFrame
    """
    Calendar describing each time point

    The first column holds the labels (`date` for daily series,
    `isoweek` for weekly series).
    """

    granularity: Granularity = Granularity.DAILY
    """
    Resolution of the time points
    """

    baseline: pd.DataFrame | None = field(default=None)
    """
    Counts cleaned of outbreak signals, used as baseline by detection algorithms
    """

    alarms: NP_ARRAY_OF_FLOAT | None = field(
        default=None, converter=to_detection_layer
    )
    """
    Alarms (time points x groups x algorithms)
    """

    ucl: NP_ARRAY_OF_FLOAT | None = field(default=None, converter=to_detection_layer)
    """
    Upper control limits (time points x groups x algorithms)
    """

    lcl: NP_ARRAY_OF_FLOAT | None = field(default=None, converter=to_detection_layer)
    """
    Lower control limits (time points x groups x algorithms)
    """

    group_model: tuple[str | None, ...] = field(default=(), converter=to_group_model)
    """
    Regression formula to use for each group, `None` for groups without one

    Either empty or one entry per group.
    The formulas are not interpreted here.
    """

    excluded_weekdays: tuple[int, ...] = field(default=(), converter=to_weekday_codes)
    """
    Weekday codes (0 is Sunday) which are not represented in a daily series
    """

    @counts.validator
    def validate_counts(self, attribute: attr.Attribute[Any], value: Any) -> None:
        """
        Validate the counts value
        """
        if not isinstance(value, pd.DataFrame):
            raise InvariantViolationError(
                [f"counts must be a pandas DataFrame, received {type(value)}"]
            )

    @baseline.validator
    def validate_baseline(self, attribute: attr.Attribute[Any], value: Any) -> None:
        """
        Validate the baseline value
        """
        if value is not None and not isinstance(value, pd.DataFrame):
            raise InvariantViolationError(
                [f"baseline must be a pandas DataFrame or None, not {type(value)}"]
            )

    def __attrs_post_init__(self) -> None:
        """
        Check that all the layers are consistent
        """
        assert_series_is_consistent(self)

    @property
    def n_time_points(self) -> int:
        """
        Number of time points
        """
        return self.counts.shape[0]

    @property
    def groups(self) -> list[str]:
        """
        Names of the monitored groups
        """
        return [str(v) for v in self.counts.columns]

    @property
    def time_starts(self) -> pd.DatetimeIndex:
        """
        Day on which each time point starts
        """
        return time_point_starts(self.calendar, self.granularity)

    @property
    def last_time_point(self) -> str:
        """
        Label of the last time point
        """
        return str(self.calendar[self.granularity.label_column].iloc[-1])

    def with_baseline(
        self, baseline: pd.DataFrame | npt.ArrayLike | None
    ) -> SurveillanceSeries:
        """
        Get a copy of the series with a different baseline

        Parameters
        ----------
        baseline
            New baseline.
            Arrays are labelled with the time points and groups of `counts`.
            `None` removes the baseline.

        Returns
        -------
        :
            New series
        """
        if baseline is not None and not isinstance(baseline, pd.DataFrame):
            baseline = pd.DataFrame(
                np.asarray(baseline),
                index=self.counts.index,
                columns=self.counts.columns,
            )
        elif baseline is not None:
            baseline = baseline.copy()

        return evolve(self, baseline=baseline)

    def with_alarms(self, alarms: npt.ArrayLike | None) -> SurveillanceSeries:
        """
        Get a copy of the series with different alarms
        """
        return evolve(self, alarms=alarms)

    def with_ucl(self, ucl: npt.ArrayLike | None) -> SurveillanceSeries:
        """
        Get a copy of the series with different upper control limits
        """
        return evolve(self, ucl=ucl)

    def with_lcl(self, lcl: npt.ArrayLike | None) -> SurveillanceSeries:
        """
        Get a copy of the series with different lower control limits
        """
        return evolve(self, lcl=lcl)

    def with_group_model(
        self, group_model: Sequence[str | None] | None
    ) -> SurveillanceSeries:
        """
        Get a copy of the series with a different per-group model specification
        """
        return evolve(self, group_model=group_model)


def series_from_counts(  # noqa: PLR0913
    counts: pd.DataFrame | npt.ArrayLike,
    min_date: DATE_LIKE,
    max_date: DATE_LIKE,
    granularity: Granularity = Granularity.DAILY,
    excluded_weekdays: Collection[int] = (),
    groups: Sequence[str] | None = None,
    date_format: str | None = None,
) -> SurveillanceSeries:
    """
    Create a series from counts that are already aligned to a calendar

    Parameters
    ----------
    counts
        Counts, one row per time point between `min_date` and `max_date`
        and one column per group

    min_date
        First day covered by `counts`

    max_date
        Last day covered by `counts`

    granularity
        Resolution of the time points

    excluded_weekdays
        Weekday codes (0 is Sunday) for which `counts` has no rows
        (daily series only, e.g. `(0, 6)` for data without weekends)

    groups
        Names of the groups.
        If not supplied, the columns of `counts` are used
        (or `group_1`, `group_2`, ... for arrays).

    date_format
        [strptime][datetime.datetime.strptime] format of `min_date` and `max_date`
        if they are strings which are not ISO dates

    Returns
    -------
    :
        Series without any analysis layers

    Raises
    ------
    InvariantViolationError
        The number of rows of `counts` does not match the calendar
    """
    if date_format is not None:
        min_date = pd.to_datetime(min_date, format=date_format)
        max_date = pd.to_datetime(max_date, format=date_format)

    if excluded_weekdays and granularity is not Granularity.DAILY:
        msg = "Weekdays can only be excluded from daily series"
        raise ConfigurationError(msg)

    calendar = make_calendar(
        min_date, max_date, granularity, excluded_weekdays=excluded_weekdays
    )

    if isinstance(counts, pd.DataFrame):
        values = counts.to_numpy()
        columns = counts.columns if groups is None else groups
    else:
        values = np.asarray(counts)
        if values.ndim == 1:
            values = values[:, np.newaxis]

        columns = (
            [f"group_{i + 1}" for i in range(values.shape[1])]
            if groups is None
            else groups
        )

    if values.shape[0] != calendar.shape[0]:
        raise InvariantViolationError(
            [
                f"counts has {values.shape[0]} rows "
                f"but there are {calendar.shape[0]} time points "
                f"between {min_date} and {max_date}"
            ]
        )

    return SurveillanceSeries(
        counts=pd.DataFrame(
            values,
            index=pd.Index(
                calendar[granularity.label_column].to_numpy(),
                name=granularity.label_column,
            ),
            columns=pd.Index([str(c) for c in columns], dtype=object),
        ),
        calendar=calendar,
        granularity=granularity,
        excluded_weekdays=excluded_weekdays,
    )
