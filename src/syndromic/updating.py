"""
Creation and updating of series from raw event records
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import attr
import pandas as pd
from attrs import define, field
from loguru import logger

from syndromic.aggregation import (
    AlignedCounts,
    assert_has_columns,
    count_events,
    get_group_names,
    get_record_columns,
)
from syndromic.assertions import assert_history_preserved, assert_series_is_consistent
from syndromic.calendar import Granularity, date_to_isoweek, make_calendar
from syndromic.conversion import convert_days_to_weeks
from syndromic.dates import ISOWEEK_FORMAT, is_isoweek_format, parse_dates
from syndromic.exceptions import ConfigurationError, EmptyInputError, NoNewDataError
from syndromic.merging import merge_block
from syndromic.series import SurveillanceSeries
from syndromic.weekdays import redistribute_weekdays, validate_weekday_policy

TIME_COLUMN: str = "_time_point_start"
"""
Name of the column used internally to hold the parsed dates
"""


def format_time_point(value: pd.Timestamp, granularity: Granularity) -> str:
    """
    Format a day as the label of the time point it falls in

    Parameters
    ----------
    value
        Day to format

    granularity
        Resolution of the time points

    Returns
    -------
    :
        Time point label
    """
    if granularity is Granularity.DAILY:
        return value.strftime("%Y-%m-%d")

    return date_to_isoweek(value)


def check_input_options(
    granularity: Granularity,
    date_format: str,
    remove_weekdays: Sequence[int] | None,
    add_to: Sequence[int] | None,
) -> tuple[tuple[int, ...], tuple[int, ...]]:
    """
    Check that the options for turning records into counts can be combined

    Parameters
    ----------
    granularity
        Resolution of the series

    date_format
        Format of the dates in the records

    remove_weekdays
        Weekday codes to remove

    add_to
        Offsets to which the removed weekdays' counts are added

    Returns
    -------
    :
        Validated weekday codes and offsets

    Raises
    ------
    ConfigurationError
        The options are not valid or cannot be combined
    """
    remove_weekdays_t, add_to_t = validate_weekday_policy(remove_weekdays, add_to)

    if granularity is Granularity.WEEKLY and remove_weekdays_t:
        msg = "Weekdays can only be removed from daily series"
        raise ConfigurationError(msg)

    if granularity is Granularity.DAILY and is_isoweek_format(date_format):
        msg = (
            f"Dates in the {ISOWEEK_FORMAT!r} format "
            "can only be used with weekly series"
        )
        raise ConfigurationError(msg)

    return remove_weekdays_t, add_to_t


def prepare_records(
    records: pd.DataFrame,
    id_columns: str | Sequence[str],
    group_column: str,
    date_column: str,
    date_format: str,
) -> pd.DataFrame:
    """
    Select the columns we need from the raw records and parse their dates

    Records without a date are dropped.

    Parameters
    ----------
    records
        Raw records

    id_columns
        Column(s) which identify unique events

    group_column
        Column which holds the group label

    date_column
        Column which holds the date of each event

    date_format
        Format of the dates

    Returns
    -------
    :
        Records with the identifier and group columns
        plus the parsed dates in [TIME_COLUMN][(m).]
    """
    assert_has_columns(
        records, get_record_columns(id_columns, group_column, date_column)
    )

    res = records[get_record_columns(id_columns, group_column)].copy()
    res[TIME_COLUMN] = parse_dates(records[date_column], date_format)

    n_missing_dates = int(res[TIME_COLUMN].isnull().sum())
    if n_missing_dates:
        logger.debug("Dropping {} record(s) without a date", n_missing_dates)
        res = res.loc[res[TIME_COLUMN].notnull()]

    return res


def records_to_block(  # noqa: PLR0913
    records: pd.DataFrame,
    id_columns: str | Sequence[str],
    group_column: str,
    groups: Sequence[str],
    min_date: pd.Timestamp,
    max_date: pd.Timestamp,
    granularity: Granularity,
    date_format: str,
    remove_weekdays: Sequence[int] = (),
    add_to: Sequence[int] = (),
) -> AlignedCounts:
    """
    Turn prepared records into a block of counts

    Parameters
    ----------
    records
        Records, as returned by [prepare_records][(m).]

    id_columns
        Column(s) which identify unique events

    group_column
        Column which holds the group label

    groups
        Groups to count

    min_date
        First day to include

    max_date
        Last day to include

    granularity
        Resolution of the block to create

    date_format
        Format the dates were supplied in

    remove_weekdays
        Weekday codes to remove (daily blocks only)

    add_to
        Offsets to which the removed weekdays' counts are added

    Returns
    -------
    :
        Counts aligned to a complete calendar covering `[min_date, max_date]`
    """
    if granularity is Granularity.WEEKLY and is_isoweek_format(date_format):
        return count_events(
            records,
            id_columns=id_columns,
            group_column=group_column,
            time_column=TIME_COLUMN,
            groups=groups,
            calendar=make_calendar(min_date, max_date, Granularity.WEEKLY),
            granularity=Granularity.WEEKLY,
        )

    daily = count_events(
        records,
        id_columns=id_columns,
        group_column=group_column,
        time_column=TIME_COLUMN,
        groups=groups,
        calendar=make_calendar(min_date, max_date, Granularity.DAILY),
        granularity=Granularity.DAILY,
    )

    if granularity is Granularity.WEEKLY:
        return convert_days_to_weeks(daily)

    if remove_weekdays:
        return redistribute_weekdays(daily, remove_weekdays, add_to)

    return daily


def make_update_block(  # noqa: PLR0913
    x: SurveillanceSeries,
    records: pd.DataFrame,
    *,
    id_columns: str | Sequence[str],
    group_column: str,
    date_column: str,
    date_format: str = "%d/%m/%Y",
    add_new_groups: bool = True,
    remove_weekdays: Sequence[int] | None = None,
    add_to: Sequence[int] | None = None,
    replace_existing: bool = True,
) -> AlignedCounts:
    """
    Turn raw event records into a block of counts that can be merged into a series

    The parameters are the same as for [update_series][(m).].

    Returns
    -------
    :
        Counts at the resolution of `x`, starting no later than
        the time point after the last time point of `x`

    Raises
    ------
    ConfigurationError
        The options are not valid

    NoNewDataError
        There is nothing to add to `x`
    """
    remove_weekdays_t, add_to_t = check_input_options(
        x.granularity, date_format, remove_weekdays, add_to
    )
    prepared = prepare_records(
        records,
        id_columns=id_columns,
        group_column=group_column,
        date_column=date_column,
        date_format=date_format,
    )
    if prepared.empty:
        raise NoNewDataError(x.last_time_point, None)

    min_date = prepared[TIME_COLUMN].min()
    max_date = prepared[TIME_COLUMN].max()
    next_start = x.time_starts[-1] + x.granularity.step

    if not replace_existing:
        if next_start > max_date:
            raise NoNewDataError(
                x.last_time_point, format_time_point(max_date, x.granularity)
            )

        min_date = next_start
        prepared = prepared.loc[prepared[TIME_COLUMN] >= min_date]

    elif min_date > next_start:
        logger.debug(
            "New data starts after {}, filling the gap from {} with zeros",
            x.last_time_point,
            format_time_point(next_start, x.granularity),
        )
        min_date = next_start

    return records_to_block(
        prepared,
        id_columns=id_columns,
        group_column=group_column,
        groups=get_group_names(x.groups, prepared[group_column], add_new_groups),
        min_date=min_date,
        max_date=max_date,
        granularity=x.granularity,
        date_format=date_format,
        remove_weekdays=remove_weekdays_t,
        add_to=add_to_t,
    )


def update_series(  # noqa: PLR0913
    x: SurveillanceSeries,
    records: pd.DataFrame,
    *,
    id_columns: str | Sequence[str],
    group_column: str,
    date_column: str,
    date_format: str = "%d/%m/%Y",
    add_new_groups: bool = True,
    remove_weekdays: Sequence[int] | None = None,
    add_to: Sequence[int] | None = None,
    replace_existing: bool = True,
) -> SurveillanceSeries:
    """
    Update a series with raw event records

    Parameters
    ----------
    x
        Series to update

    records
        Raw records, one row per event

    id_columns
        Column(s) which identify unique events.
        Each identifier is counted at most once per group and time point.

    group_column
        Column which holds the group label of each event

    date_column
        Column which holds the date of each event

    date_format
        [strptime][datetime.datetime.strptime] format of the dates
        or `"ISOweek"` if the dates are ISO-week labels
        (weekly series only).

        Daily dates supplied to a weekly series are summed into ISO-weeks.

    add_new_groups
        Should groups which are not yet in `x` be added?
        If `False`, their records are ignored.

    remove_weekdays
        Weekday codes (0 is Sunday, 6 is Saturday) to remove
        from the new data (daily series only)

    add_to
        For each weekday in `remove_weekdays`, the offset (in rows)
        of the row which receives its counts

    replace_existing
        Should new data replace existing time points?

        If `False`, only data after the last time point of `x` is used.
        If `True`, all time points of `x` from the first new time point onwards
        are replaced.

    Returns
    -------
    :
        Updated series. `x` itself is not modified.

    Raises
    ------
    ConfigurationError
        The options are not valid

    NoNewDataError
        There is nothing to add to `x`

    InvariantViolationError
        The updated series is not consistent
    """
    block = make_update_block(
        x,
        records,
        id_columns=id_columns,
        group_column=group_column,
        date_column=date_column,
        date_format=date_format,
        add_new_groups=add_new_groups,
        remove_weekdays=remove_weekdays,
        add_to=add_to,
        replace_existing=replace_existing,
    )

    return merge_block(x, block, replace_existing=replace_existing)


def raw_to_series(  # noqa: PLR0913
    records: pd.DataFrame,
    *,
    id_columns: str | Sequence[str],
    group_column: str,
    date_column: str,
    date_format: str = "%d/%m/%Y",
    granularity: Granularity = Granularity.DAILY,
    remove_weekdays: Sequence[int] | None = None,
    add_to: Sequence[int] | None = None,
    min_date: pd.Timestamp | str | None = None,
    max_date: pd.Timestamp | str | None = None,
) -> SurveillanceSeries:
    """
    Create a series from raw event records

    Parameters
    ----------
    records
        Raw records, one row per event

    id_columns
        Column(s) which identify unique events

    group_column
        Column which holds the group label of each event

    date_column
        Column which holds the date of each event

    date_format
        [strptime][datetime.datetime.strptime] format of the dates
        or `"ISOweek"` (weekly series only)

    granularity
        Resolution of the series to create

    remove_weekdays
        Weekday codes (0 is Sunday, 6 is Saturday) to remove (daily series only)

    add_to
        For each weekday in `remove_weekdays`, the offset (in rows)
        of the row which receives its counts

    min_date
        First day of the series (ISO date).
        Defaults to the earliest date in `records`.

    max_date
        Last day of the series (ISO date).
        Defaults to the latest date in `records`.

    Returns
    -------
    :
        New series, without any analysis layers

    Raises
    ------
    EmptyInputError
        `records` yields no time points

    ConfigurationError
        The options are not valid
    """
    remove_weekdays_t, add_to_t = check_input_options(
        granularity, date_format, remove_weekdays, add_to
    )
    prepared = prepare_records(
        records,
        id_columns=id_columns,
        group_column=group_column,
        date_column=date_column,
        date_format=date_format,
    )
    if prepared.empty:
        raise EmptyInputError()

    start = prepared[TIME_COLUMN].min() if min_date is None else pd.Timestamp(min_date)
    end = prepared[TIME_COLUMN].max() if max_date is None else pd.Timestamp(max_date)
    logger.debug("Creating a {} series from {} to {}", granularity.value, start, end)

    block = records_to_block(
        prepared,
        id_columns=id_columns,
        group_column=group_column,
        groups=get_group_names([], prepared[group_column], add_new_groups=True),
        min_date=start,
        max_date=end,
        granularity=granularity,
        date_format=date_format,
        remove_weekdays=remove_weekdays_t,
        add_to=add_to_t,
    )
    if block.n_time_points == 0:
        raise EmptyInputError()

    return SurveillanceSeries(
        counts=block.counts,
        calendar=block.calendar,
        granularity=granularity,
        excluded_weekdays=block.excluded_weekdays,
    )


def validate_date_format(
    instance: SeriesUpdater, attribute: attr.Attribute[Any], value: str
) -> None:
    """
    Validate a date format

    Raises
    ------
    ConfigurationError
        `value` is neither a strptime format nor the ISO-week format
    """
    if not is_isoweek_format(value) and "%" not in value:
        msg = (
            f"Unrecognised {attribute.name}: {value!r}. "
            f"Supply a strptime format (e.g. '%d/%m/%Y') or {ISOWEEK_FORMAT!r}"
        )
        raise ConfigurationError(msg)


@define
class SeriesUpdater:
    """
    Updater of series with raw event records

    This bundles all the options of [update_series][(m).],
    so the same options can be applied to each new batch of records.
    """

    id_columns: str | tuple[str, ...] = field(
        converter=lambda v: v if isinstance(v, str) else tuple(v)
    )
    """
    Column(s) which identify unique events
    """

    group_column: str
    """
    Column which holds the group label of each event
    """

    date_column: str
    """
    Column which holds the date of each event
    """

    date_format: str = field(default="%d/%m/%Y", validator=validate_date_format)
    """
    [strptime][datetime.datetime.strptime] format of the dates or `"ISOweek"`
    """

    add_new_groups: bool = True
    """
    Should groups which are not yet in the series be added?
    """

    remove_weekdays: tuple[int, ...] = field(default=(), converter=tuple)
    """
    Weekday codes (0 is Sunday, 6 is Saturday) to remove (daily series only)
    """

    add_to: tuple[int, ...] = field(default=(), converter=tuple)
    """
    For each weekday in `remove_weekdays`, the offset of the row receiving its counts
    """

    replace_existing: bool = True
    """
    Should new data replace existing time points?
    """

    run_checks: bool = True
    """
    If `True`, run checks on both the input and output series

    If you are sure about your workflow,
    you can disable the checks to speed things up.
    """

    @add_to.validator
    def validate_add_to(
        self, attribute: attr.Attribute[Any], value: tuple[int, ...]
    ) -> None:
        """
        Validate the weekday removal policy
        """
        validate_weekday_policy(self.remove_weekdays, value)

    def __call__(
        self, series: SurveillanceSeries, records: pd.DataFrame
    ) -> SurveillanceSeries:
        """
        Update a series

        Parameters
        ----------
        series
            Series to update

        records
            Raw records, one row per event

        Returns
        -------
        :
            Updated series
        """
        if self.run_checks:
            assert_series_is_consistent(series)

        block = make_update_block(
            series,
            records,
            id_columns=self.id_columns,
            group_column=self.group_column,
            date_column=self.date_column,
            date_format=self.date_format,
            add_new_groups=self.add_new_groups,
            remove_weekdays=self.remove_weekdays,
            add_to=self.add_to,
            replace_existing=self.replace_existing,
        )
        res = merge_block(series, block, replace_existing=self.replace_existing)

        if self.run_checks:
            assert_series_is_consistent(res)
            assert_history_preserved(
                series,
                res,
                n_retained=int(series.time_starts.searchsorted(block.time_starts[0])),
            )

        return res
