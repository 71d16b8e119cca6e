"""
Calendar grids, i.e. complete sequences of time points between two dates
"""

from __future__ import annotations

import re
from collections.abc import Collection
from enum import Enum

import numpy as np
import pandas as pd

from syndromic.exceptions import ConfigurationError
from syndromic.typing import DATE_LIKE, CalendarDataFrame

WEEKDAY_CODES: tuple[int, ...] = tuple(range(7))
"""
Valid weekday codes, 0 is Sunday, 1 is Monday, ..., 6 is Saturday
"""

ISOWEEK_REGEX = re.compile(r"^(?P<year>\d{4})-W(?P<week>\d{2})(-(?P<day>[1-7]))?$")
"""
Regular expression matching ISO-week labels like `2010-W05` or `2010-W05-1`
"""


class Granularity(Enum):
    """
    Supported time point resolutions
    """

    DAILY = "daily"
    """
    One time point per day
    """

    WEEKLY = "weekly"
    """
    One time point per ISO-week
    """

    @property
    def label_column(self) -> str:
        """
        Name of the calendar column which holds the time point labels
        """
        if self is Granularity.DAILY:
            return "date"

        return "isoweek"

    @property
    def step(self) -> pd.Timedelta:
        """
        Distance between the starts of two consecutive time points
        """
        if self is Granularity.DAILY:
            return pd.Timedelta(days=1)

        return pd.Timedelta(days=7)


def to_day(value: DATE_LIKE) -> pd.Timestamp:
    """
    Convert a date-like value to a [pd.Timestamp][pandas.Timestamp] at midnight

    Strings are interpreted as ISO dates (`YYYY-MM-DD`).

    Parameters
    ----------
    value
        Value to convert

    Returns
    -------
    :
        `value` as a timestamp without any time of day information
    """
    return pd.Timestamp(value).normalize()


def weekday_code(days: pd.DatetimeIndex) -> np.ndarray:
    """
    Get the weekday code of each day (0 is Sunday, 6 is Saturday)

    Parameters
    ----------
    days
        Days for which to get the code

    Returns
    -------
    :
        Weekday codes
    """
    return ((days.dayofweek + 1) % 7).to_numpy(dtype=np.int64)


def week_start(value: DATE_LIKE) -> pd.Timestamp:
    """
    Get the Monday which starts the ISO-week `value` falls in

    Parameters
    ----------
    value
        Day of interest

    Returns
    -------
    :
        Monday of the ISO-week containing `value`
    """
    day = to_day(value)

    return day - pd.Timedelta(days=day.dayofweek)


def date_to_isoweek(value: DATE_LIKE, reference_day: int = 1) -> str:
    """
    Get the ISO-week label of a day

    Parameters
    ----------
    value
        Day of interest

    reference_day
        ISO weekday (1 is Monday, 7 is Sunday) to put at the end of the label

    Returns
    -------
    :
        Label of the form `YYYY-Www-d`

    Examples
    --------
    >>> date_to_isoweek("2010-01-01")
    '2009-W53-1'
    >>> date_to_isoweek("2010-01-06", reference_day=3)
    '2010-W01-3'
    """
    iso = to_day(value).isocalendar()

    return f"{iso[0]}-W{iso[1]:02d}-{reference_day}"


def isoweek_to_date(label: str) -> pd.Timestamp:
    """
    Get the day an ISO-week label refers to

    Labels without a weekday refer to the Monday of the week.

    Parameters
    ----------
    label
        Label of the form `YYYY-Www` or `YYYY-Www-d`

    Returns
    -------
    :
        Day the label refers to

    Raises
    ------
    ConfigurationError
        `label` is not a valid ISO-week label

    Examples
    --------
    >>> isoweek_to_date("2009-W53-1")
    Timestamp('2009-12-28 00:00:00')
    >>> isoweek_to_date("2010-W01-3")
    Timestamp('2010-01-06 00:00:00')
    """
    return parse_isoweek_labels(pd.Series([label], dtype=object)).iloc[0]


def parse_isoweek_labels(labels: pd.Series) -> pd.Series:
    """
    Get the days a series of ISO-week labels refer to

    Labels without a weekday refer to the Monday of the week.
    Missing labels are mapped to `NaT`.

    Parameters
    ----------
    labels
        Labels of the form `YYYY-Www` or `YYYY-Www-d`

    Returns
    -------
    :
        Days the labels refer to, with the same index as `labels`

    Raises
    ------
    ConfigurationError
        Any of `labels` is not a valid ISO-week label
    """
    res = pd.Series(
        pd.NaT, index=labels.index, dtype="datetime64[ns]", name=labels.name
    )
    present = labels.notna().to_numpy()
    if not present.any():
        return res

    raw = labels.loc[present]
    parts = raw.astype(str).str.strip().str.extract(ISOWEEK_REGEX)
    weeks = parts["week"].fillna("0").astype(np.int64).to_numpy()
    # 28 December is always in the last week of its ISO-year
    weeks_in_year = (
        pd.to_datetime(parts["year"].fillna("2000") + "-12-28", format="%Y-%m-%d")
        .dt.isocalendar()["week"]
        .to_numpy(dtype=np.int64)
    )

    invalid = (weeks < 1) | (weeks > weeks_in_year)
    if invalid.any():
        msg = (
            "Not a valid ISO-week label (expected e.g. '2010-W05-1'): "
            f"{raw.iloc[invalid.argmax()]!r}"
        )
        raise ConfigurationError(msg)

    normalised = parts["year"] + "-W" + parts["week"] + "-" + parts["day"].fillna("1")
    parsed = pd.to_datetime(normalised, format="%G-W%V-%u")
    res.loc[present] = parsed.astype("datetime64[ns]").to_numpy()

    return res


def isoweek_labels_to_week_starts(labels: pd.Series) -> pd.Series:
    """
    Get the Monday of the week each ISO-week label refers to

    Parameters
    ----------
    labels
        Labels of the form `YYYY-Www` or `YYYY-Www-d`

    Returns
    -------
    :
        Monday of each week, `NaT` for missing labels
    """
    days = parse_isoweek_labels(labels)

    return days - pd.to_timedelta(days.dt.dayofweek, unit="D")


def make_calendar(
    min_date: DATE_LIKE,
    max_date: DATE_LIKE,
    granularity: Granularity,
    excluded_weekdays: Collection[int] = (),
) -> CalendarDataFrame:
    """
    Make a complete calendar between two dates

    Parameters
    ----------
    min_date
        First day to include

    max_date
        Last day to include

    granularity
        Resolution of the calendar

    excluded_weekdays
        Weekday codes (0 is Sunday) of days to leave out of the calendar.

        Only used for daily calendars.

    Returns
    -------
    :
        Calendar covering `[min_date, max_date]`.

        Daily calendars have the columns `date, dow, month, year, week`
        (`week` is the ISO week number).
        Weekly calendars have one row for each ISO-week
        the interval touches and the columns `isoweek, week, year`.

    Raises
    ------
    ConfigurationError
        `min_date` is after `max_date`

    Examples
    --------
    >>> make_calendar("2010-01-01", "2010-01-03", Granularity.DAILY)
             date  dow  month  year  week
    0  2010-01-01    5      1  2010    53
    1  2010-01-02    6      1  2010    53
    2  2010-01-03    0      1  2010    53
    >>> make_calendar("2010-01-01", "2010-01-12", Granularity.WEEKLY)
          isoweek  week  year
    0  2009-W53-1    53  2009
    1  2010-W01-1     1  2010
    2  2010-W02-1     2  2010
    """
    min_day = to_day(min_date)
    max_day = to_day(max_date)
    if min_day > max_day:
        msg = f"min_date must not be after max_date. {min_day=} {max_day=}"
        raise ConfigurationError(msg)

    if granularity is Granularity.DAILY:
        days = pd.date_range(min_day, max_day, freq="D")
        if excluded_weekdays:
            days = days[~np.isin(weekday_code(days), list(excluded_weekdays))]

        iso = days.isocalendar()

        return pd.DataFrame(
            {
                "date": days.strftime("%Y-%m-%d").to_numpy(dtype=object),
                "dow": weekday_code(days),
                "month": days.month.to_numpy(dtype=np.int64),
                "year": days.year.to_numpy(dtype=np.int64),
                "week": iso["week"].to_numpy(dtype=np.int64),
            }
        )

    mondays = pd.date_range(week_start(min_day), week_start(max_day), freq="7D")

    return weekly_calendar_from_mondays(mondays)


def weekly_calendar_from_mondays(mondays: pd.DatetimeIndex) -> CalendarDataFrame:
    """
    Make a weekly calendar from the Mondays which start each week

    Parameters
    ----------
    mondays
        Mondays to include

    Returns
    -------
    :
        Weekly calendar with the columns `isoweek, week, year`
    """
    iso = mondays.isocalendar()
    weeks = iso["week"].to_numpy(dtype=np.int64)
    years = iso["year"].to_numpy(dtype=np.int64)

    return pd.DataFrame(
        {
            "isoweek": np.array(
                [f"{y}-W{w:02d}-1" for y, w in zip(years, weeks)], dtype=object
            ),
            "week": weeks,
            "year": years,
        }
    )


def time_point_starts(
    calendar: CalendarDataFrame, granularity: Granularity
) -> pd.DatetimeIndex:
    """
    Get the day on which each time point in a calendar starts

    Parameters
    ----------
    calendar
        Calendar of interest

    granularity
        Resolution of `calendar`

    Returns
    -------
    :
        The day itself for daily calendars, the week's Monday for weekly calendars
    """
    labels = calendar[granularity.label_column]
    if granularity is Granularity.DAILY:
        res = pd.DatetimeIndex(pd.to_datetime(labels, format="%Y-%m-%d"))
    else:
        res = pd.DatetimeIndex(isoweek_labels_to_week_starts(labels))

    return res.as_unit("ns")
