"""
Conversion of daily counts to weekly counts
"""

from __future__ import annotations

import pandas as pd

from syndromic.aggregation import AlignedCounts
from syndromic.calendar import Granularity, weekly_calendar_from_mondays
from syndromic.exceptions import ConfigurationError


def convert_days_to_weeks(block: AlignedCounts) -> AlignedCounts:
    """
    Sum daily counts into ISO-weeks

    Weeks only partly covered by `block` are summed over the days available.

    Parameters
    ----------
    block
        Daily counts

    Returns
    -------
    :
        Weekly counts, labelled by the Monday of each ISO-week
        (e.g. `2010-W01-1`)

    Raises
    ------
    ConfigurationError
        `block` is not daily
    """
    if block.granularity is not Granularity.DAILY:
        msg = f"Only daily data can be converted to weeks. {block.granularity=}"
        raise ConfigurationError(msg)

    days = block.time_starts
    mondays = days - pd.to_timedelta(days.dayofweek, unit="D")

    summed = block.counts.groupby(mondays.to_numpy(), sort=True).sum()
    calendar = weekly_calendar_from_mondays(pd.DatetimeIndex(summed.index))

    summed.index = pd.Index(
        calendar[Granularity.WEEKLY.label_column].to_numpy(),
        name=Granularity.WEEKLY.label_column,
    )

    return AlignedCounts(
        counts=summed, calendar=calendar, granularity=Granularity.WEEKLY
    )
