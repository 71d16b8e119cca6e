"""
Aggregation of raw event records into aligned count matrices
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import numpy as np
import pandas as pd
from attrs import define, field

from syndromic.calendar import Granularity, time_point_starts
from syndromic.exceptions import ConfigurationError
from syndromic.typing import CalendarDataFrame, CountsDataFrame


@define(frozen=True)
class AlignedCounts:
    """
    A block of counts aligned to a complete calendar

    This is what new data is turned into before it is merged into a series.
    """

    counts: CountsDataFrame
    """
    Counts, one column per group, indexed by the time point labels
    """

    calendar: CalendarDataFrame
    """
    Calendar describing each row of `counts`
    """

    granularity: Granularity
    """
    Resolution of the time points
    """

    excluded_weekdays: tuple[int, ...] = field(default=(), converter=tuple)
    """
    Weekday codes which have been removed from the block (daily blocks only)
    """

    @property
    def n_time_points(self) -> int:
        """
        Number of time points in the block
        """
        return self.counts.shape[0]

    @property
    def time_starts(self) -> pd.DatetimeIndex:
        """
        Day on which each time point in the block starts
        """
        return time_point_starts(self.calendar, self.granularity)


def as_column_list(columns: str | Sequence[str]) -> list[str]:
    """
    Convert one or more column names to a list of column names

    Parameters
    ----------
    columns
        Column name or sequence of column names

    Returns
    -------
    :
        Column names
    """
    if isinstance(columns, str):
        return [columns]

    return list(columns)


def get_record_columns(
    id_columns: str | Sequence[str], *other_columns: str
) -> list[str]:
    """
    Get the columns to select from raw records, each one only once

    An identifier column may also be one of `other_columns`
    (e.g. when events are identified by their group).

    Parameters
    ----------
    id_columns
        Column(s) which identify unique events

    *other_columns
        Further columns to select

    Returns
    -------
    :
        Column names, in order of first appearance, without duplicates
    """
    return list(dict.fromkeys([*as_column_list(id_columns), *other_columns]))


def assert_has_columns(records: pd.DataFrame, columns: Iterable[str]) -> None:
    """
    Assert that raw records have all the columns we need

    Parameters
    ----------
    records
        Records to check

    columns
        Columns that must be in `records`

    Raises
    ------
    ConfigurationError
        One or more columns are missing
    """
    missing = [c for c in columns if c not in records.columns]
    if missing:
        msg = (
            f"The records are missing the following columns: {missing}. "
            f"Available columns: {records.columns.tolist()}"
        )
        raise ConfigurationError(msg)


def get_group_names(
    existing: Iterable[str],
    new_labels: Iterable[object],
    add_new_groups: bool,
) -> list[str]:
    """
    Get the groups to count

    Parameters
    ----------
    existing
        Groups which are already being monitored

    new_labels
        Group labels found in the new data

    add_new_groups
        Should groups which are not in `existing` be added?

        If `False`, they are silently dropped.

    Returns
    -------
    :
        `existing`, followed (if `add_new_groups`) by any new groups
        in the order in which they first appear in `new_labels`
    """
    res = [str(v) for v in existing]
    if not add_new_groups:
        return res

    known = set(res)
    for label in pd.unique(pd.Series([str(v) for v in new_labels], dtype=object)):
        if label not in known:
            res.append(label)
            known.add(label)

    return res


def count_events(  # noqa: PLR0913
    records: pd.DataFrame,
    id_columns: str | Sequence[str],
    group_column: str,
    time_column: str,
    groups: Sequence[str],
    calendar: CalendarDataFrame,
    granularity: Granularity,
) -> AlignedCounts:
    """
    Count events per group and time point

    Each identifier contributes at most one event per group and time point,
    no matter how many records share it.

    Parameters
    ----------
    records
        Raw records

    id_columns
        Column(s) which identify unique events (used only for de-duplication)

    group_column
        Column which holds the group label

    time_column
        Column which holds the (already parsed) start of the time point
        each record belongs to

    groups
        Groups to count. Records of any other group are ignored.

    calendar
        Complete calendar onto which to align the counts.
        Records outside of it are ignored.

    granularity
        Resolution of `calendar`

    Returns
    -------
    :
        Counts aligned with `calendar`, zero where there were no events
    """
    record_columns = get_record_columns(id_columns, group_column, time_column)
    assert_has_columns(records, record_columns)

    labels = pd.Index(
        calendar[granularity.label_column].to_numpy(),
        name=granularity.label_column,
    )
    starts = time_point_starts(calendar, granularity)
    group_idx = pd.Index(list(groups), dtype=object)

    relevant = records[record_columns].copy()
    relevant[group_column] = relevant[group_column].astype(str)
    relevant[time_column] = pd.to_datetime(relevant[time_column]).astype(
        "datetime64[ns]"
    )
    relevant = relevant.loc[relevant[group_column].isin(group_idx)]

    deduplicated = relevant.drop_duplicates()
    if deduplicated.empty:
        counts = pd.DataFrame(
            np.zeros((len(labels), len(group_idx)), dtype=np.int64),
            index=labels,
            columns=group_idx,
        )

    else:
        counts_long = deduplicated.groupby([time_column, group_column]).size()
        counts = (
            counts_long.unstack(group_column, fill_value=0)
            .reindex(index=starts, columns=group_idx, fill_value=0)
            .astype(np.int64)
        )
        counts.index = labels
        counts.columns = group_idx

    return AlignedCounts(counts=counts, calendar=calendar, granularity=granularity)
