"""
Removal of weekdays from daily data, redistributing their counts to other days
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import pandas as pd
from loguru import logger

from syndromic.aggregation import AlignedCounts
from syndromic.calendar import WEEKDAY_CODES, Granularity
from syndromic.exceptions import ConfigurationError, UnrecognisedWeekdayError


def validate_weekday_policy(
    remove_weekdays: Sequence[int] | None, add_to: Sequence[int] | None
) -> tuple[tuple[int, ...], tuple[int, ...]]:
    """
    Validate a weekday removal policy

    Parameters
    ----------
    remove_weekdays
        Weekday codes to remove (0 is Sunday, 6 is Saturday).

        `None` means no weekdays are removed.

    add_to
        Offset, in rows, of the row to which each removed weekday's counts are added.

        Must have the same length as `remove_weekdays`.

    Returns
    -------
    :
        The validated weekday codes and offsets

    Raises
    ------
    UnrecognisedWeekdayError
        A weekday code is not in 0-6

    ConfigurationError
        `add_to` does not match `remove_weekdays`
    """
    if remove_weekdays is None or len(remove_weekdays) == 0:
        return (), ()

    invalid = [
        v
        for v in remove_weekdays
        if isinstance(v, bool)
        or not isinstance(v, (int, np.integer))
        or v not in WEEKDAY_CODES
    ]
    if invalid:
        raise UnrecognisedWeekdayError(invalid)

    if add_to is None or len(add_to) != len(remove_weekdays):
        msg = (
            "add_to must have exactly the same length as remove_weekdays. "
            f"{remove_weekdays=} {add_to=}"
        )
        raise ConfigurationError(msg)

    return tuple(int(v) for v in remove_weekdays), tuple(int(v) for v in add_to)


def redistribute_weekdays(
    block: AlignedCounts,
    remove_weekdays: Sequence[int],
    add_to: Sequence[int],
) -> AlignedCounts:
    """
    Remove weekdays from daily counts, adding their counts to other rows

    Weekdays are processed one at a time, in the order given.
    Each removal re-indexes the rows, so later offsets
    refer to the rows left after the earlier removals.
    For example, weekends are moved to the following Monday
    with `remove_weekdays=(6, 0)` and `add_to=(2, 1)`.

    Occurrences whose target row is outside the block are skipped,
    i.e. they are neither removed nor redistributed.

    Parameters
    ----------
    block
        Daily counts

    remove_weekdays
        Weekday codes to remove (0 is Sunday, 6 is Saturday)

    add_to
        Row offset to the row which receives the counts of each removed weekday

    Returns
    -------
    :
        `block` without the removed rows

    Raises
    ------
    ConfigurationError
        `block` is not daily or the policy is not valid
    """
    remove_weekdays_t, add_to_t = validate_weekday_policy(remove_weekdays, add_to)
    if block.granularity is not Granularity.DAILY:
        msg = f"Weekdays can only be removed from daily data. {block.granularity=}"
        raise ConfigurationError(msg)

    values = block.counts.to_numpy(copy=True)
    labels = block.counts.index.to_numpy()
    calendar = block.calendar.reset_index(drop=True)

    for weekday, offset in zip(remove_weekdays_t, add_to_t):
        remove = np.flatnonzero(calendar["dow"].to_numpy() == weekday)
        if remove.size == 0:
            continue

        target = remove + offset
        in_bounds = (target >= 0) & (target < values.shape[0])
        if not in_bounds.all():
            logger.warning(
                "Not removing {} occurrence(s) of weekday {} "
                "because the row {} day(s) away is outside of the data: {}",
                int((~in_bounds).sum()),
                weekday,
                offset,
                labels[remove[~in_bounds]].tolist(),
            )

        remove = remove[in_bounds]
        target = target[in_bounds]

        values[target, :] = values[target, :] + values[remove, :]
        keep = np.ones(values.shape[0], dtype=bool)
        keep[remove] = False

        values = values[keep, :]
        labels = labels[keep]
        calendar = calendar.loc[keep].reset_index(drop=True)

    counts = pd.DataFrame(
        values,
        index=pd.Index(labels, name=block.counts.index.name),
        columns=block.counts.columns,
    )

    return AlignedCounts(
        counts=counts,
        calendar=calendar,
        granularity=block.granularity,
        excluded_weekdays=sorted(set(block.excluded_weekdays) | set(remove_weekdays_t)),
    )
