"""
Code to support our tests

This is here, rather than in our `tests` directory
because of the issues that come
when you turn your tests into a package using `__init__.py` files
(for details, see https://docs.pytest.org/en/7.1.x/explanation/goodpractices.html#choosing-an-import-mode).
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import numpy as np
import pandas as pd
from attrs import evolve

from syndromic.calendar import Granularity, to_day
from syndromic.series import SurveillanceSeries, series_from_counts
from syndromic.typing import DATE_LIKE

RNG = np.random.default_rng(20100101)


def get_series(
    counts: dict[str, Sequence[float]],
    min_date: DATE_LIKE,
    granularity: Granularity = Granularity.DAILY,
    n_algorithms: int | None = None,
    with_baseline: bool = False,
    **kwargs: Any,
) -> SurveillanceSeries:
    """
    Get a series from a dictionary of counts

    Parameters
    ----------
    counts
        Counts for each group

    min_date
        First day of the series

    granularity
        Resolution of the series

    n_algorithms
        If supplied, alarms, UCL and LCL are added with this many algorithms.
        Alarms are zero, UCL is the counts plus one, LCL is zero.

    with_baseline
        Should a baseline (equal to the counts) be added?

    **kwargs
        Passed to [SurveillanceSeries][(p).series.]

    Returns
    -------
    :
        Series
    """
    counts_df = pd.DataFrame(counts)
    max_date = to_day(min_date) + (counts_df.shape[0] - 1) * granularity.step

    res = series_from_counts(
        counts_df, min_date=min_date, max_date=max_date, granularity=granularity
    )
    if with_baseline:
        res = res.with_baseline(counts_df.to_numpy(copy=True))

    if n_algorithms is not None:
        shape = (*counts_df.shape, n_algorithms)
        ucl = np.repeat(
            counts_df.to_numpy(dtype=float)[:, :, np.newaxis] + 1.0,
            n_algorithms,
            axis=2,
        )
        res = res.with_alarms(np.zeros(shape)).with_ucl(ucl).with_lcl(np.zeros(shape))

    if kwargs:
        res = evolve(res, **kwargs)

    return res


def get_random_records(  # noqa: PLR0913
    n_records: int,
    groups: Sequence[str],
    min_date: DATE_LIKE,
    max_date: DATE_LIKE,
    n_ids: int = 50,
    date_format: str = "%d/%m/%Y",
    rng: np.random.Generator = RNG,
) -> pd.DataFrame:
    """
    Get random raw records

    Parameters
    ----------
    n_records
        Number of records

    groups
        Groups from which to sample the group of each record

    min_date
        Earliest date to sample

    max_date
        Latest date to sample

    n_ids
        Number of distinct identifiers to sample from
        (small values give lots of duplicates)

    date_format
        Format in which to write the dates

    rng
        Random number generator

    Returns
    -------
    :
        Records with the columns `id`, `group` and `date`
    """
    days = pd.date_range(to_day(min_date), to_day(max_date), freq="D")
    sampled_days = pd.DatetimeIndex(rng.choice(days.to_numpy(), size=n_records))

    return pd.DataFrame(
        {
            "id": rng.integers(0, n_ids, size=n_records),
            "group": rng.choice(np.asarray(groups, dtype=object), size=n_records),
            "date": sampled_days.strftime(date_format).to_numpy(dtype=object),
        }
    )


def assert_series_equal(res: SurveillanceSeries, exp: SurveillanceSeries) -> None:
    """
    Assert two series are equal

    Missing values (NaN) in the same place are considered equal.

    Parameters
    ----------
    res
        Result

    exp
        Expected value

    Raises
    ------
    AssertionError
        The series aren't equal
    """
    if res.granularity is not exp.granularity:
        msg = f"{res.granularity=} {exp.granularity=}"
        raise AssertionError(msg)

    pd.testing.assert_frame_equal(res.counts, exp.counts, check_dtype=False)
    pd.testing.assert_frame_equal(
        res.calendar.reset_index(drop=True),
        exp.calendar.reset_index(drop=True),
        check_dtype=False,
    )

    if (res.baseline is None) != (exp.baseline is None):
        msg = f"Baseline only present in one series: {res.baseline=} {exp.baseline=}"
        raise AssertionError(msg)

    if res.baseline is not None:
        pd.testing.assert_frame_equal(res.baseline, exp.baseline, check_dtype=False)

    for name in ("alarms", "ucl", "lcl"):
        res_layer = getattr(res, name)
        exp_layer = getattr(exp, name)
        if (res_layer is None) != (exp_layer is None):
            msg = f"{name} only present in one series: {res_layer=} {exp_layer=}"
            raise AssertionError(msg)

        if res_layer is not None:
            np.testing.assert_array_equal(res_layer, exp_layer, err_msg=name)

    if res.group_model != exp.group_model:
        msg = f"{res.group_model=} {exp.group_model=}"
        raise AssertionError(msg)

    if res.excluded_weekdays != exp.excluded_weekdays:
        msg = f"{res.excluded_weekdays=} {exp.excluded_weekdays=}"
        raise AssertionError(msg)
