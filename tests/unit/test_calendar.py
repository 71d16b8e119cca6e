"""
Tests of `syndromic.calendar`
"""

import re

import numpy as np
import pandas as pd
import pytest

from syndromic.calendar import (
    Granularity,
    date_to_isoweek,
    isoweek_labels_to_week_starts,
    isoweek_to_date,
    make_calendar,
    parse_isoweek_labels,
    time_point_starts,
    week_start,
    weekday_code,
)
from syndromic.exceptions import ConfigurationError


def test_make_calendar_daily():
    res = make_calendar("2010-01-01", "2010-01-05", Granularity.DAILY)

    assert res.columns.tolist() == ["date", "dow", "month", "year", "week"]
    assert res["date"].tolist() == [
        "2010-01-01",
        "2010-01-02",
        "2010-01-03",
        "2010-01-04",
        "2010-01-05",
    ]
    assert res["dow"].tolist() == [5, 6, 0, 1, 2]
    assert res["month"].tolist() == [1] * 5
    assert res["year"].tolist() == [2010] * 5
    assert res["week"].tolist() == [53, 53, 53, 1, 1]


def test_make_calendar_daily_single_day():
    res = make_calendar("2010-01-01", "2010-01-01", Granularity.DAILY)

    assert res["date"].tolist() == ["2010-01-01"]


def test_make_calendar_daily_excluded_weekdays():
    res = make_calendar(
        "2010-01-01", "2010-01-11", Granularity.DAILY, excluded_weekdays=(0, 6)
    )

    assert res["date"].tolist() == [
        "2010-01-01",
        "2010-01-04",
        "2010-01-05",
        "2010-01-06",
        "2010-01-07",
        "2010-01-08",
        "2010-01-11",
    ]
    assert not np.isin(res["dow"], [0, 6]).any()


@pytest.mark.parametrize(
    "min_date, max_date, exp_labels, exp_weeks, exp_years",
    (
        pytest.param(
            "2009-12-31",
            "2010-01-20",
            ["2009-W53-1", "2010-W01-1", "2010-W02-1", "2010-W03-1"],
            [53, 1, 2, 3],
            [2009, 2010, 2010, 2010],
            id="iso-year-differs-from-calendar-year",
        ),
        pytest.param(
            "2015-12-30",
            "2016-01-05",
            ["2015-W53-1", "2016-W01-1"],
            [53, 1],
            [2015, 2016],
            id="53-week-year",
        ),
        pytest.param(
            "2010-01-05",
            "2010-01-06",
            ["2010-W01-1"],
            [1],
            [2010],
            id="single-week",
        ),
    ),
)
def test_make_calendar_weekly(min_date, max_date, exp_labels, exp_weeks, exp_years):
    res = make_calendar(min_date, max_date, Granularity.WEEKLY)

    assert res.columns.tolist() == ["isoweek", "week", "year"]
    assert res["isoweek"].tolist() == exp_labels
    assert res["week"].tolist() == exp_weeks
    assert res["year"].tolist() == exp_years


@pytest.mark.parametrize("granularity", (Granularity.DAILY, Granularity.WEEKLY))
def test_make_calendar_min_after_max(granularity):
    with pytest.raises(
        ConfigurationError, match="min_date must not be after max_date"
    ):
        make_calendar("2010-01-05", "2010-01-01", granularity)


@pytest.mark.parametrize(
    "label, exp",
    (
        pytest.param("2010-W05", "2010-02-01", id="no-weekday"),
        pytest.param("2010-W05-1", "2010-02-01", id="monday"),
        pytest.param("2010-W05-3", "2010-02-03", id="wednesday"),
        pytest.param("2009-W53-7", "2010-01-03", id="sunday-in-next-year"),
        pytest.param(" 2010-W01-1 ", "2010-01-04", id="surrounding-whitespace"),
    ),
)
def test_isoweek_to_date(label, exp):
    assert isoweek_to_date(label) == pd.Timestamp(exp)


@pytest.mark.parametrize(
    "label",
    (
        pytest.param("2010-05", id="missing-w"),
        pytest.param("2010-W05-8", id="invalid-weekday"),
        pytest.param("2010-W54-1", id="week-out-of-range"),
        pytest.param("2010-W53-1", id="week-53-in-52-week-year"),
        pytest.param("W05-2010", id="wrong-order"),
    ),
)
def test_isoweek_to_date_invalid(label):
    with pytest.raises(ConfigurationError, match=re.escape(repr(label))):
        isoweek_to_date(label)


def test_parse_isoweek_labels():
    labels = pd.Series(
        ["2010-W05", None, "2009-W53-7", np.nan], index=[3, 2, 1, 0], name="when"
    )

    res = parse_isoweek_labels(labels)

    assert res.index.tolist() == [3, 2, 1, 0]
    assert res.name == "when"
    assert res.isnull().tolist() == [False, True, False, True]
    assert res.iloc[0] == pd.Timestamp("2010-02-01")
    assert res.iloc[2] == pd.Timestamp("2010-01-03")


def test_parse_isoweek_labels_reports_invalid_label():
    labels = pd.Series(["2010-W05-1", "2010-W53-1", "2010-W54-1"])

    with pytest.raises(ConfigurationError, match=re.escape("'2010-W53-1'")):
        parse_isoweek_labels(labels)


def test_isoweek_labels_to_week_starts():
    res = isoweek_labels_to_week_starts(
        pd.Series(["2010-W01-3", None, "2009-W53-7", "2010-W02"])
    )

    assert pd.isna(res.iloc[1])
    assert res.drop(index=1).tolist() == [
        pd.Timestamp("2010-01-04"),
        pd.Timestamp("2009-12-28"),
        pd.Timestamp("2010-01-11"),
    ]


@pytest.mark.parametrize(
    "value, reference_day, exp",
    (
        pytest.param("2010-01-03", 1, "2009-W53-1", id="sunday-end-of-iso-year"),
        pytest.param("2010-01-04", 1, "2010-W01-1", id="monday"),
        pytest.param("2010-01-10", 1, "2010-W01-1", id="sunday"),
        pytest.param("2010-01-04", 3, "2010-W01-3", id="reference-day"),
        pytest.param(pd.Timestamp("2015-12-31"), 1, "2015-W53-1", id="timestamp"),
    ),
)
def test_date_to_isoweek(value, reference_day, exp):
    assert date_to_isoweek(value, reference_day=reference_day) == exp


@pytest.mark.parametrize(
    "value, exp",
    (
        ("2010-01-03", "2009-12-28"),
        ("2010-01-04", "2010-01-04"),
        ("2010-01-06", "2010-01-04"),
        (pd.Timestamp("2010-01-10 13:45"), "2010-01-04"),
    ),
)
def test_week_start(value, exp):
    assert week_start(value) == pd.Timestamp(exp)


def test_weekday_code():
    res = weekday_code(pd.date_range("2010-01-03", periods=8, freq="D"))

    np.testing.assert_array_equal(res, [0, 1, 2, 3, 4, 5, 6, 0])


def test_time_point_starts_daily():
    calendar = make_calendar(
        "2010-01-01", "2010-01-05", Granularity.DAILY, excluded_weekdays=(0,)
    )

    res = time_point_starts(calendar, Granularity.DAILY)

    exp = pd.DatetimeIndex(
        ["2010-01-01", "2010-01-02", "2010-01-04", "2010-01-05"]
    ).as_unit("ns")
    pd.testing.assert_index_equal(res, exp, check_names=False)


def test_time_point_starts_weekly():
    calendar = make_calendar("2010-01-01", "2010-01-12", Granularity.WEEKLY)

    res = time_point_starts(calendar, Granularity.WEEKLY)

    exp = pd.DatetimeIndex(["2009-12-28", "2010-01-04", "2010-01-11"]).as_unit("ns")
    pd.testing.assert_index_equal(res, exp, check_names=False)


@pytest.mark.parametrize(
    "granularity, exp_label_column, exp_step",
    (
        (Granularity.DAILY, "date", pd.Timedelta(days=1)),
        (Granularity.WEEKLY, "isoweek", pd.Timedelta(days=7)),
    ),
)
def test_granularity_properties(granularity, exp_label_column, exp_step):
    assert granularity.label_column == exp_label_column
    assert granularity.step == exp_step
