"""
Tests of `syndromic.merging`
"""

import re

import numpy as np
import pandas as pd
import pytest

from syndromic.aggregation import AlignedCounts
from syndromic.calendar import Granularity, make_calendar, to_day
from syndromic.exceptions import (
    ConfigurationError,
    InvariantViolationError,
    NoNewDataError,
)
from syndromic.merging import get_merged_groups, merge_block, merge_detection_layer
from syndromic.testing import get_series


def get_block(counts, min_date, granularity=Granularity.DAILY):
    counts_df = pd.DataFrame(counts)
    max_date = to_day(min_date) + (counts_df.shape[0] - 1) * granularity.step
    calendar = make_calendar(min_date, max_date, granularity)
    counts_df.index = pd.Index(
        calendar[granularity.label_column].to_numpy(),
        name=granularity.label_column,
    )
    counts_df.columns = pd.Index(counts_df.columns.tolist(), dtype=object)

    return AlignedCounts(counts=counts_df, calendar=calendar, granularity=granularity)


def test_merge_adds_time_points_and_groups():
    x = get_series(
        {"A": [1, 2, 3]},
        "2010-01-01",
        n_algorithms=2,
        with_baseline=True,
        group_model=("y ~ dow",),
    )
    block = get_block({"A": [4, 5], "B": [1, 2]}, "2010-01-04")

    res = merge_block(x, block)

    assert res.groups == ["A", "B"]
    assert res.counts.index.tolist() == [
        "2010-01-01",
        "2010-01-02",
        "2010-01-03",
        "2010-01-04",
        "2010-01-05",
    ]
    assert res.calendar["date"].tolist() == res.counts.index.tolist()
    assert res.calendar.index.tolist() == list(range(5))
    assert res.counts["A"].tolist() == [1, 2, 3, 4, 5]
    assert res.counts["B"].tolist() == [0, 0, 0, 1, 2]

    # Baseline of new time points is seeded with the new counts
    assert res.baseline["A"].tolist() == [1, 2, 3, 4, 5]
    assert res.baseline["B"].tolist() == [0, 0, 0, 1, 2]

    for layer, exp_history_a in (
        ("alarms", [0.0, 0.0, 0.0]),
        ("ucl", [2.0, 3.0, 4.0]),
        ("lcl", [0.0, 0.0, 0.0]),
    ):
        res_layer = getattr(res, layer)
        assert res_layer.shape == (5, 2, 2)
        for algorithm in range(2):
            np.testing.assert_array_equal(
                res_layer[:3, 0, algorithm], exp_history_a, err_msg=layer
            )

        assert np.isnan(res_layer[:3, 1, :]).all()
        assert np.isnan(res_layer[3:, :, :]).all()

    assert res.group_model == ("y ~ dow", None)

    # x itself is untouched
    assert x.groups == ["A"]
    assert x.n_time_points == 3
    assert x.alarms.shape == (3, 1, 2)


def test_merge_absent_layers_stay_absent():
    x = get_series({"A": [1, 2, 3]}, "2010-01-01")
    block = get_block({"A": [4], "B": [1]}, "2010-01-04")

    res = merge_block(x, block)

    for layer in ("baseline", "alarms", "ucl", "lcl"):
        assert getattr(res, layer) is None

    assert res.group_model == ()


def test_merge_zero_size_layers_stay_zero_size():
    x = get_series({"A": [1, 2, 3]}, "2010-01-01", n_algorithms=0)
    block = get_block({"A": [4], "B": [1]}, "2010-01-04")

    res = merge_block(x, block)

    for layer in ("alarms", "ucl", "lcl"):
        assert getattr(res, layer).shape == (4, 2, 0)


@pytest.mark.parametrize(
    "replace_existing, exp_a",
    (
        pytest.param(True, [1, 7, 8, 9], id="replace-existing"),
        pytest.param(False, [1, 2, 3, 9], id="keep-existing"),
    ),
)
def test_merge_overlap(replace_existing, exp_a):
    x = get_series({"A": [1, 2, 3]}, "2010-01-01", n_algorithms=1)
    block = get_block({"A": [7, 8, 9]}, "2010-01-02")

    res = merge_block(x, block, replace_existing=replace_existing)

    assert res.counts.index.tolist() == [
        "2010-01-01",
        "2010-01-02",
        "2010-01-03",
        "2010-01-04",
    ]
    assert res.counts["A"].tolist() == exp_a

    n_kept = 1 if replace_existing else 3
    assert not np.isnan(res.alarms[:n_kept]).any()
    assert np.isnan(res.alarms[n_kept:]).all()


def test_merge_block_before_series_start():
    x = get_series({"A": [1, 2, 3]}, "2010-01-01", with_baseline=True)
    block = get_block({"A": [5, 6]}, "2009-12-31")

    res = merge_block(x, block)

    assert res.counts.index.tolist() == ["2009-12-31", "2010-01-01"]
    assert res.counts["A"].tolist() == [5, 6]
    assert res.baseline["A"].tolist() == [5, 6]


def test_merge_no_new_data():
    x = get_series({"A": [1, 2, 3]}, "2010-01-01")
    block = get_block({"A": [7, 8]}, "2010-01-02")

    with pytest.raises(
        NoNewDataError,
        match=re.escape(
            "contains no new data and existing time points are not to be replaced. "
            "Last time point in the series: 2010-01-03. "
            "Latest time point supplied: 2010-01-03"
        ),
    ):
        merge_block(x, block, replace_existing=False)

    assert x.counts["A"].tolist() == [1, 2, 3]


def test_merge_gap_is_invalid():
    x = get_series({"A": [1, 2, 3]}, "2010-01-01")
    block = get_block({"A": [7]}, "2010-01-06")

    with pytest.raises(InvariantViolationError, match="calendar has gaps"):
        merge_block(x, block)


def test_merge_granularity_mismatch():
    x = get_series({"A": [1, 2, 3]}, "2010-01-01")
    block = get_block({"A": [7]}, "2010-01-04", granularity=Granularity.WEEKLY)

    with pytest.raises(ConfigurationError, match="same granularity"):
        merge_block(x, block)


def test_merge_weekly():
    x = get_series(
        {"A": [1, 2]}, "2010-01-04", granularity=Granularity.WEEKLY, n_algorithms=1
    )
    block = get_block({"A": [5, 6]}, "2010-01-11", granularity=Granularity.WEEKLY)

    res = merge_block(x, block)

    assert res.counts.index.tolist() == ["2010-W01-1", "2010-W02-1", "2010-W03-1"]
    assert res.counts["A"].tolist() == [1, 5, 6]
    assert res.alarms.shape == (3, 1, 1)


def test_merge_excluded_weekdays_union():
    x = get_series({"A": [1, 2, 3]}, "2010-01-04")
    block = AlignedCounts(
        counts=pd.DataFrame(
            {"A": [4, 5]}, index=pd.Index(["2010-01-07", "2010-01-08"], name="date")
        ),
        calendar=make_calendar("2010-01-07", "2010-01-08", Granularity.DAILY),
        granularity=Granularity.DAILY,
        excluded_weekdays=(6, 0),
    )

    res = merge_block(x, block)

    assert res.excluded_weekdays == (0, 6)


@pytest.mark.parametrize(
    "existing, new, exp",
    (
        (["A"], ["A", "B"], ["A", "B"]),
        (["A", "B"], ["A"], ["A", "B"]),
        (["B", "A"], ["C", "A", "D"], ["B", "A", "C", "D"]),
    ),
)
def test_get_merged_groups(existing, new, exp):
    assert get_merged_groups(existing, new) == exp


def test_merge_detection_layer():
    layer = np.arange(6, dtype=float).reshape(3, 1, 2)

    res = merge_detection_layer(layer, n_keep=2, n_new_groups=1, n_new_time_points=2)

    assert res.shape == (4, 2, 2)
    np.testing.assert_array_equal(res[:2, 0, :], layer[:2, 0, :])
    assert np.isnan(res[:2, 1, :]).all()
    assert np.isnan(res[2:]).all()


def test_merge_detection_layer_absent():
    assert (
        merge_detection_layer(None, n_keep=2, n_new_groups=1, n_new_time_points=2)
        is None
    )
