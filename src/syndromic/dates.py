"""
Parsing of the dates found in raw records
"""

from __future__ import annotations

import pandas as pd

from syndromic.calendar import isoweek_labels_to_week_starts
from syndromic.exceptions import ConfigurationError

ISOWEEK_FORMAT: str = "ISOweek"
"""
Reserved date format, meaning that dates are ISO-week labels like `2010-W05-1`
"""


def is_isoweek_format(date_format: str) -> bool:
    """
    Check whether a date format refers to ISO-week labels

    Parameters
    ----------
    date_format
        Date format to check

    Returns
    -------
    :
        `True` if `date_format` is the reserved ISO-week format
    """
    return date_format == ISOWEEK_FORMAT


def parse_dates(values: pd.Series, date_format: str) -> pd.Series:
    """
    Parse raw date values

    Parameters
    ----------
    values
        Values to parse

    date_format
        Either a [strptime][datetime.datetime.strptime] format
        or [ISOWEEK_FORMAT][(m).].

        If [ISOWEEK_FORMAT][(m).], every value is mapped
        to the Monday of the week it refers to.

        Missing values are mapped to `NaT`.

    Returns
    -------
    :
        Parsed days (no time of day information), with the same index as `values`

    Raises
    ------
    ConfigurationError
        `values` could not be parsed with `date_format`
    """
    if is_isoweek_format(date_format):
        return isoweek_labels_to_week_starts(values)

    if "%" not in date_format:
        msg = (
            f"Unrecognised date format: {date_format!r}. "
            f"Supply a strptime format (e.g. '%d/%m/%Y') or {ISOWEEK_FORMAT!r}"
        )
        raise ConfigurationError(msg)

    try:
        parsed = pd.to_datetime(values, format=date_format)
    except (TypeError, ValueError) as exc:
        msg = f"Could not parse {values.name!r} with date format {date_format!r}"
        raise ConfigurationError(msg) from exc

    return parsed.dt.normalize().astype("datetime64[ns]")
