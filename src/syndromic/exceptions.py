"""
Exceptions used throughout
"""

from __future__ import annotations

from collections.abc import Collection
from typing import Any


class ConfigurationError(ValueError):
    """
    Raised when the parameters supplied to an operation are malformed

    For example, weekday codes outside of the valid range
    or a date format which cannot be used to parse the data.
    """

    def __init__(self, msg: str) -> None:
        """
        Initialise the error

        Parameters
        ----------
        msg
            Description of the problem with the parameters
        """
        super().__init__(msg)


class UnrecognisedWeekdayError(ConfigurationError):
    """
    Raised when a weekday code is not one of the seven valid codes
    """

    def __init__(
        self, unrecognised_values: Collection[Any], name: str = "remove_weekdays"
    ) -> None:
        """
        Initialise the error

        Parameters
        ----------
        unrecognised_values
            Values which are not valid weekday codes

        name
            Name of the parameter in which the values were found
        """
        error_msg = (
            f"{name} must only contain integers "
            "between 0 (Sunday) and 6 (Saturday). "
            f"Unrecognised values: {sorted(unrecognised_values, key=str)}"
        )
        super().__init__(error_msg)


class NoNewDataError(ValueError):
    """
    Raised when an update would not add any new time points

    This happens when existing time points should not be replaced
    and all the supplied data is at or before the series' last time point.
    """

    def __init__(self, last_time_point: str, latest_supplied: str | None) -> None:
        """
        Initialise the error

        Parameters
        ----------
        last_time_point
            Label of the last time point in the existing series

        latest_supplied
            Latest time point found in the supplied data
            (`None` if no data was supplied at all)
        """
        error_msg = (
            "The data provided contains no new data "
            "and existing time points are not to be replaced. "
            f"Last time point in the series: {last_time_point}. "
            f"Latest time point supplied: {latest_supplied}"
        )
        super().__init__(error_msg)


class InvariantViolationError(ValueError):
    """
    Raised when the layers of a series are not consistent with each other
    """

    def __init__(self, problems: Collection[str]) -> None:
        """
        Initialise the error

        Parameters
        ----------
        problems
            Description of each inconsistency that was found
        """
        problems_str = "\n".join(f"- {p}" for p in problems)
        error_msg = f"The series' layers are not consistent:\n{problems_str}"
        super().__init__(error_msg)


class EmptyInputError(ValueError):
    """
    Raised when raw data yields no time points
    """

    def __init__(self, name: str = "records") -> None:
        """
        Initialise the error

        Parameters
        ----------
        name
            Name of the input that was empty
        """
        error_msg = (
            f"{name} does not contain any events, "
            "a series cannot be created without at least one time point"
        )
        super().__init__(error_msg)
