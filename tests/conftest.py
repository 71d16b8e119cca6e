"""
Re-useable fixtures etc. for tests

See https://docs.pytest.org/en/7.1.x/reference/fixtures.html#conftest-py-sharing-fixtures-across-multiple-files
"""

import pandas as pd
import pytest
from loguru import logger


@pytest.fixture(scope="session", autouse=True)
def pandas_terminal_width():
    # Set pandas terminal width so that doctests don't depend on terminal width.

    # We set the display width to 120 because examples should be short,
    # anything more than this is too wide to read in the source.
    pd.set_option("display.width", 120)

    # Display as many columns as you want (i.e. let the display width do the
    # truncation)
    pd.set_option("display.max_columns", 1000)


@pytest.fixture
def log_records():
    """
    Capture the log records emitted by syndromic while the test runs
    """
    res = []
    logger.enable("syndromic")
    handler_id = logger.add(lambda message: res.append(message.record), level="DEBUG")

    yield res

    logger.remove(handler_id)
    logger.disable("syndromic")
