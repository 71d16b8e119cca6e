"""
Incrementally updated time series of syndromic surveillance counts.
"""

import importlib.metadata

from loguru import logger

__version__ = importlib.metadata.version("syndromic")

logger.disable(__name__)
