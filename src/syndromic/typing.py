"""
Type hints that are used throughout
"""

from __future__ import annotations

import datetime as dt
from typing import Union

import numpy as np
import numpy.typing as npt
import pandas as pd
from typing_extensions import TypeAlias

DATE_LIKE: TypeAlias = Union[str, dt.date, dt.datetime, np.datetime64, pd.Timestamp]
"""
Type alias for a value that can be interpreted as a single day
"""

NP_ARRAY_OF_FLOAT: TypeAlias = npt.NDArray[np.floating]
"""
Type alias for the arrays used by the detection layers (alarms, UCL, LCL)
"""

CountsDataFrame: TypeAlias = pd.DataFrame
"""
Type alias for the [pandas.DataFrame][pd.DataFrame] shape we use for counts

For typing purposes, this is just a direct alias of [pandas.DataFrame][pd.DataFrame].
However, the point of defining this
is to provide greater clarity of the kind of data we expect.

We expect a matrix of counts.
Each column is one monitored group.
Each row is one time point, labelled by the index.
The labels are the same as the first column of the matching calendar.

An example of this kind of data is given below.

```python
            GIT  Respiratory
date
2010-01-01    1            0
2010-01-02    2            4
2010-01-03    0            1
```
"""

CalendarDataFrame: TypeAlias = pd.DataFrame
"""
Type alias for the [pandas.DataFrame][pd.DataFrame] that describes the time points

The first column holds the canonical label of each time point
(`date` for daily data, `isoweek` for weekly data).
All other columns are attributes derived from the label.

```python
         date  dow  month  year  week
0  2010-01-01    5      1  2010    53
1  2010-01-02    6      1  2010    53
2  2010-01-03    0      1  2010    53
```
"""
