"""
Append-only log sinks for simulation output.

Each named log has a fixed column header. Rows are kept in memory or written
straight through to a CSV file; both backends expose the same read interface
(header, data, rows, last, last_by_key) so analytics never depend on where
the log physically lives.

Usage:
    log = Log(LOG_HEADERS["trade"])
    log.write([1, 10.5, 10.5, 500, 1, 1000, 500, 2, 1, 499])
    log.last_by_key("price")
"""

import csv
from pathlib import Path
from typing import Any, Sequence, TextIO

import pandas as pd

LOG_HEADERS: dict[str, list[str]] = {
    "trade": [
        "period",
        "t",
        "tp",
        "price",
        "buyerAgentId",
        "buyerValue",
        "buyerProfit",
        "sellerAgentId",
        "sellerCost",
        "sellerProfit",
    ],
    "buyorder": [
        "period",
        "t",
        "tp",
        "id",
        "x",
        "buyLimitPrice",
        "value",
        "sellLimitPrice",
        "cost",
        "inventory",
    ],
    "ohlc": [
        "period",
        "open",
        "high",
        "low",
        "close",
        "volume",
        "median",
        "mean",
        "sd",
        "p25",
        "p75",
        "gini",
    ],
    "effalloc": ["period", "efficiencyOfAllocation"],
}
for _name in ("sellorder", "rejectbuyorder", "rejectsellorder"):
    LOG_HEADERS[_name] = list(LOG_HEADERS["buyorder"])

# The profit log has one column per agent, so its header is set per simulation
LOG_NAMES: list[str] = [
    "trade",
    "buyorder",
    "sellorder",
    "rejectbuyorder",
    "rejectsellorder",
    "profit",
    "ohlc",
    "effalloc",
]

Row = list[Any]


class LogSchemaError(ValueError):
    """Raised when a row does not fit the log's header."""


class Log:
    """
    An append-only ordered record store with a fixed header.

    Attributes:
        header: Column names (also the first row of data when written)
        path: CSV file path, or None for the in-memory backend
    """

    def __init__(
        self,
        header: Sequence[str],
        path: Path | None = None,
    ) -> None:
        """
        Initialize the log.

        Args:
            header: Ordered column names
            path: Write through to this CSV file instead of keeping rows in memory
        """
        self.header = list(header)
        self.path = path
        self._last: Row | None = None
        self._count = 0
        self._file: TextIO | None = None
        self._writer: Any = None
        self._data: list[Row] = []
        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(path, "w", newline="")
            self._writer = csv.writer(self._file)
        self._append(list(self.header))

    def write(self, row: Sequence[Any]) -> None:
        """
        Append one row.

        Raises:
            LogSchemaError: If the row length differs from the header or a
                cell is missing (None)
        """
        row = list(row)
        if len(row) != len(self.header):
            raise LogSchemaError(
                f"row has {len(row)} cells, header has {len(self.header)}"
            )
        for name, cell in zip(self.header, row):
            if cell is None:
                raise LogSchemaError(f"missing value for column {name}")
        self._append(row)
        self._last = row

    def _append(self, row: Row) -> None:
        self._count += 1
        if self._writer is not None:
            self._writer.writerow(row)
        else:
            self._data.append(row)

    @property
    def data(self) -> list[Row]:
        """All rows written, header row first."""
        if self.path is None:
            return self._data
        self.flush()
        return load_log(self.path)

    @property
    def rows(self) -> list[Row]:
        """Data rows without the header row."""
        data = self.data
        return data[1:]

    def __len__(self) -> int:
        return self._count

    @property
    def last(self) -> Row | None:
        """The most recently written data row."""
        return self._last

    def last_by_key(self, key: str) -> Any:
        """Value of column ``key`` in the last data row."""
        if self._last is None:
            return None
        return self._last[self.header.index(key)]

    def column(self, key: str) -> list[Any]:
        col = self.header.index(key)
        return [row[col] for row in self.rows]

    def to_dataframe(self) -> pd.DataFrame:
        """Return the data rows as a DataFrame with the header as columns."""
        return pd.DataFrame(self.rows, columns=self.header)

    def flush(self) -> None:
        """Flush the output buffer."""
        if self._file:
            self._file.flush()

    def close(self) -> None:
        """Close the output file."""
        if self._file:
            self._file.close()
            self._file = None
            self._writer = None

    def __enter__(self) -> "Log":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def _parse_cell(cell: str) -> Any:
    """Convert a CSV cell back to int/float where possible."""
    if cell == "":
        return cell
    try:
        return int(cell)
    except ValueError:
        pass
    try:
        return float(cell)
    except ValueError:
        return cell


def load_log(log_path: Path) -> list[Row]:
    """
    Load a log written to CSV.

    Args:
        log_path: Path to the CSV file

    Returns:
        List of rows, header row first
    """
    with open(log_path, newline="") as f:
        return [[_parse_cell(cell) for cell in row] for row in csv.reader(f)]
