"""CSV output for per-agent check dumps."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import IO, Any, Sequence

from ksengine.logging import getLogger

log = getLogger(__name__)


class CsvSink:
    """
    Header-first CSV file scoped to a check's active window.

    The file is created (truncated) by :meth:`open` and must be closed by
    :meth:`close`; the owning check does both at window start and
    finalization. Also usable as a context manager.

    Examples
    --------
    >>> with CsvSink(tmp_path / "firms2.csv", ("t", "ID2")) as sink:
    ...     sink.write(1, 7)
    """

    def __init__(self, path: str | Path, header: Sequence[str]) -> None:
        if not header:
            raise ValueError("CSV sink needs a non-empty header")
        self.path = Path(path)
        self.header = tuple(header)
        self.rows = 0
        self._fh: IO[str] | None = None
        self._writer: Any = None

    @property
    def closed(self) -> bool:
        return self._fh is None

    def open(self) -> CsvSink:
        if self._fh is not None:
            return self
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = self.path.open("w", newline="", encoding="utf-8")
        self._writer = csv.writer(self._fh)
        self._writer.writerow(self.header)
        log.debug("opened %s", self.path)
        return self

    def write(self, *values: Any) -> None:
        """Append one row; the number of values must match the header."""
        if self._fh is None:
            raise ValueError(f"CSV sink {self.path} is not open")
        if len(values) != len(self.header):
            raise ValueError(
                f"row has {len(values)} values, header has {len(self.header)}"
            )
        self._writer.writerow(values)
        self.rows += 1

    def close(self) -> None:
        if self._fh is None:
            return
        self._fh.close()
        self._fh = None
        self._writer = None
        log.debug("closed %s (%d rows)", self.path, self.rows)

    def __enter__(self) -> CsvSink:
        return self.open()

    def __exit__(self, *exc: object) -> None:
        self.close()
