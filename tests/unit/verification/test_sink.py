"""Tests for the CSV sink used by per-agent checks."""

import csv

import pytest

from ksengine.verification.sink import CsvSink


def test_header_written_first(tmp_path):
    path = tmp_path / "out" / "firms2.csv"
    with CsvSink(path, ("t", "ID2", "f2")) as sink:
        sink.write(1, 7, 0.25)
        sink.write(2, 7, 0.5)
        assert sink.rows == 2

    with path.open(newline="") as fh:
        rows = list(csv.reader(fh))
    assert rows == [["t", "ID2", "f2"], ["1", "7", "0.25"], ["2", "7", "0.5"]]


def test_open_truncates_previous_run(tmp_path):
    path = tmp_path / "dump.csv"
    path.write_text("stale\n")
    sink = CsvSink(path, ("a",)).open()
    sink.close()
    assert path.read_text().splitlines() == ["a"]


def test_row_length_must_match_header(tmp_path):
    with CsvSink(tmp_path / "dump.csv", ("a", "b")) as sink:
        with pytest.raises(ValueError, match="header has 2"):
            sink.write(1)


def test_write_requires_open_sink(tmp_path):
    sink = CsvSink(tmp_path / "dump.csv", ("a",))
    assert sink.closed
    with pytest.raises(ValueError, match="not open"):
        sink.write(1)


def test_close_is_idempotent(tmp_path):
    sink = CsvSink(tmp_path / "dump.csv", ("a",)).open()
    sink.close()
    sink.close()
    assert sink.closed


def test_empty_header_rejected(tmp_path):
    with pytest.raises(ValueError, match="non-empty header"):
        CsvSink(tmp_path / "dump.csv", ())
