"""Tests for group_usage: per-group totals of a formatted report."""

import numpy as np
import pandas as pd
import pytest

from group_table import load_group_table
from group_usage import SUMMARY_COLUMNS, format_size, main, summarize_report


def report_row(size, group, path="cGF0aA=="):
    return "\t".join([path, size, "", group, "", "", "1600000000", "", "", "", ""])


@pytest.fixture
def report_file(tmp_path):
    path = tmp_path / "report.txt"
    rows = [
        report_row("100", "1313"),
        report_row("200", "1313"),
        report_row("50", "xx"),
        report_row("oops", "2001"),
    ]
    path.write_text("\n".join(rows) + "\n")
    return path


class TestFormatSize:
    @pytest.mark.parametrize(
        "size, expected",
        [
            (0, "0 B"),
            (1023, "1023 B"),
            (1024, "1.00 KB"),
            (1536 * 1024, "1.50 MB"),
            (1024**3, "1.00 GB"),
            (2 * 1024**4, "2.00 TB"),
        ],
    )
    def test_units(self, size, expected):
        assert format_size(size) == expected

    def test_numpy_int64(self):
        assert format_size(np.int64(3 * 1024**2)) == "3.00 MB"

    def test_largest_unit(self):
        assert format_size(2048 * 1024**5) == "2048.00 PB"


class TestSummarizeReport:
    def test_totals_per_group(self, report_file, groups_file):
        summary = summarize_report(report_file, load_group_table(groups_file))

        assert list(summary.columns) == SUMMARY_COLUMNS
        assert list(summary["group"]) == ["1313", "xx", "2001"]
        assert list(summary["bytes"]) == [300, 50, 0]
        assert list(summary["files"]) == [2, 1, 1]
        assert list(summary["group_name"]) == ["hgi", "unknown", "proj1"]
        assert summary.loc[0, "size"] == "300 B"

    def test_without_group_table(self, report_file):
        summary = summarize_report(report_file)
        assert set(summary["group_name"]) == {"unknown"}

    def test_empty_report(self, tmp_path):
        path = tmp_path / "empty.txt"
        path.write_text("")
        summary = summarize_report(path)
        assert isinstance(summary, pd.DataFrame)
        assert summary.empty
        assert list(summary.columns) == SUMMARY_COLUMNS


class TestMain:
    def test_prints_and_writes_csv(self, report_file, groups_file, tmp_path, capsys):
        csv_path = tmp_path / "summary.csv"
        main([str(report_file), "-g", str(groups_file), "--csv", str(csv_path)])

        out = capsys.readouterr().out
        assert "Storage usage by group" in out
        assert "hgi" in out
        saved = pd.read_csv(csv_path, dtype={"group": str})
        assert list(saved["group"]) == ["1313", "xx", "2001"]

    def test_missing_report(self, tmp_path, capsys):
        missing = tmp_path / "none.txt"
        assert main([str(missing)]) == 1
        assert str(missing) in capsys.readouterr().err

    def test_missing_group_file(self, report_file, tmp_path, capsys):
        missing = tmp_path / "nogroups.txt"
        assert main([str(report_file), "-g", str(missing)]) == 1
        assert str(missing) in capsys.readouterr().err

    def test_returns_zero(self, report_file):
        assert main([str(report_file)]) == 0
