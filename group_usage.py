#!/usr/bin/env python3
import argparse
import csv
import sys

import pandas as pd

from group_table import UNKNOWN_GROUP, group_names_by_id, load_group_table
from irods_format import FIELD_SEP, REPORT_COLUMNS
from report_errors import ReportError

SUMMARY_COLUMNS = ["group", "group_name", "files", "bytes", "size"]
SIZE_UNITS = ["KB", "MB", "GB", "TB", "PB"]


# ---------------------------------------------------------------------
# HELPER FUNCTIONS
# ---------------------------------------------------------------------
def format_size(size_in_bytes):
    """
    Human-readable size in powers of 1024, e.g. 1.50 MB.
    Accepts the numpy int64 totals pandas produces.
    """
    size_in_bytes = int(size_in_bytes)
    if size_in_bytes < 1024:
        return f"{size_in_bytes} B"

    value = float(size_in_bytes)
    for unit in SIZE_UNITS:
        value /= 1024
        if value < 1024 or unit == SIZE_UNITS[-1]:
            return f"{value:.2f} {unit}"


def read_report(report_file):
    """
    Load an mpistat style report as strings, one column per field.
    """
    return pd.read_csv(
        report_file,
        sep=FIELD_SEP,
        header=None,
        names=REPORT_COLUMNS,
        dtype=str,
        keep_default_na=False,
        quoting=csv.QUOTE_NONE,
    )


def summarize_report(report_file, group_table=None):
    """
    Total size and file count per group id in a formatted report,
    largest first. Group names come from a reverse lookup in group_table;
    ids without a name (including 'xx') are reported as 'unknown'.
    Sizes that are not numbers count as 0.
    """
    try:
        df = read_report(report_file)
    except pd.errors.EmptyDataError:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)
    if df.empty:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)

    df["bytes"] = pd.to_numeric(df["size"], errors="coerce").fillna(0).astype("int64")

    summary = (
        df.groupby("group", sort=False)
          .agg(files=("path", "count"), bytes=("bytes", "sum"))
          .reset_index()
    )

    names = group_names_by_id(group_table) if group_table else {}
    summary["group_name"] = summary["group"].apply(
        lambda g: names.get(g, "unknown") if g != UNKNOWN_GROUP else "unknown"
    )
    summary["size"] = summary["bytes"].apply(format_size)

    summary = summary.sort_values(["bytes", "group"], ascending=[False, True])
    return summary[SUMMARY_COLUMNS].reset_index(drop=True)


# ---------------------------------------------------------------------
# MAIN LOGIC
# ---------------------------------------------------------------------
def main(argv=None):
    parser = argparse.ArgumentParser(description="Summarise an mpistat style report by group.")
    parser.add_argument("report", help="Formatted report written by irods-report.")
    parser.add_argument("-g", "--groups", help="Group file used to name the group ids.")
    parser.add_argument("--csv", help="Also write the summary to this CSV file.")
    args = parser.parse_args(argv)

    try:
        group_table = load_group_table(args.groups) if args.groups else None
        summary = summarize_report(args.report, group_table)
    except OSError as e:
        print(f"Error reading report: {e.strerror or e} {args.report}", file=sys.stderr)
        return 1
    except ReportError as e:
        print(f"Error reading groups: {e}", file=sys.stderr)
        return 1

    print("Storage usage by group:\n")
    print(summary.to_string(index=False))

    if args.csv:
        try:
            summary.to_csv(args.csv, index=False)
        except OSError as e:
            print(f"Error writing summary: {e.strerror or e} {args.csv}", file=sys.stderr)
            return 1
        print(f"\nSummary saved to {args.csv}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
