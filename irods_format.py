#!/usr/bin/env python3
"""
Formats data retrieved from iRODS to match the mpistat report layout.

The input comes from an iquest query such as

    iquest -z humgen --no-page "%s???%s???%s???%s" \
        "SELECT COLL_NAME,DATA_NAME,min(DATA_CREATE_TIME),sum(DATA_SIZE)"

so every line after the header holds collection, data object name,
create time (unix) and size in bytes, with the size of all replicas summed.

Each output row has the eleven tab separated mpistat columns:

    filepath (base64 encoded) *
    size (bytes) *
    user (uid)
    group (gid) *
    atime (epoch)
    mtime (epoch)
    ctime (epoch) *
    protection mode
    inode ID
    number of hardlinks
    device ID

Only the starred columns carry data, the rest are placeholders.
"""

import base64
import logging
import posixpath
from collections import namedtuple

from group_table import load_group_table, resolve_group
from report_errors import FormatError, GroupTableError

log = logging.getLogger(__name__)

# Project used when a collection is not under projects/ or teams/
DEFAULT_PROJECT = "hgi"
PROJECT_MARKERS = ("projects", "teams")

DEFAULT_DELIMITER = "???"
DEFAULT_PREFIXES = ["/humgen/projects", "/humgen/teams"]

FIELD_SEP = "\t"
# Column names of the mpistat layout, in output order
REPORT_COLUMNS = [
    "path", "size", "user", "group", "atime", "mtime",
    "ctime", "mode", "inode", "nlink", "dev",
]

InputRecord = namedtuple("InputRecord", ["collection", "filename", "create_time", "size_bytes"])


# ========================================================================
#                           PATH & PROJECT UTILS
# ========================================================================

def project_from_collection(collection):
    """
    The project (or team) is the path segment right after 'projects' or
    'teams'. If neither marker is found, or it is the last segment,
    return 'hgi'.
    """
    parts = collection.split("/")
    for i, part in enumerate(parts[:-1]):
        if part in PROJECT_MARKERS:
            return parts[i + 1]
    return DEFAULT_PROJECT


def join_collection_path(collection, filename):
    """
    Join collection and data object name into one cleaned path.
    Empty parts are dropped, repeated separators and '.'/'..' are resolved.
    """
    parts = [p for p in (collection, filename) if p]
    if not parts:
        return ""
    joined = posixpath.normpath("/".join(parts))
    # normpath keeps a leading '//' as-is
    if joined.startswith("//"):
        joined = joined[1:]
    return joined


def encode_path(path):
    return base64.b64encode(path.encode("utf-8", errors="surrogateescape")).decode("ascii")


def should_report(line, prefixes):
    """
    With no prefixes every line is reported. Otherwise the raw, unsplit
    line has to start with one of them.
    """
    if not prefixes:
        return True
    return any(line.startswith(p) for p in prefixes)


# ========================================================================
#                           LINE PROCESSING
# ========================================================================

def parse_line(line, delimiter):
    """
    Split a raw line into an InputRecord. Fewer than four fields, or a tab
    in the create time or size (both copied into the row as-is), is a
    FormatError.
    """
    parts = line.split(delimiter)
    if len(parts) < 4:
        raise FormatError(line)
    record = InputRecord(*parts[:4])
    if FIELD_SEP in record.create_time or FIELD_SEP in record.size_bytes:
        raise FormatError(line)
    return record


def format_record(record, group_table, placeholder=""):
    """
    Build the mpistat row for one input record, without the newline.
    """
    path = join_collection_path(record.collection, record.filename)
    project = project_from_collection(record.collection)
    group = resolve_group(group_table, project)

    fields = [
        encode_path(path),
        record.size_bytes,
        placeholder,         # user
        group,
        placeholder,         # atime
        placeholder,         # mtime
        record.create_time,  # ctime
        placeholder,         # protection mode
        placeholder,         # inode
        placeholder,         # hardlinks
        placeholder,         # device id
    ]
    return FIELD_SEP.join(fields)


def format_line(line, delimiter, group_table, placeholder=""):
    return format_record(parse_line(line, delimiter), group_table, placeholder)


# ========================================================================
#                           FILE CONVERSION
# ========================================================================

def format_file(infilename, outfilename, groupsfile, delimiter=DEFAULT_DELIMITER,
                prefixes=None, logger=None, placeholder=""):
    """
    Convert the iRODS export in infilename into an mpistat style file.

    - the group table is read from groupsfile first
    - the first input line is a header; it is logged and never written
    - when prefixes are given, only lines starting with one of them are kept
    - a line with fewer than four fields aborts the run with FormatError,
      leaving the rows written so far in the output file

    Counts of lines read (header included) and written are logged.
    """
    logger = logger or log

    try:
        group_table = load_group_table(groupsfile)
    except GroupTableError as e:
        logger.error(e)
        raise

    try:
        infile = open(infilename, "r", encoding="utf-8", errors="surrogateescape", newline="\n")
    except OSError as e:
        logger.error("%s %s", e.strerror or e, infilename)
        raise

    with infile:
        try:
            outfile = open(outfilename, "w", encoding="utf-8", errors="surrogateescape", newline="")
        except OSError as e:
            logger.error("%s %s", e.strerror or e, outfilename)
            raise

        with outfile:
            line_no = 0
            line_out = 0
            for raw in infile:
                line = raw.rstrip("\n")
                if line.endswith("\r"):
                    line = line[:-1]
                line_no += 1
                if line_no == 1:
                    logger.info("%s", line)
                    continue
                if not should_report(line, prefixes):
                    continue

                try:
                    next_line = format_line(line, delimiter, group_table, placeholder)
                except FormatError as e:
                    logger.error(e)
                    raise

                outfile.write(next_line + "\n")
                line_out += 1

    logger.info("Number of lines read %d", line_no)
    logger.info("Number of lines written %d", line_out)
