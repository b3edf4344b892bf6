#!/usr/bin/env python3
from types import MappingProxyType

from report_errors import GroupTableError

# Group id reported for projects that have no entry in the group file
UNKNOWN_GROUP = "xx"


def load_group_table(groups_file):
    """
    Map project/team names to group ids from `getent group` style output:

        name:password-placeholder:gid:member1,member2

    Lines with two or fewer ':' separated fields are ignored.
    A later line for the same name replaces an earlier one.
    Returns a read-only mapping.
    """
    groups = {}
    try:
        with open(groups_file, "r", encoding="utf-8", errors="surrogateescape") as f:
            for row in f:
                parts = row.rstrip("\r\n").split(":")
                if len(parts) > 2:
                    groups[parts[0]] = parts[2]
    except OSError as e:
        raise GroupTableError(groups_file, e.strerror or str(e)) from e
    return MappingProxyType(groups)


def resolve_group(group_table, name):
    return group_table.get(name, UNKNOWN_GROUP)


def group_names_by_id(group_table):
    """
    Reverse lookup: gid -> name. When several names share a gid the
    first one in file order is kept.
    """
    names = {}
    for name, gid in group_table.items():
        names.setdefault(gid, name)
    return names
