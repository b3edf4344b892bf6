"""
Shared fixtures: small group files and iRODS exports written under tmp_path.
"""

import pytest

GROUP_LINES = [
    "root:x:0:",
    "hgi:x:1313:alice,bob",
    "proj1:x:2001:carol",
    "teamA:x:3001:",
    "broken:x",
]


@pytest.fixture
def groups_file(tmp_path):
    path = tmp_path / "groups.txt"
    path.write_text("\n".join(GROUP_LINES) + "\n")
    return path


@pytest.fixture
def write_export(tmp_path):
    """Write an export file from a header and data lines, return its path."""

    def _write(lines, name="iRodsData.txt", header="h1???h2???h3???h4"):
        path = tmp_path / name
        path.write_text("\n".join([header] + list(lines)) + "\n")
        return path

    return _write


@pytest.fixture
def out_file(tmp_path):
    return tmp_path / "iRodsFormatted.txt"
