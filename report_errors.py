"""
Exceptions raised while building an mpistat-style report from an iRODS export.
"""


class ReportError(Exception):
    """Base class for conversion failures."""


class FormatError(ReportError):
    """
    An input line did not split into at least four fields.
    The offending raw line is kept on .line.
    """

    def __init__(self, line):
        self.line = line
        super().__init__(f"Incorrect format for input line {line}")


class GroupTableError(ReportError):
    """The group file could not be read. The file is kept on .path."""

    def __init__(self, path, reason):
        self.path = path
        super().__init__(f"{reason} {path}")


class ConfigError(ReportError):
    """The YAML config file is missing or not a mapping."""
