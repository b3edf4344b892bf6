#!/usr/bin/env python3
"""
Formats iRODS retrieved data to match the mpistat format.

Log lines are collected while the conversion runs and printed to stdout
once it has finished, whether it succeeded or not.
"""

import argparse
import io
import logging
import sys

import yaml

from group_table import load_group_table
from group_usage import summarize_report
from irods_format import DEFAULT_DELIMITER, DEFAULT_PREFIXES, format_file
from report_errors import ConfigError, ReportError

DEFAULTS = {
    "input_file": "/tmp/iRodsData.txt",
    "groups_file": "/tmp/groups.txt",
    "output_file": "/tmp/iRodsFormatted.txt",
    "delimiter": DEFAULT_DELIMITER,
    "prefixes": DEFAULT_PREFIXES,
    "placeholder": "",
    "summary_file": None,
}

LOG_FORMAT = "logger: %(asctime)s %(filename)s:%(lineno)d: %(message)s"
LOG_DATEFMT = "%Y/%m/%d %H:%M:%S"


# ========================================================================
#                           CONFIG & LOGGING UTILS
# ========================================================================

def load_config(config_file):
    """
    Loads YAML config from the specified path.
    """
    try:
        with open(config_file, 'r') as f:
            config = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"{e.strerror or e} {config_file}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigError(f"Config file {config_file} must hold a mapping")
    unknown = set(config) - set(DEFAULTS)
    if unknown:
        raise ConfigError(f"Unknown config keys in {config_file}: {', '.join(sorted(unknown))}")
    return config


def resolve_settings(args, config):
    """
    Merge settings: command line flag, then config file, then built-in default.
    """
    settings = dict(DEFAULTS)
    settings.update(config)

    cli_values = {
        "input_file": args.infile,
        "groups_file": args.groupsfile,
        "output_file": args.outfile,
        "delimiter": args.delimiter,
        "prefixes": args.prefixes,
        "placeholder": args.placeholder,
    }
    for key, value in cli_values.items():
        if value is not None:
            settings[key] = value

    if args.no_prefix_filter:
        settings["prefixes"] = []
    elif isinstance(settings["prefixes"], str):
        settings["prefixes"] = [settings["prefixes"]]
    elif settings["prefixes"] is None:
        settings["prefixes"] = []
    if settings["placeholder"] is None:
        settings["placeholder"] = ""
    settings["placeholder"] = str(settings["placeholder"])

    check_settings(settings)
    return settings


def check_settings(settings):
    """
    Reject values that would only fail once lines are being split.
    """
    for key in ("input_file", "groups_file", "output_file"):
        if not isinstance(settings[key], str) or not settings[key]:
            raise ConfigError(f"{key} must be a non-empty string, got {settings[key]!r}")
    if not isinstance(settings["delimiter"], str) or not settings["delimiter"]:
        raise ConfigError(f"delimiter must be a non-empty string, got {settings['delimiter']!r}")
    if not isinstance(settings["prefixes"], list) or not all(isinstance(p, str) for p in settings["prefixes"]):
        raise ConfigError(f"prefixes must be a list of strings, got {settings['prefixes']!r}")
    if "\t" in settings["placeholder"]:
        raise ConfigError("placeholder must not contain a tab")
    summary_file = settings["summary_file"]
    if summary_file is not None and not isinstance(summary_file, str):
        raise ConfigError(f"summary_file must be a string, got {summary_file!r}")


def buffered_logger(buf, name="irods_report"):
    """
    Logger writing only into buf, so the caller decides when to flush it.
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    for h in list(logger.handlers):
        logger.removeHandler(h)
    handler = logging.StreamHandler(buf)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATEFMT))
    logger.addHandler(handler)
    return logger


# ========================================================================
#                           MAIN
# ========================================================================

def build_parser():
    parser = argparse.ArgumentParser(description="Format iRODS file stats as an mpistat style report.")
    parser.add_argument("-f", dest="infile", help=f"file stats from iRods (default {DEFAULTS['input_file']})")
    parser.add_argument("-g", dest="groupsfile", help=f"group names and ids from getent groups (default {DEFAULTS['groups_file']})")
    parser.add_argument("-o", dest="outfile", help=f"name of output file (default {DEFAULTS['output_file']})")
    parser.add_argument("--config", help="Path to YAML config.")
    parser.add_argument("-d", "--delimiter", help=f"field delimiter of the input (default {DEFAULT_DELIMITER!r})")
    parser.add_argument("-p", "--prefix", dest="prefixes", action="append",
                        help="only report lines starting with this prefix, may be repeated")
    parser.add_argument("--no-prefix-filter", action="store_true", help="report every input line")
    parser.add_argument("--placeholder", help="value for the unused columns (default empty)")
    parser.add_argument("--summary", action="store_true", help="log storage usage per group after formatting")
    return parser


def run(args, logger):
    """
    Run one conversion. Returns the process exit status.
    """
    try:
        config = load_config(args.config) if args.config else {}
        settings = resolve_settings(args, config)
    except ConfigError as e:
        logger.error(e)
        return 1

    logger.info("Start file processing")
    try:
        format_file(
            settings["input_file"],
            settings["output_file"],
            settings["groups_file"],
            settings["delimiter"],
            settings["prefixes"],
            logger=logger,
            placeholder=settings["placeholder"],
        )
    except (ReportError, OSError):
        # already logged with the failing path or line
        logger.info("End file processing")
        return 1
    logger.info("End file processing")

    if args.summary:
        try:
            log_summary(settings, logger)
        except (ReportError, OSError) as e:
            logger.error(e)
            return 1
    return 0


def log_summary(settings, logger):
    summary = summarize_report(settings["output_file"], load_group_table(settings["groups_file"]))
    logger.info("Storage usage by group:\n%s", summary.to_string(index=False))
    if settings["summary_file"]:
        summary.to_csv(settings["summary_file"], index=False)
        logger.info("Summary saved to %s", settings["summary_file"])


def main(argv=None):
    args = build_parser().parse_args(argv)

    buf = io.StringIO()
    logger = buffered_logger(buf)
    try:
        return run(args, logger)
    finally:
        print(buf.getvalue(), end="")


if __name__ == "__main__":
    sys.exit(main())
