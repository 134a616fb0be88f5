"""
Command line entry point.

smtpd-filter-addheader modifies all filtered messages by adding the headers
provided as command line arguments. Header arguments are formatted as
KEY=VALUE. At least one header must be provided.
"""

from __future__ import annotations

import logging
import os
import sys
from argparse import ArgumentParser, Namespace

from contracts import FilterError
from src.smtpd_addheader import __version__
from src.smtpd_addheader.config import build_config
from src.smtpd_addheader.engine import create_filter

PROG = "smtpd-filter-addheader"

# stdout carries the filter protocol, diagnostics go to stderr
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(PROG)


def handle_options(argv: list[str]) -> Namespace:
    parser = ArgumentParser(
        prog=PROG,
        description="smtpd filter for adding static email header lines",
    )
    parser.add_argument(
        "headers",
        nargs="*",
        metavar="HEADER",
        help="header to add, formatted as KEY=VALUE",
    )
    parser.add_argument(
        "--header", "-H",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="header to add (repeatable)",
    )
    parser.add_argument(
        "--recipient", "-r",
        action="append",
        default=[],
        metavar="REGEX",
        help="only add headers when a recipient matches (repeatable)",
    )
    parser.add_argument(
        "--config", "-c",
        help="YAML config file with header, recipient and verbose keys",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="log every protocol event",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    # headers may follow options, as on an smtpd.conf proc-exec line
    return parser.parse_intermixed_args(argv)


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    args = handle_options(argv)

    try:
        config = build_config(
            header_args=[*args.headers, *args.header],
            recipient_args=args.recipient,
            config_path=args.config,
            verbose=args.verbose,
        )
    except FilterError as e:
        logger.error(f"{e.code}: {e}")
        return 1

    logger.setLevel(logging.DEBUG if config.verbose else logging.INFO)
    logger.info(f"Starting {PROG} v{__version__}")
    logger.debug(f"pid={os.getpid()} uid={os.getuid()} gid={os.getgid()}")
    for header in config.headers:
        logger.debug(f"header: '{header.render()}'")
    for pattern in config.recipient_patterns:
        logger.debug(f"recipient pattern: `{pattern}`")

    smtpd_filter = create_filter(config, sys.stdin.buffer, sys.stdout.buffer)
    try:
        smtpd_filter.run()
    except FilterError as e:
        logger.error(f"{e.code}: {e}")
        return 1
    return 0
