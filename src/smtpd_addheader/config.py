"""
Configuration Loading
=====================

Builds the FilterConfig handed to the engine from command line arguments
and an optional YAML file:

    header:
      - X-Filtered=yes
    recipient:
      - '@example\\.com$'
    verbose: false

Every error here is fatal and raised before the handshake starts.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml

from contracts import (
    ConfigurationError,
    FilterConfig,
    Header,
    InvalidHeaderError,
)


def parse_header_arg(arg: str) -> Header:
    """
    Parse a KEY=VALUE header argument.

    The value is everything after the first "=" and may be empty.
    """
    key, sep, value = arg.partition("=")
    if not sep or not key:
        raise InvalidHeaderError(f"invalid header arg: {arg}")
    return Header(name=key, value=value)


def merge_headers(headers: Iterable[Header]) -> tuple[Header, ...]:
    """Keep first-seen order; a repeated name replaces the earlier value."""
    merged: dict[str, Header] = {}
    for header in headers:
        merged[header.name] = header
    return tuple(merged.values())


def _string_list(data: dict[str, Any], key: str, path: Path) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigurationError(f"{path}: '{key}' must be a list of strings")
    return value


def load_config_file(path: str | Path) -> dict[str, Any]:
    """
    Read a YAML configuration file.

    ERRORS:
    - ConfigurationError: file missing/unreadable, invalid YAML, not a mapping
    """
    path = Path(path)
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: top level must be a mapping")
    return data


def build_config(
    header_args: Iterable[str] = (),
    recipient_args: Iterable[str] = (),
    config_path: str | Path | None = None,
    verbose: bool = False,
) -> FilterConfig:
    """
    Merge file and command line settings into a FilterConfig.

    File entries come first; command line entries are appended.
    """
    headers: list[str] = []
    recipients: list[str] = []

    if config_path is not None:
        data = load_config_file(config_path)
        path = Path(config_path)
        headers.extend(_string_list(data, "header", path))
        recipients.extend(_string_list(data, "recipient", path))
        file_verbose = data.get("verbose", False)
        if not isinstance(file_verbose, bool):
            raise ConfigurationError(f"{path}: 'verbose' must be true or false")
        verbose = verbose or file_verbose

    headers.extend(header_args)
    recipients.extend(recipient_args)

    parsed = merge_headers(parse_header_arg(h) for h in headers)
    if not parsed:
        raise ConfigurationError("at least one header must be provided")

    return FilterConfig(
        headers=parsed,
        recipient_patterns=tuple(recipients),
        verbose=verbose,
    )
