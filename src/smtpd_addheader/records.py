"""
Record Parser
=============

Splits protocol lines into fields while keeping the original text, so the
payload at the end of a record can be recovered with any embedded
delimiters intact.
"""

from __future__ import annotations

from dataclasses import dataclass

from contracts import (
    DELIMITER,
    FIELD_FAMILY,
    FIELD_NAME,
    FIELD_SESSION,
    FIELD_TOKEN,
    MIN_RECORD_FIELDS,
    MalformedRecordError,
)

ENCODING = "utf-8"
ERRORS = "surrogateescape"


def decode_line(raw: bytes) -> str:
    """Strip the line terminator and decode without losing any byte."""
    if raw.endswith(b"\n"):
        raw = raw[:-1]
        if raw.endswith(b"\r"):
            raw = raw[:-1]
    return raw.decode(ENCODING, ERRORS)


def encode_line(line: str) -> bytes:
    return line.encode(ENCODING, ERRORS) + b"\n"


@dataclass(frozen=True)
class Record:
    """A parsed protocol line."""

    line: str
    fields: tuple[str, ...]

    @classmethod
    def parse(cls, line: str, delimiter: str = DELIMITER) -> Record:
        return cls(line=line, fields=tuple(line.split(delimiter)))

    def __len__(self) -> int:
        return len(self.fields)

    def __getitem__(self, index: int) -> str:
        return self.fields[index]

    def tail(self, index: int) -> str:
        """
        Return the original line from field `index` to the end.

        The offset is computed from the lengths of the preceding fields, so
        delimiters inside the tail are returned exactly as received.
        """
        if index > len(self.fields) - 1:
            return ""
        offset = sum(len(f) + 1 for f in self.fields[:index])
        return self.line[offset:]

    def has(self, count: int) -> bool:
        return len(self.fields) >= count

    # Accessors for the common report/filter fields

    @property
    def family(self) -> str:
        return self.fields[FIELD_FAMILY]

    @property
    def name(self) -> str:
        return self.fields[FIELD_NAME]

    @property
    def session(self) -> str:
        return self.fields[FIELD_SESSION]

    @property
    def token(self) -> str:
        return self.fields[FIELD_TOKEN]

    def args(self) -> tuple[str, ...]:
        """Event specific fields following the session id."""
        return self.fields[FIELD_SESSION + 1:]


def parse_event(line: str) -> Record:
    """
    Parse a report/filter record.

    Raises MalformedRecordError when the common fields are missing.
    """
    record = Record.parse(line)
    if not record.has(MIN_RECORD_FIELDS):
        raise MalformedRecordError(f"failed parsing: '{line}'")
    return record
