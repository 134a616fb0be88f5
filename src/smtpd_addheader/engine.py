"""
smtpd Filter Engine
===================

Protocol engine for the header-adding filter: handshake, registration and
the dispatch loop that routes report events to the session tracker and
data-lines to the header injector.

The engine is single threaded. Records are handled in arrival order and
stdout is written synchronously, so the daemon's own flow control applies.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import BinaryIO

from contracts import (
    FIELD_SESSION,
    FIELD_TOKEN,
    FILTER_EVENTS,
    REPORT_EVENTS,
    REQUIRED_FIELDS,
    FilterConfig,
    Header,
    HandshakeError,
    Session,
)
from src.smtpd_addheader.injector import HeaderInjector
from src.smtpd_addheader.matcher import RecipientMatcher
from src.smtpd_addheader.records import Record, decode_line, encode_line, parse_event
from src.smtpd_addheader.tracker import SessionTracker

logger = logging.getLogger("smtpd-filter-addheader")


class HeaderFilter:
    """
    smtpd filter adding static header lines to messages.

    Reads daemon events from `reader` and writes answers to `writer`; both
    are binary streams.
    """

    def __init__(
        self,
        reader: BinaryIO,
        writer: BinaryIO,
        headers: Iterable[Header],
        recipient_patterns: Iterable[str] = (),
    ) -> None:
        self._input = reader
        self._output = writer
        self.protocol = ""
        self.subsystem = ""
        self.tracker = SessionTracker()
        self.matcher = RecipientMatcher(recipient_patterns)
        self.injector = HeaderInjector(self.tracker, self.matcher, headers)
        self._reports: dict[str, Callable[..., None]] = {
            "link-connect": self.tracker.link_connect,
            "link-disconnect": self.tracker.link_disconnect,
            "link-auth": self.tracker.link_auth,
            "tx-reset": self.tracker.tx_reset,
            "tx-begin": self.tracker.tx_begin,
            "tx-mail": self.tracker.tx_mail,
            "tx-rcpt": self.tracker.tx_rcpt,
            "tx-data": self.tracker.tx_data,
            "tx-commit": self.tracker.tx_commit,
            "tx-rollback": self.tracker.tx_rollback,
        }

    @property
    def sessions(self) -> dict[str, Session]:
        return self.tracker.sessions

    @property
    def headers(self) -> tuple[Header, ...]:
        return self.injector.headers

    def run(self) -> None:
        """Handshake, then dispatch until the daemon closes the stream."""
        self.config()
        self.register()
        self.dispatch()

    # -------------------------------------------------------------------------
    # Stream helpers
    # -------------------------------------------------------------------------

    def _read_line(self) -> str | None:
        raw = self._input.readline()
        if not raw:
            return None
        return decode_line(raw)

    def _write_line(self, line: str) -> bool:
        try:
            self._output.write(encode_line(line))
            self._output.flush()
        except OSError as e:
            logger.warning(f"output of '{line}' failed with: {e}")
            return False
        return True

    # -------------------------------------------------------------------------
    # Handshake
    # -------------------------------------------------------------------------

    def config(self) -> None:
        """Read config lines until config|ready."""
        while True:
            try:
                line = self._read_line()
            except OSError as e:
                raise HandshakeError(f"config: input failed with: {e}") from e
            if line is None:
                raise HandshakeError("config: unexpected EOF")

            logger.debug(f"config: {line}")
            record = Record.parse(line)
            if not record.has(2) or record[0] != "config":
                raise HandshakeError(f"config: unexpected line: {line}")

            key = record[1]
            if key == "ready":
                return
            if key in ("protocol", "subsystem"):
                if not record.has(3):
                    raise HandshakeError(f"config: missing value: {line}")
                setattr(self, key, record.tail(2))

    def register(self) -> None:
        """Announce the subscribed events, then register|ready."""
        for name in REPORT_EVENTS:
            line = f"register|report|{self.subsystem}|{name}"
            logger.info(f"register: {line}")
            self._write_line(line)
        for name in FILTER_EVENTS:
            line = f"register|filter|{self.subsystem}|{name}"
            logger.info(f"register: {line}")
            self._write_line(line)
        logger.debug("register: register|ready")
        self._write_line("register|ready")

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def dispatch(self) -> None:
        """
        Route records until end of input.

        Raises MalformedRecordError for a record missing the common fields.
        """
        while True:
            try:
                line = self._read_line()
            except OSError as e:
                logger.warning(f"input failed with: {e}")
                break
            if line is None:
                break

            record = parse_event(line)
            if record.family == "report":
                self._report(record)
            elif record.family == "filter":
                self._filter(record)
            else:
                logger.warning(f"unexpected input: {line}")

        logger.warning("unexpected EOF on stdin")

    def _require(self, record: Record) -> bool:
        count = REQUIRED_FIELDS[record.name]
        if not record.has(count):
            logger.warning(f"{record.name}: expected {count} args, got {list(record.fields)}")
            return False
        return True

    def _report(self, record: Record) -> None:
        handler = self._reports.get(record.name)
        if handler is None:
            logger.debug(f"ignoring report: {record.name}")
            return
        if self._require(record):
            count = REQUIRED_FIELDS[record.name]
            handler(record.session, *record.fields[FIELD_SESSION + 1:count])

    def _filter(self, record: Record) -> None:
        if record.name != "data-line":
            logger.debug(f"ignoring filter: {record.name}")
            return
        if not self._require(record):
            return

        sid, token = record.session, record.token
        line = record.tail(FIELD_TOKEN + 1)
        logger.debug(f"data-line: sid={sid} token={token} line={line}")
        for output in self.injector.process_body_line(sid, line):
            self._write_line(f"filter-dataline|{sid}|{token}|{output}")


def create_filter(
    config: FilterConfig,
    reader: BinaryIO,
    writer: BinaryIO,
) -> HeaderFilter:
    """Create a filter bound to the given streams."""
    return HeaderFilter(
        reader,
        writer,
        headers=config.headers,
        recipient_patterns=config.recipient_patterns,
    )
