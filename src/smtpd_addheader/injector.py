"""
Header Injector
===============

Adds the configured headers at the blank line that ends a message's
header block. Body lines are never modified.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from contracts import Header
from src.smtpd_addheader.matcher import RecipientMatcher
from src.smtpd_addheader.tracker import SessionTracker

logger = logging.getLogger("smtpd-filter-addheader")

# Unicode White_Space characters. str.strip() would also remove the
# \x1c-\x1f separators, which do not end a header block.
WHITESPACE = (
    "\t\n\v\f\r \x85\xa0\u1680"
    "\u2000\u2001\u2002\u2003\u2004\u2005\u2006\u2007\u2008\u2009\u200a"
    "\u2028\u2029\u202f\u205f\u3000"
)


class HeaderInjector:
    """Turns one incoming data-line into the lines to send back."""

    def __init__(
        self,
        tracker: SessionTracker,
        matcher: RecipientMatcher,
        headers: Iterable[Header],
    ) -> None:
        self._tracker = tracker
        self._matcher = matcher
        self._headers = tuple(headers)

    @property
    def headers(self) -> tuple[Header, ...]:
        return self._headers

    def process_body_line(self, sid: str, line: str) -> list[str]:
        message = self._tracker.data_message("data-line", sid)
        if message is None or not message.in_header:
            return [line]

        # still inside the header block
        if line.strip(WHITESPACE):
            return [line]

        lines = [line]
        if self._matcher.matches(message.recipients):
            lines = []
            for header in self._headers:
                logger.info(f"data-line: adding header '{header.render()}'")
                lines.append(header.render())
            lines.append(line)

        message.in_header = False
        return lines
