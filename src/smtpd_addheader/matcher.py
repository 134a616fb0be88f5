"""
Recipient Matcher
=================

Decides whether a message qualifies for header injection based on its
accepted recipient addresses.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

logger = logging.getLogger("smtpd-filter-addheader")


def compile_patterns(patterns: Iterable[str]) -> list[re.Pattern[str]]:
    """Compile recipient patterns, dropping the ones that fail."""
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            logger.warning(f"recipient pattern '{pattern}' failed with: {e}")
    return compiled


class RecipientMatcher:
    """
    Ordered set of compiled recipient patterns.

    With no patterns every message matches.
    """

    def __init__(self, patterns: Iterable[str] = ()) -> None:
        self._patterns = compile_patterns(patterns)

    @property
    def patterns(self) -> list[re.Pattern[str]]:
        return list(self._patterns)

    @property
    def matches_everything(self) -> bool:
        return not self._patterns

    def matches(self, recipients: Iterable[str]) -> bool:
        if self.matches_everything:
            return True

        for recipient in recipients:
            logger.debug(f"checking recipient patterns for: {recipient}")
            for pattern in self._patterns:
                if pattern.search(recipient):
                    logger.debug(f"recipient match found: {recipient}")
                    return True
            logger.debug(f"no match for recipient: {recipient}")
        return False
