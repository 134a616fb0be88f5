"""
smtpd Filter Protocol Contract
==============================

Header-adding filter for the OpenSMTPD filter protocol (version 0.7).

This contract defines the expected behavior of all public interfaces.
The daemon talks to the filter over two line streams: it writes events to the
filter's stdin and reads the filter's answers from its stdout. Fields are
separated by a single "|" character.

AUTHORITY: This file is the single authoritative source for filter behavior.
Import from the contracts index, not from this file.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, runtime_checkable


# =============================================================================
# WIRE CONSTANTS
# =============================================================================

DELIMITER = "|"

# Field offsets shared by every report and filter record
FIELD_FAMILY = 0
FIELD_NAME = 4
FIELD_SESSION = 5
FIELD_TOKEN = 6

# Every report/filter record carries at least these fields:
# family|protocol|timestamp|subsystem|event|session
MIN_RECORD_FIELDS = 6

REPORT_EVENTS = (
    "link-connect",
    "link-disconnect",
    "link-auth",
    "tx-reset",
    "tx-begin",
    "tx-mail",
    "tx-rcpt",
    "tx-data",
    "tx-commit",
    "tx-rollback",
)

FILTER_EVENTS = ("data-line",)

# Total field count (common fields included) each event needs
REQUIRED_FIELDS = {
    "link-connect": 10,
    "link-disconnect": 6,
    "link-auth": 8,
    "tx-reset": 7,
    "tx-begin": 7,
    "tx-mail": 9,
    "tx-rcpt": 9,
    "tx-data": 8,
    "tx-commit": 8,
    "tx-rollback": 7,
    "data-line": 8,
}

RESULT_OK = "ok"
RESULT_PASS = "pass"


# =============================================================================
# DOMAIN TYPES
# =============================================================================

class MessageState(Enum):
    """Lifecycle state of a transaction."""
    INIT = "init"
    DATA = "data"
    COMMIT = "commit"
    ROLLBACK = "rollback"


@dataclass
class Message:
    """One mail transaction inside a session."""
    id: str
    sender: str = ""
    recipients: list[str] = field(default_factory=list)
    state: MessageState = MessageState.INIT
    in_header: bool = True
    size: int | None = None


@dataclass
class Session:
    """One SMTP connection, owning the transactions opened on it."""
    id: str
    rdns: str = ""
    confirmed: bool = False
    remote: str = ""
    local: str = ""
    authorized_user: str = ""
    data_message: str = ""
    messages: dict[str, Message] = field(default_factory=dict)


@dataclass(frozen=True)
class Header:
    """A header line added to filtered messages."""
    name: str
    value: str

    def render(self) -> str:
        return f"{self.name}: {self.value}"


@dataclass(frozen=True)
class FilterConfig:
    """Startup configuration handed to the protocol engine."""
    headers: tuple[Header, ...]
    recipient_patterns: tuple[str, ...] = ()
    verbose: bool = False


# =============================================================================
# ERROR TYPES
# =============================================================================

class FilterError(Exception):
    """Base error for all fatal filter conditions."""
    code: str = "FILTER_ERROR"
    message: str


class ConfigurationError(FilterError):
    """
    Startup configuration is unusable (missing file, bad YAML, no headers).

    RECOVERY: Fatal. Process exits before the handshake starts.
    """
    code = "CONFIG_INVALID"


class InvalidHeaderError(ConfigurationError):
    """
    A header argument is not formatted as KEY=VALUE.

    RECOVERY: Fatal. Operator must fix the argument.
    """
    code = "INVALID_HEADER"


class HandshakeError(FilterError):
    """
    The config stream ended, failed or was malformed before config|ready.

    RECOVERY: Fatal. The daemon restarts the filter.
    """
    code = "HANDSHAKE_FAILED"


class MalformedRecordError(FilterError):
    """
    A report/filter record has fewer than the common six fields.

    RECOVERY: Fatal. The stream can no longer be trusted.
    """
    code = "MALFORMED_RECORD"


# =============================================================================
# HANDSHAKE CONTRACT
# =============================================================================

@runtime_checkable
class HandshakeContract(Protocol):
    """
    Filter startup on the protocol streams.

    SEQUENCE:
    1. Daemon writes config|<key>|<value> lines, ending with config|ready
    2. Filter records the protocol version and subsystem name
    3. Filter writes one register|report|<subsystem>|<event> per report event
    4. Filter writes one register|filter|<subsystem>|data-line
    5. Filter writes register|ready and starts dispatching

    Unknown config keys are ignored. End of stream, a read failure or a
    malformed config line before config|ready raises HandshakeError.
    Registration write failures are logged and do not stop the handshake.
    """

    def config(self) -> None:
        """Consume config lines until config|ready."""
        ...

    def register(self) -> None:
        """Write the registration lines and register|ready."""
        ...


# =============================================================================
# DISPATCH CONTRACT
# =============================================================================

@runtime_checkable
class DispatchContract(Protocol):
    """
    Main event loop.

    Records are processed strictly in arrival order. A record with fewer
    than six fields raises MalformedRecordError. Everything else is soft:
    unknown families, short events and references to unknown sessions or
    messages are logged as warnings and skipped. Unknown event names in a
    known family are ignored. The loop ends only when the input stream
    ends or fails, which is always logged as unexpected.
    """

    def dispatch(self) -> None:
        """Process records until end of input."""
        ...


# =============================================================================
# TRACKER CONTRACT
# =============================================================================

@runtime_checkable
class TrackerContract(Protocol):
    """
    Session and transaction state, one operation per report event.

    link-connect creates a session (an existing id is kept and warned).
    link-disconnect drops the session and every message it owns.
    tx-begin first drops the session's committed and rolled back messages,
    then creates a message (an existing id is kept and warned).
    tx-reset replaces an existing message with a fresh one.
    tx-mail and tx-rcpt only mutate the message when the result is "ok".
    tx-data with "ok" makes the message the session's data message, moves
    it to the data state and re-arms its header flag.
    tx-commit and tx-rollback set the terminal state.

    Unknown session or message ids are warned and the event is a no-op.
    """

    def link_connect(self, sid: str, rdns: str, fcrdns: str, remote: str, local: str) -> None: ...

    def link_disconnect(self, sid: str) -> None: ...

    def link_auth(self, sid: str, result: str, username: str) -> None: ...

    def tx_reset(self, sid: str, mid: str) -> None: ...

    def tx_begin(self, sid: str, mid: str) -> None: ...

    def tx_mail(self, sid: str, mid: str, result: str, address: str) -> None: ...

    def tx_rcpt(self, sid: str, mid: str, result: str, address: str) -> None: ...

    def tx_data(self, sid: str, mid: str, result: str) -> None: ...

    def tx_commit(self, sid: str, mid: str, size: str) -> None: ...

    def tx_rollback(self, sid: str, mid: str) -> None: ...


# =============================================================================
# INJECTOR CONTRACT
# =============================================================================

@runtime_checkable
class InjectorContract(Protocol):
    """
    Header injection at the header/body boundary.

    Lines are passed through unchanged unless the session's data message is
    still inside its header block and the line is blank after stripping.
    At that boundary, if the recipient patterns are empty or any accepted
    recipient matches any pattern, every configured header is emitted as
    "name: value" in configuration order, followed by the original line.
    The header flag is cleared at the boundary whether or not headers were
    added, so each message crosses it exactly once.

    Every produced line is written as filter-dataline|<sid>|<token>|<line>.
    """

    def process_body_line(self, sid: str, line: str) -> list[str]:
        """Return the lines to emit for one data-line."""
        ...
