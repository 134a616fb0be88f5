"""
Session Tracker
===============

Per-connection and per-transaction state built from report events.

Every lookup failure is logged and turned into a no-op: the daemon can
report events for sessions the filter never saw (for instance when the
filter was started after the connection was opened).
"""

from __future__ import annotations

import logging

from contracts import (
    RESULT_OK,
    RESULT_PASS,
    Message,
    MessageState,
    Session,
)

logger = logging.getLogger("smtpd-filter-addheader")


class SessionTracker:
    """Mapping of session id to Session, each owning its Messages."""

    def __init__(self) -> None:
        self.sessions: dict[str, Session] = {}

    def get_session(self, name: str, sid: str) -> Session | None:
        session = self.sessions.get(sid)
        if session is None:
            logger.warning(f"{name}: unknown session: {sid}")
        return session

    def get_message(self, name: str, sid: str, mid: str) -> tuple[Session | None, Message | None]:
        session = self.get_session(name, sid)
        if session is None:
            return None, None
        message = session.messages.get(mid)
        if message is None:
            logger.warning(f"{name}: session {sid} unknown messageId: {mid}")
            return None, None
        return session, message

    def data_message(self, name: str, sid: str) -> Message | None:
        """Return the message currently receiving data lines on a session."""
        session = self.get_session(name, sid)
        if session is None:
            return None
        _, message = self.get_message(name, sid, session.data_message)
        return message

    # Link events

    def link_connect(self, sid: str, rdns: str, fcrdns: str, remote: str, local: str) -> None:
        logger.debug(
            f"link-connect: session={sid} rdns={rdns} confirmed={fcrdns} src={remote} dst={local}"
        )
        if sid in self.sessions:
            logger.warning(f"link-connect: existing session: {sid}")
            return
        self.sessions[sid] = Session(
            id=sid,
            rdns=rdns,
            confirmed=fcrdns == RESULT_PASS,
            remote=remote,
            local=local,
        )

    def link_disconnect(self, sid: str) -> None:
        logger.debug(f"link-disconnect: session={sid}")
        if self.get_session("link-disconnect", sid) is not None:
            del self.sessions[sid]

    def link_auth(self, sid: str, result: str, username: str) -> None:
        logger.debug(f"link-auth: session={sid} result={result} username={username}")
        session = self.get_session("link-auth", sid)
        if session is not None and result == RESULT_PASS:
            session.authorized_user = username

    # Transaction events

    def tx_reset(self, sid: str, mid: str) -> None:
        logger.debug(f"tx-reset: session={sid} message={mid}")
        session, _ = self.get_message("tx-reset", sid, mid)
        if session is not None:
            session.messages[mid] = Message(id=mid)

    def tx_begin(self, sid: str, mid: str) -> None:
        logger.debug(f"tx-begin: session={sid} message={mid}")
        session = self.get_session("tx-begin", sid)
        if session is None:
            return
        self._reclaim_finished(session)
        if mid in session.messages:
            logger.warning(f"tx-begin: unexpected tx-begin in session {sid} for existing message {mid}")
            return
        session.messages[mid] = Message(id=mid)

    def _reclaim_finished(self, session: Session) -> None:
        """Drop committed and rolled back messages before a new transaction."""
        finished = [
            mid for mid, message in session.messages.items()
            if message.state in (MessageState.COMMIT, MessageState.ROLLBACK)
        ]
        for mid in finished:
            del session.messages[mid]
        if session.data_message in finished:
            session.data_message = ""

    def tx_mail(self, sid: str, mid: str, result: str, address: str) -> None:
        logger.debug(f"tx-mail: session={sid} message={mid} result={result} address={address}")
        _, message = self.get_message("tx-mail", sid, mid)
        if message is not None and result == RESULT_OK:
            message.sender = address

    def tx_rcpt(self, sid: str, mid: str, result: str, address: str) -> None:
        logger.debug(f"tx-rcpt: session={sid} message={mid} result={result} address={address}")
        _, message = self.get_message("tx-rcpt", sid, mid)
        if message is not None and result == RESULT_OK:
            message.recipients.append(address)

    def tx_data(self, sid: str, mid: str, result: str) -> None:
        logger.debug(f"tx-data: session={sid} message={mid} result={result}")
        session, message = self.get_message("tx-data", sid, mid)
        if session is not None and message is not None and result == RESULT_OK:
            session.data_message = mid
            message.state = MessageState.DATA
            message.in_header = True

    def tx_commit(self, sid: str, mid: str, size: str) -> None:
        logger.debug(f"tx-commit: session={sid} message={mid} size={size}")
        _, message = self.get_message("tx-commit", sid, mid)
        if message is None:
            return
        message.state = MessageState.COMMIT
        try:
            message.size = int(size)
        except ValueError:
            logger.warning(f"tx-commit: session {sid} message {mid} invalid size: {size}")

    def tx_rollback(self, sid: str, mid: str) -> None:
        logger.debug(f"tx-rollback: session={sid} message={mid}")
        _, message = self.get_message("tx-rollback", sid, mid)
        if message is not None:
            message.state = MessageState.ROLLBACK
