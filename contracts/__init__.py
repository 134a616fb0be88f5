"""
smtpd Filter Contract Index
===========================

AUTHORITY: This file is the single authoritative entrypoint for all
filter contracts. Import from here, not from individual contract files.
"""

from contracts.filter_protocol_contract import (
    # Wire constants
    DELIMITER,
    FIELD_FAMILY,
    FIELD_NAME,
    FIELD_SESSION,
    FIELD_TOKEN,
    FILTER_EVENTS,
    MIN_RECORD_FIELDS,
    REPORT_EVENTS,
    REQUIRED_FIELDS,
    RESULT_OK,
    RESULT_PASS,
    # Error Types
    ConfigurationError,
    # Contracts (Protocols)
    DispatchContract,
    FilterConfig,
    FilterError,
    HandshakeContract,
    HandshakeError,
    # Domain Types
    Header,
    InjectorContract,
    InvalidHeaderError,
    MalformedRecordError,
    Message,
    MessageState,
    Session,
    TrackerContract,
)

__all__ = [
    # Wire constants
    "DELIMITER",
    "FIELD_FAMILY",
    "FIELD_NAME",
    "FIELD_SESSION",
    "FIELD_TOKEN",
    "FILTER_EVENTS",
    "MIN_RECORD_FIELDS",
    "REPORT_EVENTS",
    "REQUIRED_FIELDS",
    "RESULT_OK",
    "RESULT_PASS",
    # Domain Types
    "MessageState",
    "Message",
    "Session",
    "Header",
    "FilterConfig",
    # Error Types
    "FilterError",
    "ConfigurationError",
    "InvalidHeaderError",
    "HandshakeError",
    "MalformedRecordError",
    # Contracts
    "HandshakeContract",
    "DispatchContract",
    "TrackerContract",
    "InjectorContract",
]
