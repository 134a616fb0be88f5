"""
smtpd Header Filter
===================

OpenSMTPD filter adding static header lines to messages, optionally only
when a recipient matches one of the configured patterns.
"""

__version__ = "0.0.6"

from src.smtpd_addheader.config import build_config, parse_header_arg
from src.smtpd_addheader.engine import HeaderFilter, create_filter
from src.smtpd_addheader.injector import HeaderInjector
from src.smtpd_addheader.matcher import RecipientMatcher
from src.smtpd_addheader.records import Record
from src.smtpd_addheader.tracker import SessionTracker

__all__ = [
    "HeaderFilter",
    "create_filter",
    "HeaderInjector",
    "RecipientMatcher",
    "Record",
    "SessionTracker",
    "build_config",
    "parse_header_arg",
]
