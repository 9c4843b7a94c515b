"""Tests for logging configuration."""
import logging

from eats_notify.logging_setup import setup_logging


def test_setup_logging_only_adjusts_level_when_configured():
    root = logging.getLogger()
    previous = root.level
    handler = logging.NullHandler()
    root.addHandler(handler)
    try:
        setup_logging("debug")
        assert root.level == logging.DEBUG
        assert handler in root.handlers
    finally:
        root.removeHandler(handler)
        root.setLevel(previous)
