"""Notification delivery and live state reconciliation for the Colab Eats menu app."""

__version__ = "0.1.0"
