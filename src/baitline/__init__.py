"""Baitline: per-recipient personalization of phishing-simulation attachments."""

__version__ = "0.1.0"
