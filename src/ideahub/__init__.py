"""Moderated, anonymous idea sharing for Discord."""

__version__ = "0.1.0"
