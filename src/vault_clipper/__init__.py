"""Clip web pages and videos into vault notes."""

__version__ = "0.1.0"
