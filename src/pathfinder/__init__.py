"""Locator extraction and stability scoring for test automation."""

__version__ = "1.3.0"
