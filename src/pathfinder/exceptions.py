from __future__ import annotations


class PathfinderError(Exception):
    """Base class for errors raised by pathfinder."""


class ConfigurationError(PathfinderError):
    """Invalid scan options, malformed URLs or missing input files."""


class NavigationError(PathfinderError):
    """A page could not be loaded within the configured number of attempts."""

    def __init__(self, url: str, attempts: int, message: str) -> None:
        super().__init__(f"Navigation to {url} failed after {attempts} attempt(s): {message}")
        self.url = url
        self.attempts = attempts


class ReportFormatError(PathfinderError):
    """A persisted report could not be parsed back into report objects."""
