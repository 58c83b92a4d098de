"""Exception hierarchy for the neighborhood mapper."""

from __future__ import annotations


class NeighborhoodError(Exception):
    """Base class for every error raised by this package."""


class SubmissionError(NeighborhoodError, ValueError):
    """A submission was rejected before any record was created."""


class ColorParseError(NeighborhoodError, ValueError):
    """A color string could not be parsed as hex, rgb() or hsl()."""


class StoreUnavailableError(NeighborhoodError, RuntimeError):
    """The backing store could not be read or written."""
