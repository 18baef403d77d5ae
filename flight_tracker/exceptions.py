"""
Exception classes for the flight tracker

Decode failures are recovered by the ingestion worker that hit them;
source failures end the worker that owns the source.
"""


class FlightTrackerError(Exception):
    """Base exception for all flight tracker errors"""
    pass


class DecodeError(FlightTrackerError):
    """Raised when a raw message cannot be turned into a DecodedMessage"""

    def __init__(self, message: str, raw=None):
        super().__init__(message)
        self.raw = raw


class SourceError(FlightTrackerError):
    """Raised when a message source fails or is closed by the remote end"""
    pass


class ConfigurationError(FlightTrackerError):
    """Raised when there are configuration validation errors"""
    pass
