"""
ADS-B flight tracker

Keeps a live registry of aircraft built from decoded Mode S / ADS-B
messages and shows the recently heard ones as a terminal table.
"""

from .aircraft import Aircraft
from .aircraft_tracker import AircraftTracker, normalize_icao
from .config import ConfigManager, LoggingConfig, SourceConfig, TrackerConfig, TrackingConfig
from .decoded_message import (AirbornePosition, AirborneVelocity, CPRFrame, DecodedMessage,
                              Identification, Parity, SurveillanceIdentity, UnsupportedPayload,
                              VerticalRateSource)
from .decoder import MessageDecoder
from .display import TableRenderer
from .exceptions import ConfigurationError, DecodeError, FlightTrackerError, SourceError
from .message_source import MessageSource, NetworkSource, StdinSource
from .position_calculator import resolve_position
from .workers import IngestionWorker, RenderLoop

__version__ = "1.0.0"
__all__ = [
    "Aircraft",
    "AircraftTracker",
    "normalize_icao",
    "ConfigManager",
    "LoggingConfig",
    "SourceConfig",
    "TrackerConfig",
    "TrackingConfig",
    "AirbornePosition",
    "AirborneVelocity",
    "CPRFrame",
    "DecodedMessage",
    "Identification",
    "Parity",
    "SurveillanceIdentity",
    "UnsupportedPayload",
    "VerticalRateSource",
    "MessageDecoder",
    "TableRenderer",
    "ConfigurationError",
    "DecodeError",
    "FlightTrackerError",
    "SourceError",
    "MessageSource",
    "NetworkSource",
    "StdinSource",
    "resolve_position",
    "IngestionWorker",
    "RenderLoop",
]
