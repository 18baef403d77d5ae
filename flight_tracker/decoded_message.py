"""
Decoded Message Data Structure

Typed representation of one decoded Mode S / ADS-B message. The payload
is one member of a closed set of variants; the tracker folds each variant
into an Aircraft record.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class Parity(Enum):
    """CPR frame format"""
    EVEN = 0
    ODD = 1


class VerticalRateSource(Enum):
    """Where the vertical rate in a velocity message was measured"""
    GNSS = "GNSS"
    BAROMETRIC = "BARO"


@dataclass(frozen=True)
class CPRFrame:
    """
    One half of a compact position report

    The tracker only looks at `parity`; the other fields are handed back
    to the position resolver untouched.
    """
    parity: Parity
    message: str  # hex of the originating airborne position message
    lat_cpr: int
    lon_cpr: int
    timestamp: float  # receive time, seconds since the epoch


@dataclass(frozen=True)
class Identification:
    """Aircraft identification (TC 1-4)"""
    callsign: str


@dataclass(frozen=True)
class AirbornePosition:
    """Airborne position with barometric altitude (TC 9-18)"""
    altitude: Optional[int]
    frame: CPRFrame


@dataclass(frozen=True)
class AirborneVelocity:
    """Airborne velocity (TC 19)"""
    heading: Optional[float]
    ground_speed: Optional[float]
    vertical_rate: Optional[int]
    vertical_rate_source: Optional[VerticalRateSource] = None


@dataclass(frozen=True)
class SurveillanceIdentity:
    """Identity reply carrying the squawk code (DF5, DF21)"""
    squawk: str


@dataclass(frozen=True)
class UnsupportedPayload:
    """Well-formed message of a kind the tracker does not use"""
    df: int
    tc: Optional[int] = None


Payload = Union[Identification, AirbornePosition, AirborneVelocity,
                SurveillanceIdentity, UnsupportedPayload]

TRACKED_PAYLOADS = (Identification, AirbornePosition, AirborneVelocity, SurveillanceIdentity)


@dataclass(frozen=True)
class DecodedMessage:
    """A decoded message: who sent it and what it says"""
    icao: str
    payload: Payload
    timestamp: float = 0.0

    def is_tracked(self) -> bool:
        """Check if the payload changes tracker state"""
        return isinstance(self.payload, TRACKED_PAYLOADS)
