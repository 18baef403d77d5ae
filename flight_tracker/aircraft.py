"""
Aircraft Data Structure

One record per ICAO address. Each decoded payload is folded into the
record in place; airborne positions are buffered per CPR parity until an
even/odd pair can be resolved into a coordinate.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from .decoded_message import (
    AirbornePosition,
    AirborneVelocity,
    CPRFrame,
    Identification,
    Parity,
    Payload,
    SurveillanceIdentity,
    VerticalRateSource,
)
from .position_calculator import PositionResolver, resolve_position

logger = logging.getLogger(__name__)


@dataclass
class Aircraft:
    """
    A tracked aircraft

    Latitude and longitude are only written together, and only by a
    successful CPR resolution.
    """

    # Unique 24-bit address, six upper-case hex digits
    icao: str
    first_seen: datetime = field(default_factory=datetime.now)
    last_seen: datetime = field(default_factory=datetime.now)

    callsign: Optional[str] = None
    altitude: Optional[int] = None  # feet
    heading: Optional[float] = None  # degrees
    ground_speed: Optional[float] = None  # knots
    vertical_rate: Optional[int] = None  # feet per minute
    vertical_rate_source: Optional[VerticalRateSource] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    last_squawk: Optional[str] = None

    message_count: int = 0
    last_cpr_even: Optional[CPRFrame] = field(default=None, repr=False)
    last_cpr_odd: Optional[CPRFrame] = field(default=None, repr=False)

    def apply(self, payload: Payload, resolver: PositionResolver = resolve_position,
              now: Optional[datetime] = None) -> bool:
        """
        Fold one decoded payload into this record

        Args:
            payload: Decoded payload variant
            resolver: Callable turning an (even, odd) frame pair into a coordinate
            now: Update time (default: current wall clock)

        Returns:
            True if the payload was applied, False for payloads the tracker ignores
        """
        if isinstance(payload, Identification):
            self.callsign = payload.callsign.strip()
        elif isinstance(payload, AirbornePosition):
            if payload.altitude is not None:
                self.altitude = payload.altitude
            self.update_position(payload.frame, resolver)
        elif isinstance(payload, AirborneVelocity):
            # Fields the message does not carry keep their last value
            if payload.heading is not None:
                self.heading = payload.heading
            if payload.ground_speed is not None:
                self.ground_speed = payload.ground_speed
            if payload.vertical_rate is not None:
                self.vertical_rate = payload.vertical_rate
                self.vertical_rate_source = payload.vertical_rate_source
        elif isinstance(payload, SurveillanceIdentity):
            self.last_squawk = payload.squawk
        else:
            return False

        self.touch(now)
        return True

    def touch(self, now: Optional[datetime] = None) -> None:
        """Record activity, never moving last_seen backwards"""
        now = now or datetime.now()
        if now > self.last_seen:
            self.last_seen = now
        self.message_count += 1

    def update_position(self, frame: CPRFrame,
                        resolver: PositionResolver = resolve_position) -> bool:
        """
        Buffer a CPR frame and resolve a position once both parities are held

        A new frame replaces the previous frame of the same parity whatever
        its age.

        Returns:
            True if latitude/longitude were updated
        """
        if frame.parity is Parity.EVEN:
            self.last_cpr_even = frame
        else:
            self.last_cpr_odd = frame

        if self.last_cpr_even is None or self.last_cpr_odd is None:
            return False

        position = resolver(self.last_cpr_even, self.last_cpr_odd)
        if position is None:
            logger.debug(f"Unresolvable CPR pair for {self.icao}")
            return False

        self.latitude, self.longitude = position
        return True

    def has_position(self) -> bool:
        """Check if aircraft has a resolved position"""
        return self.latitude is not None and self.longitude is not None

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        """Seconds since last seen"""
        now = now or datetime.now()
        return (now - self.last_seen).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON friendly dictionary"""
        return {
            'icao': self.icao,
            'callsign': self.callsign,
            'altitude': self.altitude,
            'heading': self.heading,
            'ground_speed': self.ground_speed,
            'vertical_rate': self.vertical_rate,
            'vertical_rate_source': (self.vertical_rate_source.value
                                     if self.vertical_rate_source else None),
            'latitude': self.latitude,
            'longitude': self.longitude,
            'squawk': self.last_squawk,
            'messages': self.message_count,
            'first_seen': self.first_seen.isoformat(),
            'last_seen': self.last_seen.isoformat(),
        }

    def __str__(self) -> str:
        if self.callsign:
            return f"Aircraft({self.icao} ({self.callsign}))"
        return f"Aircraft({self.icao})"
