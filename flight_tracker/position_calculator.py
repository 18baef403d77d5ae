"""
Position Calculator Module

Global CPR (Compact Position Reporting) decoding of an even/odd airborne
position pair using pyModeS.
"""

import logging
from typing import Callable, Optional, Tuple

import pyModeS as pms

from .decoded_message import CPRFrame, Parity

logger = logging.getLogger(__name__)

Coordinate = Tuple[float, float]
PositionResolver = Callable[[CPRFrame, CPRFrame], Optional[Coordinate]]


def resolve_position(even: CPRFrame, odd: CPRFrame) -> Optional[Coordinate]:
    """
    Resolve an even/odd frame pair into a coordinate

    The more recently received frame decides which latitude zone is used.

    Args:
        even: Frame with even parity
        odd: Frame with odd parity

    Returns:
        Tuple of (latitude, longitude), or None if the pair straddles a
        longitude zone boundary or cannot be decoded
    """
    if even.parity is not Parity.EVEN or odd.parity is not Parity.ODD:
        raise ValueError("resolve_position needs one even and one odd frame")

    try:
        position = pms.adsb.airborne_position(
            even.message, odd.message, even.timestamp, odd.timestamp
        )
    except (RuntimeError, ValueError) as e:
        logger.debug(f"CPR pair could not be decoded: {e}")
        return None

    if position is None:
        return None

    lat, lon = position
    if lat is None or lon is None:
        return None
    return float(lat), float(lon)
