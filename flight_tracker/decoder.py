"""
pyModeS Decoder Integration

Turns one raw unit (an AVR text line or a binary Mode S frame) into a
DecodedMessage using pyModeS. Each ingestion worker owns its own decoder.
"""

import logging
import string
import time
from typing import Any, Dict, Optional, Union

import pyModeS as pms

from .decoded_message import (
    AirbornePosition,
    AirborneVelocity,
    CPRFrame,
    DecodedMessage,
    Identification,
    Parity,
    SurveillanceIdentity,
    UnsupportedPayload,
    VerticalRateSource,
)
from .exceptions import DecodeError

logger = logging.getLogger(__name__)

HEX_DIGITS = set(string.hexdigits)
MLAT_TIMESTAMP_LENGTH = 12
MESSAGE_LENGTHS = (14, 28)  # 56 and 112 bit frames


def parse_avr(line: str) -> str:
    """
    Extract the hex payload from an AVR formatted line

    Accepts `*8D...;`, `@<timestamp>8D...;` and bare hex.

    Returns:
        Upper-case hex message
    """
    text = line.strip()
    if text.startswith('@'):
        text = text[1 + MLAT_TIMESTAMP_LENGTH:]
    elif text.startswith('*'):
        text = text[1:]
    if text.endswith(';'):
        text = text[:-1]

    if not text or not set(text) <= HEX_DIGITS:
        raise DecodeError(f"Not an AVR frame: {line.strip()!r}", raw=line)
    if len(text) not in MESSAGE_LENGTHS:
        raise DecodeError(f"Unexpected frame length {len(text)}: {text}", raw=line)
    return text.upper()


def parse_binary(frame: bytes) -> str:
    """Convert a 7 or 14 byte Mode S frame to upper-case hex"""
    if len(frame) * 2 not in MESSAGE_LENGTHS:
        raise DecodeError(f"Unexpected binary frame length {len(frame)}", raw=frame)
    return frame.hex().upper()


class MessageDecoder:
    """
    Wrapper around pyModeS decode functionality

    Produces the closed set of payloads the tracker understands:
    identification, airborne position, airborne velocity and surveillance
    identity. Anything else well-formed comes back as UnsupportedPayload.
    """

    def __init__(self, crc_validation: bool = True):
        """
        Initialize decoder

        Args:
            crc_validation: Reject extended squitters whose CRC does not check
        """
        self.crc_validation = crc_validation
        self.stats = {
            'messages_decoded': 0,
            'decode_errors': 0,
            'crc_failures': 0,
            'unsupported_messages': 0,
        }

    def decode(self, raw: Union[str, bytes], timestamp: Optional[float] = None) -> DecodedMessage:
        """
        Decode one raw unit

        Args:
            raw: AVR text line or binary Mode S frame
            timestamp: Receive time (default: now)

        Returns:
            DecodedMessage

        Raises:
            DecodeError: If the unit is malformed or fails CRC
        """
        if timestamp is None:
            timestamp = time.time()

        try:
            if isinstance(raw, (bytes, bytearray)):
                message = parse_binary(bytes(raw))
            else:
                message = parse_avr(raw)
            decoded = self.decode_hex(message, timestamp)
        except DecodeError:
            self.stats['decode_errors'] += 1
            raise

        self.stats['messages_decoded'] += 1
        if isinstance(decoded.payload, UnsupportedPayload):
            self.stats['unsupported_messages'] += 1
        return decoded

    def decode_hex(self, message: str, timestamp: float) -> DecodedMessage:
        """Decode a validated hex message"""
        try:
            df = pms.df(message)

            if df in (17, 18):
                return self._decode_extended_squitter(message, df, timestamp)

            if df in (5, 21):
                squawk = pms.common.idcode(message)
                return DecodedMessage(pms.icao(message).upper(),
                                      SurveillanceIdentity(squawk), timestamp)

            icao = pms.icao(message)
            return DecodedMessage((icao or '').upper(), UnsupportedPayload(df), timestamp)

        except DecodeError:
            raise
        except Exception as e:
            raise DecodeError(f"pyModeS failed on {message}: {e}", raw=message) from e

    def _decode_extended_squitter(self, message: str, df: int, timestamp: float) -> DecodedMessage:
        """Decode DF17/DF18 ADS-B messages"""
        if len(message) != 28:
            raise DecodeError(f"Short extended squitter: {message}", raw=message)

        if self.crc_validation and pms.crc(message) != 0:
            self.stats['crc_failures'] += 1
            raise DecodeError(f"CRC check failed: {message}", raw=message)

        icao = pms.icao(message).upper()
        tc = pms.adsb.typecode(message)

        if 1 <= tc <= 4:
            callsign = pms.adsb.callsign(message).replace('_', ' ').replace('#', ' ')
            payload = Identification(callsign)

        elif 9 <= tc <= 18:
            payload = AirbornePosition(
                altitude=pms.adsb.altitude(message),
                frame=self._cpr_frame(message, timestamp),
            )

        elif tc == 19:
            payload = self._decode_velocity(message)

        else:
            payload = UnsupportedPayload(df, tc)

        return DecodedMessage(icao, payload, timestamp)

    def _cpr_frame(self, message: str, timestamp: float) -> CPRFrame:
        """Extract the encoded position from an airborne position message"""
        me = int(message[8:22], 16)
        parity = Parity.ODD if pms.adsb.oe_flag(message) else Parity.EVEN
        return CPRFrame(
            parity=parity,
            message=message,
            lat_cpr=(me >> 17) & 0x1FFFF,
            lon_cpr=me & 0x1FFFF,
            timestamp=timestamp,
        )

    def _decode_velocity(self, message: str) -> AirborneVelocity:
        """Decode airborne velocity, keeping ground speed only for GS subtypes"""
        velocity = pms.adsb.velocity(message, source=True)
        if velocity is None:
            raise DecodeError(f"No velocity in message: {message}", raw=message)

        speed, angle, vertical_rate, speed_type, _, vr_source = velocity
        return AirborneVelocity(
            heading=float(angle) if angle is not None else None,
            ground_speed=float(speed) if speed is not None and speed_type == 'GS' else None,
            vertical_rate=int(vertical_rate) if vertical_rate is not None else None,
            vertical_rate_source=VerticalRateSource(vr_source) if vr_source else None,
        )

    def get_statistics(self) -> Dict[str, Any]:
        """Get decoding statistics"""
        return self.stats.copy()
