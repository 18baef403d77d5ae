"""
Aircraft Tracker Module

Thread-safe registry of every aircraft seen since start-up. Ingestion
workers write through apply_message(); the render loop reads through
get_current_aircraft(). Every public operation holds the tracker lock for
its whole duration, so readers never observe a half-applied update.
"""

import copy
import logging
import re
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Union

from .aircraft import Aircraft
from .decoded_message import DecodedMessage
from .position_calculator import PositionResolver, resolve_position

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

ICAO_PATTERN = re.compile(r"[0-9A-F]{6}")


def normalize_icao(icao: Union[str, int]) -> str:
    """Return the six hex digit, upper-case form of an ICAO address"""
    if isinstance(icao, int):
        if not 0 <= icao <= 0xFFFFFF:
            raise ValueError(f"ICAO address out of range: {icao:#x}")
        return f"{icao:06X}"
    text = icao.strip().upper()
    if not ICAO_PATTERN.fullmatch(text):
        raise ValueError(f"ICAO address must be six hex digits: {icao!r}")
    return text


class AircraftTracker:
    """
    Stores the set of tracked aircraft

    Records are created on first sight and never removed; staleness is a
    filter applied by get_current_aircraft().
    """

    def __init__(self, resolver: PositionResolver = resolve_position,
                 clock: Clock = datetime.now):
        """
        Initialize aircraft tracker

        Args:
            resolver: Resolves an even/odd CPR pair to (lat, lon) or None
            clock: Wall clock used for last-seen times and recency checks
        """
        self.resolver = resolver
        self.clock = clock
        self._aircraft: Dict[str, Aircraft] = {}
        self._lock = threading.Lock()

        self.stats = {
            'messages_applied': 0,
            'messages_ignored': 0,
            'aircraft_created': 0,
            'positions_resolved': 0,
        }

    def apply_message(self, message: DecodedMessage) -> None:
        """
        Update the tracker with a decoded message

        Messages whose payload the tracker does not use change nothing,
        not even the sender's last-seen time.
        """
        if not message.is_tracked():
            with self._lock:
                self.stats['messages_ignored'] += 1
            return

        with self._lock:
            now = self.clock()
            aircraft = self._get_or_create_locked(normalize_icao(message.icao), now)
            had_position = (aircraft.latitude, aircraft.longitude)
            aircraft.apply(message.payload, self.resolver, now)
            self.stats['messages_applied'] += 1
            if aircraft.has_position() and (aircraft.latitude, aircraft.longitude) != had_position:
                self.stats['positions_resolved'] += 1

    def get_or_create_aircraft(self, icao: Union[str, int]) -> Aircraft:
        """
        Return the record for an address, creating an empty one if needed

        Concurrent calls for the same address always yield the same record.
        """
        with self._lock:
            return self._get_or_create_locked(normalize_icao(icao), self.clock())

    def get_aircraft(self, icao: Union[str, int]) -> Optional[Aircraft]:
        """Get a read-only copy of one aircraft, or None if never seen"""
        with self._lock:
            aircraft = self._aircraft.get(normalize_icao(icao))
            return copy.copy(aircraft) if aircraft else None

    def get_current_aircraft(self, max_age: Union[timedelta, float]) -> List[Aircraft]:
        """
        Get aircraft last seen within the given interval

        Args:
            max_age: Recency window, as a timedelta or in seconds

        Returns:
            Read-only copies of the matching records, sorted by ICAO address
        """
        if not isinstance(max_age, timedelta):
            max_age = timedelta(seconds=max_age)

        with self._lock:
            now = self.clock()
            return [
                copy.copy(aircraft)
                for icao, aircraft in sorted(self._aircraft.items())
                if now - aircraft.last_seen < max_age
            ]

    def get_all_aircraft(self) -> List[Aircraft]:
        """Get read-only copies of every tracked aircraft regardless of age"""
        with self._lock:
            return [copy.copy(aircraft) for icao, aircraft in sorted(self._aircraft.items())]

    def get_statistics(self) -> Dict[str, Any]:
        """Get tracker statistics"""
        with self._lock:
            current_stats = self.stats.copy()
            current_stats['aircraft_count'] = len(self._aircraft)
            current_stats['aircraft_with_position'] = sum(
                1 for aircraft in self._aircraft.values() if aircraft.has_position()
            )
        return current_stats

    def __len__(self) -> int:
        with self._lock:
            return len(self._aircraft)

    def _get_or_create_locked(self, icao: str, now: datetime) -> Aircraft:
        # Caller holds self._lock
        aircraft = self._aircraft.get(icao)
        if aircraft is None:
            aircraft = Aircraft(icao=icao, first_seen=now, last_seen=now)
            self._aircraft[icao] = aircraft
            self.stats['aircraft_created'] += 1
            logger.debug(f"Created new aircraft: {icao}")
        return aircraft
