"""
Terminal table output for the current aircraft snapshot
"""

import sys
from datetime import datetime
from typing import Iterable, Optional, TextIO

from .aircraft import Aircraft

NA = "N/A"
CLEAR_SCREEN = "\x1b[2J\x1b[H"

HEADER_FORMAT = "{:>6} {:>10} {:>8} {:>6} {:>5} {:>8} {:>17} {:>7} {:>5}"
ROW_FORMAT = "{:>6} {:>10} {:>8} {:>6} {:>5} {:>8} {:>8},{:>8} {:>7} {:>5}"
COLUMNS = ("icao", "call", "alt", "hdg", "gs", "vr", "lat/lon", "squawk", "last")


def fmt_value(value, precision: int = 0) -> str:
    """Format an optional number, N/A when missing"""
    if value is None:
        return NA
    return f"{value:.{precision}f}"


def format_row(aircraft: Aircraft, now: datetime) -> str:
    """Format one aircraft as a table row"""
    age = max(0, int(aircraft.age_seconds(now)))
    return ROW_FORMAT.format(
        aircraft.icao,
        aircraft.callsign or NA,
        fmt_value(aircraft.altitude),
        fmt_value(aircraft.heading),
        fmt_value(aircraft.ground_speed),
        fmt_value(aircraft.vertical_rate),
        fmt_value(aircraft.latitude, 4),
        fmt_value(aircraft.longitude, 4),
        aircraft.last_squawk or NA,
        age,
    )


class TableRenderer:
    """Clears the terminal and prints one table per refresh"""

    def __init__(self, stream: Optional[TextIO] = None, clear_screen: bool = True):
        self.stream = stream
        self.clear_screen = clear_screen

    def render(self, aircraft_list: Iterable[Aircraft], now: Optional[datetime] = None) -> None:
        now = now or datetime.now()
        stream = self.stream if self.stream is not None else sys.stdout

        lines = [HEADER_FORMAT.format(*COLUMNS), "-" * 80]
        lines.extend(format_row(aircraft, now) for aircraft in aircraft_list)

        if self.clear_screen:
            stream.write(CLEAR_SCREEN)
        stream.write("\n".join(lines) + "\n")
        stream.flush()
