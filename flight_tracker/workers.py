"""
Ingestion and rendering threads

One IngestionWorker per message source writes into the shared
AircraftTracker; a single RenderLoop periodically reads the current
snapshot and hands it to the table renderer.
"""

import logging
import threading
import time
from datetime import timedelta
from typing import Optional

from .aircraft_tracker import AircraftTracker
from .decoder import MessageDecoder
from .display import TableRenderer
from .exceptions import DecodeError, SourceError
from .message_source import MessageSource

logger = logging.getLogger(__name__)


class IngestionWorker(threading.Thread):
    """
    Pulls raw units from one source, decodes them and applies them in order

    Undecodable units are logged and skipped. A source that runs out of
    input, or any other failure, ends the worker and is kept in `error`
    for the process wiring to act on.
    """

    def __init__(self, source: MessageSource, tracker: AircraftTracker,
                 decoder: Optional[MessageDecoder] = None):
        super().__init__(name=f"ingest-{source.name}", daemon=True)
        self.source = source
        self.tracker = tracker
        self.decoder = decoder or MessageDecoder()
        self.error: Optional[BaseException] = None
        self.units_read = 0
        self.decode_errors = 0

    @property
    def failed(self) -> bool:
        return self.error is not None

    def run(self) -> None:
        logger.info(f"Ingestion worker started for source: {self.source.name}")
        try:
            for raw in self.source.read_messages():
                self.units_read += 1
                try:
                    message = self.decoder.decode(raw)
                except DecodeError as e:
                    self.decode_errors += 1
                    logger.debug(f"Discarding unit from {self.source.name}: {e}")
                    continue
                self.tracker.apply_message(message)
            raise SourceError(f"End of stream on source {self.source.name}")
        except Exception as e:
            self.error = e
            logger.error(f"Ingestion worker for {self.source.name} failed: {e}")
        finally:
            self.source.disconnect()
            logger.info(f"Ingestion worker stopped for source: {self.source.name} "
                        f"({self.units_read} units, {self.decode_errors} undecodable)")


class RenderLoop(threading.Thread):
    """Redraws the table of current aircraft at a fixed interval"""

    def __init__(self, tracker: AircraftTracker, renderer: Optional[TableRenderer] = None,
                 expire_sec: float = 60, refresh_interval_sec: float = 1.0,
                 stats_interval_sec: float = 60):
        """
        Initialize render loop

        Args:
            tracker: Shared aircraft tracker
            renderer: Table renderer (default: stdout)
            expire_sec: Recency window for displayed aircraft
            refresh_interval_sec: Seconds between redraws
            stats_interval_sec: Seconds between statistics log lines
        """
        super().__init__(name="render", daemon=True)
        self.tracker = tracker
        self.renderer = renderer or TableRenderer()
        self.expire = timedelta(seconds=expire_sec)
        self.refresh_interval_sec = refresh_interval_sec
        self.stats_interval_sec = stats_interval_sec
        self.error: Optional[BaseException] = None
        self.cycles = 0
        self._stop_event = threading.Event()
        self._last_stats_time = time.monotonic()

    def stop(self) -> None:
        self._stop_event.set()

    def render_once(self) -> None:
        """Take one snapshot and render it"""
        snapshot = self.tracker.get_current_aircraft(self.expire)
        self.renderer.render(snapshot, self.tracker.clock())
        self.cycles += 1

        current_time = time.monotonic()
        if current_time - self._last_stats_time >= self.stats_interval_sec:
            stats = self.tracker.get_statistics()
            logger.info(
                f"Tracker stats: {stats['messages_applied']} applied, "
                f"{stats['messages_ignored']} ignored, "
                f"{stats['aircraft_count']} aircraft ({len(snapshot)} current, "
                f"{stats['aircraft_with_position']} with position)"
            )
            self._last_stats_time = current_time

    def run(self) -> None:
        try:
            while not self._stop_event.wait(self.refresh_interval_sec):
                self.render_once()
        except Exception as e:
            self.error = e
            logger.error(f"Render loop failed: {e}")
