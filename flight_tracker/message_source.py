"""
Message Source Management

Blocking sources of raw Mode S units: AVR text lines from standard input,
or AVR/Beast data from a TCP feed such as dump1090. Each source is read by
exactly one ingestion worker.
"""

import logging
import socket
import sys
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, TextIO, Union

from .exceptions import SourceError

logger = logging.getLogger(__name__)

RawUnit = Union[str, bytes]

DEFAULT_RAW_PORT = 30002
SOURCE_FORMATS = ("avr", "beast")

BEAST_ESCAPE = 0x1A
BEAST_MODE_AC = 0x31
# Message type -> payload length in bytes
BEAST_PAYLOAD_LENGTHS = {
    BEAST_MODE_AC: 2,
    0x32: 7,   # Mode S short
    0x33: 14,  # Mode S long
}
BEAST_HEADER_LENGTH = 7  # 6 byte MLAT timestamp + 1 byte signal level


class MessageSource(ABC):
    """
    Abstract base class for message sources

    read_messages() blocks until the next unit is available. It returns
    when the source is exhausted and raises SourceError on failure.
    """

    def __init__(self, name: str):
        """
        Initialize message source

        Args:
            name: Human-readable name for this source
        """
        self.name = name
        self.connected = False
        self.last_message_time: Optional[datetime] = None
        self.message_count = 0

    def connect(self) -> None:
        """Open the source"""
        self.connected = True

    def disconnect(self) -> None:
        """Close the source"""
        self.connected = False

    @abstractmethod
    def read_messages(self) -> Iterator[RawUnit]:
        """Yield raw units one at a time"""
        pass

    def get_status(self) -> Dict[str, Any]:
        """Get source status information"""
        return {
            'name': self.name,
            'connected': self.connected,
            'message_count': self.message_count,
            'last_message_time': self.last_message_time.isoformat() if self.last_message_time else None
        }

    def _update_message_stats(self, message_count: int = 1):
        self.message_count += message_count
        self.last_message_time = datetime.now()


class StdinSource(MessageSource):
    """AVR lines from standard input (or any text or byte line stream)"""

    def __init__(self, name: str = "stdin", stream: Optional[TextIO] = None):
        super().__init__(name)
        self.stream = stream

    def read_messages(self) -> Iterator[str]:
        stream = self.stream if self.stream is not None else sys.stdin
        # Read the underlying bytes where there are any; undecodable bytes
        # must reach the decoder as a bad line, not end the stream
        stream = getattr(stream, 'buffer', stream)
        for line in stream:
            if isinstance(line, bytes):
                line = line.decode('ascii', errors='replace')
            line = line.strip()
            if not line:
                continue
            self._update_message_stats()
            yield line
        logger.info(f"End of input on source: {self.name}")


class NetworkSource(MessageSource):
    """
    TCP client for a raw (AVR) or Beast feed

    A connection closed by the remote end is a SourceError; sources are
    not reconnected.
    """

    def __init__(self, name: str, host: str, port: int = DEFAULT_RAW_PORT,
                 format_type: str = "avr", connect_timeout: float = 10.0,
                 buffer_size: int = 4096):
        """
        Initialize network source

        Args:
            name: Human-readable name for this source
            host: Remote host address
            port: Remote port (30002 for AVR, 30005 for Beast on dump1090)
            format_type: "avr" or "beast"
            connect_timeout: Seconds allowed for the TCP connect
            buffer_size: Socket receive size
        """
        super().__init__(name)
        self.host = host
        self.port = port
        self.format_type = format_type.lower()
        self.connect_timeout = connect_timeout
        self.buffer_size = buffer_size

        self.socket: Optional[socket.socket] = None
        self.buffer = b""

        if self.format_type not in SOURCE_FORMATS:
            raise ValueError(f"Unsupported format type: {format_type}")

    def connect(self) -> None:
        """Connect to the remote feed"""
        logger.info(f"Connecting to {self.host}:{self.port} ({self.format_type})")
        try:
            self.socket = socket.create_connection((self.host, self.port),
                                                   timeout=self.connect_timeout)
        except OSError as e:
            raise SourceError(f"Failed to connect to {self.name} at {self.host}:{self.port}: {e}") from e

        # Reads block until data arrives
        self.socket.settimeout(None)
        self.buffer = b""
        self.connected = True
        logger.info(f"Connected to network source: {self.name}")

    def disconnect(self) -> None:
        """Disconnect from the remote feed"""
        if self.socket:
            try:
                self.socket.close()
            except OSError as e:
                logger.debug(f"Error closing socket for {self.name}: {e}")
            self.socket = None
        self.connected = False
        self.buffer = b""

    def read_messages(self) -> Iterator[RawUnit]:
        if not self.connected:
            self.connect()

        while True:
            try:
                data = self.socket.recv(self.buffer_size)
            except OSError as e:
                self.disconnect()
                raise SourceError(f"Socket error on {self.name}: {e}") from e

            if not data:
                logger.warning(f"Connection closed by remote: {self.name}")
                self.disconnect()
                raise SourceError(f"Connection closed by remote: {self.name}")

            self.buffer += data
            if self.format_type == "beast":
                messages = self._parse_beast_messages()
            else:
                messages = self._parse_avr_messages()

            for message in messages:
                self._update_message_stats()
                yield message

    def _parse_avr_messages(self) -> List[str]:
        """Split complete lines off the buffer"""
        lines = self.buffer.split(b'\n')

        # Keep the last incomplete line in buffer
        self.buffer = lines[-1]

        messages = []
        for line in lines[:-1]:
            text = line.decode('ascii', errors='replace').strip()
            if text:
                messages.append(text)
        return messages

    def _parse_beast_messages(self) -> List[bytes]:
        """
        Extract Mode S frames from the Beast binary stream

        Frames start with 0x1A followed by a type byte; a 0x1A inside a
        frame is sent twice. Mode A/C frames are dropped.
        """
        messages = []

        while True:
            start_idx = self.buffer.find(bytes([BEAST_ESCAPE]))
            if start_idx == -1:
                self.buffer = b""
                break
            if start_idx > 0:
                self.buffer = self.buffer[start_idx:]
            if len(self.buffer) < 2:
                break

            message_type = self.buffer[1]
            if message_type not in BEAST_PAYLOAD_LENGTHS:
                # Not a frame start, resync on the next marker
                self.buffer = self.buffer[1:]
                continue

            body_length = BEAST_HEADER_LENGTH + BEAST_PAYLOAD_LENGTHS[message_type]
            body = bytearray()
            index = 2
            truncated = False
            while len(body) < body_length and index < len(self.buffer):
                byte = self.buffer[index]
                if byte == BEAST_ESCAPE:
                    if index + 1 >= len(self.buffer):
                        break
                    if self.buffer[index + 1] != BEAST_ESCAPE:
                        truncated = True
                        break
                    index += 1
                body.append(byte)
                index += 1

            if truncated:
                logger.debug(f"Dropping truncated beast frame on {self.name}")
                self.buffer = self.buffer[index:]
                continue
            if len(body) < body_length:
                # Wait for the rest of the frame
                break

            self.buffer = self.buffer[index:]
            if message_type != BEAST_MODE_AC:
                messages.append(bytes(body[BEAST_HEADER_LENGTH:]))

        return messages

    def get_status(self) -> Dict[str, Any]:
        """Get extended status information"""
        status = super().get_status()
        status.update({
            'host': self.host,
            'port': self.port,
            'format_type': self.format_type,
            'current_buffer_size': len(self.buffer),
        })
        return status
