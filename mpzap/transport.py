"""Serial byte transport. Knows nothing about the REPL protocol."""
import logging

import serial

from .config import DEFAULT_TIMEOUT
from .errors import TransportError, TransportTimeout

log = logging.getLogger(__name__)


class Transport:
    """Duplex byte stream over anything with the pyserial Serial interface."""

    def __init__(self, port):
        self.port = port

    def write(self, data: bytes) -> int:
        try:
            n = self.port.write(data)
            self.port.flush()
        except serial.SerialException as e:
            raise TransportError(f"serial-write-failed: {e}") from e
        log.debug("tx %r", data)
        return len(data) if n is None else n

    def read(self, size: int = 1) -> bytes:
        """Read exactly size bytes or raise TransportTimeout."""
        try:
            data = self.port.read(size)
        except serial.SerialException as e:
            raise TransportError(f"serial-read-failed: {e}") from e
        if len(data) < size:
            raise TransportTimeout(
                f"timed out waiting for data from {self.name} "
                f"(wanted {size} bytes, got {len(data)})"
            )
        return data

    @property
    def name(self):
        return getattr(self.port, "port", None) or "serial port"

    def close(self):
        try:
            self.port.close()
        except serial.SerialException as e:
            raise TransportError(f"serial-close-failed: {e}") from e


def open_transport(device, baudrate, timeout=DEFAULT_TIMEOUT):
    try:
        port = serial.serial_for_url(device, baudrate=baudrate, timeout=timeout)
    except (serial.SerialException, ValueError) as e:
        raise TransportError(f"could not open {device}: {e}") from e
    log.debug("opened %s at %d baud (timeout %.3fs)", device, baudrate, timeout)
    return Transport(port)
