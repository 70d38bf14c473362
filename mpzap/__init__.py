"""mpzap: drive a MicroPython board's raw REPL over a serial link."""

__version__ = "0.1.0"

from .errors import (
    ModeError,
    ProtocolError,
    RemoteError,
    TransportError,
    TransportTimeout,
    ZapError,
)
from .repl import Mode, Session, connect

__all__ = [
    "Mode",
    "ModeError",
    "ProtocolError",
    "RemoteError",
    "Session",
    "TransportError",
    "TransportTimeout",
    "ZapError",
    "connect",
]
