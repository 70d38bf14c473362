"""Raw REPL driver for MicroPython boards.

A Session owns one transport and tracks which mode the remote interpreter is
in. Code is only executed in raw mode: the snippet is sent followed by EOT,
the board answers "OK", runs it, then sends stdout and stderr, each closed by
EOT.
"""
import enum
import logging

from .config import DEFAULT_TIMEOUT
from .errors import ModeError, ProtocolError, RemoteError
from .framing import EOT, read_until
from .transport import open_transport

log = logging.getLogger(__name__)

CTRL_A = b"\x01"  # enter raw REPL
CTRL_B = b"\x02"  # back to friendly REPL
CTRL_C = b"\x03"  # interrupt
CTRL_D = EOT      # soft reboot, or end of snippet while in raw mode

RAW_BANNER = b"raw REPL; CTRL-B to exit\r\n"
SOFT_REBOOT_BANNER = b"soft reboot\r\n"
RAW_PROMPT = b">"
ACK = b"OK"


class Mode(enum.Enum):
    FRIENDLY = "friendly"
    RAW = "raw"
    UNKNOWN = "unknown"  # a transition or exec failed half way; reconnect


class Session:
    def __init__(self, transport):
        self.transport = transport
        self.mode = Mode.FRIENDLY

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        self.transport.close()

    def read_until(self, ending: bytes, sink=None) -> bytes:
        return read_until(self.transport, ending, sink)

    def _require(self, mode):
        if self.mode is not mode:
            if self.mode is Mode.UNKNOWN:
                raise ModeError("board is in an unknown state after an earlier failure; reconnect")
            raise ModeError(f"operation needs {mode.value} mode, board is in {self.mode.value} mode")

    def enter_raw(self) -> Mode:
        if self.mode is Mode.UNKNOWN:
            self._require(Mode.FRIENDLY)
        log.debug("entering raw mode")
        try:
            self.transport.write(b"\r" + CTRL_A)
            self.read_until(RAW_BANNER)
        except Exception:
            self.mode = Mode.UNKNOWN
            raise
        self.mode = Mode.RAW
        return self.mode

    def exit_raw(self) -> Mode:
        # No banner is read back; the friendly prompt shows up on its own.
        # Ctrl-B is still sent from UNKNOWN, but the mode stays UNKNOWN.
        log.debug("leaving raw mode")
        try:
            self.transport.write(b"\r" + CTRL_B)
        except Exception:
            self.mode = Mode.UNKNOWN
            raise
        if self.mode is not Mode.UNKNOWN:
            self.mode = Mode.FRIENDLY
        return self.mode

    def soft_reboot(self) -> Mode:
        self._require(Mode.RAW)
        log.debug("soft reboot")
        try:
            self.transport.write(CTRL_D)
            self.read_until(SOFT_REBOOT_BANNER)
            self.read_until(RAW_BANNER)
        except Exception:
            self.mode = Mode.UNKNOWN
            raise
        self.mode = Mode.RAW
        return self.mode

    def exec_raw(self, code):
        """Send code for execution without reading its output."""
        self._require(Mode.RAW)
        if isinstance(code, str):
            code = code.encode("utf-8")
        log.debug("exec %r", code)
        try:
            # Waiting for the prompt also drains leftovers of a previous command.
            self.read_until(RAW_PROMPT)
            self.transport.write(code)
            self.transport.write(EOT)
            resp = self.transport.read(len(ACK))
        except Exception:
            self.mode = Mode.UNKNOWN
            raise
        if resp != ACK:
            self.mode = Mode.UNKNOWN
            raise ProtocolError(f"could not exec command (response: {resp!r})")

    def follow(self, sink=None):
        """Read the stdout and stderr of the command sent by exec_raw.

        stdout goes to sink as it arrives when one is given, in which case the
        returned stdout is empty.
        """
        self._require(Mode.RAW)
        try:
            data = self.read_until(EOT, sink)
            data_err = self.read_until(EOT)
        except Exception:
            self.mode = Mode.UNKNOWN
            raise
        if sink is not None:
            data = b""
        elif data.endswith(EOT):
            data = data[:-1]
        if data_err.endswith(EOT):
            data_err = data_err[:-1]
        return data, data_err

    def exec(self, code, sink=None) -> bytes:
        """Run code on the board and return its stdout.

        Raises RemoteError carrying the board's error output if there was any.
        """
        self.exec_raw(code)
        data, data_err = self.follow(sink)
        if data_err:
            raise RemoteError(data_err)
        return data


def connect(device, baudrate, timeout=DEFAULT_TIMEOUT) -> Session:
    """Open the serial port and interrupt whatever the board is running."""
    transport = open_transport(device, baudrate, timeout)
    try:
        transport.write(b"\r" + CTRL_C + CTRL_C)
    except Exception:
        transport.close()
        raise
    return Session(transport)
