"""Exceptions raised while talking to a MicroPython board."""


class ZapError(Exception):
    pass


class TransportError(ZapError):
    """The serial link failed, closed, or could not be opened."""


class TransportTimeout(TransportError):
    """No byte arrived within the per-read timeout."""


class ProtocolError(ZapError):
    """The board answered with something the raw REPL protocol does not allow."""


class ModeError(ProtocolError):
    pass


class RemoteError(ZapError):
    """Code ran on the board and wrote to its error stream.

    str(err) is exactly the text the interpreter printed (usually a traceback).
    """

    def __init__(self, stderr: bytes):
        self.stderr = stderr
        super().__init__(stderr.decode("utf-8", errors="replace"))
