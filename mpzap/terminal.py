"""Interactive pass-through between the local terminal and the board's REPL.

No framing and no session state: bytes from the board go to stdout, keys go
to the board. Control-] leaves.
"""
import threading

import serial
from serial.tools.miniterm import CR, Console

QUIT_KEY = "\x1d"  # Control-]
READER_JOIN_TIMEOUT = 2.0


def serial_to_console(port, console, stop):
    while not stop.is_set():
        try:
            data = port.read(port.in_waiting or 1)
        except (serial.SerialException, TypeError, OSError):
            # Board rebooted or the USB port went away.
            break
        if data:
            console.write_bytes(data)
    stop.set()


def console_to_serial(port, console, stop):
    # Console.getkey() gives "\n" for Enter; the REPL runs a line on "\r".
    eol = CR()
    while not stop.is_set():
        key = console.getkey()
        if key == QUIT_KEY:
            break
        try:
            port.write(eol.tx(key).encode("utf-8"))
        except serial.SerialException:
            break
    stop.set()


def repl(transport, console=None):
    """Pipe the terminal to the board until Control-] or the link drops."""
    console = console or Console()
    stop = threading.Event()
    reader = threading.Thread(
        target=serial_to_console,
        args=(transport.port, console, stop),
        name="serial_to_console",
        daemon=True,
    )
    console.setup()
    try:
        reader.start()
        # Wake up the prompt
        transport.port.write(b"\r")
        console_to_serial(transport.port, console, stop)
    finally:
        stop.set()
        if reader.is_alive():
            reader.join(READER_JOIN_TIMEOUT)
        console.cleanup()
