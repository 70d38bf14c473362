from __future__ import annotations

import binascii
import builtins
import contextlib
import io
import os
import sys
import traceback
import types
from pathlib import Path

import pytest

from mpzap.repl import Session
from mpzap.transport import Transport

BANNER = b"raw REPL; CTRL-B to exit\r\n>"
FRIENDLY_PROMPT = b"\r\n>>> "


class FakeSys(types.ModuleType):
    implementation = types.SimpleNamespace(name="micropython")

    def __getattr__(self, name):
        return getattr(sys, name)


class FakeUos:
    """The few uos calls the snippets use, rooted in a local directory."""

    def __init__(self, board: "FakeBoard"):
        self.board = board

    def chdir(self, path):
        target = self.board.resolve(path)
        if not target.is_dir():
            raise OSError(2, "ENOENT")
        rel = target.relative_to(self.board.root).as_posix()
        self.board.cwd = "/" if rel == "." else "/" + rel

    def getcwd(self):
        return self.board.cwd

    def mkdir(self, path):
        os.mkdir(self.board.resolve(path))

    def rmdir(self, path):
        os.rmdir(self.board.resolve(path))

    def remove(self, path):
        os.remove(self.board.resolve(path))

    def ilistdir(self, path="."):
        for entry in sorted(self.board.resolve(path).iterdir()):
            yield (entry.name, 0x4000 if entry.is_dir() else 0x8000, 0)


class FakeBoard:
    """Speaks the MicroPython raw REPL over a pyserial-like interface.

    Snippets are executed by CPython against a temporary directory standing in
    for the board's filesystem. Output is queued synchronously on write, so a
    read that finds nothing queued behaves like a serial timeout.
    """

    port = "fake://board"

    def __init__(self, root: Path):
        self.root = root
        self.cwd = "/"
        self.raw = False
        self.code = bytearray()
        self.out = bytearray()
        self.snippets: list[bytes] = []
        self.received = bytearray()
        self.ack = b"OK"
        self.mute = False
        self.closed = False
        self.reset_namespace()

    # pyserial interface

    def write(self, data):
        self.received += data
        for b in data:
            self._feed(bytes([b]))
        return len(data)

    def read(self, size=1):
        data = bytes(self.out[:size])
        del self.out[:size]
        return data

    @property
    def in_waiting(self):
        return len(self.out)

    def flush(self):
        pass

    def close(self):
        self.closed = True

    # board side

    def resolve(self, path) -> Path:
        path = str(path)
        base = path if path.startswith("/") else self.cwd.rstrip("/") + "/" + path
        return self.root / base.lstrip("/")

    def reset_namespace(self):
        modules = {"ubinascii": binascii, "uos": FakeUos(self), "sys": FakeSys("sys")}

        def fake_import(name, globals=None, locals=None, fromlist=(), level=0):
            if name in modules:
                return modules[name]
            return builtins.__import__(name, globals, locals, fromlist, level)

        def fake_open(path, mode="r"):
            return open(self.resolve(path), mode)

        fake_builtins = dict(vars(builtins))
        fake_builtins["__import__"] = fake_import
        fake_builtins["open"] = fake_open
        self.namespace = {"__builtins__": fake_builtins}

    def emit(self, data: bytes):
        if not self.mute:
            self.out += data

    def _feed(self, b: bytes):
        if b == b"\x03":
            self.code.clear()
            if not self.raw:
                self.emit(FRIENDLY_PROMPT)
        elif b == b"\x01":
            self.raw = True
            self.code.clear()
            self.emit(b"\r\n" + BANNER)
        elif b == b"\x02":
            self.raw = False
            self.code.clear()
            self.emit(b"\r\nMicroPython v1.22.0 on fake; fakeboard\r\n>>> ")
        elif b == b"\x04" and self.raw:
            if self.code:
                self.run(bytes(self.code))
                self.code.clear()
            else:
                self.soft_reboot()
        elif self.raw:
            self.code += b
        elif b == b"\r":
            self.emit(FRIENDLY_PROMPT)

    def soft_reboot(self):
        self.cwd = "/"
        self.reset_namespace()
        self.emit(b"OK\r\nMPY: soft reboot\r\n" + BANNER)

    def run(self, code: bytes):
        self.snippets.append(code)
        self.emit(self.ack)
        if self.ack != b"OK":
            return
        stdout = io.StringIO()
        stderr = ""
        with contextlib.redirect_stdout(stdout):
            try:
                exec(code.decode("utf-8"), self.namespace)
            except Exception as e:
                stderr = "Traceback (most recent call last):\n" + "".join(
                    traceback.format_exception_only(type(e), e)
                )
        self.emit(stdout.getvalue().encode("utf-8") + b"\x04" + stderr.encode("utf-8") + b"\x04>")


@pytest.fixture
def board(tmp_path):
    root = tmp_path / "board"
    root.mkdir()
    return FakeBoard(root)


@pytest.fixture
def session(board):
    return Session(Transport(board))


@pytest.fixture
def raw_session(session):
    session.enter_raw()
    return session
