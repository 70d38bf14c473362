"""Filesystem commands, each run on the board as a small snippet of MicroPython."""

S_IFDIR = 0x4000  # Directory bit in the type field returned by uos.ilistdir

CAT_READ_SIZE = 256

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def quote(path):
    """Return path as a double-quoted MicroPython string literal."""
    out = []
    for ch in path:
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\x{ord(ch):02x}")
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'


def cat(session, path, sink):
    """Stream the contents of a remote file to sink."""
    code = (
        f"with open({quote(path)}) as f:\n"
        " while True:\n"
        f"  b = f.read({CAT_READ_SIZE})\n"
        "  if not b:\n"
        "   break\n"
        "  print(b, end='')\n"
    )
    session.exec(code, sink)


def cd(session, path):
    session.exec(f"import uos\nuos.chdir({quote(path)})")


def ls(session):
    """List the current remote directory. Directory names end with '/'."""
    code = (
        "import uos\n"
        "for f in uos.ilistdir('.'):\n"
        f" print(f[0], end='/\\n' if f[1] & {S_IFDIR:#x} else '\\n')\n"
    )
    out = session.exec(code).decode("utf-8", errors="replace")
    return [name for name in out.split("\n") if name]


def mkdir(session, path):
    session.exec(f"import uos\nuos.mkdir({quote(path)})")


def rmdir(session, path):
    session.exec(f"import uos\nuos.rmdir({quote(path)})")


def rm(session, path):
    session.exec(f"import uos\nuos.remove({quote(path)})")


def pwd(session):
    out = session.exec("import uos\nprint(uos.getcwd(), end='')")
    return out.decode("utf-8", errors="replace")
