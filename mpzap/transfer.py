"""Copy files to and from the board in base64 chunks over the raw REPL."""
from pathlib import Path
import base64
import binascii
import logging

from .config import DEFAULT_CHUNK_SIZE
from .errors import ProtocolError
from .fs import quote

log = logging.getLogger(__name__)


def get(session, local_dst, remote_src, chunk_size=DEFAULT_CHUNK_SIZE):
    """Download remote_src into local_dst. Returns the number of bytes copied."""
    total = 0
    # Truncate only once the remote file opened, so a bad name keeps local data.
    with open(local_dst, "ab") as f:
        session.exec(
            "from ubinascii import b2a_base64\n"
            f"f=open({quote(remote_src)},'rb')\n"
        )
        f.truncate(0)
        read_chunk = (
            f"d=str(b2a_base64(f.read({chunk_size})),'ascii')\n"
            "print(d.strip(),end='')\n"
        )
        while True:
            encoded = session.exec(read_chunk)
            try:
                chunk = base64.b64decode(encoded, validate=True)
            except binascii.Error as e:
                raise ProtocolError(f"bad base64 chunk from board: {encoded[:40]!r}...") from e
            if not chunk:
                break
            f.write(chunk)
            total += len(chunk)
            log.debug("got %d bytes of %s (%d total)", len(chunk), remote_src, total)
    return total


def put(session, remote_dst, local_src, chunk_size=DEFAULT_CHUNK_SIZE):
    """Upload local_src to remote_dst. Returns the number of bytes copied."""
    total = 0
    with open(local_src, "rb") as f:
        session.exec(
            "from ubinascii import a2b_base64\n"
            f"f=open({quote(remote_dst)},'wb')\n"
            "w=lambda x:f.write(a2b_base64(x))\n"
        )
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            # The base64 alphabet has no quotes or backslashes, no escaping needed.
            encoded = base64.b64encode(chunk).decode("ascii")
            session.exec(f'w("{encoded}")\n')
            total += len(chunk)
            log.debug("put %d bytes of %s (%d total)", len(chunk), remote_dst, total)
    session.exec("f.close()")
    return total


def upload(session, local_dir=".", chunk_size=DEFAULT_CHUNK_SIZE, echo=print):
    """Put every regular file of local_dir into the board's current directory."""
    uploaded = []
    for path in sorted(Path(local_dir).iterdir()):
        if not path.is_file():
            continue
        if echo:
            echo(f"Uploading {path.name} ...")
        put(session, path.name, path, chunk_size)
        uploaded.append(path.name)
    return uploaded
