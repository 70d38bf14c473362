"""Read from a transport until an exact terminator shows up."""

EOT = b"\x04"


def read_until(transport, ending: bytes, sink=None) -> bytes:
    """Read one byte at a time until the bytes read so far end with `ending`.

    Without a sink everything read is accumulated and returned, terminator
    included. With a sink (anything with write(bytes)) each byte is passed
    on as soon as it arrives, except EOT which is never forwarded; only the
    last len(ending) bytes are kept for matching and that tail is returned.
    """
    if not ending:
        raise ValueError("ending must not be empty")
    data = bytearray()
    while True:
        b = transport.read(1)
        data += b
        if sink is not None:
            if b != EOT:
                sink.write(b)
            if len(data) > len(ending):
                del data[:-len(ending)]
        if data.endswith(ending):
            return bytes(data)
