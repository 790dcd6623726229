"""
Helpers that move bytes around one chunk at a time
"""
from typing import BinaryIO, Iterable, Iterator


def rechunk(stream: Iterable[bytes], chunk_size: int) -> Iterator[bytes]:
    """Re-slice arbitrary byte pieces into chunks of exactly chunk_size"""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    buf = bytearray()
    for piece in stream:
        if not piece:
            continue
        buf.extend(piece)
        while len(buf) >= chunk_size:
            yield bytes(buf[:chunk_size])
            del buf[:chunk_size]
    if buf:
        yield bytes(buf)


def iter_file(fp: BinaryIO, chunk_size: int) -> Iterator[bytes]:
    """Lazily read a binary file object"""
    return iter(lambda: fp.read(chunk_size), b"")
