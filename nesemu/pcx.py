"""PCX snapshots of 8-bit indexed bitmaps."""

from __future__ import annotations

import os
import struct
from collections.abc import Sequence

from .video import Bitmap

_HEADER = struct.Struct("<4B6H48s2B4H54s")
_MAX_RUN = 0x3F


def _header(width: int, height: int) -> bytes:
    return _HEADER.pack(
        10,  # manufacturer
        5,  # version
        1,  # RLE encoding
        8,  # bits per pixel
        0,
        0,
        width - 1,
        height - 1,
        0,
        0,
        bytes(48),
        0,
        1,  # planes
        width,
        1,  # palette info
        width - 1,
        height - 1,
        bytes(54),
    )


def _encode_row(row: bytes) -> bytearray:
    out = bytearray()
    pos = 0
    width = len(row)
    while pos < width:
        value = row[pos]
        run = 1
        while pos + run < width and run < _MAX_RUN and row[pos + run] == value:
            run += 1
        pos += run
        if run > 1 or value & 0xC0 == 0xC0:
            out += bytes((0xC0 | run, value))
        else:
            out.append(value)
    return out


def encode_pcx(bitmap: Bitmap, palette: Sequence[tuple[int, int, int]]) -> bytes:
    """Encode ``bitmap`` as an RLE PCX image with a 256-colour palette."""
    if len(palette) < 256:
        raise ValueError("PCX palette needs 256 entries")
    width, height = bitmap.width, bitmap.height
    out = bytearray(_header(width, height))
    for y in range(height):
        start = y * bitmap.pitch
        out += _encode_row(bytes(bitmap.data[start:start + width]))
    out.append(0x0C)  # 256 colour palette follows
    for r, g, b in palette[:256]:
        out += bytes((r & 0xFF, g & 0xFF, b & 0xFF))
    return bytes(out)


def write_pcx(
    filename: str | os.PathLike[str], bitmap: Bitmap, palette: Sequence[tuple[int, int, int]]
) -> None:
    """Write ``bitmap`` to ``filename`` as a PCX file."""
    data = encode_pcx(bitmap, palette)
    with open(filename, "wb") as fp:
        fp.write(data)