"""
Tape image serialization for extracted data chunks.

Three layouts are supported:

* flat: chunk payloads back to back;
* chunked: each chunk prefixed by its IRG duration as a big-endian 16-bit
  value in milliseconds;
* tagged: metadata blocks (4-byte ASCII tag, big-endian 32-bit length,
  payload) followed by the chunked records.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from .framing import DataChunk
from .symbols import GapMarker, Symbol

IMAGE_FORMATS = ("chunked", "flat", "tagged")


def pack_bits(bits: Iterable[int]) -> bytes:
    """Pack bits MSB-first; the last byte is padded with zero bits."""

    out = bytearray()
    value = 0
    count = 0
    for bit in bits:
        value = (value << 1) | (1 if bit else 0)
        count += 1
        if count == 8:
            out.append(value)
            value = 0
            count = 0
    if count:
        out.append(value << (8 - count))
    return bytes(out)


def encode_flat(chunks: Iterable[DataChunk]) -> bytes:
    return b"".join(chunk.payload for chunk in chunks)


def encode_chunk(chunk: DataChunk) -> bytes:
    return struct.pack(">H", chunk.irg_duration_ms) + chunk.payload


def encode_chunked(chunks: Iterable[DataChunk]) -> bytes:
    return b"".join(encode_chunk(chunk) for chunk in chunks)


@dataclass(frozen=True)
class TaggedBlock:
    tag: str
    payload: bytes

    def __post_init__(self) -> None:
        if len(self.tag) != 4 or not self.tag.isascii():
            raise ValueError(f"block tag must be 4 ASCII characters, got {self.tag!r}")

    def encode(self) -> bytes:
        return self.tag.encode("ascii") + struct.pack(">I", len(self.payload)) + self.payload


def encode_tagged(
    chunks: Iterable[DataChunk], blocks: Sequence[TaggedBlock] = ()
) -> bytes:
    header = b"".join(block.encode() for block in blocks)
    return header + encode_chunked(chunks)


def encode_image(
    chunks: Sequence[DataChunk],
    image_format: str = "chunked",
    blocks: Sequence[TaggedBlock] = (),
) -> bytes:
    if image_format == "chunked":
        return encode_chunked(chunks)
    if image_format == "flat":
        return encode_flat(chunks)
    if image_format == "tagged":
        return encode_tagged(chunks, blocks)
    raise ValueError(f"unknown image format {image_format!r}")


def write_image(path: Path | str, data: bytes) -> int:
    """Write an encoded image in one pass; OSError propagates to the caller."""

    with open(path, "wb") as fh:
        fh.write(data)
    return len(data)


def render_bits(symbols: Iterable[Symbol]) -> str:
    """Render a symbol stream as '0'/'1' text with gap markers on own lines."""

    parts: list[str] = []
    for symbol in symbols:
        if isinstance(symbol, GapMarker):
            parts.append(f"\n[gap {symbol.duration_ms} ms]\n")
        else:
            parts.append("1" if symbol else "0")
    return "".join(parts)
