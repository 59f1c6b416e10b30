"""
Start/stop-bit framing of the reconstructed bit stream into data chunks.

Bytes are serialized as ten bit slots: a start bit (0), eight data bits
least-significant first, and a stop bit (1). A data region opens on the
first 0 bit seen while idle and then consumes whole ten-slot bytes until a
chunk of ``chunk_size`` bytes is complete.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .symbols import GapMarker, Symbol

logger = logging.getLogger(__name__)

CHUNK_SIZE = 132
SLOTS_PER_BYTE = 10
START_SLOT = 0
STOP_SLOT = SLOTS_PER_BYTE - 1


@dataclass(frozen=True)
class DataChunk:
    irg_duration_ms: int
    payload: bytes

    def __post_init__(self) -> None:
        if not 0 <= self.irg_duration_ms <= 0xFFFF:
            raise ValueError(
                f"IRG duration {self.irg_duration_ms} ms does not fit 16 bits"
            )

    def __len__(self) -> int:
        return len(self.payload)


def assemble_byte(data_slots: Iterable[int]) -> int:
    """Build a byte from data bits received least-significant first."""

    value = 0
    for pos, bit in enumerate(data_slots):
        value |= (1 if bit else 0) << pos
    return value


@dataclass
class FrameAssembler:
    chunk_size: int = CHUNK_SIZE
    in_data: bool = False
    slot: int = 0
    byte_bits: List[int] = field(default_factory=list)
    chunk_bytes: bytearray = field(default_factory=bytearray)
    pending_irg: Optional[int] = None
    abandoned_chunks: int = 0

    def feed(self, symbol: Symbol) -> Optional[DataChunk]:
        if isinstance(symbol, GapMarker):
            return self._gap(symbol)

        if not self.in_data:
            if symbol == 0:
                self.in_data = True
                self.slot = 1
            return None

        if self.slot not in (START_SLOT, STOP_SLOT):
            self.byte_bits.append(symbol)
        self.slot += 1
        if self.slot < SLOTS_PER_BYTE:
            return None
        return self._close_byte()

    def _fill_byte(self) -> Optional[DataChunk]:
        """
        Close a byte whose trailing 1 bits merged into a dropped run.

        Only 1s can be lost that way: the high data bits and the stop bit
        join the following gap or carrier, and the whole run is discarded.
        """

        missing = STOP_SLOT - self.slot
        logger.debug("Closing byte with %d trailing data bits assumed 1", missing)
        self.byte_bits.extend([1] * missing)
        return self._close_byte()

    def _gap(self, marker: GapMarker) -> Optional[DataChunk]:
        chunk = None
        if self.in_data and self.slot > START_SLOT:
            chunk = self._fill_byte()
        if self.in_data:
            self.abandoned_chunks += 1
            logger.warning(
                "Gap of %d ms inside a data region, abandoning %d partial bytes",
                marker.duration_ms,
                len(self.chunk_bytes),
            )
            self._reset()
        self.pending_irg = marker.duration_ms
        return chunk

    def _close_byte(self) -> Optional[DataChunk]:
        self.chunk_bytes.append(assemble_byte(self.byte_bits))
        self.byte_bits = []
        self.slot = 0
        if len(self.chunk_bytes) < self.chunk_size:
            return None
        return self._emit()

    def finish(self, keep_partial: bool = True) -> Optional[DataChunk]:
        if self.in_data and self.slot > START_SLOT:
            chunk = self._fill_byte()
            if chunk is not None:
                return chunk
        if not self.chunk_bytes:
            self._reset()
            return None
        if not keep_partial:
            logger.warning("Dropping trailing partial chunk of %d bytes", len(self.chunk_bytes))
            self._reset()
            return None
        logger.warning(
            "Trailing chunk holds %d of %d bytes", len(self.chunk_bytes), self.chunk_size
        )
        return self._emit()

    def _emit(self) -> DataChunk:
        chunk = DataChunk(
            irg_duration_ms=self.pending_irg or 0,
            payload=bytes(self.chunk_bytes),
        )
        self.pending_irg = None
        self._reset()
        return chunk

    def _reset(self) -> None:
        self.in_data = False
        self.slot = 0
        self.byte_bits = []
        self.chunk_bytes = bytearray()


def extract_chunks(
    symbols: Iterable[Symbol],
    chunk_size: int = CHUNK_SIZE,
    keep_partial: bool = True,
) -> List[DataChunk]:
    """
    Frame a reconstructed symbol stream into DataChunks, in stream order.

    Each chunk carries the duration of the gap marker seen before it began
    (0 if none). A trailing chunk shorter than ``chunk_size`` is kept only
    when ``keep_partial`` is set.
    """

    if chunk_size <= 0:
        raise ValueError(f"chunk size must be positive, got {chunk_size}")

    assembler = FrameAssembler(chunk_size=chunk_size)
    chunks: List[DataChunk] = []
    for symbol in symbols:
        chunk = assembler.feed(symbol)
        if chunk is not None:
            chunks.append(chunk)
    tail = assembler.finish(keep_partial=keep_partial)
    if tail is not None:
        chunks.append(tail)
    logger.info("Extracted %d data chunks", len(chunks))
    return chunks
