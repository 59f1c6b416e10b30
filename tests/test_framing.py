import pytest

from conftest import frame_bytes
from fsktape.framing import DataChunk, FrameAssembler, assemble_byte, extract_chunks
from fsktape.symbols import GapMarker


def test_full_chunk_from_1320_bits() -> None:
    payload = bytes((i * 7) & 0xFF for i in range(132))
    bits = frame_bytes(payload)
    assert len(bits) == 1320

    chunks = extract_chunks(bits)
    assert chunks == [DataChunk(irg_duration_ms=0, payload=payload)]


def test_bytes_assemble_lsb_first() -> None:
    assert assemble_byte([1, 0, 0, 0, 0, 0, 0, 0]) == 0x01
    assert assemble_byte([0, 0, 0, 0, 0, 0, 0, 1]) == 0x80
    chunks = extract_chunks(frame_bytes(b"\x01\xa5"), chunk_size=2)
    assert chunks[0].payload == b"\x01\xa5"


def test_idle_ones_are_skipped() -> None:
    bits = [1, 1, 1] + frame_bytes(b"\x42")
    assert extract_chunks(bits, chunk_size=1)[0].payload == b"\x42"


def test_gap_marker_tags_next_chunk_only() -> None:
    symbols = (
        [GapMarker(1500)]
        + frame_bytes(b"ab")
        + [1, 1]
        + frame_bytes(b"cd")
        + [GapMarker(800), 1]
        + frame_bytes(b"ef")
    )
    chunks = extract_chunks(symbols, chunk_size=2)
    assert [(c.irg_duration_ms, c.payload) for c in chunks] == [
        (1500, b"ab"),
        (0, b"cd"),
        (800, b"ef"),
    ]


def test_all_but_last_chunk_are_full() -> None:
    payload = bytes(range(256)) + bytes(range(100))
    bits = []
    for start in range(0, len(payload), 132):
        bits += frame_bytes(payload[start : start + 132]) + [1]
    chunks = extract_chunks(bits)
    assert [len(c) for c in chunks] == [132, 132, 92]
    assert b"".join(c.payload for c in chunks) == payload


def test_partial_tail_can_be_dropped() -> None:
    bits = frame_bytes(b"xyz")
    assert extract_chunks(bits, chunk_size=4)[0].payload == b"xyz"
    assert extract_chunks(bits, chunk_size=4, keep_partial=False) == []


def test_trailing_byte_completed_with_ones() -> None:
    # A start bit and two low data bits, the rest lost in a trailing carrier.
    bits = frame_bytes(b"xyz") + [0, 0, 1]
    assert extract_chunks(bits, chunk_size=5)[0].payload == b"xyz\xfe"
    assert extract_chunks(bits, chunk_size=4)[0].payload == b"xyz\xfe"


def test_gap_inside_data_abandons_partial_chunk() -> None:
    assembler = FrameAssembler(chunk_size=4)
    out = []
    for symbol in frame_bytes(b"12") + [GapMarker(300)] + frame_bytes(b"wxyz"):
        chunk = assembler.feed(symbol)
        if chunk is not None:
            out.append(chunk)
    assert assembler.finish() is None
    assert assembler.abandoned_chunks == 1
    assert out == [DataChunk(irg_duration_ms=300, payload=b"wxyz")]


def test_datachunk_rejects_wide_irg() -> None:
    with pytest.raises(ValueError):
        DataChunk(irg_duration_ms=0x10000, payload=b"")


def test_chunk_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        extract_chunks([], chunk_size=0)


def test_stop_bit_swallowed_by_gap_still_closes_chunk() -> None:
    symbols = frame_bytes(b"ab")[:-1] + [GapMarker(900)] + frame_bytes(b"cd")
    chunks = extract_chunks(symbols, chunk_size=2)
    assert [(c.irg_duration_ms, c.payload) for c in chunks] == [
        (0, b"ab"),
        (900, b"cd"),
    ]


def test_missing_final_stop_bit_at_end_of_stream() -> None:
    assert extract_chunks(frame_bytes(b"ab")[:-1], chunk_size=2) == [
        DataChunk(irg_duration_ms=0, payload=b"ab")
    ]


def test_high_one_bits_swallowed_by_gap() -> None:
    for last in (0x80, 0xC0, 0xFF):
        framed = frame_bytes(bytes([0x61, last]))
        trailing_ones = 1 + bin(last).count("1")
        symbols = framed[:-trailing_ones] + [GapMarker(900)] + frame_bytes(b"cd")
        chunks = extract_chunks(symbols, chunk_size=2)
        assert [(c.irg_duration_ms, c.payload) for c in chunks] == [
            (0, bytes([0x61, last])),
            (900, b"cd"),
        ]


def test_gap_before_next_start_bit_abandons_chunk() -> None:
    # Slot 0 of the third byte: no byte in progress, the chunk is short.
    symbols = frame_bytes(b"ab") + [GapMarker(120)] + frame_bytes(b"cde")
    chunks = extract_chunks(symbols, chunk_size=3)
    assert chunks == [DataChunk(irg_duration_ms=120, payload=b"cde")]
