from __future__ import annotations

import importlib.util
import sys
from itertools import groupby
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

import numpy as np

SHORT = 8
LONG = 20


def repo_src_path() -> Path:
    """Return the repository's ``src`` directory."""

    return Path(__file__).resolve().parents[1] / "src"


def _ensure_repo_on_path() -> None:
    if importlib.util.find_spec("fsktape") is None:
        sys.path.insert(0, str(repo_src_path()))


_ensure_repo_on_path()


def synth_signal(lengths: Sequence[int]) -> Tuple[np.ndarray, List[int]]:
    """
    Build a normalized signal whose detected periods are exactly ``lengths``.

    Each period is a falling ramp followed by a two-sample upswing; the first
    sample of the upswing is where the period is registered. Returns the
    signal and the sample index of every period.
    """

    parts: List[np.ndarray] = [np.array([1.0])]
    positions: List[int] = []
    cursor = 0
    for idx, length in enumerate(lengths):
        parts.append(np.linspace(0.9, -1.0, length - 1))
        parts.append(np.array([-0.5, 1.0]))
        cursor += length if idx == 0 else length + 1
        positions.append(cursor)
    parts.append(np.array([1.0]))
    return np.concatenate(parts), positions


def bits_to_pulses(bits: Iterable[int], short: int = SHORT, long: int = LONG) -> List[int]:
    """Turn logical bits into pulse lengths, one run of cells at a time."""

    lengths: List[int] = []
    for bit, group in groupby(bits):
        count = len(list(group))
        if bit:
            lengths.extend([short] * round(count * 8.45))
        else:
            lengths.extend([long] * round(count * 6.5))
    return lengths


def frame_bytes(payload: bytes) -> List[int]:
    """Serialize bytes as start bit, eight data bits LSB first, stop bit."""

    bits: List[int] = []
    for value in payload:
        bits.append(0)
        bits.extend((value >> pos) & 1 for pos in range(8))
        bits.append(1)
    return bits


def tape_lengths(*payloads: bytes, leader: int = 20, trailer: int = 2) -> List[int]:
    """Pulse lengths for blocks of framed bytes, each behind a run of 1s."""

    bits: List[int] = []
    for payload in payloads:
        bits += [1] * leader + frame_bytes(payload)
    bits += [1] * trailer
    return bits_to_pulses(bits)


def gap_spans(lengths: Sequence[int], min_pulses: int = 100) -> List[Tuple[int, int]]:
    """(start, end) period indices bracketing each long run of short pulses.

    ``start`` is the long pulse before the run, or -1 at the recording start;
    ``end`` is the long pulse that closes it.
    """

    spans: List[Tuple[int, int]] = []
    last_long = -1
    streak = 0
    for idx, length in enumerate(lengths):
        if length == SHORT:
            streak += 1
            continue
        if streak > min_pulses:
            spans.append((last_long, idx))
        streak = 0
        last_long = idx
    return spans
