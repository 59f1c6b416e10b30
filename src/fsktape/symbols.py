"""
Bit symbol reconstruction from classified pulse periods.

Each logical bit is recorded as several physical pulses: short pulses for a
1 and long pulses for a 0, with different nominal pulse counts per bit cell.
Long uninterrupted runs of short pulses are inter-record gaps (IRGs); they
are reported as GapMarker symbols carrying the gap duration.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Union

from .pulses import Period

logger = logging.getLogger(__name__)

GAP_MIN_PULSES = 100
ZERO_CELL_PULSES = 6.5
ONE_CELL_PULSES = 8.45
MAX_RUN_BITS = 10
MAX_GAP_MS = 0xFFFF


@dataclass(frozen=True)
class GapMarker:
    duration_ms: int


Symbol = Union[int, GapMarker]


def classify_period(period: Period, threshold: float) -> int:
    """Short pulse -> 1, long pulse -> 0."""

    return 1 if period.length_samples <= threshold else 0


@dataclass
class GapDetector:
    threshold: float
    sample_rate: int
    gap_min_pulses: int = GAP_MIN_PULSES
    streak: int = 0
    streak_start: Optional[int] = None
    gaps: int = 0

    def feed(self, period: Period) -> List[Symbol]:
        bit = classify_period(period, self.threshold)
        if bit == 1:
            self.streak += 1
            return [1]

        out: List[Symbol] = []
        if self.streak > self.gap_min_pulses:
            start = self.streak_start if self.streak_start is not None else 0
            out.append(GapMarker(self._to_ms(period.position - start)))
            self.gaps += 1
        self.streak = 0
        self.streak_start = period.position
        out.append(0)
        return out

    def _to_ms(self, elapsed_samples: int) -> int:
        duration = elapsed_samples * 1000 // self.sample_rate
        if duration > MAX_GAP_MS:
            logger.warning(
                "Gap of %d ms does not fit 16 bits, clamping to %d",
                duration,
                MAX_GAP_MS,
            )
            return MAX_GAP_MS
        return duration


def detect_gaps(
    periods: Iterable[Period],
    threshold: float,
    sample_rate: int,
    gap_min_pulses: int = GAP_MIN_PULSES,
) -> List[Symbol]:
    """
    Classify periods into bits, inserting a GapMarker before the long pulse
    that ends a streak of more than ``gap_min_pulses`` short pulses.

    The gap duration spans from the long pulse preceding the streak (or the
    start of the recording) to the long pulse that ends it.
    """

    if sample_rate <= 0:
        raise ValueError(f"sample rate must be positive, got {sample_rate}")

    detector = GapDetector(
        threshold=threshold, sample_rate=sample_rate, gap_min_pulses=gap_min_pulses
    )
    symbols: List[Symbol] = []
    for period in periods:
        symbols.extend(detector.feed(period))
    logger.info("Detected %d inter-record gaps", detector.gaps)
    return symbols


def bits_in_run(run_length: int, bit: int, zero_cell: float, one_cell: float) -> int:
    cell = one_cell if bit else zero_cell
    return math.floor(run_length / cell + 0.5)


@dataclass
class RunLengthCollapser:
    zero_cell: float = ZERO_CELL_PULSES
    one_cell: float = ONE_CELL_PULSES
    max_run_bits: int = MAX_RUN_BITS
    last_bit: Optional[int] = None
    run_length: int = 0
    dropped_runs: int = 0

    def feed(self, symbol: Symbol) -> List[Symbol]:
        if isinstance(symbol, GapMarker):
            return [symbol]
        if symbol == self.last_bit:
            self.run_length += 1
            return []
        out = self.flush()
        self.last_bit = symbol
        self.run_length = 1
        return out

    def flush(self) -> List[Symbol]:
        if self.last_bit is None or not self.run_length:
            return []
        count = bits_in_run(self.run_length, self.last_bit, self.zero_cell, self.one_cell)
        run_length, self.run_length = self.run_length, 0
        if count > self.max_run_bits:
            self.dropped_runs += 1
            logger.debug(
                "Dropping run of %d pulses of bit %d (%d bits)",
                run_length,
                self.last_bit,
                count,
            )
            return []
        return [self.last_bit] * count


def collapse_runs(
    symbols: Iterable[Symbol],
    zero_cell: float = ZERO_CELL_PULSES,
    one_cell: float = ONE_CELL_PULSES,
    max_run_bits: int = MAX_RUN_BITS,
) -> List[Symbol]:
    """
    Quantize each run of identical pulse bits to a whole number of bit cells.

    Gap markers pass straight through and leave the surrounding run open.
    """

    collapser = RunLengthCollapser(
        zero_cell=zero_cell, one_cell=one_cell, max_run_bits=max_run_bits
    )
    out: List[Symbol] = []
    for symbol in symbols:
        out.extend(collapser.feed(symbol))
    out.extend(collapser.flush())
    if collapser.dropped_runs:
        logger.info("Dropped %d implausibly long runs", collapser.dropped_runs)
    return out


def data_bits(symbols: Sequence[Symbol]) -> List[int]:
    return [s for s in symbols if not isinstance(s, GapMarker)]


def gap_markers(symbols: Sequence[Symbol]) -> List[GapMarker]:
    return [s for s in symbols if isinstance(s, GapMarker)]
