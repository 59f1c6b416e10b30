"""End-to-end demodulation: raw samples to framed data chunks."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from .framing import CHUNK_SIZE, DataChunk, extract_chunks
from .pulses import (
    DEFAULT_NOISE_THRESHOLD,
    MAX_PERIOD_SAMPLES,
    MIN_PERIOD_SAMPLES,
    Period,
    detect_periods,
    estimate_threshold,
)
from .samples import RawSamples, normalize_samples
from .symbols import (
    GAP_MIN_PULSES,
    MAX_RUN_BITS,
    ONE_CELL_PULSES,
    ZERO_CELL_PULSES,
    Symbol,
    collapse_runs,
    detect_gaps,
    gap_markers,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DemodParams:
    noise_threshold: float = DEFAULT_NOISE_THRESHOLD
    min_period: int = MIN_PERIOD_SAMPLES
    max_period: int = MAX_PERIOD_SAMPLES
    gap_min_pulses: int = GAP_MIN_PULSES
    zero_cell: float = ZERO_CELL_PULSES
    one_cell: float = ONE_CELL_PULSES
    max_run_bits: int = MAX_RUN_BITS
    chunk_size: int = CHUNK_SIZE
    keep_partial: bool = True


@dataclass(frozen=True)
class DemodResult:
    sample_count: int
    periods: List[Period]
    threshold: float
    pulse_symbols: List[Symbol]
    symbols: List[Symbol]
    chunks: List[DataChunk]

    @property
    def gap_durations_ms(self) -> List[int]:
        return [marker.duration_ms for marker in gap_markers(self.symbols)]


def demodulate(
    raw: RawSamples, sample_rate: int, params: DemodParams | None = None
) -> DemodResult:
    """
    Run every pipeline stage over one channel of samples.

    Raises FlatSignalError for constant integer input and
    InsufficientPeriodsError when fewer than eight pulses are found.
    """

    params = params or DemodParams()
    samples = normalize_samples(raw)
    periods = detect_periods(
        samples,
        threshold=params.noise_threshold,
        min_period=params.min_period,
        max_period=params.max_period,
    )
    threshold = estimate_threshold([p.length_samples for p in periods])
    pulse_symbols = detect_gaps(
        periods, threshold, sample_rate, gap_min_pulses=params.gap_min_pulses
    )
    symbols = collapse_runs(
        pulse_symbols,
        zero_cell=params.zero_cell,
        one_cell=params.one_cell,
        max_run_bits=params.max_run_bits,
    )
    chunks = extract_chunks(
        symbols, chunk_size=params.chunk_size, keep_partial=params.keep_partial
    )
    logger.debug(
        "Pipeline: %d samples -> %d periods -> %d symbols -> %d chunks",
        len(samples),
        len(periods),
        len(symbols),
        len(chunks),
    )
    return DemodResult(
        sample_count=len(samples),
        periods=periods,
        threshold=threshold,
        pulse_symbols=pulse_symbols,
        symbols=symbols,
        chunks=chunks,
    )
