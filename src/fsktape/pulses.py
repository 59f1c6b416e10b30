"""
Pulse period detection and short/long threshold estimation.

A pulse is registered at each rising sample (one that is larger than its
predecessor). Consecutive rising samples inside one upswing are too close
together to count, so in practice the accepted period runs from the top of
one upswing to the first rise after the following trough. The amplitude
drop between those two points must exceed a noise threshold.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from .errors import InsufficientPeriodsError

logger = logging.getLogger(__name__)

DEFAULT_NOISE_THRESHOLD = 0.05
MIN_PERIOD_SAMPLES = 5
MAX_PERIOD_SAMPLES = 50
MIN_PERIODS_FOR_THRESHOLD = 8


@dataclass(frozen=True)
class Period:
    length_samples: int
    position: int


@dataclass
class PulseTracker:
    """
    Rising-point state machine.

    ``rise`` must be called with strictly increasing indices, once for every
    sample that is larger than the one before it.
    """

    last_max_index: int = 0
    last_max_amplitude: float = 0.0
    noise_threshold: float = DEFAULT_NOISE_THRESHOLD
    min_period: int = MIN_PERIOD_SAMPLES
    max_period: int = MAX_PERIOD_SAMPLES
    rejected_length: int = 0
    rejected_drop: int = 0

    def rise(self, index: int, amplitude: float) -> Optional[Period]:
        length = index - self.last_max_index
        self.last_max_index = index
        if length < self.min_period or length > self.max_period:
            self.last_max_amplitude = amplitude
            self.rejected_length += 1
            return None

        drop = self.last_max_amplitude - amplitude
        self.last_max_amplitude = amplitude
        if drop < self.noise_threshold:
            self.rejected_drop += 1
            return None

        return Period(length_samples=length, position=index)


def rising_indices(samples: np.ndarray) -> np.ndarray:
    """
    Indices ``1 <= i <= n - 2`` where ``samples[i] > samples[i - 1]``.

    The final sample is never inspected, and the first one only seeds state.
    """

    if len(samples) < 3:
        return np.zeros(0, dtype=np.int64)
    body = samples[1:-1]
    return np.flatnonzero(body > samples[:-2]) + 1


def detect_periods(
    samples: Sequence[float] | np.ndarray,
    threshold: float = DEFAULT_NOISE_THRESHOLD,
    min_period: int = MIN_PERIOD_SAMPLES,
    max_period: int = MAX_PERIOD_SAMPLES,
) -> List[Period]:
    """
    Scan normalized amplitudes for pulse periods.

    ``threshold`` is the minimum amplitude drop between consecutive accepted
    pulses; it is unrelated to the short/long classification threshold.
    """

    values = np.asarray(samples, dtype=np.float64)
    if len(values) < 2:
        logger.info("Signal too short for pulse detection (%d samples)", len(values))
        return []

    tracker = PulseTracker(
        last_max_index=0,
        last_max_amplitude=float(values[0]),
        noise_threshold=threshold,
        min_period=min_period,
        max_period=max_period,
    )
    indices = rising_indices(values)
    amplitudes = values[indices].tolist()

    periods: List[Period] = []
    for index, amplitude in zip(indices.tolist(), amplitudes, strict=True):
        period = tracker.rise(index, amplitude)
        if period is not None:
            periods.append(period)

    logger.info("Number of pulses in the signal: %d", len(periods))
    logger.debug(
        "Rejected rises: %d out of length range, %d below noise threshold",
        tracker.rejected_length,
        tracker.rejected_drop,
    )
    return periods


def estimate_threshold(lengths: Sequence[int]) -> float:
    """
    Midpoint between the lower and upper octile of the period lengths.

    Short and long pulses form two populations; skipping one octile at each
    end keeps stray outliers from moving the midpoint.
    """

    count = len(lengths)
    if count < MIN_PERIODS_FOR_THRESHOLD:
        raise InsufficientPeriodsError(count, MIN_PERIODS_FOR_THRESHOLD)

    ordered = sorted(lengths)
    octile = count // 8
    threshold = (ordered[octile] + ordered[count - octile]) / 2.0
    logger.info("Estimated short/long threshold: %.2f samples", threshold)
    return threshold


def period_histogram(periods: Sequence[Period]) -> Dict[int, int]:
    counts = Counter(p.length_samples for p in periods)
    return dict(sorted(counts.items()))
