"""
Raw PCM sample containers and amplitude normalization.

WAV recordings arrive as 8-bit unsigned, 16/24-bit signed or 32-bit float
samples. Integer data is stretched so that its minimum and maximum land on
-1.0 and +1.0; float data is assumed to be normalized already.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

import numpy as np

from .errors import FlatSignalError

logger = logging.getLogger(__name__)


class SampleEncoding(enum.Enum):
    INT8 = "int8"
    INT16 = "int16"
    INT24 = "int24"
    FLOAT32 = "float32"
    EMPTY = "empty"


# Inclusive value range per integer encoding. 8-bit WAV data is unsigned.
INTEGER_RANGES = {
    SampleEncoding.INT8: (0, 0xFF),
    SampleEncoding.INT16: (-(1 << 15), (1 << 15) - 1),
    SampleEncoding.INT24: (-(1 << 23), (1 << 23) - 1),
}


@dataclass(frozen=True)
class RawSamples:
    encoding: SampleEncoding
    data: np.ndarray

    def __len__(self) -> int:
        return len(self.data)

    @classmethod
    def empty(cls) -> "RawSamples":
        return cls(encoding=SampleEncoding.EMPTY, data=np.zeros(0, dtype=np.int32))


def _integer_to_float(data: np.ndarray, encoding: SampleEncoding) -> np.ndarray:
    low, high = INTEGER_RANGES[encoding]
    values = np.asarray(data, dtype=np.int64)
    if values.size == 0:
        return np.zeros(0, dtype=np.float64)

    min_val = int(values.min())
    max_val = int(values.max())
    logger.debug("%s samples: min=%d max=%d", encoding.value, min_val, max_val)
    if min_val < low or max_val > high:
        raise ValueError(
            f"{encoding.value} samples out of range [{low}, {high}]: "
            f"min={min_val} max={max_val}"
        )
    if max_val == min_val:
        raise FlatSignalError(
            f"{encoding.value} samples are constant ({min_val}); nothing to normalize"
        )

    span = float(max_val - min_val)
    return 2.0 * (values - min_val) / span - 1.0


def normalize_samples(raw: RawSamples) -> np.ndarray:
    """
    Convert a tagged raw sample array into float amplitudes in [-1, 1].

    Empty input yields an empty array. Constant integer input raises
    FlatSignalError because its range is zero.
    """

    if raw.encoding is SampleEncoding.EMPTY:
        logger.info("Empty sample array")
        return np.zeros(0, dtype=np.float64)

    if raw.encoding is SampleEncoding.FLOAT32:
        logger.info("32-bit float samples, no conversion required")
        return np.asarray(raw.data, dtype=np.float64)

    logger.info("%s samples, normalizing %d values", raw.encoding.value, len(raw))
    return _integer_to_float(raw.data, raw.encoding)
