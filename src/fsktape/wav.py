"""WAV capture loading via soundfile."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import soundfile as sf

from .errors import SignalReadError
from .samples import RawSamples, SampleEncoding

logger = logging.getLogger(__name__)

# soundfile subtype -> (encoding, read dtype, right shift back to native width)
SUBTYPE_ENCODINGS = {
    "PCM_U8": (SampleEncoding.INT8, "int16", 8),
    "PCM_S8": (SampleEncoding.INT8, "int16", 8),
    "PCM_16": (SampleEncoding.INT16, "int16", 0),
    "PCM_24": (SampleEncoding.INT24, "int32", 8),
    "FLOAT": (SampleEncoding.FLOAT32, "float32", 0),
}


@dataclass(frozen=True)
class WavCapture:
    path: Path
    channel_count: int
    sample_rate: int
    raw: RawSamples
    subtype: str = ""

    @property
    def duration_seconds(self) -> float:
        if not self.sample_rate:
            return 0.0
        return len(self.raw) / self.sample_rate


def _to_native(data: np.ndarray, encoding: SampleEncoding, shift: int) -> np.ndarray:
    if encoding is SampleEncoding.FLOAT32:
        return data.astype(np.float32)
    values = data.astype(np.int32) >> shift
    if encoding is SampleEncoding.INT8:
        # soundfile delivers 8-bit data as signed; WAV stores it unsigned.
        values = values + 128
    return values


def read_wav(path: Path | str, channel: int = 0) -> WavCapture:
    """
    Load one channel of a WAV recording as tagged raw samples.

    Raises SignalReadError when the file cannot be read, uses an unsupported
    sample format, or lacks the requested channel.
    """

    path = Path(path)
    try:
        info = sf.info(str(path))
    except (OSError, RuntimeError) as exc:
        raise SignalReadError(f"cannot read {path}: {exc}") from exc

    mapping = SUBTYPE_ENCODINGS.get(info.subtype)
    if mapping is None:
        raise SignalReadError(f"{path}: unsupported sample format {info.subtype}")
    encoding, dtype, shift = mapping
    if not 0 <= channel < info.channels:
        raise SignalReadError(
            f"{path}: channel {channel} requested but file has {info.channels}"
        )

    logger.info("Channel count: %d", info.channels)
    logger.info("Sampling rate: %dHz", info.samplerate)

    if info.frames == 0:
        raw = RawSamples.empty()
    else:
        try:
            data, _ = sf.read(str(path), dtype=dtype, always_2d=True)
        except (OSError, RuntimeError) as exc:
            raise SignalReadError(f"cannot read {path}: {exc}") from exc
        raw = RawSamples(
            encoding=encoding, data=_to_native(data[:, channel], encoding, shift)
        )

    return WavCapture(
        path=path,
        channel_count=info.channels,
        sample_rate=int(info.samplerate),
        raw=raw,
        subtype=info.subtype,
    )
