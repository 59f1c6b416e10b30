"""
Top-level package for cassette FSK demodulation.

Turns WAV recordings of frequency-shift-keyed tape data into framed data
chunks and writes them out as tape images.
"""

from .errors import (
    DegenerateSignalError,
    FlatSignalError,
    FskTapeError,
    InsufficientPeriodsError,
    SignalReadError,
)
from .framing import DataChunk, FrameAssembler, extract_chunks
from .pipeline import DemodParams, DemodResult, demodulate
from .pulses import Period, PulseTracker, detect_periods, estimate_threshold
from .samples import RawSamples, SampleEncoding, normalize_samples
from .symbols import (
    GapDetector,
    GapMarker,
    RunLengthCollapser,
    collapse_runs,
    detect_gaps,
)
from .tapeimage import (
    TaggedBlock,
    encode_chunked,
    encode_flat,
    encode_tagged,
    pack_bits,
    write_image,
)
from .wav import WavCapture, read_wav

__all__ = [
    "__version__",
    "FskTapeError",
    "SignalReadError",
    "DegenerateSignalError",
    "FlatSignalError",
    "InsufficientPeriodsError",
    "SampleEncoding",
    "RawSamples",
    "normalize_samples",
    "Period",
    "PulseTracker",
    "detect_periods",
    "estimate_threshold",
    "GapMarker",
    "GapDetector",
    "detect_gaps",
    "RunLengthCollapser",
    "collapse_runs",
    "DataChunk",
    "FrameAssembler",
    "extract_chunks",
    "DemodParams",
    "DemodResult",
    "demodulate",
    "TaggedBlock",
    "pack_bits",
    "encode_flat",
    "encode_chunked",
    "encode_tagged",
    "write_image",
    "WavCapture",
    "read_wav",
]

__version__ = "0.1.0"
