"""Exception types raised by the demodulation pipeline."""

from __future__ import annotations


class FskTapeError(Exception):
    """Base class for fsktape failures."""


class SignalReadError(FskTapeError):
    """The input recording could not be opened or decoded."""


class DegenerateSignalError(FskTapeError, ValueError):
    """The signal carries too little information to demodulate."""


class FlatSignalError(DegenerateSignalError):
    """Integer samples have zero range, so they cannot be normalized."""


class InsufficientPeriodsError(DegenerateSignalError):
    """Too few pulse periods were detected to estimate a threshold."""

    def __init__(self, count: int, required: int = 8) -> None:
        super().__init__(
            f"need at least {required} pulse periods to estimate a threshold, "
            f"found {count}"
        )
        self.count = count
        self.required = required
