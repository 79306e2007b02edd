"""Time-ordered sample buffer with front trimming.

The extrapolator keeps three of these (poses, IMU samples, odometry samples).
Each buffer only grows at the back and only shrinks at the front, and always
keeps enough samples to bracket any legal extrapolation request.
"""

from __future__ import annotations

import bisect
import logging
from typing import Generic, Iterator, Protocol, Sequence, TypeVar, overload

from ..errors import PreconditionError

_LOG: logging.Logger = logging.getLogger(__name__)


class Timestamped(Protocol):
    """Anything carrying an integer nanosecond timestamp."""

    @property
    def timestamp_ns(self) -> int: ...


SampleT = TypeVar("SampleT", bound=Timestamped)


class TimedBuffer(Sequence[SampleT], Generic[SampleT]):
    """Append-only, time-ordered sequence of samples.

    Samples are stored in a list alongside a parallel list of timestamps for
    fast binary search.

    Trimming drops entries from the front while more than ``min_retained``
    entries remain and the *second* oldest entry is at or before the trim
    horizon. The oldest retained entry is therefore always at or before the
    horizon, so a query at or after the horizon stays bracketed.
    """

    def __init__(self, name: str, min_retained: int) -> None:
        """Initialize an empty buffer.

        Args:
            name: Buffer name used in error messages and logs
            min_retained: Minimum number of samples trimming never goes below
        """
        if min_retained < 1:
            raise ValueError(f"min_retained must be >= 1, got {min_retained}")
        self._name = name
        self._min_retained = min_retained
        self._samples: list[SampleT] = []
        self._timestamps: list[int] = []

    def append(self, sample: SampleT, not_before_ns: int | None = None) -> None:
        """Append a sample at the back of the buffer.

        Args:
            sample: Sample to append
            not_before_ns: Earliest admissible timestamp (newest known pose time)

        Raises:
            PreconditionError: If the sample precedes the last buffered sample
                or ``not_before_ns``
        """
        timestamp_ns = sample.timestamp_ns
        if self._timestamps and timestamp_ns < self._timestamps[-1]:
            raise PreconditionError(
                f"{self._name} sample at {timestamp_ns} ns precedes the last "
                f"buffered sample at {self._timestamps[-1]} ns"
            )
        if not_before_ns is not None and timestamp_ns < not_before_ns:
            raise PreconditionError(
                f"{self._name} sample at {timestamp_ns} ns precedes the newest "
                f"pose at {not_before_ns} ns"
            )
        self._samples.append(sample)
        self._timestamps.append(timestamp_ns)

    def trim(self, horizon_ns: int) -> int:
        """Drop samples that are no longer needed to bracket ``horizon_ns``.

        Args:
            horizon_ns: Earliest time that must remain bracketed

        Returns:
            Number of samples dropped
        """
        count = 0
        while (
            len(self._timestamps) - count > self._min_retained
            and self._timestamps[count + 1] <= horizon_ns
        ):
            count += 1
        if count:
            del self._samples[:count]
            del self._timestamps[:count]
            _LOG.debug("Trimmed %d %s samples (horizon %d ns)", count, self._name, horizon_ns)
        return count

    def index_at_or_before(self, timestamp_ns: int) -> int | None:
        """Index of the last sample with timestamp <= ``timestamp_ns``.

        Returns:
            Index into the buffer, or None if every sample is later
        """
        idx = bisect.bisect_right(self._timestamps, timestamp_ns) - 1
        return idx if idx >= 0 else None

    @property
    def name(self) -> str:
        """Buffer name."""
        return self._name

    @property
    def min_retained(self) -> int:
        """Minimum number of samples trimming keeps."""
        return self._min_retained

    @property
    def timestamps(self) -> list[int]:
        """Copy of the buffered timestamps in nanoseconds."""
        return self._timestamps.copy()

    @property
    def front(self) -> SampleT | None:
        """Oldest sample, or None if empty."""
        return self._samples[0] if self._samples else None

    @property
    def back(self) -> SampleT | None:
        """Newest sample, or None if empty."""
        return self._samples[-1] if self._samples else None

    @overload
    def __getitem__(self, index: int) -> SampleT: ...

    @overload
    def __getitem__(self, index: slice) -> list[SampleT]: ...

    def __getitem__(self, index: int | slice) -> SampleT | list[SampleT]:
        """Return the sample(s) at ``index``."""
        return self._samples[index]

    def __iter__(self) -> Iterator[SampleT]:
        """Iterate from oldest to newest."""
        return iter(self._samples)

    def __len__(self) -> int:
        """Number of buffered samples."""
        return len(self._samples)

    def __repr__(self) -> str:
        """Return string representation."""
        if not self._timestamps:
            return f"TimedBuffer({self._name!r}, empty)"
        return (
            f"TimedBuffer({self._name!r}, n={len(self._timestamps)}, "
            f"span=[{self._timestamps[0]}, {self._timestamps[-1]}] ns)"
        )
