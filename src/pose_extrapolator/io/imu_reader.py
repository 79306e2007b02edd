"""EuRoC IMU data reader.

Loads IMU samples (gyroscope and accelerometer) from EuRoC dataset format
into ImuSample instances ready to feed a PoseExtrapolator.
"""

from __future__ import annotations

import bisect
import logging
from collections.abc import Iterator
from pathlib import Path

import numpy as np

from ..sensors import ImuSample

_LOG: logging.Logger = logging.getLogger(__name__)


class ImuReader:
    """Reader for EuRoC IMU data in imu0/data.csv.

    CSV format:
        #timestamp [ns], w_RS_S_x, w_RS_S_y, w_RS_S_z, a_RS_S_x, a_RS_S_y, a_RS_S_z

    Example usage:
        reader = ImuReader("data/euroc/MH_01_easy/mav0")
        for sample in reader.get_samples_between(t_start, t_end):
            extrapolator.add_imu_sample(sample)
    """

    def __init__(self, dataset_path: str | Path) -> None:
        """Initialize IMU reader.

        Args:
            dataset_path: Path to EuRoC mav0 directory

        Raises:
            FileNotFoundError: If imu0/data.csv does not exist
        """
        self._dataset_path = Path(dataset_path)
        self._imu_data_path = self._dataset_path / "imu0" / "data.csv"

        if not self._imu_data_path.exists():
            raise FileNotFoundError(
                f"IMU data not found: {self._imu_data_path}\n"
                f"Expected EuRoC format with imu0/data.csv"
            )

        self._samples: list[ImuSample] = []
        self._timestamps: list[int] = []  # For binary search
        self._load_samples()

    def _load_samples(self) -> None:
        skipped = 0
        with open(self._imu_data_path, "r") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue

                parts = line.split(",")
                if len(parts) < 7:
                    skipped += 1
                    continue

                try:
                    timestamp_ns = int(parts[0])
                    values = [float(x) for x in parts[1:7]]
                except ValueError:
                    skipped += 1
                    continue

                if self._timestamps and timestamp_ns < self._timestamps[-1]:
                    skipped += 1
                    continue

                self._samples.append(
                    ImuSample(
                        timestamp_ns=timestamp_ns,
                        linear_acceleration=np.array(values[3:6]),
                        angular_velocity=np.array(values[0:3]),
                    )
                )
                self._timestamps.append(timestamp_ns)

        if skipped:
            _LOG.warning(
                "Skipped %d malformed or out-of-order lines in %s",
                skipped,
                self._imu_data_path,
            )

    def get_samples_between(self, start_ns: int, end_ns: int) -> list[ImuSample]:
        """Get IMU samples in [start_ns, end_ns).

        Args:
            start_ns: Start timestamp in nanoseconds (inclusive)
            end_ns: End timestamp in nanoseconds (exclusive)

        Returns:
            Samples in time order
        """
        start_idx = bisect.bisect_left(self._timestamps, start_ns)
        end_idx = bisect.bisect_left(self._timestamps, end_ns)
        return self._samples[start_idx:end_idx]

    @property
    def start_timestamp(self) -> int | None:
        """First IMU timestamp in nanoseconds."""
        return self._timestamps[0] if self._timestamps else None

    @property
    def end_timestamp(self) -> int | None:
        """Last IMU timestamp in nanoseconds."""
        return self._timestamps[-1] if self._timestamps else None

    def __iter__(self) -> Iterator[ImuSample]:
        return iter(self._samples)

    def __len__(self) -> int:
        """Number of IMU samples."""
        return len(self._samples)
