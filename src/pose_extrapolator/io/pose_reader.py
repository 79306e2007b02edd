"""EuRoC ground-truth reader producing timed pose observations.

Ground truth stands in for the refined poses a scan matcher would feed back
into the extrapolator, so replaying a dataset exercises the full loop.
"""

from __future__ import annotations

import bisect
import logging
from collections.abc import Iterator
from pathlib import Path

import numpy as np
from scipy.spatial.transform import Rotation, Slerp

from ..geometry import SE3
from ..sensors import TimedPose

_LOG: logging.Logger = logging.getLogger(__name__)


class PoseObservationReader:
    """Load and interpolate EuRoC body poses.

    Reads state_groundtruth_estimate0/data.csv. Translation is interpolated
    linearly and rotation with scipy Slerp between the surrounding samples.

    CSV format:
        #timestamp, p_RS_R_x, p_RS_R_y, p_RS_R_z, q_RS_w, q_RS_x, q_RS_y, q_RS_z, ...
    """

    def __init__(self, dataset_path: str | Path) -> None:
        """Initialize the reader.

        Args:
            dataset_path: Path to EuRoC mav0 directory

        Raises:
            FileNotFoundError: If the ground truth CSV does not exist
        """
        self._dataset_path = Path(dataset_path)
        self._gt_path = self._dataset_path / "state_groundtruth_estimate0" / "data.csv"

        if not self._gt_path.exists():
            raise FileNotFoundError(
                f"Ground truth not found: {self._gt_path}\n"
                f"Expected EuRoC format with state_groundtruth_estimate0/data.csv"
            )

        self._timestamps: list[int] = []
        self._poses: list[SE3] = []
        self._load_poses()

    def _load_poses(self) -> None:
        with open(self._gt_path, "r") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue

                parts = line.split(",")
                if len(parts) < 8:
                    continue

                try:
                    timestamp_ns = int(parts[0])
                    px, py, pz = float(parts[1]), float(parts[2]), float(parts[3])
                    qw, qx, qy, qz = (
                        float(parts[4]),
                        float(parts[5]),
                        float(parts[6]),
                        float(parts[7]),
                    )
                except ValueError:
                    continue

                if self._timestamps and timestamp_ns <= self._timestamps[-1]:
                    _LOG.warning("Dropping non-increasing pose at %d ns", timestamp_ns)
                    continue

                self._timestamps.append(timestamp_ns)
                self._poses.append(
                    SE3.from_quaternion(
                        qw=qw, qx=qx, qy=qy, qz=qz, translation=np.array([px, py, pz])
                    )
                )

    def get_pose_at(self, timestamp_ns: int) -> TimedPose | None:
        """Get the interpolated pose at ``timestamp_ns``.

        Args:
            timestamp_ns: Query timestamp in nanoseconds

        Returns:
            TimedPose, or None if outside the recorded range
        """
        if not self._timestamps:
            return None
        if timestamp_ns < self._timestamps[0] or timestamp_ns > self._timestamps[-1]:
            return None

        idx = bisect.bisect_left(self._timestamps, timestamp_ns)
        if self._timestamps[idx] == timestamp_ns:
            return TimedPose(timestamp_ns=timestamp_ns, pose=self._poses[idx])

        t0 = self._timestamps[idx - 1]
        t1 = self._timestamps[idx]
        alpha = (timestamp_ns - t0) / (t1 - t0)
        pose0 = self._poses[idx - 1]
        pose1 = self._poses[idx]

        translation = (1 - alpha) * pose0.translation + alpha * pose1.translation
        key_rotations = Rotation.concatenate([pose0.rotation, pose1.rotation])
        rotation = Slerp([0.0, 1.0], key_rotations)([alpha])[0]
        return TimedPose(
            timestamp_ns=timestamp_ns,
            pose=SE3(rotation=rotation, translation=translation),
        )

    @property
    def start_timestamp(self) -> int | None:
        """First pose timestamp in nanoseconds."""
        return self._timestamps[0] if self._timestamps else None

    @property
    def end_timestamp(self) -> int | None:
        """Last pose timestamp in nanoseconds."""
        return self._timestamps[-1] if self._timestamps else None

    def __iter__(self) -> Iterator[TimedPose]:
        for timestamp_ns, pose in zip(self._timestamps, self._poses):
            yield TimedPose(timestamp_ns=timestamp_ns, pose=pose)

    def __len__(self) -> int:
        """Number of recorded poses."""
        return len(self._poses)
