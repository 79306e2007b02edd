"""Dataset readers for replaying recorded sensor streams."""

from .imu_reader import ImuReader
from .pose_reader import PoseObservationReader

__all__ = [
    "ImuReader",
    "PoseObservationReader",
]
