"""Rigid transforms and rotation helpers."""

from .pose import SE3
from .rotations import UNIT_Z, exp_so3, log_so3, rotation_between

__all__ = [
    "SE3",
    "UNIT_Z",
    "exp_so3",
    "log_so3",
    "rotation_between",
]
