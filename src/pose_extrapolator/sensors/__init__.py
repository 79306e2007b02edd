"""Sensor sample types."""

from .types import ImuSample, OdometrySample, TimedPose

__all__ = [
    "ImuSample",
    "OdometrySample",
    "TimedPose",
]
