#!/usr/bin/env python3
"""Demo script replaying EuRoC IMU data and ground-truth poses.

Ground-truth poses stand in for scan-matcher output: before each pose is fed
back, the extrapolator predicts it from IMU data and the previous poses, and
the prediction error is reported.

Usage:
    uv run python examples/extrapolation_demo.py [path/to/config.yaml]
"""

from __future__ import annotations

import logging
import sys

import numpy as np

from pose_extrapolator import (
    ExtrapolatorConfig,
    ImuReader,
    LocalTrajectoryFrontend,
    PoseObservationReader,
    SE3,
)


def main() -> None:
    """Run the pose extrapolation demo."""
    # Configuration
    dataset_path = "data/euroc/MH_01_easy/mav0"
    observation_period_ns = 50_000_000  # 20 Hz, like a scan matcher
    max_observations = None  # Set to int to limit observations

    logging.basicConfig(level=logging.WARNING)
    config = (
        ExtrapolatorConfig.from_yaml(sys.argv[1])
        if len(sys.argv) > 1
        else ExtrapolatorConfig(cross_validate=True)
    )

    print("Initializing pose extrapolation pipeline...")
    print("=" * 80)
    imu_reader = ImuReader(dataset_path)
    pose_reader = PoseObservationReader(dataset_path)
    frontend = LocalTrajectoryFrontend(config)

    print(f"Loaded {len(imu_reader)} IMU samples")
    print(f"Loaded {len(pose_reader)} ground truth poses")
    print(f"Prediction mode: {config.prediction_mode.value}")
    print()

    start_ns = max(imu_reader.start_timestamp, pose_reader.start_timestamp)
    end_ns = min(imu_reader.end_timestamp, pose_reader.end_timestamp)

    print(
        f"{'Obs':>6} {'Status':^14} | "
        f"{'Time':>7} | "
        f"{'Predicted Position':^30} | "
        f"{'GT Position':^30} | "
        f"{'Error':>7}"
    )
    print("-" * 120)

    translation_errors: list[float] = []
    rotation_errors: list[float] = []
    timing_total_ms = 0.0

    gt_origin: np.ndarray | None = None
    imu_cursor_ns = start_ns
    observation_ns = start_ns + observation_period_ns
    i = 0
    while observation_ns <= end_ns:
        if max_observations is not None and i >= max_observations:
            break

        # Feed IMU up to (and including) the observation time
        for sample in imu_reader.get_samples_between(imu_cursor_ns, observation_ns + 1):
            frontend.add_imu_sample(sample)
        imu_cursor_ns = observation_ns + 1

        gt = pose_reader.get_pose_at(observation_ns)
        frame = frontend.predict_pose(observation_ns)
        if gt is None or frame is None:
            observation_ns += observation_period_ns
            continue

        # Shift ground truth so the first observation is at the origin; the
        # EuRoC world frame is already gravity aligned.
        if gt_origin is None:
            gt_origin = gt.pose.translation
        gt_pose = SE3.from_translation(-gt_origin) @ gt.pose

        error = float(np.linalg.norm(frame.position - gt_pose.translation))
        angle = float((frame.pose.rotation.inv() * gt_pose.rotation).magnitude())
        if i > 0:
            translation_errors.append(error)
            rotation_errors.append(angle)
        timing_total_ms += frame.timing.total_ms

        frontend.add_pose_observation(observation_ns, gt_pose)

        if i % 50 == 0:
            pos = frame.position
            gt_pos = gt_pose.translation
            print(
                f"{i:6d} {frame.status.value:^14} | "
                f"{frame.timing.total_ms:6.2f}ms | "
                f"[{pos[0]:8.3f}, {pos[1]:8.3f}, {pos[2]:8.3f}] | "
                f"[{gt_pos[0]:8.3f}, {gt_pos[1]:8.3f}, {gt_pos[2]:8.3f}] | "
                f"{error:7.3f}m"
            )

        i += 1
        observation_ns += observation_period_ns

    print()
    print("=" * 80)
    print("SUMMARY")
    print("=" * 80)
    print(f"Observations processed: {i}")
    print(f"Observation span:       {frontend.observation_span_s:.2f} s")
    print()

    if translation_errors:
        print("One-step prediction error vs ground truth:")
        print(f"  Translation mean:   {np.mean(translation_errors) * 100:7.3f} cm")
        print(f"  Translation max:    {np.max(translation_errors) * 100:7.3f} cm")
        print(f"  Rotation mean:      {np.degrees(np.mean(rotation_errors)):7.3f} deg")
        print(f"  Rotation max:       {np.degrees(np.max(rotation_errors)):7.3f} deg")
        print()

    samples = frontend.cross_validation
    if samples:
        divergence = [s.translation_divergence for s in samples]
        print("Incremental vs state-integration divergence:")
        print(f"  Mean:  {np.mean(divergence):7.3f} m")
        print(f"  Final: {divergence[-1]:7.3f} m")
        print()

    if i:
        print(f"Average prediction time: {timing_total_ms / i:6.3f} ms")
    print()
    print("Note: the state-integration stream drifts (semi-implicit position update,")
    print("no bias estimation); it is meant for cross-validation only.")


if __name__ == "__main__":
    main()
