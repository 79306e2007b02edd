"""Tests for the incremental and state-integration prediction strategies."""

import numpy as np
import pytest

from pose_extrapolator.config import PredictionMode
from pose_extrapolator.errors import PreconditionError
from pose_extrapolator.extrapolation import (
    IncrementalStrategy,
    PoseExtrapolator,
    State,
    StateIntegrationStrategy,
    make_strategy,
)
from pose_extrapolator.geometry import SE3
from pose_extrapolator.sensors import ImuSample

MS = 1_000_000
SECOND = 1_000_000_000
GRAVITY = np.array([0.0, 0.0, 9.8])


def imu(timestamp_ns: int, linear_acceleration=GRAVITY) -> ImuSample:
    """IMU sample with zero angular velocity."""
    return ImuSample(
        timestamp_ns=timestamp_ns,
        linear_acceleration=np.asarray(linear_acceleration, dtype=np.float64),
        angular_velocity=np.zeros(3),
    )


def bootstrap(gravity_time_constant: float = 10.0) -> PoseExtrapolator:
    """Extrapolator bootstrapped from a level IMU sample at t=0."""
    return PoseExtrapolator.initialize_with_imu(
        pose_queue_duration_ns=MS,
        imu_gravity_time_constant=gravity_time_constant,
        imu_sample=imu(0),
    )


class TestMakeStrategy:
    """Test suite for strategy selection."""

    def test_modes(self):
        """Test that each mode maps to its strategy."""
        assert isinstance(make_strategy(PredictionMode.INCREMENTAL), IncrementalStrategy)
        assert isinstance(
            make_strategy(PredictionMode.STATE_INTEGRATION), StateIntegrationStrategy
        )

    def test_fresh_instances(self):
        """Test that state-integration strategies never share state."""
        first = make_strategy(PredictionMode.STATE_INTEGRATION)
        second = make_strategy(PredictionMode.STATE_INTEGRATION)

        assert first is not second


class TestStateIntegrationStrategy:
    """Test suite for StateIntegrationStrategy."""

    def test_needs_two_imu_samples(self):
        """Test that the state is returned unchanged with a single IMU sample."""
        extrapolator = bootstrap()
        initial = State(position=np.array([1.0, 2.0, 3.0]))
        strategy = StateIntegrationStrategy(initial)

        pose = strategy.predict(extrapolator, SECOND)

        np.testing.assert_array_equal(pose.translation, [1.0, 2.0, 3.0])
        assert strategy.state is initial
        assert strategy.last_predicted_time_ns is None

    def test_stationary_keeps_zero_velocity(self):
        """Test that gravity is removed for a level, stationary IMU."""
        extrapolator = bootstrap()
        for t in range(100 * MS, SECOND + 1, 100 * MS):
            extrapolator.add_imu_sample(imu(t))
        strategy = StateIntegrationStrategy()

        pose = strategy.predict(extrapolator, SECOND)

        np.testing.assert_allclose(strategy.state.velocity, np.zeros(3), atol=1e-6)
        np.testing.assert_allclose(pose.translation, np.zeros(3), atol=1e-12)
        assert pose.rotation.magnitude() == pytest.approx(0.0, abs=1e-9)
        assert strategy.last_predicted_time_ns == SECOND

    def test_stationary_after_pose_keeps_zero_velocity(self):
        """Test that integration starts at the tracker time once a pose arrived."""
        extrapolator = bootstrap()
        for t in range(10 * MS, SECOND + 1, 10 * MS):
            extrapolator.add_imu_sample(imu(t))
        extrapolator.add_pose(995 * MS, SE3.identity())
        for t in range(1010 * MS, 1500 * MS + 1, 10 * MS):
            extrapolator.add_imu_sample(imu(t))
        # The IMU buffer now starts before the tracker time.
        assert extrapolator.imu_samples[0].timestamp_ns < 995 * MS
        strategy = StateIntegrationStrategy()

        strategy.predict(extrapolator, 1500 * MS)

        np.testing.assert_allclose(strategy.state.velocity, np.zeros(3), atol=1e-6)
        assert strategy.last_predicted_time_ns == 1500 * MS

    def test_position_uses_previous_velocity(self):
        """Test the semi-implicit update: position moves with the old velocity."""
        # A long time constant keeps the gravity estimate level.
        extrapolator = bootstrap(gravity_time_constant=1e6)
        for t in range(100 * MS, 2 * SECOND + 1, 100 * MS):
            extrapolator.add_imu_sample(imu(t, linear_acceleration=[1.0, 0.0, 9.8]))
        strategy = StateIntegrationStrategy()

        strategy.predict(extrapolator, SECOND)
        first = strategy.state
        strategy.predict(extrapolator, 2 * SECOND)
        second = strategy.state

        # [0, 0.1 s) still uses the level bootstrap sample.
        np.testing.assert_allclose(first.velocity, [0.9, 0.0, 0.0], atol=1e-3)
        np.testing.assert_allclose(first.position, np.zeros(3), atol=1e-12)
        np.testing.assert_allclose(second.position, first.velocity, atol=1e-9)
        np.testing.assert_allclose(second.velocity, [1.9, 0.0, 0.0], atol=1e-3)

    def test_predict_into_past_raises(self):
        """Test that predictions must be at non-decreasing times."""
        extrapolator = bootstrap()
        for t in (100 * MS, 200 * MS):
            extrapolator.add_imu_sample(imu(t))
        strategy = StateIntegrationStrategy()
        strategy.predict(extrapolator, 200 * MS)

        with pytest.raises(PreconditionError):
            strategy.predict(extrapolator, 100 * MS)

    def test_does_not_touch_extrapolator(self):
        """Test that predicting leaves buffers and tracker unchanged."""
        extrapolator = bootstrap()
        for t in (100 * MS, 200 * MS):
            extrapolator.add_imu_sample(imu(t))
        tracker_time = extrapolator.orientation_tracker.time_ns

        StateIntegrationStrategy().predict(extrapolator, 300 * MS)

        assert extrapolator.orientation_tracker.time_ns == tracker_time
        assert len(extrapolator.imu_samples) == 3

    def test_configured_strategy(self):
        """Test that extrapolate_pose runs the configured strategy."""
        extrapolator = PoseExtrapolator.initialize_with_imu(
            MS, 10.0, imu(0), strategy=StateIntegrationStrategy()
        )
        for t in (100 * MS, 200 * MS):
            extrapolator.add_imu_sample(imu(t))

        pose = extrapolator.extrapolate_pose(200 * MS)

        assert pose.is_close(SE3.identity(), atol=1e-6)
        assert extrapolator.strategy.last_predicted_time_ns == 200 * MS

    def test_state_as_pose(self):
        """Test conversion of a state to a pose."""
        state = State(position=np.array([1.0, 0.0, 0.0]))

        assert state.as_pose().is_close(SE3.from_translation(np.array([1.0, 0.0, 0.0])))
