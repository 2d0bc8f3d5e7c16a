"""Test module for basicspline.follower

The tests are run using pytest.
"""

import numpy as np
import pytest

from basicspline.follower import SplineFollower
from basicspline.geom import Sample
from basicspline.spline import Spline
from basicspline.transformed import TransformedSpline


@pytest.fixture
def line_spline():
    """Straight spline along +x, two segments of length 3 with speed 3."""
    return Spline.from_points([(0.0, 0.0, 0.0), (3.0, 0.0, 0.0), (6.0, 0.0, 0.0)])


class TestNormalMode:
    """Arc length driven movement."""

    def test_position_none_before_update(self, line_spline):
        """Nothing has been evaluated yet."""
        assert SplineFollower(line_spline).position is None

    def test_update_returns_sample(self, line_spline):
        """Moves speed * dt along the spline."""
        follower = SplineFollower(line_spline, speed=1.0)
        sample = follower.update(1.5)
        assert isinstance(sample, Sample)
        assert follower.distance == pytest.approx(1.5)
        assert np.allclose(sample.point, [1.5, 0.0, 0.0], atol=1e-3)
        assert np.allclose(follower.position, sample.point)

    def test_update_returns_point_without_rotation(self, line_spline):
        """Plain positions when apply_rotation is off."""
        follower = SplineFollower(line_spline, speed=2.0, apply_rotation=False)
        point = follower.update(1.0)
        assert isinstance(point, np.ndarray)
        assert point.shape == (3,)
        assert np.allclose(point, [2.0, 0.0, 0.0], atol=1e-3)

    def test_clamped_at_end(self, line_spline):
        """Without loop the follower stops at the end."""
        follower = SplineFollower(line_spline, speed=1.0, apply_rotation=False)
        point = follower.update(100.0)
        assert follower.distance == pytest.approx(line_spline.length)
        assert np.allclose(point, [6.0, 0.0, 0.0], atol=1e-3)

    def test_clamped_at_start(self, line_spline):
        """Moving backwards stops at the start."""
        follower = SplineFollower(line_spline, speed=-1.0, distance=1.0, apply_rotation=False)
        follower.update(5.0)
        assert follower.distance == 0.0

    def test_wraps_when_looping(self, line_spline):
        """With loop the distance keeps growing, the position wraps."""
        line_spline.loop = True
        follower = SplineFollower(line_spline, speed=1.0, apply_rotation=False)
        point = follower.update(line_spline.length + 1.5)
        assert follower.distance == pytest.approx(line_spline.length + 1.5)
        assert np.allclose(point, [1.5, 0.0, 0.0], atol=1e-3)

    def test_transformed_spline(self, line_spline):
        """Works on world space paths."""
        matrix = np.eye(4)
        matrix[:3, 3] = (0.0, 5.0, 0.0)
        follower = SplineFollower(TransformedSpline(line_spline, matrix), speed=1.0, apply_rotation=False)
        assert np.allclose(follower.update(1.5), [1.5, 5.0, 0.0], atol=1e-3)


class TestFastMode:
    """Parameter driven movement."""

    def test_first_update_places_follower(self, line_spline):
        """The start distance is looked up once."""
        follower = SplineFollower(line_spline, distance=4.5, fast_mode=True, apply_rotation=False)
        point = follower.update(0.0)
        assert follower.segment_index == 1
        assert follower.t == pytest.approx(0.5, abs=1e-3)
        assert np.allclose(point, [4.5, 0.0, 0.0], atol=1e-3)

    def test_advances_in_parameter_space(self, line_spline):
        """t grows by dt * speed / |p'(t)|."""
        follower = SplineFollower(line_spline, speed=1.0, fast_mode=True, apply_rotation=False)
        follower.update(0.0)
        point = follower.update(0.75)
        assert follower.t == pytest.approx(0.25)
        assert follower.distance == pytest.approx(0.75)
        assert np.allclose(point, [0.75, 0.0, 0.0])

    def test_crosses_segments(self, line_spline):
        """Overflowing t moves on to the next segment."""
        follower = SplineFollower(line_spline, speed=1.0, fast_mode=True, apply_rotation=False)
        follower.update(0.0)
        follower.update(0.75)
        point = follower.update(3.0)
        assert follower.segment_index == 1
        assert follower.t == pytest.approx(0.25)
        assert follower.distance == pytest.approx(3.75)
        assert np.allclose(point, [3.75, 0.0, 0.0])

    def test_clamped_at_end(self, line_spline):
        """Without loop the last segment end is held."""
        follower = SplineFollower(line_spline, speed=1.0, fast_mode=True, apply_rotation=False)
        follower.update(0.0)
        point = follower.update(30.0)
        assert follower.segment_index == 1
        assert follower.t == 1.0
        assert np.allclose(point, [6.0, 0.0, 0.0])
        assert follower.distance == pytest.approx(6.0)

    def test_wraps_when_looping(self, line_spline):
        """With loop the segment index wraps around."""
        line_spline.loop = True
        follower = SplineFollower(line_spline, speed=1.0, fast_mode=True, apply_rotation=False)
        follower.update(0.0)
        follower.update(3.0)
        follower.update(3.0)
        follower.update(0.75)
        assert follower.segment_index == 2

    def test_external_distance_change(self, line_spline):
        """Setting distance from outside triggers a new lookup."""
        follower = SplineFollower(line_spline, speed=1.0, fast_mode=True, apply_rotation=False)
        follower.update(0.0)
        follower.update(0.75)
        follower.distance = 4.5
        point = follower.update(0.1)
        assert follower.segment_index == 1
        assert np.allclose(point, [4.5, 0.0, 0.0], atol=1e-3)

    def test_returns_samples(self, line_spline):
        """Orientation is produced in fast mode as well."""
        follower = SplineFollower(line_spline, speed=1.0, fast_mode=True)
        follower.update(0.0)
        sample = follower.update(0.75)
        assert isinstance(sample, Sample)
        assert np.allclose(sample.forward, [1.0, 0.0, 0.0])
