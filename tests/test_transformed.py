"""Test module for basicspline.transformed

The tests are run using pytest.
A local straight spline (0,0,0) -> (3,0,0) -> (6,0,0) is placed into world
space with scale 2 and an offset of (10, 0, 0).
"""

import numpy as np
import pytest

from basicspline.control_point import ControlPoint
from basicspline.spline import Spline
from basicspline.transformed import TransformedSpline


@pytest.fixture
def local_spline():
    """Straight local spline of length 6."""
    return Spline.from_points([(0.0, 0.0, 0.0), (3.0, 0.0, 0.0), (6.0, 0.0, 0.0)])


@pytest.fixture
def matrix():
    """Uniform scale 2, translation (10, 0, 0)."""
    result = np.diag([2.0, 2.0, 2.0, 1.0])
    result[:3, 3] = (10.0, 0.0, 0.0)
    return result


@pytest.fixture
def world(local_spline, matrix):
    """The transformed view."""
    return TransformedSpline(local_spline, matrix)


class TestTransformedSpline:
    """Queries and edits in world space."""

    def test_identity_default(self, local_spline):
        """Without a matrix the world equals the local space."""
        view = TransformedSpline(local_spline)
        assert view.scale == pytest.approx(1.0)
        assert view.length == pytest.approx(local_spline.length)

    def test_scale_and_length(self, world):
        """Arc length is scaled."""
        assert world.scale == pytest.approx(2.0)
        assert world.length == pytest.approx(12.0)
        assert world.segment_count == 2
        assert world.control_points_count == 3

    def test_get_point(self, world):
        """World distance maps to the world position."""
        assert np.allclose(world.get_point(3.0), [13.0, 0.0, 0.0], atol=1e-3)
        assert np.allclose(world.get_point(0.0), [10.0, 0.0, 0.0], atol=1e-6)

    def test_get_sample(self, world):
        """Samples are transformed with the matrix."""
        sample = world.get_sample(3.0)
        assert np.allclose(sample.point, [13.0, 0.0, 0.0], atol=1e-3)
        forward = sample.forward / np.linalg.norm(sample.forward)
        assert np.allclose(forward, [1.0, 0.0, 0.0])

    def test_segment_at_distance(self, world):
        """The in-segment distance is given in world units."""
        index, distance = world.get_segment_at_distance(9.0)
        assert index == 1
        assert distance == pytest.approx(3.0)

    def test_get_segment(self, world):
        """Segments are built from world space control points."""
        segment = world.get_segment(0)
        assert segment.length == pytest.approx(6.0)
        assert np.allclose(segment.point(0.0), [10.0, 0.0, 0.0])
        assert np.allclose(segment.point(1.0), [16.0, 0.0, 0.0])
        assert len(list(world.iterate_segments())) == 2

    def test_closest_point(self, world):
        """World query point, world result."""
        point = np.array([19.0, 4.0, 0.0])
        assert np.allclose(world.get_closest_point(point), [19.0, 0.0, 0.0], atol=1e-6)
        assert np.allclose(world.get_closest_sample(point).point, [19.0, 0.0, 0.0], atol=1e-6)
        index, t = world.get_closest_length(point)
        assert index == 1
        assert t == pytest.approx(0.5)

    def test_closest_distance(self, world):
        """The arc length to the closest point is in world units."""
        assert world.get_closest_distance(np.array([19.0, 4.0, 0.0])) == pytest.approx(9.0, abs=1e-2)
        assert world.get_closest_distance(np.array([10.0, -1.0, 0.0])) == pytest.approx(0.0, abs=1e-6)

    def test_control_points_in_world_space(self, world):
        """Control points are returned transformed."""
        cp = world.get_control_point(1)
        assert np.allclose(cp.point, [16.0, 0.0, 0.0])
        assert np.allclose(cp.in_tangent, [14.0, 0.0, 0.0])
        points = [cp.point for cp in world.iterate_control_points()]
        assert np.allclose(points, [[10.0, 0.0, 0.0], [16.0, 0.0, 0.0], [22.0, 0.0, 0.0]])

    def test_set_control_point(self, world, local_spline):
        """World edits are stored in local space."""
        cp = world.get_control_point(1)
        cp.move((0.0, 2.0, 0.0))
        world.set_control_point(1, cp)
        assert np.allclose(local_spline.get_control_point(1).point, [3.0, 1.0, 0.0])
        assert np.allclose(world.get_control_point(1).point, [16.0, 2.0, 0.0])

    def test_add_and_remove(self, world, local_spline):
        """Appending a world point extends the local spline."""
        world.add_control_point(ControlPoint((28.0, 0.0, 0.0), (26.0, 0.0, 0.0), (30.0, 0.0, 0.0)))
        assert np.allclose(local_spline.get_control_point(3).point, [9.0, 0.0, 0.0])
        assert world.length == pytest.approx(18.0)
        world.remove_control_point(3)
        assert world.length == pytest.approx(12.0)

    def test_insert(self, world, local_spline):
        """Inserting a world point."""
        world.insert_control_point(1, ControlPoint((13.0, 2.0, 0.0), (12.0, 2.0, 0.0), (14.0, 2.0, 0.0)))
        assert np.allclose(local_spline.get_control_point(1).point, [1.5, 1.0, 0.0])

    def test_split(self, world, local_spline):
        """Split at a world distance."""
        index = world.split(3.0)
        assert index == 1
        assert np.allclose(local_spline.get_control_point(1).point, [1.5, 0.0, 0.0], atol=1e-3)

    def test_loop_passthrough(self, world, local_spline):
        """loop is forwarded to the wrapped spline."""
        world.loop = True
        assert local_spline.loop
        assert world.segment_count == 3

    def test_matrix_is_copied(self, world):
        """The returned matrix does not alias the internal one."""
        matrix = world.matrix
        matrix[0, 0] = 100.0
        assert world.scale == pytest.approx(2.0)

    def test_singular_matrix(self, local_spline):
        """Non-invertible matrices are rejected."""
        with pytest.raises(ValueError):
            TransformedSpline(local_spline, np.zeros((4, 4)))

    def test_wrong_shape(self, world):
        """Only 4x4 matrices are accepted."""
        with pytest.raises(ValueError):
            world.set_matrix(np.eye(3))
