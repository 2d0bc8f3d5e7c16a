"""Test module for basicspline.control_point

The tests are run using pytest.
"""

import numpy as np
import pytest

from basicspline.common import TangentMode
from basicspline.control_point import ControlPoint


@pytest.fixture
def cp():
    """Control point at the origin with handles along x."""
    return ControlPoint((0.0, 0.0, 0.0), (-1.0, 0.0, 0.0), (1.0, 0.0, 0.0))


class TestControlPoint:
    """Editing, comparison and serialization of control points."""

    def test_vectors_converted(self):
        """Tuples become float arrays."""
        point = ControlPoint((0, 0, 0), (0, 0, -1), (0, 0, 1), angle=5)
        assert isinstance(point.point, np.ndarray)
        assert point.in_tangent.dtype == np.float64
        assert point.angle == 5.0

    def test_invalid_vector(self):
        """Vectors must have three components."""
        with pytest.raises(ValueError):
            ControlPoint((0.0, 0.0), (0.0, 0.0, 0.0), (0.0, 0.0, 0.0))

    def test_move_moves_tangents(self, cp):
        """Handles follow the point."""
        cp.move((1.0, 2.0, 3.0))
        assert np.allclose(cp.point, [1.0, 2.0, 3.0])
        assert np.allclose(cp.in_tangent, [0.0, 2.0, 3.0])
        assert np.allclose(cp.out_tangent, [2.0, 2.0, 3.0])

    def test_set_moves_tangents(self, cp):
        """set() is an absolute move."""
        cp.set((0.0, 5.0, 0.0))
        assert np.allclose(cp.point, [0.0, 5.0, 0.0])
        assert np.allclose(cp.in_tangent, [-1.0, 5.0, 0.0])
        assert np.allclose(cp.out_tangent, [1.0, 5.0, 0.0])

    def test_set_tangent_free(self, cp):
        """FREE leaves the other handle alone."""
        cp.set_tangent((0.0, 0.0, -2.0), is_in_tangent=True)
        assert np.allclose(cp.in_tangent, [0.0, 0.0, -2.0])
        assert np.allclose(cp.out_tangent, [1.0, 0.0, 0.0])

    def test_set_tangent_lock_mirrors(self, cp):
        """LOCK mirrors the other handle through the point."""
        cp.set_tangent((0.0, 0.0, -2.0), is_in_tangent=True, mode=TangentMode.LOCK)
        assert np.allclose(cp.out_tangent, [0.0, 0.0, 2.0])
        cp.set_tangent((3.0, 1.0, 0.0), is_in_tangent=False, mode=TangentMode.LOCK)
        assert np.allclose(cp.in_tangent, [-3.0, -1.0, 0.0])

    def test_set_tangent_uses_own_mode(self, cp):
        """Without an explicit mode the point's tangent_mode applies."""
        cp.tangent_mode = TangentMode.LOCK
        cp.set_tangent((0.0, 1.0, 0.0), is_in_tangent=False)
        assert np.allclose(cp.in_tangent, [0.0, -1.0, 0.0])

    def test_equality_ignores_angle(self, cp):
        """Only positions are compared."""
        other = cp.copy()
        other.angle = 45.0
        other.tangent_mode = TangentMode.LOCK
        assert cp == other
        other.move((0.0, 0.0, 1e-3))
        assert cp != other

    def test_copy_is_independent(self, cp):
        """Changing the copy leaves the original untouched."""
        other = cp.copy()
        other.point[0] = 10.0
        other.move((1.0, 0.0, 0.0))
        assert np.allclose(cp.point, [0.0, 0.0, 0.0])

    def test_transformed(self, cp):
        """Affine mapping of point and handles."""
        matrix = np.diag([2.0, 2.0, 2.0, 1.0])
        matrix[:3, 3] = (0.0, 1.0, 0.0)
        moved = cp.transformed(matrix)
        assert np.allclose(moved.point, [0.0, 1.0, 0.0])
        assert np.allclose(moved.out_tangent, [2.0, 1.0, 0.0])
        assert np.allclose(cp.out_tangent, [1.0, 0.0, 0.0])

    def test_dict_conversion(self, cp):
        """to_dict / from_dict keep all fields."""
        cp.angle = 12.5
        cp.tangent_mode = TangentMode.LOCK
        restored = ControlPoint.from_dict(cp.to_dict())
        assert restored == cp
        assert restored.angle == 12.5
        assert restored.tangent_mode is TangentMode.LOCK

    def test_from_dict_defaults(self):
        """Missing tangents collapse onto the point."""
        restored = ControlPoint.from_dict({"point": [1.0, 2.0, 3.0]})
        assert np.allclose(restored.in_tangent, [1.0, 2.0, 3.0])
        assert np.allclose(restored.out_tangent, [1.0, 2.0, 3.0])
        assert restored.tangent_mode is TangentMode.FREE

    def test_from_dict_missing_point(self):
        """The point itself is required."""
        with pytest.raises(KeyError):
            ControlPoint.from_dict({"in_tangent": [0.0, 0.0, 0.0]})
