"""World space view of a spline defined in local space."""

from __future__ import annotations

from typing import Iterator, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from basicspline.common import Vec3, as_vec3
from basicspline.control_point import ControlPoint
from basicspline.geom import GeomMath, Sample
from basicspline.segment import Segment, build_segment
from basicspline.spline import Spline


###############################################################################
# TransformedSpline
###############################################################################
class TransformedSpline:
    """Adapter placing a local space Spline into world space.

    The transformation is a 4x4 affine local-to-world matrix. Distances are
    scaled by the length of the matrix' first column, so a uniform scale is
    assumed for everything measured in arc length. Control points are exchanged
    in world space, segments are built in world space on request.
    """

    def __init__(self, spline: Spline, matrix: Optional[NDArray[np.float64]] = None):
        """Initialize the adapter.

        Args:
            spline (Spline): The local space spline. It is shared, not copied.
            matrix (NDArray, optional): 4x4 local-to-world matrix. Defaults to identity.
        """
        self._spline = spline
        self._matrix = np.eye(4, dtype=np.float64)
        self._inverse = np.eye(4, dtype=np.float64)
        if matrix is not None:
            self.set_matrix(matrix)

    def set_matrix(self, matrix: NDArray[np.float64]) -> None:
        """Replace the local-to-world matrix.

        Raises:
            ValueError: If the matrix is not 4x4 or not invertible.
        """
        matrix = np.array(matrix, dtype=np.float64)
        if matrix.shape != (4, 4):
            raise ValueError(f"Transformation matrix must be 4x4, got shape {matrix.shape}")
        try:
            inverse = np.linalg.inv(matrix)
        except np.linalg.LinAlgError as e:
            raise ValueError("Transformation matrix is not invertible") from e
        self._matrix = matrix
        self._inverse = inverse

    @property
    def matrix(self) -> NDArray[np.float64]:
        """NDArray: Copy of the local-to-world matrix."""
        return self._matrix.copy()

    @property
    def spline(self) -> Spline:
        """Spline: The wrapped local space spline."""
        return self._spline

    @property
    def scale(self) -> float:
        """float: Length scale from local to world space."""
        return float(np.linalg.norm(self._matrix[:3, 0]))

    @property
    def loop(self) -> bool:
        """bool: Whether the spline is closed."""
        return self._spline.loop

    @loop.setter
    def loop(self, value: bool) -> None:
        self._spline.loop = value

    @property
    def length(self) -> float:
        """float: Arc length in world space."""
        return self._spline.length * self.scale

    @property
    def control_points_count(self) -> int:
        """int: Number of control points."""
        return self._spline.control_points_count

    @property
    def segment_count(self) -> int:
        """int: Number of segments taking part in queries."""
        return self._spline.segment_count

    def _to_local_distance(self, distance: float) -> float:
        scale = self.scale
        return distance / scale if scale > 0 else 0.0

    def _to_world(self, point: Vec3) -> Vec3:
        return GeomMath.transform_point(self._matrix, point)

    def _to_local(self, point: Vec3) -> Vec3:
        return GeomMath.transform_point(self._inverse, as_vec3(point))

    ###########################################################################
    # Queries
    ###########################################################################

    def get_sample(self, distance: float) -> Sample:
        """World space sample at the given world space arc length."""
        return self._spline.get_sample(self._to_local_distance(distance)).transform(self._matrix)

    def get_point(self, distance: float) -> Vec3:
        """World space point at the given world space arc length."""
        return self._to_world(self._spline.get_point(self._to_local_distance(distance)))

    def get_closest_point(self, point: Vec3) -> Vec3:
        """World space spline point closest to a world space point."""
        return self._to_world(self._spline.get_closest_point(self._to_local(point)))

    def get_closest_sample(self, point: Vec3) -> Sample:
        """World space sample closest to a world space point."""
        return self._spline.get_closest_sample(self._to_local(point)).transform(self._matrix)

    def get_closest_distance(self, point: Vec3) -> float:
        """World space arc length to the spline point closest to a world space point."""
        return self._spline.get_closest_distance(self._to_local(point)) * self.scale

    def get_segment_at_distance(self, distance: float) -> Tuple[int, float]:
        """Segment index and world space arc length inside it, for a world space arc length."""
        index, local_distance = self._spline.get_segment_at_distance(self._to_local_distance(distance))
        return index, local_distance * self.scale

    def get_closest_length(self, point: Vec3) -> Tuple[int, float]:
        """Segment index and parameter of the spline point closest to a world space point."""
        return self._spline.get_closest_length(self._to_local(point))

    def get_segment(self, index: int) -> Segment:
        """World space segment built from the transformed control points."""
        count = self.control_points_count
        return build_segment(self.get_control_point(index), self.get_control_point((index + 1) % count))

    def iterate_segments(self) -> Iterator[Segment]:
        """Yield world space segments taking part in queries."""
        for i in range(self.segment_count):
            yield self.get_segment(i)

    def get_control_point(self, index: int) -> ControlPoint:
        """World space copy of the control point at index."""
        return self._spline.get_control_point(index).transformed(self._matrix)

    def iterate_control_points(self) -> Iterator[ControlPoint]:
        """Yield world space copies of all control points."""
        for cp in self._spline.iterate_control_points():
            yield cp.transformed(self._matrix)

    ###########################################################################
    # Mutation
    ###########################################################################

    def split(self, distance: float) -> int:
        """Split at a world space arc length, returns the new control point index."""
        return self._spline.split(self._to_local_distance(distance))

    def set_control_point(self, index: int, control_point: ControlPoint) -> None:
        """Set a control point given in world space."""
        self._spline.set_control_point(index, control_point.transformed(self._inverse))

    def insert_control_point(self, index: int, control_point: ControlPoint) -> None:
        """Insert a control point given in world space."""
        self._spline.insert_control_point(index, control_point.transformed(self._inverse))

    def add_control_point(self, control_point: ControlPoint) -> None:
        """Append a control point given in world space."""
        self._spline.add_control_point(control_point.transformed(self._inverse))

    def remove_control_point(self, index: int) -> None:
        """Remove the control point at index."""
        self._spline.remove_control_point(index)
