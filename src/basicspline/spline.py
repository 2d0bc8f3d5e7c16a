"""Ordered, optionally looping spline of cubic segments between control points."""

from __future__ import annotations

from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from basicspline.common import CLOSEST_SEGMENT_CANDIDATES, Vec3, as_vec3
from basicspline.control_point import ControlPoint
from basicspline.geom import Sample
from basicspline.segment import Segment, build_segment


def _default_control_points() -> List[ControlPoint]:
    """Straight path of length 1 along +z."""
    return [
        ControlPoint((0.0, 0.0, 0.0), (0.0, 0.0, -0.25), (0.0, 0.0, 0.25)),
        ControlPoint((0.0, 0.0, 1.0), (0.0, 0.0, 0.75), (0.0, 0.0, 1.25)),
    ]


###############################################################################
# Spline
###############################################################################
class Spline:
    """Spline made of cubic Bezier segments.

    The spline owns its control points and the segments between consecutive
    points. There is always one segment per control point: segment i runs from
    point i to point i+1 and the last one closes the loop back to point 0. The
    closing segment is kept up to date in any case but only counts (for length,
    distance and closest point queries) while the spline is looping.

    Control points are copied on the way in and on the way out, so callers never
    alias the internal state. Every mutation rebuilds the one or two segments
    touching the changed point, re-averages the up vectors around it and
    recomputes the total length.
    """

    _loop: bool
    _length: float
    _points: List[ControlPoint]
    _segments: List[Segment]

    def __init__(self, control_points: Optional[Iterable[ControlPoint]] = None, loop: bool = False):
        """Initialize the spline.

        Args:
            control_points (Iterable[ControlPoint], optional): At least two control points.
                Defaults to a straight path from (0, 0, 0) to (0, 0, 1).
            loop (bool, optional): Close the spline. Defaults to False.

        Raises:
            ValueError: If fewer than two control points are given.
        """
        points = _default_control_points() if control_points is None else [cp.copy() for cp in control_points]
        if len(points) < 2:
            raise ValueError(f"A spline needs at least 2 control points, got {len(points)}")

        self._loop = bool(loop)
        self._length = 0.0
        self._points = points
        self._segments = [build_segment(points[i], points[self._loop_index(i + 1)]) for i in range(len(points))]
        self._average_all_up_vectors()
        self._update_length()

    def copy(self) -> Spline:
        """Independent copy of the spline."""
        return Spline(self._points, loop=self._loop)

    ###########################################################################
    # Properties
    ###########################################################################

    @property
    def loop(self) -> bool:
        """bool: Whether the last control point connects back to the first one."""
        return self._loop

    @loop.setter
    def loop(self, value: bool) -> None:
        value = bool(value)
        if value != self._loop:
            self._loop = value
            self._update_length()

    @property
    def length(self) -> float:
        """float: Arc length of the spline."""
        return self._length

    @property
    def control_points_count(self) -> int:
        """int: Number of control points."""
        return len(self._points)

    @property
    def segment_count(self) -> int:
        """int: Number of segments taking part in queries."""
        return len(self._segments) if self._loop else len(self._segments) - 1

    def __len__(self) -> int:
        return self.segment_count

    def __getitem__(self, index: int) -> Segment:
        return self.get_segment(index)

    ###########################################################################
    # Queries
    ###########################################################################

    def get_sample(self, distance: float) -> Sample:
        """Sample (position and orientation) at the given arc length."""
        segment_index, segment_distance = self.get_segment_at_distance(distance)
        segment = self._segments[segment_index]
        return segment.sample(segment.parameter_for_arc_length(segment_distance))

    def get_point(self, distance: float) -> Vec3:
        """Point at the given arc length."""
        segment_index, segment_distance = self.get_segment_at_distance(distance)
        segment = self._segments[segment_index]
        return segment.point(segment.parameter_for_arc_length(segment_distance))

    def get_closest_sample(self, point: Vec3) -> Sample:
        """Sample at the spline point closest to point."""
        segment_index, t = self.get_closest_length(point)
        return self._segments[segment_index].sample(t)

    def get_closest_point(self, point: Vec3) -> Vec3:
        """Spline point closest to point."""
        segment_index, t = self.get_closest_length(point)
        return self._segments[segment_index].point(t)

    def get_closest_distance(self, point: Vec3) -> float:
        """Arc length from the spline start to the spline point closest to point."""
        segment_index, t = self.get_closest_length(point)
        offset = sum(seg.length for seg in self._segments[:segment_index])
        return offset + self._segments[segment_index].arc_length(t)

    def get_segment_at_distance(self, distance: float) -> Tuple[int, float]:
        """Find the segment containing the given arc length.

        The distance is clamped to [0, length], or wrapped around while looping.

        Returns:
            Tuple[int, float]: Segment index and arc length inside that segment.
        """
        if self._length <= 0:
            distance = 0.0
        elif self._loop:
            distance = distance % self._length
        else:
            distance = min(max(distance, 0.0), self._length)

        accumulated = 0.0
        for i in range(self.segment_count):
            segment_length = self._segments[i].length
            accumulated += segment_length
            if accumulated >= distance:
                return i, distance - (accumulated - segment_length)

        last = self.segment_count - 1
        return last, self._segments[last].length

    def get_closest_length(self, point: Vec3) -> Tuple[int, float]:
        """Find the segment and parameter of the spline point closest to point.

        Segments are ranked by the distance of their bounding box to the point and
        only the best few candidates are projected onto exactly. Overlapping boxes
        of far away segments can therefore hide the true nearest point.

        Returns:
            Tuple[int, float]: Segment index and curve parameter t.
        """
        point = as_vec3(point)
        ranked = sorted(range(self.segment_count), key=lambda i: self._segments[i].bounds.distance(point))

        best_index, best_t = 0, 0.0
        best_distance = float("inf")
        for index in ranked[:CLOSEST_SEGMENT_CANDIDATES]:
            segment = self._segments[index]
            t = segment.closest_parameter(point)
            distance = float(np.linalg.norm(segment.point(t) - point))
            if distance < best_distance:
                best_index, best_t, best_distance = index, t, distance
        return best_index, best_t

    def get_segment(self, index: int) -> Segment:
        """Segment by index; the closing segment is reachable as well."""
        self._check_index(index, len(self._segments), "Segment")
        return self._segments[index]

    def get_control_point(self, index: int) -> ControlPoint:
        """Copy of the control point at index."""
        self._check_index(index, len(self._points), "Control point")
        return self._points[index].copy()

    ###########################################################################
    # Iteration
    ###########################################################################

    def iterate_segments(self) -> Iterator[Segment]:
        """Yield the segments taking part in queries."""
        for i in range(self.segment_count):
            yield self._segments[i]

    def iterate_control_points(self) -> Iterator[ControlPoint]:
        """Yield copies of all control points."""
        for cp in self._points:
            yield cp.copy()

    def iterate_points(self, res: int) -> Iterator[Vec3]:
        """Yield points along the spline, ``res`` parameter steps per segment.

        Shared end points of consecutive segments are only yielded once.
        """
        for i, segment in enumerate(self.iterate_segments()):
            points = segment.iterate_points(res)
            if i > 0:
                next(points)
            yield from points

    def iterate_samples(self, res: int) -> Iterator[Sample]:
        """Yield samples along the spline, ``res`` parameter steps per segment."""
        for i, segment in enumerate(self.iterate_segments()):
            samples = segment.iterate_samples(res)
            if i > 0:
                next(samples)
            yield from samples

    ###########################################################################
    # Mutation
    ###########################################################################

    def set_control_point(self, index: int, control_point: ControlPoint) -> None:
        """Replace the control point at index."""
        self._check_index(index, len(self._points), "Control point")
        cp = control_point.copy()
        self._points[index] = cp
        pre_index = self._loop_index(index - 1)
        next_index = self._loop_index(index + 1)
        self._segments[index] = build_segment(cp, self._points[next_index])
        self._segments[pre_index] = build_segment(self._points[pre_index], cp)
        self._average_up_vectors_around_point(index)
        self._update_length()

    def insert_control_point(self, index: int, control_point: ControlPoint) -> None:
        """Insert a control point before the one currently at index."""
        self._check_index(index, len(self._points), "Control point")
        cp = control_point.copy()
        self._points.insert(index, cp)
        pre_index = self._loop_index(index - 1)
        next_index = self._loop_index(index + 1)
        self._segments.insert(index, build_segment(cp, self._points[next_index]))
        self._segments[pre_index] = build_segment(self._points[pre_index], cp)
        self._average_up_vectors_around_point(index)
        self._update_length()

    def add_control_point(self, control_point: ControlPoint) -> None:
        """Append a control point at the end of the spline."""
        cp = control_point.copy()
        self._points.append(cp)
        last = len(self._points) - 1
        self._segments.append(build_segment(cp, self._points[0]))
        self._segments[last - 1] = build_segment(self._points[last - 1], cp)
        self._average_up_vectors_around_point(last)
        self._update_length()

    def remove_control_point(self, index: int) -> None:
        """Remove the control point at index.

        Raises:
            IndexError: If index is out of range.
            ValueError: If it is the only control point left.
        """
        self._check_index(index, len(self._points), "Control point")
        if len(self._points) <= 1:
            raise ValueError("Cannot remove the last remaining control point")
        del self._points[index]
        del self._segments[index]
        index = self._loop_index(index)
        pre_index = self._loop_index(index - 1)
        self._segments[pre_index] = build_segment(self._points[pre_index], self._points[index])
        self._average_up_vectors_around_segment(pre_index)
        self._update_length()

    def split(self, distance: float) -> int:
        """Insert a control point at the given arc length without changing the shape.

        The tangents of the neighbouring control points are shortened to the
        de Casteljau split of the segment.

        Returns:
            int: Index of the new control point.
        """
        segment_index, segment_distance = self.get_segment_at_distance(distance)
        segment = self._segments[segment_index]
        left, right, angle = segment.split(segment.parameter_for_arc_length(segment_distance))

        cp = self.get_control_point(segment_index)
        cp.out_tangent = left.a_tan
        self.set_control_point(segment_index, cp)

        next_index = self._loop_index(segment_index + 1)
        cp = self.get_control_point(next_index)
        cp.in_tangent = right.b_tan
        self.set_control_point(next_index, cp)

        self.insert_control_point(next_index, ControlPoint(left.b, left.b_tan, right.a_tan, angle))
        return next_index

    ###########################################################################
    # Serialization
    ###########################################################################

    def to_dict(self) -> dict:
        """Convert the source data (control points and loop flag) to a dictionary."""
        return {"loop": self._loop, "control_points": [cp.to_dict() for cp in self._points]}

    @classmethod
    def from_dict(cls, data: dict) -> Spline:
        """Create a Spline from a dictionary, rebuilding all derived data.

        Malformed control point records are skipped with a warning.
        """
        control_points: List[ControlPoint] = []
        for i, record in enumerate(data.get("control_points", [])):
            try:
                control_points.append(ControlPoint.from_dict(record))
            except (KeyError, TypeError, ValueError) as e:
                print(f"Warning: Skipping control point {i}: {e}")
        return cls(control_points, loop=data.get("loop", False))

    @classmethod
    def from_points(cls, points: Sequence[Vec3], loop: bool = False) -> Spline:
        """Spline through the given points.

        Tangents follow the direction between the neighbours (Catmull-Rom style)
        with handles a third of the neighbour spacing long.
        """
        array = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        count = len(array)
        control_points = []
        for i in range(count):
            has_prev = i > 0 or loop
            has_next = i < count - 1 or loop
            prev_point = array[i - 1] if has_prev else array[i]
            next_point = array[(i + 1) % count] if has_next else array[i]
            spans = 2.0 if (has_prev and has_next) else 1.0
            direction = (next_point - prev_point) / (3.0 * spans)
            control_points.append(ControlPoint(array[i], array[i] - direction, array[i] + direction))
        return cls(control_points, loop=loop)

    ###########################################################################
    # Internals
    ###########################################################################

    @staticmethod
    def _check_index(index: int, count: int, what: str) -> None:
        if not 0 <= index < count:
            raise IndexError(f"{what} index {index} out of range [0, {count})")

    def _loop_index(self, index: int) -> int:
        return (index + len(self._points)) % len(self._points)

    def _average_up_vectors(self, index_a: int, index_b: int) -> None:
        Segment.average_up_vectors(self._segments[index_a], self._segments[index_b])

    def _average_up_vectors_around_segment(self, index: int) -> None:
        self._average_up_vectors(self._loop_index(index - 1), index)
        self._average_up_vectors(index, self._loop_index(index + 1))

    def _average_up_vectors_around_point(self, control_index: int) -> None:
        for offset in (-1, 0, 1):
            index = self._loop_index(control_index + offset)
            self._average_up_vectors(self._loop_index(index - 1), index)

    def _average_all_up_vectors(self) -> None:
        for i in range(1, len(self._segments)):
            self._average_up_vectors(i - 1, i)
        self._average_up_vectors(len(self._segments) - 1, 0)

    def _update_length(self) -> None:
        self._length = float(sum(self._segments[i].length for i in range(self.segment_count)))

    def __repr__(self):
        return f"Spline(control_points={len(self._points)}, loop={self._loop}, length={self._length:.6g})"


def main():
    """Main"""
    spline = Spline.from_points([(0.0, 0.0, 0.0), (1.0, 0.0, 1.0), (2.0, 1.0, 1.0), (3.0, 0.0, 0.0)])
    print(spline)
    for i, segment in enumerate(spline.iterate_segments()):
        print(f"  segment {i}: length={segment.length:.6f} bounds={segment.bounds}")
    print("point at half length:", spline.get_point(spline.length * 0.5))
    index = spline.split(spline.length * 0.5)
    print(f"split -> new control point {index}:", spline)


if __name__ == "__main__":
    main()
