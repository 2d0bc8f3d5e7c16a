"""Spline segment: one cubic curve between two control points with cached derived data."""

from __future__ import annotations

from typing import Iterator, List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from basicspline.common import Poly, Vec3
from basicspline.control_point import ControlPoint
from basicspline.curve import CubicCurve, CurvePoints
from basicspline.geom import BoundingBox, GeomMath, Sample
from basicspline.polysolve import PolySolver


###############################################################################
# Segment
###############################################################################
class Segment:
    """Spline segment based on a cubic Bezier curve.

    Everything derived from the curve is computed once on construction: length,
    bounds, arc length polynomial(s), closest point polynomial and the up vectors
    at both ends. A segment is replaced, not edited, when one of its control
    points changes; only the end up vectors are adjusted afterwards by
    average_up_vectors().

    When the speed of the curve has an extremum strictly inside (0, 1) the arc
    length polynomial is fitted separately on both sides of it, a single cubic
    being too inaccurate across such a point.
    """

    _curve: CubicCurve
    _length: float
    _bounds: BoundingBox
    _closest_poly: Poly
    _inflection: Optional[float]
    _inflection_length: float
    _t2l: List[Poly]
    _up_a: Vec3
    _up_b: Vec3

    def __init__(self, points: CurvePoints, angle_a: float = 0.0, angle_b: float = 0.0):
        """Build the segment.

        Args:
            points (CurvePoints): Start point, its out tangent, the in tangent of the end point, end point.
            angle_a (float): Roll angle (degrees) at the start point.
            angle_b (float): Roll angle (degrees) at the end point.
        """
        curve = CubicCurve.from_points(points)
        self._curve = curve

        self._up_a = curve.up_vector(0.0, angle_a, angle_b)
        self._up_b = curve.up_vector(1.0, angle_a, angle_b)

        self._bounds = curve.bounding_box()
        self._closest_poly = curve.closest_point_polynomial()

        inflection = curve.inflection_point()
        if inflection is not None and 0.0 < inflection < 1.0:
            self._inflection = inflection
            self._inflection_length = curve.arc_length(inflection)
            self._length = curve.arc_length(1.0)
            head, tail = points.split(inflection)
            self._t2l = [
                CubicCurve.from_points(head).arc_length_polynomial(),
                CubicCurve.from_points(tail).arc_length_polynomial(),
            ]
        else:
            self._inflection = None
            self._inflection_length = 0.0
            self._t2l = [curve.arc_length_polynomial()]
            self._length = PolySolver.evaluate(self._t2l[0], 1.0)

    @classmethod
    def from_control_points(cls, cp_a: ControlPoint, cp_b: ControlPoint) -> Segment:
        """Segment leaving cp_a through its out tangent and entering cp_b through its in tangent."""
        return cls(CurvePoints(cp_a.point, cp_a.out_tangent, cp_b.in_tangent, cp_b.point), cp_a.angle, cp_b.angle)

    @staticmethod
    def average_up_vectors(seg_a: Segment, seg_b: Segment) -> None:
        """Make the end up vector of seg_a and the start up vector of seg_b equal.

        Both receive the spherical midpoint of the two, which keeps the frame
        continuous across the control point shared by the segments.
        """
        middle = GeomMath.slerp(seg_a._up_b, seg_b._up_a, 0.5)
        seg_a._up_b = middle
        seg_b._up_a = middle.copy()

    ###########################################################################
    # Properties
    ###########################################################################

    @property
    def length(self) -> float:
        """float: Arc length of the segment."""
        return self._length

    @property
    def bounds(self) -> BoundingBox:
        """BoundingBox: Axis aligned bounds of the segment."""
        return self._bounds

    @property
    def curve(self) -> CubicCurve:
        """CubicCurve: Copy of the underlying curve."""
        return CubicCurve(self._curve.a, self._curve.b, self._curve.c, self._curve.d)

    @property
    def inflection_point(self) -> Optional[float]:
        """Parameter where the arc length fit is split, None if it is not split."""
        return self._inflection

    @property
    def up_start(self) -> Vec3:
        """Vec3: Up vector at t = 0."""
        return self._up_a.copy()

    @property
    def up_end(self) -> Vec3:
        """Vec3: Up vector at t = 1."""
        return self._up_b.copy()

    ###########################################################################
    # Evaluation
    ###########################################################################

    def point(self, t: float) -> Vec3:
        """Point on the curve at parameter t."""
        return self._curve.evaluate(t)

    def d1(self, t: float) -> Vec3:
        """First derivative at parameter t."""
        return self._curve.derivative1(t)

    def d2(self, t: float) -> Vec3:
        """Second derivative at parameter t."""
        return self._curve.derivative2(t)

    def sample(self, t: float) -> Sample:
        """Position and orientation at parameter t."""
        return self._sample(t, self.point(t), self.d1(t))

    def _sample(self, t: float, point: Vec3, d1: Vec3) -> Sample:
        up = GeomMath.slerp(self._up_a, self._up_b, t)
        forward = GeomMath.normalize(d1)
        right = GeomMath.normalize(np.cross(up, forward))
        return Sample(point, forward, right, GeomMath.normalize(np.cross(forward, right)))

    ###########################################################################
    # Arc length
    ###########################################################################

    def _local(self, t: float) -> Tuple[int, float, float, float]:
        """Map t to (piece index, local parameter, length offset, dlocal/dt)."""
        if self._inflection is None:
            return 0, t, 0.0, 1.0
        if t > self._inflection:
            span = 1.0 - self._inflection
            return 1, GeomMath.inverse_lerp(self._inflection, 1.0, t), self._inflection_length, 1.0 / span
        return 0, GeomMath.inverse_lerp(0.0, self._inflection, t), 0.0, 1.0 / self._inflection

    def arc_length(self, t: float) -> float:
        """Approximate arc length from the segment start to parameter t."""
        piece, u, offset, _ = self._local(t)
        return offset + PolySolver.evaluate(self._t2l[piece], u)

    def _arc_length_d1(self, t: float) -> float:
        piece, u, _, scale = self._local(t)
        return PolySolver.evaluate(PolySolver.derivative(self._t2l[piece]), u) * scale

    def parameter_for_arc_length(self, length: float) -> float:
        """Parameter t at which the approximate arc length equals length."""
        return PolySolver.hybrid_newton(0.0, 1.0, lambda t: self.arc_length(t) - length, self._arc_length_d1)

    def closest_parameter(self, point: Vec3) -> float:
        """Parameter of the segment point closest to point."""
        return self._curve.closest_point(point, self._closest_poly)

    ###########################################################################
    # Splitting
    ###########################################################################

    def split(self, t: float) -> Tuple[CurvePoints, CurvePoints, float]:
        """Split the segment at parameter t.

        Returns:
            Tuple[CurvePoints, CurvePoints, float]: Both halves and the roll angle
            (degrees) for a control point placed at the split.
        """
        left, right = self._curve.to_points().split(t)
        # TODO: derive the angle from the averaged up vector at t instead of interpolating roll angles
        angle = GeomMath.lerp_angle(
            self._curve.roll_angle(self._up_a, 0.0), self._curve.roll_angle(self._up_b, 1.0), t
        )
        return left, right, angle

    ###########################################################################
    # Iteration
    ###########################################################################

    def _differences(self, res: int) -> Tuple[Vec3, Vec3, Vec3]:
        if res < 1:
            raise ValueError(f"res must be >= 1, got {res}")
        s = 1.0 / res
        ss = s * s
        a = self._curve.a * ss * s
        b = self._curve.b * ss
        return a + b + self._curve.c * s, 6.0 * a + 2.0 * b, 6.0 * a

    def iterate_points(self, res: int) -> Iterator[Vec3]:
        """Yield ``res + 1`` points at uniform parameter steps using forward differencing.

        https://en.wikipedia.org/wiki/Finite_difference
        """
        d1, d2, d3 = self._differences(res)
        point = self._curve.d.copy()
        for _ in range(res + 1):
            yield point
            point = point + d1
            d1 = d1 + d2
            d2 = d2 + d3

    def iterate_samples(self, res: int) -> Iterator[Sample]:
        """Yield ``res + 1`` samples at uniform parameter steps using forward differencing."""
        d1, d2, d3 = self._differences(res)
        s = 1.0 / res
        point = self._curve.d.copy()

        # the derivative is a quadratic, stepped the same way
        tangent = self._curve.c.copy()
        dtangent = 3.0 * self._curve.a * s * s + 2.0 * self._curve.b * s
        ddtangent = 6.0 * self._curve.a * s * s

        for i in range(res + 1):
            yield self._sample(i * s, point, tangent)
            point = point + d1
            d1 = d1 + d2
            d2 = d2 + d3
            tangent = tangent + dtangent
            dtangent = dtangent + ddtangent

    def points(self, res: int) -> NDArray[np.float64]:
        """``res + 1`` points at uniform parameter steps as array of shape (res+1, 3)."""
        return self._curve.polygonize(res)

    def __repr__(self):
        return f"Segment(length={self._length:.6g}, inflection={self._inflection}, curve={self._curve!r})"


def build_segment(cp_a: ControlPoint, cp_b: ControlPoint) -> Segment:
    """Build the segment running from cp_a to cp_b."""
    return Segment.from_control_points(cp_a, cp_b)
