"""Cubic curve handling: evaluation, bounds, arc length, closest point and splitting."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from basicspline.common import LEGENDRE_TABLES, WORLD_UP, Poly, Vec3, as_vec3
from basicspline.geom import BoundingBox, GeomMath
from basicspline.polysolve import PolySolver

_THIRD: float = 1.0 / 3.0
_TWO_THIRDS: float = 2.0 / 3.0

# Step count from which polygonize() evaluates with NumPy instead of forward differencing
_POLYGONIZE_NUMPY_STEPS: int = 70

ParamLike = Union[float, NDArray[np.float64]]


###############################################################################
# CurvePoints
###############################################################################
@dataclass(eq=False)
class CurvePoints:
    """Control point form of a cubic Bezier curve.

    Attributes:
        a (Vec3): Start point.
        a_tan (Vec3): Tangent (control) point belonging to the start point.
        b_tan (Vec3): Tangent (control) point belonging to the end point.
        b (Vec3): End point.
    """

    a: Vec3
    a_tan: Vec3
    b_tan: Vec3
    b: Vec3

    def __post_init__(self):
        self.a = as_vec3(self.a)
        self.a_tan = as_vec3(self.a_tan)
        self.b_tan = as_vec3(self.b_tan)
        self.b = as_vec3(self.b)

    def as_array(self) -> NDArray[np.float64]:
        """Control points as array of shape (4, 3)."""
        return np.array([self.a, self.a_tan, self.b_tan, self.b], dtype=np.float64)

    def split(self, t: float) -> Tuple[CurvePoints, CurvePoints]:
        """Split the curve at parameter t using de Casteljau's algorithm.

        https://en.wikipedia.org/wiki/De_Casteljau%27s_algorithm
        """
        m = GeomMath.lerp(self.a_tan, self.b_tan, t)
        aa = GeomMath.lerp(self.a, self.a_tan, t)
        bb = GeomMath.lerp(self.b_tan, self.b, t)
        ab = GeomMath.lerp(aa, m, t)
        ba = GeomMath.lerp(m, bb, t)
        mm = GeomMath.lerp(ab, ba, t)
        return CurvePoints(self.a, aa, ab, mm), CurvePoints(mm, ba, bb, self.b)

    def to_curve(self) -> CubicCurve:
        """Convert to power form."""
        return CubicCurve.from_points(self)

    def approx_equal(self, other: CurvePoints, rtol: float = 1e-9, atol: float = 1e-9) -> bool:
        """True if all four points match within tolerance."""
        return bool(np.allclose(self.as_array(), other.as_array(), rtol=rtol, atol=atol))


###############################################################################
# CubicCurve
###############################################################################
class CubicCurve:
    """Cubic polynomial curve ``p(t) = t^3*a + t^2*b + t*c + d`` for t in [0, 1].

    All methods accepting a parameter t work on a float and (where noted) on an
    array of parameters as well.
    """

    __slots__ = ("a", "b", "c", "d")

    def __init__(self, a: Vec3, b: Vec3, c: Vec3, d: Vec3):
        self.a = as_vec3(a)
        self.b = as_vec3(b)
        self.c = as_vec3(c)
        self.d = as_vec3(d)

    @classmethod
    def from_points(cls, points: CurvePoints) -> CubicCurve:
        """Convert from control points (Bernstein basis) to power basis."""
        c = 3.0 * (points.a_tan - points.a)
        b = 3.0 * (points.b_tan - points.a_tan) - c
        return cls(points.b - points.a - c - b, b, c, points.a)

    @classmethod
    def from_control_points(cls, p0: Vec3, p1: Vec3, p2: Vec3, p3: Vec3) -> CubicCurve:
        """Convert the four control points of a Bezier curve to power basis."""
        return cls.from_points(CurvePoints(p0, p1, p2, p3))

    def to_points(self) -> CurvePoints:
        """Convert from power basis to control points."""
        a_tan = _THIRD * self.c + self.d
        b_tan = _THIRD * (self.b + self.c) + a_tan
        return CurvePoints(self.d, a_tan, b_tan, self.a + self.b + self.c + self.d)

    def coefficients(self) -> NDArray[np.float64]:
        """Coefficients as array of shape (4, 3), highest degree first."""
        return np.array([self.a, self.b, self.c, self.d], dtype=np.float64)

    ###########################################################################
    # Evaluation
    ###########################################################################

    def evaluate(self, t: ParamLike) -> NDArray[np.float64]:
        """Point at parameter t, shape (3,) or (n, 3) for an array of t."""
        t = np.asarray(t, dtype=np.float64)[..., None]
        return ((t * self.a + self.b) * t + self.c) * t + self.d

    def derivative1(self, t: ParamLike) -> NDArray[np.float64]:
        """First derivative at parameter t."""
        t = np.asarray(t, dtype=np.float64)[..., None]
        return (3.0 * t * self.a + 2.0 * self.b) * t + self.c

    def derivative2(self, t: ParamLike) -> NDArray[np.float64]:
        """Second derivative at parameter t."""
        t = np.asarray(t, dtype=np.float64)[..., None]
        return 6.0 * t * self.a + 2.0 * self.b

    def speed(self, t: float) -> float:
        """Length of the first derivative at t."""
        return float(np.linalg.norm(self.derivative1(t)))

    def bounding_box(self) -> BoundingBox:
        """Evaluate the axis aligned bounds of the curve on [0, 1].

        Encapsulates both end points and every point where the derivative of one
        coordinate vanishes.
        """
        box = BoundingBox(self.a + self.b + self.c + self.d)
        box.encapsulate(self.d)

        roots: List[float] = []
        for axis in range(3):
            roots.extend(
                PolySolver.find_roots([3.0 * self.a[axis], 2.0 * self.b[axis], self.c[axis]], 0.0, 1.0)
            )
        for t in roots:
            box.encapsulate(self.evaluate(t))
        return box

    ###########################################################################
    # Arc length
    ###########################################################################

    def arc_length(self, t: float = 1.0, order: int = 5) -> float:
        """Arc length from the curve start to parameter t.

        Gauss-Legendre quadrature of the speed over [0, t].

        Args:
            t (float): Upper integration bound. Defaults to 1.0.
            order (int): Quadrature order, 5 or 8. Defaults to 5.

        Returns:
            float: The arc length.

        Raises:
            ValueError: If there is no table for the given order.
        """
        table = LEGENDRE_TABLES.get(order)
        if table is None:
            raise ValueError(f"Unsupported Gauss-Legendre order {order}, use one of {sorted(LEGENDRE_TABLES)}")
        half_t = t * 0.5
        speeds = np.linalg.norm(self.derivative1(half_t * (1.0 + table[:, 1])), axis=1)
        return float(half_t * np.dot(table[:, 0], speeds))

    def arc_length_subdivision(self, t: float = 1.0, depth: int = 3) -> float:
        """Arc length to parameter t by recursive halving of the control polygon.

        Each leaf estimates its length as the mean of chord and control polygon
        length. ``depth`` levels give ``2**(depth-1)`` leaves.
        """
        head, _ = self.to_points().split(t)
        return self._polygon_length(head, depth)

    @classmethod
    def _polygon_length(cls, points: CurvePoints, depth: int) -> float:
        depth -= 1
        if depth <= 0:
            chord = np.linalg.norm(points.b - points.a)
            polygon = (
                np.linalg.norm(points.a_tan - points.a)
                + np.linalg.norm(points.b_tan - points.a_tan)
                + np.linalg.norm(points.b - points.b_tan)
            )
            return float(chord + polygon) * 0.5
        left, right = points.split(0.5)
        return cls._polygon_length(left, depth) + cls._polygon_length(right, depth)

    def parameter_for_arc_length(self, length: float) -> float:
        """Parameter t at which the arc length from the start equals length."""
        return PolySolver.hybrid_newton(0.0, 1.0, lambda t: self.arc_length(t) - length, self.speed)

    def arc_length_polynomial(self) -> Poly:
        """Cubic approximation ``s(t)`` of the arc length, coefficients highest first.

        Interpolates the arc length at t = 1/3, 2/3 and 1 (and s(0) = 0).
        [Walter, Fournier: Approximate Arc Length Parametrization]
        """
        l1 = self.arc_length(_THIRD)
        l2 = self.arc_length(_TWO_THIRDS)
        l3 = self.arc_length(1.0)
        return np.array(
            [
                13.5 * l1 - 13.5 * l2 + 4.5 * l3,
                -22.5 * l1 + 18.0 * l2 - 4.5 * l3,
                9.0 * l1 - 4.5 * l2 + l3,
                0.0,
            ],
            dtype=np.float64,
        )

    def parameter_polynomial(self) -> Poly:
        """Cubic approximation ``t(s)`` of the inverse arc length mapping.

        Interpolates the parameters at s = L/3, 2L/3 and L, L being the total length.
        A curve of zero length gives the zero polynomial.
        """
        length = self.arc_length(1.0)
        if length <= 0:
            return np.zeros(4, dtype=np.float64)
        invl = 1.0 / length
        invll = invl * invl
        t1 = self.parameter_for_arc_length(length * _THIRD)
        t2 = self.parameter_for_arc_length(length * _TWO_THIRDS)
        return np.array(
            [
                (13.5 * t1 - 13.5 * t2 + 4.5) * invll * invl,
                (-22.5 * t1 + 18.0 * t2 - 4.5) * invll,
                (9.0 * t1 - 4.5 * t2 + 1.0) * invl,
                0.0,
            ],
            dtype=np.float64,
        )

    ###########################################################################
    # Closest point
    ###########################################################################

    def closest_point_polynomial(self) -> Poly:
        """Point independent part of ``p'(t) . (p(t) - point)``, degree 5."""
        a, b, c, d = self.a, self.b, self.c, self.d
        return np.array(
            [
                3.0 * np.dot(a, a),
                5.0 * np.dot(a, b),
                4.0 * np.dot(a, c) + 2.0 * np.dot(b, b),
                3.0 * np.dot(a, d) + 3.0 * np.dot(b, c),
                2.0 * np.dot(b, d) + np.dot(c, c),
                np.dot(c, d),
            ],
            dtype=np.float64,
        )

    def closest_point(self, point: Vec3, base_poly: Optional[Poly] = None) -> float:
        """Parameter of the curve point closest to point.

        The candidates are the roots of ``p'(t) . (p(t) - point)`` in [0, 1] plus
        both end points; the one with the smallest distance wins.
        [Chen et al.: Improved Algebraic Algorithm On Point Projection For Bezier Curves]

        Args:
            point (Vec3): The query point.
            base_poly (Poly, optional): Cached result of closest_point_polynomial().

        Returns:
            float: The parameter t in [0, 1].
        """
        point = np.asarray(point, dtype=np.float64)
        poly = np.array(self.closest_point_polynomial() if base_poly is None else base_poly, dtype=np.float64)
        poly[3] -= 3.0 * np.dot(self.a, point)
        poly[4] -= 2.0 * np.dot(self.b, point)
        poly[5] -= np.dot(self.c, point)

        candidates = [0.0, 1.0] + PolySolver.find_roots(poly, 0.0, 1.0)
        distances = np.sum((self.evaluate(np.array(candidates)) - point) ** 2, axis=1)
        return candidates[int(np.argmin(distances))]

    ###########################################################################
    # Shape analysis
    ###########################################################################

    def inflection_point(self) -> Optional[float]:
        """Representative parameter where the speed has an extremum, if any.

        Roots of ``p'(t) . p''(t)`` in [0, 1]: the middle one of three, the midpoint
        of two, a single root as is.
        [Walter, Fournier: Approximate Arc Length Parametrization]
        """
        a, b, c = self.a, self.b, self.c
        poly = [
            18.0 * np.dot(a, a),
            18.0 * np.dot(a, b),
            6.0 * np.dot(a, c) + 4.0 * np.dot(b, b),
            2.0 * np.dot(b, c),
        ]
        roots = sorted(PolySolver.find_roots(poly, 0.0, 1.0))
        if len(roots) > 2:
            return roots[1]
        if len(roots) == 2:
            return (roots[0] + roots[1]) * 0.5
        if len(roots) == 1:
            return roots[0]
        return None

    def split(self, t: float) -> Tuple[CubicCurve, CubicCurve]:
        """Split at parameter t into two curves, each parametrized over [0, 1]."""
        left, right = self.to_points().split(t)
        return CubicCurve.from_points(left), CubicCurve.from_points(right)

    ###########################################################################
    # Orientation
    ###########################################################################

    def base_up_vector(self, t: float) -> Vec3:
        """Up vector without roll.

        Blends the world up towards the second derivative direction, the steeper
        the tangent the more.
        """
        forward = GeomMath.normalize(self.derivative1(t))
        weight = abs(math.asin(min(1.0, max(-1.0, float(np.dot(forward, WORLD_UP))))) / math.pi * 2.0)
        bend = GeomMath.normalize(self.derivative2(t))
        if not bend.any():
            # straight piece
            bend = GeomMath.perpendicular(forward)
        return GeomMath.lerp(WORLD_UP, bend, weight)

    def up_vector(self, t: float, angle_a: float = 0.0, angle_b: float = 0.0) -> Vec3:
        """Up vector at t rolled about the tangent by the angle interpolated from angle_a to angle_b."""
        roll = GeomMath.lerp(angle_a, angle_b, t)
        return GeomMath.rotate_about_axis(self.base_up_vector(t), roll, self.derivative1(t))

    def roll_angle(self, up: Vec3, t: float) -> float:
        """Roll angle (degrees) which turns the base up vector at t into up."""
        return GeomMath.signed_angle(self.base_up_vector(t), up, self.derivative1(t))

    ###########################################################################
    # Polygonize
    ###########################################################################

    def polygonize_python(self, steps: int) -> NDArray[np.float64]:
        """Points at ``steps + 1`` uniform parameters using forward differencing.

        The third difference of a cubic is constant, so every point costs three
        vector additions.
        """
        s = 1.0 / steps
        ss = s * s
        a = self.a * ss * s
        b = self.b * ss

        d1 = a + b + self.c * s
        d2 = 6.0 * a + 2.0 * b
        d3 = 6.0 * a

        result = np.empty((steps + 1, 3), dtype=np.float64)
        point = self.d.copy()
        for i in range(steps + 1):
            result[i] = point
            point = point + d1
            d1 = d1 + d2
            d2 = d2 + d3
        return result

    def polygonize_numpy(self, steps: int) -> NDArray[np.float64]:
        """Points at ``steps + 1`` uniform parameters using direct vectorized evaluation."""
        return self.evaluate(np.linspace(0.0, 1.0, steps + 1, dtype=np.float64))

    def polygonize(self, steps: int) -> NDArray[np.float64]:
        """Polygonize the curve into ``steps`` line segments.

        Uses forward differencing for small step counts, NumPy for larger ones.

        Returns:
            NDArray[np.float64] of shape (steps+1, 3)

        Raises:
            ValueError: If steps is not positive.
        """
        if steps < 1:
            raise ValueError(f"steps must be >= 1, got {steps}")
        if steps < _POLYGONIZE_NUMPY_STEPS:
            return self.polygonize_python(steps)
        return self.polygonize_numpy(steps)

    def __repr__(self):
        return f"CubicCurve(a={self.a.tolist()}, b={self.b.tolist()}, c={self.c.tolist()}, d={self.d.tolist()})"


def main():
    """Main"""
    curve = CubicCurve.from_control_points((0.0, 0.0, 0.0), (0.0, 1.0, 1.0), (1.0, 1.0, 2.0), (1.0, 0.0, 3.0))
    print(curve)
    print("length (Legendre 5):", curve.arc_length())
    print("length (Legendre 8):", curve.arc_length(order=8))
    print("length (subdivision):", curve.arc_length_subdivision(depth=6))
    print("bounds:", curve.bounding_box())
    print("inflection:", curve.inflection_point())


if __name__ == "__main__":
    main()
