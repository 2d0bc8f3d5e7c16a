"""Handling 3D geometry: vector helpers, bounding boxes and orientation samples"""

from __future__ import annotations

import math
from typing import Iterable, Optional, Tuple

import numpy as np
from numpy.typing import NDArray
from scipy.spatial.transform import Rotation

from basicspline.common import NORMALIZE_EPSILON, Vec3, as_vec3


###############################################################################
# GeomMath
###############################################################################
class GeomMath:
    """Class to provide various static methods related to vector handling.

    Angles are given in degrees.
    """

    @staticmethod
    def normalize(vector: Vec3) -> Vec3:
        """Return the unit vector, or the zero vector if vector is (almost) zero."""
        norm = float(np.linalg.norm(vector))
        if norm < NORMALIZE_EPSILON:
            return np.zeros(3, dtype=np.float64)
        return vector / norm

    @classmethod
    def perpendicular(cls, vector: Vec3) -> Vec3:
        """Unit vector perpendicular to vector, built from the world axis least aligned with it."""
        unit = cls.normalize(vector)
        axis = np.zeros(3, dtype=np.float64)
        axis[int(np.argmin(np.abs(unit)))] = 1.0
        return cls.normalize(axis - np.dot(axis, unit) * unit)

    @staticmethod
    def lerp(a, b, t: float):
        """Linear interpolation between a and b (not clamped)."""
        return a + (b - a) * t

    @staticmethod
    def inverse_lerp(a: float, b: float, value: float) -> float:
        """Return the parameter of value between a and b, clamped to [0, 1]."""
        if a == b:
            return 0.0
        return min(1.0, max(0.0, (value - a) / (b - a)))

    @staticmethod
    def lerp_angle(a: float, b: float, t: float) -> float:
        """Interpolate between two angles along the shortest way around the circle."""
        delta = (b - a) % 360.0
        if delta > 180.0:
            delta -= 360.0
        return a + delta * min(1.0, max(0.0, t))

    @classmethod
    def slerp(cls, a: Vec3, b: Vec3, t: float) -> Vec3:
        """Spherical interpolation of direction, linear interpolation of magnitude.

        scipy.spatial.geometric_slerp only handles unit vectors, so the magnitude is
        interpolated here and the direction is rotated separately.

        Args:
            a (Vec3): Start vector.
            b (Vec3): End vector.
            t (float): Interpolation parameter, clamped to [0, 1].

        Returns:
            Vec3: The interpolated vector.
        """
        t = min(1.0, max(0.0, t))
        len_a = float(np.linalg.norm(a))
        len_b = float(np.linalg.norm(b))
        if len_a < NORMALIZE_EPSILON or len_b < NORMALIZE_EPSILON:
            return cls.lerp(a, b, t)

        unit_a = a / len_a
        unit_b = b / len_b
        length = len_a + (len_b - len_a) * t
        cos_omega = min(1.0, max(-1.0, float(np.dot(unit_a, unit_b))))
        omega = math.acos(cos_omega)

        if omega < 1.0e-6:
            return cls.normalize(cls.lerp(unit_a, unit_b, t)) * length

        if math.pi - omega < 1.0e-6:
            # antiparallel: turn around any axis perpendicular to a
            axis = cls.perpendicular(unit_a)
            return cls.rotate_about_axis(unit_a, math.degrees(omega * t), axis) * length

        sin_omega = math.sin(omega)
        direction = (math.sin((1.0 - t) * omega) * unit_a + math.sin(t * omega) * unit_b) / sin_omega
        return direction * length

    @classmethod
    def rotate_about_axis(cls, vector: Vec3, angle: float, axis: Vec3) -> Vec3:
        """Rotate vector by angle (degrees, right-handed) around axis."""
        unit_axis = cls.normalize(axis)
        if not unit_axis.any() or angle == 0:
            return np.array(vector, dtype=np.float64)
        return Rotation.from_rotvec(unit_axis * math.radians(angle)).apply(vector)

    @classmethod
    def signed_angle(cls, from_vector: Vec3, to_vector: Vec3, axis: Vec3) -> float:
        """Angle in degrees rotating from_vector onto to_vector around axis.

        Both vectors are projected onto the plane perpendicular to axis first.
        A zero axis gives the unsigned angle between the vectors.
        """
        unit_axis = cls.normalize(axis)
        if unit_axis.any():
            from_vector = from_vector - unit_axis * np.dot(from_vector, unit_axis)
            to_vector = to_vector - unit_axis * np.dot(to_vector, unit_axis)
            sin_part = float(np.dot(unit_axis, np.cross(from_vector, to_vector)))
        else:
            sin_part = float(np.linalg.norm(np.cross(from_vector, to_vector)))
        return math.degrees(math.atan2(sin_part, float(np.dot(from_vector, to_vector))))

    @staticmethod
    def transform_point(matrix: NDArray[np.float64], point: Vec3) -> Vec3:
        """Apply the 4x4 affine matrix to a point."""
        return matrix[:3, :3] @ point + matrix[:3, 3]

    @staticmethod
    def transform_vector(matrix: NDArray[np.float64], vector: Vec3) -> Vec3:
        """Apply the 4x4 affine matrix to a direction (no translation)."""
        return matrix[:3, :3] @ vector


###############################################################################
# BoundingBox
###############################################################################
class BoundingBox:
    """Axis-aligned 3D box.

    Attributes:
        min (Vec3): The minimum corner.
        max (Vec3): The maximum corner.
    """

    _min: Vec3
    _max: Vec3

    def __init__(self, corner_a, corner_b: Optional[Iterable[float]] = None):
        """Initialize the box from two corners (or a single point).

        Args:
            corner_a: One corner of the box.
            corner_b: The opposite corner. Defaults to corner_a (empty box).
        """
        a = as_vec3(corner_a)
        b = a if corner_b is None else as_vec3(corner_b)
        # Normalize so that min <= max on every axis
        self._min = np.minimum(a, b)
        self._max = np.maximum(a, b)

    @classmethod
    def from_points(cls, points: Iterable[Vec3]) -> BoundingBox:
        """Create the smallest box containing all points."""
        array = np.asarray(list(points), dtype=np.float64).reshape(-1, 3)
        if len(array) == 0:
            raise ValueError("At least one point is required to build a bounding box.")
        return cls(array.min(axis=0), array.max(axis=0))

    @property
    def min(self) -> Vec3:
        """Vec3: The minimum corner."""
        return self._min.copy()

    @property
    def max(self) -> Vec3:
        """Vec3: The maximum corner."""
        return self._max.copy()

    @property
    def center(self) -> Vec3:
        """Vec3: The center of the box."""
        return (self._min + self._max) * 0.5

    @property
    def size(self) -> Vec3:
        """Vec3: The edge lengths of the box."""
        return self._max - self._min

    @property
    def extents(self) -> Vec3:
        """Vec3: Half the size of the box."""
        return self.size * 0.5

    def encapsulate(self, point: Vec3) -> None:
        """Grow the box to include point."""
        self._min = np.minimum(self._min, point)
        self._max = np.maximum(self._max, point)

    def contains(self, point: Vec3, eps: float = 1.0e-9) -> bool:
        """True if point lies inside the box (with tolerance eps)."""
        return bool(np.all(point >= self._min - eps) and np.all(point <= self._max + eps))

    def closest_point(self, point: Vec3) -> Vec3:
        """The point of the box closest to point (point itself if inside)."""
        return np.clip(point, self._min, self._max)

    def distance(self, point: Vec3) -> float:
        """Euclidean distance from point to the box, 0 inside."""
        return float(np.linalg.norm(self.closest_point(point) - point))

    def to_dict(self) -> dict:
        """Convert the box to a dictionary."""
        return {"min": self._min.tolist(), "max": self._max.tolist()}

    @classmethod
    def from_dict(cls, data: dict) -> BoundingBox:
        """Create a BoundingBox from a dictionary."""
        return cls(data.get("min", (0.0, 0.0, 0.0)), data.get("max", (0.0, 0.0, 0.0)))

    def __str__(self):
        return f"BoundingBox(min={self._min.tolist()}, max={self._max.tolist()}, size={self.size.tolist()})"


###############################################################################
# Sample
###############################################################################
class Sample:
    """Position and orientation frame on a curve, stored as local-to-world matrix.

    The matrix columns are right, up, forward and point (homogeneous).
    """

    __slots__ = ("_matrix",)

    def __init__(self, point: Vec3, forward: Vec3, right: Vec3, up: Vec3):
        matrix = np.zeros((4, 4), dtype=np.float64)
        matrix[:3, 0] = right
        matrix[:3, 1] = up
        matrix[:3, 2] = forward
        matrix[:3, 3] = point
        matrix[3, 3] = 1.0
        self._matrix = matrix

    @classmethod
    def from_matrix(cls, matrix: NDArray[np.float64]) -> Sample:
        """Create a sample from a 4x4 local-to-world matrix."""
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape != (4, 4):
            raise ValueError(f"Sample matrix must be 4x4, got shape {matrix.shape}")
        sample = cls.__new__(cls)
        sample._matrix = matrix.copy()
        return sample

    @property
    def local_to_world(self) -> NDArray[np.float64]:
        """NDArray: Copy of the 4x4 local-to-world matrix."""
        return self._matrix.copy()

    @property
    def right(self) -> Vec3:
        """Vec3: The right axis of the frame."""
        return self._matrix[:3, 0].copy()

    @property
    def up(self) -> Vec3:
        """Vec3: The up axis of the frame."""
        return self._matrix[:3, 1].copy()

    @property
    def forward(self) -> Vec3:
        """Vec3: The forward axis of the frame (curve direction)."""
        return self._matrix[:3, 2].copy()

    @property
    def point(self) -> Vec3:
        """Vec3: The position of the frame."""
        return self._matrix[:3, 3].copy()

    @property
    def rotation(self) -> Rotation:
        """The frame orientation with the scale removed."""
        basis = np.column_stack([GeomMath.normalize(self._matrix[:3, i]) for i in range(3)])
        return Rotation.from_matrix(basis)

    def transform(self, matrix: NDArray[np.float64]) -> Sample:
        """Return the sample transformed by the given 4x4 matrix."""
        return Sample.from_matrix(np.asarray(matrix, dtype=np.float64) @ self._matrix)

    def axes(self) -> Tuple[Vec3, Vec3, Vec3]:
        """Return (right, up, forward)."""
        return self.right, self.up, self.forward

    def __repr__(self):
        return f"Sample(point={self.point.tolist()}, forward={self.forward.tolist()}, up={self.up.tolist()})"
