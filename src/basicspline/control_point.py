"""Spline control points with tangent handles and roll angle."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from basicspline.common import TangentMode, Vec3, as_vec3


###############################################################################
# ControlPoint
###############################################################################
@dataclass(eq=False)
class ControlPoint:
    """Anchor of a spline with two tangent handles.

    Tangents are absolute positions, not offsets. Moving the point moves both
    tangents along with it.

    Attributes:
        point (Vec3): Position of the anchor.
        in_tangent (Vec3): Handle controlling the curve arriving at the point.
        out_tangent (Vec3): Handle controlling the curve leaving the point.
        angle (float): Roll angle in degrees about the curve direction.
        tangent_mode (TangentMode): How set_tangent() treats the opposite handle.
    """

    point: Vec3
    in_tangent: Vec3
    out_tangent: Vec3
    angle: float = 0.0
    tangent_mode: TangentMode = field(default=TangentMode.FREE)

    def __post_init__(self):
        self.point = as_vec3(self.point)
        self.in_tangent = as_vec3(self.in_tangent)
        self.out_tangent = as_vec3(self.out_tangent)
        self.angle = float(self.angle)

    def copy(self) -> ControlPoint:
        """Independent copy (the vectors are copied as well)."""
        return ControlPoint(self.point, self.in_tangent, self.out_tangent, self.angle, self.tangent_mode)

    def set_tangent(self, tangent: Vec3, is_in_tangent: bool, mode: Optional[TangentMode] = None) -> None:
        """Move one tangent handle.

        In LOCK mode the opposite handle is mirrored through the point so that both
        handles stay collinear and equidistant.

        Args:
            tangent (Vec3): New absolute position of the handle.
            is_in_tangent (bool): True to move the in tangent, False for the out tangent.
            mode (TangentMode, optional): Overrides tangent_mode for this call.
        """
        tangent = as_vec3(tangent)
        mode = self.tangent_mode if mode is None else mode
        mirrored = 2.0 * self.point - tangent
        if is_in_tangent:
            self.in_tangent = tangent
            if mode is TangentMode.LOCK:
                self.out_tangent = mirrored
        else:
            self.out_tangent = tangent
            if mode is TangentMode.LOCK:
                self.in_tangent = mirrored

    def set(self, point: Vec3) -> None:
        """Move the point (with tangents) to the given position."""
        self.move(as_vec3(point) - self.point)

    def move(self, delta: Vec3) -> None:
        """Move the point (with tangents) by delta."""
        delta = as_vec3(delta)
        self.point = self.point + delta
        self.in_tangent = self.in_tangent + delta
        self.out_tangent = self.out_tangent + delta

    def transformed(self, matrix) -> ControlPoint:
        """Copy with point and tangents mapped by a 4x4 affine matrix."""
        matrix = np.asarray(matrix, dtype=np.float64)
        rot, offset = matrix[:3, :3], matrix[:3, 3]
        return ControlPoint(
            rot @ self.point + offset,
            rot @ self.in_tangent + offset,
            rot @ self.out_tangent + offset,
            self.angle,
            self.tangent_mode,
        )

    def __eq__(self, other):
        """Positions and tangents must match exactly, angle and mode are ignored."""
        if not isinstance(other, ControlPoint):
            return NotImplemented
        return bool(
            np.array_equal(self.point, other.point)
            and np.array_equal(self.in_tangent, other.in_tangent)
            and np.array_equal(self.out_tangent, other.out_tangent)
        )

    def to_dict(self) -> dict:
        """Convert the control point to a dictionary for serialization."""
        return {
            "point": self.point.tolist(),
            "in_tangent": self.in_tangent.tolist(),
            "out_tangent": self.out_tangent.tolist(),
            "angle": self.angle,
            "tangent_mode": self.tangent_mode.name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ControlPoint:
        """Create a ControlPoint from a dictionary.

        Missing tangents default to the point itself.
        """
        point = data["point"]
        return cls(
            point=point,
            in_tangent=data.get("in_tangent", point),
            out_tangent=data.get("out_tangent", point),
            angle=data.get("angle", 0.0),
            tangent_mode=TangentMode[data.get("tangent_mode", TangentMode.FREE.name)],
        )
