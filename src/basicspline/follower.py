"""Cursor moving along a spline at a given speed."""

from __future__ import annotations

import math
from typing import Optional, Union

import numpy as np

from basicspline.common import Vec3
from basicspline.geom import Sample


###############################################################################
# SplineFollower
###############################################################################
class SplineFollower:
    """Moves a position along a spline, one update() per time step.

    In normal mode the travelled arc length is advanced and looked up on every
    update. Fast mode instead advances the curve parameter of the current segment
    by ``dt * speed / |p'(t)|`` and accumulates the distance from the positional
    change, which avoids arc length inversion at the price of drift at high speed.

    Works with Spline and TransformedSpline.
    """

    # pylint: disable=too-many-instance-attributes

    def __init__(
        # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        path,
        speed: float = 1.0,
        distance: float = 0.0,
        apply_rotation: bool = True,
        fast_mode: bool = False,
    ):
        """Initialize the follower.

        Args:
            path: Spline or TransformedSpline to follow.
            speed (float): Arc length per time unit, negative to move backwards.
            distance (float): Start arc length.
            apply_rotation (bool): Produce samples (True) or plain points (False).
            fast_mode (bool): Advance in parameter space instead of arc length.
        """
        self.path = path
        self.speed = speed
        self.distance = distance
        self.apply_rotation = apply_rotation
        self.fast_mode = fast_mode

        self._last_distance: Optional[float] = None
        self._segment_index = 0
        self._t = 0.0
        self._position: Optional[Vec3] = None

    @property
    def segment_index(self) -> int:
        """int: Segment the follower was placed on by the last fast mode update."""
        return self._segment_index

    @property
    def t(self) -> float:
        """float: Curve parameter inside the current segment (fast mode)."""
        return self._t

    @property
    def position(self) -> Optional[Vec3]:
        """Position after the last update, None before the first one."""
        return None if self._position is None else self._position.copy()

    def update(self, dt: float) -> Union[Sample, Vec3]:
        """Advance by one time step.

        Returns:
            Sample if apply_rotation is set, otherwise the position.
        """
        if self.fast_mode:
            return self._update_fast(dt)

        self.distance += dt * self.speed
        self._clamp_distance()
        if self.apply_rotation:
            sample = self.path.get_sample(self.distance)
            self._position = sample.point
            return sample
        self._position = self.path.get_point(self.distance)
        return self._position.copy()

    def _update_fast(self, dt: float) -> Union[Sample, Vec3]:
        if self._last_distance != self.distance:
            # placed (or moved) from outside: look the parameter up once
            self._segment_index, segment_distance = self.path.get_segment_at_distance(self.distance)
            self._t = self.path.get_segment(self._segment_index).parameter_for_arc_length(segment_distance)
            result = self._at_segment()
            self._last_distance = self.distance
            return result

        speed = float(np.linalg.norm(self.path.get_segment(self._segment_index).d1(min(1.0, max(0.0, self._t)))))
        if speed > 0:
            self._t += dt * self.speed / speed
        self._update_segment()

        last_position = self._position
        result = self._at_segment()
        if last_position is not None:
            self.distance += float(np.linalg.norm(self._position - last_position)) * math.copysign(1.0, self.speed)

        self._clamp_distance()
        self._last_distance = self.distance
        return result

    def _update_segment(self) -> None:
        if 0.0 <= self._t <= 1.0:
            return
        count = self.path.segment_count
        next_index = self._segment_index + math.floor(self._t)

        if self.path.loop:
            self._segment_index = next_index % count
            self._t = self._t % 1.0
        elif next_index < 0:
            self._segment_index = 0
            self._t = 0.0
        elif next_index > count - 1:
            self._segment_index = count - 1
            self._t = 1.0
        else:
            self._segment_index = next_index
            self._t = self._t % 1.0

    def _at_segment(self) -> Union[Sample, Vec3]:
        segment = self.path.get_segment(self._segment_index)
        if self.apply_rotation:
            sample = segment.sample(self._t)
            self._position = sample.point
            return sample
        self._position = segment.point(self._t)
        return self._position.copy()

    def _clamp_distance(self) -> None:
        if not self.path.loop:
            self.distance = min(max(self.distance, 0.0), self.path.length)
