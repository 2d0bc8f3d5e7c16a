"""Central module containing constants and definitions for spline geometry."""

from __future__ import annotations

import os
import sys
from enum import Enum, auto

import numpy as np
from numpy.typing import NDArray

###############################################################################
# Types
###############################################################################


Vec3 = NDArray[np.float64]  # 3D vector, shape (3,)
Poly = NDArray[np.float64]  # polynomial coefficients, highest degree first


###############################################################################
# Enums and Consts
###############################################################################


class TangentMode(Enum):
    """Enum to define how editing one tangent affects the other one."""

    FREE = auto()  # tangents are edited independently
    LOCK = auto()  # tangents stay collinear and mirrored through the point

    def next(self) -> TangentMode:
        """Cycle to the following mode."""
        modes = list(TangentMode)
        return modes[(modes.index(self) + 1) % len(modes)]


# Root isolation: interval width at which a root cluster is reported by its midpoint
ROOT_TOLERANCE: float = 1.0e-3

# Hybrid Newton-bisection
NEWTON_TOLERANCE: float = 1.0e-4
NEWTON_MAX_ITERATIONS: int = 100

# Leading coefficients at or below this fraction of the largest one are rounding noise
LEADING_COEFFICIENT_EPSILON: float = 1.0e-10

# Vectors shorter than this are treated as zero vectors when normalizing
NORMALIZE_EPSILON: float = 1.0e-5

# Number of segments evaluated exactly in a spline closest-point query
CLOSEST_SEGMENT_CANDIDATES: int = 3

WORLD_UP: Vec3 = np.array([0.0, 1.0, 0.0], dtype=np.float64)

# Gauss-Legendre quadrature on [-1, 1] as (weight, abscissa) rows
# https://pomax.github.io/bezierinfo/legendre-gauss.html
LEGENDRE_5: NDArray[np.float64] = np.array(
    [
        [0.5688888888888889, 0.0000000000000000],
        [0.4786286704993665, -0.5384693101056831],
        [0.4786286704993665, 0.5384693101056831],
        [0.2369268850561891, -0.9061798459386640],
        [0.2369268850561891, 0.9061798459386640],
    ],
    dtype=np.float64,
)

LEGENDRE_8: NDArray[np.float64] = np.array(
    [
        [0.3626837833783620, -0.1834346424956498],
        [0.3626837833783620, 0.1834346424956498],
        [0.3137066458778873, -0.5255324099163290],
        [0.3137066458778873, 0.5255324099163290],
        [0.2223810344533745, -0.7966664774136267],
        [0.2223810344533745, 0.7966664774136267],
        [0.1012285362903763, -0.9602898564975363],
        [0.1012285362903763, 0.9602898564975363],
    ],
    dtype=np.float64,
)

LEGENDRE_TABLES = {5: LEGENDRE_5, 8: LEGENDRE_8}


###############################################################################
# Functions
###############################################################################


def as_vec3(value) -> Vec3:
    """Convert the given value into a fresh float64 array of shape (3,).

    Raises:
        ValueError: If the value does not hold exactly three numbers.
    """
    vec = np.array(value, dtype=np.float64).reshape(-1)
    if vec.shape != (3,):
        raise ValueError(f"Expected a 3D vector, got shape {np.shape(value)}")
    return vec


def main() -> None:
    """Display system information and the configured constants."""
    print("sys.path:  ", sys.path)
    print()
    print("PYTHONPATH:", os.environ.get("PYTHONPATH", ""))
    print()
    print()

    print(TangentMode.FREE, TangentMode.FREE.value)
    print(TangentMode.LOCK, TangentMode.LOCK.value)
    print("ROOT_TOLERANCE:  ", ROOT_TOLERANCE)
    print("NEWTON_TOLERANCE:", NEWTON_TOLERANCE)

    print()


if __name__ == "__main__":
    main()
