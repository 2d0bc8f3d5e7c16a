"""Triangle strip geometry following a spline."""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np
from numpy.typing import NDArray


class SplineMesh:
    """Utility class for building flat ribbon meshes along a spline."""

    @staticmethod
    def build_ribbon(
        spline,
        width: float,
        subdivision: int = 30,
        matrix: Optional[NDArray[np.float64]] = None,
    ) -> Tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.int64]]:
        """Build a ribbon of the given width centred on the spline.

        Every segment is sampled ``subdivision + 1`` times. Each sample contributes
        a vertex pair offset along its right vector; consecutive pairs form two
        triangles. Samples are kept per segment so the end of one segment and the
        start of the next are separate vertex pairs at the same place.

        Args:
            spline: Spline (or anything with iterate_segments()) to follow.
            width (float): Ribbon width.
            subdivision (int): Parameter steps per segment. Defaults to 30.
            matrix (NDArray, optional): 4x4 matrix applied to every sample.

        Returns:
            Tuple of vertices (n, 3), normals (n, 3) and triangle indices (m,).

        Raises:
            ValueError: If subdivision is not positive.
        """
        if subdivision < 1:
            raise ValueError(f"subdivision must be >= 1, got {subdivision}")

        half_width = width * 0.5
        vertices = []
        normals = []
        for segment in spline.iterate_segments():
            for sample in segment.iterate_samples(subdivision):
                if matrix is not None:
                    sample = sample.transform(matrix)
                point, right, up = sample.point, sample.right, sample.up
                vertices.append(point - half_width * right)
                vertices.append(point + half_width * right)
                normals.append(up)
                normals.append(up)

        quads = len(vertices) // 2 - 1
        indices = np.empty(max(quads, 0) * 6, dtype=np.int64)
        for i in range(max(quads, 0)):
            index = i * 2
            indices[i * 6 : i * 6 + 6] = (index, index + 2, index + 1, index + 2, index + 3, index + 1)

        return (
            np.asarray(vertices, dtype=np.float64).reshape(-1, 3),
            np.asarray(normals, dtype=np.float64).reshape(-1, 3),
            indices,
        )
