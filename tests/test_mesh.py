"""Test module for basicspline.mesh

The tests are run using pytest.
"""

import numpy as np
import pytest

from basicspline.mesh import SplineMesh
from basicspline.spline import Spline


@pytest.fixture
def line_spline():
    """Straight spline along +x, two segments."""
    return Spline.from_points([(0.0, 0.0, 0.0), (3.0, 0.0, 0.0), (6.0, 0.0, 0.0)])


class TestBuildRibbon:
    """Ribbon vertices, normals and triangles."""

    def test_counts(self, line_spline):
        """Two vertices per sample, six indices per quad."""
        vertices, normals, indices = SplineMesh.build_ribbon(line_spline, width=2.0, subdivision=4)
        assert vertices.shape == (20, 3)
        assert normals.shape == (20, 3)
        assert indices.shape == (54,)
        assert indices.dtype == np.int64
        assert indices.max() == 19

    def test_triangle_pattern(self, line_spline):
        """(i, i+2, i+1) and (i+2, i+3, i+1) per quad."""
        _, _, indices = SplineMesh.build_ribbon(line_spline, width=2.0, subdivision=4)
        assert list(indices[:12]) == [0, 2, 1, 2, 3, 1, 2, 4, 3, 4, 5, 3]

    def test_width_and_normals(self, line_spline):
        """Vertices are offset sideways by half the width, normals point up."""
        vertices, normals, _ = SplineMesh.build_ribbon(line_spline, width=2.0, subdivision=4)
        assert np.allclose(np.abs(vertices[:, 2]), 1.0)
        assert np.allclose(vertices[:, 1], 0.0)
        assert np.allclose(normals, [0.0, 1.0, 0.0])
        # the pair of a sample straddles the curve point
        assert np.allclose((vertices[0] + vertices[1]) * 0.5, [0.0, 0.0, 0.0])

    def test_matrix(self, line_spline):
        """The optional matrix moves the ribbon."""
        matrix = np.eye(4)
        matrix[:3, 3] = (0.0, 5.0, 0.0)
        vertices, _, _ = SplineMesh.build_ribbon(line_spline, width=2.0, subdivision=4, matrix=matrix)
        assert np.allclose(vertices[:, 1], 5.0)

    def test_invalid_subdivision(self, line_spline):
        """At least one step per segment."""
        with pytest.raises(ValueError):
            SplineMesh.build_ribbon(line_spline, width=1.0, subdivision=0)
