"""Tests for triangle-strip mesh construction and normal estimation."""

import pytest
import numpy as np
from py_flightsim.core import TerrainMesh, build_mesh, calc_normals, generate_terrain
from py_flightsim.core.errors import InvalidArgumentError
from py_flightsim.core.mesh import expected_index_count
from py_flightsim.utils.random import get_random_source


def face_normal(a, b, c, odd):
    """Face normal with the strip winding rule."""
    first = (a - b) if odd else (b - a)
    return np.cross(first, a - c)


class TestBuildMesh:
    """Test vertex and index generation."""

    @pytest.mark.parametrize("n,m", [(2, 2), (3, 3), (5, 5), (4, 3), (9, 9)])
    def test_counts(self, n, m):
        """Test vertex and index counts for an n x m grid."""
        mesh = build_mesh(np.zeros((n, m)))

        assert mesh.vertex_count == n * m
        assert mesh.index_count == 2 * m * (n - 1) + 2 * (n - 2)
        assert mesh.index_count == expected_index_count(n, m)
        assert mesh.indices.max() < n * m
        assert mesh.indices.dtype == np.uint32

    def test_strip_layout(self):
        """Test the exact strip for a 3x3 grid."""
        mesh = build_mesh(np.zeros((3, 3)))

        expected = [0, 3, 1, 4, 2, 5, 5, 3, 3, 6, 4, 7, 5, 8]
        assert mesh.indices.tolist() == expected

    def test_vertex_positions(self):
        """Test that vertices map grid indices onto [-1, 1]."""
        grid = np.arange(9, dtype=np.float32).reshape(3, 3)
        mesh = build_mesh(grid)

        np.testing.assert_allclose(mesh.vertices[0], [-1, 0, -1, 1])
        np.testing.assert_allclose(mesh.vertices[4], [0, 4, 0, 1])
        np.testing.assert_allclose(mesh.vertices[5], [0, 5, 1, 1])
        np.testing.assert_allclose(mesh.vertices[8], [1, 8, 1, 1])
        assert np.all(mesh.vertices[:, 3] == 1)
        np.testing.assert_array_equal(mesh.vertices[:, 1], grid.ravel())

    def test_append_to_existing_mesh(self):
        """Test that a second grid is offset into the shared buffers."""
        first = build_mesh(np.zeros((3, 3)))
        second = build_mesh(np.ones((3, 3)), base=first)

        assert second.vertex_count == 18
        assert second.index_count == 2 * first.index_count
        np.testing.assert_array_equal(second.vertices[:9], first.vertices)
        np.testing.assert_array_equal(second.indices[first.index_count:], first.indices + 9)
        assert second.indices.max() < second.vertex_count
        # The base mesh is left alone
        assert first.vertex_count == 9

    def test_height_range(self):
        """Test the elevation range reported to the shading stage."""
        grid = np.array([[0.0, -0.25], [0.5, 0.1]])
        mesh = build_mesh(grid)

        assert mesh.height_range() == pytest.approx(0.75)
        assert TerrainMesh().height_range() == 0.0

    @pytest.mark.parametrize("shape", [(1, 4), (4, 1), (4,)])
    def test_rejects_small_grids(self, shape):
        """Test that grids without two rows and columns are rejected."""
        with pytest.raises(InvalidArgumentError):
            build_mesh(np.zeros(shape))


class TestCalcNormals:
    """Test vertex normal estimation."""

    @pytest.fixture
    def terrain_mesh(self):
        """Create a mesh from generated terrain."""
        heights = generate_terrain(4, 0.003, random=get_random_source(99))
        return build_mesh(heights)

    def test_flat_grid_points_up(self):
        """Test that a flat grid has +y normals everywhere."""
        mesh = build_mesh(np.zeros((5, 5)))
        normals = calc_normals(mesh.vertices, mesh.indices)

        assert normals.shape == (25, 4)
        np.testing.assert_allclose(normals, np.tile([0, 1, 0, 0], (25, 1)), atol=1e-6)

    def test_unit_length(self, terrain_mesh):
        """Test that every terrain normal has unit length."""
        normals = calc_normals(terrain_mesh.vertices, terrain_mesh.indices)

        lengths = np.linalg.norm(normals, axis=1)
        np.testing.assert_allclose(lengths, 1.0, atol=1e-5)
        assert np.all(normals[:, 3] == 0)

    def test_consistent_with_winding(self, terrain_mesh):
        """Test that normals agree with recomputed strip face normals."""
        vertices = terrain_mesh.vertices[:, :3].astype(np.float64)
        indices = terrain_mesh.indices.astype(np.int64)
        normals = calc_normals(terrain_mesh.vertices, terrain_mesh.indices)

        # Gentle terrain: every real face faces up
        assert np.all(normals[:, 1] > 0)
        for i in range(len(indices) - 2):
            j, k, l = indices[i:i + 3]
            face = face_normal(vertices[j], vertices[k], vertices[l], i % 2 == 1)
            if np.linalg.norm(face) == 0:
                continue
            assert face[1] > 0
            for v in (j, k, l):
                assert np.dot(face, normals[v, :3]) > 0

    def test_alternating_winding_on_single_quad(self):
        """Test that even and odd strip triangles both face up."""
        vertices = np.array([
            [-1, 0, -1, 1],
            [-1, 0, 1, 1],
            [1, 0, -1, 1],
            [1, 0, 1, 1],
        ], dtype=np.float32)
        indices = np.array([0, 2, 1, 3])

        normals = calc_normals(vertices, indices)

        np.testing.assert_allclose(normals, np.tile([0, 1, 0, 0], (4, 1)), atol=1e-6)

    def test_triangle_list(self):
        """Test plain triangle lists with stride 3."""
        vertices = np.array([[0, 0, 0], [1, 0, 0], [0, 0, 1]], dtype=np.float64)
        normals = calc_normals(vertices, [0, 1, 2], strip=False)

        np.testing.assert_allclose(normals, np.tile([0, 1, 0, 0], (3, 1)))

    def test_untouched_vertex_stays_zero(self):
        """Test that a vertex outside every face keeps a zero normal."""
        vertices = np.array([[0, 0, 0], [1, 0, 0], [0, 0, 1], [5, 5, 5]], dtype=np.float64)
        normals = calc_normals(vertices, [0, 1, 2], strip=False)

        np.testing.assert_array_equal(normals[3], [0, 0, 0, 0])

    def test_degenerate_triangles_contribute_nothing(self):
        """Test that repeated-index triangles give zero vectors, not NaN."""
        vertices = np.array([[0, 0, 0], [1, 0, 0]], dtype=np.float64)
        normals = calc_normals(vertices, [0, 0, 1, 1])

        assert not np.any(np.isnan(normals))
        np.testing.assert_array_equal(normals, np.zeros((2, 4)))

    def test_stitch_triangles_do_not_change_normals(self):
        """Test that stitch triangles add nothing to the accumulation."""
        mesh = build_mesh(np.zeros((4, 4)))
        normals = calc_normals(mesh.vertices, mesh.indices)

        assert not np.any(np.isnan(normals))
        np.testing.assert_allclose(normals[:, 1], 1.0, atol=1e-6)

    def test_out_of_range_index(self):
        """Test that indices past the vertex buffer are rejected."""
        vertices = np.zeros((3, 4))
        with pytest.raises(InvalidArgumentError):
            calc_normals(vertices, [0, 1, 3])
