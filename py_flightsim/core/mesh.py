"""
Triangle-strip mesh construction and vertex normal estimation.

The mesh is drawn as a single GL triangle strip. Rows of the height grid
are joined pairwise and consecutive row pairs are stitched together with
two repeated indices, producing zero-area triangles that keep the strip
connected. Those degenerate triangles stay in the index list; the normal
pass and the collision test both tolerate them.
"""

from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import structlog

from .errors import InvalidArgumentError

logger = structlog.get_logger()


@dataclass
class TerrainMesh:
    """Vertex and index buffers for one or more height grids.

    ``vertices`` is an (N, 4) array of homogeneous points (w = 1) and
    ``indices`` is a flat uint32 array read as a triangle strip.
    """

    vertices: np.ndarray = field(default_factory=lambda: np.zeros((0, 4), dtype=np.float32))
    indices: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.uint32))

    @property
    def vertex_count(self) -> int:
        return len(self.vertices)

    @property
    def index_count(self) -> int:
        return len(self.indices)

    def height_range(self) -> float:
        """Difference between the highest and lowest vertex elevation."""
        if self.vertex_count == 0:
            return 0.0
        heights = self.vertices[:, 1]
        return float(heights.max() - heights.min())


def build_mesh(grid: np.ndarray, base: Optional[TerrainMesh] = None) -> TerrainMesh:
    """
    Generate a triangle-strip mesh from a 2D height grid.

    Vertex (i, j) is placed at x = 2i/(n-1) - 1, y = grid[i, j],
    z = 2j/(m-1) - 1. When ``base`` is given its buffers come first and
    the new indices are offset by its vertex count, so several grids can
    share one vertex buffer.

    Args:
        grid: 2D array with at least 2 rows and 2 columns
        base: Optional existing mesh to append to

    Returns:
        New TerrainMesh; ``base`` is left untouched
    """
    grid = np.asarray(grid)
    if grid.ndim != 2 or grid.shape[0] < 2 or grid.shape[1] < 2:
        raise InvalidArgumentError(f"mesh grid must be 2D with at least 2x2 points, got {grid.shape}")
    if base is None:
        base = TerrainMesh()

    off = base.vertex_count
    n, m = grid.shape

    # Just the vertices
    xs = 2 * np.arange(n) / (n - 1) - 1
    zs = 2 * np.arange(m) / (m - 1) - 1
    vertices = np.empty((n * m, 4), dtype=np.float32)
    vertices[:, 0] = np.repeat(xs, m)
    vertices[:, 1] = grid.ravel()
    vertices[:, 2] = np.tile(zs, n)
    vertices[:, 3] = 1.0

    # Rows of the strip, stitched between row pairs
    columns = np.arange(m)
    rows = []
    for i in range(n - 1):
        pairs = np.empty(2 * m, dtype=np.int64)
        pairs[0::2] = off + i * m + columns
        pairs[1::2] = off + (i + 1) * m + columns
        rows.append(pairs)
        if i < n - 2:
            rows.append(np.array([off + (i + 2) * m - 1, off + (i + 1) * m], dtype=np.int64))
    indices = np.concatenate(rows).astype(np.uint32)

    logger.debug(
        "Mesh built", rows=n, columns=m, vertices=len(vertices), indices=len(indices), offset=off
    )

    return TerrainMesh(
        vertices=np.concatenate([base.vertices.astype(np.float32), vertices]),
        indices=np.concatenate([base.indices.astype(np.uint32), indices]),
    )


def expected_index_count(n: int, m: int) -> int:
    """Number of strip indices build_mesh emits for an n x m grid."""
    return 2 * m * (n - 1) + 2 * (n - 2)


def calc_normals(vertices: np.ndarray, indices: np.ndarray, strip: bool = True) -> np.ndarray:
    """
    Calculate per-vertex normals from a vertex and index buffer.

    Face normals are accumulated un-normalised on every vertex of the face
    and each sum is normalised at the end. By default the indices are read
    as a triangle strip, where odd triangles flip their first edge to keep
    the winding consistent; pass ``strip=False`` for a plain triangle list.
    Vertices without any non-degenerate face keep a zero normal.

    Args:
        vertices: (N, 3) or (N, 4) array of points
        indices: Flat integer array into ``vertices``
        strip: Whether ``indices`` is a triangle strip

    Returns:
        (N, 4) float32 array of normals with w = 0
    """
    vertices = np.asarray(vertices, dtype=np.float64)
    indices = np.asarray(indices, dtype=np.int64)
    if vertices.ndim != 2 or vertices.shape[1] not in (3, 4):
        raise InvalidArgumentError(f"vertices must be (N, 3) or (N, 4), got {vertices.shape}")
    if indices.size and (indices.min() < 0 or indices.max() >= len(vertices)):
        raise InvalidArgumentError("index out of range for vertex buffer")

    normals = np.zeros((len(vertices), 4), dtype=np.float64)

    inc = 1 if strip else 3
    starts = np.arange(0, len(indices) - 2, inc)
    if len(starts):
        j, k, l = indices[starts], indices[starts + 1], indices[starts + 2]
        a, b, c = vertices[j, :3], vertices[k, :3], vertices[l, :3]

        first_edge = b - a
        if strip:
            odd = (starts % 2) == 1
            first_edge[odd] = (a - b)[odd]
        face_norms = np.cross(first_edge, a - c)

        for corner in (j, k, l):
            np.add.at(normals[:, :3], corner, face_norms)

    # Normalise, leaving untouched vertices at zero
    lengths = np.linalg.norm(normals, axis=1)
    nonzero = lengths > 0
    normals[nonzero] /= lengths[nonzero, np.newaxis]

    return normals.astype(np.float32)
