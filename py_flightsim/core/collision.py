"""
Collision detection between a moving viewpoint and the terrain mesh.

The exact test intersects a finite line segment with a triangle using the
triangle's plane and barycentric containment. A KD-tree over the mesh
vertices provides the broad phase: only triangles with a vertex near the
viewpoint are tested exactly.
"""

from typing import List, Optional, Sequence

import numpy as np
import structlog
from scipy.spatial import cKDTree

from .errors import InvalidArgumentError
from .mesh import TerrainMesh

logger = structlog.get_logger()


def ensure_vec4(v: Sequence[float], last: float) -> np.ndarray:
    """
    Return ``v`` as a homogeneous 4-vector.

    A 3-component input gets ``last`` appended. A 4-component input must
    already end in ``last``.

    Raises:
        InvalidArgumentError: On any other length or a mismatched w
    """
    v = np.asarray(v, dtype=np.float64)
    if v.shape == (3,):
        return np.append(v, last)
    if v.shape != (4,) or v[3] != last:
        raise InvalidArgumentError(f"expected a 3-vector or a 4-vector ending in {last}, got {v.tolist()}")
    return v


def intersect_segment_triangle(
    origin: Sequence[float],
    direction: Sequence[float],
    a: Sequence[float],
    b: Sequence[float],
    c: Sequence[float],
) -> Optional[np.ndarray]:
    """
    Intersect the segment ``origin + r * direction`` (0 <= r <= 1) with
    triangle abc.

    Args:
        origin: Segment start point (w = 1 when given 4 components)
        direction: Segment vector (w = 0 when given 4 components)
        a, b, c: Triangle corners (w = 1 when given 4 components)

    Returns:
        The intersection as a 4-vector, or None when the triangle is
        degenerate, the segment is parallel to its plane, or the segment
        misses the triangle.
    """
    p = ensure_vec4(origin, 1.0)
    a = ensure_vec4(a, 1.0)
    b = ensure_vec4(b, 1.0)
    c = ensure_vec4(c, 1.0)
    vec = ensure_vec4(direction, 0.0)

    # Triangle edge vectors
    u = b - a
    v = c - a
    uu, vv, uv = np.dot(u, u), np.dot(v, v), np.dot(u, v)
    tri_scale = uv * uv - uu * vv
    if tri_scale == 0:
        return None

    n = np.append(np.cross(u[:3], v[:3]), 0.0)

    # Where the segment meets the plane of the triangle
    denom = np.dot(n, vec)
    if denom == 0:
        return None
    r = np.dot(n, a - p) / denom
    if r < 0 or r > 1:
        return None
    p = p + r * vec

    # Barycentric containment
    w = p - a
    wv, wu = np.dot(w, v), np.dot(w, u)
    s = (uv * wv - vv * wu) / tri_scale
    t = (uv * wu - uu * wv) / tri_scale
    if s < 0 or t < 0 or s + t > 1:
        return None

    return p


class CollisionDetector:
    """
    Finds where a travel segment crosses the terrain near a position.

    The vertex KD-tree is built once; the mesh is treated as read-only
    afterwards.
    """

    def __init__(self, mesh: TerrainMesh, proximity_radius: float = 0.2, strip: bool = True):
        """
        Initialize the detector.

        Args:
            mesh: Terrain mesh to test against
            proximity_radius: Broad-phase radius around the query position
            strip: Whether the mesh indices form a triangle strip
        """
        if proximity_radius <= 0:
            raise InvalidArgumentError(f"proximity_radius must be > 0, got {proximity_radius}")

        self.vertices = np.asarray(mesh.vertices, dtype=np.float64)
        self.indices = np.asarray(mesh.indices, dtype=np.int64)
        self.proximity_radius = float(proximity_radius)
        self.strip = strip

        inc = 1 if strip else 3
        self._starts = np.arange(0, max(len(self.indices) - 2, 0), inc)
        self._tree = cKDTree(self.vertices[:, :3]) if len(self.vertices) else None

    def nearby_triangles(self, position: Sequence[float]) -> np.ndarray:
        """
        Start offsets (into the index buffer) of triangles with at least
        one vertex within the proximity radius of ``position``.
        """
        if self._tree is None or not len(self._starts):
            return np.zeros(0, dtype=np.int64)

        near_ids = self._tree.query_ball_point(np.asarray(position, dtype=np.float64)[:3], self.proximity_radius)
        if not near_ids:
            return np.zeros(0, dtype=np.int64)

        near = np.zeros(len(self.vertices), dtype=bool)
        near[near_ids] = True
        idx = self.indices
        hit = near[idx[self._starts]] | near[idx[self._starts + 1]] | near[idx[self._starts + 2]]
        return self._starts[hit]

    def intersections(self, position: Sequence[float], direction: Sequence[float]) -> List[np.ndarray]:
        """All intersection points of the travel segment with nearby triangles."""
        position = np.asarray(position, dtype=np.float64)[:3]
        points = []
        for start in self.nearby_triangles(position):
            i, j, k = self.indices[start:start + 3]
            pt = intersect_segment_triangle(
                position, direction, self.vertices[i], self.vertices[j], self.vertices[k]
            )
            if pt is not None:
                points.append(pt)
        return points

    def closest_hit_distance(
        self,
        position: Sequence[float],
        direction: Sequence[float],
        default: float = 1.0,
    ) -> float:
        """
        Distance from ``position`` to the nearest intersection point.

        Returns ``default`` when nothing is hit or when every hit lies
        further away than ``default``.
        """
        position = np.asarray(position, dtype=np.float64)[:3]
        closest = default
        for pt in self.intersections(position, direction):
            closest = min(closest, float(np.linalg.norm(pt[:3] - position)))
        return closest
