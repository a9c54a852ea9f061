"""
Height-field generation for the flight terrain.

This module builds a square elevation grid with the square-diamond
(midpoint displacement) algorithm and then smooths it with a 3x3 median
filter. NumPy holds the grid; the subdivision itself walks the lattice
point by point because every level depends on the previous one.
"""

import math
from typing import List, Optional, Tuple

import numpy as np
import structlog
from numpy.lib.stride_tricks import sliding_window_view

from ..utils.random import RandomSource, get_random_source
from .errors import InvalidArgumentError

logger = structlog.get_logger()

Coord = Tuple[int, int]


class HeightFieldGenerator:
    """
    Generates fractal height fields using the square-diamond algorithm.

    The grid side is ``2**detail + 1``. Displacement amplitude at each
    subdivision level is ``roughness * step``, so it halves with the step
    size and the result stays self-similar.
    """

    def __init__(
        self,
        detail: int,
        roughness: float,
        random: Optional[RandomSource] = None,
    ):
        """
        Initialize the height-field generator.

        Args:
            detail: Subdivision depth, must be a non-negative integer
            roughness: Displacement amplitude per unit of step size, > 0
            random: Optional zero-argument callable returning floats in [0, 1)

        Raises:
            InvalidArgumentError: If detail or roughness is out of range
        """
        validate_parameters(detail, roughness)

        self.detail = int(detail)
        self.roughness = float(roughness)
        self.size = 2 ** self.detail + 1
        self.max = self.size - 1
        self._random = random if random is not None else get_random_source()

    def _offset(self, scale: float) -> float:
        """Uniform random value in [-scale, +scale]."""
        return self._random() * scale * 2 - scale

    def generate(self) -> np.ndarray:
        """
        Generate a complete, median-filtered height grid.

        Returns:
            Read-only float32 array of shape (size, size), indexed [x, y]
        """
        logger.info(
            "Generating height field",
            detail=self.detail,
            size=self.size,
            roughness=self.roughness,
        )

        # NaN marks cells that the subdivision has not reached yet
        heights = np.full((self.size, self.size), np.nan, dtype=np.float32)

        corner_scale = self.roughness * self.size
        heights[0, 0] = self._offset(corner_scale)
        heights[self.max, 0] = self._offset(corner_scale)
        heights[self.max, self.max] = self._offset(corner_scale)
        heights[0, self.max] = self._offset(corner_scale)

        self._divide(heights, self.max)

        unset = int(np.count_nonzero(np.isnan(heights)))
        if unset:
            raise RuntimeError(f"Height field has {unset} unset cells after subdivision")

        filtered = median_filter_3x3(heights)
        filtered.setflags(write=False)

        logger.info(
            "Height field complete",
            min_height=float(filtered.min()),
            max_height=float(filtered.max()),
        )
        return filtered

    def _divide(self, heights: np.ndarray, step: int) -> None:
        """Run square and diamond passes from ``step`` down to spacing 1."""
        while step // 2 >= 1:
            half = step // 2
            scale = self.roughness * step

            # Square phase: centres of every step x step cell
            for y in range(half, self.max, step):
                for x in range(half, self.max, step):
                    offset = self._offset(scale)
                    heights[x, y] = offset + _average(heights, self._square_neighbors(x, y, half))

            # Diamond phase: remaining lattice points, row offset alternates
            for y in range(0, self.max + 1, half):
                for x in range((y + half) % step, self.max + 1, step):
                    offset = self._offset(scale)
                    heights[x, y] = offset + _average(heights, self._diamond_neighbors(x, y, half))

            step = half

    def _square_neighbors(self, x: int, y: int, half: int) -> List[Coord]:
        """Diagonal neighbours of a square-phase centre."""
        if x < half:
            return [(x + half, y - half), (x + half, y + half)]
        if x > self.max - half:
            return [(x - half, y - half), (x - half, y + half)]
        return [
            (x - half, y - half),
            (x + half, y - half),
            (x + half, y + half),
            (x - half, y + half),
        ]

    def _diamond_neighbors(self, x: int, y: int, half: int) -> List[Coord]:
        """Orthogonal neighbours of a diamond-phase point, clipped to the grid."""
        neighbors = []
        if y - half >= 0:
            neighbors.append((x, y - half))
        if x + half <= self.max:
            neighbors.append((x + half, y))
        if y + half <= self.max:
            neighbors.append((x, y + half))
        if x - half >= 0:
            neighbors.append((x - half, y))
        return neighbors


def _average(heights: np.ndarray, coords: List[Coord]) -> float:
    return sum(float(heights[c]) for c in coords) / len(coords)


def validate_parameters(detail: int, roughness: float) -> None:
    """
    Check terrain parameters before any grid is allocated.

    Raises:
        InvalidArgumentError: If detail is not a non-negative integer or
            roughness is not a finite positive number
    """
    if isinstance(detail, bool) or not isinstance(detail, (int, np.integer)):
        raise InvalidArgumentError(f"detail must be an integer, got {detail!r}")
    if detail < 0:
        raise InvalidArgumentError(f"detail must be >= 0, got {detail}")
    if isinstance(roughness, bool) or not isinstance(roughness, (int, float, np.floating)):
        raise InvalidArgumentError(f"roughness must be a number, got {roughness!r}")
    if not math.isfinite(roughness) or roughness <= 0:
        raise InvalidArgumentError(f"roughness must be > 0, got {roughness}")


def median_filter_3x3(src: np.ndarray) -> np.ndarray:
    """
    Apply a 3x3 median filter to a square grid.

    Interior cells take the median of their 9-cell neighbourhood, edge
    cells of the 6 in-bounds cells and corners of the 4 in-bounds cells.
    Even-sized neighbourhoods average the two middle values.

    Args:
        src: Square 2D array with side >= 2

    Returns:
        New array of the same shape and dtype
    """
    src = np.asarray(src)
    if src.ndim != 2 or src.shape[0] != src.shape[1] or src.shape[0] < 2:
        raise InvalidArgumentError(f"median filter needs a square grid of side >= 2, got {src.shape}")

    N = src.shape[0]
    n = N - 1
    dst = np.empty_like(src)

    if N > 2:
        inner = N - 2
        # Core of the grid
        windows = sliding_window_view(src, (3, 3)).reshape(inner, inner, 9)
        dst[1:n, 1:n] = np.median(windows, axis=-1)

        # Edges
        dst[1:n, 0] = np.median(sliding_window_view(src[:, 0:2], (3, 2)).reshape(inner, 6), axis=-1)
        dst[1:n, n] = np.median(sliding_window_view(src[:, n - 1:], (3, 2)).reshape(inner, 6), axis=-1)
        dst[0, 1:n] = np.median(sliding_window_view(src[0:2, :], (2, 3)).reshape(inner, 6), axis=-1)
        dst[n, 1:n] = np.median(sliding_window_view(src[n - 1:, :], (2, 3)).reshape(inner, 6), axis=-1)

    # Corners
    dst[0, 0] = np.median(src[0:2, 0:2])
    dst[n, 0] = np.median(src[n - 1:, 0:2])
    dst[0, n] = np.median(src[0:2, n - 1:])
    dst[n, n] = np.median(src[n - 1:, n - 1:])

    return dst


def generate_terrain(
    detail: int, roughness: float, random: Optional[RandomSource] = None
) -> np.ndarray:
    """Generate a height grid in one call."""
    return HeightFieldGenerator(detail, roughness, random=random).generate()
