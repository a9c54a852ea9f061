"""
4x4 homogeneous transform constructors.

Angles are in degrees. Matrices act on column vectors, so ``a @ b``
applies ``b`` first. ``flatten`` produces the column-major float32 layout
GL expects for ``glUniformMatrix4fv`` with ``transpose=False``.
"""

import math

import numpy as np


def rotate_x(theta: float) -> np.ndarray:
    """Rotation about the x axis."""
    c, s = math.cos(math.radians(theta)), math.sin(math.radians(theta))
    return np.array(
        [
            [1.0, 0.0, 0.0, 0.0],
            [0.0, c, -s, 0.0],
            [0.0, s, c, 0.0],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )


def rotate_y(theta: float) -> np.ndarray:
    """Rotation about the y axis."""
    c, s = math.cos(math.radians(theta)), math.sin(math.radians(theta))
    return np.array(
        [
            [c, 0.0, s, 0.0],
            [0.0, 1.0, 0.0, 0.0],
            [-s, 0.0, c, 0.0],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )


def rotate_z(theta: float) -> np.ndarray:
    """Rotation about the z axis."""
    c, s = math.cos(math.radians(theta)), math.sin(math.radians(theta))
    return np.array(
        [
            [c, -s, 0.0, 0.0],
            [s, c, 0.0, 0.0],
            [0.0, 0.0, 1.0, 0.0],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )


def translate(x: float, y: float, z: float) -> np.ndarray:
    m = np.eye(4)
    m[:3, 3] = (x, y, z)
    return m


def scale(x: float, y: float, z: float) -> np.ndarray:
    return np.diag([x, y, z, 1.0])


def perspective(fovy: float, aspect: float, near: float, far: float) -> np.ndarray:
    """
    Perspective projection looking down -z.

    Args:
        fovy: Vertical field of view in degrees
        aspect: Viewport width / height
        near: Distance to the near clipping plane
        far: Distance to the far clipping plane
    """
    f = 1.0 / math.tan(math.radians(fovy) / 2)
    d = far - near
    return np.array(
        [
            [f / aspect, 0.0, 0.0, 0.0],
            [0.0, f, 0.0, 0.0],
            [0.0, 0.0, -(near + far) / d, -2 * near * far / d],
            [0.0, 0.0, -1.0, 0.0],
        ]
    )


def flatten(matrix: np.ndarray) -> np.ndarray:
    """Column-major float32 copy of a matrix for uniform upload."""
    return np.asarray(matrix, dtype=np.float32).flatten(order="F")
