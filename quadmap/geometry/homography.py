from __future__ import annotations

import logging
import math
from typing import Sequence

import numpy as np

logger = logging.getLogger(__name__)

Point2D = tuple[float, float]
Quad = tuple[Point2D, Point2D, Point2D, Point2D]

# normalised 8x8 system: pivot must exceed PIVOT_EPS * max|A|
PIVOT_EPS = 1e-10
# |w| <= DENOMINATOR_EPS * (|g*x| + |h*y| + |i|) is treated as w == 0
DENOMINATOR_EPS = 1e-12


class DegenerateConfigurationError(ValueError):
    """The four correspondences do not admit a unique projective solution."""


class OutOfDomainError(ArithmeticError):
    """The point lies on the vanishing line of the transform."""


def as_quad(points: Sequence[Sequence[float]]) -> Quad:
    """
    Normalise four (x, y) pairs (list, tuple or (4, 2) array) into a Quad.
    Order is kept as given: clockwise from top-left by convention.
    """
    if len(points) != 4:
        raise ValueError(f"A quad needs exactly 4 points, got {len(points)}.")
    quad = []
    for p in points:
        if len(p) != 2:
            raise ValueError(f"Quad points must be (x, y) pairs, got {p!r}.")
        x, y = float(p[0]), float(p[1])
        if not (math.isfinite(x) and math.isfinite(y)):
            raise ValueError(f"Quad point ({x}, {y}) is not finite.")
        quad.append((x, y))
    return tuple(quad)  # type: ignore[return-value]


def _normalizer(quad: Quad) -> tuple[np.ndarray, np.ndarray]:
    """
    Hartley normalisation: centroid to the origin, mean distance sqrt(2).
    Returns (T, T^-1).
    """
    pts = np.array(quad, dtype=np.float64)
    cx, cy = pts.mean(axis=0)
    mean_dist = float(np.hypot(pts[:, 0] - cx, pts[:, 1] - cy).mean())
    if mean_dist == 0.0:
        raise DegenerateConfigurationError(f"All four points of {quad} coincide.")
    s = math.sqrt(2.0) / mean_dist
    t = np.array([[s, 0.0, -s * cx], [0.0, s, -s * cy], [0.0, 0.0, 1.0]])
    t_inv = np.array([[1.0 / s, 0.0, cx], [0.0, 1.0 / s, cy], [0.0, 0.0, 1.0]])
    return t, t_inv


def _apply_affine(t: np.ndarray, quad: Quad) -> Quad:
    return tuple(
        (t[0, 0] * x + t[0, 2], t[1, 1] * y + t[1, 2]) for x, y in quad
    )  # type: ignore[return-value]


def _build_system(src: Quad, dst: Quad) -> tuple[np.ndarray, np.ndarray]:
    a = np.zeros((8, 8), dtype=np.float64)
    v = np.zeros(8, dtype=np.float64)
    for i, ((x, y), (xp, yp)) in enumerate(zip(src, dst)):
        a[2 * i] = [x, y, 1.0, 0.0, 0.0, 0.0, -x * xp, -y * xp]
        a[2 * i + 1] = [0.0, 0.0, 0.0, x, y, 1.0, -x * yp, -y * yp]
        v[2 * i] = xp
        v[2 * i + 1] = yp
    return a, v


def _gauss_solve(a: np.ndarray, v: np.ndarray) -> np.ndarray:
    """
    Gaussian elimination with partial pivoting on the augmented [A | v].
    Raises DegenerateConfigurationError when a pivot falls under the
    relative threshold.
    """
    n = a.shape[0]
    tol = PIVOT_EPS * float(np.abs(a).max())

    m = np.hstack([a, v.reshape(-1, 1)])
    for col in range(n):
        pivot_row = col + int(np.argmax(np.abs(m[col:, col])))
        pivot = m[pivot_row, col]
        if abs(pivot) <= tol:
            raise DegenerateConfigurationError(
                f"Singular system: pivot {pivot:.3e} at column {col} "
                f"is below tolerance {tol:.3e} (collinear or duplicate points?)."
            )
        if pivot_row != col:
            m[[col, pivot_row]] = m[[pivot_row, col]]
        factors = m[col + 1:, col] / m[col, col]
        m[col + 1:] -= np.outer(factors, m[col])

    u = np.zeros(n, dtype=np.float64)
    for row in range(n - 1, -1, -1):
        u[row] = (m[row, n] - m[row, row + 1:n] @ u[row + 1:]) / m[row, row]
    return u


def solve(source: Sequence[Sequence[float]], destination: Sequence[Sequence[float]]) -> np.ndarray:
    """
    Solve the 3x3 projective matrix that maps source[i] onto destination[i].

    Returns a read-only float64 array
      [[a, b, c],
       [d, e, f],
       [g, h, 1]]
    """
    src = as_quad(source)
    dst = as_quad(destination)

    # 1) condition both quads so the pivot test sees O(1) coefficients
    t_src, _ = _normalizer(src)
    t_dst, t_dst_inv = _normalizer(dst)

    # 2) solve in normalised space
    a, v = _build_system(_apply_affine(t_src, src), _apply_affine(t_dst, dst))
    u = _gauss_solve(a, v)
    normalized = np.append(u, 1.0).reshape(3, 3)

    # 3) back to caller coordinates, [2][2] == 1
    matrix = t_dst_inv @ normalized @ t_src
    if matrix[2, 2] == 0.0 or not np.all(np.isfinite(matrix)):
        raise DegenerateConfigurationError(
            f"Homography for {src} -> {dst} cannot be scaled to [2][2] == 1 "
            "(origin lies on the vanishing line)."
        )
    matrix = matrix / matrix[2, 2]
    matrix.flags.writeable = False
    logger.debug(f"Solved homography {src} -> {dst}: {matrix.tolist()}")
    return matrix


def apply_homography(matrix: np.ndarray, point: Sequence[float]) -> Point2D:
    """Map one point through a 3x3 matrix with homogeneous division."""
    if len(point) != 2:
        raise ValueError(f"Point must be an (x, y) pair, got {point!r}.")
    x, y = float(point[0]), float(point[1])
    gx = matrix[2, 0] * x
    hy = matrix[2, 1] * y
    i = matrix[2, 2]
    w = gx + hy + i
    if abs(w) <= DENOMINATOR_EPS * (abs(gx) + abs(hy) + abs(i)):
        raise OutOfDomainError(f"Point ({x}, {y}) lies on the vanishing line (w={w:.3e}).")

    xp = (matrix[0, 0] * x + matrix[0, 1] * y + matrix[0, 2]) / w
    yp = (matrix[1, 0] * x + matrix[1, 1] * y + matrix[1, 2]) / w
    if not (math.isfinite(xp) and math.isfinite(yp)):
        raise OutOfDomainError(f"Point ({x}, {y}) maps outside the finite plane.")
    return float(xp), float(yp)


class HomographyTransform:
    """
    Projective map between two quads:
      source (u,v) 4 corners
      destination (x,y) 4 corners, same order
    The inverse is solved separately with the roles swapped.
    """

    __slots__ = ("_forward", "_inverse")

    def __init__(self, source: Sequence[Sequence[float]], destination: Sequence[Sequence[float]]):
        forward = solve(source, destination)
        inverse = solve(destination, source)
        object.__setattr__(self, "_forward", forward)
        object.__setattr__(self, "_inverse", inverse)

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    @property
    def matrix(self) -> np.ndarray:
        return self._forward

    @property
    def inverse_matrix(self) -> np.ndarray:
        return self._inverse

    def to_destination(self, point: Sequence[float]) -> Point2D:
        return apply_homography(self._forward, point)

    def to_source(self, point: Sequence[float]) -> Point2D:
        return apply_homography(self._inverse, point)

    def __repr__(self) -> str:
        return f"HomographyTransform(matrix={self._forward.tolist()})"
