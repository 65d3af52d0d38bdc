from __future__ import annotations

import logging
from typing import Optional, Sequence

from quadmap.geometry.homography import HomographyTransform, Point2D, Quad, as_quad

logger = logging.getLogger(__name__)

# standardised 1x1 box that coordinates are normalised into
DST_SIZE = 1.0
DEFAULT_DST_QUAD: Quad = (
    (0.0, 0.0),
    (DST_SIZE, 0.0),
    (DST_SIZE, DST_SIZE),
    (0.0, DST_SIZE),
)


class TransformerNotReadyError(RuntimeError):
    """No source quad has been set yet."""


def point_is_inside_quad(point: Sequence[float], dst_quad: Optional[Quad], margin: float) -> bool:
    """
    Axis-aligned check against the destination corners grown by `margin`.
    Uses corner 0 (top-left), 1 (top-right) and 3 (bottom-left).
    """
    x, y = float(point[0]), float(point[1])
    logger.debug(f"...Is {x}, {y} outside of {margin}?")
    if dst_quad is None:
        return -margin <= x <= DST_SIZE + margin and -margin <= y <= DST_SIZE + margin
    a, b, _c, d = dst_quad
    return (a[0] - margin) <= x <= (b[0] + margin) and (a[1] - margin) <= y <= (d[1] + margin)


class QuadTransformer:
    """
    Holder used by the tracking side: maps detections from a camera quad into
    a destination quad (unit square by default) and filters stragglers.
    """

    def __init__(
        self,
        src_quad: Optional[Sequence[Sequence[float]]] = None,
        dst_quad: Optional[Sequence[Sequence[float]]] = None,
        ignore_outside_margin: Optional[float] = None,
    ):
        if ignore_outside_margin is None:
            logger.warning("No outside margin value set; points will not be restricted to src_quad")
        else:
            logger.warning(
                f"An outside margin value was set; points further than {ignore_outside_margin} "
                "distance outside of destination quad will be ignored"
            )
        self.ignore_outside_margin = ignore_outside_margin
        self.dst_quad: Optional[Quad] = as_quad(dst_quad) if dst_quad is not None else None
        self._transform: Optional[HomographyTransform] = None
        if src_quad is not None:
            self._transform = HomographyTransform(src_quad, self.dst_quad or DEFAULT_DST_QUAD)

    @classmethod
    def from_config(cls, cfg) -> "QuadTransformer":
        return cls(
            src_quad=cfg.src_quad,
            dst_quad=cfg.dst_quad,
            ignore_outside_margin=cfg.ignore_outside_margin,
        )

    def set_new_quad(
        self,
        src_quad: Sequence[Sequence[float]],
        dst_quad: Optional[Sequence[Sequence[float]]] = None,
    ) -> None:
        new_dst = as_quad(dst_quad) if dst_quad is not None else None
        # build first so a degenerate quad leaves the old state untouched
        transform = HomographyTransform(src_quad, new_dst or DEFAULT_DST_QUAD)
        self.dst_quad = new_dst
        self._transform = transform
        logger.info(f"Transform updated: {transform!r}")

    def is_ready(self) -> bool:
        return self._transform is not None

    def _require(self) -> HomographyTransform:
        if self._transform is None:
            raise TransformerNotReadyError("No transform matrix")
        return self._transform

    def transform(self, point: Sequence[float]) -> Point2D:
        """Take a single point (within the source quad) and return it in the destination quad."""
        return self._require().to_destination(point)

    def inverse_transform(self, point: Sequence[float]) -> Point2D:
        return self._require().to_source(point)

    def filter_points_inside(self, points: Sequence[Sequence[float]]) -> list[Point2D]:
        """
        Keep only points deemed "inside the destination quad".
        Without a margin every point passes.
        """
        margin = self.ignore_outside_margin
        return [
            (float(p[0]), float(p[1]))
            for p in points
            if margin is None or point_is_inside_quad(p, self.dst_quad, margin)
        ]
