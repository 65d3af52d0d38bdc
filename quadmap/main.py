from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional, Sequence

from pydantic import ValidationError

from quadmap.geometry.homography import DegenerateConfigurationError, OutOfDomainError
from quadmap.geometry.transformer import QuadTransformer, point_is_inside_quad
from quadmap.infra.config import load_cfg_from_file
from quadmap.schemas import ErrorCode, MappedPoint, TransformerConfig

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_OUT_OF_DOMAIN = 1
EXIT_BAD_CONFIG = 2


def _pairs(values: Optional[Sequence[float]]) -> Optional[list[tuple[float, float]]]:
    if values is None:
        return None
    return [(values[i], values[i + 1]) for i in range(0, len(values), 2)]


def _parse_point(raw: str) -> tuple[float, float]:
    try:
        x, y = raw.split(",")
        return float(x), float(y)
    except ValueError:
        raise argparse.ArgumentTypeError(f"point must look like 'x,y', got {raw!r}")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="quadmap", description="Map points between two quads.")
    p.add_argument("--config", default=None, help="JSON TransformerConfig file")
    p.add_argument("--src", type=float, nargs=8, metavar="N", default=None)
    p.add_argument("--dst", type=float, nargs=8, metavar="N", default=None)
    p.add_argument("--margin", type=float, default=None)
    p.add_argument("--inverse", action="store_true", help="map destination -> source")
    p.add_argument("--filter", action="store_true", help="drop mapped points outside the margin")
    p.add_argument("--log-level", default="WARNING")
    p.add_argument("points", nargs="*", type=_parse_point, metavar="POINT")
    return p


def _fail_all(points: Sequence[tuple[float, float]], code: ErrorCode, message: str) -> int:
    logger.error(message)
    for point in points:
        print(MappedPoint(ok=False, input=point, error_code=code, error_message=message).model_dump_json())
    return EXIT_BAD_CONFIG


def run(args: argparse.Namespace) -> int:
    try:
        # 1) base cfg from file (if any)
        cfg = load_cfg_from_file(args.config) if args.config else TransformerConfig()

        # 2) CLI overrides (only when given), validated on assignment
        if args.src is not None:
            cfg.src_quad = _pairs(args.src)
        if args.dst is not None:
            cfg.dst_quad = _pairs(args.dst)
        if args.margin is not None:
            cfg.ignore_outside_margin = args.margin
    except (OSError, json.JSONDecodeError, TypeError, ValidationError) as e:
        return _fail_all(args.points, ErrorCode.INVALID_CONFIGURATION, f"Invalid configuration: {e}")

    try:
        transformer = QuadTransformer.from_config(cfg)
    except DegenerateConfigurationError as e:
        return _fail_all(args.points, ErrorCode.DEGENERATE_CONFIGURATION, f"Cannot build transform: {e}")
    except ValueError as e:
        return _fail_all(args.points, ErrorCode.INVALID_CONFIGURATION, f"Invalid configuration: {e}")
    if not transformer.is_ready():
        return _fail_all(args.points, ErrorCode.NOT_READY, "No source quad given (use --src or --config)")

    status = EXIT_OK
    for point in args.points:
        try:
            if args.inverse:
                out = transformer.inverse_transform(point)
            else:
                out = transformer.transform(point)
        except OutOfDomainError as e:
            status = EXIT_OUT_OF_DOMAIN
            result = MappedPoint(
                ok=False,
                input=point,
                error_code=ErrorCode.OUT_OF_DOMAIN,
                error_message=str(e),
            )
            print(result.model_dump_json())
            continue

        inside = None
        margin = transformer.ignore_outside_margin
        if margin is not None and not args.inverse:
            inside = point_is_inside_quad(out, transformer.dst_quad, margin)
            if args.filter and not inside:
                logger.info(f"Dropping {point} -> {out}: outside destination quad")
                continue
        print(MappedPoint(ok=True, input=point, output=out, inside=inside).model_dump_json())
    return status


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
