from __future__ import annotations

from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

Point = Tuple[float, float]


class ErrorCode(Enum):
    NONE = 0
    OUT_OF_DOMAIN = 1
    DEGENERATE_CONFIGURATION = 2
    NOT_READY = 3
    INVALID_CONFIGURATION = 4


class TransformerConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    src_quad: Optional[List[Point]] = Field(
        default=None, examples=[[(158, 64), (494, 69), (495, 404), (158, 404)]]
    )
    dst_quad: Optional[List[Point]] = None
    ignore_outside_margin: Optional[float] = Field(default=None, ge=0.0)

    @field_validator("src_quad", "dst_quad")
    @classmethod
    def _four_corners(cls, v: Optional[List[Point]]) -> Optional[List[Point]]:
        if v is not None and len(v) != 4:
            raise ValueError(f"quad needs exactly 4 points (clockwise from top-left), got {len(v)}")
        return v


class MappedPoint(BaseModel):
    ok: bool
    input: Point
    output: Optional[Point] = None
    inside: Optional[bool] = None
    error_code: ErrorCode = ErrorCode.NONE
    error_message: Optional[str] = None
