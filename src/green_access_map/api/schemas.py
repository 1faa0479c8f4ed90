from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class ViewportRequest(BaseModel):
    bbox: List[float] = Field(..., min_length=4, max_length=4)


class PointerMoveRequest(BaseModel):
    layer: str
    feature_id: Optional[int] = None
    lon: Optional[float] = None
    lat: Optional[float] = None
    x: float = 0
    y: float = 0


class PointerLeaveRequest(BaseModel):
    layer: str


class ClickRequest(BaseModel):
    feature_id: Optional[int] = None
    lon: Optional[float] = None
    lat: Optional[float] = None


class ThresholdRequest(BaseModel):
    value: float = Field(..., allow_inf_nan=False)


class GeocodeResult(BaseModel):
    display_name: str
    lon: float
    lat: float
