"""Shared schema definitions for backend-frontend communication."""

from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field


class RenderTarget(StrEnum):
    """Presentation variants of the price map."""

    DESKTOP = "desktop"
    MOBILE = "mobile"


# API Request Models
class LoadSalesRequest(BaseModel):
    """Request model for loading an auction's sales from a JSONL file."""

    file_path: str
    auction_label: Optional[str] = None


class SalesUploadRequest(BaseModel):
    """Request model for handing in an auction's sales directly."""

    auction_label: Optional[str] = None
    sales: list[dict[str, Any]] = Field(
        ...,
        description="Flat sale records, or province groups with a 'producers' list",
    )


class ContainerRectModel(BaseModel):
    left: float
    top: float
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)


class PointerMoveRequest(BaseModel):
    """Pointer moved over a region of the map."""

    region_id: str
    client_x: float
    client_y: float
    container: ContainerRectModel


class TapRequest(BaseModel):
    """Region tapped on the compact map."""

    region_id: str


# API Response Models
class TooltipModel(BaseModel):
    left: float
    top: float
    width: float
    height: float
    below_cursor: bool


class InteractionStateResponse(BaseModel):
    """Interaction state of one render target after an event."""

    target: RenderTarget
    mode: str
    region_id: Optional[str]
    hovered_region_id: Optional[str]
    accepted: bool
    tooltip: Optional[TooltipModel] = None


class SessionStateResponse(BaseModel):
    """Response model for session state information."""

    has_data: bool
    sale_count: int
    auction_label: Optional[str]
    region_count: int
    regions_with_data: int
    version: int
    desktop_interaction: dict[str, Any]
    mobile_interaction: dict[str, Any]


class LoadSalesResponse(BaseModel):
    """Response model for sale loading operations."""

    success: bool
    message: str
    session_state: SessionStateResponse


class MapPlotResponse(BaseModel):
    """Response model for map plot data."""

    plotly_plot: dict[str, Any]
    target: RenderTarget
    region_count: int
    regions_with_data: int
    min_price: Optional[float]
    max_price: Optional[float]


class RegionStatsResponse(BaseModel):
    """Per-region statistics of the current auction, keyed by region name."""

    auction_label: Optional[str]
    regions: dict[str, dict[str, Any]]


# Server-Sent Events Models
class SSEEvent(BaseModel):
    """Base model for Server-Sent Events."""

    type: str
    timestamp: float
    version: int


class MapChangeEvent(SSEEvent):
    """Server-Sent Event for data or interaction changes."""

    affected_targets: list[RenderTarget]
    session_state: SessionStateResponse
