"""Session state management for the single-session price map application."""

import asyncio
import json
import logging
import time
from collections.abc import AsyncGenerator
from typing import Any, Optional

import pandas as pd

from woolmap.core.aggregation import RegionStats, aggregate_region_stats
from woolmap.core.backend_frontend_shared_schema import (
    InteractionStateResponse,
    RenderTarget,
    SessionStateResponse,
    TooltipModel,
)
from woolmap.core.interaction_state import (
    ContainerRect,
    HoverController,
    PointerPosition,
    SelectionController,
    TooltipPlacement,
)
from woolmap.core.regions import RegionBoundaryRegistry
from woolmap.core.scene import (
    PROFILES_BY_TARGET,
    MapScene,
    SceneEmphasis,
    build_scene,
)
from woolmap.core.schema import empty_sales_dataframe

logger = logging.getLogger(__name__)

ALL_TARGETS = [RenderTarget.DESKTOP, RenderTarget.MOBILE]


def _tooltip_model(placement: Optional[TooltipPlacement]) -> Optional[TooltipModel]:
    if placement is None:
        return None
    return TooltipModel(
        left=placement.left,
        top=placement.top,
        width=placement.width,
        height=placement.height,
        below_cursor=placement.below_cursor,
    )


class SessionState:
    """
    Manages the auction currently shown on the price map.

    There is exactly one instance per web server. It owns the boundary registry, the
    sales of the selected auction, the per-region statistics derived from them, and the
    interaction state of both render targets. Statistics are recomputed only when the
    sales change; hover and tap events just rebuild the scene from the cached stats.
    """

    def __init__(self, registry: Optional[RegionBoundaryRegistry] = None) -> None:
        self.registry = registry or RegionBoundaryRegistry()
        self.sales_rows = empty_sales_dataframe()
        self.auction_label: Optional[str] = None
        self.region_stats: dict[str, RegionStats] = aggregate_region_stats(None)

        region_ids = self.registry.renderable_region_ids
        self.desktop_interaction = HoverController(region_ids)
        self.mobile_interaction = SelectionController(region_ids)

        # SSE event broadcasting
        self.version = 0
        self.sse_clients: set[asyncio.Queue] = set()

    def load_sales(self, df: pd.DataFrame, auction_label: Optional[str] = None) -> None:
        """Replace the current sales and recompute the region statistics in full."""
        self.sales_rows = df
        self.auction_label = auction_label
        self.region_stats = aggregate_region_stats(df)

        # Highlights refer to the previous auction's numbers.
        self.desktop_interaction.pointer_leave()
        self.mobile_interaction.clear()

        logger.info(
            f"Loaded {len(df)} sales for {auction_label=}, "
            f"{self.regions_with_data} regions have prices"
        )
        self.broadcast_change("auction_loaded", ALL_TARGETS)

    @property
    def has_data(self) -> bool:
        return not self.sales_rows.empty

    @property
    def regions_with_data(self) -> int:
        return sum(1 for stats in self.region_stats.values() if stats.has_data)

    def get_region_stats(self, name: str) -> Optional[RegionStats]:
        return self.region_stats.get(name)

    def emphasis_for(self, target: RenderTarget) -> SceneEmphasis:
        if target == RenderTarget.DESKTOP:
            return SceneEmphasis.hover(self.desktop_interaction.hovered_region_id)
        return SceneEmphasis.selection(self.mobile_interaction.selected_region_id)

    def build_scene(self, target: RenderTarget) -> MapScene:
        """Build the scene for one render target using the cached statistics."""
        return build_scene(
            self.registry.get_boundaries(),
            self.region_stats,
            PROFILES_BY_TARGET[target],
            self.emphasis_for(target),
        )

    def tooltip_for(self, target: RenderTarget) -> Optional[TooltipPlacement]:
        if target == RenderTarget.DESKTOP:
            return self.desktop_interaction.tooltip_placement()
        return self.mobile_interaction.hover.tooltip_placement()

    def selected_stats(self) -> Optional[tuple[str, RegionStats]]:
        """Name and stats of the region selected on the compact map, if any."""
        region_id = self.mobile_interaction.selected_region_id
        if region_id is None:
            return None
        boundary = self.registry.get_boundary(region_id)
        if boundary is None:
            return None
        return boundary.name, self.region_stats.get(boundary.name, RegionStats())

    def handle_pointer_move(
        self, region_id: str, pointer: PointerPosition, container: ContainerRect
    ) -> InteractionStateResponse:
        previous = self.desktop_interaction.hovered_region_id
        accepted = self.desktop_interaction.pointer_move(region_id, pointer, container)
        # Moves within the same region only shift the tooltip; clients track that locally.
        if accepted and previous != region_id:
            self.broadcast_change("interaction_changed", [RenderTarget.DESKTOP])
        return self._desktop_response(accepted)

    def handle_pointer_leave(self) -> InteractionStateResponse:
        was_hovering = self.desktop_interaction.hovered_region_id is not None
        self.desktop_interaction.pointer_leave()
        if was_hovering:
            self.broadcast_change("interaction_changed", [RenderTarget.DESKTOP])
        return self._desktop_response(True)

    def handle_tap(self, region_id: str) -> InteractionStateResponse:
        accepted = region_id in self.mobile_interaction.known_region_ids
        self.mobile_interaction.tap(region_id)
        if accepted:
            self.broadcast_change("interaction_changed", [RenderTarget.MOBILE])
        return self._mobile_response(accepted)

    def handle_mobile_hover(
        self, region_id: str, pointer: PointerPosition, container: ContainerRect
    ) -> InteractionStateResponse:
        """Mouse hover on the compact map: shows a tooltip, never changes the selection."""
        accepted = self.mobile_interaction.hover.pointer_move(region_id, pointer, container)
        return self._mobile_response(accepted)

    def handle_mobile_hover_leave(self) -> InteractionStateResponse:
        self.mobile_interaction.hover.pointer_leave()
        return self._mobile_response(True)

    def _desktop_response(self, accepted: bool) -> InteractionStateResponse:
        hovered = self.desktop_interaction.hovered_region_id
        return InteractionStateResponse(
            target=RenderTarget.DESKTOP,
            mode=self.desktop_interaction.mode,
            region_id=hovered,
            hovered_region_id=hovered,
            accepted=accepted,
            tooltip=_tooltip_model(self.desktop_interaction.tooltip_placement()),
        )

    def _mobile_response(self, accepted: bool) -> InteractionStateResponse:
        return InteractionStateResponse(
            target=RenderTarget.MOBILE,
            mode=self.mobile_interaction.mode,
            region_id=self.mobile_interaction.selected_region_id,
            hovered_region_id=self.mobile_interaction.hover.hovered_region_id,
            accepted=accepted,
            tooltip=_tooltip_model(self.mobile_interaction.hover.tooltip_placement()),
        )

    def get_summary(self) -> dict[str, Any]:
        """Get a summary of the current session state."""
        return {
            "sale_count": len(self.sales_rows),
            "auction_label": self.auction_label,
            "region_count": len(self.region_stats),
            "regions_with_data": self.regions_with_data,
            "desktop_interaction": self.desktop_interaction.get_summary(),
            "mobile_interaction": self.mobile_interaction.get_summary(),
        }

    def _create_session_state_response(self) -> SessionStateResponse:
        """Create a strongly typed session state response."""
        return SessionStateResponse(
            has_data=self.has_data,
            sale_count=len(self.sales_rows),
            auction_label=self.auction_label,
            region_count=len(self.region_stats),
            regions_with_data=self.regions_with_data,
            version=self.version,
            desktop_interaction=self.desktop_interaction.get_summary(),
            mobile_interaction=self.mobile_interaction.get_summary(),
        )

    def broadcast_change(
        self, event_type: str, affected_targets: list[RenderTarget]
    ) -> None:
        """Broadcast a change event to all SSE clients."""
        self.version += 1
        event_data = {
            "type": event_type,
            "affected_targets": [str(target) for target in affected_targets],
            "version": self.version,
            "timestamp": time.time(),
            "session_state": self._create_session_state_response().model_dump(mode="json"),
        }

        for client_queue in self.sse_clients:
            try:
                client_queue.put_nowait(event_data)
            except asyncio.QueueFull:
                logger.warning("SSE client queue full, dropping event")

    async def change_stream(self) -> AsyncGenerator[str, None]:
        """Generate Server-Sent Events stream for data and interaction changes."""
        client_queue: asyncio.Queue = asyncio.Queue(maxsize=100)
        self.sse_clients.add(client_queue)

        try:
            initial_event = {
                "type": "connection_established",
                "affected_targets": [str(target) for target in ALL_TARGETS],
                "version": self.version,
                "timestamp": time.time(),
                "session_state": self._create_session_state_response().model_dump(
                    mode="json"
                ),
            }
            yield f"data: {json.dumps(initial_event)}\n\n"

            while True:
                try:
                    event_data = await asyncio.wait_for(client_queue.get(), timeout=2.0)
                    yield f"data: {json.dumps(event_data)}\n\n"
                except asyncio.TimeoutError:
                    heartbeat = {
                        "type": "heartbeat",
                        "timestamp": time.time(),
                        "version": self.version,
                    }
                    yield f"data: {json.dumps(heartbeat)}\n\n"
        except asyncio.CancelledError:
            logger.info("SSE client disconnected")
        finally:
            self.sse_clients.discard(client_queue)
