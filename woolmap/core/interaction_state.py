"""Hover and tap interaction state for the price map, plus tooltip placement."""

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)

TOOLTIP_WIDTH = 140.0
TOOLTIP_HEIGHT = 60.0
# Minimum distance between the tooltip and the container edge.
TOOLTIP_MARGIN = 10.0
# Distance between the cursor and the tooltip.
TOOLTIP_GAP = 10.0


class InteractionMode(StrEnum):
    IDLE = "idle"
    HOVERING = "hovering"
    SELECTED = "selected"


@dataclass(frozen=True)
class PointerPosition:
    """Pointer position in client (viewport) coordinates."""

    client_x: float
    client_y: float


@dataclass(frozen=True)
class ContainerRect:
    """Bounding rectangle of the map container in client coordinates."""

    left: float
    top: float
    width: float
    height: float


@dataclass(frozen=True)
class TooltipPlacement:
    """Tooltip box relative to the container's top-left corner."""

    left: float
    top: float
    width: float
    height: float
    below_cursor: bool

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height


def place_tooltip(
    pointer: PointerPosition,
    container: ContainerRect,
    width: float = TOOLTIP_WIDTH,
    height: float = TOOLTIP_HEIGHT,
    margin: float = TOOLTIP_MARGIN,
    gap: float = TOOLTIP_GAP,
) -> TooltipPlacement:
    """
    Position a tooltip near the cursor so that it stays inside the container.

    The box is centered horizontally on the cursor and placed above it. When there is
    no room above, it flips below the cursor; if it still overflows the bottom edge it
    is pulled back inside.

    Args:
        pointer: Cursor position in client coordinates
        container: Container bounds in client coordinates
        width: Tooltip width
        height: Tooltip height
        margin: Preferred distance from the container edges
        gap: Distance between cursor and tooltip

    Returns:
        Placement relative to the container
    """
    relative_x = pointer.client_x - container.left
    relative_y = pointer.client_y - container.top

    left = relative_x - width / 2
    if left < margin:
        left = margin
    if left + width > container.width - margin:
        left = container.width - width - margin
    left = max(0.0, left)

    top = relative_y - height - gap
    below_cursor = False
    if top < margin:
        top = relative_y + gap
        below_cursor = True
    if top + height > container.height - margin:
        top = container.height - height - margin
    top = max(0.0, top)

    return TooltipPlacement(
        left=left, top=top, width=width, height=height, below_cursor=below_cursor
    )


class HoverController:
    """
    Continuous pointer interaction for the full-size map.

    States: idle -> hovering(region) -> idle. Pointer moves over a region switch to
    (or stay in) hovering and record the pointer for tooltip placement; leaving the
    map surface returns to idle. Events for unknown regions are ignored.
    """

    def __init__(self, known_region_ids: Iterable[str]) -> None:
        self.known_region_ids = frozenset(known_region_ids)
        self.hovered_region_id: Optional[str] = None
        self.pointer: Optional[PointerPosition] = None
        self.container: Optional[ContainerRect] = None

    @property
    def mode(self) -> InteractionMode:
        if self.hovered_region_id is None:
            return InteractionMode.IDLE
        return InteractionMode.HOVERING

    def pointer_move(
        self, region_id: str, pointer: PointerPosition, container: ContainerRect
    ) -> bool:
        """Record a pointer move over a region. Returns False when the event is ignored."""
        if region_id not in self.known_region_ids:
            logger.debug(f"Ignoring pointer move over unknown {region_id=}")
            return False
        self.hovered_region_id = region_id
        self.pointer = pointer
        self.container = container
        return True

    def pointer_leave(self) -> None:
        self.hovered_region_id = None
        self.pointer = None
        self.container = None

    def tooltip_placement(self) -> Optional[TooltipPlacement]:
        if self.hovered_region_id is None or self.pointer is None or self.container is None:
            return None
        return place_tooltip(self.pointer, self.container)

    def get_summary(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "hovered_region_id": self.hovered_region_id,
        }


class SelectionController:
    """
    Discrete tap interaction for the compact map.

    States: idle -> selected(region) -> idle. Tapping the selected region clears the
    selection; tapping another region selects it directly. The selection persists
    until changed. Devices with a mouse also get a transient hover tooltip, which
    never changes the selection.
    """

    def __init__(self, known_region_ids: Iterable[str]) -> None:
        self.known_region_ids = frozenset(known_region_ids)
        self.selected_region_id: Optional[str] = None
        self.hover = HoverController(self.known_region_ids)

    @property
    def mode(self) -> InteractionMode:
        if self.selected_region_id is None:
            return InteractionMode.IDLE
        return InteractionMode.SELECTED

    def tap(self, region_id: str) -> Optional[str]:
        """Toggle selection of a region and return the new selection."""
        if region_id not in self.known_region_ids:
            logger.debug(f"Ignoring tap on unknown {region_id=}")
            return self.selected_region_id
        if self.selected_region_id == region_id:
            self.selected_region_id = None
        else:
            self.selected_region_id = region_id
        return self.selected_region_id

    def clear(self) -> None:
        self.selected_region_id = None
        self.hover.pointer_leave()

    def get_summary(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "selected_region_id": self.selected_region_id,
            "hovered_region_id": self.hover.hovered_region_id,
        }
