"""Tests for session state management."""

import asyncio
import json

import pandas as pd
import pytest

from woolmap.core.aggregation import RegionStats
from woolmap.core.backend_frontend_shared_schema import RenderTarget
from woolmap.core.interaction_state import ContainerRect, InteractionMode, PointerPosition
from woolmap.core.session_state import SessionState

CONTAINER = ContainerRect(left=0.0, top=0.0, width=300.0, height=200.0)


@pytest.fixture
def session_state(sample_sales_df: pd.DataFrame) -> SessionState:
    session = SessionState()
    session.load_sales(sample_sales_df, auction_label="Port Elizabeth, week 12")
    return session


def test_session_state_initialization() -> None:
    session = SessionState()
    assert not session.has_data
    assert session.regions_with_data == 0
    assert len(session.region_stats) == 9

    summary = session.get_summary()
    assert summary["sale_count"] == 0
    assert summary["region_count"] == 9
    assert summary["desktop_interaction"]["mode"] == InteractionMode.IDLE


def test_load_sales(session_state: SessionState) -> None:
    assert session_state.has_data
    assert len(session_state.sales_rows) == 20
    assert session_state.regions_with_data == 4
    assert session_state.region_stats["Eastern Cape"].certified_avg == 180.0
    assert session_state.version == 1

    response = session_state._create_session_state_response()
    assert response.has_data
    assert response.sale_count == 20
    assert response.auction_label == "Port Elizabeth, week 12"
    assert response.regions_with_data == 4


def test_interaction_reuses_cached_stats(session_state: SessionState) -> None:
    stats_before = session_state.region_stats
    session_state.handle_pointer_move("ZA-EC", PointerPosition(150.0, 150.0), CONTAINER)
    session_state.handle_tap("ZA-WC")
    assert session_state.region_stats is stats_before


def test_desktop_hover_flow(session_state: SessionState) -> None:
    response = session_state.handle_pointer_move(
        "ZA-EC", PointerPosition(295.0, 10.0), CONTAINER
    )
    assert response.accepted
    assert response.mode == InteractionMode.HOVERING
    assert response.hovered_region_id == "ZA-EC"
    assert response.tooltip is not None
    assert (response.tooltip.left, response.tooltip.top) == (150.0, 20.0)

    scene = session_state.build_scene(RenderTarget.DESKTOP)
    assert scene.region("ZA-EC").opacity == 1.0
    assert scene.region("ZA-WC").opacity == 0.5

    response = session_state.handle_pointer_leave()
    assert response.mode == InteractionMode.IDLE
    assert response.tooltip is None


def test_unknown_region_events_are_ignored(session_state: SessionState) -> None:
    version = session_state.version
    assert not session_state.handle_pointer_move(
        "LS", PointerPosition(10.0, 10.0), CONTAINER
    ).accepted
    assert not session_state.handle_tap("LS").accepted
    assert session_state.version == version


def test_mobile_tap_flow(session_state: SessionState) -> None:
    assert session_state.selected_stats() is None
    assert session_state.handle_tap("ZA-NC").region_id == "ZA-NC"
    assert session_state.selected_stats() == (
        "Northern Cape",
        RegionStats(non_certified_avg=115.0, has_non_certified=True),
    )
    scene = session_state.build_scene(RenderTarget.MOBILE)
    assert scene.region("ZA-NC").stroke_width == 3.0

    # The desktop map is independent of the compact one.
    assert session_state.build_scene(RenderTarget.DESKTOP).region("ZA-NC").stroke_width == 2.0

    assert session_state.handle_tap("ZA-NC").region_id is None
    assert session_state.selected_stats() is None


def test_mobile_hover_keeps_selection(session_state: SessionState) -> None:
    session_state.handle_tap("ZA-EC")
    response = session_state.handle_mobile_hover(
        "ZA-WC", PointerPosition(100.0, 100.0), CONTAINER
    )
    assert response.region_id == "ZA-EC"
    assert response.hovered_region_id == "ZA-WC"
    assert response.tooltip is not None

    response = session_state.handle_mobile_hover_leave()
    assert response.region_id == "ZA-EC"
    assert response.tooltip is None


def test_loading_new_auction_resets_interaction(
    session_state: SessionState, sample_sales_df: pd.DataFrame
) -> None:
    session_state.handle_tap("ZA-EC")
    session_state.handle_pointer_move("ZA-WC", PointerPosition(100.0, 100.0), CONTAINER)
    session_state.load_sales(sample_sales_df.iloc[:0], auction_label=None)
    assert session_state.mobile_interaction.selected_region_id is None
    assert session_state.desktop_interaction.hovered_region_id is None
    assert session_state.regions_with_data == 0


def test_broadcast_reaches_connected_clients(session_state: SessionState) -> None:
    queue: asyncio.Queue = asyncio.Queue(maxsize=1)
    session_state.sse_clients.add(queue)
    session_state.handle_tap("ZA-EC")
    # A full queue drops further events instead of raising.
    session_state.handle_tap("ZA-WC")

    event = queue.get_nowait()
    assert event["type"] == "interaction_changed"
    assert event["affected_targets"] == ["mobile"]
    assert event["session_state"]["mobile_interaction"]["selected_region_id"] == "ZA-EC"
    json.dumps(event)


def test_change_stream_starts_with_connection_event(session_state: SessionState) -> None:
    async def first_event() -> dict:
        stream = session_state.change_stream()
        message = await stream.__anext__()
        await stream.aclose()
        return json.loads(message.removeprefix("data: "))

    event = asyncio.run(first_event())
    assert event["type"] == "connection_established"
    assert event["session_state"]["sale_count"] == 20
    assert not session_state.sse_clients
