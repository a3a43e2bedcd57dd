from woolmap.core.aggregation import RegionStats
from woolmap.core.interaction_state import ContainerRect, HoverController, PointerPosition
from woolmap.visualization.plot_common import format_tooltip_text, tooltip_overlay_from


def test_format_tooltip_text() -> None:
    assert format_tooltip_text(
        "Eastern Cape",
        RegionStats(certified_avg=180.0, non_certified_avg=175.0, has_non_certified=True),
    ) == "<b>Eastern Cape</b><br>Certified: R180/kg<br>Non-certified: R175/kg"
    assert format_tooltip_text("Limpopo", RegionStats()) == "<b>Limpopo</b><br>No sales"


def test_tooltip_overlay_follows_hover_state() -> None:
    controller = HoverController(["ZA-EC"])
    assert tooltip_overlay_from(controller) is None

    container = ContainerRect(left=0.0, top=0.0, width=300.0, height=200.0)
    controller.pointer_move("ZA-EC", PointerPosition(295.0, 10.0), container)
    overlay = tooltip_overlay_from(controller)
    assert overlay is not None
    assert overlay.region_id == "ZA-EC"
    assert overlay.container == container
    assert (overlay.placement.left, overlay.placement.top) == (150.0, 20.0)

    controller.pointer_leave()
    assert tooltip_overlay_from(controller) is None
