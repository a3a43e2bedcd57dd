"""Main CLI application for Woolmap."""

import json
import logging
import signal
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import plotly.graph_objects as go
import typer
import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles
from pandera.errors import SchemaErrors

from woolmap.core.backend_frontend_shared_schema import (
    InteractionStateResponse,
    LoadSalesRequest,
    LoadSalesResponse,
    MapPlotResponse,
    PointerMoveRequest,
    RegionStatsResponse,
    RenderTarget,
    SalesUploadRequest,
    SessionStateResponse,
    TapRequest,
)
from woolmap.core.interaction_state import ContainerRect, PointerPosition
from woolmap.core.regions import DEFAULT_BOUNDARIES_PATH, RegionBoundaryRegistry
from woolmap.core.scene import MapScene
from woolmap.core.schema import load_jsonl_to_dataframe, records_to_dataframe
from woolmap.core.session_state import SessionState
from woolmap.visualization.desktop_map_plot import create_desktop_map_plot
from woolmap.visualization.mobile_map_plot import create_mobile_map_plot
from woolmap.visualization.plot_common import tooltip_overlay_from


@dataclass
class App:
    """Application state container to avoid global variables."""

    session_state: SessionState


# Create a single app instance for dependency injection
_app_instance = App(session_state=SessionState())

# Configure logging for better error visibility with IDE-clickable file paths
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s %(pathname)s:%(lineno)d %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


def get_app() -> App:
    """Dependency function to get the app instance."""
    return _app_instance


def get_session_state() -> SessionState:
    """Dependency function to get the session state instance."""
    return _app_instance.session_state


app = FastAPI(
    title="Woolmap",
    description="Provincial wool price map for auction results",
)


# Exception handlers for better error logging
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler that logs full stack traces."""
    logger.error(
        f"Unhandled exception in {request.method} {request.url.path}: {exc}",
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": f"Internal server error: {str(exc)}",
            "type": type(exc).__name__,
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for HTTP exceptions with logging."""
    logger.error(
        f"HTTP exception in {request.method} {request.url.path}: {exc.status_code} - {exc.detail}",
        exc_info=True,
    )

    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handler for request validation errors with logging."""
    logger.error(
        f"Validation error in {request.method} {request.url.path}: {exc.errors()}",
        exc_info=True,
    )

    return JSONResponse(status_code=422, content={"detail": exc.errors()})


# Mount static files
static_path = Path(__file__).parent / "static"
if static_path.exists():
    app.mount("/static", StaticFiles(directory=str(static_path)), name="static")


def create_map_figure(session_state: SessionState, scene: MapScene) -> go.Figure:
    """Draw a scene of the current session as a Plotly figure for its target."""
    if scene.profile.target == RenderTarget.DESKTOP:
        return create_desktop_map_plot(
            scene,
            tooltip=tooltip_overlay_from(session_state.desktop_interaction),
            title=session_state.auction_label,
        )
    return create_mobile_map_plot(
        scene,
        selected_stats=session_state.selected_stats(),
        tooltip=tooltip_overlay_from(session_state.mobile_interaction.hover),
    )


@app.post("/api/auction/load")
async def load_auction_endpoint(
    request: LoadSalesRequest, session_state: SessionState = Depends(get_session_state)
) -> LoadSalesResponse:
    """Load an auction's sales from a JSONL file into the session state."""
    try:
        jsonl_path = Path(request.file_path)
        if not jsonl_path.exists():
            raise HTTPException(
                status_code=404, detail=f"File not found: {request.file_path}"
            )

        df = load_jsonl_to_dataframe(jsonl_path)
        session_state.load_sales(df, auction_label=request.auction_label)

        return LoadSalesResponse(
            success=True,
            message=f"Successfully loaded {len(df)} sales",
            session_state=session_state._create_session_state_response(),
        )
    except HTTPException:
        # Re-raise HTTP exceptions as-is
        raise
    except Exception as e:
        logger.error(f"Error loading sales from {request.file_path}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error loading sales: {str(e)}")


@app.put("/api/auction/sales")
async def upload_sales_endpoint(
    request: SalesUploadRequest,
    session_state: SessionState = Depends(get_session_state),
) -> LoadSalesResponse:
    """Replace the current auction with sales posted by the report service."""
    try:
        df = records_to_dataframe(request.sales)
    except (ValueError, SchemaErrors) as e:
        logger.error(f"Rejected sale upload: {e}", exc_info=True)
        raise HTTPException(status_code=400, detail=f"Invalid sales: {str(e)}")

    session_state.load_sales(df, auction_label=request.auction_label)
    return LoadSalesResponse(
        success=True,
        message=f"Successfully loaded {len(df)} sales",
        session_state=session_state._create_session_state_response(),
    )


@app.get("/", response_class=HTMLResponse)
async def root() -> str:
    """Serve the main application page."""
    static_file = static_path / "index.html"
    return static_file.read_text()


@app.get("/api/session")
async def get_session_status(
    session_state: SessionState = Depends(get_session_state),
) -> SessionStateResponse:
    """Get the current session state status."""
    return session_state._create_session_state_response()


@app.get("/api/region_stats")
async def get_region_stats(
    session_state: SessionState = Depends(get_session_state),
) -> RegionStatsResponse:
    """Per-province statistics of the current auction."""
    return RegionStatsResponse(
        auction_label=session_state.auction_label,
        regions={
            name: stats.to_dict() for name, stats in session_state.region_stats.items()
        },
    )


@app.get("/api/plots/map/{target}")
async def get_map_plot_data(
    target: RenderTarget,
    session_state: SessionState = Depends(get_session_state),
) -> MapPlotResponse:
    """Get the price map as a Plotly figure for the desktop or mobile layout."""
    try:
        scene = session_state.build_scene(target)
        fig = create_map_figure(session_state, scene)
        fig_json = fig.to_json()
        if fig_json is None:
            raise ValueError(f"Failed to serialize {target} map to JSON")
        plotly_plot = json.loads(fig_json)

        price_range = scene.legend.price_range
        return MapPlotResponse(
            plotly_plot=plotly_plot,
            target=target,
            region_count=len(session_state.region_stats),
            regions_with_data=session_state.regions_with_data,
            min_price=price_range.min_price if price_range else None,
            max_price=price_range.max_price if price_range else None,
        )
    except HTTPException:
        # Re-raise HTTP exceptions as-is
        raise
    except Exception as e:
        logger.error(f"Error generating {target} map: {e}", exc_info=True)
        raise HTTPException(
            status_code=500, detail=f"Error generating {target} map: {str(e)}"
        )


@app.get("/api/scene/{target}")
async def get_scene(
    target: RenderTarget,
    session_state: SessionState = Depends(get_session_state),
) -> JSONResponse:
    """Describe the map as plain shapes, colors and labels."""
    return JSONResponse(content=session_state.build_scene(target).to_dict())


def _pointer_and_container(
    request: PointerMoveRequest,
) -> tuple[PointerPosition, ContainerRect]:
    container = request.container
    return (
        PointerPosition(client_x=request.client_x, client_y=request.client_y),
        ContainerRect(
            left=container.left,
            top=container.top,
            width=container.width,
            height=container.height,
        ),
    )


@app.post("/api/interaction/desktop/pointer-move")
async def desktop_pointer_move(
    request: PointerMoveRequest,
    session_state: SessionState = Depends(get_session_state),
) -> InteractionStateResponse:
    pointer, container = _pointer_and_container(request)
    return session_state.handle_pointer_move(request.region_id, pointer, container)


@app.post("/api/interaction/desktop/pointer-leave")
async def desktop_pointer_leave(
    session_state: SessionState = Depends(get_session_state),
) -> InteractionStateResponse:
    return session_state.handle_pointer_leave()


@app.post("/api/interaction/mobile/tap")
async def mobile_tap(
    request: TapRequest,
    session_state: SessionState = Depends(get_session_state),
) -> InteractionStateResponse:
    """Toggle the selected province on the compact map."""
    return session_state.handle_tap(request.region_id)


@app.post("/api/interaction/mobile/hover")
async def mobile_hover(
    request: PointerMoveRequest,
    session_state: SessionState = Depends(get_session_state),
) -> InteractionStateResponse:
    pointer, container = _pointer_and_container(request)
    return session_state.handle_mobile_hover(request.region_id, pointer, container)


@app.post("/api/interaction/mobile/hover-leave")
async def mobile_hover_leave(
    session_state: SessionState = Depends(get_session_state),
) -> InteractionStateResponse:
    return session_state.handle_mobile_hover_leave()


@app.get("/api/events/changes")
async def change_stream(
    session_state: SessionState = Depends(get_session_state),
) -> Any:
    """Server-Sent Events stream for data and interaction change notifications."""
    return StreamingResponse(
        session_state.change_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Headers": "Cache-Control",
        },
    )


# https://github.com/fastapi/typer/issues/341
typer.main.get_command_name = lambda name: name

cli = typer.Typer(
    help="Woolmap - Provincial wool price map for auction results",
    pretty_exceptions_show_locals=False,
    pretty_exceptions_enable=False,
)


@cli.callback(invoke_without_command=True)
def main_callback(ctx: typer.Context) -> None:
    """Woolmap - Provincial wool price map for auction results."""
    pass


@cli.command("serve")
def serve(
    port: int = typer.Option(8000, help="Port to serve on"),
    host: str = typer.Option("localhost", help="Host to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
    preload_jsonl: Optional[Path] = typer.Option(
        None,
        help="Path to JSONL file of auction sales to preload into session state",
        exists=True,
        dir_okay=False,
        file_okay=True,
    ),
    auction_label: Optional[str] = typer.Option(
        None, help="Label of the preloaded auction, shown as the map title"
    ),
    boundaries: Path = typer.Option(
        DEFAULT_BOUNDARIES_PATH,
        help="GeoJSON FeatureCollection with the province boundaries",
        exists=True,
        dir_okay=False,
        file_okay=True,
    ),
) -> None:
    """Start the Woolmap web application."""
    registry = RegionBoundaryRegistry(boundaries)
    # Fail at startup rather than on the first render.
    registry.get_boundaries()
    _app_instance.session_state = SessionState(registry)

    if preload_jsonl:
        typer.echo(f"Loading sales from {preload_jsonl}...")
        df = load_jsonl_to_dataframe(preload_jsonl)
        _app_instance.session_state.load_sales(df, auction_label=auction_label)
        typer.echo(f"Successfully loaded {len(df)} sales from JSONL")
    else:
        logger.info("Starting server without preloaded sales")

    def signal_handler(signum: int, frame: Any) -> None:
        """Handle shutdown signals gracefully."""
        typer.echo(f"Shutting down Woolmap {signal.Signals(signum).name=}, {frame=}...")
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    typer.echo(f"Starting Woolmap on http://{host}:{port}")

    # Pass the app instance directly to preserve the session state
    uvicorn.run(
        app,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
        timeout_graceful_shutdown=2,
        timeout_keep_alive=1,
    )


@cli.command("render")
def render(
    sales_jsonl: Path = typer.Argument(
        ..., help="JSONL file of auction sales", exists=True, dir_okay=False
    ),
    output_html: Path = typer.Argument(..., help="Where to write the HTML map"),
    target: RenderTarget = typer.Option(
        RenderTarget.DESKTOP, help="Layout to render"
    ),
    auction_label: Optional[str] = typer.Option(
        None, help="Label of the auction, shown as the map title"
    ),
    boundaries: Path = typer.Option(
        DEFAULT_BOUNDARIES_PATH,
        help="GeoJSON FeatureCollection with the province boundaries",
        exists=True,
        dir_okay=False,
        file_okay=True,
    ),
) -> None:
    """Render the price map for one auction to a standalone HTML file."""
    session_state = SessionState(RegionBoundaryRegistry(boundaries))
    df = load_jsonl_to_dataframe(sales_jsonl)
    session_state.load_sales(df, auction_label=auction_label)

    fig = create_map_figure(session_state, session_state.build_scene(target))
    output_html.parent.mkdir(parents=True, exist_ok=True)
    fig.write_html(output_html, include_plotlyjs="cdn")
    typer.echo(
        f"Wrote {target} map of {len(df)} sales "
        f"({session_state.regions_with_data} provinces with prices) to {output_html}"
    )


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
