"""Graph view endpoints.

A renderer polls /graph/data for positions and emphasis, and posts pointer,
click, drag and search events back. All state lives in the app's
GraphSession (one viewer per app).
"""

import logging
from typing import Literal

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from notegraph.session import GraphSession

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request / Response Models
# ============================================================================


class LoadRequest(BaseModel):
    """Reload notes, optionally restricted to one tag."""

    tag: str | None = None


class SearchRequest(BaseModel):
    """Relevance search query."""

    query: str = Field(default="", max_length=2000)


class SearchResponse(BaseModel):
    """Applied hits, or applied=False when the query was blank, stale or failed."""

    applied: bool
    query: str | None = None
    hits: list[dict] = Field(default_factory=list)
    error: str | None = None


class PointerEvent(BaseModel):
    """Pointer entering or leaving a node."""

    event: Literal["enter", "leave"]
    node_id: str | None = None


class ClickEvent(BaseModel):
    """Click on a node, or on the empty canvas when node_id is null."""

    node_id: str | None = None


class FocusModeRequest(BaseModel):
    enabled: bool


class PinRequest(BaseModel):
    x: float | None = None
    y: float | None = None


class DragEvent(BaseModel):
    phase: Literal["start", "move", "end"]
    x: float | None = None
    y: float | None = None


class AcceptedResponse(BaseModel):
    """Whether the event changed anything (unknown ids are ignored)."""

    accepted: bool


class HealthResponse(BaseModel):
    status: str
    nodes: int
    layout_running: bool
    version: str = "0.1.0"


# ============================================================================
# Helpers
# ============================================================================


def get_session(request: Request) -> GraphSession:
    """Get graph session from app state."""
    return request.app.state.session


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    session = get_session(request)
    return HealthResponse(
        status="healthy",
        nodes=len(session.graph.nodes),
        layout_running=session.layout_loop.running,
    )


@router.get("/graph/data")
async def graph_data(request: Request) -> dict:
    """Nodes with positions and emphasis, edges with styling, clusters, search state."""
    return get_session(request).view()


@router.post("/graph/load")
async def load_graph(request: Request, body: LoadRequest) -> dict:
    session = get_session(request)
    await session.load(tag_filter=body.tag)
    return session.view()


@router.post("/graph/filter")
async def filter_graph(request: Request, body: LoadRequest) -> dict:
    session = get_session(request)
    session.set_tag_filter(body.tag)
    return session.view()


@router.post("/graph/analyze")
async def analyze(request: Request) -> dict:
    """Run connection analysis over the visible notes."""
    session = get_session(request)
    status = await session.analyze()
    return {
        "status": status.value,
        "error": session.analysis_error,
        "stats": session.stats(),
    }


@router.post("/graph/search", response_model=SearchResponse)
async def search(request: Request, body: SearchRequest) -> SearchResponse:
    session = get_session(request)
    hits = await session.search(body.query)
    return SearchResponse(
        applied=hits is not None,
        query=session.search_view.query,
        hits=[h.to_dict() for h in session.search_view.results],
        error=session.search_view.error,
    )


@router.delete("/graph/search", response_model=AcceptedResponse)
async def clear_search(request: Request) -> AcceptedResponse:
    get_session(request).clear_search()
    return AcceptedResponse(accepted=True)


@router.post("/graph/pointer", response_model=AcceptedResponse)
async def pointer(request: Request, body: PointerEvent) -> AcceptedResponse:
    session = get_session(request)
    if body.event == "enter":
        if body.node_id is None:
            raise HTTPException(status_code=422, detail="node_id is required for enter")
        return AcceptedResponse(accepted=session.hover(body.node_id))
    return AcceptedResponse(accepted=session.leave(body.node_id))


@router.post("/graph/click", response_model=AcceptedResponse)
async def click(request: Request, body: ClickEvent) -> AcceptedResponse:
    return AcceptedResponse(accepted=get_session(request).click(body.node_id))


@router.post("/graph/focus-mode", response_model=AcceptedResponse)
async def focus_mode(request: Request, body: FocusModeRequest) -> AcceptedResponse:
    get_session(request).set_focus_mode(body.enabled)
    return AcceptedResponse(accepted=True)


@router.put("/graph/nodes/{node_id}/pin", response_model=AcceptedResponse)
async def pin_node(request: Request, node_id: str, body: PinRequest) -> AcceptedResponse:
    if not get_session(request).simulation.pin(node_id, body.x, body.y):
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    return AcceptedResponse(accepted=True)


@router.delete("/graph/nodes/{node_id}/pin", response_model=AcceptedResponse)
async def unpin_node(request: Request, node_id: str) -> AcceptedResponse:
    if not get_session(request).simulation.unpin(node_id):
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    return AcceptedResponse(accepted=True)


@router.post("/graph/nodes/{node_id}/drag", response_model=AcceptedResponse)
async def drag_node(request: Request, node_id: str, body: DragEvent) -> AcceptedResponse:
    simulation = get_session(request).simulation
    if body.phase == "start":
        accepted = simulation.drag_start(node_id)
    elif body.phase == "end":
        accepted = simulation.drag_end(node_id)
    else:
        if body.x is None or body.y is None:
            raise HTTPException(status_code=422, detail="x and y are required for move")
        accepted = simulation.drag_to(node_id, body.x, body.y)
    if not accepted:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    return AcceptedResponse(accepted=True)


@router.get("/graph/synthesis")
async def synthesis(request: Request) -> dict:
    """Clusters and AI connections for the selected node (or an overview)."""
    result = get_session(request).synthesis()
    return {
        "selected_id": result.selected_id,
        "clusters": result.clusters,
        "connections": result.connections,
    }
