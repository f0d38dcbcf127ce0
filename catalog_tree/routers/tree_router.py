"""
Catalog tree router.

Exposes a visitor's navigation tree: the current snapshot and the
toggle/collapse/retry/refresh actions. Visitors are identified by the
``X-Session-ID`` header; a new id is issued when the header is missing and
returned on every response.
"""

from uuid import uuid4

from fastapi import APIRouter, Depends, Request, Response, status

from ..domain.entities import Level
from ..logging_config import get_logger
from ..models import ToggleResponse, TreeSnapshotResponse
from ..tree.sessions import TreeSessionRegistry
from ..tree.view import CatalogTreeView

logger = get_logger(__name__)

SESSION_HEADER = "X-Session-ID"

router = APIRouter(prefix="/api/v1/tree", tags=["tree"])


def get_registry(request: Request) -> TreeSessionRegistry:
    """Registry owned by the running application."""
    return request.app.state.tree_sessions


def get_session_id(request: Request, response: Response) -> str:
    """Read the visitor session id, issuing a new one when absent."""
    session_id = request.headers.get(SESSION_HEADER) or str(uuid4())
    response.headers[SESSION_HEADER] = session_id
    return session_id


async def get_view(
    session_id: str = Depends(get_session_id),
    registry: TreeSessionRegistry = Depends(get_registry),
) -> CatalogTreeView:
    """The session's tree view, loaded before use."""
    view = registry.get_or_create(session_id)
    await view.load()
    return view


@router.get(
    "",
    response_model=TreeSnapshotResponse,
    summary="Get catalog tree",
    description="Current tree snapshot; loads the domain list on first access",
)
async def get_tree(view: CatalogTreeView = Depends(get_view)):
    return view.snapshot()


@router.post(
    "/toggle/{level}/{node_id}",
    response_model=ToggleResponse,
    summary="Toggle a node",
    description="Expand or collapse a node, fetching its children on first expansion",
)
async def toggle_node(
    level: str,
    node_id: str,
    view: CatalogTreeView = Depends(get_view),
):
    """
    Toggle a node.

    Toggling while the node's children are loading is ignored; a failed
    fetch leaves the node collapsed with an error marker and can be retried
    by toggling again.
    """
    catalog_level = Level.parse(level)
    outcome = await view.toggle(catalog_level, node_id)
    logger.info(
        "Toggle request handled",
        level=catalog_level.value,
        node_id=node_id,
        outcome=outcome.value,
    )
    return {"outcome": outcome.value, "tree": view.snapshot()}


@router.post(
    "/collapse",
    response_model=TreeSnapshotResponse,
    summary="Collapse all nodes",
    description="Collapse every node; fetched data is kept",
)
async def collapse_tree(view: CatalogTreeView = Depends(get_view)):
    view.collapse_all()
    return view.snapshot()


@router.post(
    "/retry",
    response_model=TreeSnapshotResponse,
    summary="Retry loading the tree",
    description="Re-attempt a failed domain list fetch",
)
async def retry_tree(
    session_id: str = Depends(get_session_id),
    registry: TreeSessionRegistry = Depends(get_registry),
):
    view = registry.get_or_create(session_id)
    await view.retry()
    return view.snapshot()


@router.post(
    "/refresh",
    response_model=TreeSnapshotResponse,
    summary="Refresh the tree",
    description="Discard all cached catalog data and load it again",
)
async def refresh_tree(
    session_id: str = Depends(get_session_id),
    registry: TreeSessionRegistry = Depends(get_registry),
):
    view = registry.get_or_create(session_id)
    await view.refresh()
    return view.snapshot()


@router.delete(
    "",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Discard the tree",
    description="Drop the session's tree and all its cached data",
)
async def drop_tree(
    session_id: str = Depends(get_session_id),
    registry: TreeSessionRegistry = Depends(get_registry),
):
    registry.drop(session_id)
    return Response(
        status_code=status.HTTP_204_NO_CONTENT,
        headers={SESSION_HEADER: session_id},
    )
