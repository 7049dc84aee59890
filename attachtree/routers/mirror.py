"""API router for attachment directories and the mirror tree."""
from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query

from attachtree.mirror.errors import MissingAncestorError, NamingCollisionError
from attachtree.models import AttachDirResult, NodeSummary, OutlineNode, SyncReport
from attachtree.services.attachment_service import get_service

logger = logging.getLogger("attachtree.api")

mirror_router = APIRouter(prefix="/api/mirror", tags=["mirror"])


def _get_node(node_id: str) -> OutlineNode:
    try:
        return get_service().get_node(node_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


def _mirror_failure(exc: Exception) -> HTTPException:
    if isinstance(exc, NamingCollisionError):
        logger.warning("Mirror sync aborted: %s", exc)
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=422, detail=str(exc))


@mirror_router.get("/nodes", response_model=list[NodeSummary])
def list_nodes():
    """List outline nodes with their mirror state."""
    return get_service().list_nodes()


@mirror_router.get("/nodes/{node_id}", response_model=NodeSummary)
def get_node(node_id: str):
    node = _get_node(node_id)
    try:
        return get_service().summarize(node)
    except MissingAncestorError as exc:
        raise _mirror_failure(exc) from exc


@mirror_router.get("/nodes/{node_id}/path")
def get_mirror_path(
    node_id: str,
    include_data: bool = Query(False, description="Append the data symlink name"),
):
    """Where the node's mirror entry lives (no filesystem changes)."""
    node = _get_node(node_id)
    try:
        path = get_service().mirror_path(node, exclude_data_suffix=not include_data)
    except MissingAncestorError as exc:
        raise _mirror_failure(exc) from exc
    return {"nodeId": node_id, "mirrorPath": str(path) if path is not None else None}


@mirror_router.post("/nodes/{node_id}/attach-dir", response_model=AttachDirResult)
def resolve_attach_dir(node_id: str, create: bool = Query(True)):
    """Resolve the node's attachment directory and synchronize its mirror entry."""
    node = _get_node(node_id)
    try:
        result = get_service().attach_dir(node, create=create)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except (NamingCollisionError, MissingAncestorError) as exc:
        raise _mirror_failure(exc) from exc
    if result is None:
        raise HTTPException(status_code=404, detail=f"Node {node_id} has no attachment directory")
    return result


@mirror_router.post("/sync", response_model=SyncReport)
def sync_mirror():
    """Synchronize the whole mirror from the root."""
    try:
        return get_service().sync_all()
    except (NamingCollisionError, MissingAncestorError) as exc:
        raise _mirror_failure(exc) from exc


@mirror_router.post("/nodes/{node_id}/sync", response_model=SyncReport)
def sync_node(node_id: str):
    """Synchronize one node, its ancestors' entries and its subtree."""
    node = _get_node(node_id)
    try:
        return get_service().sync_node(node)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except (NamingCollisionError, MissingAncestorError) as exc:
        raise _mirror_failure(exc) from exc
