"""
Pydantic response models for the catalog tree API.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class TreeNodeModel(BaseModel):
    """One rendered node of the catalog tree."""

    level: str = Field(..., description="Catalog level of the node")
    id: str = Field(..., description="Opaque node id")
    label: str = Field(..., description="Display name or title")
    record: Dict[str, Any] = Field(default_factory=dict, description="Record fields")
    state: str = Field(..., description="Expansion state of the node")
    expanded: bool = False
    loading: bool = False
    error: Optional[str] = Field(None, description="Message of the last failed fetch")
    children: Optional[List["TreeNodeModel"]] = Field(
        None, description="Fetched children, null when never fetched"
    )
    href: Optional[str] = Field(None, description="Lesson page route (lessons only)")


class PathEntryModel(BaseModel):
    """A node expanded by the default-path walk."""

    level: str
    id: str


class TreeSnapshotResponse(BaseModel):
    """Full tree snapshot for one visitor session."""

    status: str = Field(..., description="Root fetch status: idle, loading, ready, error")
    error: Optional[str] = Field(None, description="Root fetch error message")
    domains: Optional[List[TreeNodeModel]] = Field(
        None, description="Domain nodes, null until the domain list loads"
    )
    default_path: List[PathEntryModel] = Field(default_factory=list)


class ToggleResponse(BaseModel):
    """Result of a toggle request."""

    outcome: str = Field(..., description="What the toggle resolved to")
    tree: TreeSnapshotResponse


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    service: str = "catalog-tree-service"
    dependencies: Dict[str, str] = Field(default_factory=dict)
    sessions: int = 0


TreeNodeModel.model_rebuild()
