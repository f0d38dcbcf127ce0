"""
Tree view: the owner of one visitor's catalog tree.

A view holds exactly one ``TreeCache`` and one ``ExpansionController``,
loads the domain list, runs the default-path walk and renders snapshots.
Nothing outside the view mutates its state; everything goes through
``load``/``retry``/``refresh``/``toggle``/``collapse_all``.
"""

import asyncio
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from ..api_client import CatalogGateway, fetch_children
from ..config import Settings
from ..domain.entities import Lesson, Level
from ..logging_config import get_logger
from .cache import Fetched, NodeKey, TreeCache, TreeNode
from .controller import ExpansionController, ToggleOutcome
from .default_path import (
    DEFAULT_DOMAIN_KEYWORDS,
    DEFAULT_TECHNOLOGY_NAME,
    DefaultPathExpander,
)

logger = get_logger(__name__)


class RootStatus(str, Enum):
    """Lifecycle of the root (domain list) fetch."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


def lesson_href(
    technology: Optional[TreeNode], tutorial: Optional[TreeNode], lesson: Lesson
) -> str:
    """Route of a lesson page: ``/tutorials/<technology>/<tutorial>/<lesson>``."""
    parts = ["tutorials"]
    for node in (technology, tutorial):
        if node is not None:
            parts.append(node.record.slug or node.id)
    parts.append(lesson.slug or lesson.id)
    return "/" + "/".join(parts)


class CatalogTreeView:
    """
    One catalog navigation tree and its expansion state.

    Attributes:
        cache: Fetched catalog data
        controller: Per-node expansion/loading/error state
        root_status: State of the domain list fetch
        root_error: Message of the last failed domain list fetch
        default_path: Nodes expanded by the last default-path walk
    """

    def __init__(
        self,
        gateway: CatalogGateway,
        auto_expand: bool = True,
        domain_keywords: Sequence[str] = DEFAULT_DOMAIN_KEYWORDS,
        technology_name: str = DEFAULT_TECHNOLOGY_NAME,
    ) -> None:
        self._gateway = gateway
        self.cache = TreeCache()
        self.controller = ExpansionController(self.cache, gateway)
        self.auto_expand = auto_expand
        self._expander = DefaultPathExpander(
            self.cache,
            self.controller,
            domain_keywords=domain_keywords,
            technology_name=technology_name,
        )
        self.root_status = RootStatus.IDLE
        self.root_error: Optional[str] = None
        self.default_path: List[NodeKey] = []
        self._root_task: Optional["asyncio.Task[bool]"] = None
        self._generation = 0

    @classmethod
    def from_settings(cls, gateway: CatalogGateway, settings: Settings) -> "CatalogTreeView":
        return cls(
            gateway,
            auto_expand=settings.AUTO_EXPAND_DEFAULT_PATH,
            domain_keywords=settings.DEFAULT_DOMAIN_KEYWORDS,
            technology_name=settings.DEFAULT_TECHNOLOGY_NAME,
        )

    async def load(self) -> bool:
        """
        Load the domain list once and walk the default path.

        Concurrent callers share the same attempt. After a successful load
        this returns immediately; after a failure it returns False until
        ``retry`` is called.

        Returns:
            True if the domain list is available
        """
        if self.root_status is RootStatus.READY and self._root_task is None:
            return True
        if self._root_task is None:
            if self.root_status is RootStatus.ERROR:
                return False
            self.root_status = RootStatus.LOADING
            self.root_error = None
            self._root_task = asyncio.ensure_future(self._load_root(self._generation))
        task = self._root_task
        try:
            return await asyncio.shield(task)
        finally:
            if task.done() and self._root_task is task:
                self._root_task = None

    async def retry(self) -> bool:
        """
        Re-attempt a failed domain list fetch.

        On success the default path is walked again from the start.
        """
        if self.root_status is RootStatus.ERROR:
            logger.info("Retrying domain list fetch")
            self.root_status = RootStatus.IDLE
            self.root_error = None
        return await self.load()

    async def refresh(self) -> bool:
        """Discard all cached data and expansion state, then load again."""
        logger.info("Refreshing catalog tree", nodes=len(self.cache))
        self._generation += 1
        self._root_task = None
        self.cache.clear()
        self.controller.reset()
        self.root_status = RootStatus.IDLE
        self.root_error = None
        self.default_path = []
        return await self.load()

    async def _load_root(self, generation: int) -> bool:
        try:
            domains = await fetch_children(self._gateway, None)
        except Exception as error:
            if generation == self._generation:
                self.root_status = RootStatus.ERROR
                self.root_error = str(error) or type(error).__name__
            logger.error(
                "Failed to load domain list",
                error_type=type(error).__name__,
                error=str(error),
            )
            return False

        if generation != self._generation:
            logger.info("Discarding domain list for refreshed tree")
            return False

        self.cache.merge_children(None, None, domains)
        self.root_status = RootStatus.READY
        logger.info("Loaded domain list", count=len(domains))

        if self.auto_expand:
            walked = await self._expander.run()
            if generation == self._generation:
                self.default_path = walked
        return True

    async def toggle(self, level: Level, node_id: str) -> ToggleOutcome:
        return await self.controller.toggle(level, node_id)

    def collapse_all(self) -> None:
        self.controller.collapse_all()

    def snapshot(self) -> Dict[str, Any]:
        """
        Render the tree and its expansion state as JSON-ready data.

        ``children`` is None for nodes whose children were never fetched and
        a (possibly empty) list otherwise.
        """
        roots = self.cache.roots
        return {
            "status": self.root_status.value,
            "error": self.root_error,
            "domains": (
                [self._render(node, None, None) for node in roots.items]
                if isinstance(roots, Fetched)
                else None
            ),
            "default_path": [
                {"level": level.value, "id": node_id} for level, node_id in self.default_path
            ],
        }

    def _render(
        self,
        node: TreeNode,
        technology: Optional[TreeNode],
        tutorial: Optional[TreeNode],
    ) -> Dict[str, Any]:
        level, node_id = node.key
        rendered: Dict[str, Any] = {
            "level": level.value,
            "id": node_id,
            "label": node.record.label,
            "record": node.record.to_dict(),
            "state": self.controller.node_state(level, node_id).value,
            "expanded": self.controller.is_expanded(level, node_id),
            "loading": self.controller.is_loading(level, node_id),
            "error": self.controller.error_for(level, node_id),
            "children": None,
        }

        if level is Level.TECHNOLOGY:
            technology = node
        elif level is Level.TUTORIAL:
            tutorial = node
        elif isinstance(node.record, Lesson):
            rendered["href"] = lesson_href(technology, tutorial, node.record)

        if isinstance(node.children, Fetched):
            rendered["children"] = [
                self._render(child, technology, tutorial) for child in node.children.items
            ]
        return rendered
