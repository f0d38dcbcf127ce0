"""
Registry of per-visitor catalog trees.

Each visitor session owns its own ``CatalogTreeView``. Views are created on
first use and kept in an LRU cache; dropping a view (explicitly or by
eviction) discards its tree, the same as unmounting it.
"""

from typing import Dict, Optional

from cachetools import LRUCache  # type: ignore[import-untyped]

from ..api_client import CatalogGateway
from ..config import Settings
from ..logging_config import get_logger
from ..metrics import update_active_sessions
from .view import CatalogTreeView

logger = get_logger(__name__)


class TreeSessionRegistry:
    """
    LRU-bounded mapping of session id to tree view.

    Attributes:
        max_sessions: Maximum number of views held at once
    """

    def __init__(
        self,
        gateway: CatalogGateway,
        settings: Settings,
        max_sessions: Optional[int] = None,
    ) -> None:
        self._gateway = gateway
        self._settings = settings
        self.max_sessions = max_sessions or settings.MAX_TREE_SESSIONS
        self._views: LRUCache = LRUCache(maxsize=self.max_sessions)

        logger.info("Initialized TreeSessionRegistry", max_sessions=self.max_sessions)

    def __len__(self) -> int:
        return len(self._views)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._views

    def get(self, session_id: str) -> Optional[CatalogTreeView]:
        return self._views.get(session_id)

    def get_or_create(self, session_id: str) -> CatalogTreeView:
        """
        Return the session's view, creating an unloaded one if needed.

        Args:
            session_id: Visitor session id

        Returns:
            The session's tree view
        """
        view = self._views.get(session_id)
        if view is None:
            view = CatalogTreeView.from_settings(self._gateway, self._settings)
            self._views[session_id] = view
            update_active_sessions(len(self._views))
            logger.debug("Created tree view", session_id=session_id, sessions=len(self._views))
        return view

    def drop(self, session_id: str) -> bool:
        """
        Discard a session's view.

        Returns:
            True if the session had a view
        """
        view = self._views.pop(session_id, None)
        update_active_sessions(len(self._views))
        if view is None:
            return False
        logger.debug("Dropped tree view", session_id=session_id)
        return True

    def clear(self) -> None:
        count = len(self._views)
        self._views.clear()
        update_active_sessions(0)
        logger.info("Cleared tree views", sessions=count)

    def stats(self) -> Dict[str, int]:
        return {"sessions": len(self._views), "max_sessions": self.max_sessions}
