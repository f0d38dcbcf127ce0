"""
Expansion controller for the catalog tree.

Tracks, per ``(level, id)``, whether a node is expanded, whether a fetch for
its children is in flight, and whether the last fetch failed. Decides when a
toggle needs a fetch and guarantees at most one outstanding fetch per node.
All gateway failures are caught here.
"""

import asyncio
from enum import Enum
from typing import Dict, Optional

from ..api_client import CatalogGateway, fetch_children
from ..domain.entities import Level
from ..logging_config import get_logger
from ..metrics import track_toggle
from .cache import NodeKey, TreeCache

logger = get_logger(__name__)


class NodeState(str, Enum):
    """Visible state of a node, derived from data and expansion maps."""

    COLLAPSED = "collapsed"
    EXPANDING = "expanding"
    EXPANDED_EMPTY = "expanded-empty"
    EXPANDED_POPULATED = "expanded-populated"
    COLLAPSED_AFTER_EXPAND = "collapsed-after-expand"


class ToggleOutcome(str, Enum):
    """What a toggle request resolved to."""

    IGNORED = "ignored"
    COLLAPSED = "collapsed"
    EXPANDED = "expanded"
    FETCHED = "fetched"
    FAILED = "failed"
    DISCARDED = "discarded"
    NOT_FOUND = "not_found"
    LEAF = "leaf"


class ExpansionController:
    """
    Per-node expansion, loading and error state over a ``TreeCache``.

    The controller is the only writer of the cache below the root. Data and
    visibility are kept apart: collapsing never drops fetched children, and
    a fetch that resolves after its node was collapsed is still merged.

    Attributes:
        expanded: Expanded flag per node key
        errors: Failure message per node key whose last fetch failed
    """

    def __init__(self, cache: TreeCache, gateway: CatalogGateway) -> None:
        self._cache = cache
        self._gateway = gateway
        self.expanded: Dict[NodeKey, bool] = {}
        self.errors: Dict[NodeKey, str] = {}
        self._inflight: Dict[NodeKey, "asyncio.Future[bool]"] = {}
        self._generation = 0

    def is_expanded(self, level: Level, node_id: str) -> bool:
        return self.expanded.get((level, node_id), False)

    def is_loading(self, level: Level, node_id: str) -> bool:
        return (level, node_id) in self._inflight

    def error_for(self, level: Level, node_id: str) -> Optional[str]:
        return self.errors.get((level, node_id))

    @property
    def loading(self) -> frozenset:
        """Keys of nodes with a fetch in flight."""
        return frozenset(self._inflight)

    def node_state(self, level: Level, node_id: str) -> NodeState:
        key = (level, node_id)
        expanded = self.expanded.get(key, False)
        if key in self._inflight:
            return NodeState.EXPANDING if expanded else NodeState.COLLAPSED

        children = self._cache.get_children(level, node_id)
        if children is None or not children.is_fetched:
            return NodeState.COLLAPSED
        if not expanded:
            return NodeState.COLLAPSED_AFTER_EXPAND
        if children.is_empty:
            return NodeState.EXPANDED_EMPTY
        return NodeState.EXPANDED_POPULATED

    async def toggle(self, level: Level, node_id: str) -> ToggleOutcome:
        """
        Flip a node between expanded and collapsed.

        Expanding a node whose children were never fetched, or whose last
        fetch failed, issues exactly one fetch. A toggle that arrives while
        the node's fetch is in flight is ignored.

        Args:
            level: Level of the node
            node_id: Id of the node

        Returns:
            The outcome of the request; never raises for gateway failures
        """
        outcome = await self._toggle(level, node_id)
        track_toggle(level.value, outcome.value)
        logger.debug("Toggled node", level=level.value, node_id=node_id, outcome=outcome.value)
        return outcome

    async def _toggle(self, level: Level, node_id: str) -> ToggleOutcome:
        key = (level, node_id)
        if level.is_leaf:
            return ToggleOutcome.LEAF
        if key in self._inflight:
            return ToggleOutcome.IGNORED

        node = self._cache.get_node(level, node_id)
        if node is None:
            logger.warning("Toggle for unknown node", level=level.value, node_id=node_id)
            return ToggleOutcome.NOT_FOUND

        if self.expanded.get(key, False):
            self.expanded[key] = False
            return ToggleOutcome.COLLAPSED

        if node.children.is_fetched:
            self.expanded[key] = True
            return ToggleOutcome.EXPANDED

        return await self._expand_and_fetch(key)

    async def expand(self, level: Level, node_id: str) -> bool:
        """
        Make sure a node is expanded with its children fetched.

        Never collapses. If a fetch for the node is already in flight, waits
        for it instead of issuing another.

        Returns:
            True if the node's children are available afterwards
        """
        key = (level, node_id)
        if level.is_leaf:
            return False

        pending = self._inflight.get(key)
        if pending is not None:
            await asyncio.shield(pending)
            return self._cache.is_fetched(level, node_id) and key not in self.errors

        node = self._cache.get_node(level, node_id)
        if node is None:
            return False

        if node.children.is_fetched:
            self.expanded[key] = True
            return True

        outcome = await self._expand_and_fetch(key)
        return outcome is ToggleOutcome.FETCHED

    async def _expand_and_fetch(self, key: NodeKey) -> ToggleOutcome:
        level, node_id = key
        future: "asyncio.Future[bool]" = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        self.expanded[key] = True
        self.errors.pop(key, None)
        generation = self._generation
        outcome = ToggleOutcome.FAILED

        try:
            records = await fetch_children(self._gateway, level, node_id)
        except Exception as error:
            if generation == self._generation:
                self.errors[key] = str(error) or type(error).__name__
                self.expanded[key] = False
            logger.warning(
                "Failed to load children",
                level=level.value,
                node_id=node_id,
                error_type=type(error).__name__,
                error=str(error),
            )
        else:
            if generation != self._generation:
                logger.info("Discarding response for reset tree", level=level.value, node_id=node_id)
                outcome = ToggleOutcome.DISCARDED
            elif self._cache.merge_children(level, node_id, records):
                outcome = ToggleOutcome.FETCHED
            else:
                self.expanded.pop(key, None)
                outcome = ToggleOutcome.NOT_FOUND
        finally:
            if self._inflight.get(key) is future:
                del self._inflight[key]
            future.set_result(outcome is ToggleOutcome.FETCHED)

        return outcome

    def collapse_all(self) -> None:
        """Collapse every node. Cached children and in-flight fetches are kept."""
        count = sum(1 for value in self.expanded.values() if value)
        self.expanded.clear()
        logger.info("Collapsed all nodes", collapsed=count)

    def reset(self) -> None:
        """
        Forget all expansion, loading and error state.

        Responses to fetches issued before the reset are discarded when they
        arrive.
        """
        self._generation += 1
        self.expanded.clear()
        self.errors.clear()
        self._inflight.clear()
