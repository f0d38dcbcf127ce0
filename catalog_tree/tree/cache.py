"""
In-memory cache of the partially fetched catalog tree.

Nodes are immutable. Merging a fetch response rebuilds only the nodes on the
path from the root to the addressed node; every other node object is reused
as-is, so unrelated branches are never touched by a merge.
"""

from dataclasses import dataclass, replace
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

from ..domain.entities import CatalogRecord, Level
from ..logging_config import get_logger

logger = get_logger(__name__)

NodeKey = Tuple[Level, str]


@dataclass(frozen=True)
class Unfetched:
    """Children were never requested."""

    @property
    def is_fetched(self) -> bool:
        return False


@dataclass(frozen=True)
class Fetched:
    """Children were requested; ``items`` may be empty."""

    items: Tuple["TreeNode", ...] = ()

    @property
    def is_fetched(self) -> bool:
        return True

    @property
    def is_empty(self) -> bool:
        return not self.items

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator["TreeNode"]:
        return iter(self.items)


UNFETCHED = Unfetched()

Children = Union[Unfetched, Fetched]


@dataclass(frozen=True)
class TreeNode:
    """A catalog record together with the children fetched for it so far."""

    level: Level
    record: CatalogRecord
    children: Children = UNFETCHED

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def key(self) -> NodeKey:
        return (self.level, self.record.id)

    def with_children(self, children: Children) -> "TreeNode":
        return replace(self, children=children)


def _lesson_sort_key(record: CatalogRecord) -> float:
    return getattr(record, "order", 0) or 0


def build_nodes(
    level: Level,
    records: Sequence[CatalogRecord],
    previous: Children = UNFETCHED,
) -> Fetched:
    """
    Turn one fetch response into a ``Fetched`` child list.

    Lessons are ordered by their ``order`` field with a stable sort, so
    lessons sharing an order keep the server's sequence. Nodes already in
    ``previous`` with the same id keep their fetched children, and are
    reused unchanged when their record is identical.

    Args:
        level: Level of the records
        records: Full response of a single fetch, in server order
        previous: Children currently cached for the same parent

    Returns:
        The new child list
    """
    if level is Level.LESSON:
        records = sorted(records, key=_lesson_sort_key)

    # First node per id, matching the index.
    prior: Dict[str, TreeNode] = {}
    if isinstance(previous, Fetched):
        for node in previous.items:
            prior.setdefault(node.id, node)

    nodes: List[TreeNode] = []
    for record in records:
        existing = prior.pop(record.id, None)
        if existing is not None and existing.record == record:
            nodes.append(existing)
        elif existing is not None:
            nodes.append(TreeNode(level, record, existing.children))
        else:
            nodes.append(TreeNode(level, record))
    return Fetched(tuple(nodes))


class TreeCache:
    """
    Authoritative, partially populated catalog tree.

    The root is the domain list. Each node's children are either
    ``Unfetched`` or ``Fetched``; the cache only grows within a session and
    is discarded as a whole by ``clear``.

    Attributes:
        roots: Children of the invisible root (the domain list)
        merges: Number of successful merges since the last clear
    """

    def __init__(self) -> None:
        self.roots: Children = UNFETCHED
        self.merges = 0
        self._paths: Dict[NodeKey, Tuple[int, ...]] = {}

    def __len__(self) -> int:
        return len(self._paths)

    def __contains__(self, key: NodeKey) -> bool:
        return key in self._paths

    def clear(self) -> None:
        """Drop every cached node."""
        count = len(self._paths)
        self.roots = UNFETCHED
        self.merges = 0
        self._paths = {}
        logger.info("Cleared tree cache", nodes=count)

    def get_node(self, level: Level, node_id: str) -> Optional[TreeNode]:
        """
        Return the cached node for ``(level, node_id)``.

        Returns:
            The node, or None if it is not in the cache
        """
        path = self._paths.get((level, node_id))
        if path is None:
            return None
        return self._node_at(path)

    def get_children(self, level: Optional[Level], node_id: Optional[str] = None) -> Optional[Children]:
        """
        Return the children variant of a node, or of the root when ``level`` is None.

        Returns:
            ``Unfetched`` or ``Fetched``, or None if the node is not cached
        """
        if level is None:
            return self.roots
        node = self.get_node(level, node_id)
        return node.children if node is not None else None

    def is_fetched(self, level: Optional[Level], node_id: Optional[str] = None) -> bool:
        children = self.get_children(level, node_id)
        return children is not None and children.is_fetched

    def merge_children(
        self,
        level: Optional[Level],
        parent_id: Optional[str],
        records: Sequence[CatalogRecord],
    ) -> bool:
        """
        Store ``records`` as the children of ``(level, parent_id)``.

        ``records`` must be the complete response of one fetch. Only the
        addressed node's children are replaced; the nodes on the path to it
        are copied and all other nodes are shared with the previous tree.
        Merging the same response twice yields an equal tree.

        Args:
            level: Level of the parent node, None for the root domain list
            parent_id: Id of the parent node (ignored for the root)
            records: Child records in server order

        Returns:
            True if the parent was found and updated, False otherwise
        """
        if level is None:
            self.roots = build_nodes(Level.DOMAIN, records, self.roots)
        else:
            child_level = level.child_level
            if child_level is None:
                logger.warning("Ignoring merge into leaf node", level=level.value, node_id=parent_id)
                return False

            path = self._paths.get((level, parent_id))
            if path is None:
                logger.warning(
                    "Merge target not found in tree cache",
                    level=level.value,
                    node_id=parent_id,
                )
                return False

            node = self._node_at(path)
            new_children = build_nodes(child_level, records, node.children)
            self.roots = self._replace_along(self.roots, path, new_children)  # type: ignore[arg-type]

        self.merges += 1
        self._reindex()
        logger.debug(
            "Merged children into tree cache",
            level=level.value if level else None,
            node_id=parent_id,
            count=len(records),
            nodes=len(self._paths),
        )
        return True

    def iter_nodes(self) -> Iterator[TreeNode]:
        """Yield every cached node, depth first, in display order."""
        stack: List[TreeNode] = []
        if isinstance(self.roots, Fetched):
            stack.extend(reversed(self.roots.items))
        while stack:
            node = stack.pop()
            yield node
            if isinstance(node.children, Fetched):
                stack.extend(reversed(node.children.items))

    def _node_at(self, path: Tuple[int, ...]) -> TreeNode:
        # Indexed paths only ever pass through fetched children.
        node = self.roots.items[path[0]]  # type: ignore[union-attr]
        for index in path[1:]:
            node = node.children.items[index]  # type: ignore[union-attr]
        return node

    def _replace_along(
        self, children: Fetched, path: Tuple[int, ...], new_children: Fetched
    ) -> Fetched:
        index = path[0]
        node = children.items[index]
        if len(path) == 1:
            updated = node.with_children(new_children)
        else:
            updated = node.with_children(
                self._replace_along(node.children, path[1:], new_children)  # type: ignore[arg-type]
            )
        items = children.items
        return Fetched(items[:index] + (updated,) + items[index + 1:])

    def _reindex(self) -> None:
        # First occurrence wins if the backend repeats an id within a level.
        paths: Dict[NodeKey, Tuple[int, ...]] = {}
        stack: List[Tuple[Children, Tuple[int, ...]]] = [(self.roots, ())]
        while stack:
            children, prefix = stack.pop()
            if not isinstance(children, Fetched):
                continue
            for index in reversed(range(len(children.items))):
                node = children.items[index]
                path = prefix + (index,)
                stack.append((node.children, path))
            for index, node in enumerate(children.items):
                paths.setdefault(node.key, prefix + (index,))
        self._paths = paths
