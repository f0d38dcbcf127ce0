"""
Default-path auto-expansion.

After the domain list loads, walk one branch down (web development domain,
HTML technology, first tutorial) so a new visitor lands on a populated tree.
The walk is strictly sequential and best effort: each step commits to the
first qualifying candidate, never backtracks, and stops silently on a miss
or a failed fetch.
"""

from typing import Iterable, List, Optional, Sequence

from ..domain.entities import Domain, Technology
from ..logging_config import get_logger
from .cache import Fetched, NodeKey, TreeCache, TreeNode
from .controller import ExpansionController

logger = get_logger(__name__)

DEFAULT_DOMAIN_KEYWORDS = ("web", "development")
DEFAULT_TECHNOLOGY_NAME = "html"


def pick_domain(nodes: Iterable[TreeNode], keywords: Sequence[str]) -> Optional[TreeNode]:
    """First domain whose name contains any keyword (case-insensitive)."""
    lowered = [keyword.lower() for keyword in keywords]
    for node in nodes:
        record = node.record
        name = record.name.lower() if isinstance(record, Domain) else ""
        if any(keyword in name for keyword in lowered):
            return node
    return None


def pick_technology(nodes: Iterable[TreeNode], name: str) -> Optional[TreeNode]:
    """First technology whose name equals ``name`` (case-insensitive)."""
    wanted = name.lower()
    for node in nodes:
        record = node.record
        if isinstance(record, Technology) and record.name.lower() == wanted:
            return node
    return None


def pick_tutorial(nodes: Sequence[TreeNode]) -> Optional[TreeNode]:
    """First tutorial in server order."""
    return nodes[0] if nodes else None


class DefaultPathExpander:
    """
    Expands the default branch of a freshly loaded tree.

    Attributes:
        domain_keywords: Substrings that select the domain
        technology_name: Exact name that selects the technology
    """

    def __init__(
        self,
        cache: TreeCache,
        controller: ExpansionController,
        domain_keywords: Sequence[str] = DEFAULT_DOMAIN_KEYWORDS,
        technology_name: str = DEFAULT_TECHNOLOGY_NAME,
    ) -> None:
        self._cache = cache
        self._controller = controller
        self.domain_keywords = tuple(domain_keywords)
        self.technology_name = technology_name

    def _children_of(self, node: TreeNode) -> Sequence[TreeNode]:
        children = self._cache.get_children(node.level, node.id)
        return children.items if isinstance(children, Fetched) else ()

    async def _step(self, node: Optional[TreeNode], expanded: List[NodeKey]) -> bool:
        if node is None:
            return False
        if not await self._controller.expand(node.level, node.id):
            logger.info(
                "Default path stopped on failed expansion",
                level=node.level.value,
                node_id=node.id,
            )
            return False
        expanded.append(node.key)
        return True

    async def run(self) -> List[NodeKey]:
        """
        Walk the default path.

        Returns:
            Keys of the nodes expanded by the walk, in order
        """
        expanded: List[NodeKey] = []
        roots = self._cache.roots
        if not isinstance(roots, Fetched):
            return expanded

        domain = pick_domain(roots.items, self.domain_keywords)
        if not await self._step(domain, expanded):
            return self._finish(expanded)

        technology = pick_technology(self._children_of(domain), self.technology_name)
        if not await self._step(technology, expanded):
            return self._finish(expanded)

        tutorial = pick_tutorial(self._children_of(technology))
        await self._step(tutorial, expanded)
        return self._finish(expanded)

    def _finish(self, expanded: List[NodeKey]) -> List[NodeKey]:
        logger.info(
            "Default path expanded",
            depth=len(expanded),
            nodes=[f"{level.value}:{node_id}" for level, node_id in expanded],
        )
        return expanded
