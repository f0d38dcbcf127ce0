"""
Lazy catalog tree: cache, expansion controller, default-path walk and views.
"""

from .cache import UNFETCHED, Children, Fetched, TreeCache, TreeNode, Unfetched
from .controller import ExpansionController, NodeState, ToggleOutcome
from .default_path import DefaultPathExpander
from .sessions import TreeSessionRegistry
from .view import CatalogTreeView, RootStatus

__all__ = [
    "CatalogTreeView",
    "Children",
    "DefaultPathExpander",
    "ExpansionController",
    "Fetched",
    "NodeState",
    "RootStatus",
    "ToggleOutcome",
    "TreeCache",
    "TreeNode",
    "TreeSessionRegistry",
    "UNFETCHED",
    "Unfetched",
]
