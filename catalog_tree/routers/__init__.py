"""
API routers for the catalog tree service.
"""

from .tree_router import router as tree_router

__all__ = ["tree_router"]
