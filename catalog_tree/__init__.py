"""
Catalog Tree Service Package.

This package serves the lazily loaded catalog navigation tree
(domain -> technology -> tutorial -> lesson) of the learning platform.
It includes the catalog API client, the tree cache and expansion
controller, and the FastAPI application exposing them.
"""

__version__ = "1.0.0"
__author__ = "CodeCraft Team"
__description__ = "Lazily loaded catalog navigation tree"

from .config import settings

__all__ = [
    "settings",
    "__version__",
]
