"""
Storage layer for factbridge.

Provides the node index kept in step with working memory.
"""

from factbridge.storage.index import Index, IndexEntry, NodeIndex

__all__ = [
    "Index",
    "IndexEntry",
    "NodeIndex",
]
