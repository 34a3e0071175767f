"""
Breadth-first traversal of lazily discovered graphs, and a web crawler built on it.
"""
from bfcrawl.discovery import CrawlSettings, CrawlStats, LinkDiscoverer, PageResult
from bfcrawl.engine import Discoverer, DiscoveryContractError, Frontier, traverse

__version__ = "1.0.0"
__all__ = [
    "traverse",
    "Discoverer",
    "DiscoveryContractError",
    "Frontier",
    "LinkDiscoverer",
    "CrawlSettings",
    "CrawlStats",
    "PageResult",
]
