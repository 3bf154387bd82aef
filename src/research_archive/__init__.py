"""
Research Archive - Unified Academic Paper Search

Aggregates paper metadata from arXiv, PubMed, CrossRef and OpenAlex into
one normalized schema, with unified search, DOI deduplication, citation
formatting and an in-memory cache.
"""

__version__ = "1.0.0"

# Import main models for easy access
from .models import (
    Paper,
    PaperDetail,
    SearchRequest,
    SearchResult,
    CiteRequest,
    SystemConfig,
)
from .core import ResearchArchive

__all__ = [
    "Paper",
    "PaperDetail",
    "SearchRequest",
    "SearchResult",
    "CiteRequest",
    "SystemConfig",
    "ResearchArchive",
]
