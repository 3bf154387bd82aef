"""
Single-paper lookups.
"""

import asyncio
import logging
from typing import Dict, Optional

from ..models import Paper, PaperDetail, SearchSettings
from ..utils.cache import CacheManager, get_paper_cache_key
from ..utils.ids import resolve_paper_id
from .base import BaseSource

logger = logging.getLogger(__name__)


class PaperService:
    """Resolves paper ids to the owning adapter and caches the details."""

    def __init__(
        self,
        sources: Dict[str, BaseSource],
        cache_manager: Optional[CacheManager] = None,
        settings: Optional[SearchSettings] = None,
    ):
        """Initialize the paper service.

        Args:
            sources: Adapters keyed by source name
            cache_manager: Holder of the paper cache
            settings: Supplies the related/citing paper limit
        """
        self.sources = sources
        self.cache_manager = cache_manager or CacheManager()
        self.settings = settings or SearchSettings()

    async def get_paper(self, paper_id: str) -> Optional[PaperDetail]:
        """Fetch a paper with best-effort related and citing papers.

        Args:
            paper_id: Composite id such as ``arxiv:2301.12345``, or a bare
                external id whose source is guessed from its shape

        Returns:
            PaperDetail, or None when no source knows the paper
        """
        self.cache_manager.maybe_cleanup()

        cache_key = get_paper_cache_key(paper_id)
        cached = self.cache_manager.paper_cache.get(cache_key)
        if isinstance(cached, PaperDetail):
            return cached

        resolved = resolve_paper_id(paper_id)
        if resolved is None:
            logger.info(f"Could not resolve a source for paper id '{paper_id}'")
            return None

        paper = await self._fetch(resolved.source, resolved.external_id)
        if paper is None:
            return None

        related_papers = None
        cited_by = None
        openalex = self.sources.get("openalex")
        openalex_id = paper.external_ids.open_alex_id or (
            resolved.external_id if resolved.source == "openalex" else None
        )
        if openalex is not None and openalex_id:
            related_papers, cited_by = await asyncio.gather(
                asyncio.to_thread(openalex.get_related_papers, openalex_id, self.settings.related_limit),
                asyncio.to_thread(openalex.get_citing_papers, openalex_id, self.settings.related_limit),
            )

        detail = PaperDetail.from_paper(paper, related_papers=related_papers, cited_by=cited_by)
        self.cache_manager.paper_cache.set(cache_key, detail, self.cache_manager.settings.paper_ttl)
        return detail

    async def get_paper_for_citation(self, paper_id: str) -> Optional[Paper]:
        """Fetch a paper without graph context, preferring the paper cache."""
        cached = self.cache_manager.paper_cache.get(get_paper_cache_key(paper_id))
        if cached is not None:
            return cached

        resolved = resolve_paper_id(paper_id)
        if resolved is None:
            return None
        return await self._fetch(resolved.source, resolved.external_id)

    async def _fetch(self, source: str, external_id: str) -> Optional[Paper]:
        adapter = self.sources.get(source)
        if adapter is None:
            logger.warning(f"No adapter configured for source '{source}'")
            return None

        paper = await asyncio.to_thread(adapter.get_by_external_id, external_id)
        if paper is None:
            logger.info(f"Paper not found: {source}:{external_id}")
        return paper
