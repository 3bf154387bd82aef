"""
Unified search across all bibliographic sources.

A search fans out to every selected adapter in parallel, merges what
comes back, removes DOI duplicates, filters, sorts and caches the page.
A failing source contributes nothing and is recorded in ``errors``; it
never fails the whole search. No retries are made here.
"""

import asyncio
import math
import time
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from ..models import (
    Paper,
    SearchFilters,
    SearchOptions,
    SearchRequest,
    SearchResult,
    SearchSettings,
    SourceResult,
)
from ..utils.cache import CacheManager, get_search_cache_key
from ..utils.error_handler import ErrorHandler
from ..utils.logging_config import log_performance_metrics
from ..utils.text import parse_date
from .base import BaseSource

logger = logging.getLogger(__name__)

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def calculate_source_pagination(page: int, limit: int, sources_count: int) -> Tuple[int, int]:
    """Split one result page evenly across sources.

    Returns:
        Tuple of (offset, per_source) applied to every source
    """
    per_source = math.ceil(limit / sources_count)
    offset = (page - 1) * per_source
    return offset, per_source


def deduplicate_papers(papers: List[Paper]) -> List[Paper]:
    """Collapse papers sharing a DOI into one record.

    The record with the higher information score wins; on a tie the one
    seen first is kept. The survivor carries the identifiers of both, with
    the winner's values taking precedence. Papers without a DOI pass
    through unchanged, after all DOI-keyed papers.
    """
    by_doi: Dict[str, Paper] = {}
    without_doi: List[Paper] = []

    for paper in papers:
        doi = paper.doi
        if not doi:
            without_doi.append(paper)
            continue

        existing = by_doi.get(doi)
        if existing is None:
            by_doi[doi] = paper
        elif paper.information_score > existing.information_score:
            by_doi[doi] = paper.with_external_ids(existing.external_ids.merge(paper.external_ids))
        else:
            by_doi[doi] = existing.with_external_ids(paper.external_ids.merge(existing.external_ids))

    return list(by_doi.values()) + without_doi


def filter_papers(
    papers: List[Paper],
    access_type: Optional[str] = None,
    citation_min: Optional[float] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> List[Paper]:
    """Apply the access, citation floor and inclusive date-range filters.

    Papers whose date cannot be parsed are dropped by a date-range filter.
    """
    filtered = papers

    if access_type == "open":
        filtered = [p for p in filtered if p.access_type == "open"]

    if citation_min is not None:
        filtered = [p for p in filtered if p.citations >= citation_min]

    if date_from or date_to:
        lower = parse_date(date_from) if date_from else None
        upper = parse_date(date_to) if date_to else None

        def in_range(paper: Paper) -> bool:
            published = parse_date(paper.date)
            if published is None:
                return False
            if lower is not None and published < lower:
                return False
            if upper is not None and published > upper:
                return False
            return True

        filtered = [p for p in filtered if in_range(p)]

    return filtered


def sort_papers(papers: List[Paper], sort_by: str = "relevance") -> List[Paper]:
    """Order papers; ties keep their incoming order.

    ``relevance`` keeps the order the sources returned. ``date`` puts the
    newest first and undated papers last.
    """
    if sort_by == "date":
        def date_key(paper: Paper):
            published = parse_date(paper.date)
            return (published is not None, published or _OLDEST)

        return sorted(papers, key=date_key, reverse=True)

    if sort_by == "citations":
        return sorted(papers, key=lambda p: p.citations, reverse=True)

    return list(papers)


class SearchService:
    """Runs unified, quick and featured searches over the source adapters."""

    def __init__(
        self,
        sources: Dict[str, BaseSource],
        cache_manager: Optional[CacheManager] = None,
        settings: Optional[SearchSettings] = None,
        error_handler: Optional[ErrorHandler] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """Initialize the search service.

        Args:
            sources: Adapters keyed by source name
            cache_manager: Holder of the search result cache
            settings: Pipeline defaults
            error_handler: Tracker for per-source failures
            clock: Time source in seconds for search timing
        """
        self.sources = sources
        self.cache_manager = cache_manager or CacheManager()
        self.settings = settings or SearchSettings()
        self.error_handler = error_handler or ErrorHandler()
        self._clock = clock or time.perf_counter

        logger.info(f"Initialized SearchService with sources: {', '.join(sources)}")

    def _elapsed_ms(self, start: float) -> int:
        return int((self._clock() - start) * 1000)

    async def unified_search(self, request: SearchRequest) -> SearchResult:
        """Search every selected source and merge the results into one page.

        Args:
            request: Validated search request

        Returns:
            SearchResult whose ``total`` is the sum of the per-source totals
        """
        start = self._clock()

        self.cache_manager.maybe_cleanup()
        cache_key = get_search_cache_key(request.query, request.cache_fields())
        cached = self.cache_manager.search_cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Search cache hit for '{request.query}'")
            return replace(
                cached,
                papers=list(cached.papers),
                errors=list(cached.errors),
                search_time_ms=self._elapsed_ms(start),
            )

        source_names = list(request.sources or self.settings.default_sources)
        offset, per_source = calculate_source_pagination(request.page, request.limit, len(source_names))

        date_range = request.date_range
        options = SearchOptions(
            offset=offset,
            limit=per_source,
            sort=request.sort,
            filters=SearchFilters(
                date_from=date_range.date_from if date_range else None,
                date_to=date_range.date_to if date_range else None,
            ),
        )

        results: List[SourceResult] = await asyncio.gather(
            *(self._search_source(name, request.query, options) for name in source_names)
        )

        all_papers: List[Paper] = []
        total = 0
        errors: List[str] = []
        for result in results:
            all_papers.extend(result.papers)
            total += result.total
            if result.error:
                errors.append(f"{result.source}: {result.error}")

        deduplicated = deduplicate_papers(all_papers)
        filtered = filter_papers(
            deduplicated,
            access_type=request.access_type,
            citation_min=request.citation_min,
            date_from=date_range.date_from if date_range else None,
            date_to=date_range.date_to if date_range else None,
        )
        ordered = sort_papers(filtered, request.sort)

        # Each source already returned one page's share, so no offset here
        page_papers = ordered[: request.limit]

        result = SearchResult(
            papers=page_papers,
            total=total,
            page=request.page,
            pages=math.ceil(total / request.limit),
            search_time_ms=self._elapsed_ms(start),
            errors=errors,
        )

        self.cache_manager.search_cache.set(
            cache_key,
            replace(result, papers=list(page_papers), errors=list(errors)),
            self.cache_manager.settings.search_ttl,
        )

        log_performance_metrics(
            "unified_search",
            {
                "sources": len(source_names),
                "failed_sources": len(errors),
                "fetched": len(all_papers),
                "deduplicated": len(deduplicated),
                "returned": len(page_papers),
                "time_ms": result.search_time_ms,
            },
            logger,
        )
        return result

    async def _search_source(self, name: str, query: str, options: SearchOptions) -> SourceResult:
        adapter = self.sources.get(name)
        if adapter is None:
            return SourceResult(source=name, papers=[], total=0, error="Unknown source")

        try:
            result = await asyncio.to_thread(adapter.search, query, options)
            return SourceResult(source=name, papers=result.papers, total=result.total)
        except Exception as e:
            self.error_handler.handle_api_error(e, context=name)
            return SourceResult(source=name, papers=[], total=0, error=str(e) or type(e).__name__)

    async def quick_search(self, query: str, limit: Optional[int] = None) -> List[Paper]:
        """Single-source lookup for autocomplete: OpenAlex, then arXiv, else nothing.

        Bypasses the cache and the merge pipeline.
        """
        options = SearchOptions(limit=limit or self.settings.quick_search_limit)

        for name in ("openalex", "arxiv"):
            adapter = self.sources.get(name)
            if adapter is None:
                continue
            try:
                result = await asyncio.to_thread(adapter.search, query, options)
                return result.papers
            except Exception as e:
                logger.warning(f"Quick search via {name} failed: {e}")

        return []

    async def get_featured_papers(self, limit: Optional[int] = None) -> List[Paper]:
        """Most cited recent papers from OpenAlex; empty when unavailable."""
        adapter = self.sources.get("openalex")
        if adapter is None:
            return []

        try:
            return await asyncio.to_thread(
                adapter.get_trending_papers,
                self.settings.trending_days,
                limit or self.settings.featured_limit,
            )
        except Exception as e:
            logger.warning(f"Could not load featured papers: {e}")
            return []
