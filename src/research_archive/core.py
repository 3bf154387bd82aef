"""
Application facade wiring configuration, adapters, caches and services.
"""

import logging
from typing import Any, Dict, List, Optional

from .models import (
    CiteRequest,
    CiteResponse,
    HealthCheck,
    Paper,
    PaperDetail,
    SearchRequest,
    SearchResult,
    SystemConfig,
)
from .services import (
    ArxivSource,
    BaseSource,
    CitationService,
    CrossRefSource,
    HealthService,
    OpenAlexSource,
    PaperService,
    PubMedSource,
    SearchService,
)
from .utils.cache import CacheManager
from .utils.config_manager import ConfigurationManager
from .utils.error_handler import ErrorHandler

logger = logging.getLogger(__name__)


def build_sources(config: SystemConfig) -> Dict[str, BaseSource]:
    """One adapter per source, all sharing the API settings."""
    return {
        "arxiv": ArxivSource(config.api),
        "pubmed": PubMedSource(config.api),
        "crossref": CrossRefSource(config.api),
        "openalex": OpenAlexSource(config.api),
    }


class ResearchArchive:
    """Entry point to search, paper lookup, citation and health operations."""

    def __init__(
        self,
        config: Optional[SystemConfig] = None,
        sources: Optional[Dict[str, BaseSource]] = None,
        cache_manager: Optional[CacheManager] = None,
        health_service: Optional[HealthService] = None,
    ):
        """Initialize the archive.

        Args:
            config: System configuration, defaults when omitted
            sources: Adapters keyed by source name, built from config when omitted
            cache_manager: Search and paper caches
            health_service: Upstream probe service
        """
        self.config = config or SystemConfig()
        self.sources = sources if sources is not None else build_sources(self.config)
        self.cache_manager = cache_manager or CacheManager(self.config.cache)
        self.error_handler = ErrorHandler()

        self.search_service = SearchService(
            self.sources,
            cache_manager=self.cache_manager,
            settings=self.config.search,
            error_handler=self.error_handler,
        )
        self.paper_service = PaperService(self.sources, self.cache_manager, self.config.search)
        self.citation_service = CitationService(self.paper_service)
        self.health_service = health_service or HealthService(self.config.api)

        logger.info(f"ResearchArchive ready with sources: {', '.join(self.sources)}")

    @classmethod
    def from_config(cls, config_dir: str = "config") -> "ResearchArchive":
        """Build an archive from ``<config_dir>/settings.yaml`` and the environment."""
        config = ConfigurationManager(config_dir).load_system_config()
        return cls(config)

    async def search(self, request: SearchRequest) -> SearchResult:
        return await self.search_service.unified_search(request)

    async def search_dict(self, data: Dict[str, Any]) -> SearchResult:
        """Validate a raw request mapping and search.

        Raises:
            ValidationError: If the mapping does not describe a valid request
        """
        return await self.search(SearchRequest.from_dict(data))

    async def quick_search(self, query: str, limit: Optional[int] = None) -> List[Paper]:
        return await self.search_service.quick_search(query, limit)

    async def get_paper(self, paper_id: str) -> Optional[PaperDetail]:
        return await self.paper_service.get_paper(paper_id)

    async def cite(self, request: CiteRequest) -> Optional[CiteResponse]:
        return await self.citation_service.cite(request)

    async def featured(self, limit: Optional[int] = None) -> List[Paper]:
        return await self.search_service.get_featured_papers(limit)

    async def health(self) -> HealthCheck:
        return await self.health_service.check_health()

    def get_error_summary(self) -> Dict[str, Any]:
        return self.error_handler.get_error_summary()
