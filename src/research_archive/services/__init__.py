# Services package for Research Archive

from .base import BaseSource
from .arxiv_source import ArxivSource
from .pubmed_source import PubMedSource
from .crossref_source import CrossRefSource
from .openalex_source import OpenAlexSource
from .search_service import SearchService
from .paper_service import PaperService
from .citation_service import CitationService
from .health_service import HealthService

__all__ = [
    'BaseSource',
    'ArxivSource',
    'PubMedSource',
    'CrossRefSource',
    'OpenAlexSource',
    'SearchService',
    'PaperService',
    'CitationService',
    'HealthService',
]
