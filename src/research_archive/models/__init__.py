# Models package for data structures

from .paper import (
    Author,
    ExternalIds,
    Paper,
    PaperDetail,
    SourceResult,
    SearchResult,
    SOURCES,
    ACCESS_TYPES,
)
from .config import ApiSettings, CacheSettings, SearchSettings, SystemConfig
from .health import SourceHealth, HealthCheck
from .request import (
    DateRange,
    SearchFilters,
    SearchOptions,
    SearchRequest,
    CiteRequest,
    CiteResponse,
    SORT_OPTIONS,
    CITATION_FORMATS,
)

__all__ = [
    'Author',
    'ExternalIds',
    'Paper',
    'PaperDetail',
    'SourceResult',
    'SearchResult',
    'SOURCES',
    'ACCESS_TYPES',
    'ApiSettings',
    'CacheSettings',
    'SearchSettings',
    'SystemConfig',
    'SourceHealth',
    'HealthCheck',
    'DateRange',
    'SearchFilters',
    'SearchOptions',
    'SearchRequest',
    'CiteRequest',
    'CiteResponse',
    'SORT_OPTIONS',
    'CITATION_FORMATS',
]
