"""
Request models for the search and citation boundaries.

``from_dict`` constructors validate raw boundary input (JSON bodies,
CLI arguments) and raise ``ValidationError`` with the offending field.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from .paper import SOURCES
from ..utils.error_handler import ValidationError

SORT_OPTIONS = ("relevance", "date", "citations")
ACCESS_FILTERS = ("open", "any")
CITATION_FORMATS = ("bibtex", "apa", "mla")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def _parse_iso_date(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} must be an ISO date string", field=field_name, value=value)
    try:
        date.fromisoformat(value.strip()[:10])
    except ValueError:
        raise ValidationError(f"{field_name} is not a valid ISO date", field=field_name, value=value)
    return value.strip()


@dataclass(frozen=True)
class DateRange:
    """Inclusive publication date window, ISO formatted."""
    date_from: str
    date_to: str

    @classmethod
    def from_dict(cls, data: Any) -> "DateRange":
        if not isinstance(data, dict):
            raise ValidationError("dateRange must be an object", field="dateRange", value=data)
        return cls(
            date_from=_parse_iso_date(data.get("from"), "dateRange.from"),
            date_to=_parse_iso_date(data.get("to"), "dateRange.to"),
        )

    def to_dict(self) -> Dict[str, str]:
        return {"from": self.date_from, "to": self.date_to}


@dataclass(frozen=True)
class SearchFilters:
    """Predicates an adapter may push to its upstream API."""
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    has_abstract: bool = False
    open_access: Optional[bool] = None
    citation_min: Optional[int] = None


@dataclass(frozen=True)
class SearchOptions:
    """Paging, ordering and filtering for a single adapter search."""
    offset: int = 0
    limit: int = DEFAULT_LIMIT
    sort: str = "relevance"
    filters: SearchFilters = field(default_factory=SearchFilters)

    def __post_init__(self):
        if self.offset < 0:
            raise ValueError("Offset cannot be negative")
        if self.limit <= 0:
            raise ValueError("Limit must be positive")
        if self.sort not in SORT_OPTIONS:
            raise ValueError(f"Unknown sort option: {self.sort}")


@dataclass(frozen=True)
class SearchRequest:
    """Unified search request."""
    query: str
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    sort: str = "relevance"
    access_type: Optional[str] = None
    sources: Optional[Tuple[str, ...]] = None
    citation_min: Optional[float] = None
    date_range: Optional[DateRange] = None
    discipline: Optional[str] = None

    def __post_init__(self):
        """Validate request fields."""
        if not isinstance(self.query, str) or not self.query.strip():
            raise ValidationError("Query cannot be empty", field="query", value=self.query)
        if not _is_int(self.page) or self.page < 1:
            raise ValidationError("Page must be a positive integer", field="page", value=self.page)
        if not _is_int(self.limit) or not 1 <= self.limit <= MAX_LIMIT:
            raise ValidationError(
                f"Limit must be between 1 and {MAX_LIMIT}", field="limit", value=self.limit
            )
        if self.sort not in SORT_OPTIONS:
            raise ValidationError(
                f"Sort must be one of {', '.join(SORT_OPTIONS)}", field="sort", value=self.sort
            )
        if self.access_type is not None and self.access_type not in ACCESS_FILTERS:
            raise ValidationError(
                "accessType must be 'open' or 'any'", field="accessType", value=self.access_type
            )
        if self.sources is not None:
            if not self.sources:
                raise ValidationError("sources cannot be empty", field="sources", value=self.sources)
            unknown = [s for s in self.sources if s not in SOURCES]
            if unknown:
                raise ValidationError(
                    f"Unknown sources: {', '.join(map(str, unknown))}", field="sources", value=self.sources
                )
            if len(set(self.sources)) != len(self.sources):
                raise ValidationError("sources cannot repeat", field="sources", value=self.sources)
        if self.citation_min is not None:
            if isinstance(self.citation_min, bool) or not isinstance(self.citation_min, (int, float)):
                raise ValidationError(
                    "citationMin must be a number", field="citationMin", value=self.citation_min
                )
            if self.citation_min < 0:
                raise ValidationError(
                    "citationMin cannot be negative", field="citationMin", value=self.citation_min
                )

    @classmethod
    def from_dict(cls, data: Any) -> "SearchRequest":
        """Build a request from a JSON-like mapping using the public field names."""
        if not isinstance(data, dict):
            raise ValidationError("Invalid search request", value=data)

        sources = data.get("sources")
        if sources is not None:
            if not isinstance(sources, (list, tuple)):
                raise ValidationError("sources must be a list", field="sources", value=sources)
            sources = tuple(sources)

        date_range = data.get("dateRange")
        discipline = data.get("discipline")
        if discipline is not None and not isinstance(discipline, str):
            raise ValidationError("discipline must be a string", field="discipline", value=discipline)

        return cls(
            query=data.get("query", ""),
            page=data.get("page") if data.get("page") is not None else DEFAULT_PAGE,
            limit=data.get("limit") if data.get("limit") is not None else DEFAULT_LIMIT,
            sort=data.get("sort") or "relevance",
            access_type=data.get("accessType"),
            sources=sources,
            citation_min=data.get("citationMin"),
            date_range=DateRange.from_dict(date_range) if date_range is not None else None,
            discipline=discipline,
        )

    def cache_fields(self) -> Dict[str, Any]:
        """Every field that influences the result, keyed by public name."""
        return {
            "sources": list(self.sources) if self.sources else None,
            "page": self.page,
            "limit": self.limit,
            "sort": self.sort,
            "accessType": self.access_type,
            "citationMin": self.citation_min,
            "dateRange": self.date_range.to_dict() if self.date_range else None,
            "discipline": self.discipline,
        }


@dataclass(frozen=True)
class CiteRequest:
    """Request for a formatted citation of one paper."""
    paper_id: str
    format: str

    def __post_init__(self):
        if not isinstance(self.paper_id, str) or not self.paper_id.strip():
            raise ValidationError("paperId cannot be empty", field="paperId", value=self.paper_id)
        if self.format not in CITATION_FORMATS:
            raise ValidationError(
                f"format must be one of {', '.join(CITATION_FORMATS)}", field="format", value=self.format
            )

    @classmethod
    def from_dict(cls, data: Any) -> "CiteRequest":
        if not isinstance(data, dict):
            raise ValidationError("Invalid citation request", value=data)
        return cls(paper_id=data.get("paperId", ""), format=data.get("format", ""))


@dataclass(frozen=True)
class CiteResponse:
    citation: str
    format: str

    def to_dict(self) -> Dict[str, str]:
        return {"citation": self.citation, "format": self.format}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parse_sources(value: Optional[str]) -> Optional[List[str]]:
    """Split a comma separated source list from a query string or CLI flag."""
    if not value:
        return None
    return [s.strip() for s in value.split(",") if s.strip()]
