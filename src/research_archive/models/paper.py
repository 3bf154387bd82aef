"""
Data models for normalized paper records.
"""
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Optional

SOURCES = ("arxiv", "pubmed", "crossref", "openalex")
ACCESS_TYPES = ("open", "restricted")


@dataclass(frozen=True)
class Author:
    """A single author in citation order."""
    name: str
    affiliation: Optional[str] = None
    orcid: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        data = {"name": self.name}
        if self.affiliation:
            data["affiliation"] = self.affiliation
        if self.orcid:
            data["orcid"] = self.orcid
        return data


@dataclass(frozen=True)
class ExternalIds:
    """Identifiers a paper is known by across sources."""
    doi: Optional[str] = None
    pmid: Optional[str] = None
    arxiv_id: Optional[str] = None
    open_alex_id: Optional[str] = None

    def merge(self, other: "ExternalIds") -> "ExternalIds":
        """Union of both id sets; values present on ``other`` win."""
        return ExternalIds(
            doi=other.doi or self.doi,
            pmid=other.pmid or self.pmid,
            arxiv_id=other.arxiv_id or self.arxiv_id,
            open_alex_id=other.open_alex_id or self.open_alex_id,
        )

    def to_dict(self) -> Dict[str, str]:
        keys = {
            "doi": self.doi,
            "pmid": self.pmid,
            "arxivId": self.arxiv_id,
            "openAlexId": self.open_alex_id,
        }
        return {k: v for k, v in keys.items() if v}


@dataclass(frozen=True)
class Paper:
    """Canonical paper record produced by a source adapter."""
    id: str
    title: str
    authors: List[Author]
    abstract: str
    date: str
    source: str
    external_ids: ExternalIds = field(default_factory=ExternalIds)
    citations: int = 0
    access_type: str = "open"
    url: str = ""
    pdf_url: Optional[str] = None
    journal: Optional[str] = None
    keywords: Optional[List[str]] = None
    discipline: Optional[str] = None

    def __post_init__(self):
        """Validate paper data after initialization."""
        if not self.id:
            raise ValueError("Paper id cannot be empty")
        if self.source not in SOURCES:
            raise ValueError(f"Unknown paper source: {self.source}")
        if not self.id.startswith(f"{self.source}:"):
            raise ValueError(f"Paper id '{self.id}' does not match source '{self.source}'")
        if self.citations < 0:
            raise ValueError("Citation count cannot be negative")
        if self.access_type not in ACCESS_TYPES:
            raise ValueError(f"Unknown access type: {self.access_type}")

    @property
    def doi(self) -> Optional[str]:
        return self.external_ids.doi

    @property
    def information_score(self) -> int:
        """How much metadata the record carries; used to pick among duplicates."""
        return len(self.abstract or "") + len(self.authors) * 100 + self.citations

    def with_external_ids(self, external_ids: ExternalIds) -> "Paper":
        return replace(self, external_ids=external_ids)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the camelCase field names of the public schema."""
        data: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "authors": [a.to_dict() for a in self.authors],
            "abstract": self.abstract,
            "date": self.date,
            "source": self.source,
            "externalIds": self.external_ids.to_dict(),
            "citations": self.citations,
            "accessType": self.access_type,
            "url": self.url,
        }
        optional = {
            "pdfUrl": self.pdf_url,
            "journal": self.journal,
            "keywords": self.keywords,
            "discipline": self.discipline,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data


@dataclass(frozen=True)
class PaperDetail(Paper):
    """Paper with best-effort graph context for single-paper views."""
    related_papers: Optional[List[Paper]] = None
    cited_by: Optional[List[Paper]] = None
    references: Optional[List[Paper]] = None

    @classmethod
    def from_paper(
        cls,
        paper: Paper,
        related_papers: Optional[List[Paper]] = None,
        cited_by: Optional[List[Paper]] = None,
        references: Optional[List[Paper]] = None,
    ) -> "PaperDetail":
        values = {f.name: getattr(paper, f.name) for f in fields(Paper)}
        return cls(
            **values,
            related_papers=related_papers,
            cited_by=cited_by,
            references=references,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        for key, papers in (
            ("relatedPapers", self.related_papers),
            ("citedBy", self.cited_by),
            ("references", self.references),
        ):
            if papers is not None:
                data[key] = [p.to_dict() for p in papers]
        return data


@dataclass
class SourceResult:
    """One source's contribution to a search."""
    source: str
    papers: List[Paper] = field(default_factory=list)
    total: int = 0
    error: Optional[str] = None

    def __post_init__(self):
        if self.total < 0:
            raise ValueError("Total cannot be negative")


@dataclass
class SearchResult:
    """Merged, filtered and paginated result of a unified search."""
    papers: List[Paper]
    total: int
    page: int
    pages: int
    search_time_ms: int
    errors: List[str] = field(default_factory=list, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "papers": [p.to_dict() for p in self.papers],
            "total": self.total,
            "page": self.page,
            "pages": self.pages,
            "searchTimeMs": self.search_time_ms,
        }
