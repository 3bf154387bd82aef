"""
CrossRef adapter.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from ..models import Author, ExternalIds, Paper, SearchOptions, SourceResult
from ..utils.error_handler import handle_exceptions, retry_api_calls
from ..utils.ids import generate_paper_id
from ..utils.text import clean_html
from .base import BaseSource

logger = logging.getLogger(__name__)

CROSSREF_API_BASE = "https://api.crossref.org/v1/works"

SORT_FIELDS = {
    "relevance": "score",
    "date": "published",
    "citations": "is-referenced-by-count",
}

OPEN_LICENSE_PATTERNS = ("creativecommons.org", "open-access")


def format_date_parts(date_parts: Optional[List[List[int]]]) -> str:
    """Build an ISO date from CrossRef ``date-parts``; month and day default to 1.

    Missing parts fall back to today's date.
    """
    if not date_parts or not date_parts[0] or date_parts[0][0] is None:
        return date.today().isoformat()

    parts = list(date_parts[0]) + [None, None]
    year, month, day = parts[0], parts[1], parts[2]
    return f"{year}-{int(month or 1):02d}-{int(day or 1):02d}"


def build_filter(options: SearchOptions) -> Optional[str]:
    """Comma-joined CrossRef filter, or None when no predicate applies."""
    filters = []
    if options.filters.date_from:
        filters.append(f"from-pub-date:{options.filters.date_from[:10]}")
    if options.filters.date_to:
        filters.append(f"until-pub-date:{options.filters.date_to[:10]}")
    if options.filters.has_abstract:
        filters.append("has-abstract:true")
    return ",".join(filters) if filters else None


def get_access_type(work: Dict[str, Any]) -> str:
    for license_info in work.get("license") or []:
        url = license_info.get("URL") or ""
        if any(pattern in url for pattern in OPEN_LICENSE_PATTERNS):
            return "open"
    return "restricted"


class CrossRefSource(BaseSource):
    """Adapter for the CrossRef works API."""

    name = "crossref"
    display_name = "CrossRef"

    def _user_agent(self) -> str:
        return self.settings.polite_user_agent

    def search(self, query: str, options: Optional[SearchOptions] = None) -> SourceResult:
        """Search CrossRef works.

        Args:
            query: Bibliographic free-text query
            options: Offset, rows, ordering and date/abstract filters

        Returns:
            SourceResult with the normalized works and CrossRef's total

        Raises:
            SourceError: If the request fails
        """
        options = options or SearchOptions()
        params = {
            "query": query,
            "offset": options.offset,
            "rows": options.limit,
            "sort": SORT_FIELDS.get(options.sort, "score"),
            "order": "desc",
        }
        filter_string = build_filter(options)
        if filter_string:
            params["filter"] = filter_string

        try:
            data = self._get_json(CROSSREF_API_BASE, params=params)
            message = data.get("message") or {}
            items = message.get("items") or []
            if not items:
                return SourceResult(source=self.name, papers=[], total=0)

            papers = [self._work_to_paper(work) for work in items]
            total = message.get("total-results") or len(papers)

            logger.info(f"CrossRef returned {len(papers)} of {total} works for '{query}'")
            return SourceResult(source=self.name, papers=papers, total=total)

        except Exception as e:
            raise self._search_error(query, e) from e

    def get_by_external_id(self, external_id: str) -> Optional[Paper]:
        """Fetch one work by DOI; None if absent or on failure."""
        try:
            work = self._fetch_work(external_id)
            if not work.get("DOI"):
                return None
            return self._work_to_paper(work)
        except Exception as e:
            logger.warning(f"Error fetching CrossRef work {external_id}: {e}")
            return None

    @handle_exceptions(default_return=0, context="CrossRef citation count")
    def get_citation_count(self, doi: str) -> int:
        """Citation count of a DOI, 0 on any failure."""
        work = self._fetch_work_with_retry(doi)
        return int(work.get("is-referenced-by-count") or 0)

    def _fetch_work(self, doi: str) -> Dict[str, Any]:
        data = self._get_json(f"{CROSSREF_API_BASE}/{quote(doi, safe='')}")
        return data.get("message") or {}

    _fetch_work_with_retry = retry_api_calls(max_attempts=2, delay=0.5)(_fetch_work)

    def _work_to_paper(self, work: Dict[str, Any]) -> Paper:
        doi = work["DOI"]
        titles = work.get("title") or []
        subjects = work.get("subject")
        containers = work.get("container-title") or []

        date_parts = None
        for key in ("published-print", "published-online", "created"):
            date_parts = (work.get(key) or {}).get("date-parts")
            if date_parts:
                break

        return Paper(
            id=generate_paper_id(self.name, doi),
            title=clean_html(titles[0]) if titles else "Untitled",
            authors=self._parse_authors(work.get("author") or []),
            abstract=clean_html(work.get("abstract") or ""),
            date=format_date_parts(date_parts),
            source=self.name,
            external_ids=ExternalIds(doi=doi),
            citations=work.get("is-referenced-by-count") or 0,
            access_type=get_access_type(work),
            url=work.get("URL") or f"https://doi.org/{doi}",
            pdf_url=self._find_pdf_url(work),
            journal=containers[0] if containers else None,
            keywords=subjects,
            discipline=subjects[0] if subjects else None,
        )

    def _parse_authors(self, authors: List[Dict[str, Any]]) -> List[Author]:
        parsed = []
        for author in authors:
            name = author.get("name") or f"{author.get('given', '')} {author.get('family', '')}".strip()
            affiliations = author.get("affiliation") or []
            parsed.append(
                Author(
                    name=name or "Unknown",
                    affiliation=affiliations[0].get("name") if affiliations else None,
                    orcid=author.get("ORCID"),
                )
            )
        return parsed

    def _find_pdf_url(self, work: Dict[str, Any]) -> Optional[str]:
        for link in work.get("link") or []:
            url = link.get("URL") or ""
            if "pdf" in (link.get("content-type") or "") or ".pdf" in url:
                return url or None
        return None
