"""
OpenAlex adapter.

Besides search and lookup, OpenAlex is the only source with citation-graph
queries; related, citing and trending papers are best-effort and come
back empty on failure.
"""

import logging
import re
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from ..models import Author, ExternalIds, Paper, SearchOptions, SourceResult
from ..utils.error_handler import handle_exceptions
from ..utils.ids import generate_paper_id
from ..utils.text import clean_html
from .base import BaseSource

logger = logging.getLogger(__name__)

OPENALEX_API_BASE = "https://api.openalex.org/works"

SORT_FIELDS = {
    "relevance": "relevance_score",
    "date": "publication_date",
    "citations": "cited_by_count",
}

_WORK_ID_RE = re.compile(r"W\d+")


def reconstruct_abstract(inverted_index: Optional[Dict[str, List[int]]]) -> str:
    """Rebuild abstract text from OpenAlex's word -> positions index."""
    if not inverted_index:
        return ""

    words = [
        (position, word)
        for word, positions in inverted_index.items()
        for position in positions
    ]
    words.sort(key=lambda item: item[0])
    return " ".join(word for _, word in words)


def extract_openalex_id(url: str) -> str:
    match = _WORK_ID_RE.search(url)
    return match.group(0) if match else url


def build_filter(options: SearchOptions) -> Optional[str]:
    filters = []
    if options.filters.date_from:
        filters.append(f"from_publication_date:{options.filters.date_from[:10]}")
    if options.filters.date_to:
        filters.append(f"to_publication_date:{options.filters.date_to[:10]}")
    if options.filters.open_access is not None:
        filters.append(f"is_oa:{str(options.filters.open_access).lower()}")
    if options.filters.citation_min is not None:
        filters.append(f"cited_by_count:>{options.filters.citation_min}")
    return ",".join(filters) if filters else None


class OpenAlexSource(BaseSource):
    """Adapter for the OpenAlex works API."""

    name = "openalex"
    display_name = "OpenAlex"

    def _user_agent(self) -> str:
        return self.settings.polite_user_agent

    def search(self, query: str, options: Optional[SearchOptions] = None) -> SourceResult:
        """Search OpenAlex works.

        The offset is converted to OpenAlex's 1-based page number.

        Raises:
            SourceError: If the request fails
        """
        options = options or SearchOptions()
        params = {
            "search": query,
            "page": options.offset // options.limit + 1,
            "per_page": options.limit,
            "sort": f"{SORT_FIELDS.get(options.sort, 'relevance_score')}:desc",
        }
        filter_string = build_filter(options)
        if filter_string:
            params["filter"] = filter_string

        try:
            data = self._get_json(OPENALEX_API_BASE, params=params)
            results = data.get("results") or []
            if not results:
                return SourceResult(source=self.name, papers=[], total=0)

            papers = [self._work_to_paper(work) for work in results]
            total = int((data.get("meta") or {}).get("count") or 0)

            logger.info(f"OpenAlex returned {len(papers)} of {total} works for '{query}'")
            return SourceResult(source=self.name, papers=papers, total=total)

        except Exception as e:
            raise self._search_error(query, e) from e

    def get_by_external_id(self, external_id: str) -> Optional[Paper]:
        """Fetch one work by OpenAlex id or URL; None if absent or on failure."""
        work_id = extract_openalex_id(external_id)
        try:
            work = self._get_json(f"{OPENALEX_API_BASE}/{work_id}")
            if not work.get("id"):
                return None
            return self._work_to_paper(work)
        except Exception as e:
            logger.warning(f"Error fetching OpenAlex work {external_id}: {e}")
            return None

    @handle_exceptions(default_return=list, context="OpenAlex related papers")
    def get_related_papers(self, openalex_id: str, limit: int = 5) -> List[Paper]:
        return self._list_works(f"related_to:{openalex_id}", limit)

    @handle_exceptions(default_return=list, context="OpenAlex citing papers")
    def get_citing_papers(self, openalex_id: str, limit: int = 5) -> List[Paper]:
        return self._list_works(f"cites:{openalex_id}", limit)

    @handle_exceptions(default_return=list, context="OpenAlex trending papers")
    def get_trending_papers(self, days: int = 30, limit: int = 10) -> List[Paper]:
        """Most cited works published in the last ``days`` days."""
        from_date = (date.today() - timedelta(days=days)).isoformat()
        return self._list_works(f"from_publication_date:{from_date}", limit)

    def _list_works(self, filter_string: str, limit: int) -> List[Paper]:
        params = {
            "filter": filter_string,
            "per_page": limit,
            "sort": "cited_by_count:desc",
        }
        data = self._get_json(OPENALEX_API_BASE, params=params)
        return [self._work_to_paper(work) for work in data.get("results") or []]

    def _work_to_paper(self, work: Dict[str, Any]) -> Paper:
        openalex_id = extract_openalex_id(work["id"])
        ids = work.get("ids") or {}
        open_access = work.get("open_access") or {}
        location = work.get("primary_location") or {}
        concepts = work.get("concepts") or []

        doi = work.get("doi") or ids.get("doi")
        if doi:
            doi = doi.replace("https://doi.org/", "")
        pmid = ids.get("pmid")
        if pmid:
            pmid = pmid.replace("https://pubmed.ncbi.nlm.nih.gov/", "")

        keywords = [
            c.get("display_name")
            for c in concepts
            if c.get("level", 99) <= 1 and c.get("score", 0) > 0.3
        ][:5]
        top_concept = next((c for c in concepts if c.get("level") == 0), None)

        return Paper(
            id=generate_paper_id(self.name, openalex_id),
            title=clean_html(work.get("title") or work.get("display_name") or "Untitled"),
            authors=self._parse_authors(work.get("authorships") or []),
            abstract=clean_html(reconstruct_abstract(work.get("abstract_inverted_index"))),
            date=work.get("publication_date") or "",
            source=self.name,
            external_ids=ExternalIds(open_alex_id=openalex_id, doi=doi or None, pmid=pmid or None),
            citations=work.get("cited_by_count") or 0,
            access_type="open" if work.get("is_oa") or open_access.get("is_oa") else "restricted",
            url=location.get("landing_page_url") or (f"https://doi.org/{doi}" if doi else work["id"]),
            pdf_url=open_access.get("oa_url") or location.get("pdf_url"),
            journal=(location.get("source") or {}).get("display_name"),
            keywords=keywords,
            discipline=top_concept.get("display_name") if top_concept else None,
        )

    def _parse_authors(self, authorships: List[Dict[str, Any]]) -> List[Author]:
        authors = []
        for authorship in authorships:
            author = authorship.get("author") or {}
            institutions = authorship.get("institutions") or []
            authors.append(
                Author(
                    name=author.get("display_name") or "Unknown",
                    affiliation=institutions[0].get("display_name") if institutions else None,
                    orcid=author.get("orcid"),
                )
            )
        return authors
