"""
arXiv adapter.

Queries the arXiv Atom API. arXiv asks clients to leave at least three
seconds between requests, so every call in the process goes through one
shared rate limiter.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from defusedxml import ElementTree as ET

from ..models import ApiSettings, Author, ExternalIds, Paper, SearchOptions, SourceResult
from ..utils.error_handler import DataError
from ..utils.ids import generate_paper_id
from ..utils.rate_limiter import MinIntervalRateLimiter, get_arxiv_rate_limiter
from ..utils.text import clean_html, collapse_newlines
from .base import BaseSource

logger = logging.getLogger(__name__)

ARXIV_API_BASE = "https://export.arxiv.org/api/query"

ATOM_NS = "{http://www.w3.org/2005/Atom}"
ARXIV_NS = "{http://arxiv.org/schemas/atom}"
OPENSEARCH_NS = "{http://a9.com/-/spec/opensearch/1.1/}"

_ABS_ID_RE = re.compile(r"abs/(.+)$")

SORT_FIELDS = {
    "relevance": "relevance",
    "date": "submittedDate",
    "citations": "relevance",
}


def parse_arxiv_id(url: str) -> str:
    """Take the arXiv id from an ``abs`` URL; other values pass through."""
    match = _ABS_ID_RE.search(url)
    return match.group(1) if match else url


class ArxivSource(BaseSource):
    """Adapter for the arXiv Atom feed."""

    name = "arxiv"
    display_name = "arXiv"

    def __init__(
        self,
        settings: Optional[ApiSettings] = None,
        session=None,
        rate_limiter: Optional[MinIntervalRateLimiter] = None,
    ):
        super().__init__(settings, session)
        self.rate_limiter = rate_limiter or get_arxiv_rate_limiter(self.settings.arxiv_min_interval)

    def search(self, query: str, options: Optional[SearchOptions] = None) -> SourceResult:
        """Search arXiv across all fields.

        Args:
            query: Free-text query
            options: Offset, page size and ordering

        Returns:
            SourceResult with the normalized papers and arXiv's total

        Raises:
            SourceError: If the request or parsing fails
        """
        options = options or SearchOptions()
        params = {
            "search_query": f"all:{query}",
            "start": options.offset,
            "max_results": options.limit,
            "sortBy": SORT_FIELDS.get(options.sort, "relevance"),
            "sortOrder": "descending",
        }

        try:
            return self._fetch_feed(params)
        except Exception as e:
            raise self._search_error(query, e) from e

    def search_by_category(self, category: str, offset: int = 0, limit: int = 20) -> SourceResult:
        """Newest submissions in an arXiv category such as ``cs.AI``.

        Raises:
            SourceError: If the request or parsing fails
        """
        params = {
            "search_query": f"cat:{category}",
            "start": offset,
            "max_results": limit,
            "sortBy": "submittedDate",
            "sortOrder": "descending",
        }

        try:
            return self._fetch_feed(params)
        except Exception as e:
            raise self._search_error(f"cat:{category}", e) from e

    def get_by_external_id(self, external_id: str) -> Optional[Paper]:
        """Fetch one paper by arXiv id; None if absent or on failure."""
        try:
            root = self._request({"id_list": external_id})
        except Exception as e:
            logger.warning(f"Error fetching arXiv paper {external_id}: {e}")
            return None

        entry = root.find(f"{ATOM_NS}entry")
        if entry is None:
            return None

        try:
            return self._entry_to_paper(entry)
        except (ValueError, AttributeError) as e:
            logger.warning(f"Could not normalize arXiv paper {external_id}: {e}")
            return None

    def _fetch_feed(self, params: Dict[str, Any]) -> SourceResult:
        root = self._request(params)

        entries = root.findall(f"{ATOM_NS}entry")
        if not entries:
            return SourceResult(source=self.name, papers=[], total=0)

        papers = [self._entry_to_paper(entry) for entry in entries]
        total_text = root.findtext(f"{OPENSEARCH_NS}totalResults") or "0"
        total = int(total_text.strip() or 0)

        logger.info(f"arXiv returned {len(papers)} of {total} papers")
        return SourceResult(source=self.name, papers=papers, total=total)

    def _request(self, params: Dict[str, Any]):
        self.rate_limiter.wait()
        response = self._get(ARXIV_API_BASE, params=params)
        try:
            return ET.fromstring(response.content)
        except ET.ParseError as e:
            raise DataError(f"arXiv returned malformed XML: {e}") from e

    def _entry_to_paper(self, entry) -> Paper:
        entry_url = (entry.findtext(f"{ATOM_NS}id") or "").strip()
        arxiv_id = parse_arxiv_id(entry_url)

        primary = entry.find(f"{ARXIV_NS}primary_category")
        discipline = primary.get("term") if primary is not None else None
        doi = (entry.findtext(f"{ARXIV_NS}doi") or "").strip() or None

        return Paper(
            id=generate_paper_id(self.name, arxiv_id),
            title=clean_html(collapse_newlines(entry.findtext(f"{ATOM_NS}title"))),
            authors=self._parse_authors(entry),
            abstract=clean_html(collapse_newlines(entry.findtext(f"{ATOM_NS}summary"))),
            date=(entry.findtext(f"{ATOM_NS}published") or "").strip(),
            source=self.name,
            external_ids=ExternalIds(arxiv_id=arxiv_id, doi=doi),
            citations=0,
            access_type="open",
            url=entry_url,
            pdf_url=self._find_pdf_url(entry) or f"https://arxiv.org/pdf/{arxiv_id}.pdf",
            discipline=discipline or "unknown",
            keywords=[],
        )

    def _parse_authors(self, entry) -> List[Author]:
        authors = []
        for author in entry.findall(f"{ATOM_NS}author"):
            name = (author.findtext(f"{ATOM_NS}name") or "").strip()
            if not name:
                continue
            affiliation = (author.findtext(f"{ARXIV_NS}affiliation") or "").strip() or None
            authors.append(Author(name=name, affiliation=affiliation))
        return authors

    def _find_pdf_url(self, entry) -> Optional[str]:
        for link in entry.findall(f"{ATOM_NS}link"):
            href = link.get("href") or ""
            if link.get("title") == "pdf" or "/pdf/" in href:
                return href or None
        return None
