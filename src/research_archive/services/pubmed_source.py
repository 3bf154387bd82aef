"""
PubMed adapter.

Uses the NCBI E-utilities in two steps: ESearch (JSON) resolves a query to
a page of PMIDs and the total hit count, then a single EFetch call returns
the XML records for the whole page, parsed with ``Bio.Entrez``.
"""

import io
import logging
from typing import Any, Dict, List, Optional

from Bio import Entrez

from ..models import ApiSettings, Author, ExternalIds, Paper, SearchOptions, SourceResult
from ..utils.error_handler import log_execution_time
from ..utils.ids import generate_paper_id
from ..utils.text import clean_html
from .base import BaseSource

logger = logging.getLogger(__name__)

EUTILS_BASE = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
ESEARCH_URL = f"{EUTILS_BASE}/esearch.fcgi"
EFETCH_URL = f"{EUTILS_BASE}/efetch.fcgi"

SORT_FIELDS = {
    "relevance": "relevance",
    "date": "pub_date",
    "citations": "relevance",
}


def _attributes(element: Any) -> Dict[str, Any]:
    return getattr(element, "attributes", None) or {}


def _text(value: Any) -> str:
    """Text of an Entrez element, a plain string or a ``#text`` mapping."""
    if value is None:
        return ""
    if isinstance(value, str):
        return str(value)
    if isinstance(value, dict):
        return str(value.get("#text", ""))
    return str(value)


def normalize_abstract(abstract_text: Any) -> str:
    """Join the string, fragment-list or single-fragment shapes of AbstractText."""
    if not abstract_text:
        return ""
    if isinstance(abstract_text, str):
        return str(abstract_text)
    if isinstance(abstract_text, dict):
        return _text(abstract_text)
    if isinstance(abstract_text, (list, tuple)):
        return " ".join(t for t in (_text(part) for part in abstract_text) if t)
    return str(abstract_text)


def _format_date_parts(parts: Dict[str, Any]) -> str:
    year = _text(parts.get("Year"))
    month = (_text(parts.get("Month")) or "1").zfill(2)
    day = (_text(parts.get("Day")) or "1").zfill(2)
    return f"{year}-{month}-{day}"


class PubMedSource(BaseSource):
    """Adapter for PubMed via ESearch and EFetch."""

    name = "pubmed"
    display_name = "PubMed"

    def __init__(self, settings: Optional[ApiSettings] = None, session=None, tool: str = "research-archive"):
        super().__init__(settings, session)
        self.tool = tool

    def search(self, query: str, options: Optional[SearchOptions] = None) -> SourceResult:
        """Search PubMed.

        Args:
            query: PubMed query string
            options: Offset, page size, ordering and date window

        Returns:
            SourceResult with the fetched page and PubMed's hit count

        Raises:
            SourceError: If either request fails
        """
        options = options or SearchOptions()

        try:
            ids, total = self._search_ids(query, options)
            if not ids:
                return SourceResult(source=self.name, papers=[], total=0)

            papers = [self._article_to_paper(a) for a in self._fetch_articles(ids)]
            logger.info(f"PubMed returned {len(papers)} of {total} papers for '{query}'")
            return SourceResult(source=self.name, papers=papers, total=total)

        except Exception as e:
            raise self._search_error(query, e) from e

    def get_by_external_id(self, external_id: str) -> Optional[Paper]:
        """Fetch one paper by PMID; None if absent or on failure."""
        try:
            articles = self._fetch_articles([external_id])
            if not articles:
                return None
            return self._article_to_paper(articles[0])
        except Exception as e:
            logger.warning(f"Error fetching PubMed paper {external_id}: {e}")
            return None

    def _identity_params(self) -> Dict[str, str]:
        params = {"tool": self.tool}
        if self.settings.contact_email:
            params["email"] = self.settings.contact_email
        return params

    def _search_ids(self, query: str, options: SearchOptions):
        params = {
            "db": "pubmed",
            "term": query,
            "retstart": options.offset,
            "retmax": options.limit,
            "retmode": "json",
            "sort": SORT_FIELDS.get(options.sort, "relevance"),
            **self._identity_params(),
        }

        filters = options.filters
        if filters.date_from or filters.date_to:
            params["datetype"] = "pdat"
            params["mindate"] = (filters.date_from or "1800-01-01")[:10].replace("-", "/")
            params["maxdate"] = (filters.date_to or "3000-12-31")[:10].replace("-", "/")

        data = self._get_json(ESEARCH_URL, params=params)
        result = data.get("esearchresult") or {}
        ids = list(result.get("idlist") or [])
        total = int(result.get("count") or 0)
        return ids, total

    @log_execution_time(logger)
    def _fetch_articles(self, ids: List[str]) -> List[Dict[str, Any]]:
        if not ids:
            return []

        params = {
            "db": "pubmed",
            "id": ",".join(ids),
            "retmode": "xml",
            "rettype": "abstract",
            **self._identity_params(),
        }
        response = self._get(EFETCH_URL, params=params)
        records = Entrez.read(io.BytesIO(response.content))

        if isinstance(records, dict):
            return list(records.get("PubmedArticle") or [])
        return list(records or [])

    def _article_to_paper(self, article: Dict[str, Any]) -> Paper:
        citation = article.get("MedlineCitation") or {}
        pubdata = article.get("PubmedData") or {}
        details = citation.get("Article") or {}

        pmid = _text(citation.get("PMID"))
        journal = details.get("Journal") or {}

        return Paper(
            id=generate_paper_id(self.name, pmid),
            title=clean_html(_text(details.get("ArticleTitle"))),
            authors=self._parse_authors(details.get("AuthorList")),
            abstract=clean_html(normalize_abstract((details.get("Abstract") or {}).get("AbstractText"))),
            date=self._parse_date(citation, pubdata),
            source=self.name,
            external_ids=ExternalIds(pmid=pmid, doi=self._parse_doi(pubdata)),
            citations=0,
            access_type="open",
            url=f"https://pubmed.ncbi.nlm.nih.gov/{pmid}/",
            journal=_text(journal.get("Title")) or _text(journal.get("ISOAbbreviation")) or None,
            keywords=self._parse_mesh_terms(citation.get("MeshHeadingList")),
            discipline="biomedicine",
        )

    def _parse_authors(self, author_list: Any) -> List[Author]:
        if not author_list:
            return []
        if isinstance(author_list, dict):
            author_list = author_list.get("Author", [author_list])
        if isinstance(author_list, dict):
            author_list = [author_list]

        authors = []
        for entry in author_list:
            last_name = _text(entry.get("LastName"))
            if not last_name:
                continue
            name = f"{_text(entry.get('ForeName'))} {last_name}".strip()

            affiliation = None
            affiliations = entry.get("AffiliationInfo") or []
            if affiliations:
                affiliation = _text(affiliations[0].get("Affiliation")) or None

            authors.append(Author(name=name, affiliation=affiliation))
        return authors

    def _parse_doi(self, pubdata: Dict[str, Any]) -> Optional[str]:
        for article_id in pubdata.get("ArticleIdList") or []:
            id_type = _attributes(article_id).get("IdType")
            if id_type is None and isinstance(article_id, dict):
                id_type = article_id.get("@_IdType")
            if id_type == "doi":
                return _text(article_id) or None
        return None

    def _parse_date(self, citation: Dict[str, Any], pubdata: Dict[str, Any]) -> str:
        for pub_date in pubdata.get("History") or []:
            if _attributes(pub_date).get("PubStatus") == "pubmed":
                return _format_date_parts(pub_date)

        revised = citation.get("DateRevised")
        if revised:
            return _format_date_parts(revised)
        return ""

    def _parse_mesh_terms(self, mesh_list: Any) -> List[str]:
        keywords = []
        for heading in mesh_list or []:
            descriptor = _text(heading.get("DescriptorName"))
            if descriptor:
                keywords.append(descriptor)
        return keywords
