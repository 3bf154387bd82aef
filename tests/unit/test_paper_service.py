"""
Unit tests for PaperService.
"""

import asyncio
from unittest.mock import Mock

from research_archive.models import ExternalIds, PaperDetail, SearchSettings
from research_archive.services.paper_service import PaperService
from research_archive.utils.cache import CacheManager

from conftest import make_paper


class TestPaperService:
    """Test cases for PaperService."""

    def setup_method(self):
        self.arxiv_paper = make_paper(
            "arxiv", "2301.12345", external_ids=ExternalIds(arxiv_id="2301.12345")
        )
        self.openalex_paper = make_paper(
            "openalex", "W42", external_ids=ExternalIds(open_alex_id="W42", doi="10.1/x")
        )
        self.related = [make_paper("openalex", "W7")]
        self.citing = [make_paper("openalex", "W8"), make_paper("openalex", "W9")]

        self.arxiv = Mock()
        self.arxiv.get_by_external_id.return_value = self.arxiv_paper
        self.pubmed = Mock()
        self.pubmed.get_by_external_id.return_value = None
        self.openalex = Mock()
        self.openalex.get_by_external_id.return_value = self.openalex_paper
        self.openalex.get_related_papers.return_value = self.related
        self.openalex.get_citing_papers.return_value = self.citing

        self.sources = {"arxiv": self.arxiv, "pubmed": self.pubmed, "openalex": self.openalex}
        self.service = PaperService(
            self.sources, cache_manager=CacheManager(), settings=SearchSettings(related_limit=3)
        )

    def get(self, paper_id):
        return asyncio.run(self.service.get_paper(paper_id))

    def test_routes_by_source_prefix(self):
        detail = self.get("arxiv:2301.12345")

        self.arxiv.get_by_external_id.assert_called_once_with("2301.12345")
        assert isinstance(detail, PaperDetail)
        assert detail.id == "arxiv:2301.12345"

    def test_paper_without_openalex_id_has_no_graph(self):
        detail = self.get("arxiv:2301.12345")

        assert detail.related_papers is None
        assert detail.cited_by is None
        self.openalex.get_related_papers.assert_not_called()

    def test_openalex_paper_gets_related_and_citing(self):
        detail = self.get("openalex:W42")

        self.openalex.get_related_papers.assert_called_once_with("W42", 3)
        self.openalex.get_citing_papers.assert_called_once_with("W42", 3)
        assert detail.related_papers == self.related
        assert detail.cited_by == self.citing

    def test_bare_id_is_sniffed(self):
        detail = self.get("2301.12345")

        assert detail.id == "arxiv:2301.12345"

    def test_not_found(self):
        assert self.get("pubmed:99999999") is None

    def test_unresolvable_id(self):
        assert self.get("nonsense") is None
        self.arxiv.get_by_external_id.assert_not_called()

    def test_unconfigured_source(self):
        assert self.get("crossref:10.1/x") is None

    def test_details_are_cached(self):
        first = self.get("openalex:W42")
        second = self.get("openalex:W42")

        assert second is first
        assert self.openalex.get_by_external_id.call_count == 1

    def test_not_found_is_not_cached(self):
        self.get("pubmed:1")
        self.get("pubmed:1")

        assert self.pubmed.get_by_external_id.call_count == 2

    def test_citation_lookup_uses_cache(self):
        detail = self.get("arxiv:2301.12345")

        paper = asyncio.run(self.service.get_paper_for_citation("arxiv:2301.12345"))

        assert paper is detail
        assert self.arxiv.get_by_external_id.call_count == 1

    def test_citation_lookup_skips_graph(self):
        paper = asyncio.run(self.service.get_paper_for_citation("openalex:W42"))

        assert paper is self.openalex_paper
        self.openalex.get_related_papers.assert_not_called()
