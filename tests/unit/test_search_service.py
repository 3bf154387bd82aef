"""
Unit tests for the unified search pipeline.
"""

import asyncio

import pytest

from research_archive.models import (
    Author,
    CacheSettings,
    DateRange,
    ExternalIds,
    SearchRequest,
    SearchSettings,
    SourceResult,
)
from research_archive.services.search_service import (
    SearchService,
    calculate_source_pagination,
    deduplicate_papers,
    filter_papers,
    sort_papers,
)
from research_archive.utils.cache import CacheManager
from research_archive.utils.error_handler import NetworkError, SourceError

from conftest import make_paper


class FakeSource:
    """In-memory adapter that records the options it was searched with."""

    def __init__(self, name, papers=None, total=None, error=None, trending=None):
        self.name = name
        self.papers = papers or []
        self.total = len(self.papers) if total is None else total
        self.error = error
        self.trending = trending or []
        self.calls = []

    def search(self, query, options=None):
        self.calls.append((query, options))
        if self.error:
            raise self.error
        return SourceResult(source=self.name, papers=list(self.papers), total=self.total)

    def get_trending_papers(self, days=30, limit=10):
        self.calls.append(("trending", days, limit))
        return self.trending[:limit]


class TestPagination:
    """Test cases for per-source pagination."""

    @pytest.mark.parametrize(
        "page, limit, count, expected",
        [(1, 20, 4, (0, 5)), (3, 20, 4, (10, 5)), (2, 10, 3, (4, 4)), (1, 1, 4, (0, 1))],
    )
    def test_calculate_source_pagination(self, page, limit, count, expected):
        assert calculate_source_pagination(page, limit, count) == expected


class TestDeduplicate:
    """Test cases for DOI deduplication."""

    def test_richer_record_wins_with_union_of_ids(self):
        a = make_paper(
            "pubmed",
            "111",
            abstract="short",
            authors=[Author(name="A One")],
            citations=5,
            external_ids=ExternalIds(doi="10.1/x", pmid="111"),
        )
        b = make_paper(
            "openalex",
            "W2",
            abstract="a very long abstract about the same work",
            authors=[Author(name="A One"), Author(name="B Two")],
            citations=5,
            external_ids=ExternalIds(doi="10.1/x", open_alex_id="W2"),
        )

        result = deduplicate_papers([a, b])

        assert len(result) == 1
        merged = result[0]
        assert merged.id == b.id
        assert merged.abstract == b.abstract
        assert merged.external_ids == ExternalIds(doi="10.1/x", pmid="111", open_alex_id="W2")

    def test_tie_keeps_first_and_merges_ids(self):
        first = make_paper("crossref", "10.1/x", external_ids=ExternalIds(doi="10.1/x"))
        second = make_paper("openalex", "W3", external_ids=ExternalIds(doi="10.1/x", open_alex_id="W3"))

        result = deduplicate_papers([first, second])

        assert len(result) == 1
        assert result[0].id == first.id
        assert result[0].external_ids.open_alex_id == "W3"

    def test_papers_without_doi_pass_through(self):
        keyed = make_paper("crossref", "10.1/x", external_ids=ExternalIds(doi="10.1/x"))
        loose = [make_paper("arxiv", "2301.00001"), make_paper("arxiv", "2301.00002")]

        result = deduplicate_papers([loose[0], keyed, loose[1]])

        assert [p.id for p in result] == [keyed.id, loose[0].id, loose[1].id]

    def test_inputs_are_not_mutated(self):
        a = make_paper("pubmed", "1", external_ids=ExternalIds(doi="10.1/x", pmid="1"))
        b = make_paper("openalex", "W1", abstract="longer abstract text", external_ids=ExternalIds(doi="10.1/x"))

        deduplicate_papers([a, b])

        assert b.external_ids.pmid is None


class TestFilterAndSort:
    """Test cases for filtering and ordering."""

    def test_citation_filter_then_sort(self):
        papers = [make_paper(external_id=f"W{i}", citations=c) for i, c in enumerate([10, 0, 50, 5, 100])]

        result = sort_papers(filter_papers(papers, citation_min=5), "citations")

        assert [p.citations for p in result] == [100, 50, 10, 5]

    def test_open_access_filter(self):
        papers = [make_paper(external_id="W1"), make_paper(external_id="W2", access_type="restricted")]
        assert [p.id for p in filter_papers(papers, access_type="open")] == ["openalex:W1"]
        assert len(filter_papers(papers, access_type="any")) == 2

    def test_date_range_is_inclusive_and_drops_undated(self):
        papers = [
            make_paper(external_id="W1", date="2020-01-01"),
            make_paper(external_id="W2", date="2020-12-31"),
            make_paper(external_id="W3", date="2021-01-01"),
            make_paper(external_id="W4", date=""),
        ]

        result = filter_papers(papers, date_from="2020-01-01", date_to="2020-12-31")

        assert [p.id for p in result] == ["openalex:W1", "openalex:W2"]

    def test_sort_by_date_newest_first_undated_last(self):
        papers = [
            make_paper(external_id="W1", date="2019-05-01"),
            make_paper(external_id="W2", date="unknown"),
            make_paper(external_id="W3", date="2023-01-01T10:00:00Z"),
        ]

        assert [p.id for p in sort_papers(papers, "date")] == ["openalex:W3", "openalex:W1", "openalex:W2"]

    def test_sort_is_stable(self):
        papers = [make_paper(external_id=f"W{i}", citations=7) for i in range(4)]
        assert sort_papers(papers, "citations") == papers

    def test_relevance_keeps_source_order(self):
        papers = [make_paper(external_id="W2", citations=1), make_paper(external_id="W1", citations=9)]
        assert sort_papers(papers, "relevance") == papers


class TestSearchService:
    """Test cases for SearchService."""

    def setup_method(self):
        self.arxiv = FakeSource(
            "arxiv",
            [make_paper("arxiv", "2301.00001", citations=0, date="2023-02-01")],
            total=30,
        )
        self.openalex = FakeSource(
            "openalex",
            [
                make_paper("openalex", "W1", citations=40, external_ids=ExternalIds(doi="10.1/x", open_alex_id="W1")),
                make_paper("openalex", "W2", citations=2, access_type="restricted"),
            ],
            total=70,
            trending=[make_paper("openalex", f"W{i}") for i in range(10)],
        )
        self.crossref = FakeSource(
            "crossref",
            [make_paper("crossref", "10.1/x", abstract="", citations=40, external_ids=ExternalIds(doi="10.1/x"))],
            total=100,
        )
        self.pubmed = FakeSource("pubmed", error=SourceError("pubmed", "Failed to search PubMed: timeout"))
        self.sources = {
            "arxiv": self.arxiv,
            "pubmed": self.pubmed,
            "crossref": self.crossref,
            "openalex": self.openalex,
        }
        self.clock_time = 0.0
        self.service = SearchService(
            self.sources,
            cache_manager=CacheManager(CacheSettings(), clock=lambda: self.clock_time),
            settings=SearchSettings(featured_limit=3, trending_days=14),
            clock=lambda: self.clock_time,
        )

    def search(self, **fields):
        return asyncio.run(self.service.unified_search(SearchRequest(**fields)))

    def test_unified_search_merges_sources(self):
        result = self.search(query="graphs", limit=20)

        assert result.total == 200
        assert result.page == 1
        assert result.pages == 10
        assert {p.id for p in result.papers} == {"arxiv:2301.00001", "openalex:W1", "openalex:W2"}
        assert result.errors == ["pubmed: Failed to search PubMed: timeout"]

    def test_failing_source_does_not_fail_search(self):
        for source in ("arxiv", "crossref", "openalex"):
            self.sources[source].error = NetworkError("down")

        result = self.search(query="graphs")

        assert result.papers == []
        assert result.total == 0
        assert len(result.errors) == 4

    def test_each_source_gets_its_share_of_the_page(self):
        self.search(query="graphs", page=2, limit=20, sort="date")

        query, options = self.arxiv.calls[0]
        assert query == "graphs"
        assert options.offset == 5
        assert options.limit == 5
        assert options.sort == "date"

    def test_date_range_is_forwarded_to_sources(self):
        self.search(query="graphs", date_range=DateRange("2020-01-01", "2024-01-01"))

        _, options = self.openalex.calls[0]
        assert options.filters.date_from == "2020-01-01"
        assert options.filters.date_to == "2024-01-01"

    def test_selected_sources_only(self):
        result = self.search(query="graphs", sources=("arxiv",))

        assert self.openalex.calls == []
        assert result.total == 30
        assert result.errors == []

    def test_unconfigured_source_is_reported(self):
        del self.sources["crossref"]

        result = self.search(query="graphs", sources=("crossref", "arxiv"))

        assert result.errors == ["crossref: Unknown source"]
        assert len(result.papers) == 1

    def test_filters_and_sort_applied_to_merged_papers(self):
        result = self.search(query="graphs", sort="citations", access_type="open", citation_min=1)

        assert [p.id for p in result.papers] == ["openalex:W1"]

    def test_page_is_capped_at_limit(self):
        result = self.search(query="graphs", limit=2)
        assert len(result.papers) == 2

    def test_repeat_search_is_served_from_cache(self):
        first = self.search(query="graphs")
        second = self.search(query="graphs")

        assert second == first
        assert second.papers == first.papers
        assert len(self.arxiv.calls) == 1

    def test_cached_result_is_isolated_from_callers(self):
        first = self.search(query="graphs")
        expected_ids = [p.id for p in first.papers]
        first.papers.clear()
        first.errors.append("local note")

        second = self.search(query="graphs")
        second.papers.pop()

        third = self.search(query="graphs")
        assert [p.id for p in third.papers] == expected_ids
        assert third.errors == ["pubmed: Failed to search PubMed: timeout"]
        assert len(self.arxiv.calls) == 1

    def test_cache_distinguishes_options(self):
        self.search(query="graphs")
        self.search(query="graphs", citation_min=5)

        assert len(self.arxiv.calls) == 2

    def test_cache_expires(self):
        self.search(query="graphs")
        self.clock_time += CacheSettings().search_ttl + 1
        self.search(query="graphs")

        assert len(self.arxiv.calls) == 2

    def test_errors_tracked_per_source(self):
        self.search(query="graphs")

        summary = self.service.error_handler.get_error_summary()
        assert summary["error_counts"] == {"SourceError:pubmed": 1}

    def test_quick_search_prefers_openalex(self):
        papers = asyncio.run(self.service.quick_search("graphs", limit=3))

        assert [p.id for p in papers] == ["openalex:W1", "openalex:W2"]
        assert self.openalex.calls[0][1].limit == 3
        assert self.arxiv.calls == []

    def test_quick_search_falls_back_to_arxiv(self):
        self.openalex.error = NetworkError("down")

        papers = asyncio.run(self.service.quick_search("graphs"))

        assert [p.id for p in papers] == ["arxiv:2301.00001"]
        assert self.arxiv.calls[0][1].limit == 5

    def test_quick_search_gives_up_quietly(self):
        self.openalex.error = NetworkError("down")
        self.arxiv.error = NetworkError("down")

        assert asyncio.run(self.service.quick_search("graphs")) == []

    def test_featured_papers(self):
        papers = asyncio.run(self.service.get_featured_papers())

        assert len(papers) == 3
        assert self.openalex.calls == [("trending", 14, 3)]

    def test_featured_papers_without_openalex(self):
        del self.sources["openalex"]
        assert asyncio.run(self.service.get_featured_papers()) == []
