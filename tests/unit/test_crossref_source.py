"""
Unit tests for the CrossRef adapter.
"""

from datetime import date
from unittest.mock import patch

import pytest
import requests

from research_archive.models import ApiSettings, SearchFilters, SearchOptions
from research_archive.services.crossref_source import (
    CROSSREF_API_BASE,
    CrossRefSource,
    build_filter,
    format_date_parts,
    get_access_type,
)
from research_archive.utils.error_handler import SourceError

from conftest import make_response

SAMPLE_WORK = {
    "DOI": "10.1038/s41586-021-03819-2",
    "title": ["Highly accurate protein structure prediction with <i>AlphaFold</i>"],
    "author": [
        {
            "given": "John",
            "family": "Jumper",
            "ORCID": "http://orcid.org/0000-0001-6169-6580",
            "affiliation": [{"name": "DeepMind"}],
        },
        {"name": "AlphaFold Team"},
        {},
    ],
    "abstract": "<jats:p>Proteins are essential to life.</jats:p>",
    "published-print": {"date-parts": [[2021, 8]]},
    "created": {"date-parts": [[2021, 7, 15]]},
    "is-referenced-by-count": 15000,
    "license": [{"URL": "http://creativecommons.org/licenses/by/4.0/"}],
    "URL": "http://dx.doi.org/10.1038/s41586-021-03819-2",
    "link": [
        {"URL": "https://www.nature.com/articles/s41586-021-03819-2", "content-type": "text/html"},
        {"URL": "https://www.nature.com/articles/s41586-021-03819-2.pdf", "content-type": "application/pdf"},
    ],
    "container-title": ["Nature"],
    "subject": ["Multidisciplinary"],
}


class TestHelpers:
    """Test cases for CrossRef helper functions."""

    def test_format_date_parts_defaults_month_and_day(self):
        assert format_date_parts([[2021]]) == "2021-01-01"
        assert format_date_parts([[2021, 8]]) == "2021-08-01"
        assert format_date_parts([[2021, 8, 26]]) == "2021-08-26"

    def test_format_date_parts_missing_is_today(self):
        assert format_date_parts(None) == date.today().isoformat()
        assert format_date_parts([[None]]) == date.today().isoformat()

    def test_access_type(self):
        assert get_access_type({"license": [{"URL": "https://www.elsevier.com/tdm/userlicense/1.0/"}]}) == "restricted"
        assert get_access_type({"license": [{"URL": "http://creativecommons.org/licenses/by/4.0/"}]}) == "open"
        assert get_access_type({}) == "restricted"

    def test_build_filter(self):
        options = SearchOptions(filters=SearchFilters(date_from="2020-01-01", date_to="2021-12-31", has_abstract=True))
        assert build_filter(options) == "from-pub-date:2020-01-01,until-pub-date:2021-12-31,has-abstract:true"
        assert build_filter(SearchOptions()) is None


class TestCrossRefSource:
    """Test cases for CrossRefSource."""

    def setup_method(self):
        self.source = CrossRefSource(ApiSettings(contact_email="me@example.com"))

    def test_polite_user_agent(self):
        assert "mailto:me@example.com" in self.source.session.headers["User-Agent"]

    def test_search(self):
        response = make_response(json_data={"message": {"items": [SAMPLE_WORK], "total-results": 870}})

        with patch.object(self.source.session, "get", return_value=response) as mock_get:
            result = self.source.search("alphafold", SearchOptions(offset=40, limit=20, sort="citations"))

        assert mock_get.call_args.args[0] == CROSSREF_API_BASE
        assert mock_get.call_args.kwargs["params"] == {
            "query": "alphafold",
            "offset": 40,
            "rows": 20,
            "sort": "is-referenced-by-count",
            "order": "desc",
        }
        assert result.total == 870

        paper = result.papers[0]
        assert paper.id == "crossref:10.1038/s41586-021-03819-2"
        assert paper.title == "Highly accurate protein structure prediction with AlphaFold"
        assert paper.abstract == "Proteins are essential to life."
        assert paper.date == "2021-08-01"
        assert [a.name for a in paper.authors] == ["John Jumper", "AlphaFold Team", "Unknown"]
        assert paper.authors[0].affiliation == "DeepMind"
        assert paper.authors[0].orcid == "http://orcid.org/0000-0001-6169-6580"
        assert paper.external_ids.doi == "10.1038/s41586-021-03819-2"
        assert paper.citations == 15000
        assert paper.access_type == "open"
        assert paper.url == "http://dx.doi.org/10.1038/s41586-021-03819-2"
        assert paper.pdf_url == "https://www.nature.com/articles/s41586-021-03819-2.pdf"
        assert paper.journal == "Nature"
        assert paper.keywords == ["Multidisciplinary"]
        assert paper.discipline == "Multidisciplinary"

    def test_sparse_work(self):
        work = {"DOI": "10.1/sparse", "created": {"date-parts": [[2019, 2, 3]]}}
        response = make_response(json_data={"message": {"items": [work]}})

        with patch.object(self.source.session, "get", return_value=response):
            result = self.source.search("x")

        paper = result.papers[0]
        assert result.total == 1
        assert paper.title == "Untitled"
        assert paper.date == "2019-02-03"
        assert paper.url == "https://doi.org/10.1/sparse"
        assert paper.access_type == "restricted"
        assert paper.pdf_url is None
        assert paper.journal is None
        assert paper.discipline is None

    def test_filters_are_sent(self):
        options = SearchOptions(filters=SearchFilters(date_from="2020-01-01"))

        with patch.object(self.source.session, "get", return_value=make_response(json_data={"message": {}})) as mock_get:
            result = self.source.search("x", options)

        assert mock_get.call_args.kwargs["params"]["filter"] == "from-pub-date:2020-01-01"
        assert result.papers == []
        assert result.total == 0

    def test_rate_limit_raises_source_error(self):
        response = make_response(status_code=429, headers={"Retry-After": "30"})

        with patch.object(self.source.session, "get", return_value=response):
            with pytest.raises(SourceError, match="rate limit") as exc_info:
                self.source.search("x")

        assert exc_info.value.source == "crossref"
        assert exc_info.value.__cause__.retry_after == 30.0

    def test_get_by_external_id_quotes_doi(self):
        response = make_response(json_data={"message": SAMPLE_WORK})

        with patch.object(self.source.session, "get", return_value=response) as mock_get:
            paper = self.source.get_by_external_id("10.1038/s41586-021-03819-2")

        assert mock_get.call_args.args[0] == f"{CROSSREF_API_BASE}/10.1038%2Fs41586-021-03819-2"
        assert paper.citations == 15000

    def test_get_by_external_id_missing(self):
        with patch.object(self.source.session, "get", return_value=make_response(json_data={"message": {}})):
            assert self.source.get_by_external_id("10.1/none") is None

    @patch("research_archive.utils.error_handler.time.sleep")
    def test_get_citation_count_retries_then_defaults(self, mock_sleep):
        with patch.object(self.source.session, "get", side_effect=requests.ConnectionError()) as mock_get:
            assert self.source.get_citation_count("10.1/x") == 0

        assert mock_get.call_count == 2
        mock_sleep.assert_called_once()

    def test_get_citation_count(self):
        response = make_response(json_data={"message": SAMPLE_WORK})

        with patch.object(self.source.session, "get", return_value=response):
            assert self.source.get_citation_count("10.1038/s41586-021-03819-2") == 15000
