"""
Unit tests for HealthService.
"""

import asyncio
from unittest.mock import patch

import requests

from research_archive.models import ApiSettings, SourceHealth
from research_archive.services.health_service import HEALTH_CHECK_URLS, HealthService, overall_status

from conftest import FakeClock, make_response


def health(status):
    return SourceHealth(status=status, last_check="2024-01-01T00:00:00Z")


def test_overall_status():
    assert overall_status({"a": health("up"), "b": health("up")}) == "healthy"
    assert overall_status({"a": health("up"), "b": health("down")}) == "degraded"
    assert overall_status({"a": health("slow"), "b": health("up")}) == "degraded"
    assert overall_status({"a": health("slow"), "b": health("down")}) == "unhealthy"
    assert overall_status({}) == "unhealthy"


class TestHealthService:
    """Test cases for HealthService."""

    def setup_method(self):
        self.clock = FakeClock()
        self.service = HealthService(ApiSettings(health_timeout=5, slow_threshold=3), clock=self.clock)

    def respond_after(self, seconds, response=None):
        def get(url, timeout=None):
            self.clock.advance(seconds)
            return response or make_response()

        return get

    def test_probes_every_source(self):
        assert set(self.service.urls) == {"arxiv", "pubmed", "crossref", "openalex"}
        assert self.service.urls == HEALTH_CHECK_URLS

    def test_up(self):
        with patch.object(self.service.session, "get", side_effect=self.respond_after(0.25)) as mock_get:
            result = self.service.check_source("arxiv", "https://example.org/ping")

        mock_get.assert_called_once_with("https://example.org/ping", timeout=5)
        assert result.status == "up"
        assert result.latency_ms == 250
        assert result.last_check.endswith("Z")

    def test_slow(self):
        with patch.object(self.service.session, "get", side_effect=self.respond_after(4.0)):
            result = self.service.check_source("pubmed", "https://example.org/ping")

        assert result.status == "slow"
        assert result.latency_ms == 4000

    def test_down_on_error_status(self):
        response = make_response(status_code=503)
        response.raise_for_status.side_effect = requests.HTTPError("503")

        with patch.object(self.service.session, "get", return_value=response):
            assert self.service.check_source("crossref", "https://example.org/ping").status == "down"

    def test_down_on_timeout(self):
        with patch.object(self.service.session, "get", side_effect=requests.Timeout()):
            assert self.service.check_source("openalex", "https://example.org/ping").status == "down"

    def test_check_health_summarizes(self):
        def get(url, timeout=None):
            if "crossref" in url:
                raise requests.ConnectionError("refused")
            return make_response()

        with patch.object(self.service.session, "get", side_effect=get):
            report = asyncio.run(self.service.check_health())

        assert report.status == "degraded"
        assert report.sources["crossref"].status == "down"
        assert report.sources["arxiv"].status == "up"
        assert report.timestamp.endswith("Z")
        assert list(report.to_dict()["sources"]) == ["arxiv", "pubmed", "crossref", "openalex"]

    def test_check_health_all_down(self):
        with patch.object(self.service.session, "get", side_effect=requests.ConnectionError()):
            report = asyncio.run(self.service.check_health())

        assert report.status == "unhealthy"
