"""
Upstream availability checks.
"""

import asyncio
import time
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

import requests

from ..models import ApiSettings, HealthCheck, SourceHealth

logger = logging.getLogger(__name__)

HEALTH_CHECK_URLS = {
    "arxiv": "https://export.arxiv.org/api/query?search_query=test&max_results=1",
    "pubmed": (
        "https://eutils.ncbi.nlm.nih.gov/entrez/eutils/esearch.fcgi"
        "?db=pubmed&term=test&retmax=1&retmode=json"
    ),
    "crossref": "https://api.crossref.org/v1/works?query=test&rows=1",
    "openalex": "https://api.openalex.org/works?search=test&per_page=1",
}


def overall_status(sources: Dict[str, SourceHealth]) -> str:
    """``healthy`` if every source is up, ``degraded`` if some are, else ``unhealthy``."""
    statuses = [s.status for s in sources.values()]
    if statuses and all(s == "up" for s in statuses):
        return "healthy"
    if any(s == "up" for s in statuses):
        return "degraded"
    return "unhealthy"


class HealthService:
    """Probes every upstream API in parallel."""

    def __init__(
        self,
        settings: Optional[ApiSettings] = None,
        session: Optional[requests.Session] = None,
        urls: Optional[Dict[str, str]] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.settings = settings or ApiSettings()
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "ResearchArchive/1.0 (Health Check)"})
        self.urls = urls or dict(HEALTH_CHECK_URLS)
        self._clock = clock or time.perf_counter

    def check_source(self, name: str, url: str) -> SourceHealth:
        """Probe one upstream; slow responses and failures are reported, not raised."""
        start = self._clock()
        try:
            response = self.session.get(url, timeout=self.settings.health_timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning(f"Health check for {name} failed: {e}")
            return SourceHealth(
                status="down",
                latency_ms=int((self._clock() - start) * 1000),
                last_check=_now_iso(),
            )

        elapsed = self._clock() - start
        return SourceHealth(
            status="slow" if elapsed > self.settings.slow_threshold else "up",
            latency_ms=int(elapsed * 1000),
            last_check=_now_iso(),
        )

    async def check_health(self) -> HealthCheck:
        """Probe all sources concurrently and summarize."""
        names = list(self.urls)
        results = await asyncio.gather(
            *(asyncio.to_thread(self.check_source, name, self.urls[name]) for name in names)
        )
        sources = dict(zip(names, results))

        status = overall_status(sources)
        if status != "healthy":
            logger.warning(
                f"Health check {status}: "
                + ", ".join(f"{name}={health.status}" for name, health in sources.items())
            )

        return HealthCheck(status=status, timestamp=_now_iso(), sources=sources)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
