"""
Configuration data models.
"""

from dataclasses import dataclass, field
from typing import List

from .paper import SOURCES


@dataclass
class ApiSettings:
    """Settings shared by every upstream HTTP call."""

    user_agent: str = "ResearchArchive/1.0 (Academic Search Engine)"
    contact_email: str = "research@example.com"
    request_timeout: float = 30.0
    health_timeout: float = 5.0
    arxiv_min_interval: float = 3.0
    slow_threshold: float = 3.0

    def __post_init__(self):
        """Validate API settings."""
        if not self.user_agent:
            raise ValueError("User agent cannot be empty")
        if self.request_timeout <= 0:
            raise ValueError("Request timeout must be positive")
        if self.health_timeout <= 0:
            raise ValueError("Health timeout must be positive")
        if self.arxiv_min_interval < 0:
            raise ValueError("arXiv minimum interval cannot be negative")
        if self.slow_threshold <= 0:
            raise ValueError("Slow threshold must be positive")

    @property
    def polite_user_agent(self) -> str:
        """User agent carrying a contact address, as CrossRef and OpenAlex ask for."""
        agent = self.user_agent
        if self.contact_email and "mailto:" not in agent:
            if agent.endswith(")"):
                agent = f"{agent[:-1]}; mailto:{self.contact_email})"
            else:
                agent = f"{agent} (mailto:{self.contact_email})"
        return agent


@dataclass
class CacheSettings:
    """Capacities and lifetimes of the two in-memory caches (seconds)."""

    search_max_entries: int = 500
    paper_max_entries: int = 1000
    search_ttl: float = 900.0
    paper_ttl: float = 3600.0
    cleanup_interval: float = 300.0

    def __post_init__(self):
        """Validate cache settings."""
        if self.search_max_entries <= 0 or self.paper_max_entries <= 0:
            raise ValueError("Cache capacities must be positive")
        if self.search_ttl <= 0 or self.paper_ttl <= 0:
            raise ValueError("Cache TTLs must be positive")
        if self.cleanup_interval < 0:
            raise ValueError("Cleanup interval cannot be negative")


@dataclass
class SearchSettings:
    """Defaults of the aggregation pipeline."""

    default_limit: int = 20
    default_sources: List[str] = field(default_factory=lambda: list(SOURCES))
    quick_search_limit: int = 5
    related_limit: int = 5
    featured_limit: int = 8
    trending_days: int = 90

    def __post_init__(self):
        """Validate search settings."""
        if self.default_limit <= 0:
            raise ValueError("Default limit must be positive")
        if not self.default_sources:
            raise ValueError("At least one default source must be configured")
        unknown = [s for s in self.default_sources if s not in SOURCES]
        if unknown:
            raise ValueError(f"Unknown sources in configuration: {unknown}")
        if len(set(self.default_sources)) != len(self.default_sources):
            raise ValueError("Default sources must be unique")
        for name in ("quick_search_limit", "related_limit", "featured_limit", "trending_days"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")


@dataclass
class SystemConfig:
    """Overall system configuration."""

    api: ApiSettings = field(default_factory=ApiSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    search: SearchSettings = field(default_factory=SearchSettings)
