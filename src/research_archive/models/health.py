"""
Health check data models.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

SOURCE_STATUSES = ("up", "down", "slow")
OVERALL_STATUSES = ("healthy", "degraded", "unhealthy")


@dataclass
class SourceHealth:
    """Result of probing one upstream."""
    status: str
    last_check: str
    latency_ms: Optional[int] = None

    def __post_init__(self):
        if self.status not in SOURCE_STATUSES:
            raise ValueError(f"Unknown source status: {self.status}")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.status, "lastCheck": self.last_check}
        if self.latency_ms is not None:
            data["latencyMs"] = self.latency_ms
        return data


@dataclass
class HealthCheck:
    status: str
    timestamp: str
    sources: Dict[str, SourceHealth] = field(default_factory=dict)

    def __post_init__(self):
        if self.status not in OVERALL_STATUSES:
            raise ValueError(f"Unknown health status: {self.status}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "sources": {name: h.to_dict() for name, h in self.sources.items()},
            "timestamp": self.timestamp,
        }
