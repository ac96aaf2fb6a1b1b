"""
Upstream Provider Models

Static provider descriptors plus the result shapes produced by the failover
fetcher: per-attempt audit records, failover results, fan-out reports and
health probe statuses.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TIMEOUT_MS = 15000


class ProviderKind(str, Enum):
    """Kind of upstream market data source."""
    AGGREGATOR = "aggregator"
    EXCHANGE = "exchange"


class AttemptOutcome(str, Enum):
    """Outcome of a single provider attempt."""
    SUCCESS = "success"
    FAILURE = "failure"


class ProviderDescriptor(BaseModel):
    """Read-only provider configuration."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    kind: ProviderKind
    base_endpoint: str
    priority: int = Field(..., description="Lower values are tried first")
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    enabled: bool = True


class AttemptRecord(BaseModel):
    """One entry of the per-fetch audit trail."""

    source: str
    outcome: AttemptOutcome
    elapsed_ms: float = Field(..., ge=0)
    retry_index: int = Field(..., ge=0)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == AttemptOutcome.SUCCESS


class FetchResult(BaseModel):
    """Result of a failover fetch: first success or total failure."""

    success: bool
    source: Optional[str] = None
    kind: Optional[ProviderKind] = None
    price: Optional[float] = None
    elapsed_ms: Optional[float] = None
    data: Optional[Dict[str, Any]] = None
    attempts: List[AttemptRecord] = Field(default_factory=list)
    error: Optional[str] = None

    def attempts_for(self, source: str) -> List[AttemptRecord]:
        """Attempt trail of one provider, in retry order."""
        return [a for a in self.attempts if a.source == source]


class ProviderOutcome(BaseModel):
    """One provider's result within a fan-out report."""

    source: str
    kind: ProviderKind
    priority: int
    success: bool
    price: Optional[float] = None
    elapsed_ms: float = 0.0
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class PriceRange(BaseModel):
    """Extreme prices across successful providers."""

    min: float
    max: float
    min_source: str
    max_source: str

    @property
    def spread(self) -> float:
        return self.max - self.min


class FetchReport(BaseModel):
    """Aggregate of a fan-out fetch across all providers."""

    total: int
    successful: int
    failed: int
    results: List[ProviderOutcome] = Field(default_factory=list)
    average_price: Optional[float] = None
    price_range: Optional[PriceRange] = None

    @property
    def prices(self) -> List[Dict[str, Any]]:
        return [
            {"source": r.source, "price": r.price}
            for r in self.results
            if r.success
        ]


class ProviderStatus(BaseModel):
    """Health probe result for one provider."""

    name: str
    kind: ProviderKind
    available: bool
    elapsed_ms: float = 0.0
    price: Optional[float] = None
    error: Optional[str] = None
