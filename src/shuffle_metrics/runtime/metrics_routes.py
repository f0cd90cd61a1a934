"""
Metrics exposition routes.

Read-only endpoints over a MetricsRegistry:
- GET /metrics/{scope}: JSON snapshot (server, runtime, rpc, transport)
- GET /prometheus/metrics/{scope}: same data in Prometheus text format
- GET /health: liveness

Unknown scopes return 404.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Response
from pydantic import BaseModel, Field

from shuffle_metrics.metrics import (
    PROMETHEUS_CONTENT_TYPE,
    MetricsRegistry,
    UnknownScopeError,
    snapshot_payload,
    to_prometheus,
)

# =============================================================================
# Response Models
# =============================================================================


class MetricSampleModel(BaseModel):
    """One exposed series."""

    name: str
    labelValues: list[str] = Field(default_factory=list)  # noqa: N815
    value: float


class MetricsResponse(BaseModel):
    """Scope snapshot."""

    timeStamp: int  # noqa: N815
    metrics: list[MetricSampleModel]


class HealthResponse(BaseModel):
    """Liveness response."""

    status: str
    server_tag: str | None = None


# =============================================================================
# Route Factory
# =============================================================================


def create_metrics_routes(registry: MetricsRegistry) -> APIRouter:
    """
    Create metrics exposition routes.

    Args:
        registry: Registry whose scopes are served

    Returns:
        FastAPI APIRouter with metrics endpoints
    """
    router = APIRouter(tags=["Metrics"])

    @router.get("/metrics/{scope}", response_model=MetricsResponse)
    async def get_metrics(scope: str) -> MetricsResponse:
        """JSON snapshot of one scope."""
        try:
            payload = snapshot_payload(registry, scope)
        except UnknownScopeError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        return MetricsResponse.model_validate(payload)

    @router.get("/prometheus/metrics/{scope}", include_in_schema=False)
    async def get_prometheus_metrics(scope: str) -> Response:
        """Prometheus text export of one scope."""
        try:
            content = to_prometheus(registry, scope)
        except UnknownScopeError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        return Response(content=content, media_type=PROMETHEUS_CONTENT_TYPE)

    @router.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Liveness check."""
        tag = registry.server_tag if registry.is_initialized else None
        return HealthResponse(status="healthy", server_tag=tag)

    return router
