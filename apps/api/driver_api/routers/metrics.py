from fastapi import APIRouter, Depends

from driver_api.auth.actor import AdminActor
from driver_api.auth.dependencies import require_admin
from driver_api.config import settings
from driver_api.observability import metrics_store
from driver_api.schemas.metrics import MetricsResponse

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get("", summary="Observability metrics", response_model=MetricsResponse)
def metrics_endpoint(
    _actor: AdminActor = Depends(require_admin),
) -> MetricsResponse:
    """Counters and timings since process start. Admin only."""
    snapshot = metrics_store.snapshot()

    return MetricsResponse(
        service=settings.app_name,
        counters=snapshot.counters or {},
        timings=snapshot.timings or {},
    )
