"""
Health check route.
"""
from fastapi import APIRouter, Depends, Response

from pastebox.models import HealthCheck
from pastebox.store import PasteStore, get_store

router = APIRouter()


@router.get("/api/healthz", response_model=HealthCheck)
def health_check(
    response: Response,
    store: PasteStore = Depends(get_store),
) -> HealthCheck:
    """
    Health check endpoint.
    Returns 200 with ok=true if the paste store answers, 503 with ok=false otherwise.
    """
    is_healthy = store.is_available()
    if not is_healthy:
        response.status_code = 503
    return HealthCheck(ok=is_healthy)
