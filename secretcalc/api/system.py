"""Health check endpoint."""

from fastapi import APIRouter

from secretcalc.utils.clock import utcnow

router = APIRouter(tags=["system"])


@router.get("/health")
def health():
    """Lightweight health check (no auth required)."""
    return {"status": "ok", "time": utcnow().isoformat()}
