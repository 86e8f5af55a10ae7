"""Queue consumer statistics."""

from typing import Any, Dict

from fastapi import APIRouter, Request

router = APIRouter(prefix="/stats", tags=["statistics"])


@router.get("")
async def get_stats(request: Request) -> Dict[str, Any]:
    """Return consumer counters, or a stopped status when there is no consumer."""
    consumer = getattr(request.app.state, "consumer", None)
    if consumer is None:
        return {"is_running": False}
    return consumer.get_stats()
