from __future__ import annotations

from fastapi import APIRouter

from rpos.api.dependencies import unit_of_work
from rpos.application.dto.responses import KitchenQueueResponse
from rpos.application.use_cases.kitchen_queue import KitchenQueue

router = APIRouter(prefix="/api/kitchen", tags=["kitchen"])


@router.get("/queue", response_model=KitchenQueueResponse)
def kitchen_queue(
    status: str = "ALL",
    limit: int = 50,
    cursor: str | None = None,
) -> KitchenQueueResponse:
    return KitchenQueue(unit_of_work()).execute(status=status, limit=limit, cursor=cursor)
