from fastapi import APIRouter, Depends
from memberhub.schemas import WaitlistPositionsOut, PromotionResultOut, WaitlistRecalculateOut
from memberhub.db.session import get_session
from memberhub.services.waitlist_service import WaitlistService
from memberhub.auth import get_current_user, role_required
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

router = APIRouter(prefix="/events/{event_id}/waitlist", tags=["waitlist"])


def get_waitlist_service(session: AsyncSession = Depends(get_session)) -> WaitlistService:
    """
    Dependency to get waitlist service instance.

    Args:
        session: Database session

    Returns:
        WaitlistService instance
    """
    return WaitlistService(session)


@router.get("/", response_model=WaitlistPositionsOut)
async def get_waitlist_positions(
    event_id: UUID,
    user=Depends(get_current_user),
    service: WaitlistService = Depends(get_waitlist_service),
):
    """
    Waitlist positions for an event, including the caller's own.

    Args:
        event_id: Event to inspect
        user: Current user
        service: Waitlist service instance

    Returns:
        Positions by user id, the caller's position and the waitlist size

    Raises:
        HTTPException: If the event does not exist
    """
    return await service.get_positions(event_id, user.id)


@router.post("/promote", response_model=PromotionResultOut)
async def promote_waitlist(
    event_id: UUID,
    user=Depends(role_required("admin")),
    service: WaitlistService = Depends(get_waitlist_service),
):
    """Fill any free seats from the head of the waitlist."""
    return await service.trigger_automatic_promotions(event_id)


@router.post("/recalculate", response_model=WaitlistRecalculateOut)
async def recalculate_positions(
    event_id: UUID,
    user=Depends(role_required("admin")),
    service: WaitlistService = Depends(get_waitlist_service),
):
    updated = await service.recalculate_waitlist_positions(event_id)
    return {"event_id": event_id, "updated": updated}


@router.post("/assign-missing", response_model=WaitlistRecalculateOut)
async def assign_missing_positions(
    event_id: UUID,
    user=Depends(role_required("admin")),
    service: WaitlistService = Depends(get_waitlist_service),
):
    updated = await service.assign_missing_positions(event_id)
    return {"event_id": event_id, "updated": updated}
