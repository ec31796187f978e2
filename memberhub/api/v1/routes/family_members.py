from fastapi import APIRouter, Depends, status
from memberhub.schemas import FamilyMemberCreate, FamilyMemberUpdate, FamilyMemberOut
from memberhub.db.session import get_session
from memberhub.services.family_service import FamilyService
from memberhub.auth import get_current_user
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

router = APIRouter(prefix="/family-members", tags=["family"])


def get_family_service(session: AsyncSession = Depends(get_session)) -> FamilyService:
    return FamilyService(session)


@router.get("/", response_model=List[FamilyMemberOut])
async def list_family_members(
    user=Depends(get_current_user),
    service: FamilyService = Depends(get_family_service),
):
    return await service.list_family_members(user)


@router.post("/", response_model=FamilyMemberOut, status_code=status.HTTP_201_CREATED)
async def create_family_member(
    payload: FamilyMemberCreate,
    user=Depends(get_current_user),
    service: FamilyService = Depends(get_family_service),
):
    """
    Save a family member on the caller's profile.

    Args:
        payload: Name, age group and relationship
        user: Current user
        service: Family service instance

    Returns:
        Created family member

    Raises:
        DomainError: The name is missing or the wrong length
    """
    return await service.create_family_member(user, payload)


@router.patch("/{member_id}", response_model=FamilyMemberOut)
async def update_family_member(
    member_id: UUID,
    payload: FamilyMemberUpdate,
    user=Depends(get_current_user),
    service: FamilyService = Depends(get_family_service),
):
    return await service.update_family_member(user, member_id, payload)


@router.delete("/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_family_member(
    member_id: UUID,
    user=Depends(get_current_user),
    service: FamilyService = Depends(get_family_service),
):
    """Remove a saved family member. Existing RSVPs keep their own copy of the name."""
    await service.delete_family_member(user, member_id)
    return None
