"""Membership approval: applicant self-service and the admin review queue."""
from fastapi import APIRouter, Depends, Query, status
from memberhub.schemas import (
    ApprovalOut, ApprovalMessageCreate, ApprovalMessageOut, RejectRequest,
    ReapplyEligibilityOut, ApplicationProfile,
)
from memberhub.db.models.user import AccountStatus
from memberhub.db.session import get_session
from memberhub.services.approval_service import ApprovalService
from memberhub.auth import get_current_user, role_required
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

router = APIRouter(prefix="/approvals", tags=["approvals"])


def get_approval_service(session: AsyncSession = Depends(get_session)) -> ApprovalService:
    """
    Dependency to get approval service instance.

    Args:
        session: Database session

    Returns:
        ApprovalService instance
    """
    return ApprovalService(session)


@router.get("/me", response_model=ApprovalOut)
async def get_my_approval(
    user=Depends(get_current_user),
    service: ApprovalService = Depends(get_approval_service),
):
    return await service.get_approval_by_user(user.id)


@router.get("/me/reapply", response_model=ReapplyEligibilityOut)
async def get_reapply_eligibility(
    user=Depends(get_current_user),
    service: ApprovalService = Depends(get_approval_service),
):
    return service.can_reapply(user)


@router.post("/me/reapply", response_model=ApprovalOut)
async def reapply(
    payload: ApplicationProfile,
    user=Depends(get_current_user),
    service: ApprovalService = Depends(get_approval_service),
):
    """Reopen a rejected request once the cooldown has passed."""
    return await service.reapply(user, payload)


@router.get("/", response_model=List[ApprovalOut])
async def list_approvals(
    approval_status: Optional[AccountStatus] = Query(None, alias="status"),
    user=Depends(role_required("admin")),
    service: ApprovalService = Depends(get_approval_service),
):
    return await service.list_approvals(approval_status)


@router.get("/{approval_id}", response_model=ApprovalOut)
async def get_approval(
    approval_id: UUID,
    user=Depends(get_current_user),
    service: ApprovalService = Depends(get_approval_service),
):
    return await service.get_approval_by_id(approval_id, user)


@router.get("/{approval_id}/messages", response_model=List[ApprovalMessageOut])
async def list_messages(
    approval_id: UUID,
    user=Depends(get_current_user),
    service: ApprovalService = Depends(get_approval_service),
):
    return await service.list_messages(approval_id, user)


@router.post("/{approval_id}/messages", response_model=ApprovalMessageOut, status_code=status.HTTP_201_CREATED)
async def send_message(
    approval_id: UUID,
    payload: ApprovalMessageCreate,
    user=Depends(get_current_user),
    service: ApprovalService = Depends(get_approval_service),
):
    """Post a message on an approval thread; applicant and admins only."""
    return await service.send_message(approval_id, user, payload.message)


@router.post("/{approval_id}/read", response_model=ApprovalOut)
async def mark_read(
    approval_id: UUID,
    user=Depends(get_current_user),
    service: ApprovalService = Depends(get_approval_service),
):
    return await service.mark_thread_read(approval_id, user)


@router.post("/{approval_id}/approve", response_model=ApprovalOut)
async def approve(
    approval_id: UUID,
    user=Depends(role_required("admin")),
    service: ApprovalService = Depends(get_approval_service),
):
    """
    Approve a pending membership request (admin only).

    Args:
        approval_id: Approval request to approve
        user: Current admin user
        service: Approval service instance

    Returns:
        Updated approval request

    Raises:
        HTTPException: 404 if not found
        ApprovalError: The request is not pending
    """
    return await service.approve_account(approval_id, user)


@router.post("/{approval_id}/reject", response_model=ApprovalOut)
async def reject(
    approval_id: UUID,
    payload: RejectRequest,
    user=Depends(role_required("admin")),
    service: ApprovalService = Depends(get_approval_service),
):
    """
    Reject a membership request with a reason (admin only).

    Args:
        approval_id: Approval request to reject
        payload: Rejection reason shown to the applicant
        user: Current admin user
        service: Approval service instance

    Returns:
        Updated approval request

    Raises:
        HTTPException: 404 if not found
        ApprovalError: The request is not pending or the reason is empty
    """
    return await service.reject_account(approval_id, user, payload.reason)
