from typing import List, Optional
from fastapi import HTTPException
from memberhub.core.config import settings
from memberhub.core.errors import ApprovalError
from memberhub.core.logging import logger
from memberhub.db.models.approval import AccountApproval, ApprovalMessage, SenderRole
from memberhub.db.models.user import User, AccountStatus
from memberhub.db.repositories.approvals import (
    get_approval_by_user as db_get_approval_by_user,
    get_approval_or_404,
    list_approvals as db_list_approvals,
    list_messages as db_list_messages,
    mark_messages_read,
)
from memberhub.db.repositories.users import get_user
from memberhub.db.session import utcnow
from memberhub.domain.approval import (
    ReapplyEligibility,
    ensure_decidable,
    other_side,
    reapply_eligibility,
    status_after_message,
)
from memberhub.schemas import ApplicationProfile
from memberhub.services.base import BaseService

PROFILE_FIELDS = (
    "first_name", "last_name", "location", "how_did_you_hear",
    "how_did_you_hear_other", "referred_by", "referral_notes",
)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _role_of(user: User) -> SenderRole:
    return SenderRole.admin if user.is_admin else SenderRole.user


class ApprovalService(BaseService):
    """
    Review workflow for new registrations.

    The approval row and the user's ``status`` always move together.
    """

    async def create_request(self, user: User, profile: ApplicationProfile) -> AccountApproval:
        """Open a pending request for a freshly registered user (caller commits)."""
        approval = AccountApproval(
            user_id=user.id,
            email=user.email,
            phone=_clean(profile.phone_number),
            status=AccountStatus.pending,
            awaiting_response_from=SenderRole.admin,
            unread_admin=0,
            unread_user=0,
            submitted_at=utcnow(),
        )
        for field in PROFILE_FIELDS:
            setattr(approval, field, _clean(getattr(profile, field)))
        self.session.add(approval)
        await self.session.flush()
        self.emit("approval.submitted", {"approval_id": str(approval.id), "user_id": str(user.id), "email": user.email})
        return approval

    async def get_approval_by_user(self, user_id) -> AccountApproval:
        approval = await db_get_approval_by_user(self.session, user_id)
        if not approval:
            raise HTTPException(status_code=404, detail="Approval request not found")
        return approval

    async def get_approval_by_id(self, approval_id, viewer: User) -> AccountApproval:
        approval = await get_approval_or_404(self.session, approval_id)
        if approval.user_id != viewer.id and not viewer.is_admin:
            raise HTTPException(status_code=403, detail="Forbidden")
        return approval

    async def list_approvals(self, status: Optional[AccountStatus] = None) -> List[AccountApproval]:
        return await db_list_approvals(self.session, status)

    async def list_messages(self, approval_id, viewer: User) -> List[ApprovalMessage]:
        await self.get_approval_by_id(approval_id, viewer)
        return await db_list_messages(self.session, approval_id)

    async def send_message(self, approval_id, sender: User, text: str) -> ApprovalMessage:
        """
        Add a message to the thread. The recipient's unread counter goes up
        and the thread then waits on the recipient.
        """
        approval = await get_approval_or_404(self.session, approval_id, lock=True)
        role = _role_of(sender)
        if role == SenderRole.user and approval.user_id != sender.id:
            raise HTTPException(status_code=403, detail="Forbidden")
        text = (text or "").strip()
        if not text:
            raise ApprovalError("Message cannot be empty")

        now = utcnow()
        message = ApprovalMessage(
            approval_id=approval.id,
            user_id=sender.id,
            sender_role=role,
            sender_name=sender.display_name,
            message=text,
            read=False,
            created_at=now,
        )
        self.session.add(message)
        if role == SenderRole.admin:
            approval.unread_user = (approval.unread_user or 0) + 1
        else:
            approval.unread_admin = (approval.unread_admin or 0) + 1
        approval.awaiting_response_from = other_side(role)
        approval.last_message_at = now

        new_status = status_after_message(approval.status, role)
        if new_status != approval.status:
            approval.status = new_status
            owner = await get_user(self.session, approval.user_id)
            owner.status = new_status

        await self.session.flush()
        self.emit("approval.message", {
            "approval_id": str(approval.id),
            "user_id": str(approval.user_id),
            "sender_role": role.value,
            "sender_name": message.sender_name,
        })
        await self.commit()
        return message

    async def mark_thread_read(self, approval_id, reader: User) -> AccountApproval:
        approval = await self.get_approval_by_id(approval_id, reader)
        role = _role_of(reader)
        if role == SenderRole.admin:
            approval.unread_admin = 0
        else:
            approval.unread_user = 0
        await mark_messages_read(self.session, approval.id, other_side(role))
        await self.commit()
        return approval

    async def approve_account(self, approval_id, admin: User) -> AccountApproval:
        approval = await get_approval_or_404(self.session, approval_id, lock=True)
        ensure_decidable(approval.status)
        now = utcnow()
        approval.status = AccountStatus.approved
        approval.reviewed_at = now
        approval.reviewed_by = admin.id
        approval.awaiting_response_from = None
        approval.rejection_reason = None

        user = await get_user(self.session, approval.user_id)
        user.status = AccountStatus.approved
        user.approved_at = now
        user.approved_by = admin.id
        user.rejection_reason = None

        self.emit("approval.approved", {"approval_id": str(approval.id), "user_id": str(user.id)})
        await self.commit()
        logger.info(f"Account {user.id} approved by {admin.id}")
        return approval

    async def reject_account(self, approval_id, admin: User, reason: str) -> AccountApproval:
        reason = (reason or "").strip()
        if not reason:
            raise ApprovalError("A rejection reason is required")
        approval = await get_approval_or_404(self.session, approval_id, lock=True)
        ensure_decidable(approval.status)
        now = utcnow()
        approval.status = AccountStatus.rejected
        approval.reviewed_at = now
        approval.reviewed_by = admin.id
        approval.rejection_reason = reason
        approval.awaiting_response_from = None

        user = await get_user(self.session, approval.user_id)
        user.status = AccountStatus.rejected
        user.rejected_at = now
        user.rejected_by = admin.id
        user.rejection_reason = reason

        self.emit("approval.rejected", {"approval_id": str(approval.id), "user_id": str(user.id), "reason": reason})
        await self.commit()
        logger.info(f"Account {user.id} rejected by {admin.id}")
        return approval

    def can_reapply(self, user: User) -> ReapplyEligibility:
        return reapply_eligibility(user.status, user.rejected_at, utcnow(), settings.REAPPLY_COOLDOWN_DAYS)

    async def reapply(self, user: User, profile: ApplicationProfile) -> AccountApproval:
        """Reopen a rejected request once the cooldown has passed."""
        eligibility = self.can_reapply(user)
        if not eligibility.can_reapply:
            if eligibility.reapply_date:
                raise ApprovalError(f"You can reapply after {eligibility.reapply_date.date().isoformat()}")
            raise ApprovalError("Only rejected accounts can reapply")

        approval = await db_get_approval_by_user(self.session, user.id)
        if approval is None:
            approval = await self.create_request(user, profile)
        else:
            for field in PROFILE_FIELDS:
                value = _clean(getattr(profile, field))
                if value is not None:
                    setattr(approval, field, value)
            if _clean(profile.phone_number):
                approval.phone = _clean(profile.phone_number)
            approval.status = AccountStatus.pending
            approval.submitted_at = utcnow()
            approval.reviewed_at = None
            approval.reviewed_by = None
            approval.rejection_reason = None
            approval.awaiting_response_from = SenderRole.admin
            self.emit("approval.submitted", {"approval_id": str(approval.id), "user_id": str(user.id), "email": user.email})

        user.status = AccountStatus.pending
        user.rejection_reason = None
        await self.commit()
        logger.info(f"Account {user.id} reapplied for membership")
        return approval
