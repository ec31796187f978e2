"""Account approval rules."""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from memberhub.core.errors import ApprovalError
from memberhub.db.models.approval import SenderRole
from memberhub.db.models.user import AccountStatus
from memberhub.domain.recurrence import as_utc

OPEN_STATUSES = (AccountStatus.pending, AccountStatus.needs_clarification)


@dataclass
class ReapplyEligibility:
    can_reapply: bool
    reapply_date: Optional[datetime] = None


def reapply_eligibility(status: AccountStatus, rejected_at: Optional[datetime], now: datetime, cooldown_days: int) -> ReapplyEligibility:
    """Rejected users may apply again once the cooldown since rejection has passed."""
    if status != AccountStatus.rejected:
        return ReapplyEligibility(False)
    if rejected_at is None:
        return ReapplyEligibility(True)
    reapply_date = as_utc(rejected_at) + timedelta(days=cooldown_days)
    return ReapplyEligibility(as_utc(now) >= reapply_date, reapply_date)


def ensure_decidable(status: AccountStatus) -> None:
    if status not in OPEN_STATUSES:
        raise ApprovalError(f"Approval request is already {status.value}")


def other_side(role: SenderRole) -> SenderRole:
    return SenderRole.user if role == SenderRole.admin else SenderRole.admin


def status_after_message(status: AccountStatus, sender: SenderRole) -> AccountStatus:
    """An admin question on a pending request puts it into clarification."""
    if sender == SenderRole.admin and status == AccountStatus.pending:
        return AccountStatus.needs_clarification
    return status
