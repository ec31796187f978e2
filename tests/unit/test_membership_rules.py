"""
Unit tests for family member details and account approval rules.
"""
import pytest
from datetime import date, datetime, timedelta, timezone

from memberhub.core.errors import ApprovalError, DomainError
from memberhub.db.models.approval import SenderRole
from memberhub.db.models.attendee import AgeGroup
from memberhub.db.models.user import AccountStatus
from memberhub.domain.approval import (
    ensure_decidable,
    other_side,
    reapply_eligibility,
    status_after_message,
)
from memberhub.domain.family import calculate_age_group, validate_family_member_name

NOW = datetime(2026, 6, 1, tzinfo=timezone.utc)


@pytest.mark.unit
class TestFamilyMembers:
    """Family member names and age groups."""

    def test_name_is_trimmed(self):
        assert validate_family_member_name("  Sam  ") == "Sam"

    @pytest.mark.parametrize("name,message", [
        ("", "required"),
        ("   ", "required"),
        (None, "required"),
        ("A", "at least 2"),
        ("x" * 51, "at most 50"),
    ])
    def test_invalid_names(self, name, message):
        with pytest.raises(DomainError, match=message):
            validate_family_member_name(name)

    @pytest.mark.parametrize("born,expected", [
        (date(2025, 1, 1), AgeGroup.infant),
        (date(2023, 6, 2), AgeGroup.infant),  # third birthday is tomorrow
        (date(2021, 1, 1), AgeGroup.toddler),
        (date(2017, 1, 1), AgeGroup.child),
        (date(2010, 1, 1), AgeGroup.youth),
    ])
    def test_age_group_from_birth_date(self, born, expected):
        assert calculate_age_group(born, today=date(2026, 6, 1)) == expected


@pytest.mark.unit
class TestApprovalRules:
    """Review transitions and reapplication cooldown."""

    def test_reapply_after_cooldown(self):
        result = reapply_eligibility(AccountStatus.rejected, NOW - timedelta(days=31), NOW, 30)

        assert result.can_reapply is True
        assert result.reapply_date == NOW - timedelta(days=1)

    def test_reapply_inside_cooldown(self):
        result = reapply_eligibility(AccountStatus.rejected, NOW - timedelta(days=3), NOW, 30)

        assert result.can_reapply is False
        assert result.reapply_date == NOW + timedelta(days=27)

    def test_only_rejected_can_reapply(self):
        assert reapply_eligibility(AccountStatus.pending, None, NOW, 30).can_reapply is False
        assert reapply_eligibility(AccountStatus.approved, None, NOW, 30).can_reapply is False

    def test_open_requests_are_decidable(self):
        ensure_decidable(AccountStatus.pending)
        ensure_decidable(AccountStatus.needs_clarification)

    def test_closed_requests_are_not(self):
        with pytest.raises(ApprovalError, match="already approved"):
            ensure_decidable(AccountStatus.approved)

    def test_admin_question_needs_clarification(self):
        assert status_after_message(AccountStatus.pending, SenderRole.admin) == AccountStatus.needs_clarification
        assert status_after_message(AccountStatus.pending, SenderRole.user) == AccountStatus.pending
        assert status_after_message(AccountStatus.needs_clarification, SenderRole.user) == AccountStatus.needs_clarification

    def test_other_side(self):
        assert other_side(SenderRole.admin) == SenderRole.user
        assert other_side(SenderRole.user) == SenderRole.admin
