"""
Integration tests for membership approval.
Tests the admin review queue, the message thread and reapplying after rejection.
"""
import pytest
from httpx import AsyncClient
from datetime import timedelta

from memberhub.db.session import utcnow


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


async def _my_approval(client, token):
    response = await client.get("/api/v1/approvals/me", headers=_auth(token))
    assert response.status_code == 200
    return response.json()


@pytest.mark.integration
@pytest.mark.asyncio
class TestApprovalReview:
    """Admin decisions on pending requests."""

    async def test_queue_filters_by_status(self, client: AsyncClient, admin_token, pending_member, test_member):
        response = await client.get("/api/v1/approvals/", headers=_auth(admin_token), params={"status": "pending"})

        assert response.status_code == 200
        assert [a["email"] for a in response.json()] == [pending_member.email]

    async def test_approve_unlocks_rsvp(
        self, client: AsyncClient, admin_token, pending_token, open_event, published_events
    ):
        approval = await _my_approval(client, pending_token)

        response = await client.post(f"/api/v1/approvals/{approval['id']}/approve", headers=_auth(admin_token))

        assert response.status_code == 200
        assert response.json()["status"] == "approved"
        assert response.json()["reviewed_at"] is not None
        assert ("approval.approved", {"approval_id": approval["id"], "user_id": approval["user_id"]}) in published_events

        me = await client.get("/api/v1/auth/me", headers=_auth(pending_token))
        assert me.json()["status"] == "approved"
        rsvp = await client.post(f"/api/v1/events/{open_event.id}/attendees/", headers=_auth(pending_token), json={})
        assert rsvp.status_code == 201

    async def test_reject_requires_reason(self, client: AsyncClient, admin_token, pending_token):
        approval = await _my_approval(client, pending_token)

        response = await client.post(
            f"/api/v1/approvals/{approval['id']}/reject",
            headers=_auth(admin_token),
            json={"reason": "   "},
        )

        assert response.status_code == 400

    async def test_cannot_decide_twice(self, client: AsyncClient, admin_token, member_token):
        approval = await _my_approval(client, member_token)

        response = await client.post(f"/api/v1/approvals/{approval['id']}/approve", headers=_auth(admin_token))

        assert response.status_code == 400
        assert "already approved" in response.json()["detail"]

    async def test_member_cannot_view_other_request(self, client: AsyncClient, pending_token, member_token):
        approval = await _my_approval(client, pending_token)

        response = await client.get(f"/api/v1/approvals/{approval['id']}", headers=_auth(member_token))

        assert response.status_code == 403


@pytest.mark.integration
@pytest.mark.asyncio
class TestApprovalMessages:

    async def test_admin_question_requests_clarification(self, client: AsyncClient, admin_token, pending_token):
        """An admin message moves a pending request to needs_clarification and waits on the applicant."""
        approval = await _my_approval(client, pending_token)

        response = await client.post(
            f"/api/v1/approvals/{approval['id']}/messages",
            headers=_auth(admin_token),
            json={"message": "Who referred you?"},
        )

        assert response.status_code == 201
        assert response.json()["sender_role"] == "admin"
        assert response.json()["sender_name"] == "Ada Admin"
        updated = await _my_approval(client, pending_token)
        assert updated["status"] == "needs_clarification"
        assert updated["awaiting_response_from"] == "user"
        assert updated["unread_user"] == 1

    async def test_reply_and_mark_read(self, client: AsyncClient, admin_token, pending_token):
        approval = await _my_approval(client, pending_token)
        thread = f"/api/v1/approvals/{approval['id']}"
        await client.post(f"{thread}/messages", headers=_auth(admin_token), json={"message": "Who referred you?"})
        await client.post(f"{thread}/messages", headers=_auth(pending_token), json={"message": "Mary Member did"})

        read = await client.post(f"{thread}/read", headers=_auth(pending_token))

        assert read.status_code == 200
        assert read.json()["unread_user"] == 0
        assert read.json()["unread_admin"] == 1
        assert read.json()["awaiting_response_from"] == "admin"
        assert read.json()["status"] == "needs_clarification"

        messages = (await client.get(f"{thread}/messages", headers=_auth(admin_token))).json()
        assert [(m["sender_role"], m["read"]) for m in messages] == [("admin", True), ("user", False)]

    async def test_cannot_post_on_other_thread(self, client: AsyncClient, pending_token, member_token):
        approval = await _my_approval(client, pending_token)

        response = await client.post(
            f"/api/v1/approvals/{approval['id']}/messages",
            headers=_auth(member_token),
            json={"message": "Hello"},
        )

        assert response.status_code == 403


@pytest.mark.integration
@pytest.mark.asyncio
class TestReapply:

    async def test_reapply_after_cooldown(self, client: AsyncClient, db_session, admin_token, pending_token, pending_member):
        approval = await _my_approval(client, pending_token)
        rejected = await client.post(
            f"/api/v1/approvals/{approval['id']}/reject",
            headers=_auth(admin_token),
            json={"reason": "Could not verify the referral"},
        )
        assert rejected.json()["rejection_reason"] == "Could not verify the referral"

        eligibility = (await client.get("/api/v1/approvals/me/reapply", headers=_auth(pending_token))).json()
        assert eligibility["can_reapply"] is False
        assert eligibility["reapply_date"] is not None
        too_soon = await client.post("/api/v1/approvals/me/reapply", headers=_auth(pending_token), json={})
        assert too_soon.status_code == 400

        pending_member.rejected_at = utcnow() - timedelta(days=31)
        db_session.add(pending_member)
        await db_session.commit()

        response = await client.post(
            "/api/v1/approvals/me/reapply",
            headers=_auth(pending_token),
            json={"referral_notes": "Met at the spring potluck"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == approval["id"]
        assert data["status"] == "pending"
        assert data["rejection_reason"] is None
        assert data["referral_notes"] == "Met at the spring potluck"

    async def test_approved_member_cannot_reapply(self, client: AsyncClient, member_token):
        eligibility = await client.get("/api/v1/approvals/me/reapply", headers=_auth(member_token))
        response = await client.post("/api/v1/approvals/me/reapply", headers=_auth(member_token), json={})

        assert eligibility.json() == {"can_reapply": False, "reapply_date": None}
        assert response.status_code == 400
