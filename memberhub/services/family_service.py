from typing import List
from memberhub.db.models.attendee import AgeGroup
from memberhub.db.models.family import FamilyMember
from memberhub.db.models.user import User
from memberhub.db.repositories.family import list_family_members, get_family_member_or_404
from memberhub.domain.family import calculate_age_group, validate_family_member_name
from memberhub.schemas import FamilyMemberCreate, FamilyMemberUpdate
from memberhub.services.base import BaseService


class FamilyService(BaseService):
    """A user's saved household members."""

    async def list_family_members(self, user: User) -> List[FamilyMember]:
        return await list_family_members(self.session, user.id)

    async def create_family_member(self, user: User, payload: FamilyMemberCreate) -> FamilyMember:
        age_group = payload.age_group
        if age_group is None and payload.birth_date is not None:
            age_group = calculate_age_group(payload.birth_date)
        member = FamilyMember(
            user_id=user.id,
            name=validate_family_member_name(payload.name),
            age_group=age_group or AgeGroup.adult,
            is_default_member=payload.is_default_member,
        )
        self.session.add(member)
        await self.commit()
        return member

    async def update_family_member(self, user: User, member_id, payload: FamilyMemberUpdate) -> FamilyMember:
        member = await get_family_member_or_404(self.session, member_id, user.id)
        if payload.name is not None:
            member.name = validate_family_member_name(payload.name)
        if payload.age_group is not None:
            member.age_group = payload.age_group
        elif payload.birth_date is not None:
            member.age_group = calculate_age_group(payload.birth_date)
        if payload.is_default_member is not None:
            member.is_default_member = payload.is_default_member
        await self.commit()
        return member

    async def delete_family_member(self, user: User, member_id) -> None:
        member = await get_family_member_or_404(self.session, member_id, user.id)
        await self.session.delete(member)
        await self.commit()
