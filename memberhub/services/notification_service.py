import uuid
from typing import Iterable, List
from memberhub.db.models.notification import Notification
from memberhub.db.repositories.notifications import (
    create_notification,
    list_notifications,
    get_notification_or_404,
    mark_all_read,
)
from memberhub.services.base import BaseService
from memberhub.websocket.manager import manager


class NotificationService(BaseService):

    async def notify(self, user_ids: Iterable, type: str, title: str, message: str = None, data: dict = None) -> List[Notification]:
        """Store a notification per recipient, then push each one to open sockets."""
        created = []
        for user_id in dict.fromkeys(uuid.UUID(str(u)) for u in user_ids if u):
            created.append(await create_notification(self.session, user_id, type, title, message, data))
        await self.commit()
        for n in created:
            await manager.send_personal_message(n.user_id, {
                "id": str(n.id),
                "type": n.type,
                "title": n.title,
                "message": n.message,
                "data": n.data,
            })
        return created

    async def list_notifications(self, user_id, unread_only: bool = False) -> List[Notification]:
        return await list_notifications(self.session, user_id, unread_only)

    async def mark_read(self, notification_id, user_id) -> Notification:
        n = await get_notification_or_404(self.session, notification_id, user_id)
        n.read = True
        await self.commit()
        return n

    async def mark_all_read(self, user_id) -> int:
        count = await mark_all_read(self.session, user_id)
        await self.commit()
        return count
