from typing import List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from memberhub.events import publisher


class BaseService:
    """
    Holds the session and an outbox of events to publish.

    Events are queued while the transaction is open and only published once
    it has committed, so subscribers never hear about rolled-back changes.
    Services sharing one transaction share one outbox.
    """

    def __init__(self, session: AsyncSession, outbox: Optional[List[Tuple[str, dict]]] = None):
        self.session = session
        self.outbox = outbox if outbox is not None else []

    def emit(self, routing_key: str, payload: dict) -> None:
        self.outbox.append((routing_key, payload))

    async def commit(self) -> None:
        await self.session.commit()
        pending, self.outbox[:] = list(self.outbox), []
        for routing_key, payload in pending:
            await publisher.publish_event(routing_key, payload)
