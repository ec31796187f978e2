import asyncio, json, uuid
from aio_pika import connect_robust, ExchangeType
from sqlalchemy import select
from memberhub.core.config import settings
from memberhub.core.logging import logger
from memberhub.db.session import AsyncSessionLocal
from memberhub.db.models import Event
from memberhub.db.repositories.users import list_admin_ids
from memberhub.events.publisher import EXCHANGE_NAME
from memberhub.services.notification_service import NotificationService

QUEUE_NAME = "memberhub.notifications"
BINDINGS = ("rsvp.*", "waitlist.*", "approval.*", "payment.*")


async def _event_title(session, event_id) -> str:
    ev = (await session.execute(select(Event).where(Event.id == uuid.UUID(str(event_id))))).scalars().first()
    return ev.title if ev else "an event"


async def _rsvp_created(session, data):
    ev = (await session.execute(select(Event).where(Event.id == uuid.UUID(data["event_id"])))).scalars().first()
    if not ev:
        return []
    status = data.get("rsvp_status", "going")
    return [
        ([ev.created_by], "New RSVP", f"A member responded {status} to {ev.title}"),
        ([data["user_id"]], "RSVP confirmed", f"Your RSVP for {ev.title} is {status}"),
    ]


async def _waitlist_promoted(session, data):
    title = data.get("event_title") or await _event_title(session, data["event_id"])
    return [([data["user_id"]], "You're off the waitlist", f"{data.get('name', 'Your attendee')} is now going to {title}")]


async def _waitlist_joined(session, data):
    title = await _event_title(session, data["event_id"])
    return [([data["user_id"]], "Added to waitlist", f"You are number {data.get('position')} on the waitlist for {title}")]


async def _approval_submitted(session, data):
    return [(await list_admin_ids(session), "New membership request", f"{data.get('email')} is waiting for review")]


async def _approval_approved(session, data):
    return [([data["user_id"]], "Account approved", "Welcome! Your membership has been approved.")]


async def _approval_rejected(session, data):
    return [([data["user_id"]], "Account not approved", data.get("reason") or "Your membership request was not approved.")]


async def _approval_message(session, data):
    if data.get("sender_role") == "admin":
        return [([data["user_id"]], "New message from an administrator", "You have a new message about your membership request")]
    return [(await list_admin_ids(session), "New applicant message", f"{data.get('sender_name') or 'An applicant'} replied to their request")]


async def _payment_updated(session, data):
    title = await _event_title(session, data["event_id"])
    return [([data["user_id"]], "Payment update", f"Your payment for {title} is {data.get('status')}")]


HANDLERS = {
    "rsvp.created": _rsvp_created,
    "waitlist.joined": _waitlist_joined,
    "waitlist.promoted": _waitlist_promoted,
    "approval.submitted": _approval_submitted,
    "approval.approved": _approval_approved,
    "approval.rejected": _approval_rejected,
    "approval.message": _approval_message,
    "payment.updated": _payment_updated,
}


async def handle_message(body: bytes, session_factory=AsyncSessionLocal) -> int:
    """
    Turn one broker message into stored, pushed notifications.

    Returns the number of notifications created; unknown types are ignored.
    """
    data = json.loads(body.decode())
    typ = data.get("type")
    handler = HANDLERS.get(typ)
    if handler is None:
        logger.debug(f"No notification handler for {typ}")
        return 0

    created = 0
    async with session_factory() as session:
        service = NotificationService(session)
        for recipients, title, message in await handler(session, data):
            notes = await service.notify(recipients, typ, title, message, data)
            created += len(notes)
    return created


async def run_worker():
    max_retries = 10
    delay = 5  # seconds
    for attempt in range(1, max_retries + 1):
        try:
            connection = await connect_robust(settings.RABBITMQ_URL)
            logger.info("Successfully connected to RabbitMQ")
            break
        except Exception as e:
            logger.error(f"RabbitMQ connection failed (attempt {attempt}/{max_retries}): {e}")
            if attempt == max_retries:
                raise
            await asyncio.sleep(delay)
    channel = await connection.channel()
    exchange = await channel.declare_exchange(EXCHANGE_NAME, ExchangeType.TOPIC, durable=True)
    queue = await channel.declare_queue(QUEUE_NAME, durable=True)
    for routing_key in BINDINGS:
        await queue.bind(exchange, routing_key=routing_key)
    async with queue.iterator() as queue_iter:
        async for message in queue_iter:
            async with message.process():
                try:
                    await handle_message(message.body)
                except Exception as e:
                    logger.opt(exception=e).error(f"Error handling message {message.routing_key}: {e}")


if __name__ == "__main__":
    asyncio.run(run_worker())
