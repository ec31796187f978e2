import json
from aio_pika import connect_robust, Message, ExchangeType, DeliveryMode
from memberhub.core.config import settings
from memberhub.core.logging import logger

EXCHANGE_NAME = "memberhub.events"

_connection = None
_channel = None


async def get_rabbit_connection():
    global _connection, _channel
    if _connection and not _connection.is_closed:
        return _connection, _channel
    _connection = await connect_robust(settings.RABBITMQ_URL)
    _channel = await _connection.channel()
    return _connection, _channel


async def publish_event(routing_key: str, payload: dict) -> bool:
    """
    Publish a JSON event to the topic exchange.

    The payload's ``type`` defaults to the routing key. Broker failures are
    logged and reported as False; they never fail the caller's request.
    """
    body = {"type": routing_key, **payload}
    try:
        _, channel = await get_rabbit_connection()
        exchange = await channel.declare_exchange(EXCHANGE_NAME, ExchangeType.TOPIC, durable=True)
        message = Message(
            json.dumps(body, default=str).encode(),
            content_type="application/json",
            delivery_mode=DeliveryMode.PERSISTENT,
        )
        await exchange.publish(message, routing_key=routing_key)
    except Exception as e:
        logger.error(f"Failed to publish {routing_key}: {e}")
        return False
    logger.debug(f"Published {routing_key}")
    return True


async def close_connection():
    global _connection, _channel
    if _connection and not _connection.is_closed:
        await _connection.close()
    _connection = None
    _channel = None
