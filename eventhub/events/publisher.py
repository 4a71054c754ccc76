"""
Notification signals.

State changes that someone should hear about (organizer reviewed, event reviewed,
registration created, organization created) are published to a topic exchange.
Delivery (email and so on) belongs to whichever consumer binds to the exchange.
"""
import json
from typing import Optional

from aio_pika import connect_robust, Message, ExchangeType
from aio_pika.abc import AbstractRobustChannel, AbstractRobustConnection

from eventhub.core.config import settings
from eventhub.core.logging import logger

_connection: Optional[AbstractRobustConnection] = None
_channel: Optional[AbstractRobustChannel] = None


async def get_rabbit_channel() -> AbstractRobustChannel:
    global _connection, _channel
    if _connection and not _connection.is_closed and _channel:
        return _channel
    _connection = await connect_robust(settings.RABBITMQ_URL, timeout=settings.DB_TIMEOUT_SECONDS)
    _channel = await _connection.channel()
    return _channel


async def publish_event(routing_key: str, payload: dict) -> bool:
    """
    Publish a notification signal.

    The state change it describes has already been committed, so a broker failure is
    logged and reported as False instead of being raised.
    """
    try:
        channel = await get_rabbit_channel()
        exchange = await channel.declare_exchange(
            settings.NOTIFICATIONS_EXCHANGE, ExchangeType.TOPIC, durable=True
        )
        body = json.dumps({"type": routing_key, **payload}, default=str).encode()
        await exchange.publish(Message(body, content_type="application/json"), routing_key=routing_key)
    except Exception as e:
        logger.error(f"Failed to publish {routing_key}: {e}")
        return False
    logger.debug(f"Published {routing_key}")
    return True


async def close():
    global _connection, _channel
    if _connection and not _connection.is_closed:
        await _connection.close()
    _connection, _channel = None, None
