# src/qm_order/infrastructure/change_feed.py
"""RedisChangeFeed — realtime order notifications over Redis pub/sub.

Every change is published on two channels:
    <prefix>:<merchant_public_id>   merchant dashboards and order history
    <prefix>:order:<order_id>       a customer's single pending order

Redis pub/sub preserves publish order per channel and drops messages for
disconnected subscribers; views reconcile through a fresh load().
"""
import logging
from collections.abc import AsyncIterator

import redis.asyncio as aioredis
from pydantic import ValidationError

from config.settings import settings
from src.qm_common.enums import ChangeEventType
from src.qm_common.redis_client import get_redis
from src.qm_order.domain.backend import ChangeFeedProtocol, OrderChange, OrderFilter
from src.qm_order.domain.models import Order
from src.qm_order.domain.transformer import order_to_record

logger = logging.getLogger(__name__)


class RedisChangeFeed:
    def __init__(self, redis: aioredis.Redis, prefix: str = settings.ORDER_CHANNEL_PREFIX) -> None:
        self._redis = redis
        self._prefix = prefix

    def merchant_channel(self, merchant_public_id: str) -> str:
        return f"{self._prefix}:{merchant_public_id}"

    def order_channel(self, order_id: str) -> str:
        return f"{self._prefix}:order:{order_id}"

    def channel_for(self, flt: OrderFilter) -> str:
        if flt.order_id is not None:
            return self.order_channel(flt.order_id)
        return self.merchant_channel(flt.merchant_public_id)

    async def publish(self, change: OrderChange) -> None:
        payload = change.model_dump_json()
        record = change.record
        if "merchant_public_id" in record:
            await self._redis.publish(self.merchant_channel(record["merchant_public_id"]), payload)
        await self._redis.publish(self.order_channel(change.order_id), payload)

    async def subscribe(self, flt: OrderFilter) -> AsyncIterator[OrderChange]:
        channel = self.channel_for(flt)
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(channel)
        logger.debug("Subscribed to %s", channel)
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    change = OrderChange.model_validate_json(message["data"])
                except ValidationError:
                    logger.warning("Dropping malformed change on %s: %r", channel, message["data"])
                    continue
                if flt.matches(change.record):
                    yield change
        finally:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()
            logger.debug("Unsubscribed from %s", channel)


async def get_change_feed() -> RedisChangeFeed:
    """FastAPI dependency: change feed bound to the shared Redis pool."""
    return RedisChangeFeed(await get_redis())


async def publish_change(
    feed: ChangeFeedProtocol | None, event: ChangeEventType, order: Order
) -> None:
    """Publish a committed row; failures are logged, not raised.

    The row is already committed, so subscribers that miss it reconcile on
    their next load().
    """
    if feed is None:
        return
    try:
        await feed.publish(OrderChange(event=event, record=order_to_record(order)))
    except Exception:
        logger.warning(
            "Change feed publish failed: event=%s order=%s", event.value, order.id,
            exc_info=True,
        )
        return
    logger.debug("Published %s for order %s", event.value, order.id)
