import json
import logging

from app.core.celery_config import celery_app
from app.core.redis_config import get_redis_client
from app.services.promotion import PromotionNotice

logger = logging.getLogger(__name__)

WAITLIST_TO_PARTICIPANT = "waitlist_to_participant"


def notification_channel(user_id: int) -> str:
    return f"notifications:{user_id}"


@celery_app.task(bind=True)
def notify_waitlist_promotion_task(self, event_id: int, user_id: int, event_title: str):
    """Publish a promotion notice for the socket layer to push to the user."""
    payload = {
        "type": WAITLIST_TO_PARTICIPANT,
        "message": f'A spot opened up: you are now playing in "{event_title}".',
        "data": {"event_id": event_id, "user_id": user_id, "event_title": event_title},
    }
    client = get_redis_client()
    receivers = client.publish(notification_channel(user_id), json.dumps(payload))
    logger.info("Published promotion notice for user %s on event %s (%s receivers)", user_id, event_id, receivers)
    return receivers


def enqueue_promotion_notice(notice: PromotionNotice) -> None:
    """Default ledger notifier: hand the notice to the worker queue."""
    notify_waitlist_promotion_task.delay(notice.event_id, notice.user_id, notice.event_title)
