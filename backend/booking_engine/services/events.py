"""
backend/booking_engine/services/events.py

Event emitter: pushes booking events to a Redis queue for the notification
workers (confirmation email/SMS, merchant dashboards).

Queue:
- events:p2p: instant delivery (booking notifications to specific users)

Emission is fire-and-forget: a failed push is logged and never surfaces
as a booking failure.
"""

import json
import time
import logging

from redis import Redis

from ..redis_client import redis_client

logger = logging.getLogger(__name__)

P2P_QUEUE = "events:p2p"


def emit_event(event_type: str, payload: dict, redis: Redis | None = None) -> bool:
    """
    Emit a p2p event (instant delivery).

    Returns:
        True if the event was queued.
    """
    client = redis if redis is not None else redis_client
    if client is None:
        logger.debug(f"Event {event_type} dropped: Redis not configured")
        return False

    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    try:
        client.rpush(P2P_QUEUE, json.dumps(event, default=str))
        logger.info(f"Event emitted: {event_type} → {P2P_QUEUE}")
        return True
    except Exception as e:
        logger.error(f"Failed to emit event {event_type}: {e}")
        return False
