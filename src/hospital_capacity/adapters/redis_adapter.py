"""Redis stream adapter for publishing domain events."""

import abc
import json
import logging
import uuid
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Dict

import redis

import config
from hospital_capacity.domain.events import Event

logger = logging.getLogger(__name__)

r = redis.Redis(**config.get_redis_host_and_port(), decode_responses=True)


class PublishFailure(Exception):
    """Event could not be handed to the stream. Raised after commit: the data is already stored."""


def _serialize_event(event: Event) -> Dict[str, Any]:
    """Event as a JSON-ready dict, datetimes as ISO strings."""
    event_dict = asdict(event)

    for key, value in event_dict.items():
        if isinstance(value, datetime):
            event_dict[key] = value.isoformat()

    return event_dict


def build_envelope(subject: str, event: Event) -> Dict[str, Any]:
    return {
        "event_name": subject,
        "event_id": str(uuid.uuid4()),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "payload": _serialize_event(event),
    }


class AbstractEventPublisher(abc.ABC):
    @abc.abstractmethod
    def publish(self, subject: str, event: Event) -> str:
        """Publish event under subject, return the generated event_id."""
        raise NotImplementedError

    def ping(self) -> bool:
        return True


class RedisStreamPublisher(AbstractEventPublisher):
    """Appends event envelopes to the Redis stream named after the subject."""

    def __init__(self, client=None):
        self.client = client if client is not None else r

    def publish(self, subject: str, event: Event) -> str:
        envelope = build_envelope(subject, event)
        logger.info("publishing: subject=%s, event_id=%s", subject, envelope["event_id"])
        try:
            self.client.xadd(subject, {"data": json.dumps(envelope)})
        except redis.RedisError as e:
            logger.error(f"Failed to publish {subject} event {envelope['event_id']}: {e}")
            raise PublishFailure(f"Could not publish {subject}: {e}") from e
        return envelope["event_id"]

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False
