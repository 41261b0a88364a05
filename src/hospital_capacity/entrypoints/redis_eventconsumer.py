"""Redis stream consumer - listens to hospital.capacity.reported events."""

import json
import logging
import redis
from sqlalchemy import create_engine

import config
from hospital_capacity.service_layer import messagebus
from hospital_capacity.service_layer.metrics import Metrics
from hospital_capacity.service_layer.unit_of_work import SqlAlchemyUnitOfWork
from hospital_capacity.entrypoints import schemas
from hospital_capacity.adapters import orm

# Configure logging
logging.basicConfig(level=config.get_log_level())
logger = logging.getLogger(__name__)

r = redis.Redis(**config.get_redis_host_and_port(), decode_responses=True)
STREAM = config.get_stream_config()

ACK = "ack"
TERM = "term"
NAK = "nak"


def main():
    """Main entry point for the Redis stream consumer."""
    if not config.is_consumer_enabled():
        logger.info("Stream consumer disabled.")
        return

    logger.info("Hospital capacity stream consumer starting")

    engine = create_engine(config.get_postgres_uri())
    orm.metadata.create_all(engine)
    orm.start_mappers()
    logger.info("✓ Database tables created and ORM mappers initialized")

    ensure_consumer_group(r)
    metrics = Metrics()

    logger.info(
        f"Consuming '{STREAM['reported']}' as {STREAM['consumer']} in group '{STREAM['group']}', waiting for messages..."
    )

    while True:
        reclaim_pending(r, metrics)
        response = r.xreadgroup(
            STREAM["group"],
            STREAM["consumer"],
            {STREAM["reported"]: ">"},
            count=1,
            block=STREAM["block_ms"],
        )
        for _stream, messages in response or []:
            for message_id, fields in messages:
                handle_capacity_reported(r, message_id, fields, metrics)


def ensure_consumer_group(client):
    """Create the durable consumer group (and the stream) if missing."""
    try:
        client.xgroup_create(STREAM["reported"], STREAM["group"], id="0", mkstream=True)
        logger.info(f"Created consumer group {STREAM['group']}")
    except redis.ResponseError as e:
        if "BUSYGROUP" not in str(e):
            raise


def handle_capacity_reported(client, message_id, fields, metrics=None):
    """
    Handle one hospital.capacity.reported message.

    Outcomes:
    - ack: the report was stored and the event publish attempted successfully
    - term: the message can never succeed (bad JSON, invalid report); acked
      without processing so it is not redelivered
    - nak: processing failed; the message stays pending and is reclaimed
      later by reclaim_pending

    Args:
        client: Redis client
        message_id: Stream entry ID
        fields: Stream entry fields, the envelope JSON under "data"

    Returns:
        One of ACK, TERM, NAK
    """
    logger.info("Received message %s", message_id)
    if metrics:
        metrics.increment("updates_received")

    try:
        data = json.loads(fields["data"])
        payload = (data.get("payload") or data) if isinstance(data, dict) else data
        cmd = schemas.parse_report(payload, default_source=schemas.STREAM_SOURCE)
    except (KeyError, TypeError, json.JSONDecodeError) as e:
        logger.warning(f"Dropping unreadable message {message_id}: {e}")
        return terminate(client, message_id, metrics)
    except schemas.InvalidReport as e:
        logger.warning(f"Dropping invalid report {message_id} - Schema Validation Failed: {e.errors}")
        return terminate(client, message_id, metrics)

    if metrics:
        metrics.increment("updates_validated")

    try:
        uow = SqlAlchemyUnitOfWork()
        messagebus.handle(cmd, uow, metrics)
    except Exception as e:
        logger.error(f"Error processing message {message_id} for hospital {cmd.hospital_id}: {e}", exc_info=True)
        return NAK

    client.xack(STREAM["reported"], STREAM["group"], message_id)
    logger.info(f"Successfully processed message {message_id} for hospital {cmd.hospital_id}")
    return ACK


def terminate(client, message_id, metrics=None):
    """Poison message: acknowledge without processing, never retried."""
    if metrics:
        metrics.increment("dropped_invalid")
    client.xack(STREAM["reported"], STREAM["group"], message_id)
    return TERM


def reclaim_pending(client, metrics=None, batch_size=10):
    """
    Retry messages left pending by a failed attempt (or a crashed consumer).

    Entries idle longer than the reclaim threshold are claimed and handled
    again. An entry already delivered max_deliveries times is moved to the
    dead-letter stream and acknowledged instead.

    Returns:
        List of (message_id, outcome) for every entry looked at
    """
    outcomes = []
    pending = client.xpending_range(
        STREAM["reported"],
        STREAM["group"],
        min="-",
        max="+",
        count=batch_size,
        idle=STREAM["reclaim_idle_ms"],
    )

    for entry in pending:
        message_id = entry["message_id"]
        if entry["times_delivered"] >= STREAM["max_deliveries"]:
            dead_letter(client, message_id, entry["times_delivered"])
            outcomes.append((message_id, "dead-letter"))
            continue

        claimed = client.xclaim(
            STREAM["reported"],
            STREAM["group"],
            STREAM["consumer"],
            min_idle_time=STREAM["reclaim_idle_ms"],
            message_ids=[message_id],
        )
        for claimed_id, fields in claimed:
            if fields is None:
                # Trimmed from the stream, nothing left to retry
                continue
            logger.info(f"Retrying message {claimed_id} (delivered {entry['times_delivered']} times)")
            outcomes.append((claimed_id, handle_capacity_reported(client, claimed_id, fields, metrics)))

    return outcomes


def dead_letter(client, message_id, times_delivered):
    entries = client.xrange(STREAM["reported"], min=message_id, max=message_id)
    fields = dict(entries[0][1]) if entries else {}
    fields.update(original_id=message_id, times_delivered=str(times_delivered))

    client.xadd(STREAM["dead_letter"], fields)
    client.xack(STREAM["reported"], STREAM["group"], message_id)
    logger.error(
        f"Moved message {message_id} to {STREAM['dead_letter']} after {times_delivered} deliveries"
    )


if __name__ == "__main__":
    main()
