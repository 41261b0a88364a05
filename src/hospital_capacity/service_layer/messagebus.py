# pylint: disable=broad-except
"""Message bus for the hospital capacity service."""

from __future__ import annotations
import logging
from typing import List, Dict, Callable, Optional, Type, Union, TYPE_CHECKING

from hospital_capacity.domain.commands import Command, ReportCapacity
from hospital_capacity.domain.events import Event, CapacityUpdated
from hospital_capacity.service_layer import handlers

if TYPE_CHECKING:
    from hospital_capacity.service_layer.metrics import Metrics
    from hospital_capacity.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)

Message = Union[Command, Event]


def handle(
    message: Message,
    uow: AbstractUnitOfWork,
    metrics: Optional[Metrics] = None,
):
    """
    Handle a command and the events it raises, in order.

    Failures propagate to the caller. Events are only collected after the
    command handler has committed, so a failing event handler leaves the
    committed data in place.
    """
    results = []
    queue = [message]

    while queue:
        message = queue.pop(0)

        if isinstance(message, Event):
            handle_event(message, queue, uow, metrics)
        elif isinstance(message, Command):
            cmd_result = handle_command(message, queue, uow, metrics)
            results.append(cmd_result)
        else:
            raise Exception(f"{message} was not an Event or Command")

    return results


def handle_event(
    event: Event,
    queue: List[Message],
    uow: AbstractUnitOfWork,
    metrics: Optional[Metrics],
):
    """Handle event by calling all registered event handlers."""
    for handler in EVENT_HANDLERS[type(event)]:
        try:
            logger.debug(f"handling event {event} with handler {handler}")
            handler(event, uow=uow, metrics=metrics)
            queue.extend(uow.collect_new_events())
        except Exception:
            logger.exception("Exception handling event %s", event)
            raise


def handle_command(
    command: Command,
    queue: List[Message],
    uow: AbstractUnitOfWork,
    metrics: Optional[Metrics],
):
    """Handle command by calling the registered command handler."""
    logger.debug(f"handling command {command}")
    try:
        handler = COMMAND_HANDLERS[type(command)]
        result = handler(command, uow=uow, metrics=metrics)
        queue.extend(uow.collect_new_events())
        return result
    except Exception:
        logger.exception("Exception handling command %s", command)
        raise


EVENT_HANDLERS = {
    CapacityUpdated: [
        handlers.publish_capacity_updated,
    ],
}  # type: Dict[Type[Event], List[Callable]]

COMMAND_HANDLERS = {
    ReportCapacity: handlers.report_capacity,
}  # type: Dict[Type[Command], Callable]
