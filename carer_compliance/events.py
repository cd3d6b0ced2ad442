"""
In-process publish/subscribe channel for compliance data changes.

Dashboards and listings subscribe here instead of polling; the repository
publishes after every mutation.
"""

import logging
from collections import defaultdict
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

WILDCARD = "*"


class EventType(StrEnum):
    CARER_SAVED = "carer.saved"
    CARER_DELETED = "carer.deleted"
    DOCUMENT_SAVED = "document.saved"
    DOCUMENT_DELETED = "document.deleted"
    CARER_STATUS_CHANGED = "carer.status_changed"
    AGENCY_CLEARED = "agency.cleared"


class ComplianceEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: EventType
    agency_id: str
    entity_id: str
    payload: dict[str, Any] = Field(default_factory=dict)


Handler = Callable[[ComplianceEvent], None]


class EventBus:
    def __init__(self) -> None:
        self._handlers: defaultdict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, topic: EventType | str, handler: Handler) -> Callable[[], None]:
        """
        Register `handler` for `topic` (or every topic with "*").
        Returns a callable that removes the subscription.
        """
        key = str(topic)
        self._handlers[key].append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(key, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def publish(self, event: ComplianceEvent) -> int:
        """
        Deliver `event` to its topic's handlers, then wildcard handlers.
        Returns the number of handlers that completed without raising.
        """
        delivered = 0
        handlers = [*self._handlers.get(str(event.type), []), *self._handlers.get(WILDCARD, [])]
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "event handler %r failed for %s (%s)",
                    handler,
                    event.type,
                    event.entity_id,
                )
                continue
            delivered += 1
        return delivered

    def subscriber_count(self, topic: EventType | str) -> int:
        return len(self._handlers.get(str(topic), []))
