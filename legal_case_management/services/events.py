"""In-process publish/subscribe for master data change events."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

MASTER_DATA_UPDATED = "master_data.updated"

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any]], None]


class EventBus:
    def __init__(self):
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, event_name: str, handler: Handler) -> None:
        self._handlers[event_name].append(handler)

    def publish(self, event_name: str, payload: dict[str, Any]) -> int:
        """Deliver payload to every handler. Returns the number of handlers that succeeded."""
        delivered = 0
        for handler in list(self._handlers.get(event_name, [])):
            try:
                handler(payload)
                delivered += 1
            except Exception as e:
                logger.error(f"Handler for {event_name} failed: {e}", exc_info=True)
        return delivered


class MasterDataListener:
    """Logs every master data change and keeps a short per-entity history."""

    def __init__(self, bus: EventBus, history_size: int = 50):
        self.history_size = history_size
        self.history: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.logger = logging.getLogger(__name__)
        bus.subscribe(MASTER_DATA_UPDATED, self.handle)

    def handle(self, event: dict[str, Any]) -> None:
        entity = event.get("entity", "unknown")
        action = event.get("action", "unknown")
        data = event.get("data") or {}
        self.logger.info(f"Master data {action}: {entity} {data.get('id', '')}".rstrip())

        handler = getattr(self, f"_on_{entity}", None)
        if handler is not None:
            handler(action, data)

        entries = self.history[entity]
        entries.append({"action": action, "id": data.get("id")})
        del entries[: -self.history_size]

    def _on_state(self, action: str, data: dict[str, Any]) -> None:
        if action == "delete":
            self.logger.info(f"State {data.get('state_code')} removed; notices keep their state_id")

    def _on_template(self, action: str, data: dict[str, Any]) -> None:
        if action in ("create", "update") and not data.get("is_approved"):
            self.logger.info(f"Template {data.get('template_id')} awaiting approval")
