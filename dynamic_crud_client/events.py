"""In-memory event bus for out-of-band notifications (API errors, usage limits, dead sessions)."""

from typing import Any, Callable, Dict, List, Union

from .constants import EventName
from .utils.logger import get_logger

Handler = Callable[[Any], None]


def _event_key(name: Union[str, EventName]) -> str:
    return name.value if isinstance(name, EventName) else name


class EventBus:
    def __init__(self) -> None:
        self._subs: Dict[str, List[Handler]] = {}
        self.logger = get_logger()

    def subscribe(self, name: Union[str, EventName], handler: Handler) -> Callable[[], bool]:
        """Register a handler; returns a callable that unsubscribes it."""
        key = _event_key(name)
        self._subs.setdefault(key, []).append(handler)
        return lambda: self.unsubscribe(key, handler)

    def unsubscribe(self, name: Union[str, EventName], handler: Handler) -> bool:
        key = _event_key(name)
        handlers = self._subs.get(key)
        if not handlers:
            return False
        try:
            handlers.remove(handler)
            if not handlers:
                del self._subs[key]
            return True
        except ValueError:
            return False

    def publish(self, name: Union[str, EventName], payload: Any) -> None:
        # Snapshot so handlers may unsubscribe themselves while being called
        for handler in list(self._subs.get(_event_key(name), [])):
            try:
                handler(payload)
            except Exception as e:
                self.logger.warning(
                    "Event handler failed",
                    extra={"event": _event_key(name), "error": str(e)},
                )

    def clear(self) -> None:
        self._subs.clear()
