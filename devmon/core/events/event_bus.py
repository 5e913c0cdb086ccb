from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from threading import RLock
from typing import Any, TypeVar, cast
from weakref import WeakMethod

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Subscription:
    event_type: type[object]
    handler: Callable[[object], None]


TEvent = TypeVar("TEvent")


class EventBus:
    """Synchronous in-process event bus.

    Publishing happens on the caller's thread: tick events arrive on the sampler
    thread, so Qt consumers must re-dispatch to the GUI thread (see
    ``devmon.ui.signals.MonitorSignals``). A failing handler is logged and
    never reaches the publisher.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._subs: defaultdict[type[object], list[Callable[[object], None]]] = defaultdict(list)

    def subscribe(
        self, event_type: type[TEvent], handler: Callable[[TEvent], None]
    ) -> Subscription:
        def _wrapped(event: object) -> None:
            handler(cast(TEvent, event))

        with self._lock:
            self._subs[event_type].append(_wrapped)
        return Subscription(event_type=event_type, handler=_wrapped)

    def subscribe_weak(
        self, event_type: type[TEvent], handler: Callable[[TEvent], None]
    ) -> Subscription:
        """Subscribe a bound method without keeping its owner alive.

        Meant for Qt objects: once the widget is collected, the subscription drops
        itself on the next publish.
        """

        wm: WeakMethod | None
        try:
            wm = WeakMethod(cast(Any, handler))
        except TypeError:
            wm = None

        if wm is None:
            return self.subscribe(event_type, handler)

        sub: Subscription

        def _wrapped(event: object) -> None:
            alive = wm()
            if alive is None:
                self.unsubscribe(sub)
                return
            alive(cast(TEvent, event))

        sub = Subscription(event_type=event_type, handler=_wrapped)
        with self._lock:
            self._subs[event_type].append(_wrapped)
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            handlers = self._subs.get(subscription.event_type)
            if not handlers:
                return
            try:
                handlers.remove(subscription.handler)
            except ValueError:
                return

    def subscribe_all(
        self, handlers: Mapping[type[Any], Callable[[Any], None]]
    ) -> list[Subscription]:
        """Subscribe one handler per event type; undo with ``unsubscribe_all``."""
        return [self.subscribe(event_type, handler) for event_type, handler in handlers.items()]

    def unsubscribe_all(self, subscriptions: Iterable[Subscription]) -> None:
        for sub in subscriptions:
            self.unsubscribe(sub)

    def publish(self, event: object) -> None:
        with self._lock:
            handlers = list(self._subs.get(type(event), []))
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Event handler failed",
                    extra={
                        "event": type(event).__name__,
                        "device": getattr(event, "device", ""),
                    },
                )

    def handler_count(self, event_type: type[object]) -> int:
        with self._lock:
            return len(self._subs.get(event_type, []))

    def clear(self) -> None:
        with self._lock:
            self._subs.clear()
