"""
MathDispatch — Event Bus
=========================

What:  Ordered registry of listeners with synchronous publish.
Why:   Editors need to know when the provider is ready ("onInit") without the
       provider knowing anything about editors.
How:   Listeners implement ``Listener.on_event``. ``EventBus.publish`` calls
       them in subscription order over a snapshot of the list, so a listener
       may subscribe or unsubscribe others while an event is being delivered.

Isolation:
    A listener that raises is logged with its traceback and stays
    subscribed; the remaining listeners are still called. One broken
    toolbar plugin must not stop the editor from learning the provider is
    ready.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Mapping, Optional

logger = logging.getLogger(__name__)

EventPayload = Mapping[str, Any]


class Listener(ABC):
    """Capability to receive events from an ``EventBus``."""

    @abstractmethod
    def on_event(self, event_name: str, payload: EventPayload) -> None:
        """Handle one published event. Exceptions are logged by the bus."""
        ...


class CallbackListener(Listener):
    """
    Adapts a plain callable into a ``Listener``.

    With ``event_name`` set, only that event reaches the callback (the
    ``newListener('onInit', fn)`` shape editors already use). Without it the
    callback sees every event and receives ``(event_name, payload)``.
    """

    def __init__(
        self,
        callback: Callable[..., None],
        event_name: Optional[str] = None,
    ):
        self.callback = callback
        self.event_name = event_name

    def on_event(self, event_name: str, payload: EventPayload) -> None:
        if self.event_name is None:
            self.callback(event_name, payload)
        elif event_name == self.event_name:
            self.callback(payload)

    def __repr__(self) -> str:
        return f"CallbackListener({self.callback!r}, event_name={self.event_name!r})"


class EventBus:
    """Listener registry owned by one ``ServiceProvider``."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    @property
    def listeners(self) -> List[Listener]:
        """Copy of the current listeners, in subscription order."""
        return list(self._listeners)

    def subscribe(self, listener: Listener) -> None:
        """Register a listener. Subscribing the same object twice is a no-op."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        """Remove a listener. Unknown listeners are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def publish(self, event_name: str, payload: Optional[EventPayload] = None) -> None:
        """
        Deliver ``event_name`` to every listener, synchronously and in order.

        Args:
            event_name: e.g. "onInit"
            payload:    Event data; an empty dict when omitted
        """
        data = {} if payload is None else payload
        for listener in list(self._listeners):
            try:
                listener.on_event(event_name, data)
            except Exception:
                logger.exception(
                    "Listener %r failed while handling '%s'", listener, event_name
                )
