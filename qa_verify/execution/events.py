"""Lifecycle event callbacks."""

import inspect
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from ..core.logging_config import get_logger
from .models import LifecycleEvent


Callback = Callable[[], Any]


class EventDispatcher:
    """
    Registers and invokes zero-arg callbacks per lifecycle event.

    Callbacks run in registration order. A failing callback is reported and
    the remaining callbacks still run.
    """

    def __init__(self, reporter=None, events: Optional[Mapping[Any, List[Callback]]] = None):
        self.reporter = reporter
        self.logger = get_logger(__name__)
        self._callbacks: Dict[LifecycleEvent, List[Callback]] = {}
        for event, callbacks in (events or {}).items():
            for callback in callbacks:
                self.register(event, callback)

    def register(self, event: Union[LifecycleEvent, str], callback: Callback) -> None:
        """Register ``callback`` for ``event``. String names are converted to LifecycleEvent."""
        event = LifecycleEvent(event)
        if not callable(callback):
            raise TypeError(f"Callback for '{event.value}' is not callable: {callback!r}")
        self._callbacks.setdefault(event, []).append(callback)

    def callbacks(self, event: Union[LifecycleEvent, str]) -> List[Callback]:
        return list(self._callbacks.get(LifecycleEvent(event), []))

    async def dispatch(self, event: Union[LifecycleEvent, str]) -> int:
        """
        Invoke every callback registered for ``event``, awaiting async ones.

        Returns:
            Number of callbacks that raised
        """
        event = LifecycleEvent(event)
        failures = 0
        for callback in self._callbacks.get(event, []):
            try:
                result = callback()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                failures += 1
                name = getattr(callback, "__name__", repr(callback))
                text = f"'{event.value}' callback {name} failed: {type(e).__name__}: {e}"
                self.logger.warning(text, extra={"metadata": {"event": event.value}})
                if self.reporter is not None:
                    await self.reporter.error(text)
        return failures
