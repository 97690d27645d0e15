"""Event hooks for deploy progress."""
import inspect
import logging
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

PHASE = "phase"
FILE_START = "file_start"
FILE_COMPLETE = "file_complete"
FILE_FAIL = "file_fail"
INVALIDATED = "invalidated"


class DeployEvents:
    """
    Minimal async event emitter.

    Listener failures are logged and never abort a deploy.
    """

    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = {}

    def on(self, event_name: str, callback: Callable):
        """Subscribe to an event."""
        listeners = self._listeners.setdefault(event_name, [])
        if callback not in listeners:
            listeners.append(callback)

    def off(self, event_name: str, callback: Callable):
        """Unsubscribe from an event."""
        if callback in self._listeners.get(event_name, []):
            self._listeners[event_name].remove(callback)

    async def emit(self, event_name: str, *args, **kwargs):
        """Call every listener of ``event_name`` in subscription order."""
        for callback in list(self._listeners.get(event_name, [])):
            try:
                result = callback(*args, **kwargs)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Error in event listener for {event_name}: {e}")
