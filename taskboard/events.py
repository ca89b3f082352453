"""
Change notifications from the task store.

TaskStore is the only writer of the task list. Anyone else (the board
controller, the web layer) subscribes here and receives snapshots.

Event types:
    tasks_changed  snapshot=tuple[Task, ...]   after every persisted mutation
    task_created   task=Task
    task_updated   task=Task, previous=Task
    task_deleted   task=Task
"""
import logging
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

TASKS_CHANGED = "tasks_changed"
TASK_CREATED = "task_created"
TASK_UPDATED = "task_updated"
TASK_DELETED = "task_deleted"


class BoardEvents:
    """Routes store changes to subscribers."""

    def __init__(self):
        self.subscribers: Dict[str, List[Callable]] = {}  # event_type -> callbacks

    def subscribe(self, event_type: str, callback: Callable) -> None:
        """Register a callback for an event type."""
        self.subscribers.setdefault(event_type, []).append(callback)

    def unsubscribe(self, event_type: str, callback: Callable) -> None:
        callbacks = self.subscribers.get(event_type, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def emit(self, event_type: str, **kwargs) -> None:
        """Emit an event to all subscribers; a failing callback does not stop the rest."""
        for callback in list(self.subscribers.get(event_type, [])):
            try:
                callback(**kwargs)
            except Exception:
                logger.exception(f"Error in {event_type} callback {callback!r}")
