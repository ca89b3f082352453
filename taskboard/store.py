"""
Task list owner: load, mutate, persist.

The list is written back to storage after every mutation and a
tasks_changed event is emitted while the store lock is still held, so
subscribers see changes in the order they were made. Readers only ever
get tuple snapshots.
"""
import json
import logging
import threading
import time
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from .events import BoardEvents, TASKS_CHANGED, TASK_CREATED, TASK_UPDATED, TASK_DELETED
from .schema import Task, TaskId, TaskStatus, TaskPriority, ValidationError, same_id
from .sources import TaskSource, StorageSource, load_first, STORAGE_KEY
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)


class IdGenerator:
    """Millisecond-timestamp ids that never repeat and never go backwards."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._last = 0

    def next_id(self, taken: Iterable[TaskId] = ()) -> int:
        taken_keys: Set[str] = {str(t) for t in taken}
        candidate = max(int(self._clock() * 1000), self._last + 1)
        while str(candidate) in taken_keys:
            candidate += 1
        self._last = candidate
        return candidate


class TaskStore:
    """Single writer of the task list."""

    def __init__(
        self,
        storage: KeyValueStorage,
        sources: Optional[List[TaskSource]] = None,
        key: str = STORAGE_KEY,
        events: Optional[BoardEvents] = None,
        id_generator: Optional[IdGenerator] = None,
    ):
        self.storage = storage
        self.key = key
        # Storage always comes first; fallbacks follow in the given order
        self.sources: List[TaskSource] = [StorageSource(storage, key)] + list(sources or [])
        self.events = events or BoardEvents()
        self.ids = id_generator or IdGenerator()
        self._tasks: List[Task] = []
        self._lock = threading.RLock()

    # ── Reads ────────────────────────────────────────────────────────────────

    @property
    def tasks(self) -> Tuple[Task, ...]:
        with self._lock:
            return tuple(self._tasks)

    def find(self, task_id: TaskId) -> Optional[Task]:
        with self._lock:
            index = self._index_of(task_id)
            return self._tasks[index] if index is not None else None

    def counts(self) -> Dict[TaskStatus, int]:
        counts = {status: 0 for status in TaskStatus}
        for task in self.tasks:
            counts[task.status] += 1
        return counts

    def _index_of(self, task_id: TaskId) -> Optional[int]:
        for i, task in enumerate(self._tasks):
            if same_id(task.id, task_id):
                return i
        return None

    # ── Load / save ──────────────────────────────────────────────────────────

    def load(self) -> Tuple[Task, ...]:
        """Materialize the list from the first source that has data."""
        with self._lock:
            tasks, source = load_first(self.sources)
            self._tasks = self._dedupe(tasks)
            if not isinstance(source, StorageSource):
                # Fallback data becomes the stored list straight away
                self.save()
            snapshot = tuple(self._tasks)
            self.events.emit(TASKS_CHANGED, snapshot=snapshot)
        return snapshot

    def save(self) -> None:
        """Overwrite the stored list with the current one."""
        with self._lock:
            payload = json.dumps([t.to_dict() for t in self._tasks])
            self.storage.set_item(self.key, payload)

    def _dedupe(self, tasks: List[Task]) -> List[Task]:
        """Give fresh ids to tasks whose id is missing or already used."""
        seen: Set[str] = set()
        result = []
        for task in tasks:
            if task.id is None or str(task.id) in seen:
                new_id = self.ids.next_id(seen | {str(t.id) for t in tasks})
                logger.warning(f"Task {task.title!r} has duplicate or missing id {task.id!r}, re-keyed as {new_id}")
                task = replace(task, id=new_id)
            seen.add(str(task.id))
            result.append(task)
        return result

    # ── Mutations ────────────────────────────────────────────────────────────

    def create(
        self,
        title: str,
        description: str = "",
        status="todo",
        priority=None,
    ) -> Task:
        """Append a new task and persist. Raises ValidationError on bad input."""
        fields = _validated(title, description, status, priority)
        with self._lock:
            task = Task(id=self.ids.next_id(t.id for t in self._tasks), **fields)
            self._tasks.append(task)
            self.save()
            logger.info(f"Created task {task.id}: {task.title!r} in {task.status.value}")
            self.events.emit(TASK_CREATED, task=task)
            self.events.emit(TASKS_CHANGED, snapshot=tuple(self._tasks))
        return task

    def update(
        self,
        task_id: TaskId,
        title: str,
        description: str = "",
        status="todo",
        priority=None,
    ) -> Optional[Task]:
        """
        Overwrite a task's fields in place and persist.

        Returns the new task, or None (nothing changed, nothing saved)
        when no task has this id.
        """
        fields = _validated(title, description, status, priority)
        with self._lock:
            index = self._index_of(task_id)
            if index is None:
                logger.warning(f"Tried to edit non-existent task id: {task_id}")
                return None
            previous = self._tasks[index]
            task = replace(previous, **fields)
            self._tasks[index] = task
            self.save()
            logger.info(f"Updated task {task.id}")
            self.events.emit(TASK_UPDATED, task=task, previous=previous)
            self.events.emit(TASKS_CHANGED, snapshot=tuple(self._tasks))
        return task

    def delete(self, task_id: TaskId, confirm: Optional[Callable[[Task], bool]] = None) -> bool:
        """
        Remove a task and persist.

        If confirm is given it is asked first; a declined confirmation
        or an unknown id leaves the list and storage untouched.
        """
        with self._lock:
            index = self._index_of(task_id)
            if index is None:
                logger.warning(f"Tried to delete non-existent task id: {task_id}")
                return False
            task = self._tasks[index]
            if confirm is not None and not confirm(task):
                logger.info(f"Deletion of task {task.id} declined")
                return False
            del self._tasks[index]
            self.save()
            logger.info(f"Deleted task {task.id}")
            self.events.emit(TASK_DELETED, task=task)
            self.events.emit(TASKS_CHANGED, snapshot=tuple(self._tasks))
        return True


def _validated(title, description, status, priority) -> dict:
    title = str(title or "").strip()
    if not title:
        raise ValidationError("Please enter a task title.")
    if not isinstance(status, TaskStatus):
        status = TaskStatus.from_str(status)
    if priority is not None and not isinstance(priority, TaskPriority):
        priority = TaskPriority.from_str(priority)
    return {
        "title": title,
        "description": str(description or "").strip(),
        "status": status,
        "priority": priority,
    }
