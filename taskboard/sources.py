"""
Initial-data sources for the board.

TaskStore.load() walks an ordered list of sources and keeps the first
non-empty result:

    StorageSource  → the JSON list saved under the storage key
    RemoteSource   → the public Kanban API (API-backed setups)
    StaticSource   → bundled seed tasks, or an empty list; never fails

Every source returns a list of Tasks, or None for "nothing here".
Failures are logged, never raised.
"""
import json
import logging
from typing import Iterable, List, Optional, Any, Dict, Tuple

import requests

from .schema import Task, UNTITLED
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)

STORAGE_KEY = "tasks"
API_URL = "https://jsl-kanban-api.vercel.app/"

# One card per column
SEED_TASKS: List[Dict[str, Any]] = [
    {
        "id": 1,
        "title": "Launch Epic Career",
        "description": "Create a killer resume and start applying.",
        "status": "todo",
    },
    {
        "id": 2,
        "title": "Master JavaScript",
        "description": "Work through the advanced functions module.",
        "status": "doing",
    },
    {
        "id": 3,
        "title": "Set up the workspace",
        "description": "Editor, terminal and version control ready to go.",
        "status": "done",
    },
]


class TaskSource:
    """One link of the fallback chain."""

    name = "source"

    def fetch(self) -> Optional[List[Task]]:
        raise NotImplementedError


class StorageSource(TaskSource):
    """Tasks previously saved in key-value storage."""

    name = "storage"

    def __init__(self, storage: KeyValueStorage, key: str = STORAGE_KEY):
        self.storage = storage
        self.key = key

    def fetch(self) -> Optional[List[Task]]:
        raw = self.storage.get_item(self.key)
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.error(f"Failed to parse tasks from storage key '{self.key}': {e}")
            return None
        if not isinstance(data, list):
            logger.warning(
                f"Stored tasks under '{self.key}' are a {type(data).__name__}, "
                f"expected a list; ignoring"
            )
            return None

        tasks = []
        for entry in data:
            if not isinstance(entry, dict):
                logger.warning(f"Skipping malformed stored task: {entry!r}")
                continue
            tasks.append(Task.from_dict(entry))
        return tasks or None


class RemoteSource(TaskSource):
    """Tasks fetched over HTTP and normalized to the stored shape."""

    name = "remote"

    def __init__(self, url: str = API_URL, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout

    def fetch(self) -> Optional[List[Task]]:
        try:
            r = requests.get(self.url, timeout=self.timeout)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Failed to fetch tasks from API {self.url}: {e}")
            return None
        if not isinstance(data, list):
            logger.error(
                f"API {self.url} returned a {type(data).__name__}, expected a list"
            )
            return None
        return [Task.from_dict(normalize_remote(entry, i)) for i, entry in enumerate(data)]


def normalize_remote(entry: Any, index: int) -> Dict[str, Any]:
    """Fill in defaults for a task-like record from the API."""
    if not isinstance(entry, dict):
        entry = {}
    record = {
        "id": entry.get("id") or index + 1,
        "title": entry.get("title") or UNTITLED,
        "description": entry.get("description") or "",
        "status": entry.get("status") or "todo",
    }
    if entry.get("priority"):
        record["priority"] = entry["priority"]
    return record


class StaticSource(TaskSource):
    """A constant list; the guaranteed last link of every chain."""

    name = "static"

    def __init__(self, records: Optional[Iterable[Dict[str, Any]]] = None):
        self.records = list(records) if records is not None else []

    def fetch(self) -> List[Task]:
        return [Task.from_dict(r) for r in self.records]


def load_first(sources: Iterable[TaskSource]) -> Tuple[List[Task], Optional[TaskSource]]:
    """
    Try each source in order and return (tasks, source) for the first
    non-empty result. Returns ([], None) when every source came up empty.
    """
    for source in sources:
        tasks = source.fetch()
        if tasks:
            logger.info(f"Loaded {len(tasks)} tasks from {source.name}")
            return tasks, source
        logger.debug(f"No tasks from {source.name}")
    return [], None
