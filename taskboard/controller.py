"""
Board controller: turns store snapshots into column views and runs the
add/edit modal.

Modal states:
    Closed
    Open(CREATE)  empty form, no delete action
    Open(EDIT)    form populated from a task, delete action available

Every close reason (close button, backdrop click, cancel key, successful
submit, confirmed delete) returns to Closed. Deletion goes through a
ConfirmationPrompt that is answered later with resolve_confirmation().
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Optional, Tuple

from .events import TASKS_CHANGED
from .schema import Task, TaskId, TaskStatus, ValidationError
from .store import TaskStore

logger = logging.getLogger(__name__)

DELETE_PROMPT = "Are you sure you want to delete this task?"
TITLE_REQUIRED = "Please enter a task title."


class EditorMode(Enum):
    CREATE = "create"
    EDIT = "edit"


class CloseReason(Enum):
    CLOSE_BUTTON = "close"
    BACKDROP = "backdrop"
    CANCEL_KEY = "escape"
    SUBMITTED = "submitted"
    DELETED = "deleted"

    @classmethod
    def from_str(cls, value: Optional[str]) -> "CloseReason":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.CLOSE_BUTTON


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# View model
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass(frozen=True)
class CardView:
    id: TaskId
    title: str
    priority: Optional[str] = None


@dataclass(frozen=True)
class ColumnView:
    status: TaskStatus
    cards: Tuple[CardView, ...]
    count: int

    @property
    def heading(self) -> str:
        return f"{self.status.heading} ({self.count})"


@dataclass(frozen=True)
class BoardView:
    columns: Tuple[ColumnView, ...] = ()

    def column(self, status: TaskStatus) -> Optional[ColumnView]:
        for col in self.columns:
            if col.status == status:
                return col
        return None

    def to_dict(self) -> dict:
        return {
            col.status.value: {
                "heading": col.heading,
                "count": col.count,
                "cards": [
                    {"id": c.id, "title": c.title, "priority": c.priority}
                    for c in col.cards
                ],
            }
            for col in self.columns
        }


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Modal state
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass(frozen=True)
class FormValues:
    """Raw editor fields, as typed by the user."""
    task_id: str = ""
    title: str = ""
    description: str = ""
    status: str = TaskStatus.TODO.value
    priority: str = ""

    @classmethod
    def from_task(cls, task: Task) -> "FormValues":
        return cls(
            task_id=str(task.id),
            title=task.title,
            description=task.description or "",
            status=task.status.value,
            priority=task.priority.value if task.priority else "",
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FormValues":
        def text(name, default=""):
            value = data.get(name)
            return default if value is None else str(value)

        return cls(
            task_id=text("id").strip(),
            title=text("title"),
            description=text("description"),
            status=text("status", TaskStatus.TODO.value),
            priority=text("priority"),
        )


@dataclass
class ConfirmationPrompt:
    """A pending yes/no question; on_confirm runs only if the answer is yes."""
    message: str
    task_id: TaskId
    on_confirm: Callable[[], Any] = field(repr=False, default=lambda: None)


@dataclass
class ModalState:
    mode: Optional[EditorMode] = None
    form: FormValues = field(default_factory=FormValues)
    confirmation: Optional[ConfirmationPrompt] = None

    @property
    def is_open(self) -> bool:
        return self.mode is not None

    @property
    def heading(self) -> str:
        return "Edit Task" if self.mode == EditorMode.EDIT else "Add New Task"

    @property
    def submit_label(self) -> str:
        return "Save Changes" if self.mode == EditorMode.EDIT else "Create Task"

    @property
    def can_delete(self) -> bool:
        return self.mode == EditorMode.EDIT


@dataclass(frozen=True)
class SubmitResult:
    accepted: bool
    alert: Optional[str] = None
    task: Optional[Task] = None


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Controller
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class BoardController:
    """Mediates between the editor, the store and the column view."""

    def __init__(self, store: TaskStore, columns: Iterable[TaskStatus] = tuple(TaskStatus)):
        self.store = store
        self.columns: Tuple[TaskStatus, ...] = tuple(columns)
        self.view = BoardView()
        self.modal = ModalState()
        self.last_alert: Optional[str] = None
        store.events.subscribe(TASKS_CHANGED, self._on_tasks_changed)

    def _on_tasks_changed(self, snapshot: Tuple[Task, ...]) -> None:
        # Events from concurrent writers can arrive after a newer change,
        # so always redraw from the store's current list.
        self.render()

    # ── Rendering ────────────────────────────────────────────────────────────

    def render(self, tasks: Optional[Iterable[Task]] = None) -> BoardView:
        """Full redraw: rebuild every column from the given (or current) tasks."""
        if tasks is None:
            tasks = self.store.tasks
        tasks = tuple(tasks)

        cards = {status: [] for status in self.columns}
        for task in tasks:
            if task.status not in cards:
                logger.warning(f"Missing column for status: {task.status.value}")
                continue
            cards[task.status].append(CardView(
                id=task.id,
                title=task.title,
                priority=task.priority.value if task.priority else None,
            ))

        self.view = BoardView(columns=tuple(
            ColumnView(
                status=status,
                cards=tuple(cards[status]),
                count=sum(1 for t in tasks if t.status == status),
            )
            for status in self.columns
        ))
        return self.view

    # ── Editor modal ─────────────────────────────────────────────────────────

    def open_editor(self, task: Optional[Task] = None) -> ModalState:
        """Open in EDIT mode for a task, or CREATE mode for None."""
        self.last_alert = None
        if task is not None:
            self.modal = ModalState(mode=EditorMode.EDIT, form=FormValues.from_task(task))
        else:
            self.modal = ModalState(mode=EditorMode.CREATE, form=FormValues())
        return self.modal

    def open_editor_for(self, task_id: TaskId) -> Optional[ModalState]:
        """Card click: open the editor for a task looked up by id."""
        task = self.store.find(task_id)
        if task is None:
            logger.warning(f"Tried to open non-existent task id: {task_id}")
            return None
        return self.open_editor(task)

    def close_editor(self, reason: CloseReason = CloseReason.CLOSE_BUTTON) -> None:
        if self.modal.is_open:
            logger.debug(f"Editor closed ({reason.value})")
        self.modal = ModalState()

    def submit(self, form) -> SubmitResult:
        """
        Validate the editor form and create or update a task.

        An invalid form leaves the store untouched and the editor open,
        with the alert text in the result (and in last_alert).
        """
        if not isinstance(form, FormValues):
            form = FormValues.from_mapping(form)

        title = form.title.strip()
        if not title:
            return self._reject(form, TITLE_REQUIRED)

        if form.task_id and self.store.find(form.task_id) is None:
            # The task went away while the editor was open: nothing to save
            logger.warning(f"Tried to edit non-existent task id: {form.task_id}")
            self.last_alert = None
            self.close_editor(CloseReason.SUBMITTED)
            return SubmitResult(accepted=True)

        try:
            if form.task_id:
                task = self.store.update(
                    form.task_id, title, form.description, form.status, form.priority or None,
                )
            else:
                task = self.store.create(
                    title, form.description, form.status, form.priority or None,
                )
        except ValidationError as e:
            return self._reject(form, _alert_for(e))

        self.last_alert = None
        self.close_editor(CloseReason.SUBMITTED)
        return SubmitResult(accepted=True, task=task)

    def _reject(self, form: FormValues, alert: str) -> SubmitResult:
        self.last_alert = alert
        if self.modal.is_open:
            # Keep what the user typed
            self.modal.form = form
        return SubmitResult(accepted=False, alert=alert)

    # ── Deletion ─────────────────────────────────────────────────────────────

    def request_delete(self, task_id: Optional[TaskId] = None) -> Optional[ConfirmationPrompt]:
        """
        Ask for confirmation before deleting. Defaults to the task in the
        editor; returns None when there is nothing to delete.

        The prompt lives on the editor, so a closed editor is first opened
        for the task being deleted.
        """
        if task_id is None or task_id == "":
            task_id = self.modal.form.task_id if self.modal.is_open else ""
        if not task_id:
            return None
        if not self.modal.is_open and self.open_editor_for(task_id) is None:
            return None

        def on_confirm() -> bool:
            deleted = self.store.delete(task_id)
            self.close_editor(CloseReason.DELETED)
            return deleted

        self.modal.confirmation = ConfirmationPrompt(
            message=DELETE_PROMPT, task_id=task_id, on_confirm=on_confirm,
        )
        return self.modal.confirmation

    def resolve_confirmation(self, accepted: bool) -> bool:
        """Answer the pending prompt. Returns True if a task was deleted."""
        prompt = self.modal.confirmation
        if prompt is None:
            return False
        self.modal.confirmation = None
        if not accepted:
            logger.info(f"Deletion of task {prompt.task_id} cancelled")
            return False
        return bool(prompt.on_confirm())


def _alert_for(error: ValidationError) -> str:
    message = str(error)
    if message.startswith("Invalid status"):
        return "Please choose a valid status."
    if message.startswith("Invalid priority"):
        return "Please choose a valid priority."
    return message
