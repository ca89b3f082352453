"""
Tests for BoardController: column rendering, editor modal, deletion prompt.
"""
import json
import logging
import threading
import time

import pytest

from taskboard.controller import (
    BoardController,
    CloseReason,
    EditorMode,
    FormValues,
    DELETE_PROMPT,
    TITLE_REQUIRED,
)
from taskboard.events import TASK_CREATED
from taskboard.schema import Task, TaskStatus, TaskPriority
from taskboard.sources import StaticSource, SEED_TASKS
from taskboard.storage import MemoryStorage
from taskboard.store import TaskStore


def headings(controller):
    return [col.heading for col in controller.view.columns]


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Rendering
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestRender:

    def test_seed_list_shows_one_per_column(self, controller):
        assert headings(controller) == ["TODO (1)", "DOING (1)", "DONE (1)"]

    def test_cards_placed_by_status(self, controller):
        todo = controller.view.column(TaskStatus.TODO)
        assert [c.id for c in todo.cards] == [1]
        assert todo.cards[0].title == "Launch Epic Career"

    def test_full_redraw_from_given_tasks(self, controller):
        tasks = [
            Task(id="a", title="A", status=TaskStatus.DONE),
            Task(id="b", title="B", status=TaskStatus.DONE, priority=TaskPriority.HIGH),
        ]
        view = controller.render(tasks)
        assert headings(controller) == ["TODO (0)", "DOING (0)", "DONE (2)"]
        assert view.column(TaskStatus.DONE).cards[1].priority == "high"

    @pytest.mark.parametrize("statuses", [
        [],
        ["todo"] * 4,
        ["todo", "doing", "doing", "done", "done", "done"],
        ["done", "todo", "done", "doing", "todo"],
    ])
    def test_counts_match_statuses(self, statuses):
        tasks = [Task(id=i, title=f"T{i}", status=TaskStatus(s)) for i, s in enumerate(statuses)]
        controller = BoardController(TaskStore(MemoryStorage()))
        view = controller.render(tasks)
        for col in view.columns:
            expected = statuses.count(col.status.value)
            assert col.count == expected
            assert len(col.cards) == expected
            assert col.heading == f"{col.status.heading} ({expected})"

    def test_missing_column_skips_card(self, caplog):
        store = TaskStore(MemoryStorage(), [StaticSource(SEED_TASKS)])
        controller = BoardController(store, columns=(TaskStatus.TODO, TaskStatus.DOING))
        with caplog.at_level(logging.WARNING):
            store.load()
        assert [c.status for c in controller.view.columns] == [TaskStatus.TODO, TaskStatus.DOING]
        assert "Missing column for status: done" in caplog.text

    def test_rerenders_on_store_change(self, controller):
        controller.store.create("Direct", status="todo")
        assert headings(controller)[0] == "TODO (2)"

    def test_stale_change_event_renders_current_list(self, controller):
        stale = controller.store.tasks
        controller.store.create("Newer", status="todo")

        controller._on_tasks_changed(snapshot=stale)

        assert headings(controller)[0] == "TODO (2)"

    def test_concurrent_creates_leave_latest_view(self, controller):
        store = controller.store
        workers = []

        def slow_subscriber(task):
            # While "A" is being announced, a second writer adds "B"
            if task.title == "A":
                worker = threading.Thread(target=store.create, args=("B",))
                workers.append(worker)
                worker.start()
                time.sleep(0.05)

        store.events.subscribe(TASK_CREATED, slow_subscriber)
        store.create("A")
        for worker in workers:
            worker.join(timeout=5)

        assert [t.title for t in store.tasks][-2:] == ["A", "B"]
        todo = controller.view.column(TaskStatus.TODO)
        assert todo.count == store.counts()[TaskStatus.TODO] == 3
        assert [c.title for c in todo.cards] == ["Launch Epic Career", "A", "B"]

    def test_view_to_dict(self, controller):
        data = controller.view.to_dict()
        assert data["doing"]["heading"] == "DOING (1)"
        assert data["doing"]["cards"] == [{"id": 2, "title": "Master JavaScript", "priority": None}]


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Editor modal
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestEditor:

    def test_starts_closed(self, controller):
        assert not controller.modal.is_open

    def test_open_create_mode(self, controller):
        modal = controller.open_editor(None)
        assert modal.mode == EditorMode.CREATE
        assert modal.form == FormValues()
        assert modal.form.status == "todo"
        assert modal.heading == "Add New Task"
        assert modal.submit_label == "Create Task"
        assert not modal.can_delete

    def test_open_edit_mode(self, controller):
        task = controller.store.find(2)
        modal = controller.open_editor(task)
        assert modal.mode == EditorMode.EDIT
        assert modal.form.task_id == "2"
        assert modal.form.title == "Master JavaScript"
        assert modal.form.status == "doing"
        assert modal.heading == "Edit Task"
        assert modal.submit_label == "Save Changes"
        assert modal.can_delete

    def test_open_editor_for_missing_id(self, controller, caplog):
        with caplog.at_level(logging.WARNING):
            assert controller.open_editor_for("nope") is None
        assert not controller.modal.is_open

    @pytest.mark.parametrize("reason", list(CloseReason))
    def test_any_close_reason_closes(self, controller, reason):
        controller.open_editor(controller.store.find(1))
        controller.request_delete()
        controller.close_editor(reason)
        assert not controller.modal.is_open
        assert controller.modal.confirmation is None

    def test_close_reason_from_str(self):
        assert CloseReason.from_str("escape") == CloseReason.CANCEL_KEY
        assert CloseReason.from_str("backdrop") == CloseReason.BACKDROP
        assert CloseReason.from_str(None) == CloseReason.CLOSE_BUTTON


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Submit
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestSubmit:

    def test_create(self, controller, storage):
        controller.open_editor(None)
        before = controller.store.tasks

        result = controller.submit(FormValues(title="Write spec", status="doing", description=""))

        assert result.accepted
        assert result.alert is None
        tasks = controller.store.tasks
        assert len(tasks) == len(before) + 1
        assert result.task.status == TaskStatus.DOING
        assert str(result.task.id) not in {str(t.id) for t in before}
        assert not controller.modal.is_open
        assert headings(controller)[1] == "DOING (2)"
        persisted = json.loads(storage.get_item("tasks"))
        assert persisted[-1] == {
            "id": result.task.id, "title": "Write spec", "description": "", "status": "doing",
        }

    def test_create_from_mapping(self, controller):
        result = controller.submit({"id": "", "title": " Mapped ", "description": " d ",
                                    "status": "done", "priority": "low"})
        assert result.accepted
        assert result.task.title == "Mapped"
        assert result.task.description == "d"
        assert result.task.priority == TaskPriority.LOW

    @pytest.mark.parametrize("title", ["", "    "])
    def test_empty_title_alerts_and_keeps_editor_open(self, controller, storage, title):
        controller.open_editor(None)
        before = controller.store.tasks
        writes = len(storage.writes)

        result = controller.submit(FormValues(title=title, description="kept"))

        assert not result.accepted
        assert result.alert == TITLE_REQUIRED
        assert controller.last_alert == TITLE_REQUIRED
        assert controller.store.tasks == before
        assert len(storage.writes) == writes
        assert controller.modal.is_open
        assert controller.modal.form.description == "kept"

    def test_invalid_status_alerts(self, controller):
        controller.open_editor(None)
        result = controller.submit(FormValues(title="Task", status="someday"))
        assert not result.accepted
        assert result.alert == "Please choose a valid status."
        assert len(controller.store.tasks) == 3

    def test_edit_existing(self, controller):
        controller.open_editor(controller.store.find(1))
        before = controller.store.tasks
        form = controller.modal.form

        result = controller.submit(FormValues(
            task_id=form.task_id, title="Launch", description=form.description, status="done",
        ))

        after = controller.store.tasks
        assert result.accepted
        assert after[0].title == "Launch"
        assert after[0].status == TaskStatus.DONE
        assert after[1:] == before[1:]
        assert headings(controller) == ["TODO (0)", "DOING (1)", "DONE (2)"]
        assert not controller.modal.is_open

    def test_edit_missing_id(self, controller, storage, caplog):
        controller.open_editor(controller.store.find(1))
        before = controller.store.tasks
        writes = len(storage.writes)

        with caplog.at_level(logging.WARNING):
            result = controller.submit(FormValues(task_id="999", title="Ghost"))

        assert result.accepted
        assert result.task is None
        assert controller.store.tasks == before
        assert len(storage.writes) == writes
        assert "non-existent task id: 999" in caplog.text
        assert not controller.modal.is_open

    def test_edit_missing_id_checked_before_status(self, controller, storage, caplog):
        controller.open_editor(controller.store.find(1))
        before = controller.store.tasks
        writes = len(storage.writes)

        with caplog.at_level(logging.WARNING):
            result = controller.submit(FormValues(task_id="999", title="Ghost", status="someday"))

        assert result.accepted
        assert result.alert is None
        assert controller.last_alert is None
        assert controller.store.tasks == before
        assert len(storage.writes) == writes
        assert "Tried to edit non-existent task id: 999" in caplog.text
        assert not controller.modal.is_open


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Delete with confirmation
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestDelete:

    def test_nothing_to_delete_in_create_mode(self, controller):
        controller.open_editor(None)
        assert controller.request_delete() is None
        assert controller.modal.confirmation is None

    def test_request_opens_prompt_without_deleting(self, controller, storage):
        controller.open_editor(controller.store.find(2))
        writes = len(storage.writes)

        prompt = controller.request_delete()

        assert prompt.message == DELETE_PROMPT
        assert prompt.task_id == "2"
        assert controller.modal.confirmation is prompt
        assert len(controller.store.tasks) == 3
        assert len(storage.writes) == writes

    def test_declined(self, controller, storage):
        controller.open_editor(controller.store.find(2))
        before = controller.store.tasks
        writes = len(storage.writes)

        controller.request_delete()
        assert not controller.resolve_confirmation(False)

        assert controller.store.tasks == before
        assert len(storage.writes) == writes
        assert controller.modal.is_open
        assert controller.modal.confirmation is None

    def test_confirmed(self, controller):
        controller.open_editor(controller.store.find(2))

        controller.request_delete()
        assert controller.resolve_confirmation(True)

        assert len(controller.store.tasks) == 2
        assert controller.store.find(2) is None
        assert not controller.modal.is_open
        assert headings(controller) == ["TODO (1)", "DOING (0)", "DONE (1)"]

    def test_explicit_id_opens_editor_for_prompt(self, controller):
        prompt = controller.request_delete(3)

        assert controller.modal.is_open
        assert controller.modal.mode == EditorMode.EDIT
        assert controller.modal.form.task_id == "3"
        assert controller.modal.confirmation is prompt

        assert controller.resolve_confirmation(True)
        assert controller.store.find(3) is None
        assert not controller.modal.is_open

    def test_unknown_id_with_editor_closed(self, controller, caplog):
        with caplog.at_level(logging.WARNING):
            assert controller.request_delete("999") is None
        assert not controller.modal.is_open
        assert controller.modal.confirmation is None
        assert not controller.resolve_confirmation(True)
        assert len(controller.store.tasks) == 3

    def test_no_id_with_editor_closed(self, controller):
        assert controller.request_delete() is None
        assert controller.modal.confirmation is None

    def test_task_gone_before_confirmation(self, controller):
        controller.open_editor(controller.store.find(1))
        controller.request_delete()
        controller.store.delete(1)

        assert not controller.resolve_confirmation(True)
        assert len(controller.store.tasks) == 2
        assert not controller.modal.is_open

    def test_resolve_without_prompt(self, controller):
        assert not controller.resolve_confirmation(True)
        assert len(controller.store.tasks) == 3
