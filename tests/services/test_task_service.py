"""Tests for the background task runner."""

import threading
from collections.abc import Generator
from typing import Any

import pytest
from pydantic import BaseModel

from partswap.exceptions import InvalidOperationException
from partswap.schemas.task_schema import TaskStatus
from partswap.services.base_task import BaseTask, ProgressHandle
from partswap.services.task_service import TaskProgressHandle, TaskService


class CountResult(BaseModel):
    count: int


class CountingTask(BaseTask):
    def execute(self, progress_handle: ProgressHandle, **kwargs: Any) -> BaseModel | None:
        steps = kwargs.get("steps", 2)
        for step in range(steps):
            progress_handle.send_progress(f"Step {step + 1}", (step + 1) / steps)
        return CountResult(count=steps)


class FailingTask(BaseTask):
    def execute(self, progress_handle: ProgressHandle, **kwargs: Any) -> BaseModel | None:
        raise RuntimeError("vendor exploded")


class BlockingTask(BaseTask):
    """Waits until released or cancelled."""

    def __init__(self) -> None:
        super().__init__()
        self.started = threading.Event()
        self.release = threading.Event()

    def execute(self, progress_handle: ProgressHandle, **kwargs: Any) -> BaseModel | None:
        self.started.set()
        while not self.release.wait(0.01):
            if self.is_cancelled:
                return CountResult(count=0)
        return CountResult(count=1)


@pytest.fixture
def task_service() -> Generator[TaskService, None, None]:
    service = TaskService(max_workers=2, task_timeout=60, cleanup_interval=600)
    yield service
    service.shutdown()


class TestTaskService:
    """Test cases for TaskService."""

    def test_completed_task_reports_result(self, task_service: TaskService):
        response = task_service.start_task(CountingTask(), steps=4)

        assert response.status == TaskStatus.PENDING
        assert response.status_url == f"/api/tasks/{response.task_id}/status"

        info = task_service.wait_for_task(response.task_id)

        assert info.status == TaskStatus.COMPLETED
        assert info.task_type == "CountingTask"
        assert info.progress == 1.0
        assert info.progress_text == "Step 4"
        assert info.result == {"count": 4}
        assert info.end_time is not None

    def test_failed_task_records_error(self, task_service: TaskService):
        response = task_service.start_task(FailingTask())

        info = task_service.wait_for_task(response.task_id)

        assert info.status == TaskStatus.FAILED
        assert info.error == "vendor exploded"
        assert info.result is None

    def test_unknown_task(self, task_service: TaskService):
        assert task_service.get_task_status("missing") is None
        assert not task_service.cancel_task("missing")

    def test_cancel_running_task(self, task_service: TaskService):
        task = BlockingTask()
        response = task_service.start_task(task)
        assert task.started.wait(5)

        assert task_service.cancel_task(response.task_id)
        info = task_service.wait_for_task(response.task_id)

        assert info.status == TaskStatus.CANCELLED
        assert task.is_cancelled
        assert not task_service.cancel_task(response.task_id)

    def test_remove_only_finished_tasks(self, task_service: TaskService):
        blocking = BlockingTask()
        running = task_service.start_task(blocking)
        assert blocking.started.wait(5)
        done = task_service.start_task(CountingTask())
        task_service.wait_for_task(done.task_id)

        assert not task_service.remove_completed_task(running.task_id)
        assert task_service.remove_completed_task(done.task_id)
        assert task_service.get_task_status(done.task_id) is None

        blocking.release.set()
        task_service.wait_for_task(running.task_id)

    def test_list_tasks(self, task_service: TaskService):
        first = task_service.start_task(CountingTask())
        second = task_service.start_task(CountingTask())
        task_service.wait_for_task(first.task_id)
        task_service.wait_for_task(second.task_id)

        ids = {info.task_id for info in task_service.list_tasks()}

        assert ids == {first.task_id, second.task_id}

    def test_start_after_shutdown_is_rejected(self):
        service = TaskService(max_workers=1)
        service.shutdown()

        with pytest.raises(InvalidOperationException):
            service.start_task(CountingTask())


class TestTaskProgressHandle:
    """Test cases for TaskProgressHandle."""

    def test_progress_never_goes_backwards(self, task_service: TaskService):
        handle = TaskProgressHandle("unknown", task_service)

        handle.send_progress("Processed A1 (1/2)", 0.5)
        handle.send_progress_value(0.2)
        handle.send_progress_text("Importing B1 (1/2)")

        assert handle.progress == 0.5
        assert handle.progress_text == "Importing B1 (1/2)"

    def test_progress_is_capped(self, task_service: TaskService):
        handle = TaskProgressHandle("unknown", task_service)

        handle.send_progress_value(3.0)

        assert handle.progress == 1.0
