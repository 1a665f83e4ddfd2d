"""In-memory background task runner with progress polling."""

import logging
import threading
import time
import traceback
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from typing import Any

from prometheus_client import Counter, Histogram

from partswap.exceptions import InvalidOperationException
from partswap.schemas.task_schema import (
    TERMINAL_STATUSES,
    TaskInfo,
    TaskStartResponse,
    TaskStatus,
)
from partswap.services.base_task import BaseTask

logger = logging.getLogger(__name__)

TASK_EXECUTIONS_TOTAL = Counter(
    "task_executions_total",
    "Background task executions by outcome",
    ["task_type", "status"],
)
TASK_DURATION_SECONDS = Histogram(
    "task_duration_seconds",
    "Background task duration",
    ["task_type"],
)


class TaskProgressHandle:
    """ProgressHandle that records progress on the task's TaskInfo."""

    def __init__(self, task_id: str, task_service: "TaskService"):
        self.task_id = task_id
        self.task_service = task_service
        self.progress = 0.0
        self.progress_text = ""

    def send_progress_text(self, text: str) -> None:
        self.send_progress(text, self.progress)

    def send_progress_value(self, value: float) -> None:
        self.send_progress(self.progress_text, value)

    def send_progress(self, text: str, value: float) -> None:
        self.progress_text = text
        if value > self.progress:
            self.progress = min(value, 1.0)
        self.task_service._update_progress(self.task_id, self.progress_text, self.progress)


class TaskService:
    """Service for managing background tasks."""

    def __init__(
        self,
        max_workers: int = 2,
        task_timeout: int = 3600,
        cleanup_interval: int = 600
    ):
        """Initialize TaskService with configurable parameters.

        Args:
            max_workers: Maximum number of concurrent tasks
            task_timeout: Running tasks older than this are cancelled by the cleanup worker
            cleanup_interval: How often to clean up finished tasks in seconds
        """
        self.max_workers = max_workers
        self.task_timeout = task_timeout
        self.cleanup_interval = cleanup_interval
        self._tasks: dict[str, TaskInfo] = {}
        self._task_instances: dict[str, BaseTask] = {}
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="task")
        self._lock = threading.RLock()
        self._shutdown_event = threading.Event()
        self._shutting_down = False

        self._cleanup_thread = threading.Thread(target=self._cleanup_worker, daemon=True)
        self._cleanup_thread.start()

        logger.info(f"TaskService initialized: max_workers={max_workers}, timeout={task_timeout}s, cleanup_interval={cleanup_interval}s")

    def start_task(self, task: BaseTask, **kwargs: Any) -> TaskStartResponse:
        """Submit a task to the worker pool.

        Raises:
            InvalidOperationException: If service is shutting down
        """
        if self._shutting_down:
            raise InvalidOperationException("start task", "service is shutting down")

        task_id = str(uuid.uuid4())

        with self._lock:
            self._tasks[task_id] = TaskInfo(
                task_id=task_id,
                task_type=type(task).__name__,
                status=TaskStatus.PENDING,
                start_time=datetime.now(UTC),
            )
            self._task_instances[task_id] = task
            self._executor.submit(self._execute_task, task_id, task, kwargs)

        logger.info(f"Started task {task_id} of type {type(task).__name__}")

        return TaskStartResponse(
            task_id=task_id,
            status=TaskStatus.PENDING,
            status_url=f"/api/tasks/{task_id}/status",
        )

    def get_task_status(self, task_id: str) -> TaskInfo | None:
        """Get a snapshot of a task's state."""
        with self._lock:
            task_info = self._tasks.get(task_id)
            return task_info.model_copy() if task_info else None

    def list_tasks(self) -> list[TaskInfo]:
        with self._lock:
            return [info.model_copy() for info in self._tasks.values()]

    def cancel_task(self, task_id: str) -> bool:
        """
        Cancel a pending or running task.

        Returns:
            True if task was found and cancellation was requested, False otherwise
        """
        with self._lock:
            task_instance = self._task_instances.get(task_id)
            task_info = self._tasks.get(task_id)

            if not task_instance or not task_info:
                return False

            if task_info.status in TERMINAL_STATUSES:
                return False

            task_instance.cancel()
            task_info.status = TaskStatus.CANCELLED
            task_info.end_time = datetime.now(UTC)

            logger.info(f"Cancelled task {task_id}")
            return True

    def remove_completed_task(self, task_id: str) -> bool:
        """Remove a finished task from the registry."""
        with self._lock:
            task_info = self._tasks.get(task_id)
            if not task_info or task_info.status not in TERMINAL_STATUSES:
                return False

            self._tasks.pop(task_id, None)
            self._task_instances.pop(task_id, None)

            logger.debug(f"Removed completed task {task_id}")
            return True

    def wait_for_task(self, task_id: str, timeout: float = 10.0) -> TaskInfo | None:
        """Block until the task reaches a terminal state or the timeout passes."""
        deadline = time.perf_counter() + timeout
        while time.perf_counter() < deadline:
            info = self.get_task_status(task_id)
            if info is None or info.status in TERMINAL_STATUSES:
                return info
            time.sleep(0.01)
        return self.get_task_status(task_id)

    def _update_progress(self, task_id: str, text: str, value: float) -> None:
        with self._lock:
            task_info = self._tasks.get(task_id)
            if task_info:
                task_info.progress_text = text
                task_info.progress = value

    def _execute_task(self, task_id: str, task: BaseTask, kwargs: dict[str, Any]) -> None:
        """Execute a task in a background thread."""
        task_type = type(task).__name__
        start_time = time.perf_counter()

        with self._lock:
            task_info = self._tasks.get(task_id)
            if not task_info or task_info.status == TaskStatus.CANCELLED:
                return
            task_info.status = TaskStatus.RUNNING

        try:
            progress_handle = TaskProgressHandle(task_id, self)
            result = task.execute(progress_handle, **kwargs)
            duration = time.perf_counter() - start_time

            with self._lock:
                task_info = self._tasks.get(task_id)
                if task_info:
                    # A cancelled task keeps its status but still reports what it got done
                    if task_info.status != TaskStatus.CANCELLED:
                        task_info.status = TaskStatus.COMPLETED
                        task_info.end_time = datetime.now(UTC)
                        task_info.progress = 1.0
                    task_info.result = result.model_dump(mode="json") if result else None

            TASK_EXECUTIONS_TOTAL.labels(task_type=task_type, status="success").inc()
            TASK_DURATION_SECONDS.labels(task_type=task_type).observe(duration)
            logger.info(f"Task {task_id} finished in {duration:.1f}s")

        except Exception as e:
            error_msg = str(e)
            logger.error(f"Task {task_id} failed: {error_msg}")
            logger.debug(f"Task {task_id} error traceback: {traceback.format_exc()}")

            duration = time.perf_counter() - start_time

            with self._lock:
                task_info = self._tasks.get(task_id)
                if task_info:
                    task_info.status = TaskStatus.FAILED
                    task_info.end_time = datetime.now(UTC)
                    task_info.error = error_msg

            TASK_EXECUTIONS_TOTAL.labels(task_type=task_type, status="error").inc()
            TASK_DURATION_SECONDS.labels(task_type=task_type).observe(duration)

    def _cleanup_worker(self) -> None:
        """Background worker that periodically cleans up finished tasks."""
        while not self._shutdown_event.is_set():
            try:
                if self._shutdown_event.wait(timeout=self.cleanup_interval):
                    break

                self._cleanup_completed_tasks()

            except Exception as e:
                # Log error but continue cleanup loop
                logger.error(f"Error during task cleanup: {e}", exc_info=True)

    def _cleanup_completed_tasks(self) -> None:
        """Drop finished tasks older than cleanup_interval; cancel tasks past task_timeout."""
        current_time = datetime.now(UTC)
        tasks_to_remove = []
        tasks_to_cancel = []

        with self._lock:
            for task_id, task_info in self._tasks.items():
                if task_info.status in TERMINAL_STATUSES:
                    if task_info.end_time:
                        time_since_completion = (current_time - task_info.end_time).total_seconds()
                        if time_since_completion >= self.cleanup_interval:
                            tasks_to_remove.append(task_id)
                elif (current_time - task_info.start_time).total_seconds() >= self.task_timeout:
                    tasks_to_cancel.append(task_id)

        for task_id in tasks_to_cancel:
            logger.warning(f"Task {task_id} exceeded timeout of {self.task_timeout}s, cancelling")
            self.cancel_task(task_id)

        if tasks_to_remove:
            logger.debug(f"Cleaning up {len(tasks_to_remove)} completed tasks")

        for task_id in tasks_to_remove:
            self.remove_completed_task(task_id)

    def shutdown(self) -> None:
        """Shutdown the task service and cleanup resources."""
        logger.info("Shutting down TaskService...")
        self._shutting_down = True

        with self._lock:
            for task_id, task_info in self._tasks.items():
                if task_info.status not in TERMINAL_STATUSES:
                    self._task_instances[task_id].cancel()

        self._shutdown_event.set()
        if self._cleanup_thread.is_alive():
            self._cleanup_thread.join(timeout=5.0)

        self._executor.shutdown(wait=True)

        with self._lock:
            self._tasks.clear()
            self._task_instances.clear()

        logger.info("TaskService shutdown complete")
