"""
Registry of background asyncio tasks owned by the application.

Every long-running task (currently the area change watcher loop) is created
through the registry so that shutdown can cancel and await all of them
within a bounded time.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class TaskMetadata:
    """Metadata for a tracked asyncio.Task."""

    def __init__(self, task: asyncio.Task[Any], task_name: str, task_type: str = "unknown"):
        self.task = task
        self.task_name = task_name
        self.task_type = task_type
        self.created_at = asyncio.get_running_loop().time()

    def __repr__(self):
        status = "done" if self.task.done() else "pending"
        return f"TaskMetadata({self.task_name}, {self.task_type}, {status})"


class TaskRegistry:
    """Tracks application tasks and cancels them on shutdown."""

    def __init__(self):
        self._active_tasks: dict[asyncio.Task[Any], TaskMetadata] = {}
        self._task_names: dict[str, asyncio.Task[Any]] = {}
        self._shutdown_in_progress = False

    def register_task(
        self, coro: Coroutine[Any, Any, Any], task_name: str, task_type: str = "unknown"
    ) -> asyncio.Task[Any]:
        """
        Create and track an asyncio.Task.

        Args:
            coro: The coroutine to wrap as a task
            task_name: Human-readable identifier for this task
            task_type: Category used in logs (for example "watcher")

        Returns:
            The created task

        Raises:
            RuntimeError: If called while shutdown is in progress
        """
        if self._shutdown_in_progress:
            coro.close()
            logger.warning("Attempting to register task during shutdown - denied", task_name=task_name)
            raise RuntimeError("Task registration denied during shutdown")

        if task_name in self._task_names:
            logger.debug("Task name already exists, appending timestamp", task_name=task_name)
            task_name = f"{task_name}_{asyncio.get_running_loop().time()}"

        task: asyncio.Task[Any] = asyncio.create_task(coro, name=task_name)
        self._active_tasks[task] = TaskMetadata(task, task_name, task_type)
        self._task_names[task_name] = task

        def task_completion_callback(completed_task: asyncio.Task[Any]):
            self._active_tasks.pop(completed_task, None)
            if self._task_names.get(task_name) is completed_task:
                del self._task_names[task_name]
            if not completed_task.cancelled() and completed_task.exception() is not None:
                logger.error(
                    "Background task failed",
                    task_name=task_name,
                    error=str(completed_task.exception()),
                    error_type=type(completed_task.exception()).__name__,
                )
            else:
                logger.debug("Task completed and cleaned up", task_name=task_name)

        task.add_done_callback(task_completion_callback)
        logger.debug("Registered task", task_name=task_name, task_type=task_type)
        return task

    async def cancel_task(self, task_name: str, wait_timeout: float = 2.0) -> bool:
        """
        Cancel one task by name and wait for it to finish.

        Returns:
            True if the task finished within ``wait_timeout`` (or was already done)
        """
        task = self._task_names.get(task_name)
        if task is None:
            logger.debug("Cancellation target not found", task_name=task_name)
            return False
        if task.done():
            return True

        task.cancel()
        try:
            await asyncio.wait_for(task, timeout=wait_timeout)
        except asyncio.CancelledError:
            logger.debug("Cancelled task successfully", task_name=task_name)
        except TimeoutError:
            logger.warning("Cancellation timeout reached", task_name=task_name)
            return False
        return True

    async def shutdown_all(self, timeout: float = 5.0) -> bool:
        """
        Cancel every tracked task and wait for them to finish.

        Returns:
            True if all tasks terminated within ``timeout``
        """
        if self._shutdown_in_progress:
            logger.warning("Shutdown already in progress")
            return False
        self._shutdown_in_progress = True

        try:
            tasks = [task for task in self._active_tasks if not task.done()]
            for task in tasks:
                task.cancel()
            logger.info("Cancelled active tasks - awaiting completion", cancelled_count=len(tasks))

            if tasks:
                try:
                    await asyncio.wait_for(asyncio.gather(*tasks, return_exceptions=True), timeout)
                except TimeoutError:
                    logger.error("Task registry shutdown timeout", timeout=timeout)

            remaining = [m.task_name for m in self._active_tasks.values() if not m.task.done()]
            if remaining:
                logger.warning("Tasks still active after shutdown", active_tasks=remaining)
            else:
                logger.info("All background tasks terminated")
            return not remaining
        finally:
            self._shutdown_in_progress = False

    def list_active_tasks(self) -> list[TaskMetadata]:
        """Return metadata for tasks that have not finished."""
        return [m for m in self._active_tasks.values() if not m.task.done()]

    def get_registry_info(self) -> dict[str, Any]:
        """Return a summary of registry state."""
        return {
            "active_tasks": len(self.list_active_tasks()),
            "task_names": sorted(self._task_names),
            "registry_shutdown_in_progress": self._shutdown_in_progress,
        }
