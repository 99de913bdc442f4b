"""Tasks view: items from every configured task list, in one ordered list."""

from datetime import date
from typing import Any

from homeboard.aggregators.base import CollectionAggregator
from homeboard.models import TaskItem, TasksResponse


def task_sort_key(task: TaskItem) -> tuple:
    """Dated tasks first (earliest due first), then higher priority, then oldest."""
    return (
        task.due_date is None,
        task.due_date or date.min,
        -task.priority,
        task.created_at,
    )


def sort_tasks(tasks: list[TaskItem]) -> list[TaskItem]:
    # sorted() is stable: full ties keep fetch order
    return sorted(tasks, key=task_sort_key)


class TasksAggregator(CollectionAggregator[TaskItem, TasksResponse]):
    """Tasks across task lists of one provider."""

    kind = "tasks"
    record_shape = TaskItem

    async def fetch_collection(self, collection: str) -> list[dict[str, Any]]:
        return await self.adapter.fetch_tasks(collection)

    def to_record(self, raw: dict[str, Any], collection: str) -> TaskItem | None:
        return self.adapter.to_task(raw, self.tz, self.clock())

    def merge(self, records: list[TaskItem]) -> list[TaskItem]:
        return sort_tasks(records)

    def render(self, records: list[TaskItem]) -> TasksResponse:
        return TasksResponse(items=records)
