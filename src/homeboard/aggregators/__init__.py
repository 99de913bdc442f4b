"""Multi-collection aggregators."""

from homeboard.aggregators.base import AggregateResult, CollectionAggregator
from homeboard.aggregators.calendar import CalendarAggregator, build_calendar_days
from homeboard.aggregators.tasks import TasksAggregator, sort_tasks, task_sort_key

__all__ = [
    "AggregateResult",
    "CalendarAggregator",
    "CollectionAggregator",
    "TasksAggregator",
    "build_calendar_days",
    "sort_tasks",
    "task_sort_key",
]
