"""Tests for task ordering."""

from datetime import date, datetime, timedelta, timezone

from homeboard.aggregators.tasks import sort_tasks
from homeboard.models import TaskItem

T0 = datetime(2026, 2, 1, tzinfo=timezone.utc)


def task(id, due, priority, created):
    return TaskItem(
        id=id,
        title=id,
        due_date=date.fromisoformat(due) if due else None,
        priority=priority,
        created_at=created,
    )


class TestSortTasks:
    def test_scenario_orders_due_then_priority_then_creation(self):
        t2 = T0
        t1 = T0 + timedelta(hours=1)
        t3 = T0 + timedelta(hours=2)
        t0 = T0 + timedelta(hours=3)
        tasks = [
            task("A", None, 1, t0),
            task("B", "2026-03-05", 3, t1),
            task("C", "2026-03-01", 2, t2),
            task("D", "2026-03-01", 3, t3),
        ]

        assert [t.id for t in sort_tasks(tasks)] == ["D", "C", "B", "A"]

    def test_undated_tasks_sort_by_priority_then_creation(self):
        tasks = [
            task("low", None, 1, T0),
            task("high-new", None, 3, T0 + timedelta(days=1)),
            task("high-old", None, 3, T0),
        ]

        assert [t.id for t in sort_tasks(tasks)] == ["high-old", "high-new", "low"]

    def test_full_ties_keep_input_order(self):
        tasks = [task(str(i), "2026-03-01", 2, T0) for i in range(5)]

        assert [t.id for t in sort_tasks(tasks)] == ["0", "1", "2", "3", "4"]

    def test_result_is_independent_of_input_order(self):
        tasks = [
            task("A", None, 1, T0 + timedelta(hours=3)),
            task("B", "2026-03-05", 3, T0 + timedelta(hours=1)),
            task("C", "2026-03-01", 2, T0),
            task("D", "2026-03-01", 3, T0 + timedelta(hours=2)),
        ]

        assert [t.id for t in sort_tasks(list(reversed(tasks)))] == ["D", "C", "B", "A"]
