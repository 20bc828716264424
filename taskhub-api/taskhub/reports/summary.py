from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, Iterable

from taskhub.models.task import Task, TaskStatus, TaskPriority
from taskhub.utils.helpers import utc_isoformat

UNASSIGNED = 'Unassigned'


def count_statuses(tasks: Iterable[Task], now: datetime) -> Dict[str, int]:
    """ Task counts by status plus the overdue count (due before `now` and not done) """
    counts = Counter()
    for task in tasks:
        counts['total'] += 1
        counts[task.status] += 1
        if task.is_overdue(now):
            counts['overdue'] += 1

    return {
        'total': counts['total'],
        'completed': counts[TaskStatus.DONE],
        'inProgress': counts[TaskStatus.IN_PROGRESS],
        'todo': counts[TaskStatus.TODO],
        'overdue': counts['overdue'],
    }


def build_project_summary(tasks: Iterable[Task], now: datetime = None) -> Dict[str, int]:
    """ Summary served (and cached) by the project summary endpoint """
    return count_statuses(tasks, now or datetime.utcnow())


def build_report_summary(tasks, assignee_names: Dict[str, str], now: datetime = None) -> dict:
    """
    Full summary stored on a completed report.

    assignee_names maps user ids to display names, tasks without an assignee (or whose assignee
    no longer exists) are grouped under UNASSIGNED.
    """
    now = now or datetime.utcnow()
    week_ago = now - timedelta(days=7)
    tasks = list(tasks)

    statuses = count_statuses(tasks, now)

    by_priority = Counter(task.priority for task in tasks)
    by_assignee = Counter(assignee_names.get(task.assignee) or UNASSIGNED for task in tasks)
    completed_this_week = sum(
        1 for task in tasks
        if task.status == TaskStatus.DONE and task.updated_at and task.updated_at >= week_ago
    )

    return {
        'totalTasks': statuses['total'],
        'completedTasks': statuses['completed'],
        'inProgressTasks': statuses['inProgress'],
        'todoTasks': statuses['todo'],
        'overdueTasks': statuses['overdue'],
        'completedThisWeek': completed_this_week,
        'tasksByPriority': {
            'high': by_priority[TaskPriority.HIGH],
            'medium': by_priority[TaskPriority.MEDIUM],
            'low': by_priority[TaskPriority.LOW],
            'none': by_priority[None],
        },
        'tasksByAssignee': dict(by_assignee),
        'generatedAt': utc_isoformat(now),
    }
