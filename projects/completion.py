# projects/completion.py
"""
Keeps Project.completion_percentage in step with the project's tasks.

    completion_percentage = round(100 * completed / total), 0 when total == 0

Every task create, update or delete calls recompute_after_mutation() with
the project id captured before the mutation, inside the same transaction
as the task write. A failed recomputation is logged and never undoes the
task write; the next successful recomputation repairs the value.
"""
import logging

from django.db import DatabaseError

from .models import Task

logger = logging.getLogger("taskhub.projects")


class RecomputeError(Exception):
    pass


def completion_percentage(total: int, completed: int) -> int:
    """Whole-number percentage, halves rounded up."""
    if total <= 0:
        return 0
    return (200 * completed + total) // (2 * total)


class CompletionEngine:

    def __init__(self, store):
        self.store = store

    def recompute(self, project_id) -> int:
        """
        Recompute from the current task set and write only the derived column.

        Raises RecomputeError if the project no longer exists or the write fails.
        """
        try:
            with self.store.lock_project(project_id):
                counts = self.store.task_status_counts(project_id)
                total = sum(counts.values())
                completed = counts.get(Task.STATUS_COMPLETED, 0)
                percentage = completion_percentage(total, completed)

                if not self.store.set_completion(project_id, percentage):
                    raise RecomputeError(f"Project {project_id} no longer exists")
        except DatabaseError as exc:
            raise RecomputeError(str(exc)) from exc

        logger.debug(
            "Project %s completion: %s/%s tasks -> %s%%",
            project_id, completed, total, percentage,
        )
        return percentage

    def recompute_after_mutation(self, project_id):
        """
        Best-effort hook for task writes. Returns the new percentage, or None
        when recomputation failed.
        """
        if project_id is None:
            return None

        try:
            # Savepoint so a failed recompute leaves the outer transaction usable
            with self.store.atomic():
                return self.recompute(project_id)
        except RecomputeError:
            logger.exception("Failed to recompute completion for project %s", project_id)
            return None
