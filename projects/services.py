# projects/services.py
"""
Application services for projects and tasks.

Every operation follows the same order: load the target fresh from the
store, authorize it through the policies, validate the input, write, and
for task writes recompute the parent project's completion percentage in
the same transaction.
"""
import logging

from rest_framework.exceptions import ValidationError

from core.errors import DuplicateMember, EntityNotFound, Forbidden, InvalidOperation

from .completion import CompletionEngine
from .models import Task
from .policies import AccessMode, ProjectPolicy, TaskPolicy
from .querying import Condition, OP_EQ
from .stores import get_store

logger = logging.getLogger("taskhub.projects")


def _check_date_order(start, end):
    if start and end and end < start:
        raise ValidationError({"end_date": "End date must be on or after the start date"})


class ProjectService:

    def __init__(self, store=None):
        self.store = store or get_store()

    def _load(self, project_id):
        project = self.store.get_project(project_id)
        if project is None:
            raise EntityNotFound("Project not found")
        return project

    def _check_users_exist(self, user_ids, field):
        missing = [uid for uid in user_ids if self.store.get_user(uid) is None]
        if missing:
            raise ValidationError({field: f"Unknown user id(s): {', '.join(map(str, missing))}"})

    def list(self, actor, query):
        return self.store.select_projects(actor, query)

    def get(self, actor, project_id):
        project = self._load(project_id)
        ProjectPolicy.ensure(actor, project, AccessMode.READ)
        return project

    def create(self, actor, data):
        data = dict(data)
        member_ids = list(dict.fromkeys(data.pop("member_ids", None) or []))
        self._check_users_exist(member_ids, "members")
        _check_date_order(data.get("start_date"), data.get("end_date"))

        # The owner is always a member
        if actor.id not in member_ids:
            member_ids.append(actor.id)

        with self.store.atomic():
            project = self.store.create_project(actor, member_ids, **data)

        logger.info("Project %s created by user %s", project.id, actor.id)
        return project

    def update(self, actor, project_id, data):
        project = self._load(project_id)
        ProjectPolicy.ensure(actor, project, AccessMode.WRITE, "You do not have permission to update this project")

        changes = {k: v for k, v in data.items() if k != "completion_percentage"}
        _check_date_order(
            changes.get("start_date", project.start_date),
            changes.get("end_date", project.end_date),
        )

        with self.store.atomic():
            project = self.store.update_project(project, **changes)

        logger.info("Project %s updated by user %s: %s", project.id, actor.id, sorted(changes))
        return project

    def delete(self, actor, project_id):
        project = self._load(project_id)
        ProjectPolicy.ensure(actor, project, AccessMode.WRITE, "You do not have permission to delete this project")

        removed = self.store.delete_project(project)
        logger.info("Project %s deleted by user %s with %s task(s)", project_id, actor.id, removed)
        return removed

    def add_member(self, actor, project_id, user_id):
        project = self._load(project_id)
        ProjectPolicy.ensure(actor, project, AccessMode.WRITE, "Only the project owner can manage members")

        if self.store.get_user(user_id) is None:
            raise EntityNotFound("User not found")
        if user_id in project.member_ids:
            raise DuplicateMember()

        self.store.add_member(project, user_id)
        logger.info("User %s added to project %s by user %s", user_id, project.id, actor.id)
        return self._load(project.id)

    def remove_member(self, actor, project_id, user_id):
        project = self._load(project_id)
        ProjectPolicy.ensure(actor, project, AccessMode.WRITE, "Only the project owner can manage members")

        if user_id == project.owner_id:
            raise InvalidOperation("Cannot remove the project owner")
        if user_id not in project.member_ids:
            raise EntityNotFound("User is not a member of this project")

        self.store.remove_member(project, user_id)
        logger.info("User %s removed from project %s by user %s", user_id, project.id, actor.id)
        return self._load(project.id)

    def stats(self, actor, project_id):
        project = self._load(project_id)
        ProjectPolicy.ensure(actor, project, AccessMode.READ)

        counts = self.store.task_status_counts(project.id)
        by_status = {status: counts.get(status, 0) for status, _ in Task.STATUS_CHOICES}
        return {
            "total_tasks": sum(by_status.values()),
            "tasks_by_status": by_status,
            "completion_percentage": project.completion_percentage,
        }


class TaskService:

    def __init__(self, store=None, completion=None):
        self.store = store or get_store()
        self.completion = completion or CompletionEngine(self.store)

    def _load(self, task_id):
        task = self.store.get_task(task_id)
        if task is None:
            raise EntityNotFound("Task not found")
        return task, self.store.get_project(task.project_id)

    def _check_assignee(self, data):
        assignee_id = data.get("assigned_to_id")
        if assignee_id is not None and self.store.get_user(assignee_id) is None:
            raise ValidationError({"assigned_to": "User not found"})

    def _check_dependencies(self, project_id, dependency_ids, task_id=None):
        if dependency_ids is None:
            return None
        wanted = set(dependency_ids)
        if task_id is not None and task_id in wanted:
            raise ValidationError({"dependencies": "A task cannot depend on itself"})
        found = self.store.existing_task_ids(project_id, wanted)
        if found != wanted:
            missing = sorted(wanted - found)
            raise ValidationError({
                "dependencies": f"Tasks not found in this project: {', '.join(map(str, missing))}"
            })
        return wanted

    def list(self, actor, query):
        return self.store.select_tasks(actor, query)

    def my_tasks(self, actor, query):
        query = query.with_condition(Condition(field="assigned_to_id", op=OP_EQ, value=actor.id))
        return self.store.select_tasks(actor, query)

    def get(self, actor, task_id):
        task, project = self._load(task_id)
        TaskPolicy.ensure(actor, task, project, AccessMode.READ)
        return task

    def create(self, actor, data):
        data = dict(data)
        project_id = data.pop("project_id", None)
        project = self.store.get_project(project_id) if project_id is not None else None
        if project is None:
            raise EntityNotFound("Project not found")

        if not ProjectPolicy.can_create_task(actor, project):
            raise Forbidden("You do not have permission to create tasks in this project")

        self._check_assignee(data)
        dependency_ids = self._check_dependencies(project.id, data.pop("dependency_ids", None)) or ()

        with self.store.atomic():
            task = self.store.create_task(
                project_id=project.id,
                created_by_id=actor.id,
                dependency_ids=dependency_ids,
                **data,
            )
            self.completion.recompute_after_mutation(project.id)

        logger.info("Task %s created in project %s by user %s", task.id, project.id, actor.id)
        return task

    def update(self, actor, task_id, data):
        task, project = self._load(task_id)
        TaskPolicy.ensure(actor, task, project, AccessMode.WRITE, "You do not have permission to update this task")

        changes = dict(data)
        self._check_assignee(changes)
        dependency_ids = self._check_dependencies(
            task.project_id, changes.pop("dependency_ids", None), task_id=task.id
        )

        project_id = task.project_id
        with self.store.atomic():
            task = self.store.update_task(task, dependency_ids=dependency_ids, **changes)
            self.completion.recompute_after_mutation(project_id)

        logger.info("Task %s updated by user %s: %s", task.id, actor.id, sorted(changes))
        return task

    def delete(self, actor, task_id):
        task, project = self._load(task_id)
        TaskPolicy.ensure(actor, task, project, AccessMode.WRITE, "You do not have permission to delete this task")

        project_id = task.project_id
        with self.store.atomic():
            self.store.delete_task(task)
            self.completion.recompute_after_mutation(project_id)

        logger.info("Task %s deleted by user %s", task_id, actor.id)

    def add_comment(self, actor, task_id, text):
        task, project = self._load(task_id)
        TaskPolicy.ensure(actor, task, project, AccessMode.COMMENT, "You do not have permission to comment on this task")

        self.store.add_comment(task, actor, text)
        return self.store.get_task(task.id)
