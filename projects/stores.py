"""
Storage port for users, projects and tasks.

The services only talk to a store. DjangoStore is the ORM-backed adapter
used by the API; InMemoryStore keeps plain records in dicts and is used by
unit tests that must not touch the database.
"""
import contextlib
import itertools
import logging
import operator
import threading
from collections import Counter, defaultdict
from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, F, Q
from django.utils import timezone
from django.utils.module_loading import import_string

from .models import Project, Task, TaskComment
from .policies import AccessMode, ProjectPolicy, TaskPolicy, is_admin
from .records import CommentRecord, ProjectRecord, TaskRecord, UserRecord

logger = logging.getLogger("taskhub.projects")

User = get_user_model()


class BaseStore:
    """Primitives the identity, authorization and consistency layers rely on."""

    # ---- transactions -------------------------------------------------

    def atomic(self):
        raise NotImplementedError

    def lock_project(self, project_id):
        raise NotImplementedError

    # ---- users --------------------------------------------------------

    def get_user(self, user_id):
        raise NotImplementedError

    def get_user_by_email(self, email):
        raise NotImplementedError

    def create_user(self, *, email, name, password, role, department="", job_title=""):
        raise NotImplementedError

    def update_user(self, user, **changes):
        raise NotImplementedError

    def touch_last_login(self, user):
        raise NotImplementedError

    def list_users(self):
        raise NotImplementedError

    # ---- projects -----------------------------------------------------

    def get_project(self, project_id):
        raise NotImplementedError

    def create_project(self, owner, member_ids, **fields):
        raise NotImplementedError

    def update_project(self, project, **changes):
        raise NotImplementedError

    def delete_project(self, project) -> int:
        """Delete the project and its tasks; returns the number of tasks removed."""
        raise NotImplementedError

    def add_member(self, project, user_id):
        raise NotImplementedError

    def remove_member(self, project, user_id):
        raise NotImplementedError

    def set_completion(self, project_id, percentage) -> bool:
        """Write only the derived column. False when the project is gone."""
        raise NotImplementedError

    def select_projects(self, actor, query):
        raise NotImplementedError

    # ---- tasks --------------------------------------------------------

    def get_task(self, task_id):
        raise NotImplementedError

    def create_task(self, *, dependency_ids=(), **fields):
        raise NotImplementedError

    def update_task(self, task, *, dependency_ids=None, **changes):
        raise NotImplementedError

    def delete_task(self, task):
        raise NotImplementedError

    def add_comment(self, task, author, text):
        raise NotImplementedError

    def task_status_counts(self, project_id) -> dict:
        raise NotImplementedError

    def existing_task_ids(self, project_id, task_ids) -> set:
        raise NotImplementedError

    def select_tasks(self, actor, query):
        raise NotImplementedError


def get_store() -> BaseStore:
    store_class = import_string(settings.TASKHUB_STORE)
    return store_class()


# ---------------------------------------------------------------------
# Django ORM adapter
# ---------------------------------------------------------------------


def _lookup(condition) -> dict:
    if condition.op == "eq":
        return {condition.field: condition.value}
    return {f"{condition.field}__{condition.op}": condition.value}


def _order_by(ordering):
    return [
        F(name).desc(nulls_last=True) if descending else F(name).asc(nulls_last=True)
        for name, descending in ordering
    ]


class DjangoStore(BaseStore):

    def atomic(self):
        return transaction.atomic()

    @contextlib.contextmanager
    def lock_project(self, project_id):
        with transaction.atomic():
            # Serialises recomputations of the same project
            list(Project.objects.select_for_update().filter(pk=project_id).values_list("pk", flat=True))
            yield

    # ---- users --------------------------------------------------------

    def get_user(self, user_id):
        return User.objects.filter(pk=user_id).first()

    def get_user_by_email(self, email):
        return User.objects.filter(email__iexact=email).first()

    def create_user(self, *, email, name, password, role, department="", job_title=""):
        return User.objects.create(
            email=email,
            name=name,
            password=password,
            role=role,
            department=department or "",
            job_title=job_title or "",
        )

    def update_user(self, user, **changes):
        for attr, value in changes.items():
            setattr(user, attr, value)
        user.save(update_fields=list(changes) + ["updated_at"])
        return user

    def touch_last_login(self, user):
        user.last_login = timezone.now()
        User.objects.filter(pk=user.pk).update(last_login=user.last_login)

    def list_users(self):
        return User.objects.order_by("id")

    # ---- projects -----------------------------------------------------

    def _projects(self):
        return Project.objects.select_related("owner").prefetch_related("members")

    def get_project(self, project_id):
        return self._projects().filter(pk=project_id).first()

    def create_project(self, owner, member_ids, **fields):
        project = Project.objects.create(owner=owner, **fields)
        project.members.set(member_ids)
        return self.get_project(project.pk)

    def update_project(self, project, **changes):
        if not changes:
            return project
        for attr, value in changes.items():
            setattr(project, attr, value)
        # update_fields keeps a stale completion_percentage from being written back
        project.save(update_fields=list(changes) + ["updated_at"])
        return project

    def delete_project(self, project):
        with transaction.atomic():
            tasks = Task.objects.filter(project_id=project.pk)
            # delete() also counts cascaded comments and dependency links
            removed = tasks.count()
            tasks.delete()
            project.delete()
        return removed

    def add_member(self, project, user_id):
        project.members.add(user_id)
        return project

    def remove_member(self, project, user_id):
        project.members.remove(user_id)
        return project

    def set_completion(self, project_id, percentage):
        # queryset.update() skips model validation, save() and signals
        return Project.objects.filter(pk=project_id).update(completion_percentage=percentage) > 0

    def _visible_project_ids(self, actor):
        memberships = Project.members.through.objects.filter(user_id=actor.id).values("project_id")
        return Project.objects.filter(Q(owner_id=actor.id) | Q(pk__in=memberships)).values("pk")

    def _select(self, qs, query):
        for condition in query.conditions:
            qs = qs.filter(**_lookup(condition))
        total = qs.count()
        qs = qs.order_by(*_order_by(query.ordering))
        return list(qs[query.offset:query.offset + query.limit]), total

    def select_projects(self, actor, query):
        qs = self._projects()
        if not is_admin(actor):
            qs = qs.filter(pk__in=self._visible_project_ids(actor))
        return self._select(qs, query)

    # ---- tasks --------------------------------------------------------

    def _tasks(self):
        return (
            Task.objects
            .select_related("project", "assigned_to", "created_by")
            .prefetch_related("dependencies", "comments__author")
        )

    def get_task(self, task_id):
        return self._tasks().filter(pk=task_id).first()

    def create_task(self, *, dependency_ids=(), **fields):
        task = Task.objects.create(**fields)
        if dependency_ids:
            task.dependencies.set(dependency_ids)
        return self.get_task(task.pk)

    def update_task(self, task, *, dependency_ids=None, **changes):
        if changes:
            for attr, value in changes.items():
                setattr(task, attr, value)
            task.save(update_fields=list(changes) + ["updated_at"])
        if dependency_ids is not None:
            task.dependencies.set(dependency_ids)
        return self.get_task(task.pk)

    def delete_task(self, task):
        Task.objects.filter(pk=task.pk).delete()

    def add_comment(self, task, author, text):
        return TaskComment.objects.create(task_id=task.pk, author_id=author.id, text=text)

    def task_status_counts(self, project_id):
        rows = (
            Task.objects
            .filter(project_id=project_id)
            .values("status")
            .annotate(count=Count("id"))
            .order_by()
        )
        return {row["status"]: row["count"] for row in rows}

    def existing_task_ids(self, project_id, task_ids):
        return set(
            Task.objects
            .filter(project_id=project_id, pk__in=list(task_ids))
            .values_list("pk", flat=True)
        )

    def select_tasks(self, actor, query):
        qs = self._tasks()
        if not is_admin(actor):
            qs = qs.filter(
                Q(created_by_id=actor.id)
                | Q(assigned_to_id=actor.id)
                | Q(project_id__in=self._visible_project_ids(actor))
            )
        return self._select(qs, query)


# ---------------------------------------------------------------------
# In-memory adapter
# ---------------------------------------------------------------------

_OPERATORS = {
    "eq": operator.eq,
    "gt": operator.gt,
    "gte": operator.ge,
    "lt": operator.lt,
    "lte": operator.le,
}


def _matches(record, condition) -> bool:
    value = getattr(record, condition.field, None)
    if value is None:
        return condition.op == "eq" and condition.value is None
    return _OPERATORS[condition.op](value, condition.value)


def _sorted(records, ordering):
    items = list(records)
    # Stable sorts applied from the last key to the first; None sorts last
    for name, descending in reversed(ordering):
        present = [r for r in items if getattr(r, name, None) is not None]
        missing = [r for r in items if getattr(r, name, None) is None]
        present.sort(key=lambda r: getattr(r, name), reverse=descending)
        items = present + missing
    return items


class InMemoryStore(BaseStore):

    def __init__(self):
        self.users = {}
        self.projects = {}
        self.tasks = {}
        self._ids = defaultdict(lambda: itertools.count(1))
        self._locks = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    def _next_id(self, kind):
        return next(self._ids[kind])

    def atomic(self):
        return contextlib.nullcontext()

    @contextlib.contextmanager
    def lock_project(self, project_id):
        with self._locks_guard:
            lock = self._locks[project_id]
        with lock:
            yield

    # ---- users --------------------------------------------------------

    def get_user(self, user_id):
        return self.users.get(user_id)

    def get_user_by_email(self, email):
        for user in self.users.values():
            if user.email.lower() == email.lower():
                return user
        return None

    def create_user(self, *, email, name, password, role, department="", job_title=""):
        user = UserRecord(
            id=self._next_id("user"),
            email=email,
            name=name,
            password=password,
            role=role,
            department=department or "",
            job_title=job_title or "",
        )
        self.users[user.id] = user
        return user

    def update_user(self, user, **changes):
        for attr, value in changes.items():
            setattr(user, attr, value)
        user.updated_at = timezone.now()
        return user

    def touch_last_login(self, user):
        user.last_login = timezone.now()

    def list_users(self):
        return sorted(self.users.values(), key=lambda u: u.id)

    # ---- projects -----------------------------------------------------

    def get_project(self, project_id):
        return self.projects.get(project_id)

    def create_project(self, owner, member_ids, **fields):
        project = ProjectRecord(
            id=self._next_id("project"),
            owner_id=owner.id,
            member_ids=set(member_ids),
            **fields,
        )
        self.projects[project.id] = project
        return project

    def update_project(self, project, **changes):
        for attr, value in changes.items():
            setattr(project, attr, value)
        project.updated_at = timezone.now()
        return project

    def delete_project(self, project):
        doomed = [t.id for t in self.tasks.values() if t.project_id == project.id]
        for task_id in doomed:
            del self.tasks[task_id]
        self.projects.pop(project.id, None)
        return len(doomed)

    def add_member(self, project, user_id):
        project.member_ids.add(user_id)
        return project

    def remove_member(self, project, user_id):
        project.member_ids.discard(user_id)
        return project

    def set_completion(self, project_id, percentage):
        project = self.projects.get(project_id)
        if project is None:
            return False
        project.completion_percentage = percentage
        return True

    def select_projects(self, actor, query):
        visible = [
            p for p in self.projects.values()
            if ProjectPolicy.can_access(actor, p, AccessMode.READ)
        ]
        return self._select(visible, query)

    def _select(self, records, query):
        matching = [r for r in records if all(_matches(r, c) for c in query.conditions)]
        ordered = _sorted(matching, query.ordering)
        return ordered[query.offset:query.offset + query.limit], len(matching)

    # ---- tasks --------------------------------------------------------

    def get_task(self, task_id):
        return self.tasks.get(task_id)

    def create_task(self, *, dependency_ids=(), **fields):
        task = TaskRecord(
            id=self._next_id("task"),
            dependency_ids=set(dependency_ids),
            **fields,
        )
        self.tasks[task.id] = task
        return task

    def update_task(self, task, *, dependency_ids=None, **changes):
        for attr, value in changes.items():
            setattr(task, attr, value)
        if dependency_ids is not None:
            task.dependency_ids = set(dependency_ids)
        task.updated_at = timezone.now()
        return task

    def delete_task(self, task):
        self.tasks.pop(task.id, None)
        for other in self.tasks.values():
            other.dependency_ids.discard(task.id)

    def add_comment(self, task, author, text):
        comment = CommentRecord(
            id=self._next_id("comment"),
            task_id=task.id,
            author_id=author.id,
            text=text,
        )
        task.comments.append(comment)
        return comment

    def task_status_counts(self, project_id):
        return dict(Counter(t.status for t in self.tasks.values() if t.project_id == project_id))

    def existing_task_ids(self, project_id, task_ids):
        wanted = set(task_ids)
        return {t.id for t in self.tasks.values() if t.project_id == project_id and t.id in wanted}

    def select_tasks(self, actor, query):
        visible = [
            t for t in self.tasks.values()
            if TaskPolicy.can_access(actor, t, self.projects.get(t.project_id), AccessMode.READ)
        ]
        return self._select(visible, query)
