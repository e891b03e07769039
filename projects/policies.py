# projects/policies.py
"""
Centralized access policy for projects and tasks.

All permission checks for project/task operations are defined here.
Services call these methods instead of inline permission logic, and every
check is evaluated against the freshly loaded entity.
"""
import enum
import logging

from core.errors import Forbidden

logger = logging.getLogger("taskhub.projects")


ROLE_ADMIN = "admin"


class AccessMode(str, enum.Enum):
    READ = "read"
    WRITE = "write"
    COMMENT = "comment"


def is_admin(actor) -> bool:
    return getattr(actor, "role", None) == ROLE_ADMIN


class ProjectPolicy:
    """
    admin → everything.
    read/comment → owner or member.
    write (update, delete, manage members, create tasks) → owner only.
    """

    @staticmethod
    def is_owner(actor, project) -> bool:
        return project.owner_id == actor.id

    @staticmethod
    def is_member(actor, project) -> bool:
        return actor.id in project.member_ids

    @staticmethod
    def can_access(actor, project, mode) -> bool:
        if actor is None or project is None:
            return False

        if is_admin(actor):
            return True

        if ProjectPolicy.is_owner(actor, project):
            return True

        if AccessMode(mode) == AccessMode.WRITE:
            # Membership alone never grants write
            return False

        return ProjectPolicy.is_member(actor, project)

    @staticmethod
    def can_create_task(actor, project) -> bool:
        return ProjectPolicy.can_access(actor, project, AccessMode.WRITE)

    @staticmethod
    def ensure(actor, project, mode, message=None):
        if not ProjectPolicy.can_access(actor, project, mode):
            logger.info(
                "Denied %s on project %s for user %s",
                AccessMode(mode).value, project.id, getattr(actor, "id", None),
            )
            raise Forbidden(message or "You do not have permission to access this project")


class TaskPolicy:
    """
    admin → everything.
    read/comment → creator, assignee, project owner or project member.
    write (update, delete) → creator, assignee or project owner.
    """

    @staticmethod
    def is_creator(actor, task) -> bool:
        return task.created_by_id == actor.id

    @staticmethod
    def is_assignee(actor, task) -> bool:
        return task.assigned_to_id is not None and task.assigned_to_id == actor.id

    @staticmethod
    def can_access(actor, task, project, mode) -> bool:
        if actor is None or task is None:
            return False

        if is_admin(actor):
            return True

        if TaskPolicy.is_creator(actor, task) or TaskPolicy.is_assignee(actor, task):
            return True

        if project is None:
            return False

        if ProjectPolicy.is_owner(actor, project):
            return True

        if AccessMode(mode) == AccessMode.WRITE:
            return False

        return ProjectPolicy.is_member(actor, project)

    @staticmethod
    def ensure(actor, task, project, mode, message=None):
        if not TaskPolicy.can_access(actor, task, project, mode):
            logger.info(
                "Denied %s on task %s for user %s",
                AccessMode(mode).value, task.id, getattr(actor, "id", None),
            )
            raise Forbidden(message or "You do not have permission to access this task")
