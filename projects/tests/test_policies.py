from django.test import SimpleTestCase

from core.exceptions import Forbidden
from projects.policies import AccessMode, ProjectPolicy, TaskPolicy
from projects.records import ProjectRecord, TaskRecord, UserRecord


def make_user(uid, role="user"):
    return UserRecord(id=uid, email=f"u{uid}@example.com", name=f"User {uid}", password="!", role=role)


class ProjectPolicyTests(SimpleTestCase):
    def setUp(self):
        self.owner = make_user(1)
        self.member = make_user(2)
        self.outsider = make_user(3)
        self.admin = make_user(4, role="admin")
        self.manager = make_user(5, role="manager")
        self.project = ProjectRecord(id=10, name="P", owner_id=1, member_ids={1, 2})

    def test_admin_can_do_everything(self):
        for mode in AccessMode:
            self.assertTrue(ProjectPolicy.can_access(self.admin, self.project, mode))

    def test_owner_can_do_everything(self):
        for mode in AccessMode:
            self.assertTrue(ProjectPolicy.can_access(self.owner, self.project, mode))

    def test_member_reads_but_does_not_write(self):
        self.assertTrue(ProjectPolicy.can_access(self.member, self.project, AccessMode.READ))
        self.assertTrue(ProjectPolicy.can_access(self.member, self.project, AccessMode.COMMENT))
        self.assertFalse(ProjectPolicy.can_access(self.member, self.project, AccessMode.WRITE))

    def test_outsider_is_denied(self):
        for mode in (AccessMode.READ, AccessMode.WRITE):
            self.assertFalse(ProjectPolicy.can_access(self.outsider, self.project, mode))

    def test_manager_role_grants_nothing_extra(self):
        self.assertFalse(ProjectPolicy.can_access(self.manager, self.project, AccessMode.READ))

    def test_owner_not_listed_as_member_still_has_access(self):
        project = ProjectRecord(id=11, name="Q", owner_id=1, member_ids=set())
        self.assertTrue(ProjectPolicy.can_access(self.owner, project, AccessMode.WRITE))

    def test_only_writers_create_tasks(self):
        self.assertTrue(ProjectPolicy.can_create_task(self.owner, self.project))
        self.assertTrue(ProjectPolicy.can_create_task(self.admin, self.project))
        self.assertFalse(ProjectPolicy.can_create_task(self.member, self.project))

    def test_ensure_raises_forbidden(self):
        with self.assertRaises(Forbidden):
            ProjectPolicy.ensure(self.outsider, self.project, AccessMode.READ)
        ProjectPolicy.ensure(self.member, self.project, "read")


class TaskPolicyTests(SimpleTestCase):
    def setUp(self):
        self.owner = make_user(1)
        self.member = make_user(2)
        self.creator = make_user(3)
        self.assignee = make_user(4)
        self.outsider = make_user(5)
        self.project = ProjectRecord(id=10, name="P", owner_id=1, member_ids={1, 2})
        self.task = TaskRecord(id=20, title="T", project_id=10, created_by_id=3, assigned_to_id=4)

    def test_creator_and_assignee_can_write(self):
        for actor in (self.creator, self.assignee, self.owner):
            self.assertTrue(TaskPolicy.can_access(actor, self.task, self.project, AccessMode.WRITE))

    def test_member_reads_but_does_not_write(self):
        self.assertTrue(TaskPolicy.can_access(self.member, self.task, self.project, AccessMode.READ))
        self.assertTrue(TaskPolicy.can_access(self.member, self.task, self.project, AccessMode.COMMENT))
        self.assertFalse(TaskPolicy.can_access(self.member, self.task, self.project, AccessMode.WRITE))

    def test_outsider_is_denied(self):
        for mode in (AccessMode.READ, AccessMode.WRITE):
            self.assertFalse(TaskPolicy.can_access(self.outsider, self.task, self.project, mode))

    def test_unassigned_task_does_not_match_anyone_as_assignee(self):
        task = TaskRecord(id=21, title="U", project_id=10, created_by_id=3)
        self.assertFalse(TaskPolicy.is_assignee(self.assignee, task))

    def test_admin_can_write(self):
        admin = make_user(9, role="admin")
        self.assertTrue(TaskPolicy.can_access(admin, self.task, self.project, AccessMode.WRITE))

    def test_ensure_raises_forbidden(self):
        with self.assertRaises(Forbidden):
            TaskPolicy.ensure(self.member, self.task, self.project, AccessMode.WRITE)
