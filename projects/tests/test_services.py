"""
Service-level behaviour against the in-memory store: no database involved.
"""
from datetime import date

from django.http import QueryDict
from django.test import SimpleTestCase
from rest_framework.exceptions import ValidationError

from core.exceptions import DuplicateMember, EntityNotFound, Forbidden, InvalidOperation
from projects.querying import MY_TASKS_SORT, PROJECT_SCHEMA, TASK_SCHEMA, build_list_query
from projects.services import ProjectService, TaskService
from projects.stores import InMemoryStore


class ServiceTestCase(SimpleTestCase):
    def setUp(self):
        self.store = InMemoryStore()
        self.projects = ProjectService(self.store)
        self.tasks = TaskService(self.store)

        self.u1 = self.make_user("u1@example.com")
        self.u2 = self.make_user("u2@example.com")
        self.u3 = self.make_user("u3@example.com")
        self.admin = self.make_user("admin@example.com", role="admin")

    def make_user(self, email, role="user"):
        return self.store.create_user(email=email, name=email.split("@")[0], password="!", role=role)

    def completion(self, project):
        return self.store.get_project(project.id).completion_percentage


class CompletionScenarioTests(ServiceTestCase):
    def test_completion_follows_task_mutations(self):
        project = self.projects.create(self.u1, {"name": "P"})

        t1 = self.tasks.create(self.u1, {"project_id": project.id, "title": "T1", "status": "todo"})
        self.assertEqual(self.completion(project), 0)

        self.tasks.update(self.u1, t1.id, {"status": "completed"})
        self.assertEqual(self.completion(project), 100)

        t2 = self.tasks.create(self.u1, {"project_id": project.id, "title": "T2", "status": "todo"})
        self.assertEqual(self.completion(project), 50)

        self.tasks.delete(self.u1, t2.id)
        self.assertEqual(self.completion(project), 100)

        self.tasks.delete(self.u1, t1.id)
        self.assertEqual(self.completion(project), 0)

    def test_update_cannot_set_completion_directly(self):
        project = self.projects.create(self.u1, {"name": "P"})
        self.projects.update(self.u1, project.id, {"completion_percentage": 90, "name": "Q"})
        project = self.store.get_project(project.id)
        self.assertEqual(project.completion_percentage, 0)
        self.assertEqual(project.name, "Q")

    def test_failed_recompute_keeps_the_task(self):
        project = self.projects.create(self.u1, {"name": "P"})

        def boom(project_id, percentage):
            return False

        self.store.set_completion = boom
        with self.assertLogs("taskhub.projects", level="ERROR"):
            task = self.tasks.create(self.u1, {"project_id": project.id, "title": "T"})
        self.assertIsNotNone(self.store.get_task(task.id))


class ProjectServiceTests(ServiceTestCase):
    def setUp(self):
        super().setUp()
        self.project = self.projects.create(self.u1, {"name": "P"})

    def test_owner_is_added_as_member(self):
        self.assertEqual(self.project.owner_id, self.u1.id)
        self.assertEqual(self.project.member_ids, {self.u1.id})

    def test_create_with_unknown_member_fails(self):
        with self.assertRaises(ValidationError):
            self.projects.create(self.u1, {"name": "X", "member_ids": [999]})

    def test_end_date_before_start_date_fails(self):
        with self.assertRaises(ValidationError):
            self.projects.create(self.u1, {
                "name": "X", "start_date": date(2024, 5, 1), "end_date": date(2024, 4, 1),
            })
        with self.assertRaises(ValidationError):
            self.projects.update(self.u1, self.project.id, {"end_date": date(2000, 1, 1)})

    def test_outsider_cannot_read_or_write(self):
        with self.assertRaises(Forbidden):
            self.projects.get(self.u2, self.project.id)
        with self.assertRaises(Forbidden):
            self.projects.update(self.u2, self.project.id, {"name": "Hijacked"})
        self.assertEqual(self.store.get_project(self.project.id).name, "P")

    def test_member_reads_but_cannot_write(self):
        self.projects.add_member(self.u1, self.project.id, self.u2.id)
        self.assertEqual(self.projects.get(self.u2, self.project.id).id, self.project.id)
        with self.assertRaises(Forbidden):
            self.projects.update(self.u2, self.project.id, {"name": "Nope"})
        with self.assertRaises(Forbidden):
            self.projects.add_member(self.u2, self.project.id, self.u3.id)

    def test_missing_project(self):
        with self.assertRaises(EntityNotFound):
            self.projects.get(self.u1, 999)

    def test_duplicate_member(self):
        self.projects.add_member(self.u1, self.project.id, self.u2.id)
        with self.assertRaises(DuplicateMember):
            self.projects.add_member(self.u1, self.project.id, self.u2.id)

    def test_add_unknown_user(self):
        with self.assertRaises(EntityNotFound):
            self.projects.add_member(self.u1, self.project.id, 999)

    def test_owner_cannot_be_removed(self):
        self.projects.add_member(self.u1, self.project.id, self.u2.id)
        with self.assertRaises(InvalidOperation):
            self.projects.remove_member(self.u1, self.project.id, self.u1.id)
        self.assertEqual(self.store.get_project(self.project.id).member_ids, {self.u1.id, self.u2.id})

    def test_remove_member(self):
        self.projects.add_member(self.u1, self.project.id, self.u2.id)
        project = self.projects.remove_member(self.u1, self.project.id, self.u2.id)
        self.assertEqual(project.member_ids, {self.u1.id})
        with self.assertRaises(EntityNotFound):
            self.projects.remove_member(self.u1, self.project.id, self.u2.id)

    def test_delete_cascades_to_tasks(self):
        task = self.tasks.create(self.u1, {"project_id": self.project.id, "title": "T"})
        removed = self.projects.delete(self.u1, self.project.id)
        self.assertEqual(removed, 1)
        self.assertIsNone(self.store.get_project(self.project.id))
        self.assertIsNone(self.store.get_task(task.id))

    def test_stats(self):
        for status in ("todo", "todo", "completed"):
            self.tasks.create(self.u1, {"project_id": self.project.id, "title": status, "status": status})
        stats = self.projects.stats(self.u1, self.project.id)
        self.assertEqual(stats["total_tasks"], 3)
        self.assertEqual(stats["tasks_by_status"], {
            "todo": 2, "in-progress": 0, "review": 0, "completed": 1,
        })
        self.assertEqual(stats["completion_percentage"], 33)

    def test_list_is_scoped(self):
        other = self.projects.create(self.u2, {"name": "Other"})
        query = build_list_query(QueryDict(""), PROJECT_SCHEMA)

        items, total = self.projects.list(self.u1, query)
        self.assertEqual([p.id for p in items], [self.project.id])
        self.assertEqual(total, 1)

        items, total = self.projects.list(self.admin, build_list_query(QueryDict(""), PROJECT_SCHEMA))
        self.assertCountEqual([p.id for p in items], [self.project.id, other.id])


class TaskServiceTests(ServiceTestCase):
    def setUp(self):
        super().setUp()
        self.project = self.projects.create(self.u1, {"name": "P"})
        self.projects.add_member(self.u1, self.project.id, self.u2.id)
        self.task = self.tasks.create(self.u1, {"project_id": self.project.id, "title": "T"})

    def test_member_cannot_create_tasks(self):
        with self.assertRaises(Forbidden):
            self.tasks.create(self.u2, {"project_id": self.project.id, "title": "X"})

    def test_create_in_missing_project(self):
        with self.assertRaises(EntityNotFound):
            self.tasks.create(self.u1, {"project_id": 999, "title": "X"})

    def test_member_reads_but_cannot_write(self):
        self.assertEqual(self.tasks.get(self.u2, self.task.id).id, self.task.id)
        with self.assertRaises(Forbidden):
            self.tasks.update(self.u2, self.task.id, {"status": "completed"})
        with self.assertRaises(Forbidden):
            self.tasks.delete(self.u2, self.task.id)
        self.assertEqual(self.store.get_task(self.task.id).status, "todo")

    def test_assignee_can_write(self):
        self.tasks.update(self.u1, self.task.id, {"assigned_to_id": self.u3.id})
        task = self.tasks.update(self.u3, self.task.id, {"status": "review"})
        self.assertEqual(task.status, "review")

    def test_outsider_is_denied(self):
        with self.assertRaises(Forbidden):
            self.tasks.get(self.u3, self.task.id)
        with self.assertRaises(Forbidden):
            self.tasks.add_comment(self.u3, self.task.id, "hi")

    def test_unknown_assignee(self):
        with self.assertRaises(ValidationError):
            self.tasks.update(self.u1, self.task.id, {"assigned_to_id": 999})

    def test_dependencies_must_share_the_project(self):
        other_project = self.projects.create(self.u1, {"name": "Other"})
        foreign = self.tasks.create(self.u1, {"project_id": other_project.id, "title": "F"})
        with self.assertRaises(ValidationError):
            self.tasks.create(self.u1, {
                "project_id": self.project.id, "title": "X", "dependency_ids": [foreign.id],
            })
        with self.assertRaises(ValidationError):
            self.tasks.update(self.u1, self.task.id, {"dependency_ids": [self.task.id]})

        dependent = self.tasks.create(self.u1, {
            "project_id": self.project.id, "title": "D", "dependency_ids": [self.task.id],
        })
        self.assertEqual(dependent.dependency_ids, {self.task.id})

    def test_member_can_comment(self):
        task = self.tasks.add_comment(self.u2, self.task.id, "Looks good")
        self.assertEqual([c.text for c in task.comments], ["Looks good"])
        self.assertEqual(task.comments[0].author_id, self.u2.id)

    def test_my_tasks_only_lists_assigned_tasks(self):
        later = self.tasks.create(self.u1, {
            "project_id": self.project.id, "title": "Later",
            "assigned_to_id": self.u2.id, "due_date": date(2030, 1, 2),
        })
        sooner = self.tasks.create(self.u1, {
            "project_id": self.project.id, "title": "Sooner",
            "assigned_to_id": self.u2.id, "due_date": date(2030, 1, 1),
        })
        undated = self.tasks.create(self.u1, {
            "project_id": self.project.id, "title": "Undated", "assigned_to_id": self.u2.id,
        })

        query = build_list_query(QueryDict(""), TASK_SCHEMA, default_sort=MY_TASKS_SORT)
        items, total = self.tasks.my_tasks(self.u2, query)
        self.assertEqual([t.id for t in items], [sooner.id, later.id, undated.id])
        self.assertEqual(total, 3)

    def test_list_filters_sorts_and_paginates(self):
        for i in range(5):
            self.tasks.create(self.u1, {
                "project_id": self.project.id, "title": f"T{i}",
                "priority": "high" if i % 2 else "low",
            })

        query = build_list_query(QueryDict("priority=high&sort=title"), TASK_SCHEMA)
        items, total = self.tasks.list(self.u2, query)
        self.assertEqual([t.title for t in items], ["T1", "T3"])
        self.assertEqual(total, 2)

        query = build_list_query(QueryDict("sort=title&limit=2&page=2"), TASK_SCHEMA)
        items, total = self.tasks.list(self.u1, query)
        self.assertEqual([t.title for t in items], ["T1", "T2"])
        self.assertEqual(total, 6)

        query = build_list_query(QueryDict("limit=2&page=9"), TASK_SCHEMA)
        items, total = self.tasks.list(self.u1, query)
        self.assertEqual(items, [])
        self.assertEqual(total, 6)
