from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from projects.models import Project, Task, TaskComment
from projects.stores import DjangoStore
from users.models import User


class ProjectApiTestCase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.u1 = User.objects.create_user(email="u1@example.com", name="U1", password="pass12345")
        self.u2 = User.objects.create_user(email="u2@example.com", name="U2", password="pass12345")
        self.admin = User.objects.create_user(
            email="admin@example.com", name="Admin", password="pass12345", role=User.ROLE_ADMIN,
        )

    def auth(self, user):
        self.client.force_authenticate(user=user)

    def create_project(self, user, **data):
        self.auth(user)
        payload = {"name": "Website Redesign"}
        payload.update(data)
        resp = self.client.post("/api/projects", payload, format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.content)
        return resp.json()

    def error_kind(self, resp):
        return resp.json()["errors"]["kind"]

    def test_create_project(self):
        data = self.create_project(self.u1, priority="high", tags=["web"], budget="1500.00")
        self.assertEqual(data["owner"]["id"], self.u1.id)
        self.assertEqual([m["id"] for m in data["members"]], [self.u1.id])
        self.assertEqual(data["status"], Project.STATUS_PLANNING)
        self.assertEqual(data["completion_percentage"], 0)
        self.assertEqual(data["tags"], ["web"])

    def test_create_requires_name(self):
        self.auth(self.u1)
        resp = self.client.post("/api/projects", {"description": "no name"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        body = resp.json()
        self.assertEqual(body["errors"]["kind"], "validation_error")
        self.assertIn("name", body["errors"]["fields"])

    def test_end_before_start_is_rejected(self):
        self.auth(self.u1)
        resp = self.client.post(
            "/api/projects",
            {"name": "P", "start_date": "2024-05-01", "end_date": "2024-04-01"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Project.objects.exists())

    def test_requires_token(self):
        resp = self.client.get("/api/projects")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(self.error_kind(resp), "missing_token")

    def test_trailing_slash_is_optional(self):
        project = self.create_project(self.u1)
        self.assertEqual(self.client.get("/api/projects/").status_code, 200)
        self.assertEqual(self.client.get(f"/api/projects/{project['id']}/").status_code, 200)

    def test_outsider_gets_forbidden_not_hidden(self):
        project = self.create_project(self.u1)
        self.auth(self.u2)

        resp = self.client.get(f"/api/projects/{project['id']}")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.error_kind(resp), "forbidden")

        resp = self.client.get("/api/projects/9999")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.error_kind(resp), "not_found")

    def test_member_can_read_but_not_patch(self):
        project = self.create_project(self.u1)
        url = f"/api/projects/{project['id']}"

        self.auth(self.u2)
        resp = self.client.patch(url, {"name": "Mine now"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        self.auth(self.u1)
        resp = self.client.post(f"{url}/members", {"user_id": self.u2.id}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)

        self.auth(self.u2)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_200_OK)
        resp = self.client.patch(url, {"name": "Mine now"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(Project.objects.get(pk=project["id"]).name, "Website Redesign")

    def test_owner_updates_project(self):
        project = self.create_project(self.u1)
        resp = self.client.patch(
            f"/api/projects/{project['id']}",
            {"status": "active", "completion_percentage": 80},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.json()["status"], "active")
        # derived, never writable
        self.assertEqual(resp.json()["completion_percentage"], 0)

    def test_member_management_errors(self):
        project = self.create_project(self.u1)
        members_url = f"/api/projects/{project['id']}/members"

        self.client.post(members_url, {"user_id": self.u2.id}, format="json")
        resp = self.client.post(members_url, {"user_id": self.u2.id}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(self.error_kind(resp), "duplicate_member")

        resp = self.client.delete(f"{members_url}/{self.u1.id}")
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(self.error_kind(resp), "invalid_operation")
        self.assertEqual(
            set(Project.objects.get(pk=project["id"]).members.values_list("id", flat=True)),
            {self.u1.id, self.u2.id},
        )

        resp = self.client.post(members_url, {"user_id": 9999}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

        resp = self.client.delete(f"{members_url}/{self.u2.id}")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([m["id"] for m in resp.json()["members"]], [self.u1.id])

    def test_member_cannot_manage_members(self):
        project = self.create_project(self.u1)
        self.client.post(f"/api/projects/{project['id']}/members", {"user_id": self.u2.id}, format="json")

        self.auth(self.u2)
        resp = self.client.delete(f"/api/projects/{project['id']}/members/{self.u2.id}")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_cascades(self):
        project = self.create_project(self.u1)
        self.client.post("/api/tasks", {"project": project["id"], "title": "T1"}, format="json")
        self.client.post("/api/tasks", {"project": project["id"], "title": "T2"}, format="json")
        self.assertEqual(Task.objects.count(), 2)

        self.auth(self.u2)
        resp = self.client.delete(f"/api/projects/{project['id']}")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        self.auth(self.u1)
        resp = self.client.delete(f"/api/projects/{project['id']}")
        self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Project.objects.filter(pk=project["id"]).exists())
        self.assertEqual(Task.objects.count(), 0)

    def test_delete_reports_tasks_not_cascaded_rows(self):
        project = self.create_project(self.u1)
        first = self.client.post("/api/tasks", {"project": project["id"], "title": "T1"}, format="json").json()
        self.client.post(
            "/api/tasks", {"project": project["id"], "title": "T2", "dependencies": [first["id"]]}, format="json",
        )
        for text in ("one", "two", "three"):
            self.client.post(f"/api/tasks/{first['id']}/comments", {"text": text}, format="json")

        store = DjangoStore()
        removed = store.delete_project(store.get_project(project["id"]))
        self.assertEqual(removed, 2)
        self.assertFalse(TaskComment.objects.exists())

    def test_admin_can_do_everything(self):
        project = self.create_project(self.u1)
        self.auth(self.admin)
        url = f"/api/projects/{project['id']}"
        self.assertEqual(self.client.get(url).status_code, 200)
        self.assertEqual(self.client.patch(url, {"priority": "urgent"}, format="json").status_code, 200)
        self.assertEqual(self.client.delete(url).status_code, 204)

    def test_stats(self):
        project = self.create_project(self.u1)
        for task_status in ("todo", "completed", "completed"):
            self.client.post(
                "/api/tasks",
                {"project": project["id"], "title": task_status, "status": task_status},
                format="json",
            )

        resp = self.client.get(f"/api/projects/{project['id']}/stats")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.json(), {
            "total_tasks": 3,
            "tasks_by_status": {"todo": 1, "in-progress": 0, "review": 0, "completed": 2},
            "completion_percentage": 67,
        })

        self.auth(self.u2)
        self.assertEqual(self.client.get(f"/api/projects/{project['id']}/stats").status_code, 403)


class ProjectListApiTestCase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.u1 = User.objects.create_user(email="u1@example.com", name="U1", password="pass12345")
        self.u2 = User.objects.create_user(email="u2@example.com", name="U2", password="pass12345")
        self.admin = User.objects.create_user(
            email="admin@example.com", name="Admin", password="pass12345", role=User.ROLE_ADMIN,
        )

        self.mine = []
        for i, (state, budget) in enumerate([("active", 100), ("planning", 200), ("active", 300)]):
            project = Project.objects.create(name=f"Mine {i}", owner=self.u1, status=state, budget=budget)
            project.members.add(self.u1)
            self.mine.append(project)

        shared = Project.objects.create(name="Shared", owner=self.u2)
        shared.members.add(self.u2, self.u1)
        self.shared = shared

        Project.objects.create(name="Hidden", owner=self.u2)

    def list(self, user, qs=""):
        self.client.force_authenticate(user=user)
        resp = self.client.get(f"/api/projects{qs}")
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)
        return resp.json()

    def test_scope(self):
        data = self.list(self.u1)
        names = {p["name"] for p in data["results"]}
        self.assertEqual(names, {"Mine 0", "Mine 1", "Mine 2", "Shared"})
        self.assertEqual(data["total"], 4)

        self.assertEqual(self.list(self.admin)["total"], 5)

    def test_filters_and_sort(self):
        data = self.list(self.u1, "?status=active&sort=-budget")
        self.assertEqual([p["name"] for p in data["results"]], ["Mine 2", "Mine 0"])

        data = self.list(self.u1, "?budget[gte]=200&sort=budget")
        self.assertEqual([p["name"] for p in data["results"]], ["Mine 1", "Mine 2"])

    def test_range_on_enum_is_a_validation_error(self):
        self.client.force_authenticate(user=self.u1)
        resp = self.client.get("/api/projects?priority[gte]=high")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.json()["errors"]["kind"], "validation_error")

    def test_unknown_filters_are_ignored(self):
        data = self.list(self.u1, "?owner__password=x&foo=bar")
        self.assertEqual(data["total"], 4)

    def test_pagination(self):
        data = self.list(self.u1, "?limit=3&page=2&sort=name")
        self.assertEqual(data["count"], 1)
        self.assertEqual(data["total"], 4)
        self.assertEqual((data["page"], data["limit"]), (2, 3))
        self.assertEqual(data["results"][0]["name"], "Shared")

        data = self.list(self.u1, "?limit=abc&page=xyz")
        self.assertEqual((data["page"], data["limit"]), (1, 10))

        data = self.list(self.u1, "?page=50")
        self.assertEqual(data["count"], 0)
        self.assertEqual(data["total"], 4)

    def test_projection(self):
        data = self.list(self.u1, "?fields=name,status,nonsense")
        self.assertEqual(set(data["results"][0]), {"id", "name", "status"})
