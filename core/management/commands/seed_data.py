from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from projects.models import Project, Task
from projects.services import ProjectService, TaskService
from projects.stores import DjangoStore

User = get_user_model()


USERS = [
    {
        "name": "Admin User",
        "email": "admin@example.com",
        "password": "Admin123!",
        "role": User.ROLE_ADMIN,
        "department": "Management",
        "job_title": "System Administrator",
    },
    {
        "name": "John Doe",
        "email": "john@example.com",
        "password": "Password123!",
        "role": User.ROLE_MANAGER,
        "department": "Engineering",
        "job_title": "Project Manager",
    },
    {
        "name": "Jane Smith",
        "email": "jane@example.com",
        "password": "Password123!",
        "role": User.ROLE_USER,
        "department": "Engineering",
        "job_title": "Software Developer",
    },
]

PROJECTS = [
    {
        "name": "Website Redesign",
        "description": "Redesign the company website with modern UI/UX principles",
        "days": 30,
        "status": Project.STATUS_ACTIVE,
        "priority": "high",
        "tags": ["website", "design", "frontend"],
        "category": "Web Development",
        "budget": Decimal("15000"),
    },
    {
        "name": "Mobile App Development",
        "description": "Develop a mobile app for both iOS and Android platforms",
        "days": 60,
        "status": Project.STATUS_PLANNING,
        "priority": "medium",
        "tags": ["mobile", "app", "development"],
        "category": "Mobile Development",
        "budget": Decimal("25000"),
    },
    {
        "name": "Database Migration",
        "description": "Migrate legacy database to new cloud infrastructure",
        "days": 15,
        "status": Project.STATUS_ON_HOLD,
        "priority": "high",
        "tags": ["database", "migration", "cloud"],
        "category": "Infrastructure",
        "budget": Decimal("10000"),
    },
]

TASKS = [
    {
        "title": "Design Homepage Mockup",
        "description": "Create mockup designs for the new homepage",
        "days": 7,
        "status": Task.STATUS_IN_PROGRESS,
        "priority": "high",
        "estimated_hours": Decimal("10"),
        "tags": ["design", "ui", "homepage"],
    },
    {
        "title": "Implement Authentication",
        "description": "Implement user authentication and authorization",
        "days": 10,
        "status": Task.STATUS_TODO,
        "priority": "high",
        "estimated_hours": Decimal("15"),
        "tags": ["security", "authentication"],
    },
    {
        "title": "Database Schema Design",
        "description": "Design the database schema for the new system",
        "days": 5,
        "status": Task.STATUS_COMPLETED,
        "priority": "medium",
        "estimated_hours": Decimal("8"),
        "actual_hours": Decimal("10"),
        "tags": ["database", "schema"],
    },
    {
        "title": "API Documentation",
        "description": "Create documentation for the REST API endpoints",
        "days": 15,
        "status": Task.STATUS_TODO,
        "priority": "low",
        "estimated_hours": Decimal("12"),
        "tags": ["documentation", "api"],
    },
]


class Command(BaseCommand):
    help = "Seeds the database with sample users, projects and tasks"

    def add_arguments(self, parser):
        parser.add_argument(
            "--flush",
            action="store_true",
            help="Delete existing projects and tasks first",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write("🌱 Seeding data...")

        if options["flush"]:
            deleted, _ = Project.objects.all().delete()
            self.stdout.write(f"Cleared {deleted} project/task rows")

        # 1. Users
        users = []
        for data in USERS:
            data = dict(data)
            password = data.pop("password")
            user, created = User.objects.get_or_create(email=data["email"], defaults=data)
            if created or not user.check_password(password):
                user.set_password(password)
                user.save()
            users.append(user)
        admin, manager, member = users
        self.stdout.write(f"Users ready: {', '.join(u.email for u in users)}")

        # 2. Projects, all owned by the admin
        store = DjangoStore()
        project_service = ProjectService(store)
        task_service = TaskService(store)
        today = timezone.localdate()

        projects = []
        for data in PROJECTS:
            data = dict(data)
            days = data.pop("days")
            project = Project.objects.filter(name=data["name"], owner=admin).first()
            if project is None:
                project = project_service.create(
                    admin,
                    dict(data, start_date=today, end_date=today + timedelta(days=days),
                         member_ids=[manager.id, member.id]),
                )
            projects.append(project)
        self.stdout.write(f"Projects ready: {len(projects)}")

        # 3. Tasks, round-robin over the projects, assigned to the plain user
        created = 0
        for i, data in enumerate(TASKS):
            data = dict(data)
            days = data.pop("days")
            project = projects[i % len(projects)]
            if Task.objects.filter(project=project, title=data["title"]).exists():
                continue
            task_service.create(
                admin,
                dict(data, project_id=project.id, due_date=today + timedelta(days=days),
                     assigned_to_id=member.id),
            )
            created += 1

        self.stdout.write(self.style.SUCCESS(f"✅ Seeding complete ({created} new tasks)"))
