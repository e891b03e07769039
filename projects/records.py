"""
Plain records used by the in-memory store.

Attribute names mirror the ORM models so the policies, the completion
engine and the services can work with either.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Set

from django.utils import timezone


@dataclass
class UserRecord:
    id: int
    email: str
    name: str
    password: str
    role: str = "user"
    department: str = ""
    job_title: str = ""
    is_active: bool = True
    last_login: Optional[datetime] = None
    date_joined: datetime = field(default_factory=timezone.now)
    updated_at: datetime = field(default_factory=timezone.now)

    @property
    def pk(self):
        return self.id

    @property
    def is_authenticated(self):
        return True


@dataclass
class ProjectRecord:
    id: int
    name: str
    owner_id: int
    description: str = ""
    status: str = "planning"
    priority: str = "medium"
    start_date: date = field(default_factory=timezone.localdate)
    end_date: Optional[date] = None
    member_ids: Set[int] = field(default_factory=set)
    tags: List[str] = field(default_factory=list)
    category: str = ""
    budget: Decimal = Decimal("0")
    completion_percentage: int = 0
    created_at: datetime = field(default_factory=timezone.now)
    updated_at: datetime = field(default_factory=timezone.now)

    @property
    def pk(self):
        return self.id


@dataclass
class CommentRecord:
    id: int
    task_id: int
    author_id: int
    text: str
    created_at: datetime = field(default_factory=timezone.now)


@dataclass
class TaskRecord:
    id: int
    title: str
    project_id: int
    created_by_id: int
    description: str = ""
    status: str = "todo"
    priority: str = "medium"
    due_date: Optional[date] = None
    assigned_to_id: Optional[int] = None
    dependency_ids: Set[int] = field(default_factory=set)
    estimated_hours: Optional[Decimal] = None
    actual_hours: Optional[Decimal] = None
    tags: List[str] = field(default_factory=list)
    attachments: List[dict] = field(default_factory=list)
    comments: List[CommentRecord] = field(default_factory=list)
    created_at: datetime = field(default_factory=timezone.now)
    updated_at: datetime = field(default_factory=timezone.now)

    @property
    def pk(self):
        return self.id
