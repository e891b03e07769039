"""
List queries for projects and tasks.

Client query parameters are turned into a typed ListQuery against a
per-entity whitelist: only declared fields can be filtered or sorted, and
range operators are only accepted on orderable field types.

    status=active                  equality
    due_date[gte]=2024-01-01       range
    sort=-priority,due_date        multi-key sort, "-" for descending
    fields=id,title,status         projection
    page=2&limit=20                1-indexed pagination
"""
import re
from dataclasses import dataclass, replace
from datetime import datetime, time
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional, Tuple

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from rest_framework.exceptions import ValidationError

from .models import PRIORITY_CHOICES, Project, Task


KIND_CHOICE = "choice"
KIND_TEXT = "text"
KIND_INT = "int"
KIND_DECIMAL = "decimal"
KIND_DATE = "date"
KIND_DATETIME = "datetime"
KIND_REF = "ref"

ORDERABLE_KINDS = {KIND_INT, KIND_DECIMAL, KIND_DATE, KIND_DATETIME}

OP_EQ = "eq"
RANGE_OPERATORS = ("gt", "gte", "lt", "lte")

RESERVED_PARAMS = ("page", "sort", "limit", "fields")

MAX_LIMIT = 100

_PARAM_RE = re.compile(r"^(?P<name>[a-z_]+)(?:\[(?P<op>[a-z]+)\])?$")


@dataclass(frozen=True)
class FieldSpec:
    name: str
    kind: str
    attr: Optional[str] = None
    choices: Tuple[str, ...] = ()

    @property
    def target(self) -> str:
        return self.attr or self.name

    @property
    def orderable(self) -> bool:
        return self.kind in ORDERABLE_KINDS


@dataclass(frozen=True)
class Condition:
    field: str
    op: str
    value: object


@dataclass(frozen=True)
class EntitySchema:
    name: str
    fields: Dict[str, FieldSpec]
    default_sort: Tuple[Tuple[str, bool], ...]
    default_limit: int
    reserved: Tuple[str, ...] = RESERVED_PARAMS


@dataclass(frozen=True)
class ListQuery:
    entity: str
    conditions: Tuple[Condition, ...] = ()
    ordering: Tuple[Tuple[str, bool], ...] = ()
    fields: Optional[Tuple[str, ...]] = None
    page: int = 1
    limit: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def with_condition(self, condition: Condition) -> "ListQuery":
        return replace(self, conditions=self.conditions + (condition,))


def _spec(name, kind, attr=None, choices=()):
    return FieldSpec(name=name, kind=kind, attr=attr, choices=tuple(choices))


_PRIORITIES = [value for value, _ in PRIORITY_CHOICES]

PROJECT_SCHEMA = EntitySchema(
    name="project",
    fields={
        spec.name: spec
        for spec in (
            _spec("name", KIND_TEXT),
            _spec("status", KIND_CHOICE, choices=[v for v, _ in Project.STATUS_CHOICES]),
            _spec("priority", KIND_CHOICE, choices=_PRIORITIES),
            _spec("category", KIND_TEXT),
            _spec("owner", KIND_REF, attr="owner_id"),
            _spec("start_date", KIND_DATE),
            _spec("end_date", KIND_DATE),
            _spec("budget", KIND_DECIMAL),
            _spec("completion_percentage", KIND_INT),
            _spec("created_at", KIND_DATETIME),
            _spec("updated_at", KIND_DATETIME),
        )
    },
    default_sort=(("created_at", True),),
    default_limit=10,
)

TASK_SCHEMA = EntitySchema(
    name="task",
    fields={
        spec.name: spec
        for spec in (
            _spec("title", KIND_TEXT),
            _spec("status", KIND_CHOICE, choices=[v for v, _ in Task.STATUS_CHOICES]),
            _spec("priority", KIND_CHOICE, choices=_PRIORITIES),
            _spec("assigned_to", KIND_REF, attr="assigned_to_id"),
            _spec("created_by", KIND_REF, attr="created_by_id"),
            _spec("due_date", KIND_DATE),
            _spec("estimated_hours", KIND_DECIMAL),
            _spec("actual_hours", KIND_DECIMAL),
            _spec("created_at", KIND_DATETIME),
            _spec("updated_at", KIND_DATETIME),
        )
    },
    default_sort=(("created_at", True),),
    default_limit=20,
    reserved=RESERVED_PARAMS + ("project",),
)

# "my tasks" lists soonest due first
MY_TASKS_SORT = (("due_date", False),)


# ---- value parsing ----------------------------------------------------


def _parse_value(spec: FieldSpec, raw: str):
    raw = raw.strip()

    if spec.kind == KIND_CHOICE:
        if raw not in spec.choices:
            raise ValueError(f"Must be one of: {', '.join(spec.choices)}")
        return raw

    if spec.kind == KIND_TEXT:
        return raw

    if spec.kind in (KIND_INT, KIND_REF):
        try:
            return int(raw)
        except ValueError:
            raise ValueError("A whole number is required")

    if spec.kind == KIND_DECIMAL:
        try:
            return Decimal(raw)
        except InvalidOperation:
            raise ValueError("A number is required")

    if spec.kind == KIND_DATE:
        parsed = parse_date(raw)
        if parsed is None:
            raise ValueError("Date must be YYYY-MM-DD")
        return parsed

    if spec.kind == KIND_DATETIME:
        parsed = parse_datetime(raw)
        if parsed is None:
            day = parse_date(raw)
            if day is None:
                raise ValueError("Datetime must be ISO 8601")
            parsed = datetime.combine(day, time.min)
        if timezone.is_naive(parsed):
            parsed = timezone.make_aware(parsed, timezone.get_current_timezone())
        return parsed

    raise ValueError(f"Unsupported field kind {spec.kind}")


def _positive_int(raw, default: int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value >= 1 else default


def _split_csv(raw) -> Tuple[str, ...]:
    if not raw:
        return ()
    return tuple(part.strip() for part in str(raw).split(",") if part.strip())


# ---- builders ---------------------------------------------------------


def parse_conditions(params, schema: EntitySchema) -> Tuple[Condition, ...]:
    conditions = []
    errors = {}

    for key in params.keys():
        if key in schema.reserved:
            continue

        match = _PARAM_RE.match(key)
        if not match:
            continue

        spec = schema.fields.get(match.group("name"))
        if spec is None:
            # Unknown fields are ignored, never forwarded to storage
            continue

        op = match.group("op") or OP_EQ
        if op != OP_EQ and op not in RANGE_OPERATORS:
            errors[key] = f"Unsupported operator '{op}'"
            continue
        if op in RANGE_OPERATORS and not spec.orderable:
            errors[key] = f"Range operators are not supported on '{spec.name}'"
            continue

        try:
            value = _parse_value(spec, params.get(key) or "")
        except ValueError as exc:
            errors[key] = str(exc)
            continue

        conditions.append(Condition(field=spec.target, op=op, value=value))

    if errors:
        raise ValidationError(errors)

    return tuple(conditions)


def parse_ordering(raw, schema: EntitySchema, default=None) -> Tuple[Tuple[str, bool], ...]:
    keys = _split_csv(raw)
    if not keys:
        ordering = tuple(default or schema.default_sort)
    else:
        ordering = []
        unknown = []
        for key in keys:
            descending = key.startswith("-")
            name = key.lstrip("-")
            spec = schema.fields.get(name)
            if spec is None:
                unknown.append(name)
                continue
            ordering.append((spec.target, descending))
        if unknown:
            raise ValidationError({"sort": f"Cannot sort by: {', '.join(unknown)}"})
        ordering = tuple(ordering)

    # id keeps pages stable when every other key ties
    if not any(name == "id" for name, _ in ordering):
        ordering = ordering + (("id", ordering[-1][1]),)
    return ordering


def build_list_query(params, schema: EntitySchema, default_sort=None) -> ListQuery:
    conditions = parse_conditions(params, schema)

    if schema is TASK_SCHEMA and params.get("project"):
        try:
            project_id = int(params.get("project"))
        except (TypeError, ValueError):
            raise ValidationError({"project": "A valid project id is required"})
        conditions = conditions + (Condition(field="project_id", op=OP_EQ, value=project_id),)

    fields = _split_csv(params.get("fields"))

    limit = min(_positive_int(params.get("limit"), schema.default_limit), MAX_LIMIT)

    return ListQuery(
        entity=schema.name,
        conditions=conditions,
        ordering=parse_ordering(params.get("sort"), schema, default=default_sort),
        fields=fields or None,
        page=_positive_int(params.get("page"), 1),
        limit=limit,
    )
