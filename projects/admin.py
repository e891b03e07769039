from django.contrib import admin

from .models import Project, Task, TaskComment


class TaskInline(admin.TabularInline):
    model = Task
    fk_name = "project"
    extra = 0
    fields = ("title", "status", "priority", "assigned_to", "due_date")


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ("name", "owner", "status", "priority", "completion_percentage", "created_at")
    list_filter = ("status", "priority")
    search_fields = ("name", "description", "owner__email")
    # Derived from the tasks; the completion engine owns it
    readonly_fields = ("completion_percentage", "created_at", "updated_at")
    filter_horizontal = ("members",)
    inlines = [TaskInline]


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ("title", "project", "status", "priority", "assigned_to", "due_date")
    list_filter = ("status", "priority")
    search_fields = ("title", "description")
    raw_id_fields = ("project", "assigned_to", "created_by")


@admin.register(TaskComment)
class TaskCommentAdmin(admin.ModelAdmin):
    list_display = ("task", "author", "created_at")
    raw_id_fields = ("task", "author")
