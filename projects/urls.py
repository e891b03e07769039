from django.urls import re_path

from .views import (
    MyTasksView,
    ProjectDetailView,
    ProjectListCreateView,
    ProjectMemberDetailView,
    ProjectMembersView,
    ProjectStatsView,
    TaskCommentsView,
    TaskDetailView,
    TaskListCreateView,
)

urlpatterns = [
    # Projects
    re_path(r"^projects/?$", ProjectListCreateView.as_view(), name="project-list"),
    re_path(r"^projects/(?P<pk>\d+)/?$", ProjectDetailView.as_view(), name="project-detail"),
    re_path(r"^projects/(?P<pk>\d+)/members/?$", ProjectMembersView.as_view(), name="project-members"),
    re_path(
        r"^projects/(?P<pk>\d+)/members/(?P<user_id>\d+)/?$",
        ProjectMemberDetailView.as_view(),
        name="project-member-detail",
    ),
    re_path(r"^projects/(?P<pk>\d+)/stats/?$", ProjectStatsView.as_view(), name="project-stats"),

    # Tasks; my-tasks before the id route
    re_path(r"^tasks/?$", TaskListCreateView.as_view(), name="task-list"),
    re_path(r"^tasks/my-tasks/?$", MyTasksView.as_view(), name="task-my-tasks"),
    re_path(r"^tasks/(?P<pk>\d+)/?$", TaskDetailView.as_view(), name="task-detail"),
    re_path(r"^tasks/(?P<pk>\d+)/comments/?$", TaskCommentsView.as_view(), name="task-comments"),
]
