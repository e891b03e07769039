from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .querying import MY_TASKS_SORT, PROJECT_SCHEMA, TASK_SCHEMA, build_list_query
from .serializers import (
    CommentCreateSerializer,
    ProjectCreateSerializer,
    ProjectMemberSerializer,
    ProjectSerializer,
    ProjectUpdateSerializer,
    TaskCreateSerializer,
    TaskSerializer,
    TaskUpdateSerializer,
)
from .services import ProjectService, TaskService


def paginated_response(serializer_class, items, total, query):
    """
    {"count": <items on this page>, "total": <all matches>, "page", "limit", "results"}
    """
    results = serializer_class(items, many=True, fields=query.fields).data
    return Response(
        {
            "count": len(results),
            "total": total,
            "page": query.page,
            "limit": query.limit,
            "results": results,
        }
    )


# -----------------------------
# PROJECTS
# -----------------------------


class ProjectListCreateView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        query = build_list_query(request.query_params, PROJECT_SCHEMA)
        items, total = ProjectService().list(request.user, query)
        return paginated_response(ProjectSerializer, items, total, query)

    def post(self, request):
        serializer = ProjectCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        project = ProjectService().create(request.user, serializer.validated_data)
        return Response(ProjectSerializer(project).data, status=status.HTTP_201_CREATED)


class ProjectDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        project = ProjectService().get(request.user, int(pk))
        return Response(ProjectSerializer(project).data)

    def patch(self, request, pk):
        serializer = ProjectUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        project = ProjectService().update(request.user, int(pk), serializer.validated_data)
        return Response(ProjectSerializer(project).data)

    def delete(self, request, pk):
        ProjectService().delete(request.user, int(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)


class ProjectMembersView(APIView):
    """
    POST /api/projects/<id>/members
    Body: {"user_id": <id>}
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        serializer = ProjectMemberSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        project = ProjectService().add_member(request.user, int(pk), serializer.validated_data["user_id"])
        return Response(ProjectSerializer(project).data, status=status.HTTP_201_CREATED)


class ProjectMemberDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def delete(self, request, pk, user_id):
        project = ProjectService().remove_member(request.user, int(pk), int(user_id))
        return Response(ProjectSerializer(project).data)


class ProjectStatsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        return Response(ProjectService().stats(request.user, int(pk)))


# -----------------------------
# TASKS
# -----------------------------


class TaskListCreateView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        query = build_list_query(request.query_params, TASK_SCHEMA)
        items, total = TaskService().list(request.user, query)
        return paginated_response(TaskSerializer, items, total, query)

    def post(self, request):
        serializer = TaskCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        task = TaskService().create(request.user, serializer.validated_data)
        return Response(TaskSerializer(task).data, status=status.HTTP_201_CREATED)


class MyTasksView(APIView):
    """
    GET /api/tasks/my-tasks
    Tasks assigned to the caller, soonest due first.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        query = build_list_query(request.query_params, TASK_SCHEMA, default_sort=MY_TASKS_SORT)
        items, total = TaskService().my_tasks(request.user, query)
        return paginated_response(TaskSerializer, items, total, query)


class TaskDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        task = TaskService().get(request.user, int(pk))
        return Response(TaskSerializer(task).data)

    def patch(self, request, pk):
        serializer = TaskUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        task = TaskService().update(request.user, int(pk), serializer.validated_data)
        return Response(TaskSerializer(task).data)

    def delete(self, request, pk):
        TaskService().delete(request.user, int(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)


class TaskCommentsView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        serializer = CommentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        task = TaskService().add_comment(request.user, int(pk), serializer.validated_data["text"])
        return Response(TaskSerializer(task).data, status=status.HTTP_201_CREATED)
