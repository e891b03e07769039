from django.utils import timezone
from rest_framework import serializers

from users.serializers import UserSummarySerializer

from .models import PRIORITY_CHOICES, Project, Task, TaskComment


class DynamicFieldsModelSerializer(serializers.ModelSerializer):
    """
    Takes an optional `fields` argument restricting the rendered fields.
    Unknown names are ignored and `id` is always kept.
    """

    def __init__(self, *args, **kwargs):
        fields = kwargs.pop('fields', None)
        super().__init__(*args, **kwargs)

        if fields:
            allowed = set(fields) | {'id'}
            for field_name in set(self.fields) - allowed:
                self.fields.pop(field_name)


# ---- read side --------------------------------------------------------


class ProjectSerializer(DynamicFieldsModelSerializer):
    owner = UserSummarySerializer(read_only=True)
    members = UserSummarySerializer(many=True, read_only=True)

    class Meta:
        model = Project
        fields = [
            'id',
            'name',
            'description',
            'status',
            'priority',
            'start_date',
            'end_date',
            'owner',
            'members',
            'tags',
            'category',
            'budget',
            'completion_percentage',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class CommentSerializer(serializers.ModelSerializer):
    author = UserSummarySerializer(read_only=True)

    class Meta:
        model = TaskComment
        fields = ['id', 'text', 'author', 'created_at']
        read_only_fields = fields


class TaskSerializer(DynamicFieldsModelSerializer):
    project_name = serializers.CharField(source='project.name', read_only=True)
    assigned_to = UserSummarySerializer(read_only=True)
    created_by = UserSummarySerializer(read_only=True)
    dependencies = serializers.SerializerMethodField()
    comments = CommentSerializer(many=True, read_only=True)

    class Meta:
        model = Task
        fields = [
            'id',
            'title',
            'description',
            'status',
            'priority',
            'due_date',
            'project',
            'project_name',
            'assigned_to',
            'created_by',
            'dependencies',
            'estimated_hours',
            'actual_hours',
            'tags',
            'attachments',
            'comments',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_dependencies(self, obj):
        return sorted(obj.dependency_ids)


# ---- write side -------------------------------------------------------
# Plain serializers: they only validate. Writes go through the services.


class ProjectUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    description = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=Project.STATUS_CHOICES, required=False)
    priority = serializers.ChoiceField(choices=PRIORITY_CHOICES, required=False)
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False, allow_null=True)
    tags = serializers.ListField(child=serializers.CharField(max_length=50), required=False)
    category = serializers.CharField(max_length=100, required=False, allow_blank=True)
    budget = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)


class ProjectCreateSerializer(ProjectUpdateSerializer):
    members = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        source='member_ids',
        required=False,
    )


class ProjectMemberSerializer(serializers.Serializer):
    user_id = serializers.IntegerField(min_value=1)


class AttachmentSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    path = serializers.CharField(max_length=500)
    uploaded_at = serializers.DateTimeField(required=False)

    def validate(self, attrs):
        # PATCH runs partial, which skips required checks on nested fields
        missing = [name for name in ('name', 'path') if name not in attrs]
        if missing:
            raise serializers.ValidationError({name: 'This field is required.' for name in missing})

        # stored as JSON, so the timestamp is kept in ISO 8601
        uploaded_at = attrs.get('uploaded_at') or timezone.now()
        return {'name': attrs['name'], 'path': attrs['path'], 'uploaded_at': uploaded_at.isoformat()}


class TaskUpdateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=100)
    description = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=Task.STATUS_CHOICES, required=False)
    priority = serializers.ChoiceField(choices=PRIORITY_CHOICES, required=False)
    due_date = serializers.DateField(required=False, allow_null=True)
    assigned_to = serializers.IntegerField(source='assigned_to_id', required=False, allow_null=True)
    dependencies = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        source='dependency_ids',
        required=False,
    )
    estimated_hours = serializers.DecimalField(
        max_digits=7, decimal_places=2, min_value=0, required=False, allow_null=True
    )
    actual_hours = serializers.DecimalField(
        max_digits=7, decimal_places=2, min_value=0, required=False, allow_null=True
    )
    tags = serializers.ListField(child=serializers.CharField(max_length=50), required=False)
    attachments = AttachmentSerializer(many=True, required=False)


class TaskCreateSerializer(TaskUpdateSerializer):
    project = serializers.IntegerField(source='project_id', min_value=1)


class CommentCreateSerializer(serializers.Serializer):
    text = serializers.CharField(max_length=2000)
