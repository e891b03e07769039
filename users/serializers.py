from rest_framework import serializers

from .models import User


ROLE_CHOICES = [User.ROLE_ADMIN, User.ROLE_MANAGER, User.ROLE_USER]


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            'id',
            'name',
            'email',
            'role',
            'department',
            'job_title',
            'is_active',
            'last_login',
            'date_joined',
            'updated_at',
        ]
        read_only_fields = fields


class UserSummarySerializer(serializers.ModelSerializer):
    """Compact form used when a user is nested inside a project or task."""

    class Meta:
        model = User
        fields = ['id', 'name', 'email', 'role']
        read_only_fields = fields


class UpdateMeSerializer(serializers.Serializer):
    # Passwords and roles have their own endpoints
    name = serializers.CharField(max_length=100, required=False)
    department = serializers.CharField(max_length=100, required=False, allow_blank=True)
    job_title = serializers.CharField(max_length=100, required=False, allow_blank=True)

    def validate(self, attrs):
        unknown = set(self.initial_data) - set(self.fields)
        if unknown & {'password', 'role', 'email'}:
            raise serializers.ValidationError(
                "This route is not for password, email or role updates."
            )
        return attrs


class AdminUserCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=8)
    role = serializers.ChoiceField(choices=ROLE_CHOICES, required=False)
    department = serializers.CharField(max_length=100, required=False, allow_blank=True)
    job_title = serializers.CharField(max_length=100, required=False, allow_blank=True)


class AdminUserUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100, required=False)
    role = serializers.ChoiceField(choices=ROLE_CHOICES, required=False)
    department = serializers.CharField(max_length=100, required=False, allow_blank=True)
    job_title = serializers.CharField(max_length=100, required=False, allow_blank=True)
    is_active = serializers.BooleanField(required=False)


class PasswordResetSerializer(serializers.Serializer):
    password = serializers.CharField(write_only=True, min_length=8)
