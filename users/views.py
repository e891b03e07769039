# users/views.py - profile and admin user management

import logging

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authx.services import IdentityService
from core.errors import EntityNotFound
from projects.stores import get_store

from .permissions import IsAdminRole
from .serializers import (
    AdminUserCreateSerializer,
    AdminUserUpdateSerializer,
    PasswordResetSerializer,
    UpdateMeSerializer,
    UserSerializer,
)

logger = logging.getLogger("taskhub.auth")


def _get_user_or_404(store, user_id):
    user = store.get_user(int(user_id))
    if user is None:
        raise EntityNotFound("User not found")
    return user


class UpdateMeView(APIView):
    """
    PATCH /api/users/update-me
    Body: {name?, department?, job_title?}
    """
    permission_classes = [IsAuthenticated]

    def patch(self, request):
        serializer = UpdateMeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = get_store().update_user(request.user, **serializer.validated_data)
        return Response(UserSerializer(user).data)


class DeleteMeView(APIView):
    """
    DELETE /api/users/delete-me
    Deactivates the caller's account.
    """
    permission_classes = [IsAuthenticated]

    def delete(self, request):
        IdentityService().deactivate(request.user, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)


class UserListCreateView(APIView):
    permission_classes = [IsAuthenticated, IsAdminRole]

    def get(self, request):
        users = get_store().list_users()
        return Response(UserSerializer(users, many=True).data)

    def post(self, request):
        serializer = AdminUserCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = IdentityService().register(**serializer.validated_data)
        logger.info("Admin %s created user %s", request.user.id, user.id)
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


class UserDetailView(APIView):
    permission_classes = [IsAuthenticated, IsAdminRole]

    def get(self, request, pk):
        user = _get_user_or_404(get_store(), pk)
        return Response(UserSerializer(user).data)

    def patch(self, request, pk):
        store = get_store()
        user = _get_user_or_404(store, pk)

        serializer = AdminUserUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = store.update_user(user, **serializer.validated_data)
        logger.info("Admin %s updated user %s: %s", request.user.id, user.id, sorted(serializer.validated_data))
        return Response(UserSerializer(user).data)

    def delete(self, request, pk):
        identity = IdentityService()
        user = _get_user_or_404(identity.store, pk)
        identity.deactivate(request.user, user)
        return Response(status=status.HTTP_204_NO_CONTENT)


class UserPasswordResetView(APIView):
    """
    POST /api/users/<id>/reset-password
    Privileged reset: no current password required.
    """
    permission_classes = [IsAuthenticated, IsAdminRole]

    def post(self, request, pk):
        identity = IdentityService()
        user = _get_user_or_404(identity.store, pk)

        serializer = PasswordResetSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        identity.reset_password(request.user, user, serializer.validated_data["password"])
        return Response({"message": "Password reset successfully"})
