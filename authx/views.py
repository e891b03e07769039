from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from users.serializers import UserSerializer

from .authentication import BearerTokenAuthentication
from .serializers import LoginSerializer, RegisterSerializer, UpdatePasswordSerializer
from .services import IdentityService


def session_response(identity, user, status_code=status.HTTP_200_OK):
    """{token, user} body shared by register, login and password change."""
    return Response(
        {
            "token": identity.issue_session(user),
            "user": UserSerializer(user).data,
        },
        status=status_code,
    )


class PublicAPIView(APIView):
    """
    Unauthenticated endpoint that can still answer 401.

    DRF downgrades AuthenticationFailed to 403 when the view has no
    WWW-Authenticate challenge, so keep advertising the Bearer scheme.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get_authenticate_header(self, request):
        return BearerTokenAuthentication().authenticate_header(request)


class RegisterView(PublicAPIView):
    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        identity = IdentityService()
        user = identity.register(**serializer.validated_data)
        return session_response(identity, user, status.HTTP_201_CREATED)


class LoginView(PublicAPIView):
    # a stale Authorization header is ignored here
    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        identity = IdentityService()
        user = identity.authenticate(
            serializer.validated_data["email"],
            serializer.validated_data["password"],
        )
        return session_response(identity, user)


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)


class UpdatePasswordView(APIView):
    permission_classes = [IsAuthenticated]

    def patch(self, request):
        serializer = UpdatePasswordSerializer(data=request.data, context={"user": request.user})
        serializer.is_valid(raise_exception=True)

        identity = IdentityService()
        user = identity.change_password(
            request.user,
            serializer.validated_data["current_password"],
            serializer.validated_data["new_password"],
        )
        return session_response(identity, user)
