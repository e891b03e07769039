# authx/authentication.py
# DRF authentication class for the HS256 session tokens issued at login

from rest_framework.authentication import BaseAuthentication

from .services import IdentityService


class BearerTokenAuthentication(BaseAuthentication):
    """
    Reads `Authorization: Bearer <token>`.

    No header means anonymous; the IsAuthenticated permission then answers
    with missing_token. A header with a bad token is rejected outright.
    """
    keyword = "Bearer"

    def authenticate(self, request):
        auth_header = request.headers.get("Authorization", "")

        if not auth_header.startswith(f"{self.keyword} "):
            return None

        token = auth_header[len(self.keyword) + 1:].strip()
        if not token:
            return None

        user = IdentityService().resolve_session(token)
        return (user, token)

    def authenticate_header(self, request):
        return f'{self.keyword} realm="api"'
