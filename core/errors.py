# core/errors.py
# Error taxonomy shared by the services, policies and authentication.
# Only depends on rest_framework.exceptions so it is safe to import while
# DRF is still resolving DEFAULT_AUTHENTICATION_CLASSES.

from rest_framework import exceptions, status

# Every error carries a kind (default_code) and a human readable message.


class InvalidCredentials(exceptions.AuthenticationFailed):
    default_detail = "Incorrect email or password"
    default_code = "invalid_credentials"


class IncorrectPassword(exceptions.AuthenticationFailed):
    default_detail = "Current password is incorrect"
    default_code = "incorrect_password"


class InvalidToken(exceptions.AuthenticationFailed):
    default_detail = "Invalid token. Please log in again."
    default_code = "invalid_token"


class ExpiredToken(exceptions.AuthenticationFailed):
    default_detail = "Your token has expired. Please log in again."
    default_code = "expired_token"


class UserGone(exceptions.AuthenticationFailed):
    default_detail = "The user belonging to this token no longer exists."
    default_code = "user_gone"


class MissingToken(exceptions.NotAuthenticated):
    default_detail = "You are not logged in. Please log in to get access."
    default_code = "missing_token"


class Forbidden(exceptions.PermissionDenied):
    default_detail = "You do not have permission to perform this action"
    default_code = "forbidden"


class EntityNotFound(exceptions.NotFound):
    default_detail = "Resource not found"
    default_code = "not_found"


class Conflict(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"
    default_code = "conflict"


class EmailInUse(Conflict):
    default_detail = "Email already in use"
    default_code = "email_in_use"


class DuplicateMember(Conflict):
    default_detail = "User is already a member of this project"
    default_code = "duplicate_member"


class InvalidOperation(Conflict):
    default_detail = "This operation is not allowed"
    default_code = "invalid_operation"
