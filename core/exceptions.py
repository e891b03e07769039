from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.response import Response
from rest_framework import exceptions, status
import logging

from .errors import (  # noqa: F401  re-exported
    Conflict,
    DuplicateMember,
    EmailInUse,
    EntityNotFound,
    ExpiredToken,
    Forbidden,
    IncorrectPassword,
    InvalidCredentials,
    InvalidOperation,
    InvalidToken,
    MissingToken,
    UserGone,
)

logger = logging.getLogger("taskhub")


# DRF built-ins that surface with a kind of our own
_BUILTIN_KINDS = {
    exceptions.NotAuthenticated: MissingToken.default_code,
    exceptions.PermissionDenied: Forbidden.default_code,
    exceptions.NotFound: EntityNotFound.default_code,
    exceptions.ValidationError: "validation_error",
    exceptions.ParseError: "validation_error",
}


def _kind_for(exc) -> str:
    code = getattr(exc, "default_code", None)
    if type(exc) in _BUILTIN_KINDS:
        return _BUILTIN_KINDS[type(exc)]
    return code or "error"


def _message_for(exc, data) -> str:
    if type(exc) is exceptions.NotAuthenticated:
        return MissingToken.default_detail
    if isinstance(exc, exceptions.ValidationError):
        return "Invalid input."
    if isinstance(data, dict) and "detail" in data:
        return str(data["detail"])
    return str(exc.detail) if hasattr(exc, "detail") else str(exc)


def custom_exception_handler(exc, context):
    """
    Wrap DRF + Django exceptions into a consistent response format.

    Success responses (2xx) are not touched.
    Only errors come through here.
    """
    if isinstance(exc, Http404):
        exc = EntityNotFound()
    elif isinstance(exc, DjangoPermissionDenied):
        exc = Forbidden()

    response = drf_exception_handler(exc, context)

    # If DRF handled it, wrap it
    if response is not None:
        errors = {
            "kind": _kind_for(exc),
            "message": _message_for(exc, response.data),
        }
        if isinstance(exc, exceptions.ValidationError):
            errors["fields"] = response.data
        return Response(
            {
                "success": False,
                "status_code": response.status_code,
                "errors": errors,
            },
            status=response.status_code,
            headers={
                key: value
                for key, value in response.items()
                if key in ("WWW-Authenticate", "Retry-After")
            },
        )

    # Unhandled exceptions -> 500
    logger.exception("Unhandled API exception", exc_info=exc)

    return Response(
        {
            "success": False,
            "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
            "errors": {"kind": "internal_error", "message": "Internal server error."},
        },
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
