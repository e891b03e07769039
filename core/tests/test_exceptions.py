from django.core.exceptions import PermissionDenied
from django.http import Http404
from django.test import SimpleTestCase
from rest_framework import exceptions

from core.exceptions import DuplicateMember, InvalidCredentials, custom_exception_handler


class ExceptionHandlerTests(SimpleTestCase):
    def handle(self, exc):
        return custom_exception_handler(exc, {})

    def test_domain_error_shape(self):
        resp = self.handle(DuplicateMember())
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.data, {
            "success": False,
            "status_code": 409,
            "errors": {"kind": "duplicate_member", "message": "User is already a member of this project"},
        })

    def test_validation_error_carries_fields(self):
        resp = self.handle(exceptions.ValidationError({"name": ["This field is required."]}))
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data["errors"]["kind"], "validation_error")
        self.assertEqual(resp.data["errors"]["fields"], {"name": ["This field is required."]})

    def test_django_errors_are_translated(self):
        self.assertEqual(self.handle(Http404()).data["errors"]["kind"], "not_found")
        self.assertEqual(self.handle(PermissionDenied()).data["errors"]["kind"], "forbidden")

    def test_authentication_error(self):
        resp = self.handle(InvalidCredentials())
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.data["errors"]["message"], "Incorrect email or password")

    def test_unhandled_error_hides_details(self):
        with self.assertLogs("taskhub", level="ERROR"):
            resp = self.handle(RuntimeError("database password is hunter2"))
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.data["errors"], {"kind": "internal_error", "message": "Internal server error."})
        self.assertNotIn("hunter2", str(resp.data))
