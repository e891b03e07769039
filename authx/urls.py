# authx/urls.py
from django.urls import re_path

from .views import LoginView, MeView, RegisterView, UpdatePasswordView

urlpatterns = [
    re_path(r"^register/?$", RegisterView.as_view(), name="register"),
    re_path(r"^login/?$", LoginView.as_view(), name="login"),
    re_path(r"^me/?$", MeView.as_view(), name="me"),
    re_path(r"^update-password/?$", UpdatePasswordView.as_view(), name="update-password"),
]
