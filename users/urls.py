# users/urls.py

from django.urls import re_path

from .views import DeleteMeView, UpdateMeView, UserDetailView, UserListCreateView, UserPasswordResetView

urlpatterns = [
    re_path(r"^update-me/?$", UpdateMeView.as_view(), name="user-update-me"),
    re_path(r"^delete-me/?$", DeleteMeView.as_view(), name="user-delete-me"),
    re_path(r"^(?P<pk>\d+)/reset-password/?$", UserPasswordResetView.as_view(), name="user-reset-password"),
    re_path(r"^(?P<pk>\d+)/?$", UserDetailView.as_view(), name="user-detail"),
    re_path(r"^$", UserListCreateView.as_view(), name="user-list"),
]
