from django.contrib import admin
from django.urls import include, path, re_path

from core.views import HealthCheckView

# Every API route accepts an optional trailing slash
urlpatterns = [
    path('admin/', admin.site.urls),
    re_path(r'^api/auth/?', include('authx.urls')),
    re_path(r'^api/users/?', include('users.urls')),
    re_path(r'^api/', include('projects.urls')),
    re_path(r'^api/health/?$', HealthCheckView.as_view(), name="health-check"),
]
