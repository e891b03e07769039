import logging
import time

from django.conf import settings
from django.db import DatabaseError, connection
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

logger = logging.getLogger("taskhub")


class HealthCheckView(APIView):
    """
    GET /api/health

    Public uptime check: pings the database and names the storage adapter
    the services are configured with. Answers 503 when the database is down.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        started = time.perf_counter()

        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1")
            database = "up"
        except DatabaseError:
            logger.warning("Health check could not reach the database", exc_info=True)
            database = "down"

        healthy = database == "up"
        return Response(
            {
                "status": "ok" if healthy else "degraded",
                "database": database,
                "store": settings.TASKHUB_STORE.rsplit(".", 1)[-1],
                "env": settings.ENV,
                "latency_ms": round((time.perf_counter() - started) * 1000, 1),
            },
            status=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        )
