from django.db import connection
from django.db.utils import OperationalError
from django.http import HttpRequest, JsonResponse


def health_check(_request: HttpRequest) -> JsonResponse:
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
    except OperationalError:
        return JsonResponse({"status": "degraded", "database": "unavailable"}, status=503)
    return JsonResponse({"status": "ok"})
