from decimal import Decimal, InvalidOperation

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView


class EnvelopeAPIView(APIView):
    permission_classes = [IsAuthenticated]

    @staticmethod
    def _bounded_int(value, *, default: int, min_value: int, max_value: int) -> int:
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            parsed = default
        return max(min_value, min(parsed, max_value))

    @staticmethod
    def _to_decimal(value) -> Decimal:
        try:
            return Decimal(str(value or "0"))
        except (InvalidOperation, TypeError, ValueError):
            return Decimal("0")

    @staticmethod
    def _ok(data=None, status_code=status.HTTP_200_OK, **extra) -> Response:
        return Response({"success": True, "data": data, **extra}, status=status_code)

    @staticmethod
    def _fail(error: str, status_code=status.HTTP_400_BAD_REQUEST, **extra) -> Response:
        return Response({"success": False, "error": error, **extra}, status=status_code)

    def _forbidden(self, accion: str) -> Response:
        return self._fail(f"No tienes permisos para {accion}.", status.HTTP_403_FORBIDDEN)

    def _paginate(self, request, qs, serializer_class, *, default_limit: int = 50, max_limit: int = 500, **context):
        limit = self._bounded_int(request.query_params.get("limit"), default=default_limit, min_value=1, max_value=max_limit)
        offset = self._bounded_int(request.query_params.get("offset"), default=0, min_value=0, max_value=100000)
        total = qs.count()
        rows = list(qs[offset : offset + limit])
        data = serializer_class(rows, many=True, context={"request": request, **context}).data
        return self._ok(data, count=total, limit=limit, offset=offset)

    @staticmethod
    def _optional_id(value):
        """None/"" -> None; un id numérico -> int; cualquier otra cosa -> ValueError."""
        if value in (None, ""):
            return None
        if isinstance(value, bool):
            raise ValueError(value)
        return int(value)

    def _invalid_filters(self, filterset) -> Response:
        errors = filterset.errors.get_json_data()
        details = {field: [error["message"] for error in messages] for field, messages in errors.items()}
        return self._fail("Filtros inválidos.", details=details)
