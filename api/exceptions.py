"""
Respuestas de error con la misma forma que las de éxito:

    {"success": false, "error": "<mensaje>", "details": {...}}

`details` sólo aparece en errores de validación.
"""
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from crm.pipeline import PipelineError
from inventario.ledger import StockError
from proyectos.workflow import WorkflowError

logger = logging.getLogger(__name__)

DOMAIN_ERRORS = (StockError, WorkflowError, PipelineError)
INTERNAL_ERROR = "Error interno del servidor."


def first_message(detail) -> str:
    if isinstance(detail, dict):
        for key, value in detail.items():
            message = first_message(value)
            if key in ("non_field_errors", "detail"):
                return message
            return f"{key}: {message}"
        return ""
    if isinstance(detail, (list, tuple)):
        return first_message(detail[0]) if detail else ""
    return str(detail)


def envelope_exception_handler(exc, context):
    if isinstance(exc, DOMAIN_ERRORS):
        return Response({"success": False, "error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, DjangoValidationError):
        return Response({"success": False, "error": " ".join(exc.messages)}, status=status.HTTP_400_BAD_REQUEST)

    response = exception_handler(exc, context)
    if response is None:
        view = context.get("view")
        logger.exception("Error no controlado en %s", type(view).__name__ if view else "API", exc_info=exc)
        return Response({"success": False, "error": INTERNAL_ERROR}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    payload = {"success": False, "error": first_message(response.data)}
    if isinstance(exc, ValidationError):
        payload["details"] = response.data
    response.data = payload
    return response
