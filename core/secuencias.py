"""Códigos correlativos legibles (COT-001, OT-00001) asignados al guardar."""
import logging
import re

from django.db import IntegrityError, models, transaction

logger = logging.getLogger(__name__)

MAX_INTENTOS = 5


def siguiente_codigo(model: type[models.Model], field: str, prefix: str, width: int) -> str:
    """Mayor correlativo existente con ese prefijo + 1. Ignora códigos editados a mano que no siguen el patrón."""
    pattern = re.compile(rf"^{re.escape(prefix)}-(\d+)$")
    ultimo = 0
    existentes = model.objects.filter(**{f"{field}__startswith": f"{prefix}-"}).values_list(field, flat=True)
    for codigo in existentes:
        match = pattern.match(codigo or "")
        if match:
            ultimo = max(ultimo, int(match.group(1)))
    return f"{prefix}-{ultimo + 1:0{width}d}"


def guardar_con_codigo(instance: models.Model, field: str, prefix: str, width: int, save) -> None:
    """
    Asigna el siguiente código y guarda. Si otra alta concurrente tomó el mismo
    número, la restricción unique lo rechaza y se reintenta con el siguiente.
    Cualquier otra violación de integridad se propaga sin reintentar.
    """
    if getattr(instance, field):
        save()
        return
    for intento in range(1, MAX_INTENTOS + 1):
        setattr(instance, field, siguiente_codigo(type(instance), field, prefix, width))
        try:
            with transaction.atomic():
                save()
            return
        except IntegrityError:
            if not type(instance).objects.filter(**{field: getattr(instance, field)}).exists():
                raise
            logger.warning(
                "Colisión de correlativo %s=%s (intento %s/%s)",
                field,
                getattr(instance, field),
                intento,
                MAX_INTENTOS,
            )
            setattr(instance, field, "")
            if instance._state.adding:
                instance.pk = None
    raise IntegrityError(f"No se pudo asignar {field} tras {MAX_INTENTOS} intentos.")
