"""
Flujo de un proyecto por sus etapas físicas.

Cada etapa guarda su propio formulario (JSON) en el proyecto. Completar una
etapa fusiona los datos enviados, la marca como "Completado" y, según lo
cargado, avanza `estado_actual`:

    visita_tecnica                                   -> Medición
    medicion      (enviar_a_verificacion = Sí)       -> Verificación
    verificacion  (aprobado_para_produccion = Sí)    -> Taller
    taller        (pedido_listo_para_entrega = Sí)   -> estado según destino_final
    deposito      (estado_interno = Listo para entrega) -> Logística
    logistica     (estado_entrega = Entregado)       -> Completado

Si no se cumple la condición el estado no cambia. `forzar_estado` pisa el resultado.
"""
from __future__ import annotations

import logging
import re
from typing import Any

from django.db import transaction
from django.utils import timezone

from core.access import (
    STAGE_DEPOSITO,
    STAGE_LOGISTICA,
    STAGE_MEDICION,
    STAGE_TALLER,
    STAGE_VERIFICACION,
    STAGE_VISITA_TECNICA,
)
from core.normalizacion import normalizar_nombre

from .models import Proyecto

logger = logging.getLogger(__name__)

ETAPAS = [
    STAGE_VISITA_TECNICA,
    STAGE_MEDICION,
    STAGE_VERIFICACION,
    STAGE_TALLER,
    STAGE_DEPOSITO,
    STAGE_LOGISTICA,
]

SI_NO = ["Sí", "No"]
DESTINO_DEPOSITO = "Depósito"
DESTINO_LOGISTICA = "Logística"
DESTINO_INSTALACION = "Instalación en obra"
DESTINO_RETIRO = "Retiro por cliente"

VALORES_PERMITIDOS = {
    STAGE_MEDICION: {
        "estado": ["Pendiente", "Completado", "Parcial", "Requiere nueva visita"],
        "enviar_a_verificacion": SI_NO,
    },
    STAGE_VERIFICACION: {
        "aprobado_para_produccion": SI_NO,
    },
    STAGE_TALLER: {
        "estado_interno": ["En proceso", "Completo", "En espera", "Revisión", "Rechazado"],
        "destino_final": [DESTINO_DEPOSITO, DESTINO_LOGISTICA, DESTINO_INSTALACION, DESTINO_RETIRO],
        "pedido_listo_para_entrega": SI_NO,
    },
    STAGE_DEPOSITO: {
        "estado_interno": ["En depósito", "Listo para entrega", "En revisión", "Devolución"],
    },
    STAGE_LOGISTICA: {
        "estado_entrega": ["Entregado", "Parcial", "Rechazado", "Reprogramado", "Pendiente"],
    },
}

ESTADO_POR_DESTINO = {
    DESTINO_DEPOSITO: Proyecto.ESTADO_DEPOSITO,
    DESTINO_LOGISTICA: Proyecto.ESTADO_LOGISTICA,
    DESTINO_INSTALACION: Proyecto.ESTADO_INSTALACION,
    DESTINO_RETIRO: Proyecto.ESTADO_RETIRO_CLIENTE,
}
ESTADOS_VALIDOS = [value for value, _ in Proyecto.ESTADO_CHOICES]
ETAPA_COMPLETADA = "Completado"


class WorkflowError(ValueError):
    pass


def resolver_etapa(nombre: str) -> str:
    if nombre not in ETAPAS:
        raise WorkflowError(f"Etapa desconocida: {nombre}. Opciones: {', '.join(ETAPAS)}.")
    return nombre


def _es_si(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return normalizar_nombre(value) == "si"


def validar_datos_etapa(etapa: str, datos: Any) -> dict[str, Any]:
    if not isinstance(datos, dict):
        raise WorkflowError(f"Los datos de {etapa} deben ser un objeto.")
    permitidos_etapa = VALORES_PERMITIDOS.get(etapa, {})
    for key in datos:
        snake = re.sub(r"(?<!^)(?=[A-Z])", "_", str(key)).lower()
        if snake != key and snake in permitidos_etapa:
            raise WorkflowError(f"Campo {key} desconocido en {etapa}; usa {snake}.")
    for campo, permitidos in permitidos_etapa.items():
        value = datos.get(campo)
        if value in (None, "") or (permitidos is SI_NO and isinstance(value, bool)):
            continue
        if value not in permitidos:
            raise WorkflowError(f"Valor inválido para {etapa}.{campo}: {value}. Opciones: {', '.join(permitidos)}.")
    return datos


def siguiente_estado(etapa: str, datos: dict[str, Any]) -> str | None:
    if etapa == STAGE_VISITA_TECNICA:
        return Proyecto.ESTADO_MEDICION
    if etapa == STAGE_MEDICION and _es_si(datos.get("enviar_a_verificacion")):
        return Proyecto.ESTADO_VERIFICACION
    if etapa == STAGE_VERIFICACION and _es_si(datos.get("aprobado_para_produccion")):
        return Proyecto.ESTADO_TALLER
    if etapa == STAGE_TALLER and _es_si(datos.get("pedido_listo_para_entrega")):
        return ESTADO_POR_DESTINO.get(datos.get("destino_final") or "")
    if etapa == STAGE_DEPOSITO and datos.get("estado_interno") == "Listo para entrega":
        return Proyecto.ESTADO_LOGISTICA
    if etapa == STAGE_LOGISTICA and datos.get("estado_entrega") == "Entregado":
        return Proyecto.ESTADO_COMPLETADO
    return None


def validar_estado(estado: str | None) -> str | None:
    if estado in (None, ""):
        return None
    if estado not in ESTADOS_VALIDOS:
        raise WorkflowError(f"Estado inválido: {estado}")
    return estado


@transaction.atomic
def completar_etapa(
    proyecto: Proyecto,
    etapa: str,
    datos: dict[str, Any],
    forzar_estado: str | None = None,
) -> Proyecto:
    etapa = resolver_etapa(etapa)
    datos = validar_datos_etapa(etapa, datos or {})
    forzado = validar_estado(forzar_estado)

    proyecto = Proyecto.objects.select_for_update().get(pk=proyecto.pk)
    merged = {**(getattr(proyecto, etapa) or {}), **datos}
    merged["estado"] = ETAPA_COMPLETADA
    merged["fecha_completado"] = timezone.now().isoformat()
    setattr(proyecto, etapa, merged)

    anterior = proyecto.estado_actual
    nuevo = forzado or siguiente_estado(etapa, merged)
    if nuevo:
        proyecto.estado_actual = nuevo
    proyecto.save(update_fields=[etapa, "estado_actual", "updated_at"])
    logger.info(
        "Proyecto %s: etapa %s completada (%s -> %s)",
        proyecto.numero_orden,
        etapa,
        anterior,
        proyecto.estado_actual,
    )
    return proyecto


@transaction.atomic
def actualizar_etapas(proyecto: Proyecto, datos_por_etapa: dict[str, Any]) -> Proyecto:
    """Fusiona cada bloque en su etapa; un objeto vacío deja la etapa en {}."""
    if not isinstance(datos_por_etapa, dict) or not datos_por_etapa:
        raise WorkflowError("datos_formulario debe ser un objeto {etapa: {...}}.")
    proyecto = Proyecto.objects.select_for_update().get(pk=proyecto.pk)
    fields = []
    for nombre, datos in datos_por_etapa.items():
        etapa = resolver_etapa(nombre)
        datos = validar_datos_etapa(etapa, datos)
        if datos:
            setattr(proyecto, etapa, {**(getattr(proyecto, etapa) or {}), **datos})
        else:
            setattr(proyecto, etapa, {})
        fields.append(etapa)
    proyecto.save(update_fields=[*fields, "updated_at"])
    return proyecto


def cambiar_estado(proyecto: Proyecto, estado: str | None) -> Proyecto:
    proyecto.estado_actual = validar_estado(estado)
    proyecto.save(update_fields=["estado_actual", "updated_at"])
    return proyecto
