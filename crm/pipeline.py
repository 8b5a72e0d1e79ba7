"""Reglas del pipeline de cotizaciones: alta, movimiento entre etapas, deshacer y adjuntos."""
from __future__ import annotations

import logging
import re
import uuid
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from .models import Cliente, Cotizacion, EtapaCotizacion, HistorialEtapa, Tarea

logger = logging.getLogger(__name__)

ETAPA_INICIAL_NOMBRE = "contacto inicial"
PRECIO_ANTERIOR_KEY = "__precioAnterior"
PRECIO_NUEVO_KEY = "__precioNuevo"
# Cotizacion.monto_total: 14 dígitos, 2 decimales.
MONTO_MAXIMO = Decimal("1000000000000")
CENTAVOS = Decimal("0.01")

# op -> (lista, acción)
OPERACIONES_ADJUNTOS = {
    "appendArchivos": ("archivos", "append"),
    "removeArchivo": ("archivos", "remove"),
    "addFactura": ("facturas", "add"),
    "removeFactura": ("facturas", "remove"),
    "addPago": ("pagos", "add"),
    "removePago": ("pagos", "remove"),
    "addImagen": ("imagenes", "add"),
    "removeImagen": ("imagenes", "remove"),
    "addMaterial": ("materiales", "add"),
    "removeMaterial": ("materiales", "remove"),
    "addTicket": ("tickets", "add"),
    "removeTicket": ("tickets", "remove"),
}
OPERACIONES = ["setNombre", "setCodigo", *OPERACIONES_ADJUNTOS]


class PipelineError(ValueError):
    pass


def etapa_inicial(etapa_id=None) -> EtapaCotizacion:
    if etapa_id:
        etapa = EtapaCotizacion.objects.filter(pk=etapa_id).first()
        if etapa is None:
            raise PipelineError("La etapa indicada no existe.")
        return etapa
    etapa = EtapaCotizacion.objects.filter(nombre__iexact=ETAPA_INICIAL_NOMBRE).first()
    if etapa is None:
        etapa = EtapaCotizacion.objects.order_by("created_at", "id").first()
    if etapa is None:
        raise PipelineError("No hay etapas de cotización configuradas.")
    return etapa


def armar_detalle(tipo_abertura: str, como_nos_conocio: str) -> str:
    return f"Tipo de Abertura: {tipo_abertura or ''}\n | Cómo nos conoció: {como_nos_conocio or ''}"


def parse_monto(value: Any) -> Decimal | None:
    """Acepta números o textos tipo "1.250,50", "$ 1250.5" o "1250,5"."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        return Decimal(str(value))
    raw = re.sub(r"[^\d,.\-]", "", str(value))
    if not raw:
        return None
    if "," in raw and "." in raw:
        raw = raw.replace(".", "").replace(",", ".")
    elif "," in raw:
        raw = raw.replace(",", ".")
    try:
        return Decimal(raw)
    except InvalidOperation:
        return None


def validar_monto(monto: Decimal) -> Decimal:
    if not monto.is_finite() or monto < 0 or monto >= MONTO_MAXIMO:
        raise PipelineError(f"Monto fuera de rango: {monto}.")
    return monto.quantize(CENTAVOS, rounding=ROUND_HALF_UP)


def precio_desde_formulario(datos: dict[str, Any] | None) -> Decimal | None:
    for key, value in (datos or {}).items():
        if key.startswith("__") or "precio" not in key.lower():
            continue
        monto = parse_monto(value)
        if monto is not None:
            return validar_monto(monto)
    return None


def _registrar_historial(cotizacion: Cotizacion, etapa: EtapaCotizacion, datos: dict, anterior, nuevo) -> HistorialEtapa:
    payload = dict(datos or {})
    payload[PRECIO_ANTERIOR_KEY] = float(anterior or 0)
    payload[PRECIO_NUEVO_KEY] = float(nuevo or 0)
    return HistorialEtapa.objects.create(cotizacion=cotizacion, etapa=etapa, datos_formulario=payload)


@transaction.atomic
def crear_cotizacion(
    *,
    cliente: Cliente,
    vendedor,
    monto_total: Decimal | None = None,
    etapa_id=None,
    sucursal=None,
    nombre: str = "",
    tipo_abertura: str = "",
    como_nos_conocio: str = "",
    detalle: str = "",
    archivos: list | None = None,
) -> Cotizacion:
    etapa = etapa_inicial(etapa_id)
    monto = validar_monto(monto_total) if monto_total is not None else Decimal("0")
    cotizacion = Cotizacion.objects.create(
        cliente=cliente,
        vendedor=vendedor,
        etapa=etapa,
        monto_total=monto,
        sucursal=sucursal,
        nombre=nombre or "",
        tipo_abertura=tipo_abertura or "",
        como_nos_conocio=como_nos_conocio or "",
        detalle=detalle or armar_detalle(tipo_abertura, como_nos_conocio),
        archivos=[_con_uid(item) for item in (archivos or [])],
    )
    _registrar_historial(cotizacion, etapa, {}, Decimal("0"), monto)

    dias = getattr(settings, "COTIZACION_SEGUIMIENTO_DIAS", 3)
    if vendedor is not None:
        Tarea.objects.create(
            titulo=f"Contactar a {cliente.nombre_completo} (Cot. {cotizacion.codigo})",
            descripcion="Seguimiento automático de la cotización.",
            prioridad=Tarea.PRIORIDAD_MEDIA,
            fecha_vencimiento=timezone.localdate() + timedelta(days=dias),
            cliente=cliente,
            vendedor_asignado=vendedor,
        )
    logger.info("Cotización %s creada en etapa %s", cotizacion.codigo, etapa.nombre)
    return cotizacion


@transaction.atomic
def mover_cotizacion(
    cotizacion: Cotizacion,
    etapa: EtapaCotizacion,
    datos_formulario: dict[str, Any] | None = None,
    monto_total: Decimal | None = None,
) -> Cotizacion:
    cotizacion = Cotizacion.objects.select_for_update().get(pk=cotizacion.pk)
    anterior = cotizacion.monto_total
    nuevo = validar_monto(monto_total) if monto_total is not None else precio_desde_formulario(datos_formulario)
    if nuevo is None:
        nuevo = anterior
    cotizacion.etapa = etapa
    cotizacion.monto_total = nuevo
    cotizacion.save(update_fields=["etapa", "monto_total", "updated_at"])
    _registrar_historial(cotizacion, etapa, datos_formulario or {}, anterior, nuevo)
    return cotizacion


@transaction.atomic
def deshacer_movimiento(cotizacion: Cotizacion) -> Cotizacion:
    cotizacion = Cotizacion.objects.select_for_update().get(pk=cotizacion.pk)
    historial = list(cotizacion.historial_etapas.order_by("-id")[:2])
    if len(historial) < 2:
        raise PipelineError("No hay acciones para deshacer.")
    ultimo, previo = historial
    if previo.etapa_id is None:
        raise PipelineError(f"La etapa anterior ({previo.etapa_nombre}) ya no existe.")

    precio_anterior = (ultimo.datos_formulario or {}).get(PRECIO_ANTERIOR_KEY)
    ultimo.delete()
    cotizacion.etapa_id = previo.etapa_id
    fields = ["etapa", "updated_at"]
    if precio_anterior is not None:
        cotizacion.monto_total = parse_monto(precio_anterior) or Decimal("0")
        fields.append("monto_total")
    cotizacion.save(update_fields=fields)
    return cotizacion


@transaction.atomic
def reordenar(etapa: EtapaCotizacion, ordered_ids: list) -> int:
    updated = 0
    for index, cotizacion_id in enumerate(ordered_ids):
        updated += Cotizacion.objects.filter(pk=cotizacion_id).update(etapa=etapa, orden=index)
    return updated


def _con_uid(item: Any) -> dict:
    entry = dict(item) if isinstance(item, dict) else {"url": str(item)}
    entry.setdefault("uid", uuid.uuid4().hex)
    entry.setdefault("fecha", timezone.now().isoformat())
    return entry


def aplicar_operacion(cotizacion: Cotizacion, op: str, payload: dict[str, Any]) -> Cotizacion:
    if op == "setNombre":
        cotizacion.nombre = str(payload.get("nombre") or "").strip()
        cotizacion.save(update_fields=["nombre", "updated_at"])
        return cotizacion

    if op == "setCodigo":
        codigo = str(payload.get("codigo") or "").strip().upper()
        if not codigo:
            raise PipelineError("El código no puede estar vacío.")
        if Cotizacion.objects.filter(codigo=codigo).exclude(pk=cotizacion.pk).exists():
            raise PipelineError(f"El código {codigo} ya está en uso.")
        cotizacion.codigo = codigo
        cotizacion.save(update_fields=["codigo", "updated_at"])
        return cotizacion

    if op not in OPERACIONES_ADJUNTOS:
        raise PipelineError(f"Operación no soportada: {op}")

    lista, accion = OPERACIONES_ADJUNTOS[op]
    entries = list(getattr(cotizacion, lista) or [])
    if accion == "append":
        nuevos = payload.get(lista) or payload.get("items") or []
        if not isinstance(nuevos, list) or not nuevos:
            raise PipelineError(f"Envía una lista '{lista}' con al menos un elemento.")
        entries.extend(_con_uid(item) for item in nuevos)
    elif accion == "add":
        item = payload.get("item")
        if not isinstance(item, dict) or not item:
            raise PipelineError("Envía 'item' con los datos a agregar.")
        entries.append(_con_uid(item))
    else:
        uid = str(payload.get("uid") or "").strip()
        if not uid:
            raise PipelineError("Envía el 'uid' del elemento a quitar.")
        restantes = [entry for entry in entries if entry.get("uid") != uid]
        if len(restantes) == len(entries):
            raise PipelineError("No se encontró el elemento indicado.")
        entries = restantes

    setattr(cotizacion, lista, entries)
    cotizacion.save(update_fields=[lista, "updated_at"])
    return cotizacion
