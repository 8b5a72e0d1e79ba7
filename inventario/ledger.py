"""
Libro de stock.

Toda variación de saldo pasa por estas funciones: cada una bloquea los saldos
involucrados (select_for_update), valida disponibilidad y deja un
StockMovement por cambio, todo dentro de una misma transacción.

    disponible = on_hand - reserved   (nunca negativo tras un egreso o reserva)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from django.db import transaction

from .models import (
    REF_PRODUCTION,
    Bom,
    Item,
    Location,
    StockBalance,
    StockMovement,
    StockReservation,
    StockReservationLine,
    Warehouse,
)

logger = logging.getLogger(__name__)

NOTE_CONSUMO = "Consumo por producción"
NOTE_INGRESO = "Ingreso por producción"


class StockError(ValueError):
    pass


@dataclass
class ConsumeLine:
    component_item: Item
    qty: Decimal
    uom: str
    warehouse: Warehouse | None = None
    location: Location | None = None


def to_qty(value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise StockError(f"Cantidad inválida: {value}")


def _check_location(warehouse: Warehouse, location: Location | None) -> None:
    if location is not None and location.warehouse_id != warehouse.id:
        raise StockError(f"La ubicación {location.code} no pertenece al depósito {warehouse.name}.")


def _locked_balance(item: Item, warehouse: Warehouse, location: Location | None) -> StockBalance:
    balance, _ = StockBalance.objects.get_or_create(item=item, warehouse=warehouse, location=location)
    return StockBalance.objects.select_for_update().get(pk=balance.pk)


def _movement_kwargs(ref_kind: str, ref_id: str, note: str, user) -> dict[str, Any]:
    return {
        "ref_kind": ref_kind or "",
        "ref_id": str(ref_id or ""),
        "note": note or "",
        "created_by": user if getattr(user, "is_authenticated", False) else None,
    }


@transaction.atomic
def apply_movement(
    *,
    type: str,
    item: Item,
    warehouse: Warehouse,
    qty,
    uom: str,
    location: Location | None = None,
    unit_cost=None,
    lot: str = "",
    serial: str = "",
    note: str = "",
    ref_kind: str = "",
    ref_id: str = "",
    user=None,
) -> StockMovement:
    qty = to_qty(qty)
    if type in (StockMovement.TYPE_IN, StockMovement.TYPE_PRODUCE):
        if qty <= 0:
            raise StockError("La cantidad debe ser mayor a 0.")
        delta = qty
    elif type == StockMovement.TYPE_OUT:
        if qty <= 0:
            raise StockError("La cantidad debe ser mayor a 0.")
        delta = -qty
    elif type == StockMovement.TYPE_ADJUST:
        if qty == 0:
            raise StockError("qty no puede ser 0")
        delta = qty
    else:
        raise StockError(f"Tipo de movimiento no soportado: {type}")

    _check_location(warehouse, location)
    balance = _locked_balance(item, warehouse, location)
    if delta < 0 and balance.available + delta < 0:
        raise StockError(
            f"Stock insuficiente para {item.sku}: disponible {balance.available}, requerido {abs(delta)}."
        )
    balance.on_hand += delta
    balance.save(update_fields=["on_hand", "updated_at"])

    movement = StockMovement.objects.create(
        type=type,
        item=item,
        warehouse=warehouse,
        location=location,
        qty=delta,
        uom=uom,
        unit_cost=unit_cost,
        lot=lot or "",
        serial=serial or "",
        **_movement_kwargs(ref_kind, ref_id, note, user),
    )
    logger.info("Movimiento %s %s %s en %s", type, item.sku, delta, warehouse.name)
    return movement


@transaction.atomic
def apply_transfer(
    *,
    item: Item,
    qty,
    uom: str,
    from_warehouse: Warehouse,
    to_warehouse: Warehouse,
    from_location: Location | None = None,
    to_location: Location | None = None,
    lot: str = "",
    serial: str = "",
    note: str = "",
    ref_kind: str = "",
    ref_id: str = "",
    user=None,
) -> StockMovement:
    qty = to_qty(qty)
    if qty <= 0:
        raise StockError("La cantidad debe ser mayor a 0.")
    _check_location(from_warehouse, from_location)
    _check_location(to_warehouse, to_location)
    if from_warehouse.id == to_warehouse.id and getattr(from_location, "id", None) == getattr(to_location, "id", None):
        raise StockError("Origen y destino son iguales.")

    origen, _ = StockBalance.objects.get_or_create(item=item, warehouse=from_warehouse, location=from_location)
    destino, _ = StockBalance.objects.get_or_create(item=item, warehouse=to_warehouse, location=to_location)
    # Bloqueo en orden de pk para no cruzarse con una transferencia inversa.
    locked = {b.pk: b for b in StockBalance.objects.select_for_update().filter(pk__in=[origen.pk, destino.pk]).order_by("pk")}
    origen, destino = locked[origen.pk], locked[destino.pk]

    if origen.available - qty < 0:
        raise StockError(f"Stock insuficiente en origen para {item.sku}: disponible {origen.available}.")
    origen.on_hand -= qty
    destino.on_hand += qty
    origen.save(update_fields=["on_hand", "updated_at"])
    destino.save(update_fields=["on_hand", "updated_at"])

    movement = StockMovement.objects.create(
        type=StockMovement.TYPE_TRANSFER,
        item=item,
        warehouse=from_warehouse,
        location=from_location,
        from_warehouse=from_warehouse,
        from_location=from_location,
        to_warehouse=to_warehouse,
        to_location=to_location,
        qty=qty,
        uom=uom,
        lot=lot or "",
        serial=serial or "",
        **_movement_kwargs(ref_kind, ref_id, note, user),
    )
    logger.info("Transferencia %s x%s %s -> %s", item.sku, qty, from_warehouse.name, to_warehouse.name)
    return movement


@transaction.atomic
def apply_reservation(
    *,
    action: str,
    warehouse: Warehouse,
    lines: Iterable[dict[str, Any]],
    ref_kind: str,
    ref_id: str,
    note: str = "",
    user=None,
) -> list[StockMovement]:
    """lines: [{"item": Item, "qty": Decimal, "uom": str, "location": Location | None}]"""
    if action not in (StockMovement.TYPE_RESERVE, StockMovement.TYPE_UNRESERVE):
        raise StockError(f"Acción de reserva no soportada: {action}")

    movements = []
    for line in lines:
        item = line["item"]
        location = line.get("location")
        qty = to_qty(line["qty"])
        if qty <= 0:
            raise StockError("La cantidad debe ser mayor a 0.")
        _check_location(warehouse, location)
        balance = _locked_balance(item, warehouse, location)

        delta = qty if action == StockMovement.TYPE_RESERVE else -qty
        new_reserved = balance.reserved + delta
        if new_reserved < 0:
            raise StockError(f"Reservado no puede ser negativo ({item.sku}).")
        if action == StockMovement.TYPE_RESERVE and balance.on_hand - new_reserved < 0:
            raise StockError(f"Stock insuficiente para reservar {item.sku}: disponible {balance.available}.")
        balance.reserved = new_reserved
        balance.save(update_fields=["reserved", "updated_at"])

        movements.append(
            StockMovement.objects.create(
                type=action,
                item=item,
                warehouse=warehouse,
                location=location,
                qty=delta,
                uom=line["uom"],
                **_movement_kwargs(ref_kind, ref_id, note, user),
            )
        )
    return movements


@transaction.atomic
def create_reservation(
    *,
    warehouse: Warehouse,
    lines: list[dict[str, Any]],
    ref_kind: str,
    ref_id: str,
    note: str = "",
    user=None,
) -> StockReservation:
    if not lines:
        raise StockError("La reserva necesita al menos una línea.")
    reservation = StockReservation.objects.create(
        ref_kind=ref_kind,
        ref_id=str(ref_id),
        warehouse=warehouse,
        note=note or "",
        created_by=user if getattr(user, "is_authenticated", False) else None,
    )
    StockReservationLine.objects.bulk_create(
        [
            StockReservationLine(
                reservation=reservation,
                item=line["item"],
                qty=to_qty(line["qty"]),
                uom=line["uom"],
                lot=line.get("lot") or "",
            )
            for line in lines
        ]
    )
    apply_reservation(
        action=StockMovement.TYPE_RESERVE,
        warehouse=warehouse,
        lines=lines,
        ref_kind=ref_kind,
        ref_id=ref_id,
        note=note,
        user=user,
    )
    return reservation


@transaction.atomic
def release_reservation(reservation: StockReservation, user=None) -> StockReservation:
    reservation = StockReservation.objects.select_for_update().get(pk=reservation.pk)
    if reservation.status != StockReservation.STATUS_ACTIVE:
        raise StockError(f"La reserva no está activa (estado: {reservation.status}).")
    apply_reservation(
        action=StockMovement.TYPE_UNRESERVE,
        warehouse=reservation.warehouse,
        lines=[{"item": line.item, "qty": line.qty, "uom": line.uom} for line in reservation.lines.select_related("item")],
        ref_kind=reservation.ref_kind,
        ref_id=reservation.ref_id,
        note=reservation.note,
        user=user,
    )
    reservation.status = StockReservation.STATUS_RELEASED
    reservation.save(update_fields=["status", "updated_at"])
    return reservation


def active_bom(finished_item: Item) -> Bom | None:
    return (
        Bom.objects.filter(finished_item=finished_item, active=True)
        .prefetch_related("lines__component_item")
        .order_by("-version")
        .first()
    )


@transaction.atomic
def produce(
    *,
    finished_item: Item,
    warehouse: Warehouse,
    qty=1,
    location: Location | None = None,
    override_consume_lines: list[ConsumeLine] | None = None,
    ref_kind: str = "",
    ref_id: str = "",
    note: str = "",
    user=None,
) -> dict[str, Any]:
    """
    Consume los componentes y da ingreso al terminado en una sola transacción:
    si falta stock de cualquier componente no queda ningún movimiento aplicado.
    """
    qty = to_qty(qty)
    if qty <= 0:
        raise StockError("La cantidad a producir debe ser mayor a 0.")

    bom = None
    if override_consume_lines:
        consume = override_consume_lines
    else:
        bom = active_bom(finished_item)
        if bom is None:
            raise StockError("No hay BOM activa")
        consume = [
            ConsumeLine(component_item=line.component_item, qty=line.qty * qty, uom=line.uom)
            for line in bom.lines.all()
        ]

    ref_kind = ref_kind or REF_PRODUCTION
    ref_id = ref_id or str(finished_item.id)

    consumed = []
    for line in consume:
        consumed.append(
            apply_movement(
                type=StockMovement.TYPE_OUT,
                item=line.component_item,
                warehouse=line.warehouse or warehouse,
                location=line.location,
                qty=line.qty,
                uom=line.uom,
                note=note or NOTE_CONSUMO,
                ref_kind=ref_kind,
                ref_id=ref_id,
                user=user,
            )
        )

    produced = apply_movement(
        type=StockMovement.TYPE_PRODUCE,
        item=finished_item,
        warehouse=warehouse,
        location=location,
        qty=qty,
        uom=finished_item.uom,
        note=note or NOTE_INGRESO,
        ref_kind=ref_kind,
        ref_id=ref_id,
        user=user,
    )
    logger.info(
        "Producción %s x%s en %s (BOM %s, %s componentes)",
        finished_item.sku,
        qty,
        warehouse.name,
        f"v{bom.version}" if bom else "manual",
        len(consumed),
    )
    return {"bom": bom, "consumed": consumed, "produced": produced}
